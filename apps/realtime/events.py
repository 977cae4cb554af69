"""
Row Change Events

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .brokers import safe_publish

logger = logging.getLogger(__name__)

INSERT = 'INSERT'
UPDATE = 'UPDATE'
DELETE = 'DELETE'
EVENT_TYPES = (INSERT, UPDATE, DELETE)


def table_channel(table):
    return f"table:{table}"


def build_row_event(table, event_type, row_id, updated_at, new=None, old=None):
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown event type: {event_type}")
    return {
        'table': table,
        'eventType': event_type,
        'id': str(row_id),
        'updatedAt': updated_at.isoformat() if updated_at else None,
        'new': new or {},
        'old': old or {},
        'publishedAt': timezone.now().isoformat(),
    }


def publish_row_change(table, event_type, row_id, updated_at, new=None, old=None, broker=None):
    """Publish a row change on the table channel. Never raises."""
    event = build_row_event(table, event_type, row_id, updated_at, new=new, old=old)
    delivered = safe_publish(table_channel(table), event, broker=broker)
    logger.debug(f"{event_type} event for {table}/{row_id} delivered to {delivered} subscriber(s)")
    return event


class StaleEventFilter:
    """
    Tracks the newest `updated_at` applied per row id and rejects older events.

    Events carrying no timestamp are always accepted. DELETE events are accepted
    when not older than the last applied version and forget the row afterwards.
    """

    def __init__(self):
        self._versions = {}

    def seen(self, row_id, updated_at):
        """Record a version obtained outside the event stream (e.g. from a fetch)."""
        stamp = self._coerce(updated_at)
        if stamp is None:
            return
        current = self._versions.get(str(row_id))
        if current is None or stamp > current:
            self._versions[str(row_id)] = stamp

    def accept(self, event):
        row_id = str(event.get('id'))
        stamp = self._coerce(event.get('updatedAt'))
        current = self._versions.get(row_id)

        if stamp is not None and current is not None and stamp < current:
            logger.debug(f"Discarding stale {event.get('eventType')} event for {row_id}")
            return False

        if event.get('eventType') == DELETE:
            self._versions.pop(row_id, None)
        elif stamp is not None:
            self._versions[row_id] = stamp
        return True

    def _coerce(self, value):
        if value is None or value == '':
            return None
        if isinstance(value, str):
            return parse_datetime(value)
        return value
