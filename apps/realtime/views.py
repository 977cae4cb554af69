"""
Realtime Views

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import json
import logging
import time

from django.http import StreamingHttpResponse
from django.core.serializers.json import DjangoJSONEncoder
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.core.responses import error_response
from .brokers import get_broker
from .events import EVENT_TYPES, StaleEventFilter, table_channel

logger = logging.getLogger(__name__)

HEARTBEAT_SECONDS = 15
MAX_STREAM_SECONDS = 300


def format_sse(data, event=None):
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(data, cls=DjangoJSONEncoder)}")
    return "\n".join(lines) + "\n\n"


def stream_events(subscription, accept=None, heartbeat=HEARTBEAT_SECONDS,
                  max_seconds=MAX_STREAM_SECONDS, clock=time.monotonic):
    """
    Yield server-sent-event frames for messages on an open subscription.

    Stale events are dropped, `accept` further filters events, and a comment
    frame is emitted every `heartbeat` seconds of silence. The subscription is
    closed when the generator finishes or is discarded.
    """
    stale_filter = StaleEventFilter()
    deadline = clock() + max_seconds
    try:
        yield ": connected\n\n"
        while clock() < deadline:
            message = subscription.get(timeout=min(heartbeat, max(deadline - clock(), 0)))
            if message is None:
                yield ": keep-alive\n\n"
                continue
            if not stale_filter.accept(message):
                continue
            if accept is not None and not accept(message):
                continue
            yield format_sse(message, event=message.get('eventType'))
    finally:
        subscription.close()


def task_event_predicate(user, event_types, mine):
    """Build the filter applied to task change events for this viewer."""
    user_id = str(user.id)
    restrict = mine or getattr(user, 'role', None) != 'admin'

    def accept(event):
        if event_types and event.get('eventType') not in event_types:
            return False
        if not restrict:
            return True
        row = event.get('new') or event.get('old') or {}
        return user_id in (row.get('assignee_ids') or [])

    return accept


@extend_schema(
    tags=['Realtime'],
    summary='Task change stream',
    description='Server-sent events for task inserts, updates and deletes. '
                'Employees only receive events for tasks assigned to them.',
    parameters=[
        OpenApiParameter('events', str, description='Comma separated event types (INSERT,UPDATE,DELETE)'),
        OpenApiParameter('mine', bool, description='Only tasks assigned to the current user'),
    ],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def task_stream(request):
    """
    Stream task row changes as server-sent events.
    """
    requested = request.query_params.get('events', '')
    event_types = {e.strip().upper() for e in requested.split(',') if e.strip()}
    unknown = event_types - set(EVENT_TYPES)
    if unknown:
        return error_response(
            message=f"Unknown event types: {', '.join(sorted(unknown))}",
            status_code=status.HTTP_400_BAD_REQUEST
        )
    mine = request.query_params.get('mine', '').lower() in ('1', 'true', 'yes')

    subscription = get_broker().subscribe(table_channel('tasks')).open()
    logger.info(f"Task stream opened for {request.user.email}")

    response = StreamingHttpResponse(
        stream_events(subscription, accept=task_event_predicate(request.user, event_types, mine)),
        content_type='text/event-stream'
    )
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response
