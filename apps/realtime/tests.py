"""
Realtime Tests

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock

from django.test import SimpleTestCase

from .brokers import InProcessBroker, safe_publish
from .events import StaleEventFilter, build_row_event, publish_row_change, table_channel
from .views import stream_events, task_event_predicate


T0 = datetime(2025, 3, 1, 9, 0, tzinfo=dt_timezone.utc)


class InProcessBrokerTest(SimpleTestCase):
    """Test in-process publish/subscribe delivery."""

    def setUp(self):
        self.broker = InProcessBroker()

    def test_open_subscription_receives_messages(self):
        with self.broker.subscribe('user:1') as subscription:
            delivered = self.broker.publish('user:1', {'kind': 'invite'})
            self.assertEqual(delivered, 1)
            self.assertEqual(subscription.get(timeout=0.1), {'kind': 'invite'})

    def test_closed_subscription_stops_receiving(self):
        subscription = self.broker.subscribe('user:1').open()
        subscription.close()

        self.assertEqual(self.broker.publish('user:1', {'kind': 'invite'}), 0)
        with self.assertRaises(RuntimeError):
            subscription.get(timeout=0)

    def test_other_channels_are_isolated(self):
        with self.broker.subscribe('meeting:a') as subscription:
            self.broker.publish('meeting:b', {'kind': 'accept'})
            self.assertIsNone(subscription.get(timeout=0.01))

    def test_messages_are_json_round_tripped(self):
        with self.broker.subscribe('tasks') as subscription:
            self.broker.publish('tasks', {'at': T0})
            self.assertEqual(subscription.get(timeout=0.1), {'at': '2025-03-01T09:00:00Z'})

    def test_safe_publish_swallows_errors(self):
        broken = mock.Mock()
        broken.publish.side_effect = ConnectionError('redis down')

        self.assertEqual(safe_publish('tasks', {}, broker=broken), 0)


class StaleEventFilterTest(SimpleTestCase):
    """Test discarding of late realtime events."""

    def test_older_event_is_discarded(self):
        stale_filter = StaleEventFilter()
        newer = build_row_event('tasks', 'UPDATE', 'a', T0 + timedelta(seconds=5))
        older = build_row_event('tasks', 'UPDATE', 'a', T0)

        self.assertTrue(stale_filter.accept(newer))
        self.assertFalse(stale_filter.accept(older))

    def test_rows_are_tracked_independently(self):
        stale_filter = StaleEventFilter()
        stale_filter.seen('a', T0 + timedelta(minutes=1))

        self.assertTrue(stale_filter.accept(build_row_event('tasks', 'UPDATE', 'b', T0)))
        self.assertFalse(stale_filter.accept(build_row_event('tasks', 'UPDATE', 'a', T0)))

    def test_equal_timestamp_is_accepted(self):
        stale_filter = StaleEventFilter()
        event = build_row_event('tasks', 'UPDATE', 'a', T0)

        self.assertTrue(stale_filter.accept(event))
        self.assertTrue(stale_filter.accept(event))

    def test_delete_forgets_row(self):
        stale_filter = StaleEventFilter()
        stale_filter.accept(build_row_event('tasks', 'UPDATE', 'a', T0 + timedelta(minutes=1)))
        stale_filter.accept(build_row_event('tasks', 'DELETE', 'a', T0 + timedelta(minutes=1)))

        self.assertTrue(stale_filter.accept(build_row_event('tasks', 'INSERT', 'a', T0)))

    def test_unknown_event_type_rejected(self):
        with self.assertRaises(ValueError):
            build_row_event('tasks', 'UPSERT', 'a', T0)


class TaskStreamTest(SimpleTestCase):
    """Test the server-sent event generator."""

    def test_stream_filters_stale_and_foreign_events(self):
        broker = InProcessBroker()
        user = mock.Mock(id='u1', role='employee')
        subscription = broker.subscribe(table_channel('tasks')).open()

        publish_row_change('tasks', 'UPDATE', 't1', T0 + timedelta(seconds=10),
                           new={'assignee_ids': ['u1']}, broker=broker)
        publish_row_change('tasks', 'UPDATE', 't1', T0,
                           new={'assignee_ids': ['u1']}, broker=broker)
        publish_row_change('tasks', 'UPDATE', 't2', T0,
                           new={'assignee_ids': ['u2']}, broker=broker)

        ticks = iter([0, 0, 0, 0, 0, 0, 100, 100])
        frames = list(stream_events(
            subscription,
            accept=task_event_predicate(user, set(), mine=False),
            heartbeat=0.01,
            max_seconds=1,
            clock=lambda: next(ticks),
        ))

        data_frames = [f for f in frames if f.startswith('event:')]
        self.assertEqual(len(data_frames), 1)
        self.assertIn('"id": "t1"', data_frames[0])
        self.assertFalse(subscription.is_open)

    def test_admin_sees_all_events_of_requested_type(self):
        admin = mock.Mock(id='a1', role='admin')
        accept = task_event_predicate(admin, {'INSERT'}, mine=False)

        self.assertTrue(accept(build_row_event('tasks', 'INSERT', 't1', T0, new={'assignee_ids': []})))
        self.assertFalse(accept(build_row_event('tasks', 'UPDATE', 't1', T0, new={'assignee_ids': []})))
