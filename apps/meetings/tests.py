"""
Meetings Tests

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import uuid
from unittest import mock
from urllib.parse import unquote

from django.test import RequestFactory, SimpleTestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.authentication.models import User
from apps.core.exceptions import BusinessValidationError
from apps.realtime.brokers import InProcessBroker, get_broker
from .signaling import (
    MeetingSession, MeetingSignaling, build_join_link, build_share_url,
    create_meeting_id, meeting_channel, public_base_url, user_channel
)

ADMIN_ID = '11111111-1111-1111-1111-111111111111'
ALICE_ID = '22222222-2222-2222-2222-222222222222'
BOB_ID = '33333333-3333-3333-3333-333333333333'


class MeetingSignalingTest(SimpleTestCase):
    """Test invite/accept/cancel messages over the broker."""

    def setUp(self):
        self.broker = InProcessBroker()
        self.signaling = MeetingSignaling(broker=self.broker)
        self.meeting_id = create_meeting_id()

    def test_meeting_ids_are_unique(self):
        self.assertNotEqual(create_meeting_id(), create_meeting_id())

    def test_invite_reaches_personal_and_meeting_channels(self):
        with self.broker.subscribe(user_channel(ALICE_ID)) as inbox, \
                self.broker.subscribe(meeting_channel(self.meeting_id)) as room:
            self.signaling.invite(self.meeting_id, ADMIN_ID, [ALICE_ID], 'audio')

            personal = inbox.get(timeout=0.1)
            shared = room.get(timeout=0.1)

        self.assertEqual(personal['kind'], 'invite')
        self.assertEqual(personal['meetingId'], self.meeting_id)
        self.assertEqual(personal['from'], ADMIN_ID)
        self.assertEqual(personal['to'], ALICE_ID)
        self.assertEqual(personal['mediaType'], 'audio')
        self.assertEqual(shared, personal)

    def test_duplicate_invitees_get_one_invite(self):
        sent = self.signaling.invite(self.meeting_id, ADMIN_ID, [ALICE_ID, ALICE_ID, BOB_ID], 'video')

        self.assertEqual([m['to'] for m in sent], [ALICE_ID, BOB_ID])

    def test_unknown_media_type_is_rejected(self):
        with self.assertRaises(BusinessValidationError):
            self.signaling.invite(self.meeting_id, ADMIN_ID, [ALICE_ID], 'hologram')

    def test_cancel_notifies_listed_users(self):
        with self.broker.subscribe(user_channel(BOB_ID)) as inbox:
            self.signaling.cancel(self.meeting_id, ADMIN_ID, [BOB_ID])
            message = inbox.get(timeout=0.1)

        self.assertEqual(message['kind'], 'cancel')
        self.assertEqual(message['to'], [BOB_ID])

    def test_delivery_failure_is_swallowed(self):
        broken = mock.Mock()
        broken.publish.side_effect = ConnectionError('redis down')

        sent = MeetingSignaling(broker=broken).invite(self.meeting_id, ADMIN_ID, [ALICE_ID], 'video')

        self.assertEqual(len(sent), 1)


class MeetingSessionTest(SimpleTestCase):
    """Test the initiator's view of a meeting."""

    def setUp(self):
        self.broker = InProcessBroker()
        self.signaling = MeetingSignaling(broker=self.broker)
        self.meeting_id = create_meeting_id()

    def test_accepts_are_collected_once(self):
        with MeetingSession(self.meeting_id, ADMIN_ID, broker=self.broker) as session:
            self.signaling.accept(self.meeting_id, ALICE_ID)
            self.signaling.accept(self.meeting_id, ALICE_ID)
            self.signaling.accept(self.meeting_id, BOB_ID)
            self.signaling.reject(self.meeting_id, ADMIN_ID)

            session.poll(timeout=0.1)

        self.assertEqual(session.participants, [ALICE_ID, BOB_ID])
        self.assertEqual(session.declined, [ADMIN_ID])
        self.assertFalse(session.is_open)

    def test_initiator_is_not_a_participant(self):
        with MeetingSession(self.meeting_id, ADMIN_ID, broker=self.broker) as session:
            self.signaling.accept(self.meeting_id, ADMIN_ID)
            session.poll(timeout=0.1)

        self.assertEqual(session.participants, [])

    def test_cancel_ends_session(self):
        with MeetingSession(self.meeting_id, ADMIN_ID, broker=self.broker) as session:
            self.signaling.cancel(self.meeting_id, ALICE_ID)
            session.poll(timeout=0.1)

        self.assertTrue(session.cancelled)

    def test_messages_before_open_are_missed(self):
        session = MeetingSession(self.meeting_id, ADMIN_ID, broker=self.broker)
        self.signaling.accept(self.meeting_id, ALICE_ID)

        with session:
            self.assertEqual(session.poll(timeout=0.01), [])

    def test_poll_requires_open_session(self):
        session = MeetingSession(self.meeting_id, ADMIN_ID, broker=self.broker)

        with self.assertRaises(RuntimeError):
            session.poll()


class ShareLinkTest(SimpleTestCase):
    """Test join and share link building."""

    def test_join_link(self):
        link = build_join_link('abc-123', 'video', 'https://app.example.com/')

        self.assertEqual(link, 'https://app.example.com/login?meetingId=abc-123&type=video')

    def test_share_url_carries_invite_text(self):
        link = build_join_link('abc-123', 'audio', 'https://app.example.com')
        share = build_share_url(link, 'audio', topic='Weekly sync')

        self.assertTrue(share.startswith('https://wa.me/?text='))
        text = unquote(share.split('?text=', 1)[1])
        self.assertEqual(text, f"Topic: Weekly sync\nMeeting Invite (audio):\n{link}")

    @override_settings(PUBLIC_BASE_URL='https://field.example.com/')
    def test_configured_base_url_wins(self):
        request = RequestFactory().get('/')
        self.assertEqual(public_base_url(request), 'https://field.example.com')

    @override_settings(PUBLIC_BASE_URL='')
    def test_falls_back_to_request_origin(self):
        request = RequestFactory().get('/api/v1/meetings/')
        self.assertEqual(public_base_url(request), 'http://testserver')


class MeetingAPITest(APITestCase):
    """Test meeting endpoints."""

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@test.com', password='test12345', full_name='Admin User', role='admin'
        )
        self.employee = User.objects.create_user(
            email='emp@test.com', password='test12345', full_name='Field Employee', role='employee'
        )

    def test_admin_starts_meeting(self):
        self.client.force_authenticate(user=self.admin)

        with get_broker().subscribe(user_channel(self.employee.id)) as inbox:
            response = self.client.post(reverse('meetings:meeting_create'), {
                'invitee_ids': [str(self.employee.id)],
                'media_type': 'video',
            }, format='json')
            invite = inbox.get(timeout=0.5)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(invite['meetingId'], data['meeting_id'])
        self.assertEqual(data['invited'], [str(self.employee.id)])
        self.assertTrue(data['join_link'].startswith('https://app.fieldpilot.test/login?meetingId='))
        self.assertTrue(data['share_url'].startswith('https://wa.me/?text='))

    def test_unknown_invitee_is_rejected(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(reverse('meetings:meeting_create'), {
            'invitee_ids': [str(uuid.uuid4())],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_employee_cannot_start_meeting(self):
        self.client.force_authenticate(user=self.employee)

        response = self.client.post(reverse('meetings:meeting_create'), {
            'invitee_ids': [str(self.admin.id)],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_accept_publishes_on_meeting_channel(self):
        meeting_id = create_meeting_id()
        self.client.force_authenticate(user=self.employee)

        with get_broker().subscribe(meeting_channel(meeting_id)) as room:
            response = self.client.post(reverse('meetings:meeting_accept', kwargs={'meeting_id': meeting_id}))
            message = room.get(timeout=0.5)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(message['kind'], 'accept')
        self.assertEqual(message['from'], str(self.employee.id))

    def test_share_link_endpoint(self):
        meeting_id = create_meeting_id()
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(
            reverse('meetings:meeting_share_link', kwargs={'meeting_id': meeting_id}),
            {'media_type': 'screen'}
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data['data']['join_link'],
            f'https://app.fieldpilot.test/login?meetingId={meeting_id}&type=screen'
        )
