"""
Meeting Signaling

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.

Invite/accept/reject/cancel handshake carried over the realtime broker.
Invites go to each invitee's personal channel ``user:<id>`` and to the
meeting channel ``meeting:<id>``; replies go to the meeting channel.
Nothing is stored and nothing is acknowledged.
"""
import logging
import uuid
from urllib.parse import quote, urlencode

from django.conf import settings
from django.utils import timezone

from apps.core.exceptions import BusinessValidationError
from apps.realtime.brokers import get_broker, safe_publish

logger = logging.getLogger(__name__)

MEDIA_TYPES = ('video', 'audio', 'screen')

INVITE = 'invite'
ACCEPT = 'accept'
REJECT = 'reject'
CANCEL = 'cancel'


def user_channel(user_id):
    return f"user:{user_id}"


def meeting_channel(meeting_id):
    return f"meeting:{meeting_id}"


def create_meeting_id():
    return str(uuid.uuid4())


def signal_message(meeting_id, sender_id, kind, to=None, media_type=None, now=None):
    message = {
        'meetingId': str(meeting_id),
        'from': str(sender_id),
        'kind': kind,
        'createdAt': (now or timezone.now()).isoformat(),
    }
    if to is not None:
        message['to'] = to
    if media_type is not None:
        message['mediaType'] = media_type
    return message


class MeetingSignaling:
    """
    Publishes signaling messages through a broker. Delivery failures are
    logged and swallowed by ``safe_publish``.
    """

    def __init__(self, broker=None):
        self.broker = broker or get_broker()

    def _send(self, channel, message):
        return safe_publish(channel, message, broker=self.broker)

    def invite(self, meeting_id, sender_id, invitee_ids, media_type, now=None):
        """
        Invite each user to the meeting. Returns the messages sent.
        """
        if media_type not in MEDIA_TYPES:
            raise BusinessValidationError(
                f"Media type must be one of {', '.join(MEDIA_TYPES)}",
                details={'media_type': media_type}
            )

        sent = []
        for invitee_id in dict.fromkeys(str(i) for i in invitee_ids):
            message = signal_message(
                meeting_id, sender_id, INVITE, to=invitee_id,
                media_type=media_type, now=now
            )
            self._send(meeting_channel(meeting_id), message)
            self._send(user_channel(invitee_id), message)
            sent.append(message)

        logger.info(f"Meeting {meeting_id}: {sender_id} invited {len(sent)} user(s) to a {media_type} call")
        return sent

    def accept(self, meeting_id, sender_id, now=None):
        message = signal_message(meeting_id, sender_id, ACCEPT, now=now)
        self._send(meeting_channel(meeting_id), message)
        return message

    def reject(self, meeting_id, sender_id, now=None):
        message = signal_message(meeting_id, sender_id, REJECT, now=now)
        self._send(meeting_channel(meeting_id), message)
        return message

    def cancel(self, meeting_id, sender_id, to_user_ids=None, now=None):
        """
        End the meeting for everyone on the meeting channel, and notify the
        listed users on their personal channels.
        """
        recipients = list(dict.fromkeys(str(u) for u in (to_user_ids or [])))
        message = signal_message(meeting_id, sender_id, CANCEL, to=recipients, now=now)
        self._send(meeting_channel(meeting_id), message)
        for user_id in recipients:
            self._send(user_channel(user_id), message)

        logger.info(f"Meeting {meeting_id} cancelled by {sender_id}")
        return message


class MeetingSession:
    """
    Initiator-side view of a meeting: a scoped subscription to the meeting
    channel that collects who accepted, who declined and whether the
    meeting was cancelled.
    """

    def __init__(self, meeting_id, initiator_id, broker=None):
        self.meeting_id = str(meeting_id)
        self.initiator_id = str(initiator_id)
        self.broker = broker or get_broker()
        self.participants = []
        self.declined = []
        self.cancelled = False
        self._subscription = None

    def open(self):
        if self._subscription is None:
            self._subscription = self.broker.subscribe(meeting_channel(self.meeting_id)).open()
        return self

    def close(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def is_open(self):
        return self._subscription is not None

    def handle(self, message):
        if message.get('meetingId') != self.meeting_id:
            return
        sender = message.get('from')
        kind = message.get('kind')

        if kind == ACCEPT and sender != self.initiator_id and sender not in self.participants:
            self.participants.append(sender)
        elif kind == REJECT and sender not in self.declined:
            self.declined.append(sender)
        elif kind == CANCEL:
            self.cancelled = True

    def poll(self, timeout=0):
        """
        Apply every message waiting on the channel. Returns the messages read.
        """
        if self._subscription is None:
            raise RuntimeError(f"Meeting session {self.meeting_id} is not open")

        received = []
        message = self._subscription.get(timeout=timeout)
        while message is not None:
            self.handle(message)
            received.append(message)
            message = self._subscription.get(timeout=0)
        return received


def public_base_url(request=None):
    """``PUBLIC_BASE_URL`` when configured, otherwise the request's origin."""
    base = getattr(settings, 'PUBLIC_BASE_URL', '') or ''
    if not base and request is not None:
        base = request.build_absolute_uri('/')
    return base.rstrip('/')


def build_join_link(meeting_id, media_type, base_url):
    query = urlencode({'meetingId': meeting_id, 'type': media_type})
    return f"{base_url.rstrip('/')}/login?{query}"


def build_share_url(join_link, media_type, topic=''):
    """Pre-filled messaging-service link carrying the invite text."""
    title = f"Topic: {topic}\n" if topic else ''
    text = f"{title}Meeting Invite ({media_type}):\n{join_link}"
    share_base = getattr(settings, 'MEETING_SHARE_URL', 'https://wa.me/')
    return f"{share_base}?text={quote(text, safe='')}"
