"""
Meetings Views

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from django.http import StreamingHttpResponse
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from apps.core.permissions import IsAdminUser, IsEmployeeOrAdmin
from apps.core.responses import success_response, error_response
from apps.realtime.brokers import get_broker
from apps.realtime.views import stream_events
from .serializers import CreateMeetingSerializer, CancelMeetingSerializer, ShareLinkSerializer
from .signaling import (
    MeetingSignaling, build_join_link, build_share_url, create_meeting_id,
    meeting_channel, public_base_url, user_channel
)

logger = logging.getLogger(__name__)


def share_links(request, meeting_id, media_type, topic=''):
    join_link = build_join_link(meeting_id, media_type, public_base_url(request))
    return {
        'join_link': join_link,
        'share_url': build_share_url(join_link, media_type, topic),
    }


def event_stream_response(subscription):
    response = StreamingHttpResponse(stream_events(subscription), content_type='text/event-stream')
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response


@extend_schema(
    tags=['Meetings'],
    summary='Start a meeting and invite users',
    description='Creates a meeting id, sends invites over the realtime channels and '
                'returns the join link and a pre-filled share link.',
    request=CreateMeetingSerializer,
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def meeting_create(request):
    serializer = CreateMeetingSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid meeting data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    meeting_id = create_meeting_id()
    media_type = serializer.validated_data['media_type']
    invites = MeetingSignaling().invite(
        meeting_id, request.user.id, serializer.validated_data['invitee_ids'], media_type
    )

    return success_response(
        data={
            'meeting_id': meeting_id,
            'media_type': media_type,
            'invited': [invite['to'] for invite in invites],
            **share_links(request, meeting_id, media_type, serializer.validated_data['topic']),
        },
        message="Invites sent",
        status_code=status.HTTP_201_CREATED
    )


@extend_schema(tags=['Meetings'], summary='Accept a meeting invite')
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsEmployeeOrAdmin])
def meeting_accept(request, meeting_id):
    message = MeetingSignaling().accept(meeting_id, request.user.id)
    return success_response(data=message, message="Invite accepted")


@extend_schema(tags=['Meetings'], summary='Decline a meeting invite')
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsEmployeeOrAdmin])
def meeting_reject(request, meeting_id):
    message = MeetingSignaling().reject(meeting_id, request.user.id)
    return success_response(data=message, message="Invite declined")


@extend_schema(tags=['Meetings'], summary='Cancel a meeting', request=CancelMeetingSerializer)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsEmployeeOrAdmin])
def meeting_cancel(request, meeting_id):
    serializer = CancelMeetingSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid cancel request",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    message = MeetingSignaling().cancel(meeting_id, request.user.id, serializer.validated_data['user_ids'])
    return success_response(data=message, message="Meeting cancelled")


@extend_schema(
    tags=['Meetings'],
    summary='Join and share links for a meeting',
    parameters=[
        OpenApiParameter('media_type', str, description='video, audio or screen'),
        OpenApiParameter('topic', str, description='Optional topic line for the share text'),
    ],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsEmployeeOrAdmin])
def meeting_share_link(request, meeting_id):
    serializer = ShareLinkSerializer(data=request.query_params)
    if not serializer.is_valid():
        return error_response(
            message="Invalid share link request",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    media_type = serializer.validated_data['media_type']
    return success_response(data={
        'meeting_id': str(meeting_id),
        'media_type': media_type,
        **share_links(request, meeting_id, media_type, serializer.validated_data['topic']),
    })


@extend_schema(tags=['Meetings'], summary='Personal signaling stream (invites and cancels)')
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsEmployeeOrAdmin])
def meeting_inbox(request):
    subscription = get_broker().subscribe(user_channel(request.user.id)).open()
    logger.info(f"Meeting inbox opened for {request.user.email}")
    return event_stream_response(subscription)


@extend_schema(tags=['Meetings'], summary='Meeting channel stream (accepts, rejects, cancels)')
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsEmployeeOrAdmin])
def meeting_events(request, meeting_id):
    subscription = get_broker().subscribe(meeting_channel(meeting_id)).open()
    return event_stream_response(subscription)
