"""
Meetings Serializers

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from rest_framework import serializers

from apps.authentication.models import User
from .signaling import MEDIA_TYPES


class CreateMeetingSerializer(serializers.Serializer):
    invitee_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    media_type = serializers.ChoiceField(choices=MEDIA_TYPES, default='video')
    topic = serializers.CharField(required=False, allow_blank=True, default='', max_length=255)

    def validate_invitee_ids(self, value):
        unique_ids = list(dict.fromkeys(value))
        found = set(User.objects.filter(pk__in=unique_ids, is_active=True).values_list('id', flat=True))
        missing = [str(user_id) for user_id in unique_ids if user_id not in found]
        if missing:
            raise serializers.ValidationError(f"Users not found: {', '.join(missing)}")
        return unique_ids


class CancelMeetingSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class ShareLinkSerializer(serializers.Serializer):
    media_type = serializers.ChoiceField(choices=MEDIA_TYPES, default='video')
    topic = serializers.CharField(required=False, allow_blank=True, default='')
