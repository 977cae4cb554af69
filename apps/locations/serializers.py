"""
Locations Serializers

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from rest_framework import serializers

from .models import Geofence, TaskLocation, TaskLocationEvent


class GeofenceSerializer(serializers.ModelSerializer):
    """
    Serializer for geofences.
    """
    created_by_name = serializers.CharField(source='created_by.full_name', read_only=True, default=None)

    class Meta:
        model = Geofence
        fields = [
            'id', 'name', 'description', 'center_latitude', 'center_longitude',
            'radius_meters', 'is_active', 'created_by', 'created_by_name',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_by', 'created_by_name', 'created_at', 'updated_at']


class TaskLocationSerializer(serializers.ModelSerializer):
    geofence_name = serializers.CharField(source='geofence.name', read_only=True, default=None)

    class Meta:
        model = TaskLocation
        fields = [
            'id', 'task', 'geofence', 'geofence_name', 'required_latitude',
            'required_longitude', 'required_radius_meters', 'arrival_required',
            'departure_required', 'location_name', 'location_address', 'created_at'
        ]
        read_only_fields = ['id', 'task', 'geofence_name', 'created_at']

    def validate(self, attrs):
        geofence = attrs.get('geofence')
        lat = attrs.get('required_latitude')
        lng = attrs.get('required_longitude')
        if (lat is None) != (lng is None):
            raise serializers.ValidationError('Latitude and longitude must be given together.')
        if geofence is None and lat is None:
            raise serializers.ValidationError('A task location needs a geofence or coordinates.')
        return attrs


class TaskLocationEventSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.full_name', read_only=True)

    class Meta:
        model = TaskLocationEvent
        fields = [
            'id', 'task', 'user', 'user_name', 'event_type', 'latitude', 'longitude',
            'geofence', 'distance_meters', 'notes', 'timestamp'
        ]
        read_only_fields = fields


class PositionSerializer(serializers.Serializer):
    """
    Position reported by a device.
    """
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
