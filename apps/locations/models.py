"""
Locations Models

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from apps.core.models import UUIDPrimaryKeyMixin, TimestampMixin

LATITUDE_VALIDATORS = [MinValueValidator(-90), MaxValueValidator(90)]
LONGITUDE_VALIDATORS = [MinValueValidator(-180), MaxValueValidator(180)]


class Geofence(UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Named circular area used as a task location.
    """
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    center_latitude = models.DecimalField(max_digits=10, decimal_places=8, validators=LATITUDE_VALIDATORS)
    center_longitude = models.DecimalField(max_digits=11, decimal_places=8, validators=LONGITUDE_VALIDATORS)
    radius_meters = models.PositiveIntegerField(default=100, validators=[MinValueValidator(1)])
    created_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='geofences'
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'geofences'
        verbose_name = 'Geofence'
        verbose_name_plural = 'Geofences'
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active'], name='idx_geofences_active'),
            models.Index(fields=['created_by'], name='idx_geofences_created_by'),
        ]

    def __str__(self):
        return f"{self.name} ({self.radius_meters} m)"

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class TaskLocation(UUIDPrimaryKeyMixin):
    """
    A place a task must be carried out at: either a geofence or explicit
    coordinates with a radius.
    """
    task = models.ForeignKey('tasks.Task', on_delete=models.CASCADE, related_name='locations')
    geofence = models.ForeignKey(
        Geofence,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='task_locations'
    )
    required_latitude = models.DecimalField(
        max_digits=10, decimal_places=8, null=True, blank=True, validators=LATITUDE_VALIDATORS
    )
    required_longitude = models.DecimalField(
        max_digits=11, decimal_places=8, null=True, blank=True, validators=LONGITUDE_VALIDATORS
    )
    required_radius_meters = models.PositiveIntegerField(default=100)
    arrival_required = models.BooleanField(default=True)
    departure_required = models.BooleanField(default=False)
    location_name = models.CharField(max_length=255, blank=True)
    location_address = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'task_locations'
        verbose_name = 'Task Location'
        verbose_name_plural = 'Task Locations'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['task'], name='idx_task_locations_task_id'),
        ]

    def __str__(self):
        return self.location_name or (self.geofence.name if self.geofence else f"Location for {self.task_id}")

    def clean(self):
        super().clean()
        has_point = self.required_latitude is not None and self.required_longitude is not None
        if not self.geofence_id and not has_point:
            raise ValidationError('A task location needs a geofence or coordinates.')

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def target(self):
        """``(latitude, longitude, radius)`` this location resolves to."""
        if self.required_latitude is not None and self.required_longitude is not None:
            return float(self.required_latitude), float(self.required_longitude), self.required_radius_meters
        return (
            float(self.geofence.center_latitude),
            float(self.geofence.center_longitude),
            self.geofence.radius_meters,
        )


class TaskLocationEvent(UUIDPrimaryKeyMixin):
    """
    A position report tied to a task: check-in, check-out and boundary events.
    """
    EVENT_TYPE_CHOICES = [
        ('check_in', 'Check In'),
        ('check_out', 'Check Out'),
        ('arrival', 'Arrival'),
        ('departure', 'Departure'),
        ('boundary_violation', 'Boundary Violation'),
    ]

    task = models.ForeignKey('tasks.Task', on_delete=models.CASCADE, related_name='location_events')
    user = models.ForeignKey('authentication.User', on_delete=models.CASCADE, related_name='location_events')
    event_type = models.CharField(max_length=20, choices=EVENT_TYPE_CHOICES)
    latitude = models.DecimalField(max_digits=10, decimal_places=8, validators=LATITUDE_VALIDATORS)
    longitude = models.DecimalField(max_digits=11, decimal_places=8, validators=LONGITUDE_VALIDATORS)
    geofence = models.ForeignKey(
        Geofence,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='events'
    )
    distance_meters = models.FloatField(null=True, blank=True)
    notes = models.TextField(blank=True)
    timestamp = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'task_location_events'
        verbose_name = 'Task Location Event'
        verbose_name_plural = 'Task Location Events'
        ordering = ['timestamp']
        indexes = [
            models.Index(fields=['task', 'timestamp'], name='idx_location_events_task'),
            models.Index(fields=['user', 'timestamp'], name='idx_location_events_user'),
        ]

    def __str__(self):
        return f"{self.event_type} @ {self.latitude},{self.longitude}"
