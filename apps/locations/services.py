"""
Geofence checks and task check-in/check-out

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging
import math
from collections import namedtuple
from decimal import Decimal

from django.utils import timezone

from apps.core.exceptions import BusinessValidationError, NotAssigneeError
from apps.tasks.assignments import AssignmentResolver
from apps.tasks.lifecycle import StatusTransitionHandler
from apps.tasks.models import TaskHistory, TaskStatus
from .models import TaskLocationEvent

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371000

LocationTarget = namedtuple('LocationTarget', ['latitude', 'longitude', 'radius', 'geofence', 'location'])
LocationCheck = namedtuple('LocationCheck', ['within', 'distance', 'target'])


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Great-circle distance between two points, in meters.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def is_within_radius(latitude, longitude, center_latitude, center_longitude, radius_meters):
    return haversine_distance(
        float(latitude), float(longitude), float(center_latitude), float(center_longitude)
    ) <= radius_meters


def to_coordinate(value):
    return Decimal(str(round(float(value), 8)))


class LocationService:
    """
    Resolves where a task must be done and records check-ins against it.
    """

    @staticmethod
    def targets_for(task):
        """Every place the task may be checked in at."""
        targets = []
        for location in task.locations.select_related('geofence'):
            lat, lng, radius = location.target
            targets.append(LocationTarget(lat, lng, radius, location.geofence, location))

        if task.required_latitude is not None and task.required_longitude is not None:
            targets.append(LocationTarget(
                float(task.required_latitude),
                float(task.required_longitude),
                task.required_radius_meters,
                None,
                None
            ))
        return targets

    @classmethod
    def check_position(cls, task, latitude, longitude):
        """
        Nearest target and whether the position is inside it. A task with
        no targets accepts any position.
        """
        best = None
        for target in cls.targets_for(task):
            distance = haversine_distance(float(latitude), float(longitude), target.latitude, target.longitude)
            check = LocationCheck(distance <= target.radius, distance, target)
            if check.within:
                return check
            if best is None or distance < best.distance:
                best = check

        return best or LocationCheck(True, None, None)

    @classmethod
    def _record(cls, task, user, event_type, latitude, longitude, check, notes, now):
        return TaskLocationEvent.objects.create(
            task=task,
            user=user,
            event_type=event_type,
            latitude=to_coordinate(latitude),
            longitude=to_coordinate(longitude),
            geofence=check.target.geofence if check.target else None,
            distance_meters=round(check.distance, 2) if check.distance is not None else None,
            notes=notes or '',
            timestamp=now
        )

    @classmethod
    def check_in(cls, task, user, latitude, longitude, notes='', now=None):
        """
        Record a check-in. Outside the task area on a location-based task a
        boundary violation is recorded and the check-in is refused. With
        ``auto_check_in`` a Not Started task is started.
        """
        now = now or timezone.now()
        if not AssignmentResolver.is_assignee(task, user):
            raise NotAssigneeError()

        check = cls.check_position(task, latitude, longitude)
        arrival_required = task.location_based and (
            check.target is None or check.target.location is None or check.target.location.arrival_required
        )
        if arrival_required and not check.within:
            cls._record(task, user, 'boundary_violation', latitude, longitude, check, notes, now)
            logger.warning(f"Check-in for task {task.pk} by {user.email} refused at {check.distance:.0f} m")
            raise BusinessValidationError(
                f"You are {check.distance:.0f} m from the task location (allowed {check.target.radius} m)",
                code='OUTSIDE_GEOFENCE',
                details={'distance_meters': round(check.distance, 2), 'radius_meters': check.target.radius}
            )

        event = cls._record(task, user, 'check_in', latitude, longitude, check, notes, now)
        TaskHistory.log_action(task, 'checked_in', user=user, details={'event_id': str(event.pk)})

        if task.auto_check_in and task.status == TaskStatus.NOT_STARTED:
            StatusTransitionHandler.transition(task, TaskStatus.IN_PROGRESS, user, now=now)

        logger.info(f"{user.email} checked in to task {task.pk}")
        return event

    @classmethod
    def check_out(cls, task, user, latitude, longitude, notes='', now=None):
        """
        Record a check-out. With ``auto_check_out`` an In Progress task is paused.
        """
        now = now or timezone.now()
        if not AssignmentResolver.is_assignee(task, user):
            raise NotAssigneeError()

        check = cls.check_position(task, latitude, longitude)
        departure_required = (
            task.location_based and check.target is not None and
            check.target.location is not None and check.target.location.departure_required
        )
        if departure_required and not check.within:
            cls._record(task, user, 'boundary_violation', latitude, longitude, check, notes, now)
            raise BusinessValidationError(
                f"Check out from the task location; you are {check.distance:.0f} m away",
                code='OUTSIDE_GEOFENCE',
                details={'distance_meters': round(check.distance, 2), 'radius_meters': check.target.radius}
            )

        event = cls._record(task, user, 'check_out', latitude, longitude, check, notes, now)
        TaskHistory.log_action(task, 'checked_out', user=user, details={'event_id': str(event.pk)})

        if task.auto_check_out and task.status == TaskStatus.IN_PROGRESS:
            StatusTransitionHandler.transition(task, TaskStatus.PAUSED, user, now=now)

        logger.info(f"{user.email} checked out of task {task.pk}")
        return event

    @staticmethod
    def attendance_for(task, user=None):
        """First check-in and last check-out of a task, optionally for one user."""
        events = task.location_events.filter(event_type__in=['check_in', 'check_out'])
        if user is not None:
            events = events.filter(user=user)

        check_in = events.filter(event_type='check_in').order_by('timestamp').first()
        check_out = events.filter(event_type='check_out').order_by('-timestamp').first()
        return check_in, check_out
