"""
Tasks Celery Tasks

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from celery import shared_task
import logging

from .schedule import activate_planned_tasks as activate, auto_complete_timed_tasks as auto_complete

logger = logging.getLogger(__name__)


@shared_task
def activate_planned_tasks():
    """
    Move planned tasks to Not Started once their start date arrives.
    """
    return {'activated': activate()}


@shared_task
def auto_complete_timed_tasks():
    """
    Complete in-progress tasks that used up their allotted time.
    """
    return {'completed': auto_complete()}
