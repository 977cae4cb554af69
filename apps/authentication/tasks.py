"""
Authentication Celery Tasks

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from celery import shared_task
import logging

from .services import LoginPinService

logger = logging.getLogger(__name__)


@shared_task
def expire_login_pins():
    """
    Mark pending login PINs past their expiry as expired.
    Runs every minute so abandoned login attempts do not linger as pending.
    """
    expired = LoginPinService.expire_old_pins()
    return {'expired': expired}
