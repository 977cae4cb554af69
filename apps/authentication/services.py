"""
Authentication Services

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging
import secrets
import time
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import LoginPinError, BusinessValidationError
from apps.realtime.brokers import get_broker, safe_publish
from .models import DeletedUser, LoginPin

logger = logging.getLogger(__name__)

DECIDED_STATUSES = ('approved', 'rejected', 'expired')


def login_pin_channel(pin_id):
    return f"login_pin:{pin_id}"


class LoginPinService:
    """
    Issue, decide and wait on login PINs.
    """

    @staticmethod
    def generate_code():
        """Six digit code, never starting with zero."""
        return str(100000 + secrets.randbelow(900000))

    @staticmethod
    def ttl_seconds():
        return getattr(settings, 'LOGIN_PIN_TTL_SECONDS', 30)

    @staticmethod
    def expire_old_pins(now=None):
        """Mark every pending PIN past its expiry as expired. Returns the count."""
        now = now or timezone.now()
        count = LoginPin.objects.filter(status='pending', expires_at__lt=now).update(status='expired')
        if count:
            logger.info(f"Expired {count} login PIN(s)")
        return count

    @classmethod
    def create_pin(cls, user, ttl_seconds=None, now=None):
        now = now or timezone.now()
        cls.expire_old_pins(now=now)

        ttl = ttl_seconds if ttl_seconds is not None else cls.ttl_seconds()
        pin = LoginPin.objects.create(
            user=user,
            code=cls.generate_code(),
            status='pending',
            created_at=now,
            expires_at=now + timedelta(seconds=ttl),
        )
        logger.info(f"Login PIN issued for {user.email}, expires at {pin.expires_at.isoformat()}")
        return pin

    @classmethod
    def approve(cls, pin, admin, now=None):
        pin = cls._decide(pin, 'approved', admin, now)
        pin.user.is_login_verified = True
        pin.user.save(update_fields=['is_login_verified', 'updated_at'])
        return pin

    @classmethod
    def reject(cls, pin, admin, now=None):
        return cls._decide(pin, 'rejected', admin, now)

    @staticmethod
    def redeem_seconds():
        return getattr(settings, 'LOGIN_PIN_REDEEM_SECONDS', 300)

    @classmethod
    def redeem(cls, pin, now=None):
        """
        Consume an approved PIN so tokens are issued for it exactly once,
        and only within the redemption window after approval.
        """
        now = now or timezone.now()
        redeemed = LoginPin.objects.filter(
            pk=pin.pk,
            status='approved',
            redeemed_at__isnull=True,
            approved_at__gte=now - timedelta(seconds=cls.redeem_seconds()),
        ).update(redeemed_at=now)

        pin.refresh_from_db()
        if not redeemed:
            if pin.redeemed_at:
                raise LoginPinError("Login PIN has already been used", code="LOGIN_PIN_USED")
            raise LoginPinError("Login PIN approval has lapsed, please log in again", code="LOGIN_PIN_LAPSED")

        logger.info(f"Login PIN {pin.id} redeemed by {pin.user.email}")
        return pin

    @staticmethod
    def get_latest_for_user(user):
        return LoginPin.objects.filter(user=user).order_by('-created_at').first()

    @classmethod
    def wait_for_decision(cls, pin, timeout=None, broker=None, now=None):
        """
        Block until the PIN is approved or rejected, or until it expires.

        The wait is bounded by `timeout` seconds when given, otherwise by the
        time left before `expires_at`. If the wait runs out while the PIN is
        still pending it is marked expired. Returns the final status.
        """
        now = now or timezone.now()
        broker = broker or get_broker()
        remaining = timeout if timeout is not None else pin.seconds_remaining(now)

        with broker.subscribe(login_pin_channel(pin.id)) as subscription:
            pin.refresh_from_db()
            if pin.status != 'pending':
                return pin.status

            deadline = time.monotonic() + remaining
            while True:
                left = deadline - time.monotonic()
                if left <= 0:
                    break
                message = subscription.get(timeout=left)
                if message and message.get('status') in DECIDED_STATUSES:
                    pin.refresh_from_db()
                    if pin.status != 'pending':
                        return pin.status

        expired = LoginPin.objects.filter(pk=pin.pk, status='pending').update(status='expired')
        pin.refresh_from_db()
        if expired:
            safe_publish(login_pin_channel(pin.id), {'id': str(pin.id), 'status': pin.status}, broker=broker)
            logger.info(f"Login PIN {pin.id} timed out waiting for approval")
        return pin.status

    @classmethod
    def _decide(cls, pin, decision, admin, now=None):
        now = now or timezone.now()
        updated = LoginPin.objects.filter(
            pk=pin.pk,
            status='pending',
            expires_at__gt=now,
        ).update(status=decision, approved_by=admin, approved_at=now)

        pin.refresh_from_db()
        if not updated:
            if pin.status == 'pending':
                LoginPin.objects.filter(pk=pin.pk, status='pending').update(status='expired')
                pin.refresh_from_db()
            raise LoginPinError(f"Login PIN is already {pin.status}")

        safe_publish(login_pin_channel(pin.id), {'id': str(pin.id), 'status': pin.status})
        logger.info(f"Login PIN {pin.id} for {pin.user.email} {decision} by {admin.email}")
        return pin


class UserArchiveService:
    """
    Remove users while keeping an archived copy of their identity.
    """

    @staticmethod
    def archive(user, deleted_by, reason, now=None):
        reason = (reason or '').strip()
        if not reason:
            raise BusinessValidationError("A deletion reason is required")
        if deleted_by is not None and user.pk == deleted_by.pk:
            raise BusinessValidationError("You cannot delete your own account")

        with transaction.atomic():
            archived = DeletedUser.objects.create(
                id=user.id,
                email=user.email,
                full_name=user.full_name,
                avatar_url=user.avatar_url,
                role=user.role,
                skills=list(user.skills or []),
                created_at=user.created_at,
                deleted_by=deleted_by,
                deletion_reason=reason,
                deleted_at=now or timezone.now(),
            )
            user.delete()

        logger.info(f"User {archived.email} archived by {deleted_by.email if deleted_by else 'system'}")
        return archived
