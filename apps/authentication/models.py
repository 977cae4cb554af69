"""
Authentication Models

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import uuid
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone
from .managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model for FieldPilot.
    Administrators manage tasks and approve logins; employees work on tasks.
    """
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('employee', 'Employee'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)

    # Personal information
    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, blank=True)
    avatar_url = models.URLField(blank=True)

    # Work information
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='employee', db_index=True)
    skills = models.JSONField(default=list, blank=True)

    # Status
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    # Employees need one approved login PIN before logging in freely
    is_login_verified = models.BooleanField(default=False)

    # Timestamps
    last_login_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['full_name']

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['full_name']

    def __str__(self):
        return f"{self.full_name} ({self.email})"

    @property
    def is_admin(self):
        return self.role == 'admin'

    @property
    def requires_login_pin(self):
        """Employees must be approved by an administrator on first login."""
        return self.role != 'admin' and not self.is_login_verified


class DeletedUser(models.Model):
    """
    Archive of removed users.
    Keeps identity details so historical tasks and reports stay readable.
    """
    id = models.UUIDField(primary_key=True, editable=False)
    email = models.EmailField()
    full_name = models.CharField(max_length=200, blank=True)
    avatar_url = models.URLField(blank=True)
    role = models.CharField(max_length=20, blank=True)
    skills = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(null=True, blank=True)

    deleted_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='archived_users'
    )
    deletion_reason = models.TextField()
    deleted_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = 'Deleted User'
        verbose_name_plural = 'Deleted Users'
        ordering = ['-deleted_at']

    def __str__(self):
        return f"{self.full_name} ({self.email}) deleted {self.deleted_at:%Y-%m-%d}"


class LoginPin(models.Model):
    """
    Short-lived one-time code gating an employee login until an admin decides.
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('expired', 'Expired'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='login_pins')
    code = models.CharField(max_length=6)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()
    approved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='decided_login_pins'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    redeemed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Login PIN'
        verbose_name_plural = 'Login PINs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user'], name='idx_login_pins_user_id'),
            models.Index(fields=['status'], name='idx_login_pins_status'),
            models.Index(fields=['expires_at'], name='idx_login_pins_expires_at'),
        ]

    def __str__(self):
        return f"PIN {self.code} for {self.user.email} ({self.status})"

    def is_expired(self, now=None):
        now = now or timezone.now()
        return self.status == 'expired' or (self.status == 'pending' and self.expires_at <= now)

    def seconds_remaining(self, now=None):
        now = now or timezone.now()
        return max(int((self.expires_at - now).total_seconds()), 0)
