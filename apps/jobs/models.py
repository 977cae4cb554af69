"""
Jobs Models

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import re
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from apps.core.models import AuditMixin, UUIDPrimaryKeyMixin


JOB_NUMBER_PREFIX = 'JOB'
JOB_CATEGORIES = [
    ('DA', 'DA'),
    ('AL', 'AL'),
    ('TB', 'TB'),
]


def compose_job_number(category, manual_id):
    """
    Build a category-prefixed job number from a manually entered id.

    Only the digits of ``manual_id`` are kept and padded to three places,
    so ``('DA', '7')`` and ``('DA', 'no. 007')`` both give ``'DA-007'``.
    """
    if category not in dict(JOB_CATEGORIES):
        raise ValidationError({'category': f"Unknown job category '{category}'"})

    digits = re.sub(r'\D', '', str(manual_id or ''))
    if not digits:
        raise ValidationError({'job_number': 'Job id must contain at least one digit'})

    return f"{category}-{int(digits):03d}"


class Job(UUIDPrimaryKeyMixin, AuditMixin):
    """
    Customer work order. Tasks may reference a job.
    """
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('on_hold', 'On Hold'),
        ('cancelled', 'Cancelled'),
    ]

    job_number = models.CharField(max_length=20, unique=True)
    category = models.CharField(max_length=2, choices=JOB_CATEGORIES, blank=True)
    customer_name = models.CharField(max_length=255)
    contact_number = models.CharField(max_length=50, blank=True)
    sales_person = models.CharField(max_length=255, blank=True)
    start_date = models.DateField()
    completion_date = models.DateField()
    contractor_name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')

    class Meta:
        db_table = 'jobs'
        verbose_name = 'Job'
        verbose_name_plural = 'Jobs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_jobs_status'),
            models.Index(fields=['customer_name'], name='idx_jobs_customer_name'),
        ]

    def __str__(self):
        return f"{self.job_number} - {self.customer_name}"

    @classmethod
    def generate_next_number(cls):
        """
        Next ``JOB-NNN`` number, one past the highest numeric suffix in use.
        """
        highest = 0
        numbers = cls.objects.filter(
            job_number__startswith=f"{JOB_NUMBER_PREFIX}-"
        ).values_list('job_number', flat=True)
        for number in numbers:
            suffix = number[len(JOB_NUMBER_PREFIX) + 1:]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{JOB_NUMBER_PREFIX}-{highest + 1:03d}"

    def clean(self):
        super().clean()
        if self.start_date and self.completion_date and self.completion_date < self.start_date:
            raise ValidationError({'completion_date': 'Completion date cannot be before start date'})

    def save(self, *args, **kwargs):
        if not self.job_number:
            self.job_number = self.generate_next_number()
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def materials_total(self):
        total = self.materials.aggregate(total=models.Sum('amount'))['total']
        return total or Decimal('0.00')


class JobMaterial(UUIDPrimaryKeyMixin):
    """
    Material issued against a job. ``amount`` is always quantity times rate.
    """
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='materials')
    name = models.CharField(max_length=255)
    date = models.DateField()
    description = models.TextField(blank=True)
    quantity = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))]
    )
    rate = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))]
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2, editable=False, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'job_materials'
        verbose_name = 'Job Material'
        verbose_name_plural = 'Job Materials'
        ordering = ['date', 'created_at']
        indexes = [
            models.Index(fields=['job'], name='idx_job_materials_job_id'),
        ]

    def __str__(self):
        return f"{self.name} ({self.quantity} x {self.rate})"

    def save(self, *args, **kwargs):
        self.amount = (Decimal(str(self.quantity)) * Decimal(str(self.rate))).quantize(Decimal('0.01'))
        self.full_clean()
        super().save(*args, **kwargs)
