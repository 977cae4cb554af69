"""
FieldPilot project package

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from .celery import app as celery_app

__all__ = ('celery_app',)
