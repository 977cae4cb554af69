"""
Celery Application

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings_dev')

app = Celery('fieldpilot')

# CELERY_* settings from Django
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Forwarding overdue planned tasks is triggered by an administrator and
# has no entry here.
app.conf.beat_schedule = {
    'activate-planned-tasks': {
        'task': 'apps.tasks.tasks.activate_planned_tasks',
        'schedule': crontab(minute='*/5'),
    },
    'auto-complete-timed-tasks': {
        'task': 'apps.tasks.tasks.auto_complete_timed_tasks',
        'schedule': crontab(minute='*'),
    },
    'expire-login-pins': {
        'task': 'apps.authentication.tasks.expire_login_pins',
        'schedule': crontab(minute='*'),
    },
}

app.conf.update(
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
)
