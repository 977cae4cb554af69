"""
FieldPilot Test Settings

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import tempfile

from .settings_dev import *  # noqa: F401,F403

SECRET_KEY = 'django-insecure-test-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

MEDIA_ROOT = tempfile.mkdtemp(prefix='fieldpilot-test-media-')

PUBLIC_BASE_URL = 'https://app.fieldpilot.test'

REALTIME_BROKER = {
    'BACKEND': 'apps.realtime.brokers.InProcessBroker',
    'OPTIONS': {},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
        'level': 'WARNING',
    },
}
