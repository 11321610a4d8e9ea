"""
Django settings for the objectfs offload service.

Values come from environment variables so the same settings module
serves development, workers and tests.
"""

import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_int(name, default):
    return int(os.environ.get(name, default))


def env_bool(name, default=False):
    return os.environ.get(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-objectfs-offload-dev-key')
DEBUG = env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'contracts',
    'offload',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'core.urls'

DATABASES = {
    'default': {
        'ENGINE': os.environ.get('DATABASE_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.environ.get('DATABASE_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.environ.get('DATABASE_USER', ''),
        'PASSWORD': os.environ.get('DATABASE_PASSWORD', ''),
        'HOST': os.environ.get('DATABASE_HOST', ''),
        'PORT': os.environ.get('DATABASE_PORT', ''),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
USE_TZ = True
TIME_ZONE = 'UTC'

MEDIA_ROOT = os.environ.get('MEDIA_ROOT', str(BASE_DIR / 'media'))
MEDIA_URL = '/media/'

REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'UNAUTHENTICATED_USER': None,
}

# Offload policy
OBJECTFS_SIZE_THRESHOLD = env_int('OBJECTFS_SIZE_THRESHOLD', 10 * 1024)
OBJECTFS_MINIMUM_AGE = env_int('OBJECTFS_MINIMUM_AGE', 7 * 24 * 60 * 60)
OBJECTFS_MAX_TASK_RUNTIME = env_int('OBJECTFS_MAX_TASK_RUNTIME', 0)
OBJECTFS_ASYNC_PUSH = env_bool('OBJECTFS_ASYNC_PUSH', False)
OBJECTFS_PUSH_INTERVAL = env_int('OBJECTFS_PUSH_INTERVAL', 60 * 60)

# Stores
OBJECTFS_LOCAL_ROOT = os.environ.get('OBJECTFS_LOCAL_ROOT', MEDIA_ROOT)
OBJECTFS_REMOTE_BACKEND = os.environ.get('OBJECTFS_REMOTE_BACKEND', 'filesystem')
OBJECTFS_REMOTE_ROOT = os.environ.get('OBJECTFS_REMOTE_ROOT', str(BASE_DIR / 'data' / 'remote'))
OBJECTFS_S3_BUCKET = os.environ.get('OBJECTFS_S3_BUCKET')
OBJECTFS_S3_REGION = os.environ.get('OBJECTFS_S3_REGION')
OBJECTFS_S3_ENDPOINT_URL = os.environ.get('OBJECTFS_S3_ENDPOINT_URL')
OBJECTFS_S3_ACCESS_KEY = os.environ.get('OBJECTFS_S3_ACCESS_KEY')
OBJECTFS_S3_SECRET_KEY = os.environ.get('OBJECTFS_S3_SECRET_KEY')
OBJECTFS_S3_KEY_PREFIX = os.environ.get('OBJECTFS_S3_KEY_PREFIX', '')

# Celery
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', CELERY_BROKER_URL)
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_BEAT_SCHEDULE = {
    'offload-push-candidates': {
        'task': 'offload.tasks.push_candidates',
        'schedule': timedelta(seconds=OBJECTFS_PUSH_INTERVAL),
    },
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'offload': {
            'handlers': ['console'],
            'level': os.environ.get('OBJECTFS_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
