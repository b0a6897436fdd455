"""
Django settings for the OrderEase backend.

Everything deployment-specific is read from ORDEREASE_* environment variables.
"""

import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    return os.environ.get(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('ORDEREASE_SECRET_KEY', 'django-insecure-orderease-dev-key-change-me')

DEBUG = env_bool('ORDEREASE_DEBUG', False)

ALLOWED_HOSTS = [h for h in os.environ.get('ORDEREASE_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]


INSTALLED_APPS = [
    'daphne',
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'channels',

    'orderease.apps.accounts',
    'orderease.apps.restaurants',
    'orderease.apps.menu',
    'orderease.apps.tables',
    'orderease.apps.taxes',
    'orderease.apps.customers',
    'orderease.apps.orders',
    'orderease.apps.pos',
    'orderease.apps.realtime',
    'orderease.apps.inventory',
    'orderease.apps.public',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'orderease.urls'

ASGI_APPLICATION = 'orderease.asgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('ORDEREASE_DB_NAME', 'orderease_db'),
        'USER': os.environ.get('ORDEREASE_DB_USER', 'orderease_user'),
        'PASSWORD': os.environ.get('ORDEREASE_DB_PASSWORD', 'orderease_password'),
        'HOST': os.environ.get('ORDEREASE_DB_HOST', 'localhost'),
        'PORT': os.environ.get('ORDEREASE_DB_PORT', '5432'),
    }
}

AUTH_USER_MODEL = 'accounts.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('ORDEREASE_TIME_ZONE', 'UTC')
USE_I18N = False
USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
        'orderease.utils.permissions.HasResourcePermission',
    ),
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
    ),
    'EXCEPTION_HANDLER': 'orderease.utils.exceptions.custom_exception_handler',
    'UNAUTHENTICATED_USER': None,
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=int(os.environ.get('ORDEREASE_JWT_ACCESS_MINUTES', '60'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(os.environ.get('ORDEREASE_JWT_REFRESH_DAYS', '7'))),
    'AUTH_HEADER_TYPES': ('Bearer',),
}

# Single-process deployment: room membership never leaves the process.
CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels.layers.InMemoryChannelLayer',
    },
}

# Orders placed without an explicit tax row fall back to this rate.
ORDEREASE_GENERATED_TAX_PERCENTAGE = float(os.environ.get('ORDEREASE_GENERATED_TAX_PERCENTAGE', '10'))

# Wastage of at least this quantity is pushed to the POS as a critical alert.
ORDEREASE_WASTAGE_ALERT_MIN_QTY = float(os.environ.get('ORDEREASE_WASTAGE_ALERT_MIN_QTY', '5'))
