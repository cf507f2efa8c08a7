"""
Django settings for conference_portal project.

Every deployment-specific value is read from the environment (a local .env
file is loaded first when present).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# ======================
# Core
# ======================

SECRET_KEY = os.environ.get(
    'DJANGO_SECRET_KEY', 'django-insecure-change-me-in-production')

DEBUG = env_bool('DJANGO_DEBUG', False)

ALLOWED_HOSTS = [
    host.strip() for host in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')
    if host.strip()
]

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'django.contrib.humanize',

    'core',
    'users',
    'events',
    'registrations',
    'payments',
    'badges',
    'abstracts',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'users.middlewares.backend_session_middleware.BackendSessionMiddleware',
]

ROOT_URLCONF = 'conference_portal.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'conference_portal.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DJANGO_DB_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'conference-portal',
    }
}

SESSION_ENGINE = 'django.contrib.sessions.backends.db'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('DJANGO_TIME_ZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

MEDIA_URL = '/media/'
MEDIA_ROOT = Path(os.environ.get('DJANGO_MEDIA_ROOT', BASE_DIR / 'media'))

LOGIN_URL = 'login'

# ======================
# Conference backend
# ======================

BACKEND_API_BASE_URL = os.environ.get(
    'BACKEND_API_BASE_URL', 'http://localhost:5000').rstrip('/')
BACKEND_API_TIMEOUT = float(os.environ.get('BACKEND_API_TIMEOUT', '15'))

EVENT_CACHE_SECONDS = int(os.environ.get('EVENT_CACHE_SECONDS', '600'))

# Default upload cap when a field does not declare its own
UPLOAD_DEFAULT_MAX_MB = int(os.environ.get('UPLOAD_DEFAULT_MAX_MB', '5'))

# Pending uploads of abandoned drafts older than this are pruned
PENDING_UPLOAD_MAX_AGE_HOURS = int(os.environ.get('PENDING_UPLOAD_MAX_AGE_HOURS', '48'))

# ======================
# Payment gateway
# ======================

PAYMENT_GATEWAY_SCRIPT_URL = os.environ.get(
    'PAYMENT_GATEWAY_SCRIPT_URL', 'https://checkout.razorpay.com/v1/checkout.js')
PAYMENT_KEY_ID = os.environ.get('PAYMENT_KEY_ID', '')
PAYMENT_MERCHANT_NAME = os.environ.get(
    'PAYMENT_MERCHANT_NAME', 'Event Registration')
PAYMENT_DEFAULT_CURRENCY = os.environ.get('PAYMENT_DEFAULT_CURRENCY', 'INR')
PAYMENT_THEME_COLOR = os.environ.get('PAYMENT_THEME_COLOR', '#00509E')

# ======================
# Logging
# ======================

LOG_LEVEL = os.environ.get('DJANGO_LOG_LEVEL', 'INFO')

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
        'django': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'core': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'users': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'events': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'registrations': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'payments': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'badges': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'abstracts': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
    },
}
