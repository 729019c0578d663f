"""
Django settings for the assetdesk project.

Deployment values come from environment variables; application constants
live under ``ASSETDESK``.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    return os.environ.get(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-change-me')
DEBUG = env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = [host for host in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if host]

SITE_DOMAIN = os.environ.get('SITE_DOMAIN', 'localhost:8000')
USE_HTTPS = env_bool('USE_HTTPS', False)


# Application definition

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'crispy_forms',
    'crispy_bootstrap5',

    'core.apps.CoreConfig',
    'users.apps.UsersConfig',
    'assets.apps.AssetsConfig',
    'maintenance.apps.MaintenanceConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'core.middleware.CompanyMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'assetdesk.urls'

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

WSGI_APPLICATION = 'assetdesk.wsgi.application'


# Database

DB_ENGINE = os.environ.get('DB_ENGINE', 'django.db.backends.postgresql')

if DB_ENGINE == 'django.db.backends.sqlite3':
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.environ.get('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.environ.get('DB_NAME', 'assetdesk'),
            'USER': os.environ.get('DB_USER', 'postgres'),
            'PASSWORD': os.environ.get('DB_PASSWORD', ''),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', '5432'),
            'OPTIONS': {},
        }
    }
    if os.environ.get('DB_SCHEMA'):
        DATABASES['default']['OPTIONS']['options'] = f"-c search_path={os.environ['DB_SCHEMA']},public"


AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LOGIN_URL = 'login'
LOGIN_REDIRECT_URL = 'assets:dashboard'
LOGOUT_REDIRECT_URL = 'landing'


# Internationalization

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('TIME_ZONE', 'Asia/Manila')
USE_I18N = True
USE_TZ = True


# Static and media files

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
MEDIA_URL = '/media/'
MEDIA_ROOT = BASE_DIR / 'media'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

CRISPY_ALLOWED_TEMPLATE_PACKS = 'bootstrap5'
CRISPY_TEMPLATE_PACK = 'bootstrap5'

EMAIL_BACKEND = os.environ.get('EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend')


# Logging

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
LOG_DIR = Path(os.environ.get('LOG_DIR', BASE_DIR / 'logs'))
LOG_DIR.mkdir(parents=True, exist_ok=True)

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
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOG_DIR / 'assetdesk.log',
            'maxBytes': 5 * 1024 * 1024,
            'backupCount': 5,
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'django.request': {
            'handlers': ['console', 'file'],
            'level': 'WARNING',
            'propagate': False,
        },
        'core': {'handlers': ['console', 'file'], 'level': LOG_LEVEL, 'propagate': False},
        'users': {'handlers': ['console', 'file'], 'level': LOG_LEVEL, 'propagate': False},
        'assets': {'handlers': ['console', 'file'], 'level': LOG_LEVEL, 'propagate': False},
        'maintenance': {'handlers': ['console', 'file'], 'level': LOG_LEVEL, 'propagate': False},
    },
}


# Application constants

ASSETDESK = {
    'DEPLOYMENT_APPROVER_ROLES': ['SUPER_ADMIN', 'ADMIN', 'ACCOUNTING', 'FINANCE', 'MANAGER'],
    'DEPLOYMENT_APPROVE_PERMISSIONS': ['deployments:approve', 'admin:full_access'],
    'EOL_NOTIFICATION_ROLES': ['SUPER_ADMIN', 'ADMIN', 'ASSET_MANAGER'],
    'RETIREMENT_THRESHOLDS': {
        'RETIRE_DEPRECIATION_PERCENT': 95,
        'RETIRE_AGE_YEARS': 10,
        'MAINTAIN_DEPRECIATION_PERCENT': 80,
        'MAINTAIN_AGE_YEARS': 7,
        'EOL_WARNING_AGE_YEARS': 8,
        'WARRANTY_LOOKBACK_DAYS': 30,
    },
    'DEFAULT_PAGE_SIZE': 25,
}
