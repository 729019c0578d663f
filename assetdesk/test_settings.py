"""
Test settings for the asset management system
Overrides settings for test environment
"""
import tempfile

from .settings import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

# Use simpler password hashers for faster tests
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

# QR labels are written here
MEDIA_ROOT = tempfile.mkdtemp()

DEBUG = False

LOGGING_CONFIG = None


class DisableMigrations:
    def __contains__(self, item):
        return True

    def __getitem__(self, item):
        return None


# Build the test schema straight from the models
MIGRATION_MODULES = DisableMigrations()
