import os
import tempfile

from .settings import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        # file-backed so threads in transactional tests share one database
        'TEST': {'NAME': os.path.join(tempfile.gettempdir(), 'healthlog-tests.sqlite3')},
        'OPTIONS': {'timeout': 20},
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'healthlog-tests',
    }
}

RELATIONAL_DATABASE_URL = ''
OWNER_KEY = 'default'
APP_TZ = 'Asia/Tokyo'
AIRTABLE_API_KEY = ''
AIRTABLE_BASE_ID = ''
OPENAI_API_KEY = ''
ADMIN_TOKEN = ''
ALLOWED_HOSTS = ['testserver', 'localhost']

# let pytest's caplog see the app loggers
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'root': {'level': 'WARNING'},
}
