"""
Django settings for healthlog project.

Everything deployment-specific comes from the environment (or a .env file)
through python-decouple. The storage backend is picked from whichever
credentials are present: a relational connection URL wins over Airtable, and
with neither the site runs in a read-only "not configured" state.
"""
from pathlib import Path
from urllib.parse import parse_qsl, unquote, urlparse

from decouple import Csv, config

BASE_DIR = Path(__file__).resolve().parent.parent


SECRET_KEY = config('SECRET_KEY', default='django-insecure-healthlog-dev-key')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1', cast=Csv())


INSTALLED_APPS = [
    'django.contrib.staticfiles',
    'rest_framework',
    'logbook',
    'journal',
    'databrowser',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'healthlog.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
            ],
        },
    },
]

WSGI_APPLICATION = 'healthlog.wsgi.application'


# Database
# The first non-empty variable wins, same order as the hosting providers set them.
RELATIONAL_URL_KEYS = (
    'POSTGRES_URL',
    'POSTGRES_URL_NON_POOLING',
    'POSTGRES_PRISMA_URL',
    'DATABASE_URL',
    'NEON_DATABASE_URL',
)


def database_from_url(url):
    """Turn a postgres:// or sqlite:// URL into a DATABASES entry."""
    parsed = urlparse(url)
    scheme = parsed.scheme.split('+')[0]

    if scheme == 'sqlite':
        name = unquote(parsed.path[1:] if parsed.path.startswith('//') else parsed.path.lstrip('/'))
        return {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': name or ':memory:',
        }

    if scheme in ('postgres', 'postgresql', 'pgsql'):
        options = dict(parse_qsl(parsed.query))
        return {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': unquote(parsed.path.lstrip('/')),
            'USER': unquote(parsed.username or ''),
            'PASSWORD': unquote(parsed.password or ''),
            'HOST': parsed.hostname or '',
            'PORT': str(parsed.port or ''),
            'OPTIONS': options,
            'CONN_MAX_AGE': config('DB_CONN_MAX_AGE', default=60, cast=int),
        }

    raise ValueError(f"Unsupported database URL scheme: {parsed.scheme}")


RELATIONAL_DATABASE_URL = next(
    (v for v in (config(k, default='') for k in RELATIONAL_URL_KEYS) if v),
    '',
)

DATABASES = {'default': database_from_url(RELATIONAL_DATABASE_URL)} if RELATIONAL_DATABASE_URL else {}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Airtable
AIRTABLE_API_KEY = config('AIRTABLE_API_KEY', default='')
AIRTABLE_BASE_ID = config('AIRTABLE_BASE_ID', default='')
AIRTABLE_API_BASE = config('AIRTABLE_API_BASE', default='https://api.airtable.com/v0')
AIRTABLE_TIMEOUT = config('AIRTABLE_TIMEOUT', default=10, cast=float)
AIRTABLE_TABLES = {
    'days': config('AIRTABLE_TABLE_DAYS', default='Days'),
    'weight': config('AIRTABLE_TABLE_WEIGHT', default='WeightLogs'),
    'sleep': config('AIRTABLE_TABLE_SLEEP', default='SleepLogs'),
    'meal': config('AIRTABLE_TABLE_MEAL', default='MealLogs'),
    'workout': config('AIRTABLE_TABLE_WORKOUT', default='WorkoutLogs'),
    'journal': config('AIRTABLE_TABLE_JOURNAL', default='Journal'),
}


# Owner / time
OWNER_KEY = config('OWNER_KEY', default='default')
APP_TZ = config('APP_TZ', default='Asia/Tokyo')


# AI assist
OPENAI_API_KEY = config('OPENAI_API_KEY', default='')
OPENAI_MODEL = config('OPENAI_MODEL', default='gpt-4o-mini')
AI_ASSIST_TIMEOUT = config('AI_ASSIST_TIMEOUT', default=15, cast=float)


# Admin data browser (protection is off when unset)
ADMIN_TOKEN = config('ADMIN_TOKEN', default='')


# Cache
# Tag versions live in the cache itself, so every worker process must share
# one backend. locmem is only correct with a single process.
def cache_from_url(url):
    """Turn a locmem://, file://, db:// or redis:// URL into a CACHES entry."""
    parsed = urlparse(url)
    scheme = parsed.scheme

    if scheme in ('', 'locmem'):
        return {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': parsed.netloc or 'healthlog',
        }

    if scheme == 'file':
        return {
            'BACKEND': 'django.core.cache.backends.filebased.FileBasedCache',
            'LOCATION': unquote(parsed.path),
        }

    # Table is created by `manage.py createcachetable`.
    if scheme == 'db':
        return {
            'BACKEND': 'django.core.cache.backends.db.DatabaseCache',
            'LOCATION': parsed.netloc or 'healthlog_cache',
        }

    if scheme in ('redis', 'rediss'):
        return {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': url,
        }

    raise ValueError(f"Unsupported cache URL scheme: {parsed.scheme}")


CACHES = {'default': cache_from_url(config('CACHE_URL', default='locmem://healthlog'))}
CACHE_TIMEOUT = config('CACHE_TIMEOUT', default=3600, cast=int)


REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'UNAUTHENTICATED_USER': None,
}


# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True


STATIC_URL = 'static/'


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'logbook': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'journal': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'databrowser': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
    },
}
