from datetime import timedelta
from pathlib import Path

from celery.schedules import crontab
from decouple import Csv, config

# -------------------------------
# Base directories
# -------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# -------------------------------
# Security & debug
# -------------------------------
SECRET_KEY = config('SECRET_KEY', default='dev-insecure-secret-key-change-me-before-deploying')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,testserver', cast=Csv())

SESSION_COOKIE_SECURE   = config('SESSION_COOKIE_SECURE', default=False, cast=bool)
CSRF_COOKIE_SECURE      = config('CSRF_COOKIE_SECURE', default=False, cast=bool)
SECURE_SSL_REDIRECT     = config('SECURE_SSL_REDIRECT', default=False, cast=bool)
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

# -------------------------------
# CORS
# -------------------------------
CORS_ALLOW_ALL_ORIGINS = config('CORS_ALLOW_ALL_ORIGINS', default=False, cast=bool)
CORS_ALLOW_CREDENTIALS = config('CORS_ALLOW_CREDENTIALS', default=True, cast=bool)
CORS_ALLOWED_ORIGINS   = config('CORS_ALLOWED_ORIGINS', default='http://localhost:3000', cast=Csv())

# -------------------------------
# Celery
# -------------------------------
CELERY_BROKER_URL                 = config('CELERY_BROKER_URL', default='memory://')
CELERY_RESULT_BACKEND             = config('CELERY_RESULT_BACKEND', default='cache+memory://')
CELERY_TASK_ACKS_LATE             = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ALWAYS_EAGER          = config('CELERY_TASK_ALWAYS_EAGER', default=False, cast=bool)
CELERY_ACCEPT_CONTENT             = ["json"]
CELERY_TASK_SERIALIZER            = "json"
CELERY_TASK_QUEUES = {
    "default":     {"exchange": "default",     "routing_key": "default"},
    "dead_letter": {"exchange": "dead_letter", "routing_key": "dead_letter"},
    "quota_sync":  {"exchange": "quota_sync",  "routing_key": "quota_sync"},
}
CELERY_TASK_DEFAULT_QUEUE = 'default'
CELERY_TASK_ROUTES = {
    "quota_tracker_api.tasks.execute_quota_sync_for_clinic": {"queue": "quota_sync"},
}

# --- CELERY BEAT ---
CELERY_BEAT_SCHEDULER = 'django_celery_beat.schedulers:DatabaseScheduler'

CELERY_BEAT_SCHEDULE = {
    # Fans out one sync per clinic whose SyncControl is due.
    'schedule-due-quota-syncs': {
        'task': 'quota_tracker_api.tasks.schedule_due_quota_syncs',
        'schedule': crontab(minute='*/15'),
    },
}

# -------------------------------
# Redis (cache + per-clinic sync lock)
# -------------------------------
REDIS_URL = config('REDIS_URL', default='')

if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "quota-tracker",
        }
    }

# -------------------------------
# Quota reconciliation
# -------------------------------
QUOTA_DEFAULT_WC          = config('QUOTA_DEFAULT_WC', default=8, cast=int)
QUOTA_DEFAULT_EPC         = config('QUOTA_DEFAULT_EPC', default=5, cast=int)
QUOTA_DEFAULT_WC_TAGS     = config('QUOTA_DEFAULT_WC_TAGS', default='WC', cast=Csv())
QUOTA_DEFAULT_EPC_TAGS    = config('QUOTA_DEFAULT_EPC_TAGS', default='EPC', cast=Csv())
QUOTA_SYNC_INTERVAL_HOURS = config('QUOTA_SYNC_INTERVAL_HOURS', default=6, cast=int)
QUOTA_SYNC_LOCK_TTL       = config('QUOTA_SYNC_LOCK_TTL', default=30 * 60, cast=int)

# -------------------------------
# JWT
# -------------------------------
JWT_SECRET     = config('JWT_SECRET', default=SECRET_KEY)
JWT_ALGORITHM  = config('JWT_ALGORITHM', default='HS256')
JWT_EXPIRES_IN = config('JWT_EXPIRES_IN', default=int(timedelta(hours=12).total_seconds()), cast=int)

# -------------------------------
# Apps, Middleware, URLs
# -------------------------------
INSTALLED_APPS = [
    'corsheaders',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'drf_yasg',
    'django_prometheus',
    'django_celery_beat',
    'quota_tracker_api.apps.QuotaTrackerConfig',
    'plugins.django_interface.apps.DjangoInterfaceConfig',
]

MIDDLEWARE = [
    'django_prometheus.middleware.PrometheusBeforeMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django_prometheus.middleware.PrometheusAfterMiddleware',
]

ROOT_URLCONF = 'quota_tracker_api.urls'
WSGI_APPLICATION = 'quota_tracker_api.wsgi.application'
ASGI_APPLICATION = 'quota_tracker_api.asgi.application'

# -------------------------------
# Templates
# -------------------------------
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

# -------------------------------
# REST Framework
# -------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "quota_core.adapters.security.jwt_authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "UNAUTHENTICATED_USER": None,
}
SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Bearer': {
            'type': 'apiKey', 'name': 'Authorization', 'in': 'header'
        }
    },
}

# -------------------------------
# Database
# -------------------------------
if config('DB_NAME', default=''):
    DATABASES = {
        'default': {
            'ENGINE':   'django.db.backends.postgresql',
            'NAME':     config('DB_NAME'),
            'USER':     config('DB_USER', default='postgres'),
            'PASSWORD': config('DB_PASS', default=''),
            'HOST':     config('DB_HOST', default='localhost'),
            'PORT':     config('DB_PORT', default='5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME':   BASE_DIR / 'quota_tracker.sqlite3',
        }
    }

# -------------------------------
# Internationalisation
# -------------------------------
LANGUAGE_CODE = 'en-au'
TIME_ZONE     = 'Australia/Sydney'
USE_I18N      = True
USE_TZ        = True

# -------------------------------
# Static files
# -------------------------------
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
