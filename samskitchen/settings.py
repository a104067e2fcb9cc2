"""
Django settings for the samskitchen API.

Values come from the environment (optionally a .env file at the project root).
"""
import os
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / '.env'
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


def _env_bool(name, default='False'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


def _env_list(name, fallback):
    raw = os.getenv(name, '')
    if raw.strip():
        return [u.strip() for u in raw.split(',') if u.strip()]
    return fallback


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-samskitchen-dev-key')
DEBUG = _env_bool('DEBUG')
ALLOWED_HOSTS = _env_list('ALLOWED_HOSTS', ['127.0.0.1', 'localhost', 'testserver'])

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',
    'rest_framework',
    'rest_framework.authtoken',
    'channels',
    'marketplace.apps.MarketplaceConfig',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'samskitchen.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
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

WSGI_APPLICATION = 'samskitchen.wsgi.application'
ASGI_APPLICATION = 'samskitchen.asgi.application'

DATABASES = {
    'default': dj_database_url.config(
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

AUTH_USER_MODEL = 'marketplace.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Asia/Dhaka'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Channels: single-process in-memory layer for live order tracking.
CHANNEL_LAYERS = {
    'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'},
}

CORS_ALLOWED_ORIGINS = _env_list('CORS_ALLOWED_ORIGINS', ['http://localhost:5173'])
CORS_ALLOW_CREDENTIALS = True

SECURE_SSL_REDIRECT = _env_bool('SECURE_SSL_REDIRECT')
if SECURE_SSL_REDIRECT:
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

# --- Marketplace ---

# Recipient of every admin-facing notification.
ADMIN_NOTIFICATION_EMAIL = os.getenv('ADMIN_NOTIFICATION_EMAIL', 'admin@samskitchen.local')
# Where gateway callbacks send the customer's browser afterwards.
ORDER_TRACKING_URL = os.getenv('ORDER_TRACKING_URL', 'http://localhost:5173/dashboard/myOrders')
# Public base URL of this API, used to build gateway callback URLs.
PUBLIC_API_URL = os.getenv('PUBLIC_API_URL', 'http://localhost:8000').rstrip('/')

PAYMENT_CURRENCY = os.getenv('PAYMENT_CURRENCY', 'BDT')
SSLCOMMERZ_STORE_ID = os.getenv('STORE_ID', '')
SSLCOMMERZ_STORE_PASSWORD = os.getenv('STORE_PASSWORD', '')
SSLCOMMERZ_SANDBOX = _env_bool('SSLCOMMERZ_SANDBOX', 'True')
SSLCOMMERZ_TIMEOUT = int(os.getenv('SSLCOMMERZ_TIMEOUT', '15'))
STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY', '')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '%(asctime)s %(levelname)s %(name)s: %(message)s'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'simple'},
    },
    'loggers': {
        'django': {'handlers': ['console'], 'level': 'WARNING'},
        'marketplace': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
    },
}
