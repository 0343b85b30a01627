"""
Finance Desk - Django settings
==============================

Every deploy-specific value comes from the environment. Ledger policy
values (LEDGER_*) are read by the lending app with getattr(settings, ...)
so they can be overridden here or in a local settings module.
"""

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-finance-desk-dev-key')

DEBUG = os.environ.get('DEBUG', '0') == '1'

ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'cloudinary',

    'lending',
]


MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]


ROOT_URLCONF = 'finance_desk.urls'


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


WSGI_APPLICATION = 'finance_desk.wsgi.application'


# Postgres in production, SQLite file for local bookkeeping
if os.environ.get('DB_ENGINE', 'sqlite') == 'postgresql':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ.get('DB_NAME', 'finance_desk'),
            'USER': os.environ.get('DB_USER', 'finance'),
            'PASSWORD': os.environ.get('DB_PASS', ''),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', '5432'),
            'ATOMIC_REQUESTS': False,
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.environ.get('DB_NAME', str(BASE_DIR / 'finance.db')),
        }
    }


DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-in'
TIME_ZONE = os.environ.get('TIME_ZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# =============================================================================
# CLOUDINARY (auction photo / signature evidence)
# =============================================================================

CLOUDINARY_URL = os.environ.get('CLOUDINARY_URL', '')


# =============================================================================
# LEDGER POLICY
# =============================================================================

# Default number of installments per period unit when no explicit
# installment is given at loan creation
LEDGER_DEFAULT_PERIODS = {
    'weekly': 10,
    'daily': 10,
    'monthly': 5,
}

# Dotted path of the callable that delivers receipts: fn(phone, message, link)
LEDGER_RECEIPT_SENDER = os.environ.get(
    'LEDGER_RECEIPT_SENDER', 'lending.utils.receipts.log_receipt'
)
LEDGER_RECEIPT_LANGUAGE = os.environ.get('LEDGER_RECEIPT_LANGUAGE', 'english')
LEDGER_RECEIPT_SIGNATURE = os.environ.get('LEDGER_RECEIPT_SIGNATURE', 'Om Sai Murugan')
LEDGER_RECEIPT_SIGNATURE_TAMIL = os.environ.get('LEDGER_RECEIPT_SIGNATURE_TAMIL', 'ஓம் சாய் முருகன்')
LEDGER_RECEIPT_QUICK_NOTE = os.environ.get('LEDGER_RECEIPT_QUICK_NOTE', '')


# =============================================================================
# LOGGING
# =============================================================================

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'lending': {
            'handlers': ['console'],
            'level': os.environ.get('LEDGER_LOG_LEVEL', 'INFO'),
            'propagate': True,
        },
    },
}
