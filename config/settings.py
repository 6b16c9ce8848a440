from pathlib import Path
import os
from dotenv import load_dotenv

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


# === env ===
load_dotenv(BASE_DIR / ".env")
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
DEBUG = os.getenv("DEBUG", "True") == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost,testserver").split(",")


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'core',
    'users',
    'events',
    'tickets',
    'payments',
    'payouts',
    'favorites',
    'dashboard',
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

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'


# Database
# https://docs.djangoproject.com/en/5.2/ref/settings/#databases

DATABASES = {
    'default': {
        'ENGINE': os.getenv('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.getenv('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.getenv('DB_USER', ''),
        'PASSWORD': os.getenv('DB_PASSWORD', ''),
        'HOST': os.getenv('DB_HOST', ''),
        'PORT': os.getenv('DB_PORT', ''),
    }
}

# --- Кэш: общий Redis для нескольких инстансов, иначе память процесса ---
REDIS_URL = os.getenv('REDIS_URL', '')
if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': REDIS_URL,
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'ticketbay',
        }
    }


# Password validation
# https://docs.djangoproject.com/en/5.2/ref/settings/#auth-password-validators

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# Internationalization
# https://docs.djangoproject.com/en/5.2/topics/i18n/

MEDIA_URL = '/media/'
MEDIA_ROOT = BASE_DIR / 'media'

LANGUAGE_CODE = os.getenv('LANGUAGE_CODE', 'en-us')
TIME_ZONE = os.getenv('TIME_ZONE', 'Africa/Lagos')
USE_I18N = True
USE_TZ = True

# --- Данные сайта для писем ---
SITE_NAME = os.getenv('SITE_NAME', 'TicketBay')
SITE_URL = os.getenv('SITE_URL', 'http://localhost:8000')

# --- Email backend ---
EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')

EMAIL_HOST = os.getenv('EMAIL_HOST', 'smtp.gmail.com')
EMAIL_PORT = int(os.getenv('EMAIL_PORT', '465'))
EMAIL_HOST_USER = os.getenv('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.getenv('EMAIL_HOST_PASSWORD', '')
EMAIL_USE_SSL = os.getenv('EMAIL_USE_SSL', 'true').lower() == 'true'
EMAIL_USE_TLS = os.getenv('EMAIL_USE_TLS', 'false').lower() == 'true'  # для 587 ставьте true, а SSL -> false

DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', EMAIL_HOST_USER or 'noreply@localhost')
SERVER_EMAIL = os.getenv('SERVER_EMAIL', DEFAULT_FROM_EMAIL)

# --- Paystack ---
PAYSTACK_SECRET_KEY = os.getenv('PAYSTACK_SECRET_KEY', '')
PAYSTACK_BASE_URL = os.getenv('PAYSTACK_BASE_URL', 'https://api.paystack.co')
PAYSTACK_TIMEOUT = float(os.getenv('PAYSTACK_TIMEOUT', '20'))
PAYSTACK_CALLBACK_URL = os.getenv('PAYSTACK_CALLBACK_URL', f"{SITE_URL}/payment/callback")
DEFAULT_CURRENCY = os.getenv('DEFAULT_CURRENCY', 'NGN')

# --- Комиссии и выдача билетов ---
PLATFORM_FEE_PERCENT = os.getenv('PLATFORM_FEE_PERCENT', '7')
# допуск расхождения суммы от клиента, в копейках (kobo)
PAYMENT_AMOUNT_TOLERANCE = int(os.getenv('PAYMENT_AMOUNT_TOLERANCE', '100'))
# True: неизвестный тариф в заказе = ошибка выдачи, платёж уходит в FAILED
FULFILLMENT_STRICT_TIERS = os.getenv('FULFILLMENT_STRICT_TIERS', 'false').lower() == 'true'
CONFIRMATION_CODE_ATTEMPTS = int(os.getenv('CONFIRMATION_CODE_ATTEMPTS', '5'))
MAX_TICKETS_PER_TIER = int(os.getenv('MAX_TICKETS_PER_TIER', '10'))

# --- Ограничение частоты запросов ---
RATE_LIMITER_CLASS = os.getenv('RATE_LIMITER_CLASS', 'core.ratelimit.CacheRateLimiter')
RATE_LIMITS = {
    # scope: (лимит, окно в секундах)
    'register': (5, 15 * 60),
    'login': (10, 15 * 60),
    'resend_verification': (3, 5 * 60),
}

# подтверждение email: срок жизни ссылки
EMAIL_VERIFICATION_MAX_AGE = int(os.getenv('EMAIL_VERIFICATION_MAX_AGE', str(60 * 60 * 24)))

# --- Логирование ---
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s'},
    },
    'handlers': {'console': {'class': 'logging.StreamHandler', 'formatter': 'simple'}},
    'loggers': {
        'mail': {'handlers': ['console'], 'level': LOG_LEVEL},
        'payments': {'handlers': ['console'], 'level': LOG_LEVEL},
        'payouts': {'handlers': ['console'], 'level': LOG_LEVEL},
        'auth': {'handlers': ['console'], 'level': LOG_LEVEL},
        'events': {'handlers': ['console'], 'level': LOG_LEVEL},
    },
}


# Static files (CSS, JavaScript, Images)
# https://docs.djangoproject.com/en/5.2/howto/static-files/

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'    # для collectstatic на проде
# Default primary key field type
# https://docs.djangoproject.com/en/5.2/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# кастомный пользователь
AUTH_USER_MODEL = 'users.User'
