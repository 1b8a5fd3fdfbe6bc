import os
import sys
from decimal import Decimal

import dj_database_url
import environ

# Initialize Sentry
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
env = environ.Env()
env_file = os.path.join(BASE_DIR, ".env")
environ.Env.read_env(env_file)

PROJECT_NAME = "BountyFlow"
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))

SECRET_KEY = env("SECRET_KEY", default="bountyflow-insecure-development-key")

DEBUG = env.bool("DEBUG", default=False)
TESTING = sys.argv[1:2] == ["test"] or "pytest" in sys.modules

ALLOWED_HOSTS = [
    "127.0.0.1",
    "localhost",
    "0.0.0.0",
    "testserver",
]
ALLOWED_HOSTS.extend(host for host in os.environ.get("ALLOWED_HOSTS", "").split(",") if host)

INSTALLED_APPS = (
    "django.contrib.contenttypes",
    "bounties",
)

MIDDLEWARE = (
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
)

ROOT_URLCONF = "bountyflow.urls"
WSGI_APPLICATION = "bountyflow.wsgi.application"

TEMPLATES = []

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.path.join(BASE_DIR, "db.sqlite3"),
    }
}

db_from_env = dj_database_url.config(conn_max_age=0)
if db_from_env:
    DATABASES["default"] = db_from_env

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

# Fetch the Sentry DSN from environment variables
SENTRY_DSN = os.environ.get("SENTRY_DSN")

if SENTRY_DSN and not TESTING:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration()],
        send_default_pii=False,
        traces_sample_rate=1.0 if DEBUG else 0.2,
        environment="development" if DEBUG else "production",
        release=os.environ.get("HEROKU_RELEASE_VERSION", "local"),
    )

# GitHub collaborator
GITHUB_TOKEN = env("GITHUB_TOKEN", default="")
GITHUB_API_URL = env("GITHUB_API_URL", default="https://api.github.com")
GITHUB_WEBHOOK_SECRET = env("GITHUB_WEBHOOK_SECRET", default="")

# Shared secret for the claim and protection endpoints
BOUNTYFLOW_API_TOKEN = env("BOUNTYFLOW_API_TOKEN", default="")

SITE_URL = env("SITE_URL", default="http://localhost:3000")

# Payment collaborator
COINBASE_API_URL = env("COINBASE_API_URL", default="https://api.coinbase.com")
COINBASE_API_VERSION = env("COINBASE_API_VERSION", default="2023-05-15")
PAYOUT_CURRENCY = env("PAYOUT_CURRENCY", default="USDC")
BANK_PAYOUT_CURRENCY = "USD"
# Stablecoins are counted 1:1 with USD when summing a funding source balance
SUPPORTED_BALANCE_CURRENCIES = ("USD", "USDC", "USDT")

# Every external call is bounded; health probes use the shorter budget
EXTERNAL_CALL_TIMEOUT = env.float("EXTERNAL_CALL_TIMEOUT", default=10.0)
HEALTH_CHECK_TIMEOUT = env.float("HEALTH_CHECK_TIMEOUT", default=5.0)

# Pause between matched bounties of one merge event (GitHub rate limits)
MERGE_EVENT_BOUNTY_DELAY = env.float("MERGE_EVENT_BOUNTY_DELAY", default=1.0)

PLATFORM_FEE_RATE = Decimal(env("PLATFORM_FEE_RATE", default="0.025"))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {"format": "%(levelname)s %(asctime)s %(module)s %(process)d %(thread)d %(message)s"},
        "simple": {"format": "%(levelname)s %(message)s"},
    },
    "handlers": {
        "console": {
            "level": "DEBUG",
            "class": "logging.StreamHandler",
            "formatter": "verbose" if not DEBUG else "simple",
            "stream": "ext://sys.stdout",
        },
    },
    "root": {
        "level": "INFO",
        "handlers": ["console"],
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "bounties": {
            "handlers": ["console"],
            "level": "DEBUG",
            "propagate": False,
        },
    },
}

if TESTING:
    MERGE_EVENT_BOUNTY_DELAY = 0
    LOGGING["loggers"]["bounties"]["level"] = "WARNING"
