"""
Application settings.

Every value is read from the environment (a local ``.env`` file is loaded
first), so the same code runs locally, in tests and in production.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Database connection settings
POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
POSTGRES_SERVER = os.getenv("POSTGRES_SERVER", "localhost")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")
POSTGRES_DB = os.getenv("POSTGRES_DB", "supplier_ledger")

# DATABASE_URL wins when it is set (e.g. sqlite:// for local runs and tests)
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+psycopg2://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_SERVER}:{POSTGRES_PORT}/{POSTGRES_DB}",
)

# Token settings
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))

APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Baghdad")

CORS_ALLOWED_ORIGINS = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080",
)

LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Backups
AWS_DEFAULT_REGION = os.getenv("AWS_DEFAULT_REGION", "eu-north-1")
BACKUP_S3_BUCKET = os.getenv("BACKUP_S3_BUCKET", "supplier-ledger-backups")
BACKUP_S3_PREFIX = os.getenv("BACKUP_S3_PREFIX", "backups/")

# Balance reconciliation job
RECONCILE_SCHEDULE_ENABLED = os.getenv("RECONCILE_SCHEDULE_ENABLED", "false").lower() in ("1", "true", "yes")
RECONCILE_HOUR = int(os.getenv("RECONCILE_HOUR", "23"))
