from sqlalchemy import Column, DateTime, String
from datetime import datetime
import pytz
from config import APP_TIMEZONE


def now_local():
    return datetime.now(pytz.timezone(APP_TIMEZONE))


class TimestampMixin:
    """Mixin that provides created/updated timestamps and user info.

    Timestamps are timezone-aware and generated in APP_TIMEZONE so that
    exported reports and backups show the business's local time.
    """
    created_at = Column(DateTime(timezone=True), default=now_local)
    updated_at = Column(DateTime(timezone=True), onupdate=now_local)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
