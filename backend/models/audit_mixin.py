from sqlalchemy import Column, DateTime, String
from datetime import datetime
import os
import uuid
import pytz

APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Kolkata")


def local_now():
    """Current time in the configured business timezone."""
    return datetime.now(pytz.timezone(APP_TIMEZONE))


def new_uuid():
    return str(uuid.uuid4())


class TimestampMixin:
    """Mixin that provides created/updated timestamps and user info.

    All stock ledger tables use hard deletes; there is no soft-delete column.
    """
    # Timezone-aware timestamps stamped in the configured timezone (Asia/Kolkata by default).
    created_at = Column(DateTime(timezone=True), default=local_now)
    updated_at = Column(DateTime(timezone=True), onupdate=local_now)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
