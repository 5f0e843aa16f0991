import uuid
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from visitgate.config import settings
from visitgate.errors import ValidationError


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid identifier: {value}")


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def facility_local(at: datetime) -> datetime:
    """Express ``at`` on the facility wall clock.

    Naive datetimes are taken to already be facility-local.
    """
    if at.tzinfo is None:
        return at
    return at.astimezone(ZoneInfo(settings.facility_timezone))


def facility_today(at: datetime | None = None) -> date:
    return facility_local(at or utcnow()).date()


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands timezone-aware columns back naive
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def require_text(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def prepend_note(existing: str | None, note: str) -> str:
    return note if not existing else f"{note}\n{existing}"


def append_note(existing: str | None, note: str) -> str:
    return note if not existing else f"{existing}\n{note}"
