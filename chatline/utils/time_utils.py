"""UTC timestamp helpers shared by the API and realtime layers."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


def isoformat_z(value: datetime) -> str:
    """
    Render a datetime as ISO 8601 UTC with a 'Z' suffix.

    Naive values are taken to be UTC already (SQLite drops the tzinfo).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_z() -> str:
    """Return current UTC time in ISO 8601 format with 'Z' suffix."""
    return isoformat_z(utc_now())
