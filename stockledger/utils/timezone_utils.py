from __future__ import annotations

from datetime import date, datetime, time, timezone as dt_timezone


class TimezoneUtils:
    """UTC helpers shared by models and services."""

    @staticmethod
    def utc_now() -> datetime:
        """Return the current UTC timestamp (timezone aware)."""
        return datetime.now(dt_timezone.utc)

    @staticmethod
    def ensure_timezone_aware(
        dt: datetime | None, assume_utc: bool = True
    ) -> datetime | None:
        """Guarantee that a datetime carries timezone information."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            if not assume_utc:
                raise ValueError("Naive datetime provided without explicit timezone handling.")
            return dt.replace(tzinfo=dt_timezone.utc)
        return dt

    @staticmethod
    def to_utc(value: datetime | date | None) -> datetime | None:
        """Normalize caller supplied dates to aware UTC datetimes.

        Receipt dates drive FIFO ordering, so every stored value must share one
        offset; plain dates are taken as midnight UTC.
        """
        if value is None:
            return None
        if not isinstance(value, datetime):
            value = datetime.combine(value, time.min)
        aware = TimezoneUtils.ensure_timezone_aware(value)
        return aware.astimezone(dt_timezone.utc)
