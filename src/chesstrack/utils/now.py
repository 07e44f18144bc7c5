from datetime import UTC, datetime


class Now:
    @staticmethod
    def as_datetime() -> datetime:
        """Return the current UTC time as a datetime object."""

        return datetime.now(UTC)

    @staticmethod
    def as_utc(dt: datetime) -> datetime:
        """Convert a datetime object to UTC timezone.

        Naive values are assumed to already be UTC, which is how the DuckDB
        store writes them.
        """

        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)

    @staticmethod
    def to_utc(dt: datetime | None) -> datetime | None:
        """Like ``as_utc`` but passes None through."""

        if dt is None:
            return None
        return Now.as_utc(dt)

    @staticmethod
    def to_naive_utc(dt: datetime | None) -> datetime | None:
        """Return a naive UTC datetime suitable for TIMESTAMP columns."""

        converted = Now.to_utc(dt)
        if converted is None:
            return None
        return converted.replace(tzinfo=None)

    @staticmethod
    def to_milliseconds(dt: datetime) -> int:
        """Return the epoch milliseconds for a datetime, assuming UTC when naive."""

        return int(Now.as_utc(dt).timestamp() * 1000)
