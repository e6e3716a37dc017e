from datetime import datetime, timezone


class Clock:
    """Source of the current instant. Always returns an aware UTC datetime."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


system_clock = Clock()
