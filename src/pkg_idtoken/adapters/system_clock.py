from datetime import datetime, timezone


class SystemClock:
    """Clock port backed by the host's UTC wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
