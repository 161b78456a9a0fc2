"""Wall-clock source injected into services."""

from collections.abc import Callable
from datetime import datetime, tzinfo

Clock = Callable[[], datetime]


def system_clock(tz: tzinfo | None = None) -> Clock:
    """Clock reading the current local time in ``tz`` (host timezone when None)."""

    def now() -> datetime:
        if tz is None:
            return datetime.now().astimezone()
        return datetime.now(tz)

    return now
