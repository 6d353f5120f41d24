# core/clock.py
from abc import ABC, abstractmethod
from datetime import datetime, date
from zoneinfo import ZoneInfo


class Clock(ABC):
    """Current-time source. Services never read system time directly."""

    @abstractmethod
    def now(self) -> datetime:
        raise NotImplementedError()

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall clock in the delivery timezone (cut-off hours are local)."""

    def __init__(self, tz_name: str = "Asia/Kolkata"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock(Clock):
    """Frozen clock for tests and replays; `advance_to` moves it explicitly."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance_to(self, current: datetime):
        self.current = current
