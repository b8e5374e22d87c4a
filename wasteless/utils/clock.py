"""
Injectable clock so pricing code never reads the wall clock directly
"""
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from typing import Union


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Local wall-clock time; expiry dates are local calendar dates"""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """Test clock pinned to one instant. ``advance`` moves it forward."""

    def __init__(self, current: Union[datetime, date]):
        if not isinstance(current, datetime):
            current = datetime(current.year, current.month, current.day)
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = current

    def advance(self, delta: timedelta) -> None:
        self._current = self._current + delta
