"""Clock protocol and implementations."""
import time
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> int: ...


def system_clock() -> int:
    return int(time.time())


class ManualClock:
    """Clock that only moves when told to; for simulations and replays."""

    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.now += seconds
