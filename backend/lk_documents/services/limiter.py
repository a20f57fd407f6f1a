"""Process-wide admission limiter.

A token bucket with smooth warm-up. Stored permits accumulate while the
limiter is idle; permits above ``threshold_permits`` are dispensed more
slowly (up to ``cold_factor`` times the stable interval), so a cold service
ramps up to ``request_limit`` over ``warmup_period`` instead of taking a
full burst at once. With ``warmup_period == 0`` nothing is ever stored and
the limiter hands out exactly one permit per stable interval.

All times are in seconds as floats read from a monotonic clock.
"""
import threading
import time
from enum import Enum
from typing import Callable


class TimeUnit(str, Enum):
    NANOSECONDS = "NANOSECONDS"
    MICROSECONDS = "MICROSECONDS"
    MILLISECONDS = "MILLISECONDS"
    SECONDS = "SECONDS"
    MINUTES = "MINUTES"
    HOURS = "HOURS"
    DAYS = "DAYS"

    @property
    def seconds(self) -> float:
        return _UNIT_SECONDS[self]

    def to_seconds(self, amount: float) -> float:
        return amount * self.seconds


_UNIT_SECONDS = {
    TimeUnit.NANOSECONDS: 1e-9,
    TimeUnit.MICROSECONDS: 1e-6,
    TimeUnit.MILLISECONDS: 1e-3,
    TimeUnit.SECONDS: 1.0,
    TimeUnit.MINUTES: 60.0,
    TimeUnit.HOURS: 3600.0,
    TimeUnit.DAYS: 86400.0,
}


class AdmissionLimiter:
    def __init__(
        self,
        request_limit: int,
        warmup_period: int = 0,
        time_unit: TimeUnit = TimeUnit.SECONDS,
        *,
        cold_factor: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if request_limit <= 0:
            raise ValueError("request_limit must be positive")
        if warmup_period < 0:
            raise ValueError("warmup_period must not be negative")

        self.request_limit = request_limit
        self.warmup_period = warmup_period
        self.time_unit = TimeUnit(time_unit)
        self._clock = clock
        self._lock = threading.Lock()

        self._stable_interval = self.time_unit.seconds / request_limit
        self._cold_interval = self._stable_interval * cold_factor
        self._warmup_seconds = self.time_unit.to_seconds(warmup_period)
        self._threshold_permits = 0.5 * self._warmup_seconds / self._stable_interval
        self._max_permits = self._threshold_permits + (
            2.0 * self._warmup_seconds / (self._stable_interval + self._cold_interval)
        )
        if self._max_permits > self._threshold_permits:
            self._slope = (self._cold_interval - self._stable_interval) / (
                self._max_permits - self._threshold_permits
            )
        else:
            self._slope = 0.0

        # Start cold: a fresh process has not warmed its downstream yet.
        self._stored_permits = self._max_permits
        self._next_free = clock()

    @classmethod
    def from_settings(cls, limiter_settings, **kwargs) -> "AdmissionLimiter":
        return cls(
            request_limit=limiter_settings.request_limit,
            warmup_period=limiter_settings.warmup_period,
            time_unit=limiter_settings.time_unit,
            **kwargs,
        )

    @property
    def rate(self) -> float:
        """Steady-state permits per second."""
        return 1.0 / self._stable_interval

    @property
    def stable_interval(self) -> float:
        """Seconds between permits once warm."""
        return self._stable_interval

    @property
    def max_permits(self) -> float:
        return self._max_permits

    @property
    def stored_permits(self) -> float:
        with self._lock:
            self._resync(self._clock())
            return self._stored_permits

    def try_acquire(self) -> bool:
        """Take one permit if it is available right now. Never blocks."""
        with self._lock:
            now = self._clock()
            if self._next_free > now:
                return False
            self._reserve(now)
            return True

    def _reserve(self, now: float) -> None:
        self._resync(now)
        from_stored = min(1.0, self._stored_permits)
        fresh = 1.0 - from_stored
        wait = self._stored_permits_to_wait_time(self._stored_permits, from_stored)
        wait += fresh * self._stable_interval
        self._next_free += wait
        self._stored_permits -= from_stored

    def _resync(self, now: float) -> None:
        if now <= self._next_free:
            return
        if self._max_permits > 0:
            cool_down_interval = self._warmup_seconds / self._max_permits
            new_permits = (now - self._next_free) / cool_down_interval
            self._stored_permits = min(self._max_permits, self._stored_permits + new_permits)
        self._next_free = now

    def _stored_permits_to_wait_time(self, stored: float, to_take: float) -> float:
        above_threshold = stored - self._threshold_permits
        wait = 0.0
        if above_threshold > 0:
            take_above = min(above_threshold, to_take)
            # trapezoid under the cost line between the two permit counts
            length = self._permits_to_time(above_threshold) + self._permits_to_time(
                above_threshold - take_above
            )
            wait = take_above * length / 2.0
            to_take -= take_above
        return wait + self._stable_interval * to_take

    def _permits_to_time(self, permits: float) -> float:
        return self._stable_interval + permits * self._slope

    def __repr__(self) -> str:
        return (
            f"AdmissionLimiter(request_limit={self.request_limit}, "
            f"warmup_period={self.warmup_period}, time_unit={self.time_unit.name})"
        )
