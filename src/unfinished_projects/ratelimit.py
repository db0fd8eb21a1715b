"""요청 한도 관리 모듈.

모든 한도 상태는 서비스 객체가 소유하며, 시간은 주입된 ``Clock``으로만 읽는다.
"""

import asyncio
import logging
import time
from datetime import UTC, date, datetime

from unfinished_projects.models import UsageStats

logger = logging.getLogger(__name__)


class Clock:
    """실제 시간을 사용하는 시계."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)


class WindowCounter:
    """고정 길이 윈도우 안의 호출 수를 센다.

    마지막 리셋 이후 윈도우 길이가 지나면 카운터를 0으로 되돌린다.
    """

    def __init__(self, limit: int, window: float, clock: Clock | None = None) -> None:
        """
        Args:
            limit: 윈도우당 최대 호출 수
            window: 윈도우 길이 (초)
            clock: 시계. None이면 실제 시간 사용.
        """
        self.limit = limit
        self.window = window
        self.clock = clock or Clock()
        self.count = 0
        self._reset_at = self.clock.monotonic()

    def _roll(self) -> None:
        now = self.clock.monotonic()
        if now - self._reset_at >= self.window:
            self.count = 0
            self._reset_at = now

    @property
    def remaining(self) -> int:
        self._roll()
        return max(0, self.limit - self.count)

    @property
    def seconds_until_reset(self) -> float:
        return max(0.0, self.window - (self.clock.monotonic() - self._reset_at))

    def allow(self) -> bool:
        """호출이 가능한지 확인한다 (카운트하지 않음)."""
        return self.remaining > 0

    def record(self) -> None:
        self._roll()
        self.count += 1


class QuotaTracker:
    """분당/일일 요청 한도를 함께 관리한다.

    분 윈도우는 마지막 리셋 시점부터 60초, 일 윈도우는 날짜가 바뀔 때 리셋된다.
    """

    def __init__(
        self,
        per_minute: int,
        per_day: int,
        clock: Clock | None = None,
        name: str = "AI API",
    ) -> None:
        self.clock = clock or Clock()
        self.name = name
        self.minute = WindowCounter(per_minute, 60.0, self.clock)
        self.max_daily = per_day
        self.daily_count = 0
        self._day: date = self.clock.now().date()

    def _roll_day(self) -> None:
        today = self.clock.now().date()
        if today != self._day:
            self.daily_count = 0
            self._day = today
            logger.info(f"{self.name} 일일 카운터가 리셋되었습니다")

    @property
    def remaining_daily(self) -> int:
        self._roll_day()
        return max(0, self.max_daily - self.daily_count)

    def daily_exhausted(self) -> bool:
        return self.remaining_daily == 0

    def minute_exhausted(self) -> bool:
        return not self.minute.allow()

    def can_proceed(self) -> bool:
        """요청을 보내도 되는지 확인한다. 거절 시 네트워크 요청을 하지 않아야 한다."""
        if self.daily_exhausted():
            logger.warning(
                f"{self.name} 일일 한도 도달 ({self.daily_count}/{self.max_daily})"
            )
            return False
        if self.minute_exhausted():
            wait = self.minute.seconds_until_reset
            logger.warning(f"{self.name} 분당 한도 도달. {wait:.0f}초 대기 필요")
            return False
        return True

    def record(self) -> None:
        self._roll_day()
        self.minute.record()
        self.daily_count += 1

    def stats(self) -> UsageStats:
        self._roll_day()
        return UsageStats(
            minute_requests=self.minute.limit - self.minute.remaining,
            max_minute_requests=self.minute.limit,
            daily_requests=self.daily_count,
            max_daily_requests=self.max_daily,
        )


class Throttle:
    """호출 간 최소 간격을 보장한다."""

    def __init__(self, min_interval: float, clock: Clock | None = None) -> None:
        self.min_interval = min_interval
        self.clock = clock or Clock()
        self._last: float | None = None

    async def wait(self) -> None:
        if self._last is not None:
            elapsed = self.clock.monotonic() - self._last
            await self.clock.sleep(self.min_interval - elapsed)
        self._last = self.clock.monotonic()
