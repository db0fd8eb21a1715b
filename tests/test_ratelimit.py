"""요청 한도 관리 테스트."""

import pytest

from unfinished_projects.ratelimit import QuotaTracker, Throttle, WindowCounter


class TestWindowCounter:
    """WindowCounter 테스트."""

    def test_blocks_after_limit(self, clock) -> None:
        """한도만큼 기록하면 더 이상 허용하지 않는다."""
        counter = WindowCounter(2, 60.0, clock)
        counter.record()
        counter.record()
        assert counter.allow() is False
        assert counter.remaining == 0

    def test_resets_after_window(self, clock) -> None:
        """윈도우 길이가 지나면 카운터가 초기화된다."""
        counter = WindowCounter(1, 60.0, clock)
        counter.record()
        clock.advance(59)
        assert counter.allow() is False
        clock.advance(1)
        assert counter.allow() is True
        assert counter.remaining == 1

    def test_seconds_until_reset(self, clock) -> None:
        """리셋까지 남은 시간을 계산한다."""
        counter = WindowCounter(1, 3600.0, clock)
        clock.advance(600)
        assert counter.seconds_until_reset == pytest.approx(3000)


class TestQuotaTracker:
    """QuotaTracker 테스트."""

    def test_minute_limit(self, clock) -> None:
        """분당 한도에 걸리면 거절하고 60초 후 다시 허용한다."""
        quota = QuotaTracker(per_minute=2, per_day=10, clock=clock)
        quota.record()
        quota.record()
        assert quota.can_proceed() is False
        clock.advance(60)
        assert quota.can_proceed() is True

    def test_daily_limit_resets_on_new_day(self, clock) -> None:
        """일일 한도는 날짜가 바뀌면 초기화된다."""
        quota = QuotaTracker(per_minute=10, per_day=2, clock=clock)
        quota.record()
        quota.record()
        assert quota.daily_exhausted() is True
        assert quota.can_proceed() is False

        clock.advance(24 * 3600)
        assert quota.remaining_daily == 2
        assert quota.can_proceed() is True

    def test_stats(self, clock) -> None:
        """사용량 통계를 반환한다."""
        quota = QuotaTracker(per_minute=8, per_day=100, clock=clock)
        quota.record()
        stats = quota.stats()
        assert stats.minute_requests == 1
        assert stats.max_minute_requests == 8
        assert stats.daily_requests == 1
        assert stats.max_daily_requests == 100


class TestThrottle:
    """Throttle 테스트."""

    @pytest.mark.asyncio
    async def test_first_call_does_not_wait(self, clock) -> None:
        """첫 호출은 대기하지 않는다."""
        throttle = Throttle(2.0, clock)
        await throttle.wait()
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_spaces_consecutive_calls(self, clock) -> None:
        """연속 호출 사이에 최소 간격만큼 대기한다."""
        throttle = Throttle(2.0, clock)
        await throttle.wait()
        await throttle.wait()
        assert clock.sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_no_wait_when_interval_elapsed(self, clock) -> None:
        """이미 간격이 지났으면 대기 시간이 0 이하이다."""
        throttle = Throttle(2.0, clock)
        await throttle.wait()
        clock.advance(5)
        before = clock.elapsed
        await throttle.wait()
        assert clock.elapsed == before
