"""API 키 로테이션 테스트."""

from unfinished_projects.keys import ApiKeyPool


class TestApiKeyPool:
    """ApiKeyPool 테스트."""

    def test_rotates_until_exhausted(self, clock) -> None:
        """실패한 키를 건너뛰고 모두 실패하면 None을 반환한다."""
        pool = ApiKeyPool(["k1", "k2", "k3"], clock)
        assert pool.current == "k1"
        assert pool.report_failed("k1") == "k2"
        assert pool.current == "k2"
        assert pool.report_failed("k2") == "k3"
        assert pool.report_failed("k3") is None

    def test_stats(self, clock) -> None:
        """전체/실패/사용 가능 키 수를 센다."""
        pool = ApiKeyPool(["k1", "k2"], clock)
        pool.report_failed("k1")
        stats = pool.stats()
        assert (stats.total, stats.failed, stats.available) == (2, 1, 1)

    def test_failed_keys_reset_on_new_day(self, clock) -> None:
        """날짜가 바뀌면 실패 표시가 초기화된다."""
        pool = ApiKeyPool(["k1", "k2"], clock)
        pool.report_failed("k1")
        pool.report_failed("k2")
        clock.advance(24 * 3600)
        assert pool.stats().available == 2

    def test_masked_keys(self, clock) -> None:
        """앞 6자와 뒤 4자만 보여준다."""
        pool = ApiKeyPool(["abcdef1234567890"], clock)
        assert pool.masked_keys() == ["abcdef******7890"]

    def test_empty_pool(self, clock) -> None:
        """키가 없으면 현재 키와 다음 키가 모두 None이다."""
        pool = ApiKeyPool([], clock)
        assert pool.current is None
        assert pool.report_failed("k1") is None
        assert pool.stats().total == 0

    def test_keeps_at_most_six_keys(self, clock) -> None:
        """최대 6개의 키만 사용한다."""
        pool = ApiKeyPool([f"k{i}" for i in range(10)], clock)
        assert len(pool.keys) == 6
