"""Gemini API 키 로테이션."""

import logging
from datetime import date

from unfinished_projects.config import settings
from unfinished_projects.models import KeyPoolStats
from unfinished_projects.ratelimit import Clock

logger = logging.getLogger(__name__)

MAX_KEYS = 6


class ApiKeyPool:
    """여러 API 키를 돌려 쓴다.

    쿼터 오류가 난 키는 그날 동안 실패로 표시하고 다음 키로 넘어간다.
    날짜가 바뀌면 실패 표시를 초기화한다.
    """

    def __init__(self, keys: list[str] | None = None, clock: Clock | None = None) -> None:
        self.clock = clock or Clock()
        self.keys = (settings.gemini_api_keys if keys is None else keys)[:MAX_KEYS]
        self.current_index = 0
        self.failed: set[str] = set()
        self._day: date = self.clock.now().date()

        if not self.keys:
            logger.warning("사용 가능한 Gemini API 키가 없습니다!")
        else:
            logger.info(f"총 {len(self.keys)}개의 Gemini API 키가 로드되었습니다.")

    def _roll_day(self) -> None:
        today = self.clock.now().date()
        if today != self._day:
            self._day = today
            self.reset_failed()

    @property
    def current(self) -> str | None:
        self._roll_day()
        if not self.keys:
            return None
        return self.keys[self.current_index]

    def report_failed(self, key: str) -> str | None:
        """실패한 키를 기록하고 다음 사용 가능한 키를 반환한다.

        Returns:
            새 키 또는 모든 키가 실패했으면 None
        """
        self._roll_day()
        self.failed.add(key)
        if not self.keys:
            return None

        start = self.current_index
        for step in range(1, len(self.keys) + 1):
            index = (start + step) % len(self.keys)
            if self.keys[index] not in self.failed:
                self.current_index = index
                logger.info(f"Gemini API 키 로테이션: 키 #{start + 1}에서 키 #{index + 1}로 전환합니다.")
                return self.keys[index]

        logger.error("모든 Gemini API 키가 실패했습니다. 나중에 다시 시도하세요.")
        return None

    def reset_failed(self) -> None:
        self.failed.clear()
        logger.info("API 키 실패 상태가 초기화되었습니다.")

    def stats(self) -> KeyPoolStats:
        self._roll_day()
        failed = len(self.failed & set(self.keys))
        return KeyPoolStats(total=len(self.keys), failed=failed, available=len(self.keys) - failed)

    def masked_keys(self) -> list[str]:
        """앞 6자와 뒤 4자만 남기고 가린 키 목록."""
        masked = []
        for key in self.keys:
            prefix = key[:6]
            suffix = key[-4:] if len(key) > 10 else ""
            masked.append(f"{prefix}{'*' * (len(key) - len(prefix) - len(suffix))}{suffix}")
        return masked
