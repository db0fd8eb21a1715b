"""Gemini 분석기 테스트."""

import json
from types import SimpleNamespace

import httpx
import pytest

from unfinished_projects.analyzers.gemini import FALLBACK_SUMMARY, GeminiAnalyzer
from unfinished_projects.config import settings
from unfinished_projects.ratelimit import QuotaTracker


class _Models:
    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict] = []

    async def generate_content(self, *, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text, parsed=None)


def _client(models: _Models) -> SimpleNamespace:
    return SimpleNamespace(aio=SimpleNamespace(models=models))


def _analyzer(models: _Models, clock, **kwargs) -> GeminiAnalyzer:
    return GeminiAnalyzer(
        "test-key",
        client=_client(models),
        clock=clock,
        model="analysis-model",
        text_model="text-model",
        **kwargs,
    )


class TestAnalyzeProject:
    """analyze_project_with_ai 테스트."""

    @pytest.mark.asyncio
    async def test_success(self, clock, make_repo) -> None:
        """응답의 TODO는 5개, 카테고리는 허용 목록으로 제한한다."""
        models = _Models(
            json.dumps(
                {
                    "summary": "할 일 관리 앱",
                    "todos": ["a", "b", "c", "d", "e", "f"],
                    "categories": ["api", "game", "blockchain"],
                }
            )
        )
        analyzer = _analyzer(models, clock)
        analysis = await analyzer.analyze_project_with_ai(make_repo(), "# README")

        assert analysis.used_ai is True
        assert analysis.summary == "할 일 관리 앱"
        assert analysis.todos == ["a", "b", "c", "d", "e"]
        assert analysis.categories == ["api", "game"]
        assert models.calls[0]["model"] == "analysis-model"
        assert "todo-app" in models.calls[0]["contents"]
        assert analyzer.usage_stats().daily_requests == 1

    @pytest.mark.asyncio
    async def test_quota_exhausted_skips_request(self, clock, make_repo) -> None:
        """한도를 넘으면 요청 없이 기본 분석을 반환한다."""
        models = _Models("{}")
        quota = QuotaTracker(per_minute=1, per_day=10, clock=clock)
        quota.record()
        analyzer = _analyzer(models, clock, quota=quota)

        analysis = await analyzer.analyze_project_with_ai(make_repo(), "")

        assert models.calls == []
        assert analysis.used_ai is False
        assert analysis.summary == FALLBACK_SUMMARY

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back(self, clock, make_repo) -> None:
        """JSON이 아닌 응답은 기본 분석으로 대체한다."""
        analysis = await _analyzer(_Models("not json"), clock).analyze_project_with_ai(
            make_repo(), ""
        )
        assert analysis.used_ai is False
        assert analysis.todos[0] == "requirements.txt 정리"
        assert len(analysis.todos) == 4

    @pytest.mark.asyncio
    async def test_network_error_falls_back(self, clock, make_repo) -> None:
        """네트워크 오류는 기본 분석으로 대체한다."""
        models = _Models(error=httpx.ConnectError("down"))
        analysis = await _analyzer(models, clock).analyze_project_with_ai(make_repo(), "")
        assert analysis.used_ai is False
        assert len(models.calls) == 1


class TestGenerateText:
    """generate_text 테스트."""

    @pytest.mark.asyncio
    async def test_returns_text(self, clock) -> None:
        """텍스트 모델로 생성한 결과를 반환한다."""
        models = _Models("생성된 텍스트")
        assert await _analyzer(models, clock).generate_text("prompt") == "생성된 텍스트"
        assert models.calls[0]["model"] == "text-model"

    @pytest.mark.asyncio
    async def test_empty_response_is_none(self, clock) -> None:
        """빈 응답은 None이다."""
        assert await _analyzer(_Models(""), clock).generate_text("prompt") is None

    @pytest.mark.asyncio
    async def test_without_client(self, clock, monkeypatch: pytest.MonkeyPatch) -> None:
        """API 키가 없으면 None을 반환한다."""
        monkeypatch.setattr(settings, "gemini_api_key", None)
        analyzer = GeminiAnalyzer(clock=clock)
        assert analyzer.client is None
        assert await analyzer.generate_text("prompt") is None
