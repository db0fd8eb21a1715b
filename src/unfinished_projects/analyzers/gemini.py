"""Gemini 기반 프로젝트 분석 모듈."""

import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors, types
from pydantic import BaseModel, Field, ValidationError

from unfinished_projects import heuristics
from unfinished_projects.config import settings
from unfinished_projects.logbuffer import SUCCESS
from unfinished_projects.models import AIAnalysis, GitHubRepository, UsageStats
from unfinished_projects.ratelimit import Clock, QuotaTracker

logger = logging.getLogger(__name__)

MAX_TODOS = 5
MAX_CATEGORIES = 2
README_EXCERPT_CHARS = 2000

FALLBACK_SUMMARY = "AI 분석을 사용할 수 없습니다. 기본 분석 결과입니다."

_SAFETY_SETTINGS = [
    types.SafetySetting(
        category=category,
        threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    )
    for category in (
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]


class _AnalysisResponse(BaseModel):
    """Gemini 응답용 스키마."""

    summary: str = Field(default="", description="프로젝트 요약 (200자 이내)")
    todos: list[str] = Field(default_factory=list, description="완성을 위한 작업 5개")
    categories: list[str] = Field(default_factory=list, description="카테고리 최대 2개")


def fallback_analysis(repository: GitHubRepository, readme: str) -> AIAnalysis:
    """AI를 쓸 수 없을 때의 기본 분석 결과."""
    return AIAnalysis(
        summary=FALLBACK_SUMMARY,
        todos=heuristics.language_todos(repository.language)[:MAX_TODOS],
        categories=heuristics.infer_categories(
            repository.description,
            readme,
            repository.topics,
            repository.language,
            limit=MAX_CATEGORIES,
        ),
    )


class GeminiAnalyzer:
    """Gemini로 프로젝트 요약, TODO, 카테고리를 생성한다.

    분당/일일 요청 한도를 넘으면 네트워크 요청 없이 기본 분석으로 대체한다.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: Any | None = None,
        quota: QuotaTracker | None = None,
        clock: Clock | None = None,
        model: str | None = None,
        text_model: str | None = None,
    ) -> None:
        """
        Args:
            api_key: Gemini API 키. None이면 설정값 사용.
            client: genai 클라이언트 (테스트용 주입)
            quota: 요청 한도 추적기
            clock: 시계
            model: 분석용 모델
            text_model: 텍스트 생성용 모델
        """
        self.api_key = api_key or settings.gemini_api_key
        self.client = client
        if self.client is None and self.api_key:
            self.client = genai.Client(api_key=self.api_key)
        if self.client is None:
            logger.warning("GEMINI_API_KEY가 설정되지 않았습니다. AI 기능이 제한됩니다.")

        self.quota = quota or QuotaTracker(
            settings.ai_max_requests_per_minute,
            settings.ai_max_requests_per_day,
            clock,
        )
        self.model = model or settings.gemini_analysis_model
        self.text_model = text_model or settings.gemini_text_model

    def usage_stats(self) -> UsageStats:
        return self.quota.stats()

    async def generate_text(self, prompt: str) -> str | None:
        """프롬프트로 텍스트를 생성한다. 실패하거나 한도를 넘으면 None."""
        if self.client is None:
            logger.warning("AI API 키가 설정되지 않아 텍스트 생성을 건너뜁니다.")
            return None
        if not self.quota.can_proceed():
            logger.warning("AI API 한도 초과로 텍스트 생성을 건너뜁니다.")
            return None

        self.quota.record()
        try:
            response = await self.client.aio.models.generate_content(
                model=self.text_model,
                contents=prompt,
            )
        except (errors.APIError, httpx.HTTPError) as e:
            logger.error(f"텍스트 생성 중 오류: {e}")
            return None

        return response.text or None

    def _build_prompt(self, repository: GitHubRepository, readme: str) -> str:
        categories = ", ".join(heuristics.ALLOWED_CATEGORIES)
        return f"""다음은 {repository.language or "Unknown"}로 작성된 GitHub 프로젝트입니다:

프로젝트명: {repository.name}
설명: {repository.description or "설명 없음"}
README (처음 {README_EXCERPT_CHARS}자): {readme[:README_EXCERPT_CHARS]}

다음 형식으로 JSON 응답해주세요:
{{
  "summary": "프로젝트 요약 (200자 이내)",
  "todos": ["완성을 위한 작업1", "작업2", "작업3", "작업4", "작업5"],
  "categories": ["카테고리1", "카테고리2"]
}}

카테고리는 다음 중에서 선택: {categories}"""

    def _parse(self, response: Any) -> _AnalysisResponse | None:
        parsed = getattr(response, "parsed", None)
        if isinstance(parsed, _AnalysisResponse):
            return parsed
        if not response.text:
            return None
        try:
            return _AnalysisResponse.model_validate_json(response.text)
        except ValidationError:
            return None

    async def analyze_project_with_ai(
        self, repository: GitHubRepository, readme: str
    ) -> AIAnalysis:
        """한 번의 AI 요청으로 요약, TODO, 카테고리를 생성한다."""
        if not self.quota.can_proceed():
            logger.warning("AI API 한도 초과로 기본 분석 사용")
            return fallback_analysis(repository, readme)
        if self.client is None:
            logger.warning("AI API 키가 설정되지 않아 기본 분석 사용")
            return fallback_analysis(repository, readme)

        logger.info(f"통합 AI 분석 시작: {repository.full_name}")
        self.quota.record()
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=self._build_prompt(repository, readme),
                config=types.GenerateContentConfig(
                    temperature=0.7,
                    top_k=40,
                    top_p=0.95,
                    max_output_tokens=800,
                    safety_settings=_SAFETY_SETTINGS,
                    response_mime_type="application/json",
                    response_schema=_AnalysisResponse,
                ),
            )
        except (errors.APIError, httpx.HTTPError) as e:
            logger.error(f"AI 분석 실패: {e}")
            return fallback_analysis(repository, readme)

        parsed = self._parse(response)
        if parsed is None:
            logger.warning("AI 응답 파싱 실패, 기본값 사용")
            return fallback_analysis(repository, readme)

        categories = [c for c in parsed.categories if c in heuristics.ALLOWED_CATEGORIES]
        logger.log(SUCCESS, f"통합 AI 분석 완료: {repository.full_name}")
        return AIAnalysis(
            summary=parsed.summary
            or heuristics.fallback_summary(repository.language, repository.description),
            todos=parsed.todos[:MAX_TODOS],
            categories=categories[:MAX_CATEGORIES] or [heuristics.DEFAULT_CATEGORY],
            used_ai=True,
        )
