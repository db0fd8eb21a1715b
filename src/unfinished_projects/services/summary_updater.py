"""Gemini 기반 프로젝트 요약 업데이트 서비스."""

import logging
import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from google import genai
from google.genai import errors

from unfinished_projects.admin import require_admin
from unfinished_projects.config import settings
from unfinished_projects.errors import StorageNotConfiguredError, UnfinishedProjectsError
from unfinished_projects.keys import ApiKeyPool
from unfinished_projects.logbuffer import SUCCESS
from unfinished_projects.models import (
    Project,
    ProjectSummary,
    SummaryUpdateResult,
    SummaryUpdaterStatus,
)
from unfinished_projects.ratelimit import Clock, QuotaTracker
from unfinished_projects.storage.projects import ProjectRepository

logger = logging.getLogger(__name__)

STATS_KEY = "system/summary-updater-stats"
MAX_KEY_ROTATIONS = 5
MIN_UPDATE_AGE = timedelta(days=7)
README_EXCERPT_CHARS = 4000

SUMMARY_CATEGORIES = (
    "web-development",
    "mobile-app",
    "cli-tool",
    "api",
    "game",
    "data-science",
    "machine-learning",
    "devtools",
    "library",
    "prototype",
    "other",
)

_SECTION_PATTERN = re.compile(
    r"^\s*(KOREAN SUMMARY|ENGLISH SUMMARY|FEATURES|TECHNICAL|CATEGORIES):", re.MULTILINE
)
_QUOTA_HINTS = ("quota", "rate limit", "credit", "exceeded", "limit")

ClientFactory = Callable[[str], Any]


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _default_client_factory(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


def is_quota_error(error: Exception) -> bool:
    """쿼터/크레딧 한도 관련 오류인지 판단한다."""
    if isinstance(error, errors.APIError) and error.code == 429:
        return True
    message = str(error).lower()
    return any(hint in message for hint in _QUOTA_HINTS)


def parse_summary(text: str) -> ProjectSummary:
    """섹션 제목으로 나뉜 응답을 파싱한다. 없는 섹션은 빈 값으로 둔다."""
    sections: dict[str, str] = {}
    matches = list(_SECTION_PATTERN.finditer(text))
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        sections[match.group(1)] = text[match.end() : end].strip()

    features = [
        line.strip().lstrip("-*•").strip()
        for line in sections.get("FEATURES", "").splitlines()
        if line.strip()
    ]
    categories = []
    for item in re.split(r"[,\n]", sections.get("CATEGORIES", "")):
        category = item.strip().strip("\"'[]").lower()
        if category in SUMMARY_CATEGORIES and category not in categories:
            categories.append(category)

    return ProjectSummary(
        korean_summary=sections.get("KOREAN SUMMARY", ""),
        english_summary=sections.get("ENGLISH SUMMARY", ""),
        features=features,
        technical=sections.get("TECHNICAL", ""),
        categories=categories[:3],
        raw=text,
    )


class SummaryGenerator:
    """가장 오래 요약되지 않은 프로젝트의 요약을 새로 만든다.

    쿼터 오류가 나면 다음 API 키로 바꾸고 재시도 횟수를 처음부터 다시 센다.
    """

    def __init__(
        self,
        repository: ProjectRepository | None,
        *,
        key_pool: ApiKeyPool | None = None,
        client_factory: ClientFactory | None = None,
        quota: QuotaTracker | None = None,
        clock: Clock | None = None,
        model: str | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        """
        Args:
            repository: 프로젝트 저장소. None이면 즉시 실패한다.
            key_pool: API 키 풀
            client_factory: API 키로 genai 클라이언트를 만드는 함수 (테스트용 주입)
            quota: 호출 한도 추적기
            clock: 시계
            model: 요약용 모델
            max_retries: 같은 키로 재시도할 횟수
            retry_delay: 재시도 간격 (초)
        """
        if repository is None:
            raise StorageNotConfiguredError("Project store is not initialized")
        self.repository = repository
        self.clock = clock or Clock()
        self.key_pool = key_pool or ApiKeyPool(clock=self.clock)
        self.client_factory = client_factory or _default_client_factory
        self.quota = quota or QuotaTracker(
            settings.summary_max_calls_per_minute,
            settings.summary_max_calls_per_day,
            self.clock,
            name="요약 API",
        )
        self.model = model or settings.gemini_summary_model
        self.max_retries = settings.summary_max_retries if max_retries is None else max_retries
        self.retry_delay = settings.summary_retry_delay if retry_delay is None else retry_delay
        self._client: Any | None = None
        self._client_key: str | None = None

    def _client_for(self, api_key: str) -> Any:
        if self._client is None or self._client_key != api_key:
            self._client = self.client_factory(api_key)
            self._client_key = api_key
            masked = f"{api_key[:4]}...{api_key[-4:]}"
            logger.info(f"Gemini API 클라이언트 초기화됨: {masked} ({len(api_key)}자리)")
        return self._client

    def can_make_call(self) -> bool:
        """호출 가능 여부. 사용 가능한 키가 둘 이상이면 일일 한도를 넘겨도 허용한다."""
        keys = self.key_pool.stats()
        if keys.total > 0 and keys.available == 0:
            logger.warning(f"모든 API 키({keys.total}개)가 사용 불가 상태입니다.")
            return False

        if self.quota.daily_exhausted():
            logger.warning(f"일일 API 호출 한도({self.quota.max_daily}) 초과")
            if keys.available > 1:
                logger.info(f"다른 API 키를 사용할 수 있습니다({keys.available}개). 계속 진행합니다.")
                return True
            return False

        if self.quota.minute_exhausted():
            wait = self.quota.minute.seconds_until_reset
            logger.warning(f"분당 API 호출 한도 초과. {wait:.0f}초 후 재시도 가능")
            return False

        return True

    async def next_project(self) -> Project | None:
        """``lastSummaryUpdate``가 가장 오래된 프로젝트. 7일 이내에 갱신됐으면 None."""
        projects = await self.repository.get_projects()
        logger.info(f"총 {len(projects)}개의 프로젝트가 저장소에 있습니다.")
        if not projects:
            return None

        oldest = min(
            projects,
            key=lambda p: (
                p.last_summary_update is not None,
                _as_utc(p.last_summary_update) if p.last_summary_update else 0,
            ),
        )
        if oldest.last_summary_update is not None:
            age = self.clock.now() - _as_utc(oldest.last_summary_update)
            if age < MIN_UPDATE_AGE:
                logger.info(
                    f"프로젝트 {oldest.title}({oldest.id})는 최근에 업데이트됨 "
                    f"({age.total_seconds() / 86400:.1f}일 전) - 건너뜁니다."
                )
                return None

        logger.info(f"업데이트할 프로젝트를 찾았습니다: {oldest.title} (ID: {oldest.id})")
        return oldest

    def _build_prompt(self, project: Project) -> str:
        readme = project.readme_summary
        readme_text = (
            f"README Content (first {README_EXCERPT_CHARS} chars): {readme[:README_EXCERPT_CHARS]}"
            if readme
            else "No README available"
        )
        categories = ", ".join(SUMMARY_CATEGORIES)
        return f"""You are an assistant that analyzes GitHub projects and writes clear descriptions in both Korean and English.
Use the following information about a project:

Project Name: {project.title}
Current Description: {project.description or "No description available"}
Primary Language: {project.language or "Unknown"}

{readme_text}

Your task:
1. Write a concise Korean summary (2-3 sentences) that explains what this project does and why it is interesting.
2. Write a concise English summary (2-3 sentences) with the same content for international users.
3. Write a bullet list (in Korean) of 3-5 main features or purposes of this project.
4. Write a short technical overview paragraph (in Korean) highlighting the frameworks, languages, or libraries used.
5. Choose 1-3 categories from the following list: {categories}

Format the response exactly as follows:

KOREAN SUMMARY:
[한 문단 요약 (한국어)]

ENGLISH SUMMARY:
[One-paragraph summary in English]

FEATURES:
- [특징 1 (한국어)]
- [특징 2 (한국어)]
- [특징 3 (한국어)]

TECHNICAL:
[기술적 개요 (한국어)]

CATEGORIES:
[comma-separated category identifiers]"""

    async def generate(self, project: Project) -> str | None:
        """요약 텍스트를 생성한다. 모든 키와 재시도가 실패하면 None."""
        api_key = self.key_pool.current
        if api_key is None:
            logger.warning("Gemini API를 초기화할 수 없습니다: API 키가 없습니다.")
            return None

        prompt = self._build_prompt(project)
        attempt = 0
        rotations = 0
        self.quota.record()
        logger.info(f"프로젝트 {project.title} (ID: {project.id})에 대한 요약 생성 시도 중...")

        while True:
            if attempt > 0:
                logger.info(f"Gemini API 재시도 중... (시도 {attempt}/{self.max_retries})")
                await self.clock.sleep(self.retry_delay)
            try:
                response = await self._client_for(api_key).aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                )
            except (errors.APIError, httpx.HTTPError) as e:
                logger.warning(f"Gemini API 오류: {e}")
                if is_quota_error(e) and rotations < MAX_KEY_ROTATIONS:
                    logger.info(
                        f"크레딧 제한으로 인한 오류. API 키 로테이션 시도 중... "
                        f"({rotations + 1}/{MAX_KEY_ROTATIONS})"
                    )
                    next_key = self.key_pool.report_failed(api_key)
                    if next_key is None:
                        logger.error("모든 API 키가 크레딧 한도에 도달했습니다. 나중에 다시 시도하세요.")
                        return None
                    api_key = next_key
                    rotations += 1
                    attempt = 0
                    continue
                if attempt < self.max_retries:
                    attempt += 1
                    continue
                logger.error(f"재시도 한도({self.max_retries})에 도달했습니다. 요약 생성 실패.")
                return None

            text = response.text or ""
            if not text.strip():
                logger.warning(f"빈 요약 응답: {project.title}")
                return None
            logger.log(SUCCESS, f"요약 생성 성공: {project.title} ({len(text)}자)")
            return text

    async def _bump_stats(self, project: Project) -> None:
        current = await self.repository.get_record(STATS_KEY) or {}
        await self.repository.set_record(
            STATS_KEY,
            {
                **current,
                "lastSuccessfulUpdate": self.clock.now().isoformat(),
                "lastUpdatedProject": project.title,
                "lastUpdatedProjectId": project.id,
                "totalUpdates": int(current.get("totalUpdates", 0)) + 1,
            },
        )

    async def system_stats(self) -> dict[str, Any] | None:
        return await self.repository.get_record(STATS_KEY)

    async def process_single_project(self) -> SummaryUpdateResult:
        """다음 대상 프로젝트 하나의 요약을 갱신한다."""
        keys = self.key_pool.stats()
        logger.info(
            f"API 키 상태: 전체 {keys.total}개, 사용 가능 {keys.available}개, 실패 {keys.failed}개"
        )
        try:
            project = await self.next_project()
            if project is None:
                logger.info("현재 처리할 프로젝트가 없습니다.")
                return SummaryUpdateResult()

            if not self.can_make_call():
                logger.info("API 호출 제한에 도달했습니다. 작업을 건너뜁니다.")
                return SummaryUpdateResult(project_id=project.id, project_name=project.title)

            text = await self.generate(project)
            if text is None:
                logger.warning(f"프로젝트 요약 생성 실패: {project.title}")
                return SummaryUpdateResult(project_id=project.id, project_name=project.title)

            summary = parse_summary(text)
            await self.repository.update_project(
                project.id,
                enhanced_description=summary.raw,
                last_summary_update=self.clock.now(),
            )
            await self._bump_stats(project)
            logger.log(SUCCESS, f"프로젝트 요약이 성공적으로 업데이트됨: {project.title}")
            return SummaryUpdateResult(
                updated=True, project_id=project.id, project_name=project.title
            )
        except UnfinishedProjectsError as e:
            logger.error(f"프로젝트 처리 중 오류 발생: {e}")
            return SummaryUpdateResult()


class SummaryUpdater:
    """요약 생성을 한 번씩 실행하고 상태를 보고한다."""

    def __init__(self, generator: SummaryGenerator, clock: Clock | None = None) -> None:
        self.generator = generator
        self.clock = clock or generator.clock
        self.is_running = False
        self.last_run = None
        self.processed_today = 0
        self.state = "idle"
        self._day = self.clock.now().date()

    def _roll_day(self) -> None:
        today = self.clock.now().date()
        if today != self._day:
            self.processed_today = 0
            self._day = today
            logger.info(f"요약 업데이트 일일 카운터 초기화: {today}")

    async def process(self, uid: str | None = None) -> SummaryUpdateResult | None:
        """프로젝트 하나를 처리한다. 이미 실행 중이면 None."""
        require_admin(uid)
        if self.is_running:
            logger.warning("요약 업데이트가 이미 실행 중입니다.")
            return None

        self.is_running = True
        self.state = "processing"
        try:
            self._roll_day()
            result = await self.generator.process_single_project()
        except Exception:
            self.state = "error"
            raise
        else:
            self.state = "idle"
        finally:
            self.is_running = False
            self.last_run = self.clock.now()

        if result.updated:
            self.processed_today += 1
        return result

    def status(self) -> SummaryUpdaterStatus:
        self._roll_day()
        usage = self.generator.quota.stats()
        return SummaryUpdaterStatus(
            is_running=self.is_running,
            last_run=self.last_run,
            processed_today=self.processed_today,
            status=self.state,
            daily_calls=usage.daily_requests,
            minute_calls=usage.minute_requests,
        )
