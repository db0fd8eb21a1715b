"""프로젝트 설명 자동 업데이트 서비스."""

import asyncio
import logging
import re
from typing import Literal

from unfinished_projects.admin import require_admin
from unfinished_projects.analyzers import GeminiAnalyzer
from unfinished_projects.config import settings
from unfinished_projects.errors import UnfinishedProjectsError
from unfinished_projects.logbuffer import SUCCESS
from unfinished_projects.models import DescriptionUpdaterStatus, Project
from unfinished_projects.ratelimit import Clock
from unfinished_projects.storage.fallback import ConnectionStatus
from unfinished_projects.storage.projects import ProjectRepository

logger = logging.getLogger(__name__)

Language = Literal["korean", "english"]

_MARKERS = {"korean": "한국어", "english": "영어"}
_PATTERNS = {
    "korean": re.compile(r"---한국어---(.*?)(?:---영어---|$)", re.DOTALL),
    "english": re.compile(r"---영어---(.*)$", re.DOTALL),
}
README_EXCERPT_CHARS = 3000


def extract_description(response: str, language: Language) -> str | None:
    """응답에서 ``---한국어---`` / ``---영어---`` 구분자 뒤의 설명을 꺼낸다."""
    match = _PATTERNS[language].search(response)
    if not match:
        return None
    return match.group(1).strip() or None


class DescriptionUpdater:
    """AI로 기존 프로젝트의 한국어/영어 설명을 만든다.

    ``start()``는 즉시 한 번 실행한 뒤 ``interval``초마다 반복한다.
    원격 저장소에 연결되지 않은 동안에는 실행을 건너뛴다.
    """

    def __init__(
        self,
        repository: ProjectRepository,
        ai: GeminiAnalyzer,
        clock: Clock | None = None,
        interval: float | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.repository = repository
        self.ai = ai
        self.clock = clock or Clock()
        self.interval = interval or settings.description_update_interval
        self.batch_size = batch_size or settings.description_update_batch

        self.is_running = False
        self.last_run_time = None
        self.processed_count = 0
        self.success_count = 0
        self.failure_count = 0
        self._task: asyncio.Task | None = None

    async def start(self, uid: str | None = None) -> None:
        require_admin(uid)
        if self.is_running:
            logger.warning("프로젝트 설명 업데이트 서비스가 이미 실행 중입니다.")
            return

        logger.info("프로젝트 설명 자동 업데이트 서비스 시작")
        self.is_running = True
        await self.tick()
        self._task = asyncio.create_task(self._loop())

    async def _loop(self) -> None:
        while self.is_running:
            await self.clock.sleep(self.interval)
            if not self.is_running:
                break
            await self.tick()

    async def stop(self) -> None:
        self.is_running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("프로젝트 설명 자동 업데이트 서비스 중지")

    def status(self) -> DescriptionUpdaterStatus:
        return DescriptionUpdaterStatus(
            is_running=self.is_running,
            last_run_time=self.last_run_time,
            processed_count=self.processed_count,
            success_count=self.success_count,
            failure_count=self.failure_count,
        )

    async def _ensure_connected(self) -> bool:
        if self.repository.connection_status != ConnectionStatus.connected:
            await self.repository.store.refresh_connection()
        return self.repository.connection_status == ConnectionStatus.connected

    async def tick(self) -> None:
        """업데이트가 필요한 프로젝트를 찾아 ``batch_size``개만 처리한다."""
        self.last_run_time = self.clock.now()
        logger.info("프로젝트 설명 업데이트 작업 시작")

        if not await self._ensure_connected():
            logger.warning("원격 저장소 연결이 끊어져 있어 프로젝트 설명 업데이트를 건너뜁니다.")
            return

        try:
            projects = await self.repository.get_projects()
        except UnfinishedProjectsError as e:
            logger.error(f"업데이트가 필요한 프로젝트 찾기 실패: {e}")
            return

        pending = [
            project
            for project in projects
            if not project.is_description_updated or project.last_description_update is None
        ]
        if not pending:
            logger.info("업데이트가 필요한 프로젝트가 없습니다.")
            return

        logger.info(f"{len(pending)}개의 프로젝트 설명 업데이트 필요")
        self.processed_count = 0
        self.success_count = 0
        self.failure_count = 0

        for project in pending[: self.batch_size]:
            self.processed_count += 1
            if await self._update(project):
                self.success_count += 1
            else:
                self.failure_count += 1

        logger.info(
            f"업데이트 결과: 총 {self.processed_count}개 중 "
            f"{self.success_count}개 성공, {self.failure_count}개 실패"
        )

    async def update_project(self, project_id: str) -> bool:
        """지정한 프로젝트 하나의 설명을 업데이트한다."""
        project = await self.repository.get_project(project_id)
        if project is None:
            logger.warning(f"프로젝트를 찾을 수 없습니다: {project_id}")
            return False
        return await self._update(project)

    def _build_prompt(self, project: Project, language: Language) -> str:
        marker = _MARKERS[language]
        context = project.readme_summary[:README_EXCERPT_CHARS]
        return f"""다음 프로젝트에 대한 설명을 {marker}로 작성해주세요.

프로젝트 이름: {project.title}
기존 설명: {project.description or "(없음)"}

README 요약:
{context}

요구사항:
1. 프로젝트의 목적과 주요 기능을 명확하게 설명해주세요.
2. 기술 스택이나 사용된 라이브러리가 있다면 포함해주세요.
3. 200자 이내로 간결하게 작성해주세요.
4. 다음 형식으로 응답해주세요:
---{marker}---
(생성된 설명)"""

    async def _generate(self, project: Project, language: Language) -> str | None:
        response = await self.ai.generate_text(self._build_prompt(project, language))
        if not response:
            logger.warning("AI 응답이 없습니다.")
            return None
        description = extract_description(response, language)
        if description is None:
            logger.warning(f"AI가 {_MARKERS[language]} 설명을 올바른 형식으로 응답하지 않았습니다.")
        return description

    async def _update(self, project: Project) -> bool:
        logger.info(f"프로젝트 '{project.title}' 설명 업데이트 시작")
        now = self.clock.now()

        korean = await self._generate(project, "korean")
        english = await self._generate(project, "english")

        fields: dict = {"last_description_update_attempt": now}
        if not korean and not english:
            logger.warning(f"프로젝트 '{project.title}' 설명 생성 실패")
            await self.repository.update_project(project.id, **fields)
            return False

        fields.update(is_description_updated=True, last_description_update=now)
        if korean:
            fields["korean_description"] = korean
        if english:
            fields["english_description"] = english
        await self.repository.update_project(project.id, **fields)

        logger.log(SUCCESS, f"프로젝트 '{project.title}' 설명 업데이트 완료")
        return True
