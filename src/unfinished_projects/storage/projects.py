"""프로젝트와 북마크 저장소."""

import logging
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import ValidationError

from unfinished_projects.logbuffer import SUCCESS
from unfinished_projects.models import Project
from unfinished_projects.ratelimit import Clock
from unfinished_projects.storage.fallback import ConnectionStatus, PreferRemoteStore

logger = logging.getLogger(__name__)

PROJECTS_PREFIX = "projects/"
INTERACTIONS_PREFIX = "interactions/"

InteractionType = Literal["view", "bookmark", "fork"]


def _bookmarks_prefix(user_id: str) -> str:
    return f"users/{user_id}/bookmarks/"


class ProjectRepository:
    """프로젝트 레코드를 읽고 쓴다.

    경로 규칙:
        - ``projects/{id}``
        - ``users/{uid}/bookmarks/{projectId}``
        - ``interactions/{uuid}``
    """

    def __init__(self, store: PreferRemoteStore, clock: Clock | None = None) -> None:
        self.store = store
        self.clock = clock or Clock()

    @property
    def connection_status(self) -> ConnectionStatus:
        return self.store.status

    def _to_project(self, key: str, value: Any) -> Project | None:
        project_id = key.removeprefix(PROJECTS_PREFIX)
        if not isinstance(value, dict):
            return None
        try:
            return Project.model_validate({**value, "id": project_id})
        except ValidationError as e:
            logger.warning(f"잘못된 프로젝트 레코드 무시: {project_id} ({e.error_count()}개 오류)")
            return None

    async def get_projects(self) -> list[Project]:
        records = await self.store.list(PROJECTS_PREFIX)
        projects = []
        for key, value in records.items():
            project = self._to_project(key, value)
            if project is not None:
                projects.append(project)
        return projects

    async def get_project_ids(self) -> set[str]:
        records = await self.store.list(PROJECTS_PREFIX)
        return {key.removeprefix(PROJECTS_PREFIX) for key in records}

    async def get_project(self, project_id: str) -> Project | None:
        value = await self.store.get(f"{PROJECTS_PREFIX}{project_id}")
        if value is None:
            return None
        return self._to_project(f"{PROJECTS_PREFIX}{project_id}", value)

    async def save_project(self, project: Project, added_by: str = "system") -> Project:
        """프로젝트를 저장한다. 총점은 세부 점수 합계로 다시 맞춘다."""
        cleaned = project.model_copy(
            update={
                "score": project.score_breakdown.total(),
                "todos": project.todos[:8],
                "categories": project.categories[:3],
                "updated_at": self.clock.now(),
                "added_by": project.added_by or added_by,
            }
        )
        await self.store.set(f"{PROJECTS_PREFIX}{cleaned.id}", cleaned.to_record())
        logger.log(SUCCESS, f"프로젝트 저장 완료: {cleaned.title}")
        return cleaned

    async def update_project(self, project_id: str, **fields: Any) -> Project | None:
        """일부 필드만 갱신한다. 프로젝트가 없으면 None."""
        project = await self.get_project(project_id)
        if project is None:
            return None
        updated = Project.model_validate({**project.model_dump(), **fields})
        return await self.save_project(updated)

    async def increment_view(self, project_id: str) -> None:
        if self.store.status == ConnectionStatus.disconnected:
            return
        project = await self.get_project(project_id)
        if project is None:
            return
        await self.update_project(project_id, views=project.views + 1)

    async def search_projects(self, query: str) -> list[Project]:
        needle = query.strip().lower()
        projects = await self.get_projects()
        if not needle:
            return projects
        return [
            project
            for project in projects
            if needle in project.title.lower()
            or needle in project.description.lower()
            or needle in project.language.lower()
            or any(needle in topic.lower() for topic in project.topics)
            or any(needle in category.lower() for category in project.categories)
        ]

    async def get_user_bookmarks(self, user_id: str) -> list[str]:
        prefix = _bookmarks_prefix(user_id)
        records = await self.store.list(prefix)
        return [key.removeprefix(prefix) for key, value in records.items() if value]

    async def add_bookmark(self, user_id: str, project_id: str) -> None:
        await self.store.set(f"{_bookmarks_prefix(user_id)}{project_id}", True)

    async def remove_bookmark(self, user_id: str, project_id: str) -> None:
        key = f"{_bookmarks_prefix(user_id)}{project_id}"
        if await self.store.get(key) is None:
            return
        await self.store.delete(key)

    async def get_bookmarked_projects(self, user_id: str) -> list[Project]:
        projects = []
        for project_id in await self.get_user_bookmarks(user_id):
            project = await self.get_project(project_id)
            if project is not None:
                projects.append(project)
        return projects

    async def add_interaction(
        self, project_id: str, user_id: str, interaction: InteractionType
    ) -> None:
        if self.store.status == ConnectionStatus.disconnected:
            return
        await self.store.set(
            f"{INTERACTIONS_PREFIX}{uuid.uuid4().hex}",
            {
                "projectId": project_id,
                "userId": user_id,
                "type": interaction,
                "timestamp": self.clock.now().isoformat(),
            },
        )

    async def get_record(self, key: str) -> Any | None:
        return await self.store.get(key)

    async def set_record(self, key: str, value: Any) -> None:
        await self.store.set(key, value)

    def now(self) -> datetime:
        return self.clock.now()
