"""프로젝트 조회, 북마크, 추천 서비스."""

import logging

from unfinished_projects.models import Project
from unfinished_projects.storage.projects import ProjectRepository

logger = logging.getLogger(__name__)

RECOMMENDATION_LIMIT = 5


class ProjectService:
    """사용자 화면에서 쓰는 프로젝트 기능."""

    def __init__(self, repository: ProjectRepository) -> None:
        self.repository = repository

    async def get_projects(self) -> list[Project]:
        return await self.repository.get_projects()

    async def get_project(self, project_id: str) -> Project | None:
        """프로젝트를 조회하고 조회수를 올린다."""
        project = await self.repository.get_project(project_id)
        if project is not None:
            await self.repository.increment_view(project_id)
        return project

    async def search_projects(self, query: str) -> list[Project]:
        return await self.repository.search_projects(query)

    async def add_bookmark(self, user_id: str, project_id: str) -> None:
        await self.repository.add_bookmark(user_id, project_id)
        await self.repository.add_interaction(project_id, user_id, "bookmark")

    async def remove_bookmark(self, user_id: str, project_id: str) -> None:
        await self.repository.remove_bookmark(user_id, project_id)

    async def get_user_bookmarks(self, user_id: str) -> list[str]:
        return await self.repository.get_user_bookmarks(user_id)

    async def get_bookmarked_projects(self, user_id: str) -> list[Project]:
        return await self.repository.get_bookmarked_projects(user_id)

    async def get_recommended_projects(
        self, user_id: str, current_project_id: str | None = None
    ) -> list[Project]:
        """북마크한 프로젝트의 언어와 토픽을 기준으로 추천한다.

        북마크가 없으면 점수가 높은 순서로 반환한다.

        Args:
            user_id: 사용자 ID
            current_project_id: 추천에서 제외할 현재 프로젝트 ID

        Returns:
            최대 5개의 추천 프로젝트
        """
        bookmarked = await self.get_bookmarked_projects(user_id)
        candidates = [
            project
            for project in await self.get_projects()
            if project.id != current_project_id
        ]

        if not bookmarked:
            candidates.sort(key=lambda p: p.score, reverse=True)
            return candidates[:RECOMMENDATION_LIMIT]

        languages = {project.language for project in bookmarked}
        topics = {topic for project in bookmarked for topic in project.topics}
        bookmarked_ids = {project.id for project in bookmarked}

        def affinity(project: Project) -> float:
            score = 3.0 if project.language in languages else 0.0
            score += 2 * sum(1 for topic in project.topics if topic in topics)
            return score + project.score * 0.5

        ranked = sorted(
            (p for p in candidates if p.id not in bookmarked_ids),
            key=affinity,
            reverse=True,
        )
        return ranked[:RECOMMENDATION_LIMIT]
