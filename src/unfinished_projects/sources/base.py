"""소스 프로토콜 정의."""

from typing import Protocol

from unfinished_projects.models import GitHubRepository


class RepositorySource(Protocol):
    """저장소 데이터 소스 프로토콜."""

    @property
    def rate_limit_remaining(self) -> int:
        """남은 요청 수."""
        ...

    async def find_unfinished_projects(self) -> list[GitHubRepository]:
        """미완성 프로젝트 후보를 가져온다."""
        ...

    async def has_readme(self, owner: str, repo: str) -> bool:
        """README 존재 여부."""
        ...

    async def fetch_readme(self, owner: str, repo: str) -> str | None:
        """README 본문. 없으면 None."""
        ...

    async def get_readme(self, owner: str, repo: str) -> str:
        """README 본문. 없으면 안내 문구."""
        ...
