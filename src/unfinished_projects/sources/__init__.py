"""데이터 소스 모듈."""

from unfinished_projects.sources.base import RepositorySource
from unfinished_projects.sources.github import GitHubClient

__all__ = ["GitHubClient", "RepositorySource"]
