"""공용 테스트 픽스처."""

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from unfinished_projects.errors import StoreUnavailableError
from unfinished_projects.models import GitHubRepository
from unfinished_projects.ratelimit import Clock
from unfinished_projects.storage.fallback import PreferRemoteStore
from unfinished_projects.storage.local import LocalStore
from unfinished_projects.storage.projects import ProjectRepository

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


class FakeClock(Clock):
    """sleep 호출 시 실제로 기다리지 않고 시간만 앞으로 보내는 시계."""

    def __init__(self, start: datetime = NOW) -> None:
        self.start = start
        self.elapsed = 0.0
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def monotonic(self) -> float:
        return self.elapsed

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds > 0:
            self.elapsed += seconds

    def advance(self, seconds: float) -> None:
        self.elapsed += seconds


def _make_repo(
    repo_id: int = 1,
    full_name: str = "alice/todo-app",
    **overrides: Any,
) -> GitHubRepository:
    """테스트용 GitHubRepository를 만든다."""
    data: dict[str, Any] = {
        "id": repo_id,
        "name": full_name.split("/")[1],
        "full_name": full_name,
        "description": "A small todo app",
        "html_url": f"https://github.com/{full_name}",
        "stargazers_count": 25,
        "forks_count": 3,
        "open_issues_count": 2,
        "size": 500,
        "language": "Python",
        "topics": ["todo"],
        "license": {"name": "MIT License", "spdx_id": "MIT"},
        "default_branch": "main",
        "updated_at": (NOW - timedelta(days=30)).isoformat(),
        "created_at": (NOW - timedelta(days=400)).isoformat(),
    }
    data.update(overrides)
    return GitHubRepository.model_validate(data)


@pytest.fixture
def clock() -> FakeClock:
    """2024-06-01 12:00 UTC에서 시작하는 FakeClock을 반환한다."""
    return FakeClock()


@pytest.fixture
def make_repo():
    """GitHubRepository 생성 함수를 반환한다."""
    return _make_repo


class FlakyStore(LocalStore):
    """``down``이 True이면 모든 요청이 실패하는 메모리 원격 저장소."""

    def __init__(self) -> None:
        super().__init__()
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise StoreUnavailableError("remote is down")

    async def get(self, key: str) -> Any | None:
        self._check()
        return await super().get(key)

    async def set(self, key: str, value: Any) -> None:
        self._check()
        await super().set(key, value)

    async def delete(self, key: str) -> None:
        self._check()
        await super().delete(key)

    async def list(self, prefix: str) -> dict[str, Any]:
        self._check()
        return await super().list(prefix)

    async def ping(self) -> bool:
        return not self.down


@pytest.fixture
def remote() -> FlakyStore:
    """원격 저장소 역할을 하는 메모리 저장소를 반환한다. 비어 있는 상태로 시작한다."""
    return FlakyStore()


@pytest.fixture
def store(remote: FlakyStore, clock: FakeClock) -> PreferRemoteStore:
    """메모리 원격/로컬 저장소로 구성된 PreferRemoteStore를 반환한다."""
    return PreferRemoteStore(remote, LocalStore(), clock=clock, retry_interval=60)


@pytest.fixture
def repository(store: PreferRemoteStore, clock: FakeClock) -> ProjectRepository:
    """ProjectRepository를 반환한다."""
    return ProjectRepository(store, clock)
