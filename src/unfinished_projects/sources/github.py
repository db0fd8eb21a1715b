"""GitHub REST API 클라이언트."""

import base64
import logging
from datetime import timedelta
from typing import Any

import httpx

from unfinished_projects.config import settings
from unfinished_projects.errors import (
    GitHubAPIError,
    InvalidQueryError,
    NotFoundError,
    RateLimitExceeded,
)
from unfinished_projects.models import GitHubRepository
from unfinished_projects.ratelimit import Clock, Throttle, WindowCounter

logger = logging.getLogger(__name__)

_LANGUAGE_QUERIES = [
    ("JavaScript", "10..50"),
    ("TypeScript", "10..50"),
    ("Python", "10..100"),
    ("Java", "10..100"),
    ("Go", "10..100"),
    ("Rust", "10..100"),
]

_KEYWORD_QUERIES = [
    "TODO in:readme",
    "FIXME in:readme",
    "incomplete in:name,description",
    "unfinished in:name,description",
    "prototype in:name,description",
]

MIN_STARS = 10
MAX_RESULTS = 50
PER_QUERY_FETCH = 15
PER_QUERY_KEEP = 12


class GitHubClient:
    """요청 한도를 지키며 GitHub API를 호출한다.

    시간당 요청 수를 ``WindowCounter``로 제한하고, 모든 요청 사이에
    ``Throttle``로 최소 간격을 둔다. 한도를 넘으면 ``RateLimitExceeded``를 던진다.
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        *,
        max_requests: int | None = None,
        request_interval: float | None = None,
        query_interval: float | None = None,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Args:
            token: GitHub 토큰. None이면 설정값 사용.
            max_requests: 시간당 최대 요청 수
            request_interval: 요청 간 최소 간격 (초)
            query_interval: 검색 쿼리 간 대기 시간 (초)
            clock: 시계 (테스트용 주입)
            transport: httpx 전송 계층 (테스트용 주입)
            timeout: HTTP 요청 타임아웃 (초)
        """
        self.token = token or settings.github_token
        if not self.token:
            logger.warning("GITHUB_TOKEN이 설정되지 않았습니다. GitHub API 기능이 제한됩니다.")
        self.clock = clock or Clock()
        self.counter = WindowCounter(
            max_requests or settings.github_max_requests_per_hour, 3600.0, self.clock
        )
        self.throttle = Throttle(
            settings.github_request_interval if request_interval is None else request_interval,
            self.clock,
        )
        self.query_interval = (
            settings.github_query_interval if query_interval is None else query_interval
        )
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GitHubClient":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/vnd.github.v3+json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def rate_limit_remaining(self) -> int:
        return self.counter.remaining

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if not self.counter.allow():
            raise RateLimitExceeded("API rate limit reached")

        await self.throttle.wait()

        client = self._ensure_client()
        try:
            response = await client.get(path, params=params)
        except httpx.RequestError as e:
            logger.error(f"GitHub API request failed: {path} ({e})")
            raise GitHubAPIError(f"GitHub API request failed: {e}") from e
        finally:
            self.counter.record()

        status = response.status_code
        if status in (403, 429):
            raise RateLimitExceeded("GitHub API rate limit exceeded")
        if status == 422:
            raise InvalidQueryError(
                "GitHub API query syntax error - invalid search parameters", status
            )
        if status == 404:
            raise NotFoundError(f"Resource not found: {path}", status)
        if status >= 400:
            raise GitHubAPIError(f"GitHub API error: {status}", status)

        return response.json()

    async def search_repositories(
        self, query: str, page: int = 1, per_page: int = 100
    ) -> tuple[list[GitHubRepository], int]:
        """저장소를 검색한다.

        Returns:
            (저장소 목록, 전체 결과 수)
        """
        data = await self._request(
            "/search/repositories",
            params={"q": query, "page": page, "per_page": per_page, "sort": "updated"},
        )
        items = [GitHubRepository.model_validate(item) for item in data.get("items", [])]
        return items, int(data.get("total_count", 0))

    async def get_repository(self, owner: str, repo: str) -> GitHubRepository:
        data = await self._request(f"/repos/{owner}/{repo}")
        return GitHubRepository.model_validate(data)

    async def get_commits(self, owner: str, repo: str, page: int = 1) -> list[dict[str, Any]]:
        try:
            data = await self._request(
                f"/repos/{owner}/{repo}/commits", params={"page": page, "per_page": 50}
            )
        except GitHubAPIError:
            return []
        return data if isinstance(data, list) else []

    async def get_directory_contents(
        self, owner: str, repo: str, path: str = ""
    ) -> list[dict[str, Any]]:
        try:
            data = await self._request(f"/repos/{owner}/{repo}/contents/{path}")
        except GitHubAPIError:
            return []
        return data if isinstance(data, list) else []

    async def has_readme(self, owner: str, repo: str) -> bool:
        """README 존재 여부. 남은 요청이 2개 이하면 확인하지 않고 False."""
        if self.rate_limit_remaining <= 2:
            return False
        try:
            await self._request(f"/repos/{owner}/{repo}/readme")
        except GitHubAPIError:
            return False
        return True

    async def fetch_readme(self, owner: str, repo: str) -> str | None:
        """README 본문을 가져온다. README가 없으면 None."""
        try:
            content = await self._request(f"/repos/{owner}/{repo}/readme")
        except NotFoundError:
            return None
        if content.get("content") and content.get("encoding") == "base64":
            return base64.b64decode(content["content"]).decode("utf-8", errors="replace")
        return f"# {repo}\n\n프로젝트 README를 불러올 수 없습니다."

    async def get_readme(self, owner: str, repo: str) -> str:
        """README 본문. 없거나 불러오지 못하면 안내 문구를 반환한다.

        ``RateLimitExceeded``는 호출자가 배치를 멈출 수 있도록 그대로 전파한다.
        """
        try:
            readme = await self.fetch_readme(owner, repo)
        except GitHubAPIError as e:
            logger.error(f"README 조회 실패: {owner}/{repo} ({e})")
            return f"# {repo}\n\n{owner}/{repo} 프로젝트입니다. (README를 불러올 수 없습니다)"
        if readme is None:
            return f"# {repo}\n\n{owner}/{repo} 프로젝트입니다. (README 파일이 없습니다)"
        return readme

    def build_queries(self) -> list[str]:
        """미완성 프로젝트 검색 쿼리 목록."""
        recent = (self.clock.now() - timedelta(days=settings.github_pushed_within_days)).date()
        older = recent - timedelta(days=150)
        queries = [
            f"stars:{stars} pushed:>{recent.isoformat()} size:50..5000 archived:false language:{language}"
            for language, stars in _LANGUAGE_QUERIES
        ]
        queries.extend(
            f"{keyword} stars:10..200 pushed:>{older.isoformat()} archived:false"
            for keyword in _KEYWORD_QUERIES
        )
        return queries

    async def find_unfinished_projects(self) -> list[GitHubRepository]:
        """여러 검색 쿼리로 미완성 프로젝트 후보를 찾는다.

        남은 요청이 부족하면 조기에 멈춘다. 결과를 하나도 얻지 못한 상태에서
        한도에 걸리면 ``RateLimitExceeded``를 전파한다.
        """
        queries = self.build_queries()
        collected: list[GitHubRepository] = []
        successful = 0

        logger.info(f"총 {len(queries)}개의 검색 쿼리를 실행합니다...")

        for i, query in enumerate(queries, 1):
            if self.rate_limit_remaining <= 3:
                logger.info(f"API 한도 근접으로 {i}번째 쿼리에서 중단 ({successful}개 쿼리 성공)")
                break

            logger.info(f"[{i}/{len(queries)}] 검색 중: {query[:50]}...")
            try:
                items, total = await self.search_repositories(query, 1, PER_QUERY_FETCH)
            except RateLimitExceeded:
                if not collected:
                    raise
                logger.warning("Rate limit 도달로 검색 중단")
                break
            except GitHubAPIError as e:
                logger.error(f"쿼리 실패 [{i}/{len(queries)}]: {query} ({e})")
                continue

            logger.info(f"  → {total}개 총 결과, {len(items)}개 반환됨")
            if items:
                collected.extend(items[:PER_QUERY_KEEP])
                successful += 1

            if i < len(queries):
                await self.clock.sleep(self.query_interval)

        logger.info(f"검색 완료: {successful}개 쿼리 성공, 총 {len(collected)}개 저장소 발견")

        unique: dict[int, GitHubRepository] = {}
        for repo in collected:
            unique.setdefault(repo.id, repo)
        logger.info(f"중복 제거 후: {len(unique)}개 고유 저장소")

        starred = [repo for repo in unique.values() if repo.stargazers_count >= MIN_STARS]
        logger.info(f"스타 {MIN_STARS}개 이상 필터 후: {len(starred)}개 저장소")

        final = starred[:MAX_RESULTS]
        for index, repo in enumerate(final, 1):
            logger.info(f"  {index}. {repo.full_name} (⭐{repo.stargazers_count}, {repo.language})")
        return final
