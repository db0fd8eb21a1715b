"""GitHub 클라이언트 테스트."""

import base64

import httpx
import pytest

from unfinished_projects.errors import (
    GitHubAPIError,
    InvalidQueryError,
    NotFoundError,
    RateLimitExceeded,
)
from unfinished_projects.sources.github import GitHubClient


def _repo_json(repo_id: int, stars: int) -> dict:
    return {
        "id": repo_id,
        "name": f"repo-{repo_id}",
        "full_name": f"alice/repo-{repo_id}",
        "stargazers_count": stars,
        "language": "Python",
        "updated_at": "2024-05-01T00:00:00Z",
    }


def _client(handler, clock, **kwargs) -> GitHubClient:
    return GitHubClient(
        token="test-token",
        clock=clock,
        transport=httpx.MockTransport(handler),
        request_interval=kwargs.pop("request_interval", 2.0),
        query_interval=kwargs.pop("query_interval", 3.0),
        max_requests=kwargs.pop("max_requests", 100),
        **kwargs,
    )


class TestRequest:
    """요청 공통 처리 테스트."""

    @pytest.mark.asyncio
    async def test_sends_auth_header_and_params(self, clock) -> None:
        """토큰 헤더와 검색 파라미터를 보낸다."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"total_count": 1, "items": [_repo_json(1, 20)]})

        async with _client(handler, clock) as github:
            items, total = await github.search_repositories("language:Python", 1, 15)

        assert total == 1
        assert items[0].full_name == "alice/repo-1"
        request = seen[0]
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.url.path == "/search/repositories"
        assert request.url.params["q"] == "language:Python"
        assert request.url.params["per_page"] == "15"
        assert request.url.params["sort"] == "updated"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "error"),
        [(403, RateLimitExceeded), (429, RateLimitExceeded), (422, InvalidQueryError),
         (404, NotFoundError), (500, GitHubAPIError)],
    )
    async def test_status_mapping(self, clock, status: int, error: type[Exception]) -> None:
        """HTTP 상태 코드를 예외로 변환한다."""
        github = _client(lambda request: httpx.Response(status), clock)
        with pytest.raises(error):
            await github.get_repository("alice", "repo-1")
        await github.aclose()

    @pytest.mark.asyncio
    async def test_counter_blocks_before_network(self, clock) -> None:
        """시간당 한도에 도달하면 요청을 보내지 않는다."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_repo_json(1, 20))

        async with _client(handler, clock, max_requests=1) as github:
            await github.get_repository("alice", "repo-1")
            with pytest.raises(RateLimitExceeded):
                await github.get_repository("alice", "repo-1")

        assert len(calls) == 1
        assert github.rate_limit_remaining == 0

    @pytest.mark.asyncio
    async def test_throttle_spaces_requests(self, clock) -> None:
        """연속 요청 사이에 최소 간격만큼 기다린다."""
        handler = lambda request: httpx.Response(200, json=_repo_json(1, 20))  # noqa: E731
        async with _client(handler, clock) as github:
            await github.get_repository("alice", "repo-1")
            await github.get_repository("alice", "repo-1")
        assert clock.sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_connection_error(self, clock) -> None:
        """연결 오류는 GitHubAPIError로 감싼다."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        async with _client(handler, clock) as github:
            with pytest.raises(GitHubAPIError):
                await github.get_repository("alice", "repo-1")


class TestReadme:
    """README 조회 테스트."""

    @pytest.mark.asyncio
    async def test_decodes_base64(self, clock) -> None:
        """base64 본문을 디코딩한다."""
        encoded = base64.b64encode("# Hello\n\n안녕".encode()).decode()
        handler = lambda request: httpx.Response(  # noqa: E731
            200, json={"content": encoded, "encoding": "base64"}
        )
        async with _client(handler, clock) as github:
            assert await github.fetch_readme("alice", "repo-1") == "# Hello\n\n안녕"

    @pytest.mark.asyncio
    async def test_missing_readme(self, clock) -> None:
        """README가 없으면 fetch는 None, get은 안내 문구를 반환한다."""
        async with _client(lambda request: httpx.Response(404), clock) as github:
            assert await github.fetch_readme("alice", "repo-1") is None
            readme = await github.get_readme("alice", "repo-1")
        assert readme.startswith("# repo-1")
        assert "README 파일이 없습니다" in readme

    @pytest.mark.asyncio
    async def test_get_readme_propagates_rate_limit(self, clock) -> None:
        """README 조회 중 한도 초과는 전파한다."""
        async with _client(lambda request: httpx.Response(403), clock) as github:
            with pytest.raises(RateLimitExceeded):
                await github.get_readme("alice", "repo-1")

    @pytest.mark.asyncio
    async def test_has_readme_skips_when_budget_low(self, clock) -> None:
        """남은 요청이 2개 이하면 요청 없이 False이다."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        async with _client(handler, clock, max_requests=2) as github:
            assert await github.has_readme("alice", "repo-1") is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_commits_error_is_empty(self, clock) -> None:
        """커밋 조회 실패는 빈 목록이다."""
        async with _client(lambda request: httpx.Response(500), clock) as github:
            assert await github.get_commits("alice", "repo-1") == []


class TestFindUnfinishedProjects:
    """find_unfinished_projects 테스트."""

    def test_build_queries(self, clock) -> None:
        """언어별 6개와 키워드 5개 쿼리를 만든다."""
        queries = _client(lambda request: httpx.Response(200), clock).build_queries()
        assert len(queries) == 11
        assert all("pushed:>" in query for query in queries)
        assert all("archived:false" in query for query in queries)

    @pytest.mark.asyncio
    async def test_dedupes_and_filters_stars(self, clock) -> None:
        """중복을 제거하고 스타 10개 미만은 제외한다."""

        def handler(request: httpx.Request) -> httpx.Response:
            items = [_repo_json(1, 25), _repo_json(2, 5)]
            return httpx.Response(200, json={"total_count": 2, "items": items})

        async with _client(handler, clock) as github:
            repos = await github.find_unfinished_projects()

        assert [repo.id for repo in repos] == [1]
        assert clock.sleeps.count(3.0) == 10

    @pytest.mark.asyncio
    async def test_first_query_rate_limit_raises(self, clock) -> None:
        """결과 없이 한도에 걸리면 예외를 전파한다."""
        async with _client(lambda request: httpx.Response(403), clock) as github:
            with pytest.raises(RateLimitExceeded):
                await github.find_unfinished_projects()

    @pytest.mark.asyncio
    async def test_later_rate_limit_returns_collected(self, clock) -> None:
        """결과가 있으면 한도에 걸려도 모은 결과를 반환한다."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) > 1:
                return httpx.Response(403)
            return httpx.Response(200, json={"total_count": 1, "items": [_repo_json(1, 25)]})

        async with _client(handler, clock) as github:
            repos = await github.find_unfinished_projects()

        assert [repo.id for repo in repos] == [1]
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_invalid_query_is_skipped(self, clock) -> None:
        """문법 오류 쿼리는 건너뛰고 다음 쿼리를 실행한다."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(422)
            return httpx.Response(200, json={"total_count": 1, "items": [_repo_json(3, 40)]})

        async with _client(handler, clock) as github:
            repos = await github.find_unfinished_projects()

        assert [repo.id for repo in repos] == [3]
        assert len(calls) == 11
