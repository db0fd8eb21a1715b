"""Supabase 스토리지 테스트."""

from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from unfinished_projects.errors import StorageNotConfiguredError, StoreUnavailableError
from unfinished_projects.storage.supabase import SupabaseStore


class _Query:
    """supabase 테이블 쿼리 빌더를 흉내 낸다."""

    def __init__(
        self, rows: dict[str, Any], error: Exception | None, max_rows: int | None
    ) -> None:
        self.rows = rows
        self.error = error
        self.action = "select"
        self.filters: list[tuple[str, str]] = []
        self.payload: dict[str, Any] | None = None
        self.bounds: tuple[int, int] | None = None
        self.max_rows = max_rows

    def select(self, columns: str) -> "_Query":
        return self

    def eq(self, column: str, value: str) -> "_Query":
        self.filters.append(("eq", value))
        return self

    def like(self, column: str, pattern: str) -> "_Query":
        self.filters.append(("like", pattern))
        return self

    def limit(self, count: int) -> "_Query":
        return self

    def order(self, column: str) -> "_Query":
        return self

    def range(self, start: int, end: int) -> "_Query":
        self.bounds = (start, end)
        return self

    def upsert(self, data: dict[str, Any]) -> "_Query":
        self.action = "upsert"
        self.payload = data
        return self

    def delete(self) -> "_Query":
        self.action = "delete"
        return self

    def _matches(self, path: str) -> bool:
        for kind, value in self.filters:
            if kind == "eq" and path != value:
                return False
            # LIKE: '%'는 접미사, '_'는 임의의 한 글자
            if kind == "like":
                pattern = value.rstrip("%")
                if len(path) < len(pattern):
                    return False
                if any(p != "_" and p != c for p, c in zip(pattern, path)):
                    return False
        return True

    def execute(self) -> SimpleNamespace:
        if self.error is not None:
            raise self.error
        if self.action == "upsert":
            self.rows[self.payload["path"]] = self.payload["value"]
            return SimpleNamespace(data=[self.payload])
        matched = sorted(path for path in self.rows if self._matches(path))
        if self.action == "delete":
            for path in matched:
                del self.rows[path]
            return SimpleNamespace(data=[])
        if self.bounds is not None:
            start, end = self.bounds
            matched = matched[start : end + 1]
        # PostgREST max-rows
        if self.max_rows is not None:
            matched = matched[: self.max_rows]
        return SimpleNamespace(data=[{"path": p, "value": self.rows[p]} for p in matched])


class _FakeClient:
    def __init__(self, error: Exception | None = None, max_rows: int | None = None) -> None:
        self.rows: dict[str, Any] = {}
        self.error = error
        self.max_rows = max_rows
        self.tables: list[str] = []

    def table(self, name: str) -> _Query:
        self.tables.append(name)
        return _Query(self.rows, self.error, self.max_rows)


class TestSupabaseStore:
    """SupabaseStore 테스트."""

    def test_init_without_credentials(self) -> None:
        """환경변수 없이 초기화하면 None 클라이언트를 가진다."""
        store = SupabaseStore(url=None, key=None)
        assert store.client is None
        assert store.is_configured is False

    @pytest.mark.asyncio
    async def test_unconfigured_operations(self) -> None:
        """설정되지 않은 상태에서 조회하면 예외, ping은 False이다."""
        store = SupabaseStore(url=None, key=None)
        with pytest.raises(StorageNotConfiguredError):
            await store.get("projects/1")
        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_set_get_delete(self) -> None:
        """값을 저장하고 조회하고 삭제한다."""
        client = _FakeClient()
        store = SupabaseStore(url=None, key=None, table="kv", client=client)

        await store.set("projects/1", {"title": "a"})
        assert await store.get("projects/1") == {"title": "a"}
        await store.delete("projects/1")
        assert await store.get("projects/1") is None
        assert set(client.tables) == {"kv"}

    @pytest.mark.asyncio
    async def test_list_rechecks_prefix(self) -> None:
        """LIKE의 '_' 와일드카드로 잘못 걸린 키는 제외한다."""
        client = _FakeClient()
        store = SupabaseStore(url=None, key=None, client=client)
        await store.set("users/u_1/bookmarks/1", True)
        await store.set("users/uX1/bookmarks/2", True)

        items = await store.list("users/u_1/")

        assert items == {"users/u_1/bookmarks/1": True}

    @pytest.mark.asyncio
    async def test_network_error_becomes_unavailable(self) -> None:
        """네트워크 오류는 StoreUnavailableError로 바꾼다."""
        store = SupabaseStore(url=None, key=None, client=_FakeClient(httpx.ConnectError("down")))
        with pytest.raises(StoreUnavailableError):
            await store.get("projects/1")
        with pytest.raises(StoreUnavailableError):
            await store.set("projects/1", {})
        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_list_reads_every_page(self) -> None:
        """응답 행 수 제한이 있어도 모든 페이지를 이어서 읽는다."""
        client = _FakeClient(max_rows=3)
        store = SupabaseStore(url=None, key=None, client=client, page_size=3)
        for i in range(7):
            client.rows[f"interactions/{i}"] = {"type": "view"}
        client.rows["projects/1"] = {"title": "a"}
        client.rows["projects/2"] = {"title": "b"}

        items = await store.list("")

        assert len(items) == 9
        assert items["projects/2"] == {"title": "b"}
        assert await store.list("projects/") == {
            "projects/1": {"title": "a"},
            "projects/2": {"title": "b"},
        }
