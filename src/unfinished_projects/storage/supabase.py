"""Supabase 스토리지 모듈."""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from unfinished_projects.errors import StorageNotConfiguredError, StoreUnavailableError

logger = logging.getLogger(__name__)


class SupabaseStore:
    """Supabase 테이블을 키-값 저장소로 사용한다.

    테이블은 ``path`` (text, primary key), ``value`` (jsonb), ``updated_at``
    (timestamptz) 컬럼을 가진다.
    """

    def __init__(
        self,
        url: str | None,
        key: str | None,
        table: str = "kv_store",
        client: Client | None = None,
        page_size: int = 1000,
    ) -> None:
        """
        Args:
            url: Supabase 프로젝트 URL
            key: Supabase anon key
            table: 키-값 테이블 이름
            client: Supabase 클라이언트 (테스트용 주입)
            page_size: 목록 조회 시 한 번에 가져올 행 수 (PostgREST max-rows 이하)
        """
        self.client: Client | None = client
        if self.client is None and url and key:
            self.client = create_client(url, key)
        self.table = table
        self.page_size = page_size

    @property
    def is_configured(self) -> bool:
        """Supabase가 설정되었는지 확인한다."""
        return self.client is not None

    def _table(self) -> Any:
        if self.client is None:
            raise StorageNotConfiguredError("Supabase is not configured")
        return self.client.table(self.table)

    async def get(self, key: str) -> Any | None:
        try:
            response = self._table().select("value").eq("path", key).limit(1).execute()
        except (APIError, httpx.HTTPError) as e:
            raise StoreUnavailableError(f"Supabase get failed: {key}") from e
        if not response.data:
            return None
        return response.data[0]["value"]

    async def set(self, key: str, value: Any) -> None:
        data = {
            "path": key,
            "value": value,
            "updated_at": datetime.now(UTC).isoformat(),
        }
        try:
            self._table().upsert(data).execute()
        except (APIError, httpx.HTTPError) as e:
            raise StoreUnavailableError(f"Supabase set failed: {key}") from e

    async def delete(self, key: str) -> None:
        try:
            self._table().delete().eq("path", key).execute()
        except (APIError, httpx.HTTPError) as e:
            raise StoreUnavailableError(f"Supabase delete failed: {key}") from e

    async def list(self, prefix: str) -> dict[str, Any]:
        items: dict[str, Any] = {}
        offset = 0
        while True:
            try:
                response = (
                    self._table()
                    .select("path, value")
                    .like("path", f"{prefix}%")
                    .order("path")
                    .range(offset, offset + self.page_size - 1)
                    .execute()
                )
            except (APIError, httpx.HTTPError) as e:
                raise StoreUnavailableError(f"Supabase list failed: {prefix}") from e
            rows = response.data or []
            # LIKE의 '_' 와일드카드 때문에 접두사를 다시 확인한다
            items.update(
                (row["path"], row["value"]) for row in rows if row["path"].startswith(prefix)
            )
            if len(rows) < self.page_size:
                return items
            offset += self.page_size

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            self._table().select("path").limit(1).execute()
        except (APIError, httpx.HTTPError) as e:
            logger.warning(f"Supabase 연결 확인 실패: {e}")
            return False
        return True
