"""원격 우선 저장소와 로컬 미러."""

import logging
from enum import Enum
from typing import Any

from unfinished_projects.errors import StoreUnavailableError
from unfinished_projects.ratelimit import Clock
from unfinished_projects.storage.base import Store
from unfinished_projects.storage.local import LocalStore

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    """원격 저장소 연결 상태."""

    connected = "connected"
    disconnected = "disconnected"
    unknown = "unknown"


class PreferRemoteStore:
    """원격 저장소를 우선 사용하고, 연결이 끊기면 로컬 저장소로 대체한다.

    연결된 동안 쓰기와 목록 조회 결과는 로컬에도 복사된다. 연결이 끊긴 동안의
    읽기/쓰기는 로컬에서만 일어나며, 다시 연결되면 키 기준으로 병합한다
    (원격 값이 우선). 연결이 끊긴 뒤 ``retry_interval``초가 지나면 다음 요청에서
    원격 저장소를 다시 확인한다.
    """

    def __init__(
        self,
        remote: Store | None,
        local: LocalStore,
        clock: Clock | None = None,
        retry_interval: float = 60.0,
    ) -> None:
        self.remote = remote
        self.local = local
        self.clock = clock or Clock()
        self.retry_interval = retry_interval
        self.status = (
            ConnectionStatus.unknown if remote is not None else ConnectionStatus.disconnected
        )
        self._disconnected_at = self.clock.monotonic()

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.connected

    async def _use_remote(self) -> bool:
        if self.remote is None:
            return False
        if self.status == ConnectionStatus.disconnected:
            if self.clock.monotonic() - self._disconnected_at < self.retry_interval:
                return False
            await self.refresh_connection()
        return self.status != ConnectionStatus.disconnected

    async def refresh_connection(self) -> ConnectionStatus:
        """원격 저장소에 연결을 확인하고 상태를 갱신한다."""
        if self.remote is None:
            return self.status
        connected = await self.remote.ping()
        await self.set_status(
            ConnectionStatus.connected if connected else ConnectionStatus.disconnected
        )
        return self.status

    async def set_status(self, status: ConnectionStatus) -> None:
        previous = self.status
        self.status = status
        if status == ConnectionStatus.disconnected:
            self._disconnected_at = self.clock.monotonic()
        if previous == status:
            return
        logger.info(f"Database connection status: {status.value}")
        if status == ConnectionStatus.connected and previous == ConnectionStatus.disconnected:
            await self.reconcile()

    def _mark_disconnected(self, error: Exception) -> None:
        logger.warning(f"원격 저장소 연결 끊김, 로컬 저장소 사용: {error}")
        self.status = ConnectionStatus.disconnected
        self._disconnected_at = self.clock.monotonic()

    async def get(self, key: str) -> Any | None:
        if await self._use_remote():
            try:
                return await self.remote.get(key)
            except StoreUnavailableError as e:
                self._mark_disconnected(e)
        return await self.local.get(key)

    async def set(self, key: str, value: Any) -> None:
        if await self._use_remote():
            try:
                await self.remote.set(key, value)
            except StoreUnavailableError as e:
                self._mark_disconnected(e)
            else:
                self.status = ConnectionStatus.connected
        await self.local.set(key, value)

    async def delete(self, key: str) -> None:
        if await self._use_remote():
            try:
                await self.remote.delete(key)
            except StoreUnavailableError as e:
                self._mark_disconnected(e)
        await self.local.delete(key)

    async def list(self, prefix: str) -> dict[str, Any]:
        if await self._use_remote():
            try:
                items = await self.remote.list(prefix)
            except StoreUnavailableError as e:
                self._mark_disconnected(e)
            else:
                await self.local.update(items)
                return items
        return await self.local.list(prefix)

    async def ping(self) -> bool:
        return await self.refresh_connection() == ConnectionStatus.connected

    async def reconcile(self) -> int:
        """연결 복구 후 로컬에만 있는 레코드를 원격에 올린다.

        Returns:
            원격에 새로 올린 레코드 수
        """
        if self.remote is None:
            return 0
        try:
            remote_items = await self.remote.list("")
            local_items = await self.local.list("")
            pushed = 0
            for key, value in local_items.items():
                if key not in remote_items:
                    await self.remote.set(key, value)
                    pushed += 1
        except StoreUnavailableError as e:
            self._mark_disconnected(e)
            return 0

        await self.local.update(remote_items)
        if pushed:
            logger.info(f"로컬 레코드 {pushed}개를 원격 저장소에 반영했습니다")
        return pushed
