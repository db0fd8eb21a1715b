"""키-값 저장소 프로토콜 정의."""

from typing import Any, Protocol


class Store(Protocol):
    """경로 문자열을 키로 JSON 값을 저장하는 저장소."""

    async def get(self, key: str) -> Any | None:
        """값을 조회한다. 없으면 None."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """값을 저장한다."""
        ...

    async def delete(self, key: str) -> None:
        """값을 삭제한다. 없으면 아무것도 하지 않는다."""
        ...

    async def list(self, prefix: str) -> dict[str, Any]:
        """``prefix``로 시작하는 모든 키와 값을 반환한다."""
        ...

    async def ping(self) -> bool:
        """저장소에 연결할 수 있는지 확인한다."""
        ...
