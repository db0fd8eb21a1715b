"""로컬 JSON 파일 저장소."""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class LocalStore:
    """원격 저장소를 미러링하는 로컬 저장소.

    최근에 쓴 ``max_records``개의 레코드만 유지한다. ``path``가 None이면
    메모리에만 보관한다.
    """

    def __init__(self, path: str | Path | None = None, max_records: int = 1000) -> None:
        self.path = Path(path) if path is not None else None
        self.max_records = max_records
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"로컬 저장소 읽기 실패: {self.path} ({e})")
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, ensure_ascii=False), encoding="utf-8")

    def _put(self, key: str, value: Any) -> None:
        self._data.pop(key, None)
        self._data[key] = value
        overflow = len(self._data) - self.max_records
        for old_key in list(self._data)[: max(0, overflow)]:
            del self._data[old_key]

    async def get(self, key: str) -> Any | None:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._put(key, value)
        self._flush()

    async def update(self, items: dict[str, Any]) -> None:
        """여러 레코드를 한 번에 쓴다."""
        for key, value in items.items():
            self._put(key, value)
        self._flush()

    async def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    async def list(self, prefix: str) -> dict[str, Any]:
        return {key: value for key, value in self._data.items() if key.startswith(prefix)}

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._data)
