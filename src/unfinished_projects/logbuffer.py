"""크롤링 화면용 로그 버퍼."""

import logging
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime

from unfinished_projects.models import LogEntry

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

Listener = Callable[[list[LogEntry]], None]


def _level_name(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    if levelno == SUCCESS:
        return "success"
    return "info"


class CrawlLogBuffer(logging.Handler):
    """최근 로그를 메모리에 보관하는 핸들러.

    최신 항목이 앞에 오며 최대 ``max_entries``개까지만 유지한다. 저장하지 않는다.
    """

    def __init__(self, max_entries: int = 100, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._listeners: list[Listener] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = LogEntry(
                timestamp=datetime.fromtimestamp(record.created, UTC),
                level=_level_name(record.levelno),
                message=record.getMessage(),
                details=getattr(record, "details", None),
            )
            self._entries.appendleft(entry)
            self._notify()
        except Exception:
            self.handleError(record)

    def _notify(self) -> None:
        snapshot = self.entries()
        for listener in list(self._listeners):
            listener(snapshot)

    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def recent(self, count: int = 5) -> list[LogEntry]:
        return list(self._entries)[:count]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """리스너를 등록하고 해제 함수를 반환한다."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        self._entries.clear()
        self._notify()


def attach_log_buffer(max_entries: int = 100) -> CrawlLogBuffer:
    """패키지 루트 로거에 로그 버퍼를 연결한다."""
    buffer = CrawlLogBuffer(max_entries=max_entries)
    package_logger = logging.getLogger("unfinished_projects")
    package_logger.addHandler(buffer)
    if package_logger.level == logging.NOTSET or package_logger.level > logging.INFO:
        package_logger.setLevel(logging.INFO)
    return buffer
