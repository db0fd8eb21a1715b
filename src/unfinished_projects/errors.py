"""예외 정의."""


class UnfinishedProjectsError(Exception):
    """패키지 공통 예외."""


class RateLimitExceeded(UnfinishedProjectsError):
    """요청 한도 초과.

    크롤링을 조기에 멈추는 신호로 쓰이며 실행 전체를 실패로 처리하지 않는다.
    """


class GitHubAPIError(UnfinishedProjectsError):
    """GitHub API 오류."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(GitHubAPIError):
    """리소스 없음 (404)."""


class InvalidQueryError(GitHubAPIError):
    """검색 쿼리 문법 오류 (422)."""


class StorageNotConfiguredError(UnfinishedProjectsError):
    """저장소가 초기화되지 않음."""


class StoreUnavailableError(UnfinishedProjectsError):
    """원격 저장소에 연결할 수 없음."""


class PermissionDeniedError(UnfinishedProjectsError):
    """관리자 권한이 필요한 작업."""
