"""관리자 권한 확인."""

import logging

from unfinished_projects.config import settings
from unfinished_projects.errors import PermissionDeniedError

logger = logging.getLogger(__name__)


def is_admin(uid: str | None) -> bool:
    """``settings.admin_uids``에 등록된 사용자만 관리자로 본다.

    목록이 비어 있으면 개발 모드로 간주해 모든 사용자를 허용한다.
    """
    if not settings.admin_uids:
        logger.warning(
            "ADMIN_UIDS가 비어 있어 모든 사용자에게 관리자 권한을 부여합니다 "
            f"(UID: {uid or '로그인 없음'})"
        )
        return True
    allowed = uid is not None and uid in settings.admin_uids
    if not allowed:
        logger.warning(f"관리자 권한 없음: {uid or '로그인 없음'}")
    return allowed


def require_admin(uid: str | None) -> None:
    if not is_admin(uid):
        raise PermissionDeniedError(f"Admin permission required: {uid or 'anonymous'}")
