"""저장소 모듈."""

from unfinished_projects.config import settings
from unfinished_projects.storage.base import Store
from unfinished_projects.storage.fallback import ConnectionStatus, PreferRemoteStore
from unfinished_projects.storage.local import LocalStore
from unfinished_projects.storage.projects import ProjectRepository
from unfinished_projects.storage.supabase import SupabaseStore


def build_store() -> PreferRemoteStore:
    """설정값으로 원격 우선 저장소를 만든다."""
    remote = SupabaseStore(
        url=settings.supabase_url,
        key=settings.supabase_key,
        table=settings.supabase_table,
    )
    local = LocalStore(
        path=settings.local_store_path,
        max_records=settings.local_store_max_records,
    )
    return PreferRemoteStore(
        remote if remote.is_configured else None,
        local,
        retry_interval=settings.store_retry_interval,
    )


__all__ = [
    "ConnectionStatus",
    "LocalStore",
    "PreferRemoteStore",
    "ProjectRepository",
    "Store",
    "SupabaseStore",
    "build_store",
]
