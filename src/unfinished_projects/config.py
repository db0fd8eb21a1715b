"""설정 관리 모듈."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # GitHub
    github_token: str | None = Field(default=None, description="GitHub API 토큰")
    github_max_requests_per_hour: int = Field(
        default=30, ge=1, description="시간당 최대 GitHub 요청 수"
    )
    github_request_interval: float = Field(
        default=2.0, ge=0, description="GitHub 요청 간 최소 간격 (초)"
    )
    github_query_interval: float = Field(
        default=3.0, ge=0, description="검색 쿼리 간 대기 시간 (초)"
    )
    github_pushed_within_days: int = Field(
        default=540, ge=1, description="검색 대상 저장소의 최근 push 기간 (일)"
    )

    # Gemini
    gemini_api_key: str | None = Field(default=None, description="Gemini API 키")
    gemini_api_key_1: str | None = Field(default=None, description="추가 Gemini API 키 1")
    gemini_api_key_2: str | None = Field(default=None, description="추가 Gemini API 키 2")
    gemini_api_key_3: str | None = Field(default=None, description="추가 Gemini API 키 3")
    gemini_api_key_4: str | None = Field(default=None, description="추가 Gemini API 키 4")
    gemini_api_key_5: str | None = Field(default=None, description="추가 Gemini API 키 5")
    gemini_analysis_model: str = Field(
        default="gemini-1.5-flash", description="프로젝트 분석용 모델"
    )
    gemini_text_model: str = Field(default="gemini-pro", description="텍스트 생성용 모델")
    gemini_summary_model: str = Field(
        default="gemini-1.5-pro", description="요약 생성용 모델"
    )

    ai_max_requests_per_minute: int = Field(default=8, ge=1, description="AI 분당 요청 한도")
    ai_max_requests_per_day: int = Field(default=100, ge=1, description="AI 일일 요청 한도")

    summary_max_calls_per_minute: int = Field(
        default=10, ge=1, description="요약 생성 분당 호출 한도"
    )
    summary_max_calls_per_day: int = Field(
        default=50, ge=1, description="요약 생성 일일 호출 한도"
    )
    summary_max_retries: int = Field(default=1, ge=0, description="키당 재시도 횟수")
    summary_retry_delay: float = Field(default=5.0, ge=0, description="재시도 간격 (초)")

    # Storage
    supabase_url: str | None = Field(default=None, description="Supabase URL")
    supabase_key: str | None = Field(default=None, description="Supabase anon key")
    supabase_table: str = Field(default="kv_store", description="키-값 테이블 이름")
    local_store_path: str = Field(
        default=".cache/projects.json", description="로컬 미러 파일 경로"
    )
    local_store_max_records: int = Field(
        default=1000, ge=1, description="로컬 미러 최대 레코드 수"
    )
    store_retry_interval: float = Field(
        default=60.0, ge=0, description="연결 끊김 후 원격 저장소 재확인 간격 (초)"
    )

    # Crawling
    crawl_max_projects: int = Field(default=15, ge=1, description="실행당 최대 처리 프로젝트 수")
    crawl_min_score: float = Field(default=5, description="통과 점수 기준")
    crawl_fallback_min_score: float = Field(default=4, description="완화된 통과 점수 기준")
    crawl_refresh_limit: int = Field(default=5, ge=0, description="기존 프로젝트 갱신 개수")
    crawl_ai_delay: float = Field(default=8.0, ge=0, description="AI 분석 후 대기 (초)")
    crawl_simple_delay: float = Field(default=2.0, ge=0, description="간단 분석 후 대기 (초)")
    crawl_score_delay: float = Field(default=0.1, ge=0, description="점수 계산 간 대기 (초)")
    crawl_refresh_delay: float = Field(default=1.0, ge=0, description="갱신 간 대기 (초)")

    # Background jobs
    description_update_interval: float = Field(
        default=300.0, gt=0, description="설명 업데이트 주기 (초)"
    )
    description_update_batch: int = Field(
        default=1, ge=1, description="주기당 설명 업데이트 프로젝트 수"
    )
    auto_description_updater: bool = Field(
        default=False, description="스케줄러에서 설명 업데이트 실행 여부"
    )

    admin_uids: list[str] = Field(default_factory=list, description="관리자 UID 목록")

    @property
    def gemini_api_keys(self) -> list[str]:
        """설정된 Gemini API 키 목록 (중복/빈 값 제외)."""
        candidates = [
            self.gemini_api_key,
            self.gemini_api_key_1,
            self.gemini_api_key_2,
            self.gemini_api_key_3,
            self.gemini_api_key_4,
            self.gemini_api_key_5,
        ]
        keys: list[str] = []
        for key in candidates:
            key = (key or "").strip()
            if key and key not in keys:
                keys.append(key)
        return keys


settings = Settings()
