"""데이터 모델 정의."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LicenseInfo(BaseModel):
    """저장소 라이선스 정보."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(default="", description="라이선스 이름")
    spdx_id: str | None = Field(default=None, description="SPDX ID")


class GitHubRepository(BaseModel):
    """GitHub REST API 저장소 응답."""

    model_config = ConfigDict(extra="ignore")

    id: int = Field(description="저장소 숫자 ID")
    name: str = Field(description="저장소 이름")
    full_name: str = Field(description="저장소 전체 이름 (owner/repo)")
    description: str | None = Field(default=None, description="저장소 설명")
    html_url: str = Field(default="", description="저장소 URL")
    stargazers_count: int = Field(default=0, description="스타 수")
    forks_count: int = Field(default=0, description="포크 수")
    open_issues_count: int = Field(default=0, description="열린 이슈/PR 수")
    size: int = Field(default=0, description="저장소 크기 (KB)")
    language: str | None = Field(default=None, description="주 프로그래밍 언어")
    topics: list[str] = Field(default_factory=list, description="토픽 목록")
    license: LicenseInfo | None = Field(default=None, description="라이선스")
    default_branch: str = Field(default="main", description="기본 브랜치")
    updated_at: datetime = Field(description="마지막 업데이트 시각")
    created_at: datetime | None = Field(default=None, description="생성 시각")

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.full_name.split("/", 1)[-1]


class ScoreBreakdown(BaseModel):
    """점수 세부 항목."""

    commits: float = Field(default=0, ge=0, le=3)
    popularity: float = Field(default=0, ge=0, le=3)
    documentation: float = Field(default=0, ge=0, le=3)
    structure: float = Field(default=0, ge=0, le=3)
    activity: float = Field(default=0, ge=0, le=3)
    potential: float = Field(default=0, ge=0, le=3)

    def total(self) -> float:
        """세부 점수 합계 (소수점 첫째 자리 반올림)."""
        return round(
            self.commits
            + self.popularity
            + self.documentation
            + self.structure
            + self.activity
            + self.potential,
            1,
        )


class ScoringResult(BaseModel):
    """점수 계산 결과."""

    score: float = Field(ge=0, le=12, description="총점 (0-12)")
    breakdown: ScoreBreakdown = Field(description="세부 점수")
    reasoning: list[str] = Field(default_factory=list, description="판단 근거")

    @classmethod
    def from_breakdown(
        cls, breakdown: ScoreBreakdown, reasoning: list[str]
    ) -> "ScoringResult":
        return cls(score=breakdown.total(), breakdown=breakdown, reasoning=reasoning)


class SimpleAnalysis(BaseModel):
    """AI 없이 수행한 휴리스틱 분석 결과."""

    completion_score: int = Field(ge=0, le=10, description="완성도 점수 (0-10)")
    description: str = Field(description="생성된 설명")
    todos: list[str] = Field(default_factory=list, max_length=8)
    categories: list[str] = Field(default_factory=list, max_length=3)
    reasoning: list[str] = Field(default_factory=list)


class AIAnalysis(BaseModel):
    """AI 분석 결과."""

    summary: str = Field(description="프로젝트 요약")
    todos: list[str] = Field(default_factory=list, max_length=5)
    categories: list[str] = Field(default_factory=list, max_length=2)
    used_ai: bool = Field(default=False, description="AI 응답을 사용했는지 여부")


class Project(BaseModel):
    """저장되는 프로젝트 레코드.

    저장 시 camelCase 키를 사용한다 (예: ``lastUpdate``, ``scoreBreakdown``).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(description="저장소 숫자 ID (문자열)")
    title: str = Field(default="Untitled Project")
    description: str = Field(default="")
    language: str = Field(default="Other")
    stars: int = Field(default=0)
    forks: int = Field(default=0)
    last_update: datetime | None = Field(default=None)
    created_at: datetime | None = Field(default=None)
    github_url: str = Field(default="")
    owner: str = Field(default="")
    repo: str = Field(default="")
    score: float = Field(default=0, ge=0, le=12)
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    score_reasoning: list[str] = Field(default_factory=list)
    readme_summary: str = Field(default="")
    todos: list[str] = Field(default_factory=list, max_length=8)
    topics: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list, max_length=3)
    license: str | None = Field(default=None)
    commits: int = Field(default=0)
    lines_of_code: int = Field(default=0)
    views: int = Field(default=0, ge=0)
    default_branch: str = Field(default="main")

    # 설명 자동 업데이트
    korean_description: str | None = Field(default=None)
    english_description: str | None = Field(default=None)
    is_description_updated: bool = Field(default=False)
    last_description_update: datetime | None = Field(default=None)
    last_description_update_attempt: datetime | None = Field(default=None)

    # 요약 업데이트
    enhanced_description: str | None = Field(default=None)
    last_summary_update: datetime | None = Field(default=None)

    updated_at: datetime | None = Field(default=None)
    added_by: str | None = Field(default=None)

    def to_record(self) -> dict[str, Any]:
        """저장용 딕셔너리로 변환한다."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CrawlState(str, Enum):
    """크롤링 단계."""

    idle = "idle"
    searching = "searching"
    scoring = "scoring"
    filtering = "filtering"
    processing = "processing"
    done = "done"
    error = "error"


class CrawlProgress(BaseModel):
    """크롤링 진행 상황."""

    step: CrawlState
    percent: float = Field(ge=0, le=100)
    message: str


class CrawlResult(BaseModel):
    """크롤링 실행 결과."""

    state: CrawlState = Field(default=CrawlState.idle)
    discovered: int = Field(default=0, description="검색된 저장소 수")
    new: int = Field(default=0, description="새 저장소 수")
    qualified: int = Field(default=0, description="점수 기준 통과 수")
    processed: int = Field(default=0, description="처리 시도 수")
    succeeded: int = Field(default=0, description="저장 성공 수")
    refreshed: int = Field(default=0, description="메타데이터만 갱신한 수")
    saved_ids: list[str] = Field(default_factory=list)
    rate_limited: bool = Field(default=False)


class LogEntry(BaseModel):
    """UI용 로그 항목."""

    timestamp: datetime
    level: Literal["info", "warn", "error", "success"]
    message: str
    details: Any | None = None


class UsageStats(BaseModel):
    """AI API 사용량."""

    minute_requests: int
    max_minute_requests: int
    daily_requests: int
    max_daily_requests: int


class KeyPoolStats(BaseModel):
    """API 키 풀 상태."""

    total: int
    failed: int
    available: int


class ProjectSummary(BaseModel):
    """요약 생성기가 만든 섹션별 요약."""

    korean_summary: str = ""
    english_summary: str = ""
    features: list[str] = Field(default_factory=list)
    technical: str = ""
    categories: list[str] = Field(default_factory=list)
    raw: str = ""


class SummaryUpdateResult(BaseModel):
    """단일 요약 업데이트 결과."""

    updated: bool = False
    project_id: str | None = None
    project_name: str | None = None


class SummaryUpdaterStatus(BaseModel):
    """요약 업데이트 서비스 상태."""

    is_running: bool
    last_run: datetime | None
    processed_today: int
    status: Literal["idle", "processing", "error"]
    daily_calls: int
    minute_calls: int


class DescriptionUpdaterStatus(BaseModel):
    """설명 업데이트 서비스 상태."""

    is_running: bool
    last_run_time: datetime | None
    processed_count: int
    success_count: int
    failure_count: int
