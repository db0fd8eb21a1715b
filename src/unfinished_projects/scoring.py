"""프로젝트 완성도 점수 계산 모듈."""

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from unfinished_projects import heuristics
from unfinished_projects.errors import RateLimitExceeded
from unfinished_projects.models import GitHubRepository, ScoreBreakdown, ScoringResult
from unfinished_projects.ratelimit import Clock
from unfinished_projects.sources.github import GitHubClient

logger = logging.getLogger(__name__)

MAX_SCORE = 12.0


@dataclass
class ScoringCriteria:
    """점수 계산 입력값."""

    commits: int
    stars: int
    has_readme: bool
    readme_length: int
    has_license: bool
    months_since_update: float
    has_issues_or_prs: bool
    code_structure: int
    todo_comments: int
    project_size: int  # 추정 코드 라인 수


def default_result(reasoning: str = "기본 분석만 수행됨") -> ScoringResult:
    """분석 실패 시 사용하는 기본 점수 (5점)."""
    breakdown = ScoreBreakdown(
        commits=1, popularity=1, documentation=1, structure=1, activity=1, potential=0
    )
    return ScoringResult.from_breakdown(breakdown, [reasoning])


def rate_limited_result() -> ScoringResult:
    """API 한도 도달 시 남은 저장소에 부여하는 기본 점수 (6점)."""
    breakdown = ScoreBreakdown(
        commits=1, popularity=1, documentation=1, structure=1, activity=1, potential=1
    )
    return ScoringResult.from_breakdown(breakdown, ["API 한도로 인한 기본 점수"])


def calculate_score(criteria: ScoringCriteria) -> ScoringResult:
    """여섯 개 항목의 점수를 합산한다."""
    reasoning: list[str] = []
    breakdown = ScoreBreakdown()

    # 커밋 (0-2)
    if 5 <= criteria.commits <= 30:
        breakdown.commits = 2
        reasoning.append(f"Good commit count ({criteria.commits})")
    elif criteria.commits >= 3:
        breakdown.commits = 1
        reasoning.append(f"Moderate commit count ({criteria.commits})")
    else:
        reasoning.append(f"Low commit count ({criteria.commits})")

    # 인기도 (0-2)
    breakdown.popularity = heuristics.star_points(criteria.stars)
    if breakdown.popularity == 2:
        reasoning.append(f"High popularity ({criteria.stars} stars)")
    elif breakdown.popularity == 1:
        reasoning.append(f"Some popularity ({criteria.stars} stars)")
    else:
        reasoning.append(f"Low popularity ({criteria.stars} stars)")

    # 문서화 (0-3)
    if criteria.has_readme:
        breakdown.documentation = 1 + heuristics.readme_length_tier(criteria.readme_length)
        reasoning.append(
            {3: "Comprehensive README", 2: "Good README", 1: "Basic README"}[
                int(breakdown.documentation)
            ]
        )
    else:
        reasoning.append("No README found")

    # 구조 (0-2)
    breakdown.structure = criteria.code_structure
    if criteria.code_structure == 2:
        reasoning.append("Well-organized code structure")
    elif criteria.code_structure == 1:
        reasoning.append("Basic code structure")
    else:
        reasoning.append("Poor code organization")

    # 활동성 (0-2)
    breakdown.activity = heuristics.recency_points(
        criteria.months_since_update, full_within=6, partial_within=12
    )
    if breakdown.activity == 2:
        reasoning.append("Recently active")
    elif breakdown.activity == 1:
        reasoning.append("Moderately recent activity")
    else:
        reasoning.append("Inactive for a long time")

    # 잠재력 (0-2, 0.5 단위)
    potential = 0.0
    if criteria.has_license:
        potential += 0.5
        reasoning.append("Has license")
    if criteria.has_issues_or_prs:
        potential += 0.5
        reasoning.append("Has issues/PRs")
    if criteria.todo_comments > 0:
        potential += 0.5
        reasoning.append("Contains TODO comments")
    if 100 <= criteria.project_size <= 2000:
        potential += 0.5
        reasoning.append("Good project size")
    # 총점 상한은 12점이므로 다른 항목이 모두 만점이면 잠재력에서 깎는다
    headroom = MAX_SCORE - (
        breakdown.commits
        + breakdown.popularity
        + breakdown.documentation
        + breakdown.structure
        + breakdown.activity
    )
    breakdown.potential = max(0.0, min(2.0, potential, headroom))

    return ScoringResult.from_breakdown(breakdown, reasoning)


class ScoringEngine:
    """저장소 메타데이터로 0-12점 완성도 점수를 계산한다.

    커밋 수와 TODO 수를 실제로 가져오지 않은 경우 난수 추정값을 쓴다.
    테스트에서는 시드가 고정된 ``random.Random``을 주입한다.
    """

    def __init__(
        self,
        github: GitHubClient | None = None,
        rng: random.Random | None = None,
        clock: Clock | None = None,
        delay: float = 0.1,
    ) -> None:
        """
        Args:
            github: GitHub 클라이언트 (메타데이터가 없을 때 조회용)
            rng: 추정값에 쓰는 난수 생성기
            clock: 시계
            delay: 배치 점수 계산 간 대기 (초)
        """
        self.github = github
        self.rng = rng or random.Random()
        self.clock = clock or Clock()
        self.delay = delay

    def _now(self) -> datetime:
        return self.clock.now()

    def build_criteria(
        self,
        repository: GitHubRepository,
        readme: str | None = None,
        contents: list[dict[str, Any]] | None = None,
        commits: list[dict[str, Any]] | None = None,
    ) -> ScoringCriteria:
        """주어진 데이터로 점수 입력값을 만든다. 없는 값은 추정한다."""
        if contents is not None:
            has_source_dir = any(
                item.get("type") == "dir"
                and str(item.get("name", "")).lower() in heuristics.SOURCE_DIRS
                for item in contents
            )
            has_manifest = any(
                item.get("name") in heuristics.MANIFEST_FILES for item in contents
            )
            structure = 2 if has_source_dir and has_manifest else int(has_source_dir or has_manifest)
            code_files = [
                item
                for item in contents
                if item.get("type") == "file"
                and str(item.get("name", "")).endswith(heuristics.CODE_EXTENSIONS)
            ]
            project_size = len(code_files) * 50
            todo_comments = self.rng.randrange(10)
        else:
            structure = 1 if repository.size > 100 else 0
            project_size = repository.size * 10
            todo_comments = self.rng.randrange(5)

        if commits is not None:
            commit_count = len(commits)
        else:
            commit_count = self.rng.randrange(30) + 5

        if readme is not None:
            has_readme = len(readme) > 0
            readme_length = len(readme)
        else:
            # 대부분의 프로젝트에 README가 있다고 가정
            has_readme = True
            readme_length = 500

        return ScoringCriteria(
            commits=commit_count,
            stars=repository.stargazers_count,
            has_readme=has_readme,
            readme_length=readme_length,
            has_license=repository.license is not None,
            months_since_update=heuristics.months_since(repository.updated_at, self._now()),
            has_issues_or_prs=repository.open_issues_count > 0,
            code_structure=structure,
            todo_comments=todo_comments,
            project_size=project_size,
        )

    def score_repository(
        self,
        repository: GitHubRepository,
        readme: str | None = None,
        contents: list[dict[str, Any]] | None = None,
        commits: list[dict[str, Any]] | None = None,
    ) -> ScoringResult:
        """이미 가진 데이터만으로 점수를 계산한다 (API 호출 없음)."""
        return calculate_score(self.build_criteria(repository, readme, contents, commits))

    async def score_project(
        self, owner: str, repo: str, repository: GitHubRepository | None = None
    ) -> ScoringResult:
        """프로젝트 점수를 계산한다.

        메타데이터가 주어지면 추가 API 호출을 생략한다. 조회 중 오류가 나면
        기본 점수를 반환하고, 한도 초과만 호출자에게 전파한다.
        """
        try:
            if repository is not None:
                return self.score_repository(repository)

            if self.github is None:
                raise ValueError("GitHub client is required to fetch repository data")

            repo_data = await self.github.get_repository(owner, repo)
            readme = await self.github.get_readme(owner, repo)
            commits = await self.github.get_commits(owner, repo)
            contents = await self.github.get_directory_contents(owner, repo)
            return self.score_repository(repo_data, readme, contents, commits)
        except RateLimitExceeded:
            raise
        except Exception as e:
            logger.error(f"Failed to score project {owner}/{repo}: {e}")
            return default_result()

    async def batch_score(
        self, repositories: list[GitHubRepository]
    ) -> dict[str, ScoringResult]:
        """저장소 목록의 점수를 순서대로 계산한다.

        한도에 걸리면 나머지 저장소 전부에 기본 점수를 부여한다.
        """
        results: dict[str, ScoringResult] = {}

        for index, repo in enumerate(repositories):
            try:
                results[repo.full_name] = await self.score_project(
                    repo.owner, repo.repo, repo
                )
            except RateLimitExceeded:
                logger.warning("점수 계산 중 API 한도 도달. 기본 점수를 사용합니다.")
                for remaining in repositories[index:]:
                    results[remaining.full_name] = rate_limited_result()
                break
            await self.clock.sleep(self.delay)

        return results
