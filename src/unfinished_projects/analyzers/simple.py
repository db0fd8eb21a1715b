"""AI 없이 동작하는 휴리스틱 분석기."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from unfinished_projects import heuristics
from unfinished_projects.logbuffer import SUCCESS
from unfinished_projects.models import GitHubRepository, SimpleAnalysis
from unfinished_projects.ratelimit import Clock

logger = logging.getLogger(__name__)

MAX_TODOS = 8
MAX_CATEGORIES = 3


@dataclass
class _PartialAnalysis:
    score: int = 0
    todos: list[str] = field(default_factory=list)
    reasoning: list[str] = field(default_factory=list)


class SimpleAnalyzer:
    """README와 저장소 메타데이터로 설명, TODO, 카테고리를 만든다."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or Clock()

    def analyze_project(self, repository: GitHubRepository, readme: str) -> SimpleAnalysis:
        logger.info(f"간단 분석 시작: {repository.full_name}")

        readme_part = self._analyze_readme(readme)
        repo_part = self._analyze_repository(repository, self.clock.now())
        language_todos = heuristics.language_todos(repository.language)
        categories = heuristics.infer_categories(
            repository.description,
            readme,
            repository.topics,
            repository.language,
            limit=MAX_CATEGORIES,
        )

        total = readme_part.score + repo_part.score
        analysis = SimpleAnalysis(
            completion_score=min(10, total),
            description=self._generate_description(repository, total),
            todos=[*readme_part.todos, *language_todos][:MAX_TODOS],
            categories=categories,
            reasoning=[*readme_part.reasoning, *repo_part.reasoning],
        )

        logger.log(
            SUCCESS,
            f"간단 분석 완료: {repository.full_name} (점수: {analysis.completion_score})",
        )
        return analysis

    def _analyze_readme(self, readme: str) -> _PartialAnalysis:
        result = _PartialAnalysis()

        tier = heuristics.readme_length_tier(len(readme))
        result.score += tier
        if tier == 2:
            result.reasoning.append("상세한 README 문서")
        elif tier == 1:
            result.reasoning.append("기본적인 README 문서")

        sections = heuristics.readme_sections(readme)
        checks = [
            ("installation", "설치 가이드 포함", "설치 가이드 작성"),
            ("usage", "사용법 예제 포함", "사용법 예제 추가"),
            ("features", "기능 설명 포함", "주요 기능 설명 추가"),
        ]
        for key, present, missing in checks:
            if sections[key]:
                result.score += 1
                result.reasoning.append(present)
            else:
                result.todos.append(missing)

        markers = heuristics.count_todo_markers(readme)
        if markers:
            result.todos.append(f"코드 내 {markers}개의 TODO 항목 해결")
            result.reasoning.append(f"{markers}개의 미완성 항목 발견")

        return result

    def _analyze_repository(
        self, repository: GitHubRepository, now: datetime
    ) -> _PartialAnalysis:
        result = _PartialAnalysis()

        stars = repository.stargazers_count
        points = heuristics.star_points(stars)
        result.score += points
        if points == 2:
            result.reasoning.append(f"높은 관심도 ({stars} stars)")
        elif points == 1:
            result.reasoning.append(f"적당한 관심도 ({stars} stars)")

        months = heuristics.months_since(repository.updated_at, now)
        points = heuristics.recency_points(months, full_within=3, partial_within=6)
        result.score += points
        if points == 2:
            result.reasoning.append("최근 3개월 내 활동")
        elif points == 1:
            result.reasoning.append("최근 6개월 내 활동")

        if repository.license:
            result.score += 1
            result.reasoning.append(f"라이선스 명시 ({repository.license.name})")

        if repository.open_issues_count > 0:
            result.score += 1
            result.reasoning.append("활발한 이슈 활동")

        return result

    def _generate_description(self, repository: GitHubRepository, total: int) -> str:
        language = repository.language or "Unknown"
        parts = [f"{language}로 개발된 프로젝트입니다."]
        if repository.description:
            parts.append(repository.description)

        if total >= 8:
            parts.append("비교적 완성도가 높은 프로젝트로, 추가 기능 구현이나 개선 작업에 적합합니다.")
        elif total >= 5:
            parts.append("기본 구조가 갖춰진 프로젝트로, 추가 개발을 통해 완성할 수 있습니다.")
        else:
            parts.append("초기 단계의 프로젝트로, 많은 개발 작업이 필요합니다.")

        return " ".join(parts)
