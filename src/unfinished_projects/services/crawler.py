"""미완성 프로젝트 크롤링 파이프라인."""

import logging
from collections.abc import Callable

from unfinished_projects.analyzers import GeminiAnalyzer, SimpleAnalyzer
from unfinished_projects.config import settings
from unfinished_projects.errors import RateLimitExceeded
from unfinished_projects.logbuffer import SUCCESS
from unfinished_projects.models import (
    CrawlProgress,
    CrawlResult,
    CrawlState,
    GitHubRepository,
    Project,
    ScoringResult,
)
from unfinished_projects.ratelimit import Clock
from unfinished_projects.scoring import ScoringEngine
from unfinished_projects.sources.base import RepositorySource
from unfinished_projects.storage.projects import ProjectRepository

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[CrawlProgress], None]


class ProjectCrawler:
    """검색, 점수 계산, 필터링, 분석, 저장을 순서대로 수행한다.

    실행 상태는 저장하지 않으며 재시작 시 처음부터 다시 실행한다.
    """

    def __init__(
        self,
        github: RepositorySource,
        scoring: ScoringEngine,
        simple: SimpleAnalyzer,
        ai: GeminiAnalyzer,
        repository: ProjectRepository,
        clock: Clock | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """
        Args:
            github: GitHub 클라이언트
            scoring: 점수 계산기
            simple: 휴리스틱 분석기
            ai: AI 분석기
            repository: 프로젝트 저장소
            clock: 시계
            progress_callback: 진행 상황을 받을 콜백
        """
        self.github = github
        self.scoring = scoring
        self.simple = simple
        self.ai = ai
        self.repository = repository
        self.clock = clock or Clock()
        self.progress_callback = progress_callback

        self.max_projects = settings.crawl_max_projects
        self.min_score = settings.crawl_min_score
        self.fallback_min_score = settings.crawl_fallback_min_score
        self.refresh_limit = settings.crawl_refresh_limit
        self.ai_delay = settings.crawl_ai_delay
        self.simple_delay = settings.crawl_simple_delay
        self.refresh_delay = settings.crawl_refresh_delay

    def _progress(self, step: CrawlState, percent: float, message: str) -> None:
        logger.info(f"[{step.value}] {message} ({round(percent)}%)")
        if self.progress_callback:
            self.progress_callback(CrawlProgress(step=step, percent=percent, message=message))

    async def process_new_projects(self) -> CrawlResult:
        """크롤링을 한 번 실행한다.

        검색 단계에서 한도에 걸리면 오류 없이 종료한다. 그 밖의 예외는
        ``error`` 상태를 알린 뒤 다시 던진다.
        """
        result = CrawlResult()
        try:
            logger.info("=== 프로젝트 크롤링 시작 ===")
            self._progress(CrawlState.idle, 0, "GitHub 프로젝트 검색을 시작합니다...")

            existing_ids = await self.repository.get_project_ids()
            logger.info(f"기존 프로젝트 {len(existing_ids)}개 확인됨")

            usage = self.ai.usage_stats()
            logger.info(
                f"AI API 사용량: 분당 {usage.minute_requests}/{usage.max_minute_requests}, "
                f"일일 {usage.daily_requests}/{usage.max_daily_requests}"
            )

            result.state = CrawlState.searching
            self._progress(CrawlState.searching, 10, "GitHub API에서 미완성 프로젝트를 검색 중...")
            try:
                repositories = await self.github.find_unfinished_projects()
            except RateLimitExceeded:
                logger.warning("GitHub API 한도 도달. 기존 프로젝트로 진행합니다.")
                result.state = CrawlState.done
                result.rate_limited = True
                self._progress(CrawlState.done, 30, "API 한도 도달로 기존 데이터를 사용합니다")
                return result

            result.discovered = len(repositories)
            logger.log(SUCCESS, f"GitHub에서 {len(repositories)}개의 잠재적 프로젝트 발견")

            new_repositories = [repo for repo in repositories if str(repo.id) not in existing_ids]
            result.new = len(new_repositories)
            logger.info(
                f"새로운 프로젝트 {len(new_repositories)}개 발견 (전체 {len(repositories)}개 중)"
            )

            if not new_repositories:
                return await self._refresh_only(repositories, result)

            self._progress(
                CrawlState.searching, 30, f"{len(new_repositories)}개의 새로운 프로젝트를 발견했습니다"
            )

            result.state = CrawlState.scoring
            self._progress(CrawlState.scoring, 40, "프로젝트 점수를 계산 중...")
            scores = await self.scoring.batch_score(new_repositories)

            result.state = CrawlState.filtering
            qualified = self._qualify(new_repositories, scores, self.min_score)
            logger.log(
                SUCCESS,
                f"{len(qualified)}개 프로젝트가 점수 기준({self.min_score:g}점 이상)을 통과",
            )
            self._progress(
                CrawlState.filtering, 60, f"{len(qualified)}개의 프로젝트가 기준을 통과했습니다"
            )
            if not qualified:
                logger.warning("점수 기준을 통과한 프로젝트가 없습니다. 기준을 낮춰서 재시도합니다.")
                qualified = self._qualify(new_repositories, scores, self.fallback_min_score)
                if qualified:
                    logger.info(
                        f"낮은 기준({self.fallback_min_score:g}점 이상)으로 "
                        f"{len(qualified)}개 프로젝트 발견"
                    )
            result.qualified = len(qualified)

            await self._process_qualified(qualified, scores, result)
            return result
        except Exception:
            logger.exception("크롤링 프로세스 실패")
            result.state = CrawlState.error
            self._progress(CrawlState.error, 0, "크롤링 중 오류가 발생했습니다")
            raise

    @staticmethod
    def _qualify(
        repositories: list[GitHubRepository],
        scores: dict[str, ScoringResult],
        threshold: float,
    ) -> list[GitHubRepository]:
        return [
            repo
            for repo in repositories
            if repo.full_name in scores and scores[repo.full_name].score >= threshold
        ]

    async def _refresh_only(
        self, repositories: list[GitHubRepository], result: CrawlResult
    ) -> CrawlResult:
        """새 프로젝트가 없을 때 기존 프로젝트의 메타데이터만 갱신한다."""
        logger.info("새로운 프로젝트가 없지만 기존 프로젝트 업데이트를 시도합니다")
        recent = repositories[: self.refresh_limit]
        result.state = CrawlState.done
        if not recent:
            self._progress(CrawlState.done, 100, "처리할 프로젝트가 없습니다")
            return result

        self._progress(
            CrawlState.processing, 50, f"{len(recent)}개 프로젝트 정보를 업데이트합니다"
        )
        for repo in recent:
            try:
                existing = await self.repository.get_project(str(repo.id))
                if existing is not None:
                    await self.repository.save_project(
                        existing.model_copy(
                            update={
                                "stars": repo.stargazers_count,
                                "forks": repo.forks_count,
                                "last_update": repo.updated_at,
                                "topics": repo.topics or existing.topics,
                            }
                        )
                    )
                    result.refreshed += 1
                    logger.info(f"프로젝트 업데이트 완료: {repo.full_name}")
            except Exception as e:
                logger.error(f"프로젝트 업데이트 실패: {repo.full_name} ({e})")
            await self.clock.sleep(self.refresh_delay)

        logger.log(SUCCESS, f"{result.refreshed}개 프로젝트 업데이트 완료")
        self._progress(CrawlState.done, 100, f"{len(recent)}개 프로젝트가 업데이트되었습니다")
        return result

    async def _process_qualified(
        self,
        qualified: list[GitHubRepository],
        scores: dict[str, ScoringResult],
        result: CrawlResult,
    ) -> None:
        to_process = qualified[: self.max_projects]
        logger.info(f"{len(to_process)}개 프로젝트를 처리합니다")

        max_ai = min(len(to_process), self.ai.quota.remaining_daily)
        logger.info(f"AI 분석 가능한 프로젝트: {max_ai}개, 나머지는 간단 분석 사용")

        result.state = CrawlState.processing
        for index, repo in enumerate(to_process):
            self._progress(
                CrawlState.processing,
                60 + index / len(to_process) * 35,
                f"{repo.name} 프로젝트를 처리 중... ({index + 1}/{len(to_process)})",
            )
            result.processed += 1
            use_ai = index < max_ai
            try:
                used_ai = await self._process_project(repo, scores[repo.full_name], use_ai)
            except RateLimitExceeded:
                logger.warning("API 한도 도달로 크롤링을 중단합니다")
                result.rate_limited = True
                break
            except Exception as e:
                logger.error(f"프로젝트 처리 실패: {repo.full_name} ({e})")
                continue

            result.succeeded += 1
            result.saved_ids.append(str(repo.id))
            logger.log(SUCCESS, f"프로젝트 처리 완료: {repo.full_name}")
            await self.clock.sleep(self.ai_delay if used_ai else self.simple_delay)

        result.state = CrawlState.done
        logger.log(
            SUCCESS, f"=== 크롤링 완료: {result.succeeded}/{result.processed}개 프로젝트 성공 ==="
        )
        self._progress(
            CrawlState.done, 100, f"총 {result.succeeded}개의 새로운 프로젝트가 추가되었습니다!"
        )

    async def _process_project(
        self, repo: GitHubRepository, score: ScoringResult, use_ai: bool
    ) -> bool:
        """저장소 하나를 분석해서 저장한다. AI 분석을 사용했으면 True."""
        logger.info(f"프로젝트 데이터 수집: {repo.full_name}")
        readme = await self.github.fetch_readme(repo.owner, repo.repo)
        has_readme = readme is not None
        logger.info(f"README 존재 여부: {'있음' if has_readme else '없음'} - {repo.full_name}")
        if readme is None:
            readme = f"# {repo.repo}\n\n{repo.owner}/{repo.repo} 프로젝트입니다."

        used_ai = use_ai and has_readme
        if used_ai:
            logger.info(f"AI 분석 사용: {repo.full_name}")
            analysis = await self.ai.analyze_project_with_ai(repo, readme)
            summary, todos, categories = analysis.summary, analysis.todos, analysis.categories
        else:
            logger.info(f"간단 분석 사용: {repo.full_name}")
            simple = self.simple.analyze_project(repo, readme)
            summary, todos, categories = simple.description, simple.todos, simple.categories

        project = Project(
            id=str(repo.id),
            title=repo.name,
            description=repo.description or "No description available",
            language=repo.language or "Unknown",
            stars=repo.stargazers_count,
            forks=repo.forks_count,
            last_update=repo.updated_at,
            created_at=repo.created_at,
            github_url=repo.html_url,
            owner=repo.owner,
            repo=repo.repo,
            score=score.score,
            score_breakdown=score.breakdown,
            score_reasoning=score.reasoning,
            readme_summary=summary,
            todos=todos,
            topics=repo.topics,
            categories=categories,
            license=repo.license.name if repo.license else None,
            commits=0,
            lines_of_code=int(repo.size * 0.1),
            views=0,
            default_branch=repo.default_branch or "main",
        )
        await self.repository.save_project(project)
        return used_ai
