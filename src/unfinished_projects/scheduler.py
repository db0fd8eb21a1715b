"""스케줄러 엔트리포인트 (GitHub Actions용)."""

import asyncio
import logging

from unfinished_projects.analyzers import GeminiAnalyzer, SimpleAnalyzer
from unfinished_projects.config import settings
from unfinished_projects.scoring import ScoringEngine
from unfinished_projects.services import (
    DescriptionUpdater,
    ProjectCrawler,
    SummaryGenerator,
    SummaryUpdater,
)
from unfinished_projects.sources import GitHubClient
from unfinished_projects.storage import ProjectRepository, build_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def run() -> None:
    """스케줄러 메인 로직."""
    logger.info("Starting unfinished-projects scheduler")

    # 1. 저장소 연결
    store = build_store()
    status = await store.refresh_connection()
    logger.info(f"Store connection: {status.value}")
    repository = ProjectRepository(store)
    ai = GeminiAnalyzer()

    # 2. 크롤링
    logger.info("Crawling GitHub for unfinished projects...")
    async with GitHubClient() as github:
        crawler = ProjectCrawler(
            github=github,
            scoring=ScoringEngine(github, delay=settings.crawl_score_delay),
            simple=SimpleAnalyzer(),
            ai=ai,
            repository=repository,
        )
        result = await crawler.process_new_projects()
    logger.info(
        f"Crawl finished: {result.succeeded} saved, {result.refreshed} refreshed "
        f"(rate limited: {result.rate_limited})"
    )

    # 3. 요약 업데이트 (1건)
    summary = await SummaryUpdater(SummaryGenerator(repository)).process()
    if summary and summary.updated:
        logger.info(f"Summary updated: {summary.project_name}")
    else:
        logger.info("No summary update this run")

    # 4. 설명 업데이트 (1회)
    if settings.auto_description_updater:
        logger.info("Running description updater tick...")
        await DescriptionUpdater(repository, ai).tick()
    else:
        logger.info("Description updater disabled, skipping")

    logger.info("Scheduler completed")


def main() -> None:
    """CLI 엔트리포인트."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
