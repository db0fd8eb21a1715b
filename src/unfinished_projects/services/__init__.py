"""크롤링과 백그라운드 작업 서비스."""

from unfinished_projects.services.crawler import ProjectCrawler
from unfinished_projects.services.description_updater import DescriptionUpdater
from unfinished_projects.services.projects import ProjectService
from unfinished_projects.services.summary_updater import SummaryGenerator, SummaryUpdater

__all__ = [
    "DescriptionUpdater",
    "ProjectCrawler",
    "ProjectService",
    "SummaryGenerator",
    "SummaryUpdater",
]
