"""CLI 엔트리포인트."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from unfinished_projects.analyzers import GeminiAnalyzer, SimpleAnalyzer
from unfinished_projects.config import settings
from unfinished_projects.errors import PermissionDeniedError
from unfinished_projects.keys import ApiKeyPool
from unfinished_projects.logbuffer import attach_log_buffer
from unfinished_projects.models import CrawlProgress, CrawlResult, LogEntry, Project
from unfinished_projects.scoring import ScoringEngine
from unfinished_projects.services import (
    DescriptionUpdater,
    ProjectCrawler,
    SummaryGenerator,
    SummaryUpdater,
)
from unfinished_projects.sources import GitHubClient
from unfinished_projects.storage import ProjectRepository, build_store

console = Console()

app = typer.Typer(
    name="unfinished-projects",
    help="GitHub에서 완성되지 않은 오픈소스 프로젝트를 찾아 점수를 매깁니다.",
    no_args_is_help=True,
)

_LEVEL_STYLES = {"info": "dim", "warn": "yellow", "error": "red", "success": "green"}


def _run(coro_factory: Callable[[], Awaitable[Any]]) -> None:
    """비동기 명령을 실행하고 오류를 종료 코드로 바꾼다."""
    try:
        asyncio.run(coro_factory())
    except KeyboardInterrupt:
        console.print("\n[dim]중단됨[/dim]")
        raise typer.Exit(0) from None
    except PermissionDeniedError as e:
        console.print(f"[red]권한 없음: {e}[/red]")
        raise typer.Exit(2) from e
    except Exception as e:
        console.print(f"[red]오류 발생: {e}[/red]")
        raise typer.Exit(1) from e


async def _open_repository() -> ProjectRepository:
    store = build_store()
    status = await store.refresh_connection()
    console.print(f"[dim]저장소 연결 상태: {status.value}[/dim]")
    return ProjectRepository(store)


def _render_projects(projects: list[Project], title: str) -> None:
    if not projects:
        console.print("\n[yellow]표시할 프로젝트가 없습니다.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan", expand=True)
    table.add_column("#", style="dim", width=3)
    table.add_column("프로젝트", style="bold")
    table.add_column("언어", width=12)
    table.add_column("⭐ Stars", justify="right", width=8)
    table.add_column("점수", justify="center", width=8)
    table.add_column("카테고리")

    for i, project in enumerate(projects, 1):
        score_style = "green" if project.score >= 8 else "yellow" if project.score >= 5 else "red"
        table.add_row(
            str(i),
            f"[link={project.github_url}]{project.owner}/{project.repo}[/link]",
            project.language,
            f"{project.stars:,}",
            f"[{score_style}]{project.score:g}/12[/]",
            ", ".join(project.categories) or "-",
        )
    console.print(table)


def _render_crawl_result(result: CrawlResult) -> None:
    table = Table(show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column(justify="right")
    table.add_row("상태", result.state.value)
    table.add_row("검색된 저장소", str(result.discovered))
    table.add_row("새 저장소", str(result.new))
    table.add_row("기준 통과", str(result.qualified))
    table.add_row("처리 / 성공", f"{result.processed} / {result.succeeded}")
    table.add_row("메타데이터 갱신", str(result.refreshed))
    if result.rate_limited:
        table.add_row("한도 도달", "[yellow]예[/yellow]")
    console.print(Panel(table, title="[bold blue]크롤링 결과[/bold blue]", border_style="blue"))


async def _crawl() -> None:
    repository = await _open_repository()
    buffer = attach_log_buffer()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("크롤링 준비 중...", total=100)

        def on_progress(event: CrawlProgress) -> None:
            progress.update(task, completed=event.percent, description=event.message)

        def on_log(entries: list[LogEntry]) -> None:
            if entries:
                latest = entries[0]
                style = _LEVEL_STYLES[latest.level]
                progress.console.print(f"[{style}]{latest.message}[/{style}]")

        unsubscribe = buffer.subscribe(on_log)
        try:
            async with GitHubClient() as github:
                crawler = ProjectCrawler(
                    github=github,
                    scoring=ScoringEngine(github, delay=settings.crawl_score_delay),
                    simple=SimpleAnalyzer(),
                    ai=GeminiAnalyzer(),
                    repository=repository,
                    progress_callback=on_progress,
                )
                result = await crawler.process_new_projects()
        finally:
            unsubscribe()

    _render_crawl_result(result)
    if result.saved_ids:
        saved = [await repository.get_project(pid) for pid in result.saved_ids]
        _render_projects([p for p in saved if p is not None], "새로 추가된 프로젝트")


async def _score(owner: str, repo: str) -> None:
    full_name = f"{owner}/{repo}"
    async with GitHubClient() as github:
        with console.status(f"{full_name} 점수 계산 중..."):
            result = await ScoringEngine(github).score_project(owner, repo)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("항목")
    table.add_column("점수", justify="right")
    for name, value in result.breakdown.model_dump().items():
        table.add_row(name, f"{value:g}")
    table.add_row("[bold]총점[/bold]", f"[bold]{result.score:g}/12[/bold]")
    console.print(table)
    for reason in result.reasoning:
        console.print(f"  • {reason}")


async def _projects(query: str | None, limit: int) -> None:
    repository = await _open_repository()
    if query:
        projects = await repository.search_projects(query)
    else:
        projects = await repository.get_projects()
    projects.sort(key=lambda p: p.score, reverse=True)
    _render_projects(projects[:limit], f"프로젝트 ({len(projects)}개)")


async def _describe(project_id: str | None, watch: bool, uid: str | None) -> None:
    repository = await _open_repository()
    updater = DescriptionUpdater(repository, GeminiAnalyzer())

    if project_id:
        ok = await updater.update_project(project_id)
        console.print("[green]설명 업데이트 완료[/green]" if ok else "[red]설명 업데이트 실패[/red]")
        return

    await updater.start(uid)
    try:
        while watch and updater.is_running:
            await asyncio.sleep(1)
    finally:
        await updater.stop()

    status = updater.status()
    console.print(
        f"처리 {status.processed_count}개 / 성공 {status.success_count}개 / "
        f"실패 {status.failure_count}개"
    )


async def _summarize(uid: str | None) -> None:
    repository = await _open_repository()
    updater = SummaryUpdater(SummaryGenerator(repository))
    result = await updater.process(uid)
    if result is None:
        console.print("[yellow]이미 실행 중입니다.[/yellow]")
    elif result.updated:
        console.print(f"[green]요약 업데이트 완료: {result.project_name}[/green]")
    else:
        console.print("[yellow]처리할 프로젝트가 없거나 API 한도에 도달했습니다.[/yellow]")


async def _status() -> None:
    repository = await _open_repository()
    usage = GeminiAnalyzer().usage_stats()
    pool = ApiKeyPool()
    keys = pool.stats()
    stats = await repository.get_record("system/summary-updater-stats") or {}

    table = Table(show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("저장소 연결", repository.connection_status.value)
    table.add_row("GitHub 토큰", "설정됨" if settings.github_token else "[yellow]없음[/yellow]")
    table.add_row(
        "AI 사용량",
        f"분당 {usage.minute_requests}/{usage.max_minute_requests}, "
        f"일일 {usage.daily_requests}/{usage.max_daily_requests}",
    )
    table.add_row(
        "Gemini 키", f"전체 {keys.total}, 사용 가능 {keys.available}, 실패 {keys.failed}"
    )
    for masked in pool.masked_keys():
        table.add_row("", f"[dim]{masked}[/dim]")
    table.add_row("요약 업데이트 총계", str(stats.get("totalUpdates", 0)))
    table.add_row("마지막 요약 대상", str(stats.get("lastUpdatedProject", "-")))
    console.print(Panel(table, title="[bold blue]시스템 상태[/bold blue]", border_style="blue"))


@app.command()
def crawl() -> None:
    """GitHub에서 새 미완성 프로젝트를 찾아 분석하고 저장합니다."""
    _run(_crawl)


@app.command()
def score(
    full_name: Annotated[str, typer.Argument(help="OWNER/REPO 형식의 저장소 이름")],
) -> None:
    """저장소 하나의 완성도 점수를 계산합니다."""
    owner, _, repo = full_name.partition("/")
    if not owner or not repo:
        raise typer.BadParameter("OWNER/REPO 형식으로 입력하세요.")
    _run(lambda: _score(owner, repo))


@app.command()
def projects(
    query: Annotated[
        str | None, typer.Option("--query", "-q", help="제목/설명/언어/토픽 검색어")
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="표시할 최대 개수")] = 20,
) -> None:
    """저장된 프로젝트를 점수 순으로 보여줍니다."""
    _run(lambda: _projects(query, limit))


@app.command()
def describe(
    project_id: Annotated[
        str | None, typer.Option("--project", "-p", help="이 프로젝트만 업데이트")
    ] = None,
    watch: Annotated[
        bool, typer.Option("--watch", "-w", help="중지할 때까지 주기적으로 실행")
    ] = False,
    uid: Annotated[str | None, typer.Option("--uid", help="관리자 UID")] = None,
) -> None:
    """AI로 프로젝트의 한국어/영어 설명을 업데이트합니다."""
    _run(lambda: _describe(project_id, watch, uid))


@app.command()
def summarize(
    uid: Annotated[str | None, typer.Option("--uid", help="관리자 UID")] = None,
) -> None:
    """가장 오래된 프로젝트 하나의 요약을 새로 생성합니다."""
    _run(lambda: _summarize(uid))


@app.command()
def status() -> None:
    """저장소 연결, API 사용량, 키 상태를 보여줍니다."""
    _run(_status)


if __name__ == "__main__":
    app()
