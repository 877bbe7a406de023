"""Diagnostic command line: run one result session against the configured backend."""

import argparse
import asyncio
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from resultpoll.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from resultpoll.adapters.key_value_store_inmemory import InMemoryKeyValueStore
from resultpoll.app_factory import create_cache, create_services
from resultpoll.core.logging_config import configure_logging
from resultpoll.core.managers.result_cache import ResultCache
from resultpoll.core.models.view import ResultView, ViewStatus
from resultpoll.core.settings import PollerSettings, app_settings, logger

console = Console()


class ConsoleObserver:
    """Prints every announced view transition."""

    async def on_stage_resolved(self, view: ResultView) -> None:
        render_view(view)

    async def on_advice_unavailable(self, view: ResultView) -> None:
        console.print("[yellow]Advice is not available right now; the score above stands.[/yellow]")

    async def on_failed(self, view: ResultView) -> None:
        console.print(f"[bold red]Error:[/bold red] {view.error}")


def render_view(view: ResultView) -> None:
    if view.result is None:
        return
    source = " (cached)" if view.from_cache else ""
    table = Table(title=f"Result {view.job_id}{source}", show_header=False)
    table.add_row("status", str(view.status))
    table.add_row("score", f"{view.result.score:.1f}")
    table.add_row("category", view.result.category)
    if view.result.analysis:
        table.add_row("analysis", view.result.analysis)
    if view.advice is not None:
        table.add_row("advice", view.advice.description)
        for key, factor in view.advice.factors.items():
            table.add_row(f"  {key}", "\n".join(factor.advices) or "-")
    elif view.status == ViewStatus.loading_advice:
        table.add_row("advice", "[dim]loading...[/dim]")
    console.print(table)


def parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="resultpoll",
        description="Poll a questionnaire job until its score and advice are available.",
    )
    parser.add_argument("job_id", help="job identifier returned by the submission endpoint")
    parser.add_argument("--base-url", default=None, help="override RESULTPOLL_BASE_URL")
    parser.add_argument("--max-attempts", type=int, default=None)
    parser.add_argument("--interval-ms", type=int, default=None)
    parser.add_argument("--no-cache", action="store_true", help="use a throwaway in-memory cache")
    parser.add_argument("--evict", action="store_true", help="drop the cached result before polling")
    parser.add_argument("--prune", action="store_true", help="remove expired cache entries before polling")
    parser.add_argument("--log-level", default=None)
    parser.add_argument("--show-settings", action="store_true")
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace, base: PollerSettings) -> PollerSettings:
    overrides = {}
    if args.base_url:
        overrides["RESULTPOLL_BASE_URL"] = args.base_url.rstrip("/")
    if args.max_attempts is not None:
        overrides["RESULTPOLL_MAX_ATTEMPTS"] = args.max_attempts
    if args.interval_ms is not None:
        overrides["RESULTPOLL_INTERVAL_MS"] = args.interval_ms
    if args.log_level:
        overrides["RESULTPOLL_LOG_LEVEL"] = args.log_level
    return base.model_copy(update=overrides)


async def run(args: argparse.Namespace, settings: PollerSettings) -> int:
    if args.no_cache:
        cache = ResultCache(InMemoryKeyValueStore())
    else:
        cache = create_cache(settings)
    if args.evict:
        cache.evict(args.job_id)
    if args.prune:
        evicted = cache.prune()
        console.print(f"Pruned {len(evicted)} cached result(s)")

    async with AioHttpClientAdapter(default_timeout=settings.RESULTPOLL_REQUEST_TIMEOUT) as client:
        services = create_services(client, settings, cache=cache)
        async with services.session(observers=[ConsoleObserver()]) as session:
            with console.status("Calculating score..."):
                view = await session.load(args.job_id)
            if not view.status.is_terminal:
                with console.status("Waiting for advice..."):
                    view = await session.wait_for_advice()

    if view is None or view.status == ViewStatus.error:
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = settings_from_args(args, app_settings)
    configure_logging(settings.RESULTPOLL_LOG_LEVEL)
    if args.show_settings:
        settings.print_settings(logger)
    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
