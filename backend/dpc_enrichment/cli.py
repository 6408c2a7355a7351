"""Shared command-line plumbing for the pass scripts in backend/scripts/.

Every script accepts the same flags:

    --limit N          process at most N items
    --start N          skip the first N items (resume after a crash)
    --dry-run          read from Supabase, log writes instead of making them
    --report           print the coverage report and exit
    --headless=false   watch the browser (passes that render pages)
    --force            revisit rows that already have data (where supported)

Exit status is 0 when the run completes, 1 on a setup failure.
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack

import httpx

from dpc_enrichment.core.config import settings
from dpc_enrichment.core.errors import FatalSetupFailure
from dpc_enrichment.core.supabase import create_client
from dpc_enrichment.fetchers.rendering import HttpxRenderer, PlaywrightRenderer, build_http_client
from dpc_enrichment.pipeline.runner import PipelinePass, PipelineRunner
from dpc_enrichment.services.geocoding import GeocodingClient
from dpc_enrichment.services.report import print_coverage_report
from dpc_enrichment.store.repository import DryRunStore, ProviderStore, SupabaseProviderStore

logger = logging.getLogger(__name__)


class Resources:
    """Network resources a pass may need, opened on first use and closed with the run."""

    def __init__(self, stack: AsyncExitStack, headless: bool = True):
        self._stack = stack
        self.headless = headless
        self._http: httpx.AsyncClient | None = None
        self._renderer: PlaywrightRenderer | None = None

    async def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = await self._stack.enter_async_context(build_http_client())
        return self._http

    async def renderer(self) -> PlaywrightRenderer:
        if self._renderer is None:
            try:
                self._renderer = await self._stack.enter_async_context(
                    PlaywrightRenderer(headless=self.headless)
                )
            except Exception as exc:
                raise FatalSetupFailure(f"Could not launch browser: {exc}") from exc
        return self._renderer

    async def static_renderer(self) -> HttpxRenderer:
        return HttpxRenderer(await self.http())

    async def geocoder(self) -> GeocodingClient:
        return GeocodingClient(await self.http())


PassFactory = Callable[[ProviderStore, Resources, argparse.Namespace], Awaitable[PipelinePass]]


def build_parser(description: str, *, force: bool = False) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Process at most N items. Default: all.",
    )
    parser.add_argument(
        "--start",
        type=int,
        default=0,
        help="Skip the first N items of the worklist (resume point).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview what would be written without writing to Supabase",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Print the coverage report and exit",
    )
    parser.add_argument(
        "--headless",
        type=lambda x: x.lower() != "false",
        default=settings.HEADLESS,
        help="Run browser headlessly. Use --headless=false to watch the browser.",
    )
    if force:
        parser.add_argument(
            "--force",
            action="store_true",
            help="Revisit rows that already have data",
        )
    return parser


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


async def open_store(dry_run: bool) -> ProviderStore:
    """Raises FatalSetupFailure when Supabase is not configured."""
    store: ProviderStore = SupabaseProviderStore(await create_client())
    if dry_run:
        print("DRY RUN — no data will be written to Supabase\n")
        store = DryRunStore(store)
    return store


async def run(args: argparse.Namespace, factory: PassFactory) -> int:
    """Run one pass end to end and return the process exit status."""
    try:
        store = await open_store(args.dry_run)

        if args.report:
            print_coverage_report(await store.list_all())
            return 0

        async with AsyncExitStack() as stack:
            resources = Resources(stack, headless=args.headless)
            pipeline_pass = await factory(store, resources, args)
            runner = PipelineRunner(start=args.start, limit=args.limit)
            await runner.run(pipeline_pass)
    except FatalSetupFailure as exc:
        print(f"\nERROR: {exc}")
        return 1

    if isinstance(store, DryRunStore):
        print(f"  Dry run: {len(store.writes)} writes skipped")
    print()
    return 0


def main(description: str, factory: PassFactory, *, force: bool = False) -> None:
    parser = build_parser(description, force=force)
    args = parser.parse_args()
    configure_logging()
    sys.exit(asyncio.run(run(args, factory)))
