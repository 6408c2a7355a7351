"""Scrape the DPC Frontier map into the provider table.

Reads every marker on the map, renders each practice page, and creates or
updates the canonical row for it (ids are Frontier's own practice ids).

USAGE:
    cd backend
    uv run scripts/scrape_frontier.py
    uv run scripts/scrape_frontier.py --limit 20 --dry-run
    uv run scripts/scrape_frontier.py --start 850        # resume after a crash
    uv run scripts/scrape_frontier.py --headless=false   # watch the browser

REQUIREMENTS:
    - SUPABASE_URL and SUPABASE_SERVICE_KEY set in backend/.env
    - Playwright Chromium installed (uv run playwright install chromium)
"""

import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure 'dpc_enrichment.*' imports resolve when running as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

# backend/.env must be loaded before dpc_enrichment.core.config reads the environment
load_dotenv(Path(__file__).parent.parent / ".env")

from dpc_enrichment.cli import main  # noqa: E402
from dpc_enrichment.fetchers.frontier import FrontierFetcher  # noqa: E402
from dpc_enrichment.pipeline.passes import ScrapeFrontierPass  # noqa: E402
from dpc_enrichment.services.location import LocationResolver  # noqa: E402


async def build_pass(store, resources, args):
    fetcher = FrontierFetcher(await resources.renderer())
    resolver = LocationResolver(await resources.geocoder())
    return ScrapeFrontierPass(store, fetcher, resolver)


if __name__ == "__main__":
    main("Scrape the DPC Frontier map into the provider table", build_pass)
