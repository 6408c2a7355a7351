"""Scrape the DPC Alliance physician directory.

Each profile becomes (or updates) a row in the dpca- id namespace. These
rows are never merged into the Frontier rows.

USAGE:
    cd backend
    uv run scripts/scrape_alliance.py
    uv run scripts/scrape_alliance.py --limit 10 --dry-run

REQUIREMENTS:
    - SUPABASE_URL and SUPABASE_SERVICE_KEY set in backend/.env
    - Playwright Chromium installed
"""

import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure 'dpc_enrichment.*' imports resolve when running as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

# backend/.env must be loaded before dpc_enrichment.core.config reads the environment
load_dotenv(Path(__file__).parent.parent / ".env")

from dpc_enrichment.cli import main  # noqa: E402
from dpc_enrichment.fetchers.alliance import AllianceFetcher  # noqa: E402
from dpc_enrichment.pipeline.passes import ScrapeAlliancePass  # noqa: E402
from dpc_enrichment.services.location import LocationResolver  # noqa: E402


async def build_pass(store, resources, args):
    fetcher = AllianceFetcher(await resources.renderer())
    resolver = LocationResolver(await resources.geocoder())
    return ScrapeAlliancePass(store, fetcher, resolver)


if __name__ == "__main__":
    main("Scrape the DPC Alliance directory into dpca- rows", build_pass)
