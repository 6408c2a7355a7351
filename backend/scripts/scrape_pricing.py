"""Scrape membership pricing from practice websites.

Visits the landing page, then /pricing, /membership, /fees and the other
usual sub-pages until a price turns up. Stored pricing is never replaced
by a lower-confidence result, even with --force.

USAGE:
    cd backend
    uv run scripts/scrape_pricing.py
    uv run scripts/scrape_pricing.py --force --limit 30   # revisit priced rows
    uv run scripts/scrape_pricing.py --report
"""

import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure 'dpc_enrichment.*' imports resolve when running as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

# backend/.env must be loaded before dpc_enrichment.core.config reads the environment
load_dotenv(Path(__file__).parent.parent / ".env")

from dpc_enrichment.cli import main  # noqa: E402
from dpc_enrichment.fetchers.practice_site import PracticeSiteFetcher  # noqa: E402
from dpc_enrichment.pipeline.passes import ScrapePricingPass  # noqa: E402


async def build_pass(store, resources, args):
    site_fetcher = PracticeSiteFetcher(await resources.static_renderer())
    return ScrapePricingPass(store, site_fetcher, force=args.force)


if __name__ == "__main__":
    main("Scrape membership pricing from practice websites", build_pass, force=True)
