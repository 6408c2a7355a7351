"""Find each practice's own website with a web search.

Only rows with no website (or a directory listing URL standing in for one)
are searched. Directory and aggregator sites are never accepted.

USAGE:
    cd backend
    uv run scripts/discover_websites.py
    uv run scripts/discover_websites.py --limit 20 --dry-run
"""

import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure 'dpc_enrichment.*' imports resolve when running as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

# backend/.env must be loaded before dpc_enrichment.core.config reads the environment
load_dotenv(Path(__file__).parent.parent / ".env")

from dpc_enrichment.cli import main  # noqa: E402
from dpc_enrichment.fetchers.search import SearchClient  # noqa: E402
from dpc_enrichment.pipeline.passes import DiscoverWebsitesPass  # noqa: E402


async def build_pass(store, resources, args):
    return DiscoverWebsitesPass(store, SearchClient(await resources.http()))


if __name__ == "__main__":
    main("Discover practice websites via web search", build_pass)
