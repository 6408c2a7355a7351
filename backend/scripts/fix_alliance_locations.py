"""Repair dpca- rows whose location is unknown or a false positive.

Re-renders each profile and runs the text strategies again with the
stricter filters. Rows that still cannot be placed get the unknown
location (Unknown / XX / 00000) instead of a wrong one.

USAGE:
    cd backend
    uv run scripts/fix_alliance_locations.py
    uv run scripts/fix_alliance_locations.py --dry-run --limit 25
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
from dpc_enrichment.pipeline.passes import FixAllianceLocationsPass  # noqa: E402
from dpc_enrichment.services.location import LocationResolver  # noqa: E402


async def build_pass(store, resources, args):
    fetcher = AllianceFetcher(await resources.renderer())
    return FixAllianceLocationsPass(store, LocationResolver(), fetcher)


if __name__ == "__main__":
    main("Re-resolve unknown and false-positive locations on dpca- rows", build_pass)
