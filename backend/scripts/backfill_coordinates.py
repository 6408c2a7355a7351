"""Copy DPC Frontier map coordinates onto rows that have none.

Reads the map markers, looks up each practice's name on its page, and
writes the marker's lat/lng to the single row (any source) whose name
matches and whose coordinates are still empty.

USAGE:
    cd backend
    uv run scripts/backfill_coordinates.py
    uv run scripts/backfill_coordinates.py --start 400 --limit 100
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
from dpc_enrichment.pipeline.passes import BackfillCoordinatesPass  # noqa: E402


async def build_pass(store, resources, args):
    return BackfillCoordinatesPass(store, FrontierFetcher(await resources.renderer()))


if __name__ == "__main__":
    main("Backfill coordinates from the DPC Frontier map", build_pass)
