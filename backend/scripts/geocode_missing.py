"""Fill coordinates for every row that has none.

Tries the address text first, then Nominatim (street address, then
city + state), then the ZIP centroid. Pacing comes from the geocoder rate
limits (1.2s Nominatim, 0.3s ZIP lookup).

USAGE:
    cd backend
    uv run scripts/geocode_missing.py
    uv run scripts/geocode_missing.py --limit 50 --dry-run
"""

import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure 'dpc_enrichment.*' imports resolve when running as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

# backend/.env must be loaded before dpc_enrichment.core.config reads the environment
load_dotenv(Path(__file__).parent.parent / ".env")

from dpc_enrichment.cli import main  # noqa: E402
from dpc_enrichment.pipeline.passes import GeocodeMissingPass  # noqa: E402
from dpc_enrichment.services.location import LocationResolver  # noqa: E402


async def build_pass(store, resources, args):
    return GeocodeMissingPass(store, LocationResolver(await resources.geocoder()))


if __name__ == "__main__":
    main("Geocode providers that have no coordinates", build_pass)
