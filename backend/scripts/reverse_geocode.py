"""Fill address, city, state and ZIP for rows that have coordinates but no location.

Works the rows still on the Unknown/XX/00000 sentinel whose latitude and
longitude are set, asking Nominatim's reverse endpoint what is there. The
result passes the usual state, name-as-city and Maryland ZIP filters before
it is written; existing street addresses are never replaced. Pacing comes
from the Nominatim rate limit (1.2s), with a backoff on 429.

USAGE:
    cd backend
    uv run scripts/reverse_geocode.py
    uv run scripts/reverse_geocode.py --limit 25 --dry-run
"""

import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure 'dpc_enrichment.*' imports resolve when running as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

# backend/.env must be loaded before dpc_enrichment.core.config reads the environment
load_dotenv(Path(__file__).parent.parent / ".env")

from dpc_enrichment.cli import main  # noqa: E402
from dpc_enrichment.pipeline.passes import ReverseGeocodePass  # noqa: E402


async def build_pass(store, resources, args):
    return ReverseGeocodePass(store, await resources.geocoder())


if __name__ == "__main__":
    main("Reverse geocode providers that have coordinates but no location", build_pass)
