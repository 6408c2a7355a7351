"""DPC Frontier mapper: map listing and per-practice pages."""

import logging

from dpc_enrichment.core.config import settings
from dpc_enrichment.core.errors import ParseFailure
from dpc_enrichment.extractors.frontier import parse_map_points
from dpc_enrichment.fetchers.rendering import PageRenderer
from dpc_enrichment.models.providers import FrontierPayload, MapPoint

logger = logging.getLogger(__name__)


class FrontierFetcher:
    def __init__(self, renderer: PageRenderer, base_url: str | None = None):
        self.renderer = renderer
        self.base_url = (base_url or settings.FRONTIER_BASE_URL).rstrip("/")

    def practice_url(self, practice_id: str) -> str:
        return f"{self.base_url}/practice/{practice_id}"

    async def list_map_points(self) -> list[MapPoint]:
        """Every practice marker on the map, in source order.

        Raises:
            FetchFailure: if the map page cannot be loaded.
            ParseFailure: if the page carries no __NEXT_DATA__ at all.
        """
        page = await self.renderer.render(self.base_url)
        next_data = page.next_data()
        if next_data is None:
            raise ParseFailure(f"{self.base_url} has no __NEXT_DATA__ block")
        points = parse_map_points(next_data)
        logger.info("Frontier map lists %d practices", len(points))
        return points

    async def fetch_practice(self, practice_id: str) -> FrontierPayload:
        """Render one practice page into a raw payload.

        Raises:
            FetchFailure: on network errors, timeouts or non-success status.
        """
        url = self.practice_url(practice_id)
        page = await self.renderer.render(url, wait_for="h1")
        return FrontierPayload(
            practice_id=practice_id,
            url=url,
            html=page.html,
            text=page.text,
            next_data=page.next_data(),
            json_ld=page.json_ld(),
        )
