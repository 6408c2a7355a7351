"""Tests for the Frontier, Alliance and practice-site fetchers over a fake renderer."""

import json
from unittest.mock import AsyncMock

import pytest

from dpc_enrichment.core.errors import FetchFailure, ParseFailure
from dpc_enrichment.fetchers.alliance import AllianceFetcher
from dpc_enrichment.fetchers.frontier import FrontierFetcher
from dpc_enrichment.fetchers.practice_site import PracticeSiteFetcher, normalize_website
from dpc_enrichment.fetchers.rendering import RenderedPage


class FakeRenderer:
    """Serves canned pages by URL; unknown URLs fail like a 404."""

    def __init__(self, pages: dict[str, str]):
        self.pages = pages
        self.calls: list[str] = []

    async def render(self, url, *, wait_for=None):
        self.calls.append(url)
        if url not in self.pages:
            raise FetchFailure("HTTP 404", url=url, status=404)
        html = self.pages[url]
        return RenderedPage(url=url, html=html, text=html)


def next_data_html(data: dict) -> str:
    return f'<html><body><script id="__NEXT_DATA__" type="application/json">{json.dumps(data)}</script></body></html>'


# ---------------------------------------------------------------------------
# FrontierFetcher
# ---------------------------------------------------------------------------


class TestFrontierFetcher:
    @pytest.mark.asyncio
    async def test_list_map_points(self):
        html = next_data_html({"props": {"pageProps": {"practices": [{"i": "p1", "l": 39.7, "g": -89.6}]}}})
        fetcher = FrontierFetcher(FakeRenderer({"https://map.test": html}), base_url="https://map.test/")

        points = await fetcher.list_map_points()

        assert [p.practice_id for p in points] == ["p1"]

    @pytest.mark.asyncio
    async def test_fetch_practice(self):
        html = "<html><body><h1>Example Family Medicine</h1></body></html>"
        renderer = FakeRenderer({"https://map.test/practice/p1": html})
        payload = await FrontierFetcher(renderer, base_url="https://map.test").fetch_practice("p1")

        assert payload.practice_id == "p1"
        assert payload.url == "https://map.test/practice/p1"
        assert "Example Family Medicine" in payload.html
        assert payload.next_data is None

    @pytest.mark.asyncio
    async def test_map_failure_propagates(self):
        with pytest.raises(FetchFailure):
            await FrontierFetcher(FakeRenderer({}), base_url="https://map.test").list_map_points()

    @pytest.mark.asyncio
    async def test_map_without_next_data(self):
        renderer = FakeRenderer({"https://map.test": "<html><body>Maintenance</body></html>"})
        with pytest.raises(ParseFailure):
            await FrontierFetcher(renderer, base_url="https://map.test").list_map_points()


# ---------------------------------------------------------------------------
# AllianceFetcher
# ---------------------------------------------------------------------------


class TestAllianceFetcher:
    @pytest.mark.asyncio
    async def test_list_profile_slugs(self):
        html = (
            '<a href="/find-a-dpc-physician/jane-doe/">Jane</a>'
            '<a href="https://dir.test/find-a-dpc-physician/john-smith">John</a>'
            '<a href="/find-a-dpc-physician/jane-doe/">Jane again</a>'
            '<a href="/find-a-dpc-physician/?page=2">Next</a>'
            '<a href="/about/">About</a>'
        )
        renderer = FakeRenderer({"https://dir.test/find-a-dpc-physician/": html})
        fetcher = AllianceFetcher(renderer, base_url="https://dir.test", directory_path="/find-a-dpc-physician/")

        assert await fetcher.list_profile_slugs() == ["jane-doe", "john-smith"]

    @pytest.mark.asyncio
    async def test_fetch_profile(self):
        renderer = FakeRenderer({"https://dir.test/find-a-dpc-physician/jane-doe": "<h1>Jane Doe</h1>"})
        fetcher = AllianceFetcher(renderer, base_url="https://dir.test", directory_path="/find-a-dpc-physician/")

        payload = await fetcher.fetch_profile("jane-doe")

        assert payload.slug == "jane-doe"
        assert payload.url == "https://dir.test/find-a-dpc-physician/jane-doe"


# ---------------------------------------------------------------------------
# PracticeSiteFetcher
# ---------------------------------------------------------------------------


class TestPracticeSiteFetcher:
    def test_normalize_website(self):
        assert normalize_website(" examplefamilymed.com/ ") == "https://examplefamilymed.com"
        assert normalize_website("http://examplefamilymed.com") == "http://examplefamilymed.com"

    @pytest.mark.asyncio
    async def test_landing_then_pricing_pages_skipping_failures(self):
        renderer = FakeRenderer(
            {
                "https://examplefamilymed.com": "home",
                "https://examplefamilymed.com/membership": "membership",
            }
        )
        pages = [page.text async for page in PracticeSiteFetcher(renderer, delay_seconds=0).pages("examplefamilymed.com")]

        assert pages == ["home", "membership"]
        assert renderer.calls[1] == "https://examplefamilymed.com/pricing"

    @pytest.mark.asyncio
    async def test_landing_failure_raises(self):
        with pytest.raises(FetchFailure):
            async for _ in PracticeSiteFetcher(FakeRenderer({}), delay_seconds=0).pages("https://gone.test"):
                pass

    @pytest.mark.asyncio
    async def test_sub_pages_are_spaced_out(self):
        renderer = FakeRenderer({"https://examplefamilymed.com": "home"})
        sleep = AsyncMock()
        fetcher = PracticeSiteFetcher(renderer, delay_seconds=1.0, sleep=sleep)

        pages = [page.text async for page in fetcher.pages("examplefamilymed.com")]

        assert pages == ["home"]
        # No pause before the landing page, one before every sub-page attempt
        assert sleep.await_count == len(renderer.calls) - 1
        sleep.assert_awaited_with(1.0)

    @pytest.mark.asyncio
    async def test_stopping_early_skips_remaining_pauses(self):
        renderer = FakeRenderer({"https://examplefamilymed.com": "home"})
        sleep = AsyncMock()
        pages = PracticeSiteFetcher(renderer, delay_seconds=1.0, sleep=sleep).pages("examplefamilymed.com")

        first = await pages.__anext__()
        await pages.aclose()

        assert first.text == "home"
        sleep.assert_not_awaited()
