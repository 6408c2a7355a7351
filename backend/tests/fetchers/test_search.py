"""Tests for the DuckDuckGo HTML search client."""

import httpx
import pytest

from dpc_enrichment.core.errors import FetchFailure
from dpc_enrichment.fetchers.search import SearchClient, decode_result_url, parse_search_results

RESULTS_HTML = """
<html><body>
  <div class="result">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fwww.dpcfrontier.com%2Fpractice%2F1&rut=x">Frontier</a>
  </div>
  <div class="result">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fexamplefamilymed.com%2F&rut=y">Example FM</a>
  </div>
  <div class="result">
    <a class="result__a" href="https://examplefamilymed.com/">Example FM again</a>
  </div>
  <a class="result__snippet" href="https://ignored.example.org">snippet</a>
</body></html>
"""


class TestDecodeResultUrl:
    def test_redirect_is_unwrapped(self):
        href = "//duckduckgo.com/l/?uddg=https%3A%2F%2Fexamplefamilymed.com%2Fpricing&rut=abc"
        assert decode_result_url(href) == "https://examplefamilymed.com/pricing"

    def test_direct_link_passes_through(self):
        assert decode_result_url("https://examplefamilymed.com") == "https://examplefamilymed.com"

    def test_relative_link_is_dropped(self):
        assert decode_result_url("/settings") is None


class TestParseSearchResults:
    def test_rank_order_and_deduplication(self):
        assert parse_search_results(RESULTS_HTML) == [
            "https://www.dpcfrontier.com/practice/1",
            "https://examplefamilymed.com/",
        ]


class TestSearchClient:
    @pytest.mark.asyncio
    async def test_sends_query_and_parses_results(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["q"] = request.url.params.get("q")
            return httpx.Response(200, text=RESULTS_HTML)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = SearchClient(http, search_url="https://search.test/html/")
            urls = await client.search('"Example Family Medicine" DPC direct primary care')

        assert seen["q"] == '"Example Family Medicine" DPC direct primary care'
        assert urls[1] == "https://examplefamilymed.com/"

    @pytest.mark.asyncio
    async def test_error_status_raises_fetch_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        async with httpx.AsyncClient(transport=transport) as http:
            with pytest.raises(FetchFailure) as exc_info:
                await SearchClient(http, search_url="https://search.test/html/").search("q")
        assert exc_info.value.status == 503
