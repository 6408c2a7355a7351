"""Tests for practice website discovery helpers."""

from dpc_enrichment.services.discovery import build_search_query, is_directory_url, pick_practice_website


class TestIsDirectoryUrl:
    def test_directory_hosts(self):
        assert is_directory_url("https://www.dpcfrontier.com/practice/1")
        assert is_directory_url("https://mapper.dpcfrontier.com/practice/1")
        assert is_directory_url("https://www.healthgrades.com/physician/dr-jane-doe")

    def test_government_hosts(self):
        assert is_directory_url("https://npiregistry.cms.hhs.gov/provider-view/123")

    def test_practice_site(self):
        assert not is_directory_url("https://examplefamilymed.com")
        assert not is_directory_url("examplefamilymed.com")

    def test_lookalike_domain_is_not_a_directory(self):
        assert not is_directory_url("https://notyelp.com")


class TestPickPracticeWebsite:
    def test_skips_directories(self):
        urls = [
            "https://www.dpcfrontier.com/practice/1",
            "https://www.facebook.com/examplefm",
            "https://www.yelp.com/biz/example-family-medicine",
            "https://examplefamilymed.com/",
        ]
        assert pick_practice_website(urls) == "https://examplefamilymed.com/"

    def test_only_top_five_are_considered(self):
        urls = ["https://www.yelp.com/biz/x"] * 5 + ["https://examplefamilymed.com/"]
        assert pick_practice_website(urls) is None

    def test_non_http_results_are_skipped(self):
        assert pick_practice_website(["ftp://files.test", "https://examplefamilymed.com"]) == "https://examplefamilymed.com"


class TestBuildSearchQuery:
    def test_with_location(self):
        assert (
            build_search_query("Example Family Medicine", "Springfield", "IL")
            == '"Example Family Medicine" DPC direct primary care Springfield IL'
        )

    def test_unknown_location_is_left_out(self):
        assert build_search_query("Example Family Medicine", "Unknown", "XX") == (
            '"Example Family Medicine" DPC direct primary care'
        )
