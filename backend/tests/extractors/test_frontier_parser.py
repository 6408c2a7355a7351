"""Tests for the DPC Frontier page parser: map markers and the three page layers."""

from dpc_enrichment.extractors.frontier import parse_frontier_payload, parse_map_points
from dpc_enrichment.models.providers import FrontierPayload, PricingConfidence, SourceName

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

PRACTICE = {
    "name": "Example Family Medicine",
    "address": {"street": "123 Main St", "city": "Springfield", "state": "IL", "zip": "62704"},
    "location": {"lat": 39.78, "lng": -89.65},
    "phone": "(217) 544-2100",
    "website": "https://examplefamilymed.com",
    "physicians": [{"name": "Jane Doe"}],
    "pricing": {"monthlyFee": 75, "enrollmentFee": 50},
}

DOM_ONLY_HTML = """
<html><body>
  <h1>Example Family Medicine</h1>
  <h2>Direct primary care in Springfield, IL</h2>
  <a href="https://www.google.com/maps/dir/?api=1&destination=123+Main+St%2C+Springfield%2C+IL+62704">Directions</a>
  <p>$150/month membership</p>
  <p>(217) 544-2100</p>
</body></html>
"""

DOM_ONLY_TEXT = (
    "Example Family Medicine\n"
    "Direct primary care in Springfield, IL\n"
    "Directions\n"
    "$150/month membership\n"
    "(217) 544-2100"
)


def make_payload(**kwargs) -> FrontierPayload:
    defaults = {"practice_id": "abc123", "url": "https://mapper.dpcfrontier.com/practice/abc123"}
    return FrontierPayload(**{**defaults, **kwargs})


# ---------------------------------------------------------------------------
# parse_map_points
# ---------------------------------------------------------------------------


class TestParseMapPoints:
    def test_compact_keys(self):
        next_data = {
            "props": {
                "pageProps": {
                    "practices": [
                        {"i": "abc", "l": 39.7, "g": -89.6, "k": "dpc", "o": True},
                        {"i": "no-location", "l": 0, "g": 0},
                        {"l": 40.1, "g": -88.2},
                    ]
                }
            }
        }
        points = parse_map_points(next_data)
        assert len(points) == 1
        assert points[0].practice_id == "abc"
        assert points[0].latitude == 39.7
        assert points[0].accepting_patients is True
        assert points[0].practice_type == "dpc"

    def test_missing_practices_returns_empty(self):
        assert parse_map_points({"props": {}}) == []
        assert parse_map_points(None) == []


# ---------------------------------------------------------------------------
# parse_frontier_payload
# ---------------------------------------------------------------------------


class TestNextDataLayer:
    def test_structured_practice(self):
        payload = make_payload(
            html="<h1>Some Other Heading</h1>",
            next_data={"props": {"pageProps": {"practice": PRACTICE}}},
        )
        candidate = parse_frontier_payload(payload)

        assert candidate.source == SourceName.dpc_frontier
        assert candidate.source_id == "abc123"
        assert candidate.name == "Example Family Medicine"
        assert candidate.address == "123 Main St"
        assert (candidate.city, candidate.state, candidate.zip_code) == ("Springfield", "IL", "62704")
        assert candidate.address_text == "123 Main St, Springfield, IL 62704"
        assert (candidate.latitude, candidate.longitude) == (39.78, -89.65)
        assert candidate.coordinates_from_source is True
        assert candidate.phone == "2175442100"
        assert candidate.physicians == ["Jane Doe"]
        assert candidate.monthly_fee == 75
        assert candidate.enrollment_fee == 50
        assert candidate.pricing_confidence == PricingConfidence.high

    def test_json_ld_is_read_first(self):
        json_ld = {
            "name": "Example Family Medicine LLC",
            "telephone": "217-544-2199",
            "address": {
                "streetAddress": "9 Elm St",
                "addressLocality": "Peoria",
                "addressRegion": "Illinois",
                "postalCode": "61602",
            },
        }
        payload = make_payload(json_ld=json_ld, next_data={"props": {"pageProps": {"practice": PRACTICE}}})
        candidate = parse_frontier_payload(payload)

        assert candidate.name == "Example Family Medicine LLC"
        assert candidate.phone == "2175442199"
        assert (candidate.city, candidate.state, candidate.zip_code) == ("Peoria", "IL", "61602")
        # JSON-LD had no geo, so the practice object's coordinates fill in
        assert candidate.latitude == 39.78


class TestDomLayer:
    def test_rendered_page_only(self):
        candidate = parse_frontier_payload(make_payload(html=DOM_ONLY_HTML, text=DOM_ONLY_TEXT))

        assert candidate.name == "Example Family Medicine"
        assert candidate.practice_name == "Example Family Medicine"
        assert (candidate.city, candidate.state) == ("Springfield", "IL")
        assert candidate.zip_code is None
        assert candidate.address_text == "123 Main St, Springfield, IL 62704"
        assert candidate.monthly_fee == 150
        assert candidate.pricing_confidence == PricingConfidence.high
        assert candidate.phone == "2175442100"

    def test_prices_unknown_banner(self):
        candidate = parse_frontier_payload(
            make_payload(html="<h1>X Clinic</h1>", text="X Clinic\nMembership prices: Unknown.")
        )
        assert candidate.pricing_notes == "Membership prices unknown"
        assert candidate.pricing_confidence == PricingConfidence.none

    def test_bold_prices_become_tiers(self):
        html = "<h1>X Clinic</h1><p>Gold plan <strong>$95</strong></p><p>Silver plan <strong>$65</strong></p>"
        candidate = parse_frontier_payload(make_payload(html=html, text="X Clinic\nGold plan $95\nSilver plan $65"))

        assert [(t.label, t.monthly_fee) for t in candidate.pricing_tiers] == [("Gold plan", 95), ("Silver plan", 65)]
        assert candidate.monthly_fee == 95
        assert candidate.pricing_confidence == PricingConfidence.high

    def test_per_visit_fee_is_noted(self):
        candidate = parse_frontier_payload(
            make_payload(html="<h1>X Clinic</h1>", text="X Clinic\n$80/month. Office visits $10 per visit.")
        )
        assert candidate.monthly_fee == 80
        assert candidate.pricing_notes == "Per-visit fee $10"

    def test_empty_page_never_raises(self):
        candidate = parse_frontier_payload(make_payload())
        assert candidate.name is None
        assert candidate.display_name is None
