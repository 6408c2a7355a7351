"""Tests for the coverage report."""

from dpc_enrichment.services.report import coverage_counts, print_coverage_report

ROWS = [
    {
        "id": "abc123",
        "name": "Example Family Medicine",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62704",
        "latitude": 39.78,
        "longitude": -89.65,
        "phone": "2175550100",
        "website": "https://examplefamilymed.com",
        "pricing_confidence": "high",
        "monthly_fee": 150,
    },
    {
        "id": "dpca-jane-doe",
        "name": "Jane Doe",
        "city": "Unknown",
        "state": "XX",
        "zip_code": "00000",
        "website": "https://www.dpcalliance.org/find-a-dpc-physician/jane-doe",
        "pricing_confidence": None,
    },
    {
        # Half-sentinel row: counted but not scorable
        "id": "broken",
        "name": "Broken Row",
        "city": "Unknown",
        "state": "IL",
        "zip_code": "62704",
    },
]


class TestCoverageCounts:
    def test_counts(self):
        counts = coverage_counts(ROWS)
        assert counts["total"] == 3
        assert counts["alliance"] == 1
        assert counts["valid_location"] == 1
        assert counts["unknown_location"] == 1
        assert counts["coordinates"] == 1
        assert counts["website"] == 1
        assert counts["pricing"] == 1

    def test_empty_table(self):
        assert coverage_counts([])["total"] == 0


class TestPrintCoverageReport:
    def test_prints_sections(self):
        lines: list[str] = []
        print_coverage_report(ROWS, out=lines.append)
        output = "\n".join(lines)

        assert "COVERAGE REPORT" in output
        assert "Total providers: 3" in output
        assert "Rows failing validation: 1" in output
        assert "IL" in output

    def test_empty_table_does_not_divide_by_zero(self):
        lines: list[str] = []
        print_coverage_report([], out=lines.append)
        assert "Total providers: 0" in "\n".join(lines)
