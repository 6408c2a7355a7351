"""Coverage report over the whole provider table (--report)."""

from collections import Counter
from collections.abc import Callable

from dpc_enrichment.core.geography import UNKNOWN_STATE, is_valid_location
from dpc_enrichment.extractors.alliance import ALLIANCE_ID_PREFIX
from dpc_enrichment.models.providers import Provider
from dpc_enrichment.services.merge import is_placeholder
from dpc_enrichment.services.scoring import score


def _pct(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


def coverage_counts(rows: list[dict]) -> dict[str, int]:
    """Counts behind the report, one per tracked field."""
    return {
        "total": len(rows),
        "alliance": sum(1 for r in rows if r.get("id", "").startswith(ALLIANCE_ID_PREFIX)),
        "valid_location": sum(
            1 for r in rows if is_valid_location(r.get("city"), r.get("state"), r.get("zip_code"))
        ),
        "unknown_location": sum(1 for r in rows if r.get("state") == UNKNOWN_STATE),
        "coordinates": sum(1 for r in rows if r.get("latitude") is not None and r.get("longitude") is not None),
        "phone": sum(1 for r in rows if r.get("phone")),
        "website": sum(1 for r in rows if not is_placeholder("website", r.get("website"))),
        "pricing": sum(1 for r in rows if not is_placeholder("pricing_confidence", r.get("pricing_confidence"))),
        "email": sum(1 for r in rows if r.get("email")),
    }


def print_coverage_report(rows: list[dict], out: Callable[[str], None] = print) -> None:
    out(f"\n{'='*60}")
    out("COVERAGE REPORT")
    out(f"{'='*60}")

    counts = coverage_counts(rows)
    total = counts["total"]
    out(f"\nTotal providers: {total}  (directory rows: {counts['alliance']})")

    out(f"Valid location:      {counts['valid_location']} ({_pct(counts['valid_location'], total):.1f}%)")
    out(f"Unknown location:    {counts['unknown_location']} ({_pct(counts['unknown_location'], total):.1f}%)")
    out(f"Have coordinates:    {counts['coordinates']} ({_pct(counts['coordinates'], total):.1f}%)")
    out(f"Have phone number:   {counts['phone']} ({_pct(counts['phone'], total):.1f}%)")
    out(f"Have website:        {counts['website']} ({_pct(counts['website'], total):.1f}%)")
    out(f"Have pricing:        {counts['pricing']} ({_pct(counts['pricing'], total):.1f}%)")
    out(f"Have email:          {counts['email']} ({_pct(counts['email'], total):.1f}%)")

    confidence_counts = Counter(r.get("pricing_confidence") or "none" for r in rows)
    out("\nPricing confidence:")
    for confidence in ("high", "medium", "low", "none"):
        count = confidence_counts.get(confidence, 0)
        out(f"  {confidence:>8}  {count:>5}  ({_pct(count, total):4.1f}%)")

    state_counts = Counter(r.get("state") for r in rows if r.get("state") and r.get("state") != UNKNOWN_STATE)
    if state_counts:
        out("\nTop 10 states:")
        for state, count in state_counts.most_common(10):
            out(f"  {state:>4}  {count:>5}  ({_pct(count, total):4.1f}%)")

    scores = []
    for row in rows:
        try:
            scores.append(score(Provider.from_row(row)))
        except ValueError:
            # Rows that break the model invariants are counted, not scored
            continue
    if scores:
        out(f"\nMean data quality score: {sum(scores) / len(scores):.1f}")
    unscorable = total - len(scores)
    if unscorable:
        out(f"Rows failing validation: {unscorable}")
