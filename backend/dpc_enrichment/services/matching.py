"""Dedup/match: decide whether a candidate updates an existing row or creates one.

Sources are treated as separate populations. A candidate is only ever
matched against rows in its own id namespace, except where a pass opts in
to a cross-namespace rule (the map-coordinate backfill).
"""

import logging
from enum import Enum

from pydantic import BaseModel

from dpc_enrichment.models.providers import SourceName

logger = logging.getLogger(__name__)

DEFAULT_NAME_PREFIX = 20
MIN_NAME_PREFIX = 20
MAX_NAME_PREFIX = 35

# Frontier is the primary source, so its ids carry no prefix
NAMESPACE_PREFIXES: dict[SourceName, str] = {
    SourceName.dpc_frontier: "",
    SourceName.dpca: "dpca-",
}
_PREFIXED = tuple(p for p in NAMESPACE_PREFIXES.values() if p)


class MatchAction(str, Enum):
    update = "update"
    create = "create"
    not_found = "not_found"


class MatchDecision(BaseModel):
    action: MatchAction
    provider_id: str | None = None
    reason: str = ""
    # Rows the name match considered; more than one means ambiguous
    candidates: int = 0
    # Only an exact id hit may overwrite; name hits fill gaps
    exact: bool = False


def namespaced_id(source: SourceName, source_id: str) -> str:
    """Canonical provider id for a source-local identifier (idempotent)."""
    prefix = NAMESPACE_PREFIXES.get(source, "")
    if prefix and source_id.startswith(prefix):
        return source_id
    return f"{prefix}{source_id}"


def in_namespace(provider_id: str, source: SourceName | None) -> bool:
    """True when provider_id belongs to the source's namespace (None means any)."""
    if source is None:
        return True
    prefix = NAMESPACE_PREFIXES.get(source, "")
    if prefix:
        return provider_id.startswith(prefix)
    return not provider_id.startswith(_PREFIXED)


def is_native_row(row: dict, source: SourceName) -> bool:
    """True when the row was created by a scrape of this source under its own id.

    Prefixed namespaces only ever hold their source's own rows. Unprefixed
    (Frontier) ids are shared with legacy rows, so those count as native
    only when data_source says so.
    """
    if not in_namespace(row.get("id", ""), source):
        return False
    return bool(NAMESPACE_PREFIXES.get(source)) or row.get("data_source") == source.value


def name_prefix(name: str, length: int = DEFAULT_NAME_PREFIX) -> str:
    length = max(MIN_NAME_PREFIX, min(MAX_NAME_PREFIX, length))
    return " ".join(name.split())[:length].lower()


def row_matches_name(row: dict, prefix: str) -> bool:
    for field in ("name", "practice_name"):
        value = row.get(field)
        if value and prefix in " ".join(value.split()).lower():
            return True
    return False


def match_by_name(
    rows: list[dict],
    name: str | None,
    *,
    namespace: SourceName | None,
    missing_field: str | None = None,
    prefix_length: int = DEFAULT_NAME_PREFIX,
) -> MatchDecision:
    """Pick the single row whose name or practice_name contains the name prefix.

    Args:
        rows: Candidate rows (typically from ProviderStore.find_by_name).
        name: Candidate display name.
        namespace: Restrict to this source's ids; None matches across sources.
        missing_field: If set, only rows where this field is still null count.
        prefix_length: Characters of the name to compare (clamped to 20..35).

    Returns:
        update with the row id on exactly one hit, otherwise not_found.
        Several hits are ambiguous and never guessed at.
    """
    if not name or not name.strip():
        return MatchDecision(action=MatchAction.not_found, reason="no name to match on")

    prefix = name_prefix(name, prefix_length)
    hits = [
        row
        for row in rows
        if in_namespace(row.get("id", ""), namespace)
        and (missing_field is None or row.get(missing_field) is None)
        and row_matches_name(row, prefix)
    ]
    if len(hits) == 1:
        return MatchDecision(
            action=MatchAction.update, provider_id=hits[0]["id"], reason="name match", candidates=1
        )
    if not hits:
        return MatchDecision(action=MatchAction.not_found, reason=f"no row matches {prefix!r}")
    logger.info("Ambiguous name match for %r: %d rows", prefix, len(hits))
    return MatchDecision(
        action=MatchAction.not_found,
        reason=f"ambiguous: {len(hits)} rows match {prefix!r}",
        candidates=len(hits),
    )


async def resolve_target(
    store,
    source: SourceName,
    source_id: str,
    name: str | None,
    *,
    create: bool,
    missing_field: str | None = None,
    prefix_length: int = DEFAULT_NAME_PREFIX,
) -> MatchDecision:
    """Exact namespaced id first, then a within-namespace name match.

    A row this source already created under a different id is a different
    practice sharing a name prefix ("Direct Primary Care of ...") and never
    takes a name hit. Falls through to create (when the pass creates rows)
    only when the name match found nothing at all; an ambiguous name match
    is never turned into a new row.
    """
    provider_id = namespaced_id(source, source_id)
    if await store.get(provider_id) is not None:
        return MatchDecision(
            action=MatchAction.update, provider_id=provider_id, reason="id match", exact=True
        )

    if name:
        rows = await store.find_by_name(name_prefix(name, prefix_length))
        rows = [row for row in rows if not is_native_row(row, source)]
        decision = match_by_name(
            rows, name, namespace=source, missing_field=missing_field, prefix_length=prefix_length
        )
        if decision.candidates > 0:
            return decision

    if create:
        return MatchDecision(action=MatchAction.create, provider_id=provider_id, reason="new provider")
    return MatchDecision(action=MatchAction.not_found, reason="no matching row")
