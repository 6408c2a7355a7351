"""Canonical provider store.

Passes talk to ``ProviderStore``; the Supabase implementation is the real
one and ``DryRunStore`` wraps it for --dry-run. Every write is scoped to a
single provider row and only carries the columns that change.
"""

import logging
import re
from typing import Protocol

from supabase import AsyncClient

from dpc_enrichment.core.config import settings
from dpc_enrichment.models.providers import ProviderSource

logger = logging.getLogger(__name__)

# PostgREST returns at most 1000 rows per request by default
_PAGE_SIZE = 1000

# Characters that break PostgREST's or=(...) filter syntax
_FILTER_UNSAFE = re.compile(r"[,()*%\\]")


class ProviderStore(Protocol):
    async def get(self, provider_id: str) -> dict | None: ...

    async def list_by_id_prefix(self, prefix: str) -> list[dict]: ...

    async def list_missing(self, field: str, *, id_prefix: str | None = None) -> list[dict]: ...

    async def list_by_state(self, state: str, *, id_prefix: str | None = None) -> list[dict]: ...

    async def find_by_name(self, fragment: str) -> list[dict]: ...

    async def list_all(self) -> list[dict]: ...

    async def insert(self, row: dict) -> None: ...

    async def update_fields(self, provider_id: str, fields: dict) -> None: ...

    async def upsert_source(self, source: ProviderSource) -> None: ...


class SupabaseProviderStore:
    def __init__(
        self,
        client: AsyncClient,
        providers_table: str | None = None,
        sources_table: str | None = None,
    ):
        self.client = client
        self.providers_table = providers_table or settings.PROVIDERS_TABLE
        self.sources_table = sources_table or settings.SOURCES_TABLE

    async def _fetch_all(self, build) -> list[dict]:
        """Page through a filtered select with .range() until a short page comes back.

        Args:
            build: Callable taking the base select query and returning it
                with filters applied.
        """
        rows: list[dict] = []
        offset = 0
        while True:
            query = build(self.client.table(self.providers_table).select("*"))
            response = await query.order("id").range(offset, offset + _PAGE_SIZE - 1).execute()
            batch = response.data or []
            rows.extend(batch)
            if len(batch) < _PAGE_SIZE:
                break
            offset += _PAGE_SIZE
        return rows

    async def get(self, provider_id: str) -> dict | None:
        response = (
            await self.client.table(self.providers_table)
            .select("*")
            .eq("id", provider_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    async def list_by_id_prefix(self, prefix: str) -> list[dict]:
        return await self._fetch_all(lambda q: q.like("id", f"{prefix}%"))

    async def list_missing(self, field: str, *, id_prefix: str | None = None) -> list[dict]:
        def build(query):
            query = query.is_(field, "null")
            return query.like("id", f"{id_prefix}%") if id_prefix else query

        return await self._fetch_all(build)

    async def list_by_state(self, state: str, *, id_prefix: str | None = None) -> list[dict]:
        def build(query):
            query = query.eq("state", state)
            return query.like("id", f"{id_prefix}%") if id_prefix else query

        return await self._fetch_all(build)

    async def find_by_name(self, fragment: str) -> list[dict]:
        """Rows whose name or practice_name contains fragment, case-insensitively."""
        safe = _FILTER_UNSAFE.sub("_", fragment.strip())
        if not safe:
            return []
        return await self._fetch_all(lambda q: q.or_(f"name.ilike.*{safe}*,practice_name.ilike.*{safe}*"))

    async def list_all(self) -> list[dict]:
        return await self._fetch_all(lambda q: q)

    async def insert(self, row: dict) -> None:
        await self.client.table(self.providers_table).insert(row).execute()

    async def update_fields(self, provider_id: str, fields: dict) -> None:
        if not fields:
            return
        await self.client.table(self.providers_table).update(fields).eq("id", provider_id).execute()

    async def upsert_source(self, source: ProviderSource) -> None:
        await (
            self.client.table(self.sources_table)
            .upsert(source.model_dump(mode="json"), on_conflict="provider_id,source")
            .execute()
        )


class DryRunStore:
    """Reads go to the wrapped store; writes are logged, recorded and dropped."""

    def __init__(self, inner: ProviderStore):
        self.inner = inner
        self.writes: list[tuple[str, str, dict]] = []

    async def get(self, provider_id: str) -> dict | None:
        return await self.inner.get(provider_id)

    async def list_by_id_prefix(self, prefix: str) -> list[dict]:
        return await self.inner.list_by_id_prefix(prefix)

    async def list_missing(self, field: str, *, id_prefix: str | None = None) -> list[dict]:
        return await self.inner.list_missing(field, id_prefix=id_prefix)

    async def list_by_state(self, state: str, *, id_prefix: str | None = None) -> list[dict]:
        return await self.inner.list_by_state(state, id_prefix=id_prefix)

    async def find_by_name(self, fragment: str) -> list[dict]:
        return await self.inner.find_by_name(fragment)

    async def list_all(self) -> list[dict]:
        return await self.inner.list_all()

    async def insert(self, row: dict) -> None:
        logger.info("[dry-run] insert %s", row.get("id"))
        self.writes.append(("insert", row.get("id", ""), row))

    async def update_fields(self, provider_id: str, fields: dict) -> None:
        if not fields:
            return
        logger.info("[dry-run] update %s: %s", provider_id, sorted(fields))
        self.writes.append(("update", provider_id, fields))

    async def upsert_source(self, source: ProviderSource) -> None:
        logger.info("[dry-run] upsert source %s/%s", source.provider_id, source.source)
        self.writes.append(("upsert_source", source.provider_id, source.model_dump(mode="json")))
