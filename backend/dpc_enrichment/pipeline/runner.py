"""Sequential pass runner.

INIT -> FETCH_WORKLIST -> (per item: FETCH -> EXTRACT -> RESOLVE -> MATCH ->
SCORE -> UPSERT) -> CHECKPOINT every N items -> SUMMARY -> DONE

Items run one at a time with a fixed pause between them. Anything an item
raises is caught at the item boundary and counted; only a setup failure
while building the worklist ends the run early.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from dpc_enrichment.core.config import settings
from dpc_enrichment.core.errors import EnrichmentError, FatalSetupFailure, NoMatchFound

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    init = "init"
    fetch_worklist = "fetch_worklist"
    processing = "processing"
    checkpoint = "checkpoint"
    summary = "summary"
    done = "done"
    failed = "failed"


class ItemOutcome(str, Enum):
    succeeded = "succeeded"
    not_found = "not_found"
    errored = "errored"
    skipped = "skipped"


@dataclass
class ItemResult:
    outcome: ItemOutcome
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> "ItemResult":
        return cls(ItemOutcome.succeeded, message)

    @classmethod
    def not_found(cls, message: str = "") -> "ItemResult":
        return cls(ItemOutcome.not_found, message)

    @classmethod
    def skipped(cls, message: str = "") -> "ItemResult":
        return cls(ItemOutcome.skipped, message)


@dataclass
class RunStats:
    total: int = 0
    succeeded: int = 0
    not_found: int = 0
    errored: int = 0
    skipped: int = 0
    remaining_unresolved: int | None = None
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.succeeded + self.not_found + self.errored + self.skipped

    def record(self, outcome: ItemOutcome) -> None:
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)
        self.outcomes.append(outcome)


class PipelinePass(Protocol):
    """One enrichment pass: where the work comes from and how one item is handled."""

    name: str
    title: str
    delay_seconds: float

    async def worklist(self) -> list[Any]: ...

    def describe(self, item: Any) -> str: ...

    async def process(self, item: Any) -> ItemResult: ...

    async def remaining(self) -> int | None: ...


class PipelineRunner:
    def __init__(
        self,
        *,
        start: int = 0,
        limit: int | None = None,
        delay_seconds: float | None = None,
        checkpoint_every: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        out: Callable[[str], None] = print,
    ):
        self.start = max(0, start)
        self.limit = limit
        self.delay_seconds = delay_seconds
        self.checkpoint_every = checkpoint_every or settings.CHECKPOINT_EVERY
        self._sleep = sleep
        self._out = out
        self.state = RunState.init

    def _slice(self, items: list[Any]) -> list[Any]:
        items = items[self.start :]
        if self.limit is not None:
            items = items[: self.limit]
        return items

    async def _run_item(self, pipeline_pass: PipelinePass, item: Any) -> ItemResult:
        try:
            return await pipeline_pass.process(item)
        except NoMatchFound as exc:
            return ItemResult.not_found(str(exc) or "not found")
        except EnrichmentError as exc:
            logger.warning("%s: %s failed: %s", pipeline_pass.name, pipeline_pass.describe(item), exc)
            return ItemResult(ItemOutcome.errored, str(exc))
        except Exception as exc:
            logger.exception("%s: unexpected error on %s", pipeline_pass.name, pipeline_pass.describe(item))
            return ItemResult(ItemOutcome.errored, f"{type(exc).__name__}: {exc}")

    def _checkpoint(self, stats: RunStats) -> None:
        self._out(f"\n{'-'*60}")
        self._out(
            f"Checkpoint: {stats.processed}/{stats.total} processed "
            f"(ok {stats.succeeded}, not found {stats.not_found}, "
            f"errors {stats.errored}, skipped {stats.skipped})"
        )
        self._out(f"{'-'*60}\n")

    def _summary(self, pipeline_pass: PipelinePass, stats: RunStats) -> None:
        self._out(f"\n{'='*60}")
        self._out(f"{pipeline_pass.title.upper()} COMPLETE")
        self._out(f"{'='*60}")
        self._out(f"  Processed:  {stats.processed}/{stats.total}")
        self._out(f"  Succeeded:  {stats.succeeded}")
        self._out(f"  Not found:  {stats.not_found}")
        self._out(f"  Errors:     {stats.errored}")
        self._out(f"  Skipped:    {stats.skipped}")
        if stats.remaining_unresolved is not None:
            self._out(f"  Still unresolved: {stats.remaining_unresolved}")

    async def run(self, pipeline_pass: PipelinePass) -> RunStats:
        """Run a pass to completion.

        Raises:
            FatalSetupFailure: if the worklist cannot be built. No item has
                been processed when this is raised.
        """
        stats = RunStats()
        delay = pipeline_pass.delay_seconds if self.delay_seconds is None else self.delay_seconds

        self.state = RunState.fetch_worklist
        try:
            items = self._slice(await pipeline_pass.worklist())
        except FatalSetupFailure:
            self.state = RunState.failed
            raise
        except Exception as exc:
            self.state = RunState.failed
            raise FatalSetupFailure(f"Could not build worklist for {pipeline_pass.name}: {exc}") from exc

        stats.total = len(items)
        self._out(f"→ {pipeline_pass.title}: {stats.total} items (start={self.start})\n")

        for index, item in enumerate(items):
            self.state = RunState.processing
            result = await self._run_item(pipeline_pass, item)
            stats.record(result.outcome)

            position = self.start + index + 1
            line = f"  [{position}/{self.start + stats.total}] {pipeline_pass.describe(item)}: {result.outcome.value}"
            self._out(f"{line} ({result.message})" if result.message else line)

            if stats.processed % self.checkpoint_every == 0:
                self.state = RunState.checkpoint
                self._checkpoint(stats)

            if index < len(items) - 1 and delay > 0:
                await self._sleep(delay)

        self.state = RunState.summary
        try:
            stats.remaining_unresolved = await pipeline_pass.remaining()
        except Exception as exc:
            logger.warning("Could not count remaining items: %s", exc)
        self._summary(pipeline_pass, stats)

        self.state = RunState.done
        return stats
