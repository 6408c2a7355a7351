"""Tests for the sequential pass runner: isolation, slicing, checkpoints, fatal setup."""

from unittest.mock import AsyncMock

import pytest

from dpc_enrichment.core.errors import FatalSetupFailure, FetchFailure, NoMatchFound
from dpc_enrichment.pipeline.runner import ItemOutcome, ItemResult, PipelineRunner, RunState


class FakePass:
    name = "fake"
    title = "Fake pass"
    delay_seconds = 0.5

    def __init__(self, items, behaviour=None, remaining=None):
        self._items = items
        self._behaviour = behaviour or {}
        self._remaining = remaining
        self.processed: list = []

    async def worklist(self):
        if isinstance(self._items, Exception):
            raise self._items
        return list(self._items)

    def describe(self, item):
        return f"item {item}"

    async def process(self, item):
        self.processed.append(item)
        outcome = self._behaviour.get(item)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome or ItemResult.ok("done")

    async def remaining(self):
        return self._remaining


def make_runner(**kwargs) -> tuple[PipelineRunner, AsyncMock, list[str]]:
    sleep = AsyncMock()
    lines: list[str] = []
    runner = PipelineRunner(sleep=sleep, out=lines.append, **kwargs)
    return runner, sleep, lines


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_one_bad_item_does_not_stop_the_run(self):
        fake = FakePass(
            [1, 2, 3, 4, 5],
            behaviour={
                2: FetchFailure("timeout"),
                3: NoMatchFound("no row"),
                4: RuntimeError("bug"),
                5: ItemResult.skipped("nothing to do"),
            },
        )
        runner, _, _ = make_runner()

        stats = await runner.run(fake)

        assert fake.processed == [1, 2, 3, 4, 5]
        assert (stats.succeeded, stats.errored, stats.not_found, stats.skipped) == (1, 2, 1, 1)
        assert stats.outcomes == [
            ItemOutcome.succeeded,
            ItemOutcome.errored,
            ItemOutcome.not_found,
            ItemOutcome.errored,
            ItemOutcome.skipped,
        ]
        assert runner.state == RunState.done

    @pytest.mark.asyncio
    async def test_status_line_per_item(self):
        fake = FakePass(["a"], behaviour={"a": NoMatchFound("no row")})
        runner, _, lines = make_runner()
        await runner.run(fake)
        assert "  [1/1] item a: not_found (no row)" in lines


class TestSlicing:
    @pytest.mark.asyncio
    async def test_start_and_limit(self):
        fake = FakePass(list(range(10)))
        runner, _, lines = make_runner(start=3, limit=4)

        stats = await runner.run(fake)

        assert fake.processed == [3, 4, 5, 6]
        assert stats.total == 4
        # Positions are reported against the full worklist
        assert any(line.startswith("  [4/7] item 3") for line in lines)

    @pytest.mark.asyncio
    async def test_start_past_end(self):
        stats = await make_runner(start=50)[0].run(FakePass([1, 2]))
        assert stats.total == 0


class TestPacing:
    @pytest.mark.asyncio
    async def test_sleeps_between_items_not_after_last(self):
        runner, sleep, _ = make_runner()
        await runner.run(FakePass([1, 2, 3]))
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    @pytest.mark.asyncio
    async def test_delay_override(self):
        runner, sleep, _ = make_runner(delay_seconds=0)
        await runner.run(FakePass([1, 2, 3]))
        sleep.assert_not_called()


class TestCheckpoints:
    @pytest.mark.asyncio
    async def test_checkpoint_every_n_items(self):
        runner, _, lines = make_runner(checkpoint_every=2, delay_seconds=0)
        await runner.run(FakePass([1, 2, 3, 4, 5]))

        checkpoints = [line for line in lines if line.startswith("Checkpoint:")]
        assert checkpoints == [
            "Checkpoint: 2/5 processed (ok 2, not found 0, errors 0, skipped 0)",
            "Checkpoint: 4/5 processed (ok 4, not found 0, errors 0, skipped 0)",
        ]


class TestSummary:
    @pytest.mark.asyncio
    async def test_remaining_is_reported(self):
        runner, _, lines = make_runner(delay_seconds=0)
        stats = await runner.run(FakePass([1], remaining=7))

        assert stats.remaining_unresolved == 7
        assert "FAKE PASS COMPLETE" in lines
        assert "  Still unresolved: 7" in lines

    @pytest.mark.asyncio
    async def test_remaining_failure_is_not_fatal(self):
        fake = FakePass([1])
        fake.remaining = AsyncMock(side_effect=RuntimeError("db down"))
        runner, _, _ = make_runner(delay_seconds=0)

        stats = await runner.run(fake)

        assert stats.remaining_unresolved is None
        assert runner.state == RunState.done


class TestFatalSetup:
    @pytest.mark.asyncio
    async def test_setup_failure_propagates(self):
        runner, _, _ = make_runner()
        with pytest.raises(FatalSetupFailure):
            await runner.run(FakePass(FatalSetupFailure("no credentials")))
        assert runner.state == RunState.failed

    @pytest.mark.asyncio
    async def test_worklist_error_becomes_setup_failure(self):
        fake = FakePass(FetchFailure("map page down"))
        runner, _, _ = make_runner()

        with pytest.raises(FatalSetupFailure, match="map page down"):
            await runner.run(fake)
        assert fake.processed == []
