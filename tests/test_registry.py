"""
Unit tests for the job registry state machine.
"""

import asyncio

import pytest

from ytdlp_api.exceptions import DuplicateInFlightError
from ytdlp_api.jobs import JobState
from ytdlp_api.progress import ProgressUpdate
from ytdlp_api.registry import JobRegistry

KEY = "https://example.com/watch?v=1"


def _update(percent, speed="1.0MiB/s", eta="00:10"):
    return ProgressUpdate(percent=percent, size="10.00MiB", speed=speed, eta=eta)


def test_admit_creates_starting_record():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        return await registry.get(KEY)

    record = asyncio.run(scenario())
    assert record.state is JobState.STARTING
    assert record.progress == 0.0
    assert record.error is None


def test_second_admit_while_in_flight_is_rejected():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        with pytest.raises(DuplicateInFlightError):
            await registry.admit(KEY)
        await registry.observe_progress(KEY, _update(30.0))
        with pytest.raises(DuplicateInFlightError):
            await registry.admit(KEY)
        return await registry.get(KEY)

    record = asyncio.run(scenario())
    assert record.state is JobState.DOWNLOADING
    assert record.progress == 30.0


@pytest.mark.parametrize("success", [True, False])
def test_admit_after_finalize_overwrites(success):
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.finalize(KEY, success, None if success else "boom")
        await registry.admit(KEY)
        return await registry.get(KEY)

    record = asyncio.run(scenario())
    assert record.state is JobState.STARTING
    assert record.error is None
    assert record.progress == 0.0


def test_observe_progress_sets_downloading_and_fields():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.observe_progress(KEY, _update(45.2, speed="1.5MiB/s", eta="00:07"))
        return await registry.get(KEY)

    record = asyncio.run(scenario())
    assert record.state is JobState.DOWNLOADING
    assert record.progress == 45.2
    assert record.speed == "1.5MiB/s"
    assert record.eta == "00:07"


def test_observe_progress_without_rate_clears_speed():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.observe_progress(KEY, _update(10.0))
        await registry.observe_progress(KEY, _update(20.0, speed=None))
        return await registry.get(KEY)

    assert asyncio.run(scenario()).speed == ""


@pytest.mark.parametrize("percent", [-5.0, 0.0, 99.9, 100.0, 250.0])
def test_progress_stays_in_range(percent):
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.observe_progress(KEY, _update(percent))
        return await registry.get(KEY)

    record = asyncio.run(scenario())
    assert 0.0 <= record.progress <= 100.0


def test_observe_progress_for_unknown_key_is_dropped():
    async def scenario():
        registry = JobRegistry()
        await registry.observe_progress(KEY, _update(10.0))
        return await registry.snapshot()

    assert asyncio.run(scenario()) == {}


def test_finalize_success():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.observe_progress(KEY, _update(60.0))
        await registry.finalize(KEY, True)
        return await registry.get(KEY)

    record = asyncio.run(scenario())
    assert record.state is JobState.COMPLETED
    assert record.progress == 100.0
    assert record.error is None


def test_finalize_failure_from_starting():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.finalize(KEY, False, "Failed to start yt-dlp process: not found")
        return await registry.get(KEY)

    record = asyncio.run(scenario())
    assert record.state is JobState.FAILED
    assert record.error == "Failed to start yt-dlp process: not found"


def test_failed_record_always_has_error_text():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.finalize(KEY, False, None)
        return await registry.get(KEY)

    assert asyncio.run(scenario()).error == ""


def test_terminal_records_do_not_move():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.finalize(KEY, False, "ERROR: nope")
        await registry.observe_progress(KEY, _update(50.0))
        await registry.finalize(KEY, True)
        return await registry.get(KEY)

    record = asyncio.run(scenario())
    assert record.state is JobState.FAILED
    assert record.error == "ERROR: nope"


def test_snapshot_is_independent_copy():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        snapshot = await registry.snapshot()
        snapshot[KEY].state = JobState.COMPLETED
        snapshot["other"] = snapshot[KEY]
        return snapshot, await registry.snapshot()

    mutated, fresh = asyncio.run(scenario())
    assert list(fresh) == [KEY]
    assert fresh[KEY].state is JobState.STARTING
    assert mutated[KEY] is not fresh[KEY]


def test_repeated_snapshots_are_equal():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.admit("https://example.com/2")
        await registry.observe_progress(KEY, _update(12.5))
        return await registry.snapshot(), await registry.snapshot()

    first, second = asyncio.run(scenario())
    assert first == second


def test_concurrent_admits_only_one_wins():
    async def scenario():
        registry = JobRegistry()
        results = await asyncio.gather(*(registry.admit(KEY) for _ in range(20)), return_exceptions=True)
        return results, await registry.snapshot()

    results, snapshot = asyncio.run(scenario())
    assert sum(1 for r in results if r is None) == 1
    assert all(isinstance(r, DuplicateInFlightError) for r in results if r is not None)
    assert len(snapshot) == 1


def test_record_serialization():
    async def scenario():
        registry = JobRegistry()
        await registry.admit(KEY)
        await registry.observe_progress(KEY, _update(45.2, speed="1.5MiB/s", eta="00:07"))
        return await registry.get(KEY)

    assert asyncio.run(scenario()).to_dict() == {
        'status': 'downloading', 'progress': 45.2, 'eta': '00:07', 'speed': '1.5MiB/s', 'error': None,
    }
