import sys
import asyncio
from pathlib import Path

import pytest

FAKE_YT_DLP = Path(__file__).with_name('fake_yt_dlp.py')


@pytest.fixture
def fake_command():
    """Command prefix that runs the fake yt-dlp with the current interpreter."""
    return [sys.executable, str(FAKE_YT_DLP)]


@pytest.fixture
def release_file(tmp_path, monkeypatch):
    """Path the fake's `/slow` mode waits for; create it to let the job finish."""
    path = tmp_path / 'release'
    monkeypatch.setenv('FAKE_YTDLP_RELEASE', str(path))
    return path


@pytest.fixture
def spawned_processes(monkeypatch):
    """Records every process started through asyncio.create_subprocess_exec."""
    processes = []
    real_exec = asyncio.create_subprocess_exec

    async def recording_exec(*args, **kwargs):
        process = await real_exec(*args, **kwargs)
        processes.append(process)
        return process

    monkeypatch.setattr(asyncio, "create_subprocess_exec", recording_exec)
    return processes
