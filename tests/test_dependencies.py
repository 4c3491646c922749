"""
Unit tests for locating the yt-dlp executable.
"""

from pathlib import Path

from ytdlp_api import dependencies


def test_environment_override(monkeypatch, tmp_path):
    fake = tmp_path / "my-yt-dlp"
    monkeypatch.setenv("YTDLP_API_YTDLP", str(fake))
    assert dependencies.find_yt_dlp() == fake
    assert dependencies.yt_dlp_command() == [str(fake)]


def test_found_on_path(monkeypatch):
    monkeypatch.delenv("YTDLP_API_YTDLP", raising=False)
    monkeypatch.setattr(dependencies, "_find_executable", lambda name: Path("/opt/bin") / name)
    assert dependencies.yt_dlp_command() == [str(Path("/opt/bin/yt-dlp"))]


def test_missing_falls_back_to_bare_name(monkeypatch):
    monkeypatch.delenv("YTDLP_API_YTDLP", raising=False)
    monkeypatch.setattr(dependencies, "_find_executable", lambda name: None)
    assert dependencies.yt_dlp_command() == ["yt-dlp"]
