"""
Provides methods to extract video information from URLs using yt-dlp.
"""

import asyncio
import sys
import json
import logging
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError

from .exceptions import URLExtractionError
from .constants import SUBPROCESS_CREATION_FLAGS, FORMATS_TIMEOUT


class VideoFormat(BaseModel):
    """A single format available for download."""
    format_id: str
    ext: str
    resolution: Optional[str] = None
    vcodec: Optional[str] = None
    acodec: Optional[str] = None
    filesize: Optional[int] = None
    tbr: Optional[float] = None  # Total bitrate in KBit/s


class VideoInfo(BaseModel):
    """The subset of `yt-dlp --dump-json` output returned to clients."""
    title: str
    formats: List[VideoFormat] = []
    thumbnail: Optional[str] = None


class FormatExtractor:
    """Lists the formats yt-dlp can download for a URL."""

    def __init__(self, command_prefix: Sequence[str], timeout: float = FORMATS_TIMEOUT):
        """
        Initializes the FormatExtractor.

        Args:
            command_prefix: The command used to invoke yt-dlp.
            timeout: Seconds to wait for yt-dlp before giving up.
        """
        self.command_prefix = list(command_prefix)
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    async def _run_command(self, command: List[str]) -> Tuple[str, str]:
        """
        A robust wrapper for running a yt-dlp command.

        Returns:
            A tuple of (stdout, stderr) on success.

        Raises:
            URLExtractionError: On any failure (e.g., timeout, non-zero exit code).
        """
        kwargs = {}
        if sys.platform == 'win32':
            kwargs['creationflags'] = SUBPROCESS_CREATION_FLAGS

        process = None
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **kwargs
            )
            stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
            stdout = stdout_bytes.decode('utf-8', 'replace')
            stderr = stderr_bytes.decode('utf-8', 'replace')

        except FileNotFoundError:
            self.logger.error(f"yt-dlp executable not found at: {command[0]}")
            raise URLExtractionError("yt-dlp executable not found.")
        except asyncio.TimeoutError:
            if process: process.kill()
            self.logger.error(f"yt-dlp command timed out: {' '.join(command)}")
            raise URLExtractionError("URL processing command timed out.")
        except OSError as e:
            self.logger.error(f"OS error running yt-dlp: {e}")
            raise URLExtractionError(f"OS error: {e}")

        if process.returncode != 0:
            self.logger.error(f"yt-dlp failed for '{command[-1]}': {stderr.strip()}")
            raise URLExtractionError(stderr.strip() or "yt-dlp returned an error with no output.")

        return stdout, stderr

    async def get_video_info(self, url: str) -> VideoInfo:
        """
        Fetches the title, thumbnail and available formats of a URL.

        For playlists yt-dlp prints one JSON document per entry; the first
        entry is returned.

        Raises:
            URLExtractionError: If yt-dlp fails or its output cannot be parsed.
        """
        self.logger.info(f"Fetching formats for URL: {url}")
        stdout, _ = await self._run_command(self.command_prefix + ['--dump-json', url])
        first_line = next((line for line in stdout.splitlines() if line.strip()), '')
        try:
            info = VideoInfo.model_validate(json.loads(first_line))
        except (json.JSONDecodeError, ValidationError) as e:
            raise URLExtractionError(f"Could not parse yt-dlp output: {e}")
        self.logger.info(f"Successfully fetched {len(info.formats)} formats for '{info.title}'")
        return info
