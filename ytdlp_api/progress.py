"""
Parses yt-dlp `--newline` progress lines into structured updates.

A typical line looks like::

    [download]  45.2% of ~10.00MiB at 1.5MiB/s ETA 00:07

The ETA clause is required; the final line yt-dlp prints for a finished file
(`[download] 100% of 20.00MiB in 00:03`) does not match and is ignored, since
the supervisor marks the job complete on a zero exit code anyway.
"""

import re
from typing import NamedTuple, Optional

PROGRESS_PATTERN = re.compile(
    r'\[download\]\s+(?P<progress>[\d\.]+)%\s+of\s+~?\s*(?P<size>[\d\.\w/]+)'
    r'(?:\s+at\s+(?P<speed>[\d\.\w/]+))?\s+ETA\s+(?P<eta>[\d:]+)'
)


class ProgressUpdate(NamedTuple):
    percent: float
    size: str
    speed: Optional[str]
    eta: str


def parse_progress_line(line: str) -> Optional[ProgressUpdate]:
    """
    Extracts progress from one line of yt-dlp output.

    Args:
        line: A single line of stdout, with or without the trailing newline.

    Returns:
        A ProgressUpdate, or None if the line is not a progress line or its
        percentage cannot be parsed. Never raises.
    """
    if not isinstance(line, str):
        return None
    match = PROGRESS_PATTERN.search(line)
    if not match:
        return None
    try:
        percent = float(match.group('progress'))
    except ValueError:
        return None
    return ProgressUpdate(
        percent=percent,
        size=match.group('size'),
        speed=match.group('speed'),
        eta=match.group('eta'),
    )
