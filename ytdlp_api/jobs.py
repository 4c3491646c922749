"""
Defines the data types for download jobs: the request a caller submits and
the record the registry keeps for it.
"""

import enum
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional

from pydantic import BaseModel


class JobState(str, enum.Enum):
    """Lifecycle states of a job. Transitions only move forward."""
    STARTING = 'starting'
    DOWNLOADING = 'downloading'
    COMPLETED = 'completed'
    FAILED = 'failed'

    @property
    def in_flight(self) -> bool:
        return self in (JobState.STARTING, JobState.DOWNLOADING)

    @property
    def terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


@dataclass
class JobRecord:
    """
    Represents the observable state of a single download.

    Attributes:
        state: The current lifecycle state.
        progress: Percent complete, within [0, 100].
        eta: Last ETA reported by yt-dlp (e.g. "00:07"), empty until parsed.
        speed: Last transfer rate reported by yt-dlp, empty until parsed.
        error: Captured diagnostic text; set only when the job failed.
    """
    state: JobState = JobState.STARTING
    progress: float = 0.0
    eta: str = ''
    speed: str = ''
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = data.pop('state').value
        return data


class JobRequest(BaseModel):
    """
    The JSON body of a `POST /download` request.

    `url` doubles as the job key. Optional fields only add yt-dlp flags when set.
    """
    # Core
    url: str
    format_id: str

    # Filesystem & metadata
    output_template: Optional[str] = None  # e.g. "downloads/%(uploader)s/%(title)s.%(ext)s"
    write_info_json: bool = False
    write_thumbnail: bool = False
    restrict_filenames: bool = False

    # Filtering
    playlist_items: Optional[str] = None  # e.g. "1-3,7"
    match_filter: Optional[str] = None  # e.g. "duration > 600 & like_count > 1000"
    max_filesize: Optional[str] = None  # e.g. "50M"

    # Post-processing
    extract_audio: bool = False
    audio_format: Optional[str] = None
    audio_quality: Optional[str] = None
    remux_video: Optional[str] = None
    embed_thumbnail: bool = False

    # SponsorBlock
    sponsorblock_remove: Optional[str] = None  # e.g. "sponsor,selfpromo"
    sponsorblock_mark: Optional[str] = None

    class Config:
        frozen = True
