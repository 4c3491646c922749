"""Translates a JobRequest into the yt-dlp argument vector."""
from pathlib import Path
from typing import List

from .constants import DEFAULT_FILENAME_TEMPLATE
from .jobs import JobRequest


def default_output_template(download_dir: str) -> str:
    """Builds the output template used when a request does not carry its own."""
    return str(Path(download_dir) / DEFAULT_FILENAME_TEMPLATE)


def build_arguments(request: JobRequest, output_template: str) -> List[str]:
    """
    Builds the yt-dlp arguments (without the executable) for a request.

    Values are passed through verbatim; yt-dlp is responsible for rejecting
    malformed ones. When both `extract_audio` and `remux_video` are set, audio
    extraction wins and the remux target is ignored.

    Args:
        request: The validated download request.
        output_template: The `-o` template to use.

    Returns:
        The argument list, always ending with the URL.
    """
    args = ['-f', request.format_id, '--newline', '-o', output_template]

    if request.write_info_json: args.append('--write-info-json')
    if request.write_thumbnail: args.append('--write-thumbnail')
    if request.restrict_filenames: args.append('--restrict-filenames')
    if request.playlist_items is not None: args.extend(['--playlist-items', request.playlist_items])
    if request.match_filter is not None: args.extend(['--match-filters', request.match_filter])
    if request.max_filesize is not None: args.extend(['--max-filesize', request.max_filesize])

    if request.extract_audio:
        args.append('--extract-audio')
        if request.audio_format is not None: args.extend(['--audio-format', request.audio_format])
        if request.audio_quality is not None: args.extend(['--audio-quality', request.audio_quality])
    elif request.remux_video is not None:
        args.extend(['--remux-video', request.remux_video])

    if request.embed_thumbnail: args.append('--embed-thumbnail')
    if request.sponsorblock_remove is not None: args.extend(['--sponsorblock-remove', request.sponsorblock_remove])
    if request.sponsorblock_mark is not None: args.extend(['--sponsorblock-mark', request.sponsorblock_mark])

    args.append(request.url)
    return args
