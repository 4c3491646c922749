"""HTTP control plane for yt-dlp download jobs."""

from ._version import __version__

__all__ = ["__version__"]
