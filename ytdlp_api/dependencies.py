"""Locates the yt-dlp executable used for downloads and format listing."""
import os
import sys
import shutil
import logging
from pathlib import Path
from typing import List, Optional

from .constants import APP_PATH, YT_DLP_NAME, YT_DLP_ENV_VAR

logger = logging.getLogger(__name__)


def _find_executable(name: str) -> Optional[Path]:
    """Finds an executable, preferring a locally managed one."""
    local_path = APP_PATH / (f'{name}.exe' if sys.platform == 'win32' else name)
    if local_path.exists():
        return local_path
    path_in_system = shutil.which(name)
    return Path(path_in_system) if path_in_system else None


def find_yt_dlp() -> Optional[Path]:
    """Finds the yt-dlp executable, honoring the environment override first."""
    override = os.environ.get(YT_DLP_ENV_VAR)
    if override:
        return Path(override)
    return _find_executable(YT_DLP_NAME)


def yt_dlp_command() -> List[str]:
    """
    Returns the command prefix used to invoke yt-dlp.

    Falls back to the bare executable name when nothing is found, so that a
    missing install surfaces as a failed job rather than a startup error.
    """
    path = find_yt_dlp()
    if path is None:
        logger.warning(f"{YT_DLP_NAME} not found in PATH or beside the application.")
        return [YT_DLP_NAME]
    logger.info(f"yt-dlp path: {path}")
    return [str(path)]
