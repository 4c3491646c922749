"""
Defines application-wide constants and paths.

This module centralizes configuration for paths, executable discovery and
subprocess behavior, adapting to whether the application is running from
source or as a frozen executable.
"""

import sys
import subprocess
from pathlib import Path

# --- Application Path and Configuration Setup ---
if getattr(sys, 'frozen', False):
    APP_PATH = Path(sys.executable).parent
else:
    # In development, the app path is the project root (parent of the package).
    APP_PATH = Path(__file__).resolve().parent.parent

# Use a user-specific directory for configuration to avoid permission issues.
USER_DATA_DIR: Path = Path.home() / '.ytdlp-api'
CONFIG_FILE: Path = USER_DATA_DIR / 'config.json'
LOG_DIR: Path = USER_DATA_DIR / 'logs'
PID_FILE: Path = USER_DATA_DIR / 'server.pid'

# Centralize subprocess creation flags to avoid console windows on Windows.
SUBPROCESS_CREATION_FLAGS = subprocess.CREATE_NO_WINDOW if sys.platform == 'win32' else 0

# --- yt-dlp ---
YT_DLP_NAME = 'yt-dlp'
YT_DLP_ENV_VAR = 'YTDLP_API_YTDLP'
DEFAULT_FILENAME_TEMPLATE = '%(title)s [%(id)s].%(ext)s'
FORMATS_TIMEOUT = 60  # seconds for `--dump-json`

# --- Server ---
DEFAULT_HOST = '127.0.0.1'
DEFAULT_PORT = 8080
