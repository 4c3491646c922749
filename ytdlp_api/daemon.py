"""
Starts, stops and inspects the background server process through a PID file.
"""
import os
import sys
import signal
import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from .constants import PID_FILE
from .exceptions import ServerControlError

logger = logging.getLogger(__name__)


def _server_command() -> List[str]:
    """The command that runs the server in the foreground."""
    if getattr(sys, 'frozen', False):
        return [sys.executable, 'server', 'run']
    return [sys.executable, '-m', 'ytdlp_api', 'server', 'run']


def read_pid(pid_file: Path = PID_FILE) -> Optional[int]:
    """Returns the PID recorded in the PID file, or None if there is none."""
    try:
        return int(pid_file.read_text(encoding='utf-8').strip())
    except FileNotFoundError:
        return None
    except ValueError:
        raise ServerControlError(f"PID file {pid_file} is corrupt.")


def _process_exists(pid: int) -> bool:
    if sys.platform == 'win32':
        result = subprocess.run(
            ['tasklist', '/FI', f'PID eq {pid}', '/NH'],
            capture_output=True, text=True, creationflags=subprocess.CREATE_NO_WINDOW
        )
        return str(pid) in result.stdout
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True  # Exists but owned by someone else
    return True


def is_running(pid_file: Path = PID_FILE) -> bool:
    pid = read_pid(pid_file)
    return pid is not None and _process_exists(pid)


def start_server(pid_file: Path = PID_FILE) -> int:
    """
    Launches the server as a detached background process.

    Returns:
        The PID of the new process.

    Raises:
        ServerControlError: If the server is already running or cannot be spawned.
    """
    if is_running(pid_file):
        raise ServerControlError("Server is already running.")

    kwargs = {}
    if sys.platform == 'win32':
        kwargs['creationflags'] = (subprocess.CREATE_NO_WINDOW | subprocess.DETACHED_PROCESS
                                   | subprocess.CREATE_NEW_PROCESS_GROUP)
    else:
        kwargs['start_new_session'] = True

    try:
        process = subprocess.Popen(
            _server_command(),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            **kwargs
        )
    except OSError as e:
        raise ServerControlError(f"Failed to start server process: {e}")

    pid_file.parent.mkdir(parents=True, exist_ok=True)
    pid_file.write_text(str(process.pid), encoding='utf-8')
    logger.info(f"Server started in background with PID {process.pid}")
    return process.pid


def stop_server(pid_file: Path = PID_FILE) -> Optional[int]:
    """
    Terminates the background server and removes the PID file.

    Returns:
        The PID that was signalled, or None if no server was recorded or the
        recorded process had already exited.
    """
    pid = read_pid(pid_file)
    if pid is None:
        return None

    signalled: Optional[int] = None
    if _process_exists(pid):
        try:
            os.kill(pid, signal.SIGTERM)
            signalled = pid
            logger.info(f"Sent SIGTERM to server process {pid}")
        except ProcessLookupError:
            pass  # Exited in between
        except OSError as e:
            raise ServerControlError(f"Could not stop server process {pid}: {e}")

    pid_file.unlink(missing_ok=True)
    return signalled
