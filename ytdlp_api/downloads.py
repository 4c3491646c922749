"""Supervises yt-dlp download processes and feeds their progress into the registry."""
import asyncio
import sys
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Set

from .arguments import build_arguments, default_output_template
from .constants import SUBPROCESS_CREATION_FLAGS
from .jobs import JobRequest
from .progress import parse_progress_line
from .registry import JobRegistry


class ProcessSupervisor:
    """Runs one yt-dlp process per job and owns its record until it finishes."""
    STOP_TIMEOUT = 10  # seconds to wait after SIGTERM before killing

    def __init__(self, registry: JobRegistry, command_prefix: Sequence[str]):
        """
        Initializes the ProcessSupervisor.

        Args:
            registry: The registry holding the job records.
            command_prefix: The executable (and any leading arguments) used to
                invoke yt-dlp, e.g. `['/usr/bin/yt-dlp']`.
        """
        self.registry = registry
        self.command_prefix = list(command_prefix)
        self.logger = logging.getLogger(__name__)
        self.active_processes: Dict[str, asyncio.subprocess.Process] = {}

    async def run(self, key: str, arguments: Sequence[str]):
        """
        Executes yt-dlp for a single job and records the outcome.

        Every failure ends up as a FAILED record. Cancellation (server
        shutdown) stops the process, marks the job failed and is re-raised.
        """
        command = self.command_prefix + list(arguments)
        kwargs: Dict[str, Any] = {}
        if sys.platform == 'win32':
            kwargs['creationflags'] = SUBPROCESS_CREATION_FLAGS

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **kwargs
            )
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to start yt-dlp for {key}: {e}")
            await self.registry.finalize(key, False, f"Failed to start yt-dlp process: {e}")
            return

        self.active_processes[key] = process
        try:
            _, stderr = await asyncio.gather(
                self._follow_progress(key, process.stdout),
                self._collect(process.stderr),
            )
            return_code = await process.wait()
        except asyncio.CancelledError:
            self.logger.info(f"Stopping yt-dlp for {key} (PID: {process.pid})...")
            await self._stop_process(process)
            await self.registry.finalize(key, False, "Download stopped: server shutting down.")
            raise
        except Exception as e:
            self.logger.exception(f"Unexpected error while supervising {key}")
            await self._stop_process(process)
            await self.registry.finalize(key, False, f"Download process failed to execute: {e}")
            return
        finally:
            if self.active_processes.get(key) is process:
                del self.active_processes[key]

        if return_code == 0:
            self.logger.info(f"Download completed for {key}")
            await self.registry.finalize(key, True)
        else:
            self.logger.error(f"Download failed for {key} (exit code {return_code}): {stderr}")
            await self.registry.finalize(key, False, stderr)

    async def _stop_process(self, process: asyncio.subprocess.Process):
        """Terminates a process, escalating to kill, and always reaps it."""
        if process.returncode is None:
            try: process.terminate()
            except ProcessLookupError: pass # Already gone
        try:
            await asyncio.wait_for(process.wait(), timeout=self.STOP_TIMEOUT)
        except asyncio.TimeoutError:
            self.logger.warning(f"yt-dlp (PID: {process.pid}) ignored SIGTERM. Forcing termination...")
            try: process.kill()
            except ProcessLookupError: pass
            await process.wait()

    async def _follow_progress(self, key: str, stream: asyncio.StreamReader):
        """Reads stdout line by line, applying every progress line in order."""
        while True:
            line_bytes = await self._read_line(stream)
            if line_bytes is None: continue  # Oversized line, skipped
            if not line_bytes: break
            clean_line = line_bytes.decode('utf-8', 'replace').strip()
            update = parse_progress_line(clean_line)
            if update is None:
                self.logger.debug(f"[{key}] {clean_line}")
                continue
            await self.registry.observe_progress(key, update)

    async def _read_line(self, stream: asyncio.StreamReader) -> Optional[bytes]:
        """
        Reads one line, or returns None after discarding a line longer than the
        stream limit. Returns b'' at EOF.
        """
        try:
            return await stream.readuntil(b'\n')
        except asyncio.IncompleteReadError as e:
            return e.partial
        except asyncio.LimitOverrunError as e:
            discarded = len(await stream.read(e.consumed))
            # Keep discarding until the end of the oversized line
            while True:
                try:
                    discarded += len(await stream.readuntil(b'\n'))
                    break
                except asyncio.IncompleteReadError as tail:
                    discarded += len(tail.partial)
                    break
                except asyncio.LimitOverrunError as more:
                    discarded += len(await stream.read(more.consumed))
            self.logger.debug(f"Skipped an oversized stdout line ({discarded} bytes)")
            return None

    @staticmethod
    async def _collect(stream: asyncio.StreamReader) -> str:
        data = await stream.read()
        return data.decode('utf-8', 'replace')


class DownloadManager:
    """Admits download requests and launches a detached supervisor task for each."""

    def __init__(self, registry: JobRegistry, command_prefix: Sequence[str]):
        self.registry = registry
        self.supervisor = ProcessSupervisor(registry, command_prefix)
        self.logger = logging.getLogger(__name__)
        self.active_tasks: Set[asyncio.Task] = set()

    async def submit(self, request: JobRequest, download_dir: str) -> str:
        """
        Admits a request and starts its download in the background.

        Args:
            request: The validated download request; its URL is the job key.
            download_dir: Configured download directory, used for the default
                output template.

        Returns:
            The job key.

        Raises:
            DuplicateInFlightError: If the URL is already being downloaded.
        """
        key = request.url
        if request.output_template is not None:
            output_template = request.output_template
        else:
            output_template = default_output_template(download_dir)
        arguments = build_arguments(request, output_template)

        await self.registry.admit(key)
        try:
            await asyncio.to_thread(Path(download_dir).mkdir, parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Cannot create download directory {download_dir}: {e}")
            await self.registry.finalize(key, False, f"Cannot create download directory: {e}")
            return key

        task = asyncio.create_task(self.supervisor.run(key, arguments), name=f"download:{key}")
        self.active_tasks.add(task)
        task.add_done_callback(self._task_done_callback(self.active_tasks))
        return key

    async def wait_idle(self):
        """Waits until every launched download has finished."""
        while self.active_tasks:
            await asyncio.gather(*list(self.active_tasks), return_exceptions=True)

    async def stop_all_downloads(self):
        """Stops every running download and waits for its process to be reaped."""
        if not self.active_tasks: return
        self.logger.info(f"Stopping {len(self.active_tasks)} active download(s)...")
        for task in list(self.active_tasks):
            task.cancel()
        await self.wait_idle()

    def _task_done_callback(self, task_set: set) -> Callable:
        """Creates a callback to remove a task from a set and log exceptions."""
        def callback(task: asyncio.Task):
            task_set.discard(task)
            try:
                task.result()
            except asyncio.CancelledError:
                pass # Shutdown
            except Exception:
                self.logger.exception(f"Exception in background task {task.get_name()}:")
        return callback
