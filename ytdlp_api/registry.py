"""Owns the keyed collection of job records and the rules for changing them."""
import asyncio
import copy
import logging
from typing import Dict, Optional

from .exceptions import DuplicateInFlightError
from .jobs import JobRecord, JobState
from .progress import ProgressUpdate


class JobRegistry:
    """
    Concurrent keyed map of JobRecords guarded by a single lock.

    Records are only ever handed out as copies, so callers never observe a
    record while a supervisor is halfway through updating it.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = asyncio.Lock()
        self._jobs: Dict[str, JobRecord] = {}

    async def admit(self, key: str) -> None:
        """
        Registers a new job in the STARTING state.

        An existing completed or failed record for the key is replaced.

        Raises:
            DuplicateInFlightError: If a job for the key is still in flight.
        """
        async with self._lock:
            existing = self._jobs.get(key)
            if existing is not None and existing.state.in_flight:
                raise DuplicateInFlightError(key)
            self._jobs[key] = JobRecord()
        self.logger.info(f"Admitted job for {key}")

    async def observe_progress(self, key: str, update: ProgressUpdate) -> None:
        """Applies a parsed progress line. Unknown or finished jobs are left alone."""
        async with self._lock:
            record = self._jobs.get(key)
            if record is None or record.state.terminal:
                return
            record.state = JobState.DOWNLOADING
            record.progress = min(max(update.percent, 0.0), 100.0)
            record.eta = update.eta
            record.speed = update.speed or ''

    async def finalize(self, key: str, success: bool, error: Optional[str] = None) -> None:
        """Moves a job to COMPLETED or FAILED. No further transitions apply afterwards."""
        async with self._lock:
            record = self._jobs.get(key)
            if record is None or record.state.terminal:
                return
            if success:
                record.state = JobState.COMPLETED
                record.progress = 100.0
                record.error = None
            else:
                record.state = JobState.FAILED
                record.error = error or ''

    async def get(self, key: str) -> Optional[JobRecord]:
        async with self._lock:
            record = self._jobs.get(key)
            return copy.copy(record) if record is not None else None

    async def snapshot(self) -> Dict[str, JobRecord]:
        """Returns an independent copy of every record."""
        async with self._lock:
            return {key: copy.copy(record) for key, record in self._jobs.items()}
