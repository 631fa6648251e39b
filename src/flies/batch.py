"""
Batch Classification Runner

Runs the classification pipeline over a selection of flies in fixed-size
groups. Members of a group run concurrently; groups run one after another
with a pause in between to stay under the completion service's rate limits.

Counting contract:
- processed: flies attempted so far (successes and failures)
- failed: flies whose pipeline raised
- succeeded: processed - failed

A failure is logged and recorded as a message; it never stops the batch or
affects other flies in the same group. There is no cancellation, and writes
already made are not rolled back.
"""

import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

from .records import Fly

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 3
DEFAULT_DELAY_SECONDS = 1.0

# Finished batches kept for status queries; older ones are evicted first
MAX_FINISHED_JOBS = 100


class BatchProgress(BaseModel):
    """Progress of one batch run."""

    job_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    total: int = 0
    processed: int = 0
    failed: int = 0
    groups_completed: int = 0
    finished: bool = False
    messages: List[str] = Field(default_factory=list)
    message: str = ""
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def succeeded(self) -> int:
        return self.processed - self.failed


def split_groups(items: Sequence[T], size: int) -> List[List[T]]:
    """
    Split items into consecutive groups of at most size.

    Examples:
        >>> split_groups([1, 2, 3, 4], 3)
        [[1, 2, 3], [4]]
    """
    if size < 1:
        raise ValueError("Group size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchRunner:
    """
    Runs a per-fly function over flies in groups.

    Args:
        process: Function run for each fly (e.g. a bound enrich_fly)
        batch_size: Flies per group, run concurrently
        delay_seconds: Pause between groups (not after the last)
        sleep: Sleep function, replaceable in tests
        on_progress: Called with the progress after each group
    """

    def __init__(
        self,
        process: Callable[[Fly], Any],
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: Optional[Callable[[BatchProgress], None]] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.process = process
        self.batch_size = batch_size
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.on_progress = on_progress

    def _run_one(self, fly: Fly) -> Optional[str]:
        """Run the pipeline for one fly; return an error message or None."""
        try:
            self.process(fly)
            return None
        except Exception as e:
            logger.error(f"Error processing fly {fly.name}: {e}")
            return f"Error processing {fly.name}: {e}"

    def run(self, flies: Sequence[Fly], progress: Optional[BatchProgress] = None) -> BatchProgress:
        """
        Process flies group by group.

        Returns:
            Final progress; processed always equals the number of flies
        """
        progress = progress or BatchProgress()
        progress.total = len(flies)
        progress.message = "Starting batch processing..."

        groups = split_groups(flies, self.batch_size)
        logger.info(f"Batch {progress.job_id}: {len(flies)} flies in {len(groups)} groups")

        for index, group in enumerate(groups):
            with ThreadPoolExecutor(max_workers=len(group)) as executor:
                errors = list(executor.map(self._run_one, group))

            failures = [e for e in errors if e is not None]
            progress.processed += len(group)
            progress.failed += len(failures)
            progress.messages.extend(failures)
            progress.groups_completed += 1
            progress.message = f"Processing flies: {progress.processed} / {progress.total}"

            if self.on_progress:
                self.on_progress(progress)

            if index < len(groups) - 1 and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

        progress.finished = True
        progress.finished_at = datetime.now(timezone.utc)
        if progress.failed:
            progress.message = (
                f"Error: {progress.failed} of {progress.total} flies failed during batch processing."
            )
        else:
            progress.message = "Batch processing completed successfully!"

        if self.on_progress:
            self.on_progress(progress)

        logger.info(
            f"Batch {progress.job_id} finished: {progress.succeeded} succeeded, {progress.failed} failed"
        )
        return progress


class BatchJobRegistry:
    """
    In-process record of batch runs, readable while they run.

    Running jobs are always kept. Only the most recent max_finished finished
    jobs are retained.
    """

    def __init__(self, max_finished: int = MAX_FINISHED_JOBS):
        self._lock = threading.Lock()
        self._jobs: Dict[str, BatchProgress] = {}
        self.max_finished = max_finished

    def create(self, total: int) -> BatchProgress:
        progress = BatchProgress(total=total, message="Starting batch processing...")
        self.save(progress)
        return progress

    def save(self, progress: BatchProgress) -> None:
        with self._lock:
            # Re-insert so dict order follows the latest update
            self._jobs.pop(progress.job_id, None)
            self._jobs[progress.job_id] = progress.model_copy(deep=True)
            self._evict_finished()

    def _evict_finished(self) -> None:
        finished = [job_id for job_id, job in self._jobs.items() if job.finished]
        for job_id in finished[:max(0, len(finished) - self.max_finished)]:
            del self._jobs[job_id]

    def get(self, job_id: str) -> Optional[BatchProgress]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None
