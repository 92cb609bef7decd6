"""Bounded background task dispatcher.

Provides a protocol for submitting and tracking background tasks, with an
in-process asyncio implementation that caps how many tasks execute at once.
Alert analysis runs here so a burst of audit events (a login storm, say)
never fans out into an unbounded number of concurrent queries.
"""

import asyncio
import enum
import uuid
from collections import OrderedDict
from collections.abc import Coroutine
from typing import Any, Protocol

from loguru import logger

DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_MAX_FINISHED = 1000


class JobStatus(enum.StrEnum):
    """Status of a background job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BackgroundTaskRunner(Protocol):
    """Protocol for background task execution."""

    def submit_task(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> str:
        """Submit an async task for background execution.

        Args:
            coro: The coroutine to execute.
            name: Optional label used in log records.

        Returns:
            A job ID string for tracking.
        """
        ...

    def get_status(self, job_id: str) -> JobStatus:
        """Get the current status of a background job.

        Args:
            job_id: The job ID returned by submit_task.

        Returns:
            The current job status.
        """
        ...


class BoundedTaskDispatcher:
    """In-process task dispatcher with a fixed concurrency ceiling.

    ``submit_task`` never blocks the caller: the job is scheduled right away
    and waits on a semaphore until one of ``max_concurrency`` slots frees.
    Exceptions raised by a job are logged here and never propagate back to
    the code that submitted it.

    Statuses of finished jobs are kept only for the newest ``max_finished``
    jobs; older ones are forgotten and ``get_status`` raises KeyError for them.
    """

    def __init__(
        self,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        max_finished: int = DEFAULT_MAX_FINISHED,
    ) -> None:
        if max_concurrency < 1:
            msg = f"max_concurrency must be at least 1, got {max_concurrency}"
            raise ValueError(msg)
        if max_finished < 0:
            msg = f"max_finished must not be negative, got {max_finished}"
            raise ValueError(msg)
        self.max_concurrency = max_concurrency
        self.max_finished = max_finished
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._jobs: dict[str, JobStatus] = {}
        self._finished: OrderedDict[str, JobStatus] = OrderedDict()
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._running = 0

    @property
    def running(self) -> int:
        """Number of jobs currently holding a slot."""
        return self._running

    @property
    def tracked(self) -> int:
        """Number of job statuses currently held, active and finished."""
        return len(self._jobs) + len(self._finished)

    @property
    def pending(self) -> int:
        """Number of submitted jobs that have not finished yet."""
        return len(self._tasks)

    def submit_task(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> str:
        """Submit an async task for bounded background execution.

        Args:
            coro: The coroutine to execute.
            name: Optional label used in log records.

        Returns:
            A job ID string for tracking.
        """
        job_id = str(uuid.uuid4())
        label = name or job_id
        self._jobs[job_id] = JobStatus.PENDING

        async def _run() -> None:
            async with self._semaphore:
                self._running += 1
                self._jobs[job_id] = JobStatus.RUNNING
                try:
                    await coro
                    self._jobs[job_id] = JobStatus.COMPLETED
                except Exception:
                    self._jobs[job_id] = JobStatus.FAILED
                    logger.exception(f"Background task {label} failed")
                finally:
                    self._running -= 1

        task = asyncio.create_task(_run(), name=label)
        self._tasks[job_id] = task
        task.add_done_callback(lambda _t: self._finish(job_id))
        return job_id

    def _finish(self, job_id: str) -> None:
        self._tasks.pop(job_id, None)
        status = self._jobs.pop(job_id, JobStatus.FAILED)
        if status not in (JobStatus.COMPLETED, JobStatus.FAILED):
            # Cancelled before or while running
            status = JobStatus.FAILED
        self._finished[job_id] = status
        while len(self._finished) > self.max_finished:
            self._finished.popitem(last=False)

    def get_status(self, job_id: str) -> JobStatus:
        """Get the current status of a background job.

        Args:
            job_id: The job ID returned by submit_task.

        Returns:
            The current job status.

        Raises:
            KeyError: If the job ID is not found.
        """
        if job_id in self._jobs:
            return self._jobs[job_id]
        return self._finished[job_id]

    async def drain(self) -> None:
        """Wait until every submitted job, including ones submitted meanwhile, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
