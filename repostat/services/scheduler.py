"""
Parallel status collection for repostat.

Dispatches one inspection per repository to a bounded thread pool.
A failing or slow repository only affects its own row: every exception
raised by the inspector becomes a Failure outcome for that repository.
"""

import logging
import os
import subprocess
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_COMPLETED
from typing import Callable, Iterable, Optional, Union

from ..domain import (
    ErrorKind,
    Failure,
    InspectionError,
    InspectionOutcome,
    RepositoryRef,
    RepositoryStatus,
    ResultEntry,
    ResultSet,
    Success,
)
from .collector import ResultCollector

logger = logging.getLogger(__name__)

MIN_WORKERS = 4
MAX_WORKERS = 16

# How often the dispatching thread checks for cancellation
POLL_INTERVAL = 0.1

Inspector = Callable[[RepositoryRef], Union[RepositoryStatus, InspectionOutcome]]
Listener = Callable[[ResultEntry], None]


def default_concurrency() -> int:
    """
    Worker count scaled to the machine, capped so that hundreds of
    repositories do not flood the filesystem with git processes.
    """
    return max(MIN_WORKERS, min(MAX_WORKERS, os.cpu_count() or 1))


def outcome_from_exception(exc: BaseException) -> Failure:
    """
    Convert an exception raised during inspection into a Failure.

    Args:
        exc: Exception raised by the inspector

    Returns:
        Failure with the closest matching ErrorKind
    """
    if isinstance(exc, InspectionError):
        return Failure(exc.kind, exc.message)
    if isinstance(exc, PermissionError):
        kind = ErrorKind.PERMISSION_DENIED
    elif isinstance(exc, (FileNotFoundError, NotADirectoryError)):
        kind = ErrorKind.NOT_A_REPOSITORY
    elif isinstance(exc, (TimeoutError, subprocess.TimeoutExpired)):
        kind = ErrorKind.TIMEOUT
    else:
        kind = ErrorKind.CORRUPTED
    return Failure(kind, str(exc) or type(exc).__name__)


class Scheduler:
    """
    Runs inspections for many repositories in parallel.

    The returned ResultSet is always in input order, whatever order the
    inspections finish in.

    Example:
        client = GitClient()
        scheduler = Scheduler(client.inspect_ref, concurrency=8)
        result_set = scheduler.run(refs)
        print(f"{result_set.failed} repositories failed")
    """

    def __init__(
        self,
        inspect: Inspector,
        concurrency: Optional[int] = None,
        listener: Optional[Listener] = None,
    ):
        """
        Initialize Scheduler.

        Args:
            inspect: Called with each RepositoryRef; returns a
                     RepositoryStatus (or an outcome) or raises
            concurrency: Maximum inspections in flight (default: auto)
            listener: Called from worker threads with each completed
                      ResultEntry; must not block

        Raises:
            ValueError: If concurrency is not a positive integer
        """
        if concurrency is None:
            concurrency = default_concurrency()
        if concurrency < 1:
            raise ValueError(f"concurrency must be a positive integer, got {concurrency}")

        self.inspect = inspect
        self.concurrency = concurrency
        self.listener = listener
        self._cancel = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """
        Request early termination of the current run. Safe to call from
        any thread.

        Queued inspections are skipped and in-flight ones are abandoned;
        outcomes that were already collected are still returned by run().
        """
        self._cancel.set()

    def _inspect_one(self, collector: ResultCollector, index: int, ref: RepositoryRef,
                     cancel: threading.Event) -> None:
        if cancel.is_set():
            return

        try:
            result = self.inspect(ref)
        except Exception as e:
            outcome: InspectionOutcome = outcome_from_exception(e)
            logger.debug(f"Inspection of {ref.name} ({ref.path}) failed: {outcome.kind.label}: {outcome.message}")
        else:
            if isinstance(result, (Success, Failure)):
                outcome = result
            else:
                outcome = Success(result)

        # Abandoned inspections never surface an outcome
        if cancel.is_set():
            return

        collector.report(index, outcome)
        if self.listener is not None:
            self.listener(ResultEntry(ref=ref, outcome=outcome))

    def run(self, refs: Iterable[RepositoryRef]) -> ResultSet:
        """
        Inspect every ref and collect the outcomes in input order.

        Args:
            refs: Ordered repositories to inspect

        Returns:
            ResultSet with one entry per ref, or a partial ResultSet
            (``cancelled=True``) if the run was cancelled or interrupted

        Raises:
            CollectorError: If an outcome was reported twice
        """
        refs = list(refs)
        # Each run gets its own signal; workers abandoned by an earlier run keep theirs
        self._cancel = threading.Event()
        collector = ResultCollector(refs)
        if not refs:
            return collector.result_set()

        workers = min(self.concurrency, len(refs))
        logger.debug(f"Inspecting {len(refs)} repositories with {workers} workers")
        start = time.monotonic()

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="repostat")
        try:
            pending = {
                executor.submit(self._inspect_one, collector, index, ref, self._cancel)
                for index, ref in enumerate(refs)
            }
            while pending and not self._cancel.is_set():
                done, pending = wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    future.result()
        except KeyboardInterrupt:
            logger.debug("Interrupted, abandoning in-flight inspections")
            self._cancel.set()
        except BaseException:
            self._cancel.set()
            raise
        finally:
            if self._cancel.is_set():
                executor.shutdown(wait=False, cancel_futures=True)
            else:
                executor.shutdown(wait=True)

        cancelled = self._cancel.is_set()
        result_set = collector.result_set(cancelled=cancelled)
        logger.debug(
            f"Collected {len(result_set)}/{len(refs)} outcomes in "
            f"{time.monotonic() - start:.2f}s"
        )
        return result_set
