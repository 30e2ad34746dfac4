"""
Result collection for parallel status runs.

Workers finish in any order; the collector stores each outcome in the
slot matching its input index so the final ResultSet keeps input order
without a sort step.
"""

import threading
from typing import List, Optional, Sequence

from ..domain import InspectionOutcome, RepositoryRef, ResultEntry, ResultSet


class CollectorError(RuntimeError):
    """An outcome was reported twice or never reported. Always fatal."""


class DuplicateOutcomeError(CollectorError):
    def __init__(self, index: int, ref: RepositoryRef):
        super().__init__(f"Outcome for '{ref.name}' (index {index}) reported twice")
        self.index = index
        self.ref = ref


class MissingOutcomeError(CollectorError):
    def __init__(self, missing: List[RepositoryRef]):
        names = ", ".join(ref.name for ref in missing)
        super().__init__(f"No outcome reported for {len(missing)} repositories: {names}")
        self.missing = missing


class ResultCollector:
    """
    Thread-safe, pre-sized slot array of inspection outcomes.

    Example:
        collector = ResultCollector(refs)
        collector.report(1, Success(status))
        collector.report(0, Failure(ErrorKind.TIMEOUT, "timed out"))
        result_set = collector.result_set()
    """

    def __init__(self, refs: Sequence[RepositoryRef]):
        self.refs = list(refs)
        self._slots: List[Optional[InspectionOutcome]] = [None] * len(self.refs)
        self._reported = 0
        self._lock = threading.Lock()
        self._done = threading.Event()
        if not self.refs:
            self._done.set()

    @property
    def total(self) -> int:
        return len(self.refs)

    @property
    def reported(self) -> int:
        return self._reported

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def report(self, index: int, outcome: InspectionOutcome) -> int:
        """
        Store the outcome for the ref at ``index``.

        Args:
            index: Position of the ref in the input sequence
            outcome: Success or Failure for that ref

        Returns:
            Number of outcomes reported so far

        Raises:
            IndexError: If index is outside the input sequence
            DuplicateOutcomeError: If the index was already reported
        """
        if not 0 <= index < len(self._slots):
            raise IndexError(f"Outcome index {index} out of range for {len(self._slots)} repositories")

        with self._lock:
            if self._slots[index] is not None:
                raise DuplicateOutcomeError(index, self.refs[index])
            self._slots[index] = outcome
            self._reported += 1
            count = self._reported

        if count == len(self._slots):
            self._done.set()
        return count

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every index has reported. Returns False on timeout."""
        return self._done.wait(timeout)

    def result_set(self, cancelled: bool = False) -> ResultSet:
        """
        Build the ordered ResultSet.

        Args:
            cancelled: The batch was cancelled; unreported refs are left
                       out instead of treated as an error

        Returns:
            ResultSet in input order

        Raises:
            MissingOutcomeError: If outcomes are missing and the batch
                                 was not cancelled
        """
        with self._lock:
            slots = list(self._slots)

        missing = [ref for ref, outcome in zip(self.refs, slots) if outcome is None]
        if missing and not cancelled:
            raise MissingOutcomeError(missing)

        entries = tuple(
            ResultEntry(ref=ref, outcome=outcome)
            for ref, outcome in zip(self.refs, slots)
            if outcome is not None
        )
        return ResultSet(entries=entries, total=len(self.refs), cancelled=cancelled)
