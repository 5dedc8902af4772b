"""Single aggregation point for the outcomes produced by all workers."""

import threading
from typing import Callable, List, Optional

from loadster.model import Outcome, ResultSet

OutcomeListener = Callable[[int, Outcome], None]


class Collector:
    """
    Thread-safe accumulator of Outcomes.

    submit() may be called concurrently from every worker; appends and
    sequence numbers are serialized by one lock. finalize() freezes the
    accumulated outcomes into a ResultSet exactly once.
    """

    def __init__(self, listener: Optional[OutcomeListener] = None):
        """
        Initialize collector.

        Args:
            listener: Called with (sequence_number, outcome) after each
                submit, outside the lock (e.g. verbose console output)
        """
        self.listener = listener
        self._outcomes: List[Outcome] = []
        self._finalized = False
        self._lock = threading.Lock()

    def submit(self, outcome: Outcome) -> int:
        """
        Record one outcome.

        Args:
            outcome: Completed request outcome (already timestamped)

        Returns:
            1-based sequence number of the outcome in arrival order
        """
        with self._lock:
            if self._finalized:
                raise RuntimeError("Collector already finalized")
            self._outcomes.append(outcome)
            seq = len(self._outcomes)

        if self.listener:
            self.listener(seq, outcome)
        return seq

    def __len__(self) -> int:
        with self._lock:
            return len(self._outcomes)

    def finalize(self, duration: float, cancelled: bool = False) -> ResultSet:
        """
        Freeze the collected outcomes.

        The caller must only finalize once every worker has terminated.

        Args:
            duration: Wall-clock duration of the run in seconds
            cancelled: Whether the run was cancelled and drained early

        Returns:
            The frozen ResultSet
        """
        with self._lock:
            if self._finalized:
                raise RuntimeError("Collector already finalized")
            self._finalized = True
            return ResultSet(tuple(self._outcomes), duration, cancelled)
