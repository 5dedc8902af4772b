"""Virtual user: issues requests and hands every outcome to the collector."""

import threading
import time
from typing import Optional

from loadster.collector import Collector
from loadster.executor import HttpExecutor
from loadster.model import RequestSpec


class Worker:
    """
    One virtual user.

    Runs either a fixed number of iterations or, when a deadline is given,
    keeps sending until the deadline passes. Failed requests are reported
    as-is and never retried. The stop event is only checked between
    requests, so a request already in flight always produces an outcome.
    """

    def __init__(
        self,
        worker_id: int,
        spec: RequestSpec,
        executor: HttpExecutor,
        collector: Collector,
        stop_event: threading.Event,
        iterations: int = 1,
        deadline: Optional[float] = None,
        delay: float = 0
    ):
        """
        Initialize worker.

        Args:
            worker_id: Index of this virtual user
            spec: Shared, read-only request description
            executor: Shared HTTP executor
            collector: Destination for outcomes
            stop_event: Set to stop issuing new requests
            iterations: Requests to send (ignored when deadline is set)
            deadline: time.monotonic() value at which to stop (duration mode)
            delay: Seconds to wait between consecutive requests
        """
        self.worker_id = worker_id
        self.spec = spec
        self.executor = executor
        self.collector = collector
        self.stop_event = stop_event
        self.iterations = iterations
        self.deadline = deadline
        self.delay = delay
        self.sent = 0

    def _should_continue(self) -> bool:
        if self.stop_event.is_set():
            return False
        if self.deadline is not None:
            return time.monotonic() < self.deadline
        return self.sent < self.iterations

    def run(self) -> int:
        """
        Send requests until done or stopped.

        Returns:
            Number of outcomes submitted by this worker
        """
        while self._should_continue():
            outcome = self.executor.execute(self.spec)
            self.sent += 1
            self.collector.submit(outcome)

            if self.delay > 0 and self._should_continue():
                # wait() returns early when the run is cancelled
                self.stop_event.wait(self.delay)
        return self.sent
