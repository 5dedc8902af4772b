"""
Run lifecycle

The Orchestrator spawns one Worker per virtual user on a thread pool, waits
for all of them to terminate, then freezes the Collector into a ResultSet.

    IDLE -> DISPATCHING -> AWAITING_COMPLETION -> FINALIZED

Cancellation (cancel() or Ctrl+C, while spawning users or waiting for them)
stops workers from starting new requests; requests already in flight finish
or time out and their outcomes are kept, so a cancelled run still yields a
partial ResultSet.
"""

import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from enum import Enum
from typing import List, Optional

from loadster.collector import Collector, OutcomeListener
from loadster.executor import HttpExecutor
from loadster.model import RequestSpec, ResultSet
from loadster.worker import Worker

POLL_INTERVAL = 0.1


class OrchestratorState(Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING_COMPLETION = "awaiting completion"
    FINALIZED = "finalized"


_NEXT_STATE = {
    OrchestratorState.IDLE: OrchestratorState.DISPATCHING,
    OrchestratorState.DISPATCHING: OrchestratorState.AWAITING_COMPLETION,
    OrchestratorState.AWAITING_COMPLETION: OrchestratorState.FINALIZED,
}


class Orchestrator:
    """Owns a single load test run."""

    def __init__(
        self,
        spec: RequestSpec,
        concurrency: int = 10,
        requests_per_user: int = 1,
        duration: Optional[float] = None,
        delay: float = 0,
        executor: Optional[HttpExecutor] = None,
        listener: Optional[OutcomeListener] = None
    ):
        """
        Initialize orchestrator.

        Args:
            spec: Request every virtual user sends
            concurrency: Number of virtual users (simultaneous requests)
            requests_per_user: Requests each user sends (fixed-count mode)
            duration: Seconds to keep users looping (duration mode, overrides
                requests_per_user)
            delay: Seconds each user waits between its requests
            executor: HTTP executor to share (default: one pooled per run)
            listener: Called for every collected outcome
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if requests_per_user < 1:
            raise ValueError("requests_per_user must be at least 1")

        self.spec = spec
        self.concurrency = concurrency
        self.requests_per_user = requests_per_user
        self.duration = duration
        self.delay = delay
        self._owns_executor = executor is None
        self.executor = executor or HttpExecutor(pool_size=concurrency)
        self.collector = Collector(listener)
        self.stop_event = threading.Event()
        self.workers: List[Worker] = []
        self.state = OrchestratorState.IDLE

    @property
    def expected_outcomes(self) -> Optional[int]:
        """Outcome count of a complete fixed-count run (None in duration mode)."""
        if self.duration is not None:
            return None
        return self.concurrency * self.requests_per_user

    @property
    def cancelled(self) -> bool:
        return self.stop_event.is_set()

    def cancel(self) -> None:
        """Stop issuing new requests; in-flight requests still complete."""
        self.stop_event.set()

    def _advance(self, target: OrchestratorState) -> None:
        if _NEXT_STATE.get(self.state) is not target:
            raise RuntimeError(f"Invalid transition {self.state.value} -> {target.value}")
        self.state = target

    def run(self) -> ResultSet:
        """
        Dispatch all workers, wait for them and finalize.

        Returns:
            ResultSet with one outcome per completed request
        """
        self._advance(OrchestratorState.DISPATCHING)
        start_time = time.monotonic()
        deadline = start_time + self.duration if self.duration is not None else None

        pool = ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="loadster-vu")
        try:
            futures = []
            try:
                for i in range(self.concurrency):
                    worker = Worker(
                        i, self.spec, self.executor, self.collector, self.stop_event,
                        iterations=self.requests_per_user,
                        deadline=deadline,
                        delay=self.delay
                    )
                    self.workers.append(worker)
                    futures.append(pool.submit(worker.run))
            except KeyboardInterrupt:
                # users already started are drained like any cancelled run
                self.cancel()

            self._advance(OrchestratorState.AWAITING_COMPLETION)
            pending = set(futures)
            while pending:
                try:
                    done, pending = wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_EXCEPTION)
                except KeyboardInterrupt:
                    self.cancel()
                    continue
                for future in done:
                    # A worker only raises on a programming error
                    future.result()
        except BaseException:
            self.cancel()
            raise
        finally:
            pool.shutdown(wait=True)
            if self._owns_executor:
                self.executor.close()

        duration = time.monotonic() - start_time
        cancelled = self.cancelled
        expected = self.expected_outcomes
        if not cancelled and expected is not None and len(self.collector) != expected:
            raise RuntimeError(f"Collected {len(self.collector)} outcomes, expected {expected}")

        self._advance(OrchestratorState.FINALIZED)
        return self.collector.finalize(duration, cancelled)
