"""
Data model for a load test run.

A RequestSpec describes the request every virtual user sends. Each attempt
produces exactly one Outcome, which is either a Success (the server answered
with a status code) or a Failure (timeout, connection error or transport
error). Failures are ordinary values flowing through the same channel as
successes, never exceptions. Once all virtual users are done the Outcomes
are frozen into a ResultSet.
"""

from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple, Union

from loadster.errors import ConfigError


class HttpMethod(Enum):
    """Supported HTTP methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @classmethod
    def parse(cls, text: str) -> "HttpMethod":
        """
        Parse a method name case-insensitively.

        Args:
            text: Method name, e.g. "get" or "POST"

        Returns:
            The matching HttpMethod

        Raises:
            ConfigError: If the method is not supported
        """
        try:
            return cls(text.strip().upper())
        except (ValueError, AttributeError):
            raise ConfigError(f"'{text}' is not a valid HTTP method") from None

    @property
    def allows_body(self) -> bool:
        return self in (HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH)


class RequestSpec(NamedTuple):
    """Immutable description of the request sent by every worker."""

    method: HttpMethod
    url: str
    headers: Tuple[Tuple[str, str], ...] = ()
    body: Optional[str] = None
    timeout: float = 30.0


class FailureReason(Enum):
    TIMEOUT = "timeout"
    CONNECTION = "connection error"
    TRANSPORT = "transport error"


class Success(NamedTuple):
    status: int
    elapsed: float
    timestamp: float

    @property
    def ok(self) -> bool:
        return True

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed * 1000)

    def as_record(self) -> Dict[str, Optional[int]]:
        return {"status": self.status, "time": self.elapsed_ms, "timestamp": int(self.timestamp)}


class Failure(NamedTuple):
    reason: FailureReason
    elapsed: float
    timestamp: float
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed * 1000)

    def as_record(self) -> Dict[str, Optional[int]]:
        return {"status": None, "time": self.elapsed_ms, "timestamp": int(self.timestamp)}


Outcome = Union[Success, Failure]


class ResultSet:
    """
    Frozen collection of every Outcome of a run.

    Arrival order is whatever order the workers finished in; use
    chronological() when display order matters.
    """

    def __init__(self, outcomes: Tuple[Outcome, ...], duration: float, cancelled: bool = False):
        self._outcomes = tuple(outcomes)
        self.duration = duration
        self.cancelled = cancelled
        self.succeeded = sum(1 for o in self._outcomes if o.ok)
        self.failed = len(self._outcomes) - self.succeeded

    @property
    def outcomes(self) -> Tuple[Outcome, ...]:
        return self._outcomes

    @property
    def total(self) -> int:
        return len(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self):
        return iter(self._outcomes)

    def chronological(self) -> List[Outcome]:
        """Outcomes sorted by completion timestamp."""
        return sorted(self._outcomes, key=lambda o: o.timestamp)

    def status_counts(self) -> Dict[int, int]:
        counts: Dict[int, int] = {}
        for o in self._outcomes:
            if o.ok:
                counts[o.status] = counts.get(o.status, 0) + 1
        return counts

    def failure_counts(self) -> Dict[FailureReason, int]:
        counts: Dict[FailureReason, int] = {}
        for o in self._outcomes:
            if not o.ok:
                counts[o.reason] = counts.get(o.reason, 0) + 1
        return counts

    def __repr__(self) -> str:
        return (f"ResultSet(total={self.total}, succeeded={self.succeeded}, "
                f"failed={self.failed}, duration={self.duration:.3f})")
