"""
HTTP executor

Performs one request for a RequestSpec and normalizes whatever happens into
an Outcome. Transport concerns (TLS, connection pooling, redirects) are left
to requests; this module measures, classifies and enforces the per-request
deadline.

requests only applies its timeout to single socket operations, so a server
that trickles its response could hold a request open indefinitely. Every
attempt therefore arms a watchdog timer. When it fires, the socket of the
connection the attempt is using is shut down, which wakes up any blocked
read, and the attempt is reported as a timeout whatever error surfaced.
"""

import http.client
import socket
import threading
import time
from typing import Dict, Iterator, Optional

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from loadster import __version__
from loadster.model import Failure, FailureReason, Outcome, RequestSpec, Success

USER_AGENT = f"loadster/{__version__}"
CHUNK_SIZE = 8192

# Attempt in progress on the current worker thread
_local = threading.local()


def merge_headers(spec: RequestSpec) -> Dict[str, str]:
    """
    Fold the ordered header pairs of a spec into a dict.

    Repeated names are joined with ", " (the equivalent HTTP form), keeping
    the first spelling of the name and the order of first appearance.

    Args:
        spec: Request description

    Returns:
        Dictionary of header name to value
    """
    merged: Dict[str, str] = {}
    names: Dict[str, str] = {}
    for name, value in spec.headers:
        key = name.lower()
        if key in names:
            merged[names[key]] = f"{merged[names[key]]}, {value}"
        else:
            names[key] = name
            merged[name] = value
    if "user-agent" not in names:
        merged["User-Agent"] = USER_AGENT
    return merged


def _encode_body(spec: RequestSpec) -> Optional[bytes]:
    if spec.body is None or not spec.method.allows_body:
        return None
    return spec.body.encode("utf-8")


def _shutdown(conn) -> None:
    sock = getattr(conn, "sock", None)
    if sock is None:
        return
    try:
        # plain socket shutdown, also for TLS sockets whose reader is blocked
        socket.socket.shutdown(sock, socket.SHUT_RDWR)
    except OSError:
        pass  # already closed


class _Attempt:
    """Deadline state of one request, shared with its watchdog timer."""

    def __init__(self):
        self.expired = False
        self.finished = False
        self._conn = None
        self._lock = threading.Lock()

    def watch(self, conn) -> None:
        with self._lock:
            self._conn = conn
            expired = self.expired
        if expired:
            _shutdown(conn)

    def expire(self) -> None:
        with self._lock:
            if self.finished:
                return
            self.expired = True
            conn = self._conn
        if conn is not None:
            _shutdown(conn)

    def finish(self) -> None:
        with self._lock:
            self.finished = True


def _watch(conn) -> None:
    attempt = getattr(_local, "attempt", None)
    if attempt is not None:
        attempt.watch(conn)


class _WatchedHTTPConnection(HTTPConnection):
    def connect(self):
        _watch(self)
        super().connect()
        _watch(self)

    def request(self, *args, **kwargs):
        _watch(self)
        return super().request(*args, **kwargs)


class _WatchedHTTPSConnection(HTTPSConnection):
    def connect(self):
        _watch(self)
        super().connect()
        _watch(self)

    def request(self, *args, **kwargs):
        _watch(self)
        return super().request(*args, **kwargs)


class _WatchedHTTPPool(HTTPConnectionPool):
    ConnectionCls = _WatchedHTTPConnection


class _WatchedHTTPSPool(HTTPSConnectionPool):
    ConnectionCls = _WatchedHTTPSConnection


class DeadlineAdapter(HTTPAdapter):
    """HTTPAdapter whose connections can be cut by the request watchdog."""

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _WatchedHTTPPool,
            "https": _WatchedHTTPSPool,
        }


def _nested(exc: BaseException) -> Iterator[BaseException]:
    # requests and urllib3 wrap the underlying error in args or .reason
    for inner in list(exc.args) + [getattr(exc, "reason", None)]:
        if isinstance(inner, BaseException) and inner is not exc:
            yield inner
            yield from _nested(inner)


def classify(exc: BaseException) -> FailureReason:
    """
    Map an exception raised while sending a request to the most specific
    failure reason.

    Refused, reset and unresolvable connections are connection errors. A
    peer that answers with something that is not HTTP is a transport error,
    as is anything else that went wrong once the connection was up.
    """
    if isinstance(exc, (requests.exceptions.Timeout, TimeoutError)):
        return FailureReason.TIMEOUT
    if isinstance(exc, requests.exceptions.ConnectionError):
        nested = list(_nested(exc))
        if any(isinstance(e, urllib3.exceptions.ReadTimeoutError) for e in nested):
            # read timeouts hit while streaming the body are rewrapped by requests
            return FailureReason.TIMEOUT
        if any(isinstance(e, http.client.HTTPException) and not isinstance(e, ConnectionError)
               for e in nested):
            return FailureReason.TRANSPORT
        return FailureReason.CONNECTION
    if isinstance(exc, ConnectionError):
        return FailureReason.CONNECTION
    return FailureReason.TRANSPORT


class HttpExecutor:
    """Thread-safe request runner sharing one connection pool across workers."""

    def __init__(self, pool_size: int = 10, session: Optional[requests.Session] = None):
        """
        Initialize the executor.

        Args:
            pool_size: Connections kept per host, normally the concurrency level
            session: Pre-built session (mostly for tests)
        """
        if session is None:
            session = requests.Session()
            adapter = DeadlineAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

    def _exchange(self, spec: RequestSpec, timeout: float) -> int:
        response = self.session.request(
            spec.method.value,
            spec.url,
            headers=merge_headers(spec),
            data=_encode_body(spec),
            timeout=timeout,
            stream=True,
        )
        try:
            for _ in response.iter_content(chunk_size=CHUNK_SIZE):
                pass
        finally:
            response.close()
        return response.status_code

    def execute(self, spec: RequestSpec, timeout: Optional[float] = None) -> Outcome:
        """
        Send one request and classify the result.

        Never raises: every failure is returned as a Failure outcome. The
        timeout bounds the whole exchange, from connecting to the last byte
        of the body.

        Args:
            spec: Request to send
            timeout: Seconds before giving up (default: spec.timeout)

        Returns:
            Success with the status code, or Failure with a reason
        """
        if timeout is None:
            timeout = spec.timeout

        attempt = _Attempt()
        watchdog = threading.Timer(timeout, attempt.expire)
        watchdog.daemon = True
        error: Optional[BaseException] = None
        status = None

        _local.attempt = attempt
        start = time.perf_counter()
        watchdog.start()
        try:
            status = self._exchange(spec, timeout)
        except (requests.exceptions.RequestException, urllib3.exceptions.HTTPError,
                OSError, ValueError) as e:
            # ValueError covers headers that cannot be encoded on the wire
            error = e
        finally:
            attempt.finish()
            watchdog.cancel()
            _local.attempt = None
        elapsed = time.perf_counter() - start

        if attempt.expired or elapsed > timeout:
            return Failure(FailureReason.TIMEOUT, elapsed, time.time(),
                           f"No complete response within {timeout:g}s")
        if error is not None:
            return Failure(classify(error), elapsed, time.time(), str(error))
        if not 100 <= status <= 599:
            return Failure(FailureReason.TRANSPORT, elapsed, time.time(),
                           f"Invalid status code: {status}")
        return Success(status, elapsed, time.time())

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpExecutor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
