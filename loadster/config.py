"""
Configuration

Validates everything a run needs before any request is dispatched and
turns it into a LoadTestConfig. Extra headers and option defaults can come
from the environment (or a .env file loaded by the CLI).
"""

import json
import os
from typing import Iterable, List, NamedTuple, Optional, Tuple
from urllib.parse import urlparse

from loadster.errors import ConfigError
from loadster.model import HttpMethod, RequestSpec

DEFAULT_CONCURRENCY = 10
DEFAULT_TIMEOUT = 30.0

Header = Tuple[str, str]


class LoadTestConfig(NamedTuple):
    url: str
    method: HttpMethod = HttpMethod.GET
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float = DEFAULT_TIMEOUT
    headers: Tuple[Header, ...] = ()
    body: Optional[str] = None
    verbose: bool = False
    output: Optional[str] = None
    requests_per_user: int = 1
    duration: Optional[float] = None
    delay_ms: int = 0

    def request_spec(self) -> RequestSpec:
        return RequestSpec(self.method, self.url, self.headers, self.body, self.timeout)


def validate_url(url: str) -> str:
    """
    Check that url is an absolute http(s) URL with a host.

    Raises:
        ConfigError: If the URL is malformed
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
        parsed.port  # raises ValueError on a bad port
    except ValueError as e:
        raise ConfigError(f"Invalid URL '{url}': {e}") from None
    if parsed.scheme not in ("http", "https") or not hostname:
        raise ConfigError(f"Invalid URL '{url}'. Please include scheme (http/https) and host")
    return url


def validate_header(name: str, value: str) -> Header:
    """
    Check that a header can be sent as is. HTTP/1.1 header fields are
    Latin-1 on the wire.

    Raises:
        ConfigError: If the name or value cannot be encoded
    """
    try:
        name.encode("latin-1")
        value.encode("latin-1")
    except UnicodeEncodeError:
        raise ConfigError(f"Header '{name}' contains characters that cannot be sent. "
                          "Only Latin-1 is allowed in headers") from None
    return name, value


def parse_headers(values: Optional[Iterable[str]]) -> List[Header]:
    """
    Parse "Name:Value" strings into ordered (name, value) pairs.

    The string is split on the first colon, so values may contain colons.
    Duplicates are kept.

    Args:
        values: Header strings from the command line

    Returns:
        List of (name, value) tuples

    Raises:
        ConfigError: If an entry has no colon, an empty name or characters
            outside Latin-1
    """
    headers: List[Header] = []
    for h in values or []:
        name, sep, value = h.partition(":")
        name = name.strip()
        if not sep or not name:
            raise ConfigError(f"Invalid header format '{h}'. Use 'Name:Value'")
        headers.append(validate_header(name, value.strip()))
    return headers


def load_headers_from_env() -> Tuple[List[Header], List[str]]:
    """
    Load custom headers from environment variables.

    Returns:
        Tuple of (headers, warnings)
    """
    headers: List[Header] = []
    warnings: List[str] = []

    api_key = os.getenv("API_KEY")
    bearer_token = os.getenv("BEARER_TOKEN")

    if api_key:
        headers.append(("X-API-Key", api_key))
    if bearer_token:
        headers.append(("Authorization", f"Bearer {bearer_token}"))

    custom = os.getenv("CUSTOM_HEADERS")
    if custom:
        try:
            extra = json.loads(custom)
        except json.JSONDecodeError:
            extra = None
        if isinstance(extra, dict):
            headers.extend((str(k), str(v)) for k, v in extra.items())
        else:
            warnings.append("CUSTOM_HEADERS is not a valid JSON object")

    return headers, warnings


def env_default(name: str, default: float, cast=float) -> float:
    """Read a numeric option default from the environment."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'") from None


def check_output_path(path: str) -> str:
    """
    Make sure results can be written to path without creating it yet.

    Raises:
        ConfigError: If the path is a directory or its directory is missing
            or not writable
    """
    if os.path.isdir(path):
        raise ConfigError(f"Output path '{path}' is a directory")
    directory = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(directory):
        raise ConfigError(f"Output directory '{directory}' does not exist")
    if os.path.exists(path):
        writable = os.access(path, os.W_OK)
    else:
        writable = os.access(directory, os.W_OK)
    if not writable:
        raise ConfigError(f"Output path '{path}' is not writable")
    return path


def build_config(
    url: str,
    method: str = "GET",
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    headers: Optional[Iterable[str]] = None,
    body: Optional[str] = None,
    verbose: bool = False,
    output: Optional[str] = None,
    requests_per_user: int = 1,
    duration: Optional[float] = None,
    delay_ms: int = 0,
    env_headers: Optional[List[Header]] = None
) -> Tuple[LoadTestConfig, List[str]]:
    """
    Validate raw options and build a LoadTestConfig.

    Args:
        url: Target URL
        method: HTTP method name
        concurrency: Number of virtual users
        timeout: Per-request timeout in seconds
        headers: "Name:Value" strings
        body: Request body (POST/PUT/PATCH only)
        verbose: Print every request
        output: File to save per-request records to
        requests_per_user: Requests each virtual user sends
        duration: Run for this many seconds instead of a fixed count
        delay_ms: Delay between requests of one user in milliseconds
        env_headers: Headers taken from the environment, sent first

    Returns:
        Tuple of (config, warnings)

    Raises:
        ConfigError: On any invalid option
    """
    warnings: List[str] = []

    validate_url(url)
    http_method = HttpMethod.parse(method)

    if concurrency < 1:
        raise ConfigError("Concurrency must be at least 1")
    if timeout <= 0:
        raise ConfigError("Timeout must be greater than 0")
    if requests_per_user < 1:
        raise ConfigError("Requests per user must be at least 1")
    if duration is not None and duration <= 0:
        raise ConfigError("Duration must be greater than 0")
    if delay_ms < 0:
        raise ConfigError("Delay cannot be negative")

    all_headers = [validate_header(name, value) for name, value in env_headers or []]
    all_headers += parse_headers(headers)

    if body is not None and not http_method.allows_body:
        warnings.append(f"Request body is ignored for {http_method.value} requests")
        body = None

    if output:
        check_output_path(output)

    config = LoadTestConfig(
        url=url,
        method=http_method,
        concurrency=int(concurrency),
        timeout=float(timeout),
        headers=tuple(all_headers),
        body=body,
        verbose=verbose,
        output=output or None,
        requests_per_user=int(requests_per_user),
        duration=duration,
        delay_ms=int(delay_ms)
    )
    return config, warnings
