"""
Loadster

A simple load testing tool that sends concurrent HTTP requests to a target
URL and reports the latency and status of every response.
"""

__version__ = "1.0.0"

from loadster.collector import Collector
from loadster.errors import ConfigError, LoadsterError, OutputError
from loadster.executor import HttpExecutor
from loadster.model import (
    Failure,
    FailureReason,
    HttpMethod,
    RequestSpec,
    ResultSet,
    Success,
)
from loadster.orchestrator import Orchestrator, OrchestratorState
from loadster.worker import Worker

__all__ = [
    "Collector",
    "ConfigError",
    "Failure",
    "FailureReason",
    "HttpExecutor",
    "HttpMethod",
    "LoadsterError",
    "Orchestrator",
    "OrchestratorState",
    "OutputError",
    "RequestSpec",
    "ResultSet",
    "Success",
    "Worker",
]
