"""Exceptions raised by loadster. Per-request failures are Outcomes, not errors."""


class LoadsterError(Exception):
    """Base class for loadster errors."""


class ConfigError(LoadsterError):
    """Invalid configuration detected before any request is dispatched."""


class OutputError(LoadsterError):
    """Results could not be written to the output file."""

    def __init__(self, path: str, cause: OSError):
        super().__init__(f"Unable to write results to {path}: {cause}")
        self.path = path
        self.cause = cause
