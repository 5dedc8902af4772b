"""Persist per-request records as JSON Lines."""

import json

from loadster.errors import OutputError
from loadster.model import ResultSet


def save_results(result_set: ResultSet, path: str) -> int:
    """
    Write one {"status", "time", "timestamp"} record per outcome.

    Records are written in completion order. status is null for failed
    requests, time is elapsed milliseconds and timestamp is Unix seconds.

    Args:
        result_set: Frozen results of the run
        path: Destination file (overwritten)

    Returns:
        Number of records written

    Raises:
        OutputError: If the file cannot be written
    """
    count = 0
    try:
        with open(path, "w") as f:
            for outcome in result_set.chronological():
                f.write(json.dumps(outcome.as_record()) + "\n")
                count += 1
    except OSError as e:
        raise OutputError(path, e) from e
    return count
