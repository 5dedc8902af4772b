import json

import pytest

from loadster.errors import OutputError
from loadster.model import Failure, FailureReason, ResultSet, Success
from loadster.output import save_results


def test_records_in_chronological_order(tmp_path):
    result_set = ResultSet((
        Success(201, 0.25, 1700000002.4),
        Failure(FailureReason.TIMEOUT, 1.0, 1700000001.0, "timed out"),
    ), duration=1.2)
    path = tmp_path / "results.jsonl"

    assert save_results(result_set, str(path)) == 2

    lines = path.read_text().splitlines()
    assert [json.loads(line) for line in lines] == [
        {"status": None, "time": 1000, "timestamp": 1700000001},
        {"status": 201, "time": 250, "timestamp": 1700000002},
    ]
    # field order is stable for every record
    assert all(line.startswith('{"status": ') for line in lines)


def test_unwritable_path_raises_output_error(tmp_path):
    result_set = ResultSet((Success(200, 0.1, 1.0),), duration=0.1)
    with pytest.raises(OutputError) as excinfo:
        save_results(result_set, str(tmp_path))
    assert isinstance(excinfo.value.cause, OSError)
    assert str(tmp_path) in str(excinfo.value)
