import pytest

from loadster.errors import ConfigError
from loadster.model import (
    Failure,
    FailureReason,
    HttpMethod,
    RequestSpec,
    ResultSet,
    Success,
)


class TestHttpMethod:
    @pytest.mark.parametrize("text", ["get", "GET", " Get "])
    def test_parse_is_case_insensitive(self, text):
        assert HttpMethod.parse(text) is HttpMethod.GET

    def test_parse_rejects_unknown_method(self):
        with pytest.raises(ConfigError, match="not a valid HTTP method"):
            HttpMethod.parse("HEAD")

    def test_allows_body(self):
        assert HttpMethod.POST.allows_body
        assert HttpMethod.PUT.allows_body
        assert HttpMethod.PATCH.allows_body
        assert not HttpMethod.GET.allows_body
        assert not HttpMethod.DELETE.allows_body


def test_request_spec_is_immutable():
    spec = RequestSpec(HttpMethod.GET, "http://example.com", (("A", "1"), ("A", "2")))
    with pytest.raises(AttributeError):
        spec.url = "http://other.example.com"
    assert spec.headers == (("A", "1"), ("A", "2"))
    assert spec.timeout == 30.0


def test_success_record():
    outcome = Success(200, 0.1234, 1700000000.9)
    assert outcome.ok
    assert outcome.as_record() == {"status": 200, "time": 123, "timestamp": 1700000000}


def test_failure_record_has_no_status():
    outcome = Failure(FailureReason.TIMEOUT, 2.0, 1700000001.0, "read timed out")
    assert not outcome.ok
    assert not hasattr(outcome, "status")
    assert outcome.as_record() == {"status": None, "time": 2000, "timestamp": 1700000001}
    assert list(outcome.as_record()) == ["status", "time", "timestamp"]


class TestResultSet:
    def make(self):
        outcomes = (
            Success(200, 0.01, 30.0),
            Failure(FailureReason.CONNECTION, 0.002, 10.0),
            Success(500, 0.02, 20.0),
            Success(200, 0.03, 40.0),
            Failure(FailureReason.CONNECTION, 0.001, 5.0),
        )
        return ResultSet(outcomes, duration=1.5)

    def test_counts(self):
        rs = self.make()
        assert rs.total == len(rs) == 5
        assert rs.succeeded == 3
        assert rs.failed == 2
        assert rs.succeeded + rs.failed == rs.total
        assert not rs.cancelled

    def test_chronological(self):
        rs = self.make()
        assert [o.timestamp for o in rs.chronological()] == [5.0, 10.0, 20.0, 30.0, 40.0]
        # arrival order is kept in the set itself
        assert rs.outcomes[0].timestamp == 30.0

    def test_status_and_failure_counts(self):
        rs = self.make()
        assert rs.status_counts() == {200: 2, 500: 1}
        assert rs.failure_counts() == {FailureReason.CONNECTION: 2}

    def test_empty(self):
        rs = ResultSet((), duration=0.0, cancelled=True)
        assert rs.total == 0
        assert rs.status_counts() == {}
        assert rs.cancelled
