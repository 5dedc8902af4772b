import threading

import pytest

from loadster.collector import Collector
from loadster.model import Failure, FailureReason, Success


def test_concurrent_submits_lose_nothing():
    collector = Collector()
    per_thread = 200
    barrier = threading.Barrier(8)
    seqs = []

    def feed(n):
        barrier.wait()
        for i in range(per_thread):
            if i % 4 == 0:
                seqs.append(collector.submit(Failure(FailureReason.CONNECTION, 0.0, float(n))))
            else:
                seqs.append(collector.submit(Success(200, 0.001, float(n))))

    threads = [threading.Thread(target=feed, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(collector) == 1600
    assert sorted(seqs) == list(range(1, 1601))
    result_set = collector.finalize(duration=1.0)
    assert result_set.total == 1600
    assert result_set.succeeded == 1200
    assert result_set.failed == 400


def test_listener_gets_sequence_numbers():
    seen = []
    collector = Collector(listener=lambda seq, outcome: seen.append((seq, outcome.status)))
    assert collector.submit(Success(200, 0.1, 1.0)) == 1
    assert collector.submit(Success(404, 0.1, 2.0)) == 2
    assert seen == [(1, 200), (2, 404)]


def test_finalize_only_once():
    collector = Collector()
    collector.submit(Success(200, 0.1, 1.0))
    result_set = collector.finalize(duration=0.5, cancelled=True)
    assert result_set.cancelled
    assert result_set.duration == 0.5

    with pytest.raises(RuntimeError):
        collector.finalize(duration=0.5)
    with pytest.raises(RuntimeError):
        collector.submit(Success(200, 0.1, 2.0))
    assert len(result_set) == 1
