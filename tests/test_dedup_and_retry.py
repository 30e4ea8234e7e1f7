"""Tests for in-flight deduplication and the retry policy."""

import threading
from pathlib import Path

import pytest

from modules.intake.dedup import Deduplicator
from modules.intake.retry import RetryPolicy
from conftest import wait_for


def _run_concurrently(dedup, key, fn, n):
    results, errors = [], []

    def caller():
        try:
            results.append(dedup.do(key, fn))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=caller) for _ in range(n)]
    for t in threads:
        t.start()
    return threads, results, errors


# === Deduplicator ===

class TestDeduplicator:

    def test_concurrent_callers_share_one_call(self):
        dedup = Deduplicator()
        release = threading.Event()
        calls = []

        def work():
            calls.append(1)
            release.wait(5)
            return 42

        threads, results, errors = _run_concurrently(dedup, "k", work, 10)
        assert wait_for(lambda: dedup.waiters("k") == 10)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert calls == [1]
        assert results == [42] * 10
        assert errors == []
        assert not dedup.in_flight("k")

    def test_exception_is_shared(self):
        dedup = Deduplicator()
        release = threading.Event()
        calls = []

        def work():
            calls.append(1)
            release.wait(5)
            raise RuntimeError("boom")

        threads, results, errors = _run_concurrently(dedup, "k", work, 4)
        assert wait_for(lambda: dedup.waiters("k") == 4)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert calls == [1]
        assert len(errors) == 4
        assert all(str(e) == "boom" for e in errors)
        assert not dedup.in_flight("k")

    def test_base_exception_releases_waiters(self):
        dedup = Deduplicator()
        release = threading.Event()

        class Abort(BaseException):
            pass

        def work():
            release.wait(5)
            raise Abort()

        outcomes = []

        def caller():
            try:
                dedup.do("k", work)
            except BaseException as e:
                outcomes.append(type(e))

        threads = [threading.Thread(target=caller) for _ in range(3)]
        for t in threads:
            t.start()
        assert wait_for(lambda: dedup.waiters("k") == 3)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert not any(t.is_alive() for t in threads)
        assert outcomes == [Abort] * 3
        assert not dedup.in_flight("k")

    def test_sequential_calls_run_again(self):
        dedup = Deduplicator()
        calls = []
        dedup.do("k", lambda: calls.append(1))
        dedup.do("k", lambda: calls.append(2))
        assert calls == [1, 2]

    def test_different_keys_are_independent(self):
        dedup = Deduplicator()
        release = threading.Event()
        started = []

        def work(name):
            started.append(name)
            release.wait(5)
            return name

        ta, ra, _ = _run_concurrently(dedup, "a", lambda: work("a"), 1)
        tb, rb, _ = _run_concurrently(dedup, "b", lambda: work("b"), 1)
        assert wait_for(lambda: len(started) == 2)
        release.set()
        for t in ta + tb:
            t.join(timeout=5)

        assert ra == ["a"]
        assert rb == ["b"]


# === Retry Policy ===

class TestRetryPolicy:

    def test_unlimited_by_default(self):
        policy = RetryPolicy()
        path = Path("/files/upload/a.pdf")
        for _ in range(100):
            policy.record(path)
        assert policy.allow(path)

    def test_gives_up_after_max(self):
        policy = RetryPolicy(max_attempts=2)
        path = Path("/files/upload/a.pdf")
        assert policy.allow(path)
        policy.record(path)
        assert policy.allow(path)
        policy.record(path)
        assert not policy.allow(path)
        assert policy.attempts(path) == 2

    def test_forget_missing_resets(self):
        policy = RetryPolicy(max_attempts=1)
        path = Path("/files/upload/a.pdf")
        policy.record(path)
        assert not policy.allow(path)

        policy.forget_missing(set())

        assert policy.attempts(path) == 0
        assert policy.allow(path)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=-1)
