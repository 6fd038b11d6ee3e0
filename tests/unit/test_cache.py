"""
Unit tests for CompileCache and fingerprints.
"""

import threading
import time

import pytest

from bundler.cache import (
    CompileCache,
    compute_content_fingerprint,
    compute_source_fingerprint,
)
from bundler.sources import SourceFile


def source(identifier, text):
    return SourceFile(identifier, text.encode("utf-8"), text)


class TestFingerprints:
    """Tests for source and content fingerprints."""

    def test_source_fingerprint_stable(self):
        sources = [source("a.js", "A"), source("b.js", "B")]

        assert compute_source_fingerprint(sources, "k") == compute_source_fingerprint(sources, "k")

    def test_content_change_changes_fingerprint(self):
        before = compute_source_fingerprint([source("a.js", "A")], "k")
        after = compute_source_fingerprint([source("a.js", "A2")], "k")

        assert before != after

    def test_boundary_shift_changes_fingerprint(self):
        one = compute_source_fingerprint([source("a.js", "ab"), source("b.js", "c")], "")
        two = compute_source_fingerprint([source("a.js", "a"), source("b.js", "bc")], "")

        assert one != two

    def test_settings_and_locale_included(self):
        sources = [source("a.js", "A")]
        base = compute_source_fingerprint(sources, "k")

        assert compute_source_fingerprint(sources, "k2") != base
        assert compute_source_fingerprint(sources, "k", "fr") != base

    def test_content_fingerprint_length(self):
        assert len(compute_content_fingerprint(b"body")) == 32


class TestCompileCache:
    """Tests for hits, misses and replacement."""

    def test_miss_then_hit(self):
        cache = CompileCache("/a.js")

        first = cache.get_or_compile("", "fp1", lambda: b"one")
        second = cache.get_or_compile("", "fp1", lambda: b"other")

        assert first is second
        assert cache.compile_count == 1
        assert first.etag == f'"{first.content_fingerprint}"'

    def test_new_fingerprint_replaces_artifact(self):
        cache = CompileCache("/a.js")

        old = cache.get_or_compile("", "fp1", lambda: b"one")
        new = cache.get_or_compile("", "fp2", lambda: b"two")

        assert cache.peek("") is new
        assert new.generation == old.generation + 1
        assert new.content_fingerprint != old.content_fingerprint

    def test_failure_keeps_previous_artifact(self):
        cache = CompileCache("/a.js")
        good = cache.get_or_compile("", "fp1", lambda: b"one")

        def broken():
            raise RuntimeError("compile failed")

        with pytest.raises(RuntimeError):
            cache.get_or_compile("", "fp2", broken)

        assert cache.peek("") is good
        assert cache.in_flight() == 0

    def test_variants_independent(self):
        cache = CompileCache("/i18n.js")

        fr = cache.get_or_compile("fr", "fp-fr", lambda: b"Bonjour")
        de = cache.get_or_compile("de", "fp-de", lambda: b"Hallo")

        assert cache.peek("fr") is fr
        assert cache.peek("de") is de
        assert cache.variants() == ["de", "fr"]

    def test_clear(self):
        cache = CompileCache("/a.js")
        cache.get_or_compile("", "fp1", lambda: b"one")

        cache.clear()

        assert cache.peek("") is None


class TestCoalescing:
    """Concurrent compiles for the same fingerprint."""

    def test_concurrent_callers_share_one_compile(self):
        cache = CompileCache("/a.js")
        barrier = threading.Barrier(5)
        calls = []
        results = []
        lock = threading.Lock()

        def compile_fn():
            calls.append(1)
            time.sleep(0.2)
            return b"compiled"

        def worker():
            barrier.wait()
            artifact = cache.get_or_compile("", "fp1", compile_fn)
            with lock:
                results.append(artifact)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert len(calls) == 1
        assert cache.compile_count == 1
        assert len(results) == 5
        assert all(r is results[0] for r in results)

    def test_waiters_receive_same_exception(self):
        cache = CompileCache("/a.js")
        barrier = threading.Barrier(3)
        errors = []
        lock = threading.Lock()

        def compile_fn():
            time.sleep(0.2)
            raise ValueError("bad")

        def worker():
            barrier.wait()
            try:
                cache.get_or_compile("", "fp1", compile_fn)
            except ValueError as e:
                with lock:
                    errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert cache.compile_count == 1
        assert len(errors) == 3
        assert all(e is errors[0] for e in errors)
        assert cache.peek("") is None

    def test_different_variants_do_not_wait(self):
        cache = CompileCache("/i18n.js")
        started = threading.Event()
        release = threading.Event()

        def slow():
            started.set()
            release.wait(timeout=5)
            return b"slow"

        t = threading.Thread(target=lambda: cache.get_or_compile("fr", "fp-fr", slow))
        t.start()
        started.wait(timeout=5)

        fast = cache.get_or_compile("de", "fp-de", lambda: b"fast")
        release.set()
        t.join(timeout=5)

        assert fast.body == b"fast"
        assert cache.peek("fr").body == b"slow"


class TestOutOfOrderCompletion:
    """An older compile finishing last must not replace a newer artifact."""

    def test_slow_older_compile_not_installed(self):
        cache = CompileCache("/a.js")
        started = threading.Event()
        release = threading.Event()
        results = {}

        def slow_old():
            started.set()
            release.wait(timeout=5)
            return b"old"

        def worker():
            results["old"] = cache.get_or_compile("", "fp-old", slow_old)

        t = threading.Thread(target=worker)
        t.start()
        started.wait(timeout=5)

        new = cache.get_or_compile("", "fp-new", lambda: b"new")
        release.set()
        t.join(timeout=5)

        assert cache.peek("") is new
        assert cache.peek("").source_fingerprint == "fp-new"
        assert results["old"].body == b"old"
        assert cache.generation == new.generation

    def test_next_access_is_a_hit(self):
        cache = CompileCache("/a.js")
        started = threading.Event()
        release = threading.Event()

        def slow_old():
            started.set()
            release.wait(timeout=5)
            return b"old"

        t = threading.Thread(target=lambda: cache.get_or_compile("", "fp-old", slow_old))
        t.start()
        started.wait(timeout=5)
        new = cache.get_or_compile("", "fp-new", lambda: b"new")
        release.set()
        t.join(timeout=5)

        again = cache.get_or_compile("", "fp-new", lambda: b"recompiled")

        assert again is new
        assert cache.compile_count == 2

    def test_later_flight_finishing_last_installs(self):
        cache = CompileCache("/a.js")
        started = threading.Event()
        release = threading.Event()

        def slow_new():
            started.set()
            release.wait(timeout=5)
            return b"new"

        cache.get_or_compile("", "fp-old", lambda: b"old")
        t = threading.Thread(target=lambda: cache.get_or_compile("", "fp-new", slow_new))
        t.start()
        started.wait(timeout=5)
        release.set()
        t.join(timeout=5)

        assert cache.peek("").body == b"new"
