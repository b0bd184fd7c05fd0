#!/usr/bin/env python3
"""
Unit tests for the memoizing wrapper and decorator combinators
"""

import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from memocache.cache import DurableStore, VolatileStore
from memocache.errors import KeyDerivationError, TypeMismatchError
from memocache.memoize import Memoized, compose, log_start_stop, memoize


def fib(n):
    return n if n < 2 else fib(n - 1) + fib(n - 2)


def times(values, factor):
    return tuple(v * factor for v in values)


class TestMemoized:

    def test_wrapped_fib_twice_one_file(self, tmp_path):
        store = DurableStore(tmp_path)
        calls = []

        def counted_fib(n):
            calls.append(n)
            return fib(n)

        wrapped = Memoized(store, "fib", counted_fib)

        assert wrapped(10) == 55
        assert wrapped(10) == 55
        assert calls == [10]
        assert [p.name for p in store.entries()] == [f"fib-{store.deriver.derive('fib', (10,))}"]

    def test_copies_function_metadata(self):
        wrapped = Memoized(VolatileStore(), "fib", fib)
        assert wrapped.__name__ == "fib"
        assert wrapped.__wrapped__ is fib

    def test_wrappers_share_store(self):
        store = VolatileStore()
        calls = []

        def square(x):
            calls.append(x)
            return x * x

        Memoized(store, "square", square)(4)
        assert Memoized(store, "square", square)(4) == 16
        assert calls == [4]

    def test_identifiers_do_not_collide(self):
        store = VolatileStore()
        assert Memoized(store, "double", lambda x: 2 * x)(5) == 10
        assert Memoized(store, "triple", lambda x: 3 * x)(5) == 15

    def test_keyword_arguments(self):
        store = VolatileStore()
        wrapped = Memoized(store, "times", times)

        assert wrapped((1, 2), factor=3) == (3, 6)
        assert wrapped((1, 2), factor=4) == (4, 8)
        assert len(store) == 2

    def test_unhashable_arguments_need_a_seed(self):
        wrapped = Memoized(VolatileStore(), "times", times)

        with pytest.raises(KeyDerivationError):
            wrapped([1, 2], 3)
        assert wrapped.call_with_seed(12345, [1, 2], 3) == (3, 6)
        assert wrapped.call_with_seed(12345, [9, 9], 3) == (3, 6)

    def test_seeded_wrappers_keep_identifiers_apart(self):
        store = VolatileStore()
        double = Memoized(store, "double", lambda x: 2 * x)
        triple = Memoized(store, "triple", lambda x: 3 * x)

        assert double.call_with_seed(7, 5) == 10
        assert triple.call_with_seed(7, 5) == 15

    def test_call_with_fingerprint(self):
        store = VolatileStore()
        wrapped = Memoized(store, "fib", fib)

        assert wrapped.call_with_fingerprint(77, 7) == 13
        assert store.lookup(77).value == 13

    def test_result_type_checked_on_hit(self):
        store = VolatileStore()
        store.store(store.deriver.derive("label", (1,)), 1)

        def label(x):
            return str(x)

        wrapped = Memoized(store, "label", label, result_type=str)

        with pytest.raises(TypeMismatchError):
            wrapped(1)

    def test_memoize_decorator_recursion(self):
        store = VolatileStore()
        calls = []

        @memoize(store)
        def rfib(n):
            calls.append(n)
            return n if n < 2 else rfib(n - 1) + rfib(n - 2)

        assert rfib(20) == 6765
        assert sorted(calls) == list(range(21))
        assert rfib.identifier == "rfib"


class TestCombinators:

    def test_log_start_stop(self, caplog):
        caplog.set_level(logging.INFO, logger="memocache")
        logged = log_start_stop(fib)

        assert logged(6) == 8
        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "Start fib"
        assert messages[1].startswith("Stop fib")

    def test_log_start_stop_on_error(self, caplog):
        caplog.set_level(logging.INFO, logger="memocache")

        def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            log_start_stop(boom)()
        assert caplog.records[-1].getMessage().startswith("Stop boom")

    def test_compose_applies_rightmost_first(self):
        order = []

        def tag(label):
            def decorator(fn):
                def wrapper(*args):
                    order.append(label)
                    return fn(*args)
                return wrapper
            return decorator

        composed = compose(tag("outer"), tag("inner"))(fib)
        assert composed(5) == 5
        assert order == ["outer", "inner"]

    def test_logging_around_memoized(self, caplog):
        caplog.set_level(logging.INFO, logger="memocache")
        store = VolatileStore()
        fib3 = compose(log_start_stop, memoize(store, "fib3"))(fib)

        assert fib3(9) == 34
        assert fib3(9) == 34
        assert store.get_stats()["hits"] == 1
        assert any(r.getMessage() == "Start fib" for r in caplog.records)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
