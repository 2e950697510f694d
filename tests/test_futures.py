"""Tests for the Future/Promise pair."""
import pytest

from assetkit.engine.futures import Future, FutureState, Promise


class TestSettledFutures:
    """Already-settled constructors."""

    def test_with_value_delivers_immediately(self):
        received = []
        future = Future.with_value(42)
        future.on_complete(received.append)
        assert future.is_complete
        assert received == [42]

    def test_with_error_delivers_immediately(self):
        received = []
        future = Future.with_error("boom")
        future.on_error(received.append)
        assert future.is_error
        assert future.error == "boom"
        assert received == ["boom"]

    def test_wrong_channel_never_fires(self):
        completed, failed = [], []
        Future.with_value(1).on_error(failed.append)
        Future.with_error("x").on_complete(completed.append)
        assert completed == [] and failed == []


class TestPromise:
    """Write side."""

    def test_pending_until_completed(self):
        promise = Promise()
        received = []
        promise.future.on_complete(received.append)
        assert promise.future.state is FutureState.PENDING
        assert received == []

        promise.complete("v")
        assert received == ["v"]
        assert promise.is_complete

    def test_first_terminal_action_wins(self):
        promise = Promise()
        values, errors = [], []
        promise.future.on_complete(values.append).on_error(errors.append)

        promise.complete(1)
        promise.complete(2)
        promise.error("late")

        assert values == [1]
        assert errors == []
        assert promise.future.value == 1

    def test_error_then_complete_is_ignored(self):
        promise = Promise()
        promise.error("first")
        promise.complete("second")
        assert promise.is_error
        assert promise.future.error == "first"

    def test_listeners_run_in_subscription_order(self):
        promise = Promise()
        order = []
        for i in range(5):
            promise.future.on_complete(lambda _v, i=i: order.append(i))
        promise.complete(None)
        assert order == [0, 1, 2, 3, 4]

    def test_each_listener_called_once(self):
        promise = Promise()
        calls = []
        promise.future.on_complete(calls.append)
        promise.complete("a")
        promise.complete("b")
        assert calls == ["a"]

    def test_late_subscriber_gets_value(self):
        promise = Promise()
        promise.complete(7)
        received = []
        promise.future.on_complete(received.append)
        assert received == [7]

    def test_broken_listener_does_not_block_others(self):
        promise = Promise()
        received = []

        def broken(_value):
            raise RuntimeError("listener bug")

        promise.future.on_complete(broken)
        promise.future.on_complete(received.append)
        promise.complete("ok")
        assert received == ["ok"]

    def test_progress_before_completion_only(self):
        promise = Promise()
        seen = []
        promise.future.on_progress(lambda loaded, total: seen.append((loaded, total)))
        promise.progress(1, 3)
        promise.progress(2, 3)
        promise.complete(None)
        promise.progress(3, 3)
        assert seen == [(1, 3), (2, 3)]


class TestDelegation:
    """complete_with forwards another future's outcome."""

    def test_forwards_value(self):
        source = Promise()
        target = Promise()
        target.complete_with(source.future)
        assert target.future.is_pending

        source.complete("x")
        assert target.future.value == "x"

    def test_forwards_error_untouched(self):
        err = ValueError("bad")
        target = Promise()
        target.complete_with(Future.with_error(err))
        assert target.future.error is err

    def test_chain_of_delegations(self):
        root = Promise()
        middle = Promise()
        leaf = Promise()
        middle.complete_with(root.future)
        leaf.complete_with(middle.future)

        root.complete(99)
        assert leaf.future.value == 99

    def test_delegation_is_terminal(self):
        source = Promise()
        target = Promise()
        target.complete_with(source.future)
        target.complete("ignored")
        assert target.is_resolved
        assert target.future.is_pending

        source.complete("real")
        assert target.future.value == "real"

    def test_forwards_progress(self):
        source = Promise()
        target = Promise()
        target.complete_with(source.future)
        seen = []
        target.future.on_progress(lambda a, b: seen.append((a, b)))
        source.progress(1, 2)
        assert seen == [(1, 2)]

    def test_cannot_delegate_to_itself(self):
        promise = Promise()
        with pytest.raises(ValueError):
            promise.complete_with(promise.future)


class TestThen:
    """Chaining continuations."""

    def test_then_chains_futures(self):
        result = Future.with_value(2).then(lambda v: Future.with_value(v * 10))
        assert result.value == 20

    def test_then_propagates_error(self):
        result = Future.with_error("e").then(lambda v: Future.with_value(v))
        assert result.error == "e"

    def test_then_captures_exceptions(self):
        def explode(_v):
            raise KeyError("k")

        result = Future.with_value(1).then(explode)
        assert isinstance(result.error, KeyError)
