"""Unit tests for the exchange state machine, driven callback by callback."""

import logging

import pytest

from chatrelay.events import (
    ExchangeFailed,
    ExchangeStarted,
    ResponseArrived,
    ResponseArriving,
    Subscription,
)
from chatrelay.message import MessageRole
from chatrelay.sequencer import ExchangeSequencer, ExchangeState

from tests.conftest import text_chunk, usage_chunk


@pytest.fixture
def sequencer(listener, initiating):
    return ExchangeSequencer(listener, initiating)


def _types(listener):
    return [type(e) for e in listener.events]


class TestSubscribe:
    def test_started_carries_subscription_and_prompt(self, sequencer, listener, initiating):
        sub = Subscription()
        started = sequencer.on_subscribe(sub)

        assert isinstance(started, ExchangeStarted)
        assert started.subscription is sub
        assert started.prompt is initiating.prompt
        assert started.exchange_id == initiating.exchange_id
        assert listener.events == [started]
        assert sequencer.state is ExchangeState.STARTED

    def test_second_subscribe_rejected(self, sequencer):
        sequencer.on_subscribe(Subscription())
        with pytest.raises(RuntimeError, match="single exchange"):
            sequencer.on_subscribe(Subscription())

    def test_signals_before_subscribe_ignored(self, sequencer, listener, make_context, caplog):
        ctx = make_context()
        with caplog.at_level(logging.WARNING, logger="chatrelay.sequencer"):
            sequencer.on_next_chunk(text_chunk("x"))
            sequencer.on_error(RuntimeError("early"))
            sequencer.on_complete(ctx)

        assert listener.events == []
        assert ctx.transcript == []
        assert any("before subscription" in r.message for r in caplog.records)


class TestStreamingPath:
    def test_arriving_carries_cumulative_text(self, sequencer, listener, make_context):
        sequencer.on_subscribe(Subscription())
        for delta in ["Hel", "lo", " world"]:
            sequencer.on_next_chunk(text_chunk(delta))

        arriving = listener.of_type(ResponseArriving)
        assert [e.text for e in arriving] == ["Hel", "Hello", "Hello world"]
        assert sequencer.state is ExchangeState.ARRIVING

    def test_metadata_only_chunk_emits_nothing(self, sequencer, listener):
        sequencer.on_subscribe(Subscription())
        sequencer.on_next_chunk(text_chunk("Hi"))
        sequencer.on_next_chunk(usage_chunk())

        assert _types(listener) == [ExchangeStarted, ResponseArriving]
        assert sequencer.aggregator.snapshot()[0].text == "Hi"

    def test_complete_commits_and_notifies_once(self, sequencer, listener, make_context):
        ctx = make_context()
        sequencer.on_subscribe(Subscription())
        sequencer.on_next_chunk(text_chunk("Hello"))
        meta_chunk = usage_chunk()
        sequencer.on_next_chunk(meta_chunk)
        sequencer.on_complete(ctx)
        sequencer.on_complete(ctx)

        arrived = listener.of_type(ResponseArrived)
        assert len(arrived) == 1
        assert arrived[0].text == "Hello"
        assert arrived[0].response.metadata is meta_chunk.metadata
        assert len(ctx.transcript) == 1
        assert ctx.transcript[0].role is MessageRole.ASSISTANT
        assert ctx.transcript[0].content == "Hello"

    def test_complete_without_content_skips_history(self, sequencer, listener, make_context):
        ctx = make_context()
        sequencer.on_subscribe(Subscription())
        sequencer.on_next_chunk(usage_chunk())
        sequencer.on_complete(ctx)

        arrived = listener.of_type(ResponseArrived)
        assert len(arrived) == 1
        assert arrived[0].response.generations == []
        assert arrived[0].text == ""
        assert ctx.transcript == []

    def test_chunks_after_arrived_ignored(self, sequencer, listener, make_context):
        sequencer.on_subscribe(Subscription())
        sequencer.on_complete(make_context())
        sequencer.on_next_chunk(text_chunk("late"))
        sequencer.on_error(RuntimeError("late"))

        assert _types(listener) == [ExchangeStarted, ResponseArrived]


class TestSingleShotPath:
    def test_one_arrived_built_from_chunk(self, sequencer, listener, make_context):
        ctx = make_context()
        sequencer.on_subscribe(Subscription())
        sequencer.on_next(text_chunk("OK"))
        sequencer.on_complete(ctx)

        assert _types(listener) == [ExchangeStarted, ResponseArrived]
        assert listener.events[-1].text == "OK"
        assert [m.content for m in ctx.transcript] == ["OK"]

    def test_metadata_only_result_falls_through_to_complete(
        self, sequencer, listener, make_context,
    ):
        ctx = make_context()
        sequencer.on_subscribe(Subscription())
        sequencer.on_next(usage_chunk())
        sequencer.on_complete(ctx)

        assert _types(listener) == [ExchangeStarted, ResponseArrived]
        assert listener.events[-1].response.generations == []
        assert ctx.transcript == []


class TestFailure:
    def test_failure_wraps_cause(self, sequencer, listener, make_context):
        ctx = make_context()
        cause = ConnectionError("reset")
        sequencer.on_subscribe(Subscription())
        sequencer.on_next_chunk(text_chunk("partial"))
        sequencer.on_error(cause)

        failed = listener.of_type(ExchangeFailed)
        assert len(failed) == 1
        assert failed[0].cause is cause
        assert sequencer.state is ExchangeState.FAILED
        assert ctx.transcript == []

    def test_nothing_follows_failure(self, sequencer, listener, make_context):
        ctx = make_context()
        sequencer.on_subscribe(Subscription())
        sequencer.on_error(ConnectionError("reset"))
        sequencer.on_next_chunk(text_chunk("late"))
        sequencer.on_next(text_chunk("late"))
        sequencer.on_error(ConnectionError("again"))
        sequencer.on_complete(ctx)

        assert _types(listener) == [ExchangeStarted, ExchangeFailed]
        assert ctx.transcript == []

    def test_failure_is_logged_with_traceback(self, sequencer, caplog):
        sequencer.on_subscribe(Subscription())
        with caplog.at_level(logging.ERROR, logger="chatrelay.sequencer"):
            sequencer.on_error(ConnectionError("reset"))

        record = next(r for r in caplog.records if r.levelno == logging.ERROR)
        assert "reset" in record.message
        assert record.exc_info is not None
