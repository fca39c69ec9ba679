from __future__ import annotations

import logging

from core.models import Prediction
from core.results import ResultSink


def test_current_is_empty_before_first_publish():
    assert ResultSink().current() == ()


def test_publish_replaces_wholesale():
    sink = ResultSink()
    sink.publish([Prediction("A", 0.9), Prediction("B", 0.1)])
    sink.publish([Prediction("A", 0.2), Prediction("B", 0.8)])
    assert sink.current() == (Prediction("A", 0.2), Prediction("B", 0.8))


def test_published_set_is_immutable_snapshot():
    sink = ResultSink()
    source = [Prediction("A", 0.5)]
    sink.publish(source)
    source.append(Prediction("B", 0.5))
    assert sink.current() == (Prediction("A", 0.5),)
    assert isinstance(sink.current(), tuple)


def test_listener_failure_does_not_block_other_listeners(caplog):
    sink = ResultSink()
    received = []

    def broken(_):
        raise RuntimeError("boom")

    sink.subscribe(broken)
    sink.subscribe(received.append)
    with caplog.at_level(logging.ERROR, logger="core.results"):
        sink.publish([Prediction("A", 1.0)])
    assert received == [(Prediction("A", 1.0),)]
    assert "failed" in caplog.text


def test_unsubscribe_and_clear():
    sink = ResultSink()
    received = []
    unsubscribe = sink.subscribe(received.append)
    sink.publish([Prediction("A", 1.0)])
    sink.clear()
    assert received == [(Prediction("A", 1.0),), ()]
    unsubscribe()
    unsubscribe()
    sink.publish([Prediction("A", 0.0)])
    assert len(received) == 2
    assert sink.current() == (Prediction("A", 0.0),)


def test_clear_on_empty_sink_does_not_notify():
    sink = ResultSink()
    received = []
    sink.subscribe(received.append)
    sink.clear()
    assert received == []
