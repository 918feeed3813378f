from __future__ import annotations

import pytest

from morphpdf.exceptions import OutOfRange
from morphpdf.progress import ProgressChannel, ProgressReporter, error_event
from morphpdf.types import Artifact, ErrorEvent, ProgressEvent, ResultEvent, Stage, TransformResult


def _result() -> TransformResult:
    return TransformResult.single(Artifact("out.pdf", b"%PDF"))


def test_percent_is_clamped_and_monotone() -> None:
    channel = ProgressChannel()
    reporter = ProgressReporter(channel)

    reporter.progress(Stage.LOADING, -5)
    reporter.progress(Stage.RENDERING, 40)
    reporter.progress(Stage.RENDERING, 30)
    reporter.progress(Stage.FINALIZING, 250)
    reporter.succeed(_result())

    events = list(channel.events())
    percents = [event.percent for event in events if isinstance(event, ProgressEvent)]
    assert percents == [0, 40, 40, 100]
    assert isinstance(events[-1], ResultEvent)


def test_nothing_after_terminal_event() -> None:
    channel = ProgressChannel()
    reporter = ProgressReporter(channel)

    reporter.fail(OutOfRange("12"))
    reporter.progress(Stage.RENDERING, 50)
    reporter.succeed(_result())
    reporter.fail(RuntimeError("late"))

    events = list(channel.events())
    assert len(events) == 1
    assert isinstance(events[0], ErrorEvent)
    assert events[0].kind == "OutOfRange"
    assert reporter.finished
    assert channel.terminated


def test_channel_refuses_events_after_terminal() -> None:
    channel = ProgressChannel()
    assert channel.publish(ResultEvent(_result()))
    assert not channel.publish(ProgressEvent(Stage.RENDERING, 10))


def test_full_buffer_drops_progress_but_not_terminal() -> None:
    channel = ProgressChannel(buffer=2)
    reporter = ProgressReporter(channel)

    for percent in (10, 20, 30, 40):
        reporter.progress(Stage.RENDERING, percent)
    reporter.succeed(_result())

    events = list(channel.events())
    assert [event.percent for event in events[:-1]] == [10, 20]
    assert isinstance(events[-1], ResultEvent)
    assert channel.dropped == 2


def test_reporter_without_channel_is_silent() -> None:
    reporter = ProgressReporter()
    reporter.progress(Stage.LOADING, 10)
    reporter.succeed(_result())
    assert reporter.percent == 10
    assert reporter.finished


def test_error_event_for_library_errors() -> None:
    event = error_event(OutOfRange("5-2"))
    assert event.kind == "OutOfRange"
    assert event.message == "Out of range: 5-2"
    assert event.terminal


def test_error_event_hides_unexpected_detail() -> None:
    event = error_event(KeyError("secret internals"))
    assert event.kind == "InternalError"
    assert "secret" not in event.message
    assert "secret internals" in event.detail


def test_invalid_buffer() -> None:
    with pytest.raises(ValueError):
        ProgressChannel(buffer=0)
