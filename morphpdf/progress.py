"""Progress and outcome reporting for a single request.

A request publishes any number of :class:`ProgressEvent` objects followed
by exactly one terminal event (:class:`ResultEvent` or :class:`ErrorEvent`).
"""

from __future__ import annotations

import logging
import queue
from typing import Iterator, Optional

from .exceptions import MorphPDFError
from .types import ErrorEvent, Event, ProgressEvent, ResultEvent, Stage, TransformResult

LOGGER = logging.getLogger("morphpdf.progress")

INTERNAL_ERROR = "InternalError"
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred while processing the document."


class ProgressChannel:
    """Bounded single-producer event queue.

    Progress events are advisory: when ``buffer`` of them are already
    waiting, new ones are dropped instead of blocking the producer. One
    extra slot is reserved so the terminal event is always delivered.
    """

    def __init__(self, buffer: int = 64) -> None:
        if buffer < 1:
            raise ValueError("buffer must be >= 1")
        self._buffer = buffer
        self._queue: "queue.Queue[Event]" = queue.Queue(maxsize=buffer + 1)
        self._terminated = False
        self.dropped = 0

    @property
    def terminated(self) -> bool:
        return self._terminated

    def publish(self, event: Event) -> bool:
        """Queue ``event``; returns ``False`` if it was dropped."""

        if self._terminated:
            LOGGER.warning("Ignoring %s published after the terminal event", type(event).__name__)
            return False
        if event.terminal:
            self._terminated = True
            self._queue.put(event)
            return True
        if self._queue.qsize() >= self._buffer:
            self.dropped += 1
            LOGGER.debug("Progress buffer full, dropping %s", event)
            return False
        self._queue.put_nowait(event)
        return True

    def get(self, timeout: Optional[float] = None) -> Event:
        """Next event; raises :class:`queue.Empty` when ``timeout`` runs out."""

        return self._queue.get(timeout=timeout)

    def events(self) -> Iterator[Event]:
        """Yield events until, and including, the terminal one."""

        while True:
            event = self._queue.get()
            yield event
            if event.terminal:
                return


def error_event(exc: BaseException) -> ErrorEvent:
    """Translate ``exc`` into the :class:`ErrorEvent` shown to callers."""

    if isinstance(exc, MorphPDFError):
        return ErrorEvent(kind=exc.kind, message=exc.public_message, detail=str(exc), exception=exc)
    return ErrorEvent(
        kind=INTERNAL_ERROR,
        message=INTERNAL_ERROR_MESSAGE,
        detail=f"{type(exc).__name__}: {exc}",
        exception=exc,
    )


class ProgressReporter:
    """Producer side of a request's event stream.

    Percentages are clamped to ``[0, 100]`` and never move backwards; a
    lower value is reported as the last one. Nothing is published after
    the terminal event.
    """

    def __init__(self, channel: Optional[ProgressChannel] = None) -> None:
        self.channel = channel
        self.percent = 0.0
        self.stage: Optional[Stage] = None
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def _publish(self, event: Event) -> None:
        if self.channel is not None:
            self.channel.publish(event)

    def progress(self, stage: Stage, percent: float, message: str = "") -> None:
        if self._finished:
            LOGGER.warning("Dropping progress update after request finished: %s %s", stage, percent)
            return
        percent = min(100.0, max(0.0, float(percent)))
        self.percent = max(self.percent, percent)
        self.stage = stage
        self._publish(ProgressEvent(stage=stage, percent=self.percent, message=message))

    def succeed(self, result: TransformResult) -> None:
        if self._finished:
            LOGGER.warning("Dropping result for an already finished request")
            return
        self._finished = True
        self._publish(ResultEvent(result=result))

    def fail(self, exc: BaseException) -> ErrorEvent:
        event = error_event(exc)
        if self._finished:
            LOGGER.warning("Dropping error for an already finished request: %s", event.detail)
            return event
        self._finished = True
        self._publish(event)
        return event


__all__ = [
    "ProgressChannel",
    "ProgressReporter",
    "error_event",
    "INTERNAL_ERROR",
]
