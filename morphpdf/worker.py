"""
Off-thread execution of transformation requests.

:class:`TransformWorker` runs each submitted request on a thread pool and
hands back a :class:`RequestHandle` for following its progress, waiting
for the result or cancelling it. Requests share no mutable state; each
one gets its own event channel and cancellation token.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Iterator, Optional, Union
from uuid import uuid4

from .backends import RenderBackend
from .config import DEFAULT_CONFIG, PipelineConfig
from .exceptions import RequestCancelled, RequestTimeout
from .operations import Operation
from .pipeline import Inputs, execute
from .progress import ProgressChannel
from .types import ErrorEvent, Event, ResultEvent, TransformResult

LOGGER = logging.getLogger("morphpdf.worker")


class RequestHandle:
    """Caller's view of one submitted request."""

    def __init__(
        self,
        request_id: str,
        future: "Future[Union[ResultEvent, ErrorEvent]]",
        channel: ProgressChannel,
        cancel_event: threading.Event,
        timeout: float,
    ) -> None:
        self.id = request_id
        self._future = future
        self._channel = channel
        self._cancel_event = cancel_event
        self._timeout = timeout

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> None:
        """Stop the request at its next page boundary; its work is discarded."""

        LOGGER.info("Cancelling request %s", self.id)
        self._cancel_event.set()

    def events(self) -> Iterator[Event]:
        """Progress events followed by exactly one terminal event."""

        return self._channel.events()

    def result(self, timeout: Optional[float] = None) -> TransformResult:
        """Wait for the request and return its result.

        Args:
            timeout: Seconds to wait; defaults to the configured job timeout.

        Raises:
            RequestTimeout: The wait ran out; the request is cancelled.
            MorphPDFError: The request failed.
        """

        timeout = self._timeout if timeout is None else timeout
        try:
            outcome = self._future.result(timeout=timeout)
        except FutureTimeout:
            self.cancel()
            raise RequestTimeout(
                f"Request {self.id} did not finish within {timeout:g} seconds"
            ) from None

        if isinstance(outcome, ErrorEvent):
            if outcome.exception is not None:
                raise outcome.exception
            raise RequestCancelled(outcome.detail or outcome.message)
        return outcome.result


class TransformWorker:
    """Thread pool that executes transformation requests."""

    def __init__(
        self,
        max_workers: int = 2,
        config: Optional[PipelineConfig] = None,
        backend: Optional[RenderBackend] = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self.backend = backend
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="morphpdf")

    def submit(self, operation: Operation, inputs: Inputs) -> RequestHandle:
        request_id = uuid4().hex
        channel = ProgressChannel(self.config.progress_buffer)
        cancel_event = threading.Event()
        LOGGER.debug("Submitting %s as request %s", type(operation).__name__, request_id)
        future = self._executor.submit(
            execute,
            operation,
            inputs,
            channel,
            cancel=cancel_event,
            config=self.config,
            backend=self.backend,
            enforce_limits=True,
        )
        return RequestHandle(request_id, future, channel, cancel_event, self.config.job_timeout)

    def run(self, operation: Operation, inputs: Inputs, timeout: Optional[float] = None) -> TransformResult:
        """Submit ``operation`` and block until it finishes."""

        return self.submit(operation, inputs).result(timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "TransformWorker":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


__all__ = ["TransformWorker", "RequestHandle"]
