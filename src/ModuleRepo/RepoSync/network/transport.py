"""Callback-style asynchronous GET on top of a blocking httpx client.

Requests are submitted to a worker pool and return immediately.  The worker
performs the request and then invokes exactly one of the two callbacks on its
own thread: ``on_response`` when any HTTP response was received (whatever its
status) or ``on_failure`` when none was.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from typing import Callable

import httpx

logger = logging.getLogger(__name__)

__all__ = ["AsyncHttpTransport", "ResponseCallback", "FailureCallback"]

ResponseCallback = Callable[[str, httpx.Response], None]
FailureCallback = Callable[[str, Exception], None]


class AsyncHttpTransport:
    """Issues GET requests on ``executor`` and reports completion via callbacks."""

    def __init__(self, client: httpx.Client, executor: Executor) -> None:
        self.client = client
        self.executor = executor

    def enqueue(
        self, url: str, on_response: ResponseCallback, on_failure: FailureCallback
    ) -> "Future[None]":
        """Schedule ``url`` on the worker pool; the future resolves after the callback."""

        return self.executor.submit(self.execute, url, on_response, on_failure)

    def execute(self, url: str, on_response: ResponseCallback, on_failure: FailureCallback) -> None:
        """Perform the request on the current thread and invoke one callback.

        Anything raised while issuing the request counts as "no response":
        ``httpx.TransportError`` for connection and timeout problems, but also
        ``httpx.InvalidURL`` or redirect errors caused by a bad endpoint.
        Exceptions raised by ``on_response`` itself propagate.
        """

        logger.debug("GET %s", url)
        try:
            response = self.client.get(url)
        except Exception as exc:
            logger.debug("No response from %s: %r", url, exc)
            on_failure(url, exc)
            return
        try:
            on_response(url, response)
        finally:
            response.close()
