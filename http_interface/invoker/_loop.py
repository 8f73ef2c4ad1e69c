# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Background event loop used to wait on asynchronous exchange results.

Synchronous service methods (and the ``concurrent.futures.Future`` and
``Iterator`` adapters) run the transport's coroutines on a persistent
daemon thread running ``loop.run_forever()``.  Keeping one loop alive lets
transports pool connections across calls.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import logging
import threading
from collections.abc import AsyncIterator, Awaitable, Iterator
from types import TracebackType
from typing import Any, TypeVar

from http_interface.invoker._common import ExchangeTimeoutError, loop_logger

T = TypeVar("T")

_DONE = object()
"""Sentinel returned by ``_next_or_done`` when the async iterator is exhausted."""


async def _await(awaitable: Awaitable[T]) -> T:
    """Wrap any awaitable in a coroutine (``run_coroutine_threadsafe`` requires one)."""
    return await awaitable


async def _next_or_done(iterator: AsyncIterator[Any]) -> Any:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return _DONE


class EventLoopThread:
    """Lazily started asyncio event loop on a daemon thread.

    Thread-safe: any number of threads may submit work concurrently.
    Auto-recovers after ``close()`` by starting a fresh loop on next use.
    """

    __slots__ = ("_lock", "_loop", "_name", "_thread")

    def __init__(self, name: str = "http-interface-loop") -> None:
        """Initialize without starting the thread."""
        self._name = name
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """Whether the background loop is currently started."""
        loop = self._loop
        return loop is not None and not loop.is_closed()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None or self._loop.is_closed():
                loop = asyncio.new_event_loop()
                thread = threading.Thread(target=loop.run_forever, name=self._name, daemon=True)
                thread.start()
                self._loop = loop
                self._thread = thread
                if loop_logger.isEnabledFor(logging.DEBUG):
                    loop_logger.debug("Event loop started: %s", self._name)
            return self._loop

    def submit(self, awaitable: Awaitable[T]) -> concurrent.futures.Future[T]:
        """Schedule *awaitable* on the loop and return a thread-safe future."""
        return asyncio.run_coroutine_threadsafe(_await(awaitable), self._ensure_loop())

    def run(self, awaitable: Awaitable[T], timeout: float, *, name: str = "awaitable") -> T:
        """Block the calling thread until *awaitable* completes.

        Args:
            awaitable: The awaitable to run on the loop.
            timeout: Maximum seconds to wait.
            name: Label used in the timeout error.

        Returns:
            The awaitable's result.

        Raises:
            ExchangeTimeoutError: If *timeout* elapses.  The in-flight work
                is cancelled before raising.  A ``TimeoutError`` raised by
                the awaitable itself propagates unchanged.
            RuntimeError: If called from the loop thread itself.

        """
        if self._thread is not None and threading.current_thread() is self._thread:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise RuntimeError("Cannot block on the event loop thread; declare an async return type instead")
        future = self.submit(awaitable)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            if future.done():
                # Finished concurrently, or the awaitable raised TimeoutError itself.
                return future.result()
            future.cancel()
            raise ExchangeTimeoutError(name, timeout) from None

    def iterate(self, iterator: AsyncIterator[T]) -> Iterator[T]:
        """Consume *iterator* synchronously, one element per loop round-trip.

        The async iterator is closed when the consumer stops early.
        """
        exhausted = False
        try:
            while True:
                item = self.submit(_next_or_done(iterator)).result()
                if item is _DONE:
                    exhausted = True
                    return
                yield item
        finally:
            aclose = getattr(iterator, "aclose", None)
            if not exhausted and aclose is not None and self.running:
                with contextlib.suppress(Exception):
                    self.submit(aclose()).result(timeout=5)

    def close(self) -> None:
        """Stop the event loop and join the thread."""
        with self._lock:
            loop, thread = self._loop, self._thread
            if loop is not None and not loop.is_closed():
                loop.call_soon_threadsafe(loop.stop)
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=5)
            if loop is not None and not loop.is_closed() and not loop.is_running():
                loop.close()
            self._loop = None
            self._thread = None
        if loop is not None and loop_logger.isEnabledFor(logging.DEBUG):
            loop_logger.debug("Event loop stopped: %s", self._name)

    def __enter__(self) -> EventLoopThread:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager, stopping the loop."""
        self.close()
