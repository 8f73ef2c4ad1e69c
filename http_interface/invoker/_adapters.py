# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Async adapters: conversions from transport results to declared return containers.

A transport produces one of two native primitives: an ``Awaitable`` for a
single value or an ``AsyncIterator`` for a stream of values.  An
:class:`AsyncAdapter` converts that primitive into the container a service
method declares, e.g. ``concurrent.futures.Future[User]`` or
``Iterator[Event]``.  Return types with no registered adapter are resolved
by blocking on the result.
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Coroutine, Iterator
from dataclasses import dataclass, field
from typing import Any

from http_interface.invoker._loop import EventLoopThread


def _identity(publisher: Any) -> Any:
    return publisher


@dataclass(frozen=True)
class AsyncAdapter:
    """Strategy converting a transport primitive into a declared container type.

    Attributes:
        async_type: The container class this adapter produces.
        multi_value: Whether the container carries zero or more values
            rather than at most one.
        no_value: Whether the container completes without carrying a value.
        native_type: The transport primitive the adapter consumes:
            ``Awaitable`` or ``AsyncIterator``.
        value_type_arg: Index of the type argument naming the carried
            value, e.g. ``2`` for ``Coroutine[Y, S, R]``.
        from_publisher: Converts a transport primitive into an instance of
            ``async_type``.

    """

    async_type: type
    multi_value: bool = False
    no_value: bool = False
    native_type: type = Awaitable
    value_type_arg: int = 0
    from_publisher: Callable[[Any], Any] = field(default=_identity, compare=False)

    @property
    def name(self) -> str:
        """Short display name of the adapted type."""
        return self.async_type.__qualname__


class AsyncAdapterRegistry:
    """Registry of async adapters keyed by container class.

    Lookup tries an exact match first, then the first registered adapter
    whose type is a superclass of the queried class.  Registration is meant
    for client-creation time; lookups happen once per method at compile time.
    """

    __slots__ = ("_adapters",)

    def __init__(self, adapters: list[AsyncAdapter] | None = None) -> None:
        """Initialize with optional adapters, in lookup order."""
        self._adapters: list[AsyncAdapter] = list(adapters or [])

    def register(self, adapter: AsyncAdapter) -> None:
        """Register *adapter*, replacing any adapter for the same type."""
        self._adapters = [a for a in self._adapters if a.async_type is not adapter.async_type]
        self._adapters.append(adapter)

    def has_adapters(self) -> bool:
        """Whether any adapter is registered."""
        return bool(self._adapters)

    def get_adapter(self, async_type: Any) -> AsyncAdapter | None:
        """Return the adapter for *async_type*, or ``None``.

        Args:
            async_type: A class, typically the generic origin of a return
                annotation.  Non-class values never match.

        """
        if not isinstance(async_type, type):
            return None
        for adapter in self._adapters:
            if adapter.async_type is async_type:
                return adapter
        for adapter in self._adapters:
            if issubclass(async_type, adapter.async_type):
                return adapter
        return None

    def __iter__(self) -> Iterator[AsyncAdapter]:
        """Iterate adapters in lookup order."""
        return iter(list(self._adapters))

    def __len__(self) -> int:
        """Return the number of registered adapters."""
        return len(self._adapters)

    @classmethod
    def default(cls, loop: EventLoopThread | None = None) -> AsyncAdapterRegistry:
        """Create a registry with the built-in adapters.

        Args:
            loop: Event loop used by the ``concurrent.futures.Future`` and
                ``Iterator`` adapters.  A private, lazily started loop is
                created when ``None``.

        Returns:
            A registry adapting ``Awaitable``, ``Coroutine``,
            ``concurrent.futures.Future``, ``AsyncIterator``,
            ``AsyncIterable`` and ``Iterator``.

        """
        runner = loop if loop is not None else EventLoopThread()
        return cls(
            [
                AsyncAdapter(Awaitable),
                AsyncAdapter(Coroutine, value_type_arg=2, from_publisher=_as_coroutine),
                AsyncAdapter(concurrent.futures.Future, from_publisher=runner.submit),
                AsyncAdapter(AsyncIterator, multi_value=True, native_type=AsyncIterator),
                AsyncAdapter(AsyncIterable, multi_value=True, native_type=AsyncIterator),
                AsyncAdapter(Iterator, multi_value=True, native_type=Iterator, from_publisher=runner.iterate),
            ]
        )


def _as_coroutine(publisher: Awaitable[Any]) -> Coroutine[Any, Any, Any]:
    if isinstance(publisher, Coroutine):
        return publisher

    async def wrapper() -> Any:
        return await publisher

    return wrapper()
