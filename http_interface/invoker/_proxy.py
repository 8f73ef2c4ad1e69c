# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Service method discovery, call dispatch, and client proxies."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from types import MappingProxyType, TracebackType
from typing import Any, TypeVar, cast

from http_interface.invoker._adapters import AsyncAdapterRegistry
from http_interface.invoker._common import DEFAULT_BLOCK_TIMEOUT, compile_logger
from http_interface.invoker._loop import EventLoopThread
from http_interface.invoker._method import HttpServiceMethod
from http_interface.invoker._types import HttpExchangeAdapter, HttpServiceArgumentResolver

P = TypeVar("P")


def exchange_methods(service_type: type) -> Mapping[str, Callable[..., Any]]:
    """Return the public methods of *service_type* keyed by name.

    Skips underscore-prefixed names and non-callable attributes.  Every
    returned method is expected to carry an exchange declaration; building
    an :class:`HttpServiceMethod` for one that does not fails.
    """
    result: dict[str, Callable[..., Any]] = {}
    for name in dir(service_type):
        if name.startswith("_"):
            continue
        attr = getattr(service_type, name, None)
        if attr is None or not callable(attr) or isinstance(attr, type):
            continue
        result[name] = attr
    return MappingProxyType(result)


class HttpServiceDispatcher:
    """Routes calls to precompiled service methods by method name.

    The table is built once and never changes; lookups are a dict access.
    """

    __slots__ = ("_methods",)

    def __init__(self, methods: Iterable[HttpServiceMethod]) -> None:
        """Initialize with compiled methods; names must be unique."""
        table: dict[str, HttpServiceMethod] = {}
        for method in methods:
            if method.name in table:
                raise ValueError(f"Duplicate service method name: {method.name}")
            table[method.name] = method
        self._methods: Mapping[str, HttpServiceMethod] = MappingProxyType(table)

    @property
    def methods(self) -> Mapping[str, HttpServiceMethod]:
        """Read-only mapping of method name to compiled method."""
        return self._methods

    def invoke(self, method: str | Callable[..., Any], arguments: Sequence[object]) -> Any:
        """Dispatch one call.

        Args:
            method: The method name, or the interface's function object.
            arguments: One value per declared parameter, in order.

        Returns:
            The result adapted to the method's declared return type.

        Raises:
            AttributeError: If no compiled method has that name, or a
                function object is not the one the method was compiled from.
            TypeError: If the argument count does not match.

        """
        if isinstance(method, str):
            return self[method].invoke(arguments)
        compiled = self[method.__name__]
        if compiled.function is not method:
            raise AttributeError(f"{method.__qualname__}() is not {compiled.qualname}()")
        return compiled.invoke(arguments)

    def __getitem__(self, name: str) -> HttpServiceMethod:
        """Return the compiled method named *name*."""
        try:
            return self._methods[name]
        except KeyError:
            raise AttributeError(f"No HTTP exchange method '{name}'") from None

    def __contains__(self, name: object) -> bool:
        """Whether a compiled method named *name* exists."""
        return name in self._methods

    def __iter__(self) -> Iterator[str]:
        """Iterate method names."""
        return iter(self._methods)

    def __len__(self) -> int:
        """Return the number of compiled methods."""
        return len(self._methods)


class _HttpServiceProxy:
    """Client object whose attributes call compiled service methods.

    Callers are created on first access and cached in the instance dict.
    Safe to share across threads: each call builds its own request.
    """

    def __init__(self, service_type: type, dispatcher: HttpServiceDispatcher) -> None:
        self._service_type = service_type
        self._dispatcher = dispatcher

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name not in self._dispatcher:
            raise AttributeError(f"{self._service_type.__name__} has no HTTP exchange method '{name}'")
        method = self._dispatcher[name]

        def caller(*args: object, **kwargs: object) -> Any:
            return method.invoke(method.bind_arguments(args, kwargs))

        caller.__name__ = name
        caller.__qualname__ = method.qualname
        caller.__doc__ = method.doc
        self.__dict__[name] = caller
        return caller

    def __dir__(self) -> list[str]:
        return sorted({*super().__dir__(), *self._dispatcher})

    def __repr__(self) -> str:
        return f"<{self._service_type.__name__} HTTP client ({len(self._dispatcher)} methods)>"


class HttpServiceProxyFactory:
    """Creates clients for HTTP service interfaces.

    The factory owns a background event loop used by blocking calls and by
    the default ``concurrent.futures.Future`` and ``Iterator`` adapters.
    Close it (or use it as a context manager) when the clients are no longer
    needed.

    Example::

        with HttpServiceProxyFactory(adapter, argument_resolvers=[PathResolver()]) as factory:
            users = factory.create_client(UserService)
            user = users.get_user(42)

    """

    def __init__(
        self,
        exchange_adapter: HttpExchangeAdapter,
        *,
        argument_resolvers: Sequence[HttpServiceArgumentResolver] = (),
        adapter_registry: AsyncAdapterRegistry | None = None,
        block_timeout: float = DEFAULT_BLOCK_TIMEOUT,
    ) -> None:
        """Initialize the factory.

        Args:
            exchange_adapter: Transport performing the requests.
            argument_resolvers: Resolvers applied to every argument, in order.
            adapter_registry: Async adapters for return containers.  Defaults
                to :meth:`AsyncAdapterRegistry.default` on this factory's loop.
            block_timeout: Seconds a blocking call waits for its result.

        Raises:
            ValueError: If *block_timeout* is not positive.

        """
        if block_timeout <= 0:
            raise ValueError(f"block_timeout must be > 0, got {block_timeout}")
        self._exchange_adapter = exchange_adapter
        self._argument_resolvers = tuple(argument_resolvers)
        self._loop = EventLoopThread()
        self._adapter_registry = (
            adapter_registry if adapter_registry is not None else AsyncAdapterRegistry.default(self._loop)
        )
        self._block_timeout = block_timeout

    @property
    def block_timeout(self) -> float:
        """Seconds a blocking call waits for its result."""
        return self._block_timeout

    @property
    def adapter_registry(self) -> AsyncAdapterRegistry:
        """The registry used to compile return types."""
        return self._adapter_registry

    def create_dispatcher(self, service_type: type) -> HttpServiceDispatcher:
        """Compile every method of *service_type* into a dispatcher.

        Raises:
            HttpServiceDefinitionError: If any method cannot be compiled.

        """
        methods = [
            HttpServiceMethod(
                method,
                service_type,
                self._argument_resolvers,
                self._exchange_adapter,
                self._adapter_registry,
                self._block_timeout,
                self._loop,
            )
            for method in exchange_methods(service_type).values()
        ]
        dispatcher = HttpServiceDispatcher(methods)
        if compile_logger.isEnabledFor(logging.DEBUG):
            compile_logger.debug(
                "Created client for %s with %d methods",
                service_type.__name__,
                len(dispatcher),
                extra={"service": service_type.__name__},
            )
        return dispatcher

    def create_client(self, service_type: type[P]) -> P:
        """Create a client implementing *service_type*.

        Raises:
            HttpServiceDefinitionError: If any method cannot be compiled.

        """
        return cast(P, _HttpServiceProxy(service_type, self.create_dispatcher(service_type)))

    def close(self) -> None:
        """Stop the background event loop."""
        self._loop.close()

    def __enter__(self) -> HttpServiceProxyFactory:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager, stopping the background loop."""
        self.close()
