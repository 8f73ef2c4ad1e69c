# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Compile HTTP service interfaces into invocation plans and dispatch calls.

Service interfaces are ``typing.Protocol`` classes whose methods carry
exchange declarations (see :mod:`http_interface.annotation`).  Creating a
client compiles every method once; each call then fills a fresh request
from the arguments and adapts the transport's asynchronous result to the
declared return type.

Return Types
------------
- ``None`` → ``request_to_void``
- ``httpx.Headers`` → ``request_to_headers``
- ``ResponseEntity[None]`` → ``request_to_bodiless_entity``
- ``ResponseEntity[T]`` → ``request_to_entity``
- ``ResponseEntity[AsyncIterator[T]]`` → ``request_to_entity_flux``
- ``T`` / ``T | None`` → ``request_to_body`` (blocking with a timeout)
- ``AsyncIterator[T]`` / ``Iterator[T]`` → ``request_to_body_flux``

Any of the single-value forms may be wrapped in ``Awaitable``,
``Coroutine`` or ``concurrent.futures.Future`` to return without blocking.

Call Flow
---------
::

    proxy.get_user(42)
      → HttpServiceMethod.bind_arguments()       # signature check
      → HttpServiceDispatcher.invoke("get_user")
      → RequestTemplate.new_request()            # fresh HttpRequestSpec
      → resolver.resolve(value, parameter, request) for each pair
      → request.set_complete()
      → ResponseAdapterPlan.execute()            # adapt or block

"""

from __future__ import annotations

from http_interface.invoker._adapters import AsyncAdapter, AsyncAdapterRegistry
from http_interface.invoker._common import (
    DEFAULT_BLOCK_TIMEOUT,
    ExchangeOperation,
    ExchangeTimeoutError,
    HttpServiceDefinitionError,
)
from http_interface.invoker._loop import EventLoopThread
from http_interface.invoker._method import HttpServiceMethod
from http_interface.invoker._proxy import (
    HttpServiceDispatcher,
    HttpServiceProxyFactory,
    _HttpServiceProxy,
    exchange_methods,
)
from http_interface.invoker._request import HttpRequestSpec, RequestTemplate
from http_interface.invoker._response import ResponseAdapterPlan
from http_interface.invoker._types import (
    HttpExchangeAdapter,
    HttpServiceArgumentResolver,
    MethodParameter,
    ResponseEntity,
    _unwrap_annotated,
)

__all__ = [
    # Public API
    "AsyncAdapter",
    "AsyncAdapterRegistry",
    "DEFAULT_BLOCK_TIMEOUT",
    "EventLoopThread",
    "ExchangeOperation",
    "ExchangeTimeoutError",
    "HttpExchangeAdapter",
    "HttpRequestSpec",
    "HttpServiceArgumentResolver",
    "HttpServiceDefinitionError",
    "HttpServiceDispatcher",
    "HttpServiceMethod",
    "HttpServiceProxyFactory",
    "MethodParameter",
    "RequestTemplate",
    "ResponseAdapterPlan",
    "ResponseEntity",
    "exchange_methods",
    # Internal, used by http_interface.introspect and tests
    "_HttpServiceProxy",
    "_unwrap_annotated",
]
