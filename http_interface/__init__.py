# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Declarative HTTP service interfaces compiled into invocation plans."""

import logging

from http_interface.annotation import (
    HttpExchange,
    delete_exchange,
    find_exchange,
    get_exchange,
    http_exchange,
    patch_exchange,
    post_exchange,
    put_exchange,
)
from http_interface.introspect import ExchangeDescription, describe_exchanges, describe_service
from http_interface.invoker import (
    DEFAULT_BLOCK_TIMEOUT,
    AsyncAdapter,
    AsyncAdapterRegistry,
    EventLoopThread,
    ExchangeOperation,
    ExchangeTimeoutError,
    HttpExchangeAdapter,
    HttpRequestSpec,
    HttpServiceArgumentResolver,
    HttpServiceDefinitionError,
    HttpServiceDispatcher,
    HttpServiceMethod,
    HttpServiceProxyFactory,
    MethodParameter,
    RequestTemplate,
    ResponseAdapterPlan,
    ResponseEntity,
    exchange_methods,
)
from http_interface.media import MediaType

__all__ = [
    # Declarations
    "HttpExchange",
    "http_exchange",
    "get_exchange",
    "post_exchange",
    "put_exchange",
    "patch_exchange",
    "delete_exchange",
    "find_exchange",
    # Clients
    "HttpServiceProxyFactory",
    "HttpServiceDispatcher",
    "HttpServiceMethod",
    "exchange_methods",
    # Collaborators
    "HttpExchangeAdapter",
    "HttpServiceArgumentResolver",
    "MethodParameter",
    # Requests and responses
    "HttpRequestSpec",
    "RequestTemplate",
    "ResponseEntity",
    "MediaType",
    # Response adaptation
    "AsyncAdapter",
    "AsyncAdapterRegistry",
    "EventLoopThread",
    "ExchangeOperation",
    "ResponseAdapterPlan",
    "DEFAULT_BLOCK_TIMEOUT",
    # Errors
    "ExchangeTimeoutError",
    "HttpServiceDefinitionError",
    # Introspection
    "ExchangeDescription",
    "describe_exchanges",
    "describe_service",
]

# Attach NullHandler to the package logger so library users don't get
# "No handler found" warnings.
logging.getLogger("http_interface").addHandler(logging.NullHandler())
