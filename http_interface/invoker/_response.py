# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Response adaptation: choosing a transport operation from a declared return type.

Resolution order for a return annotation ``R``
----------------------------------------------
1. If ``R``'s class has an async adapter, remember it as the return adapter
   and unwrap one level (``Awaitable[User]`` → ``User``).  Otherwise unwrap
   ``T | None`` one level and block for an optional value.
2. ``None`` (or a no-value adapter) → ``request_to_void``.
3. ``httpx.Headers`` → ``request_to_headers``.
4. ``ResponseEntity[B]``:

   - ``B`` is ``None`` → ``request_to_bodiless_entity``
   - ``B`` has no adapter → ``request_to_entity(B)``
   - ``B`` is a single-value container → rejected
   - ``B`` is ``AsyncIterator[E]`` → ``request_to_entity_flux(E)``
   - ``B`` is another stream container of ``E`` → ``request_to_entity_flux(E)``
     with the body rewrapped through ``B``'s adapter

5. Anything else → ``request_to_body_flux`` for multi-value return adapters,
   ``request_to_body`` otherwise.

A multi-value return adapter around a single-result operation (e.g.
``Iterator[ResponseEntity[T]]``) receives a one-element stream, or an
empty one for ``request_to_void``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable
from dataclasses import dataclass
from typing import Any

import httpx

from http_interface.invoker._adapters import AsyncAdapter, AsyncAdapterRegistry
from http_interface.invoker._common import (
    ExchangeOperation,
    ExchangeTimeoutError,
    HttpServiceDefinitionError,
    invoke_logger,
)
from http_interface.invoker._loop import EventLoopThread
from http_interface.invoker._request import HttpRequestSpec
from http_interface.invoker._types import (
    HttpExchangeAdapter,
    ResponseEntity,
    _first_type_arg,
    _is_optional_type,
    _is_void,
    _raw_class,
    _type_arg,
    _unwrap_annotated,
)


async def _rewrap_entity_body(
    entity: Awaitable[ResponseEntity[AsyncIterator[Any]]], body_adapter: AsyncAdapter
) -> ResponseEntity[Any]:
    """Convert a streamed entity body through *body_adapter*, keeping status and headers."""
    response = await entity
    return ResponseEntity(
        status_code=response.status_code,
        headers=response.headers,
        body=body_adapter.from_publisher(response.body),
    )


async def _single_value_stream(publisher: Awaitable[Any], *, emit: bool) -> AsyncIterator[Any]:
    """Stream of the one value *publisher* produces, or of nothing when *emit* is false."""
    value = await publisher
    if emit:
        yield value


@dataclass(frozen=True)
class ResponseAdapterPlan:
    """Immutable plan for executing one service method's request and adapting its result.

    Attributes:
        operation: The transport operation to invoke.
        body_type: Target type passed to the transport, including generic
            parameters; ``None`` for operations without a body.
        return_adapter: Adapter converting the transport result into the
            declared container, or ``None`` to block for the result.
        body_adapter: Adapter rewrapping a streamed entity body whose
            declared stream kind is not ``AsyncIterator``, or ``None``.
        block_for_optional: The declaration was ``T | None`` with no adapter.
        block_timeout: Seconds to block when ``return_adapter`` is ``None``.
        stream_single_value: The return adapter is multi-value but the
            operation yields one result, which is lifted into a stream of
            one element (none for ``request_to_void``).

    """

    operation: ExchangeOperation
    body_type: Any = None
    return_adapter: AsyncAdapter | None = None
    body_adapter: AsyncAdapter | None = None
    block_for_optional: bool = False
    block_timeout: float = 5.0
    stream_single_value: bool = False

    @property
    def blocking(self) -> bool:
        """Whether execution blocks the calling thread."""
        return self.return_adapter is None

    # --- Compilation ---

    @classmethod
    def compile(cls, return_type: Any, registry: AsyncAdapterRegistry, block_timeout: float) -> ResponseAdapterPlan:
        """Resolve the transport operation and result conversion for *return_type*.

        Args:
            return_type: The method's return annotation.
            registry: Registry of async adapters.
            block_timeout: Seconds to block when no adapter applies.

        Returns:
            The compiled plan.

        Raises:
            HttpServiceDefinitionError: If ``ResponseEntity``'s body is a
                single-value async container.

        """
        declared = _unwrap_annotated(return_type)
        return_adapter = registry.get_adapter(_raw_class(declared))
        block_for_optional = False
        if return_adapter is not None:
            actual = _type_arg(declared, return_adapter.value_type_arg)
        else:
            actual, block_for_optional = _is_optional_type(declared)
            actual = _unwrap_annotated(actual)

        def plan(
            operation: ExchangeOperation, body_type: Any = None, body_adapter: AsyncAdapter | None = None
        ) -> ResponseAdapterPlan:
            return cls(
                operation=operation,
                body_type=body_type,
                return_adapter=return_adapter,
                body_adapter=body_adapter,
                block_for_optional=block_for_optional,
                block_timeout=block_timeout,
                stream_single_value=(
                    return_adapter is not None
                    and return_adapter.multi_value
                    and operation is not ExchangeOperation.BODY_FLUX
                ),
            )

        if _is_void(actual) or (return_adapter is not None and return_adapter.no_value):
            return plan(ExchangeOperation.VOID)

        actual_class = _raw_class(actual)
        if actual_class is httpx.Headers:
            return plan(ExchangeOperation.HEADERS)

        if actual_class is ResponseEntity:
            body = _first_type_arg(actual)
            if _is_void(body):
                return plan(ExchangeOperation.BODILESS_ENTITY)
            body_adapter = registry.get_adapter(_raw_class(body))
            if body_adapter is None:
                return plan(ExchangeOperation.ENTITY, body)
            if not body_adapter.multi_value:
                raise HttpServiceDefinitionError(
                    "ResponseEntity body must be a concrete value or a multi-value async stream,"
                    f" not {body_adapter.name}"
                )
            element_type = _first_type_arg(body)
            if body_adapter.native_type is AsyncIterator:
                return plan(ExchangeOperation.ENTITY_FLUX, element_type)
            return plan(ExchangeOperation.ENTITY_FLUX, element_type, body_adapter)

        if return_adapter is not None and return_adapter.multi_value:
            return plan(ExchangeOperation.BODY_FLUX, actual)
        return plan(ExchangeOperation.BODY, actual)

    # --- Execution ---

    def request(self, exchange_adapter: HttpExchangeAdapter, request: HttpRequestSpec) -> Any:
        """Invoke the selected transport operation and return its native result."""
        operation = getattr(exchange_adapter, self.operation.value)
        if self.operation.takes_body_type:
            publisher = operation(request, self.body_type)
        else:
            publisher = operation(request)
        if self.body_adapter is not None:
            publisher = _rewrap_entity_body(publisher, self.body_adapter)
        if self.stream_single_value:
            publisher = _single_value_stream(publisher, emit=self.operation is not ExchangeOperation.VOID)
        return publisher

    def execute(
        self,
        request: HttpRequestSpec,
        exchange_adapter: HttpExchangeAdapter,
        loop: EventLoopThread,
        *,
        method_name: str = "exchange",
    ) -> Any:
        """Execute a completed request and adapt the result to the declared return type.

        With a return adapter the converted container is returned at once.
        Otherwise the calling thread blocks on *loop* for at most
        ``block_timeout`` seconds.

        Raises:
            ExchangeTimeoutError: If the blocking wait times out; the
                in-flight operation is cancelled.

        """
        publisher = self.request(exchange_adapter, request)
        if self.return_adapter is not None:
            return self.return_adapter.from_publisher(publisher)
        extra = {"method": method_name, "operation": self.operation.value}
        try:
            value = loop.run(publisher, self.block_timeout, name=method_name)
        except ExchangeTimeoutError:
            invoke_logger.warning("%s() timed out after %gs", method_name, self.block_timeout, extra=extra)
            raise
        if invoke_logger.isEnabledFor(logging.DEBUG):
            if value is None:
                invoke_logger.debug(
                    "%s() completed without a value (optional=%s)",
                    method_name,
                    self.block_for_optional,
                    extra=extra,
                )
            else:
                invoke_logger.debug("%s() completed", method_name, extra=extra)
        return value
