# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Compiled invocation plan for a single service method."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Annotated, Any, get_args, get_origin, get_type_hints

from http_interface.annotation import find_exchange
from http_interface.invoker._adapters import AsyncAdapterRegistry
from http_interface.invoker._common import HttpServiceDefinitionError, compile_logger, invoke_logger
from http_interface.invoker._debug import fmt_arguments, fmt_template, fmt_type
from http_interface.invoker._loop import EventLoopThread
from http_interface.invoker._request import RequestTemplate
from http_interface.invoker._response import ResponseAdapterPlan
from http_interface.invoker._types import HttpExchangeAdapter, HttpServiceArgumentResolver, MethodParameter

_UNSUPPORTED_PARAM_KINDS: dict[int, str] = {
    inspect.Parameter.VAR_POSITIONAL: "*args",
    inspect.Parameter.VAR_KEYWORD: "**kwargs",
}


def _resolve_hints(method: Callable[..., Any]) -> dict[str, Any]:
    try:
        return get_type_hints(method, include_extras=True)
    except (NameError, AttributeError, TypeError) as exc:
        raise HttpServiceDefinitionError(f"Failed to resolve type hints: {exc}") from exc


def _service_signature(method: Callable[..., Any]) -> inspect.Signature:
    """Signature of *method* without ``self``, rejecting variadic parameters."""
    sig = inspect.signature(method)
    params = [p for name, p in sig.parameters.items() if name != "self"]
    errors = [f"'{p.name}' is {_UNSUPPORTED_PARAM_KINDS[p.kind]}" for p in params if p.kind in _UNSUPPORTED_PARAM_KINDS]
    if errors:
        raise HttpServiceDefinitionError("unsupported parameters: " + ", ".join(errors))
    return sig.replace(parameters=params)


def _init_method_parameters(
    method_name: str, signature: inspect.Signature, hints: Mapping[str, Any]
) -> tuple[MethodParameter, ...]:
    parameters: list[MethodParameter] = []
    for index, param in enumerate(signature.parameters.values()):
        hint = hints.get(param.name, Any)
        metadata: tuple[object, ...] = ()
        if get_origin(hint) is Annotated:
            hint, *extras = get_args(hint)
            metadata = tuple(extras)
        parameters.append(
            MethodParameter(
                method_name=method_name,
                index=index,
                name=param.name,
                annotation=hint,
                metadata=metadata,
                default=param.default,
                kind=param.kind,
            )
        )
    return tuple(parameters)


class HttpServiceMethod:
    """Request template, response plan, and parameter metadata for one service method.

    Built once at client creation and shared by every call; holds no
    per-call state, so concurrent calls are safe.
    """

    __slots__ = (
        "_argument_resolvers",
        "_doc",
        "_exchange_adapter",
        "_function",
        "_loop",
        "_name",
        "_parameters",
        "_plan",
        "_qualname",
        "_return_type",
        "_signature",
        "_template",
    )

    def __init__(
        self,
        method: Callable[..., Any],
        service_type: type,
        argument_resolvers: Sequence[HttpServiceArgumentResolver],
        exchange_adapter: HttpExchangeAdapter,
        adapter_registry: AsyncAdapterRegistry,
        block_timeout: float,
        loop: EventLoopThread,
    ) -> None:
        """Compile *method* of *service_type*.

        Raises:
            HttpServiceDefinitionError: If the method has no exchange
                declaration or any declaration cannot be compiled.  The
                message is prefixed with ``Service.method()``.

        """
        self._name: str = method.__name__
        self._function = method
        self._qualname = f"{service_type.__name__}.{self._name}"
        self._doc: str | None = getattr(method, "__doc__", None)
        self._argument_resolvers = tuple(argument_resolvers)
        self._exchange_adapter = exchange_adapter
        self._loop = loop
        try:
            method_exchange = find_exchange(method)
            if method_exchange is None:
                raise HttpServiceDefinitionError("expected an exchange declaration such as @get_exchange")
            hints = _resolve_hints(method)
            self._signature = _service_signature(method)
            self._parameters = _init_method_parameters(self._name, self._signature, hints)
            self._template = RequestTemplate.compile(method_exchange, find_exchange(service_type))
            self._return_type = hints.get("return", type(None))
            self._plan = ResponseAdapterPlan.compile(self._return_type, adapter_registry, block_timeout)
        except HttpServiceDefinitionError as exc:
            raise HttpServiceDefinitionError(f"{self._qualname}(): {exc}") from exc

        if compile_logger.isEnabledFor(logging.DEBUG):
            compile_logger.debug(
                "Compiled %s(): %s -> %s(%s)",
                self._qualname,
                fmt_template(self._template),
                self._plan.operation.value,
                fmt_type(self._plan.body_type) if self._plan.operation.takes_body_type else "",
                extra={"service": service_type.__name__, "method": self._name},
            )

    # --- Accessors ---

    @property
    def name(self) -> str:
        """Method name; the dispatch key."""
        return self._name

    @property
    def function(self) -> Callable[..., Any]:
        """The interface function this method was compiled from."""
        return self._function

    @property
    def qualname(self) -> str:
        """``Service.method`` for messages."""
        return self._qualname

    @property
    def doc(self) -> str | None:
        """The method's docstring."""
        return self._doc

    @property
    def parameters(self) -> tuple[MethodParameter, ...]:
        """Declared parameters in order, ``self`` excluded."""
        return self._parameters

    @property
    def return_type(self) -> Any:
        """The declared return annotation."""
        return self._return_type

    @property
    def request_template(self) -> RequestTemplate:
        """The compiled request template."""
        return self._template

    @property
    def response_plan(self) -> ResponseAdapterPlan:
        """The compiled response adaptation plan."""
        return self._plan

    # --- Invocation ---

    def bind_arguments(self, args: Sequence[object], kwargs: Mapping[str, object]) -> list[object]:
        """Bind call arguments to the declared signature, applying defaults.

        Returns:
            One value per declared parameter, in declaration order.

        Raises:
            TypeError: If the arguments do not match the signature.

        """
        try:
            bound = self._signature.bind(*args, **kwargs)
        except TypeError as exc:
            raise TypeError(f"{self._qualname}(): {exc}") from None
        bound.apply_defaults()
        return [bound.arguments[p.name] for p in self._parameters]

    def invoke(self, arguments: Sequence[object]) -> Any:
        """Build, resolve and execute a request for one call.

        Args:
            arguments: One value per declared parameter, in order.

        Returns:
            The result adapted to the declared return type.

        Raises:
            TypeError: If the number of arguments differs from the number of
                declared parameters.  Nothing is built or sent.
            ExchangeTimeoutError: If a blocking call times out.

        """
        if len(arguments) != len(self._parameters):
            raise TypeError(
                f"Method argument mismatch: {self._qualname}() takes {len(self._parameters)}"
                f" arguments, got {len(arguments)}"
            )
        if invoke_logger.isEnabledFor(logging.DEBUG):
            invoke_logger.debug(
                "Invoke %s(%s)",
                self._qualname,
                fmt_arguments(self._parameters, arguments),
                extra={"method": self._qualname, "operation": self._plan.operation.value},
            )
        request = self._template.new_request()
        for parameter, value in zip(self._parameters, arguments, strict=True):
            for resolver in self._argument_resolvers:
                resolver.resolve(value, parameter, request)
        request.set_complete()
        return self._plan.execute(request, self._exchange_adapter, self._loop, method_name=self._qualname)

    def __repr__(self) -> str:
        """Show the method and its compiled operation."""
        return f"HttpServiceMethod({self._qualname}, {self._plan.operation.value})"
