"""Introspection of HTTP service interfaces.

``describe_exchanges()`` compiles every method of an interface exactly as
``HttpServiceProxyFactory.create_client()`` would, without a transport, and
returns one :class:`ExchangeDescription` per method.  ``describe_service()``
renders the same information as text.  Both raise
``HttpServiceDefinitionError`` for interfaces that cannot be compiled, so
they double as a check that an interface is well formed.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, cast

from http_interface.invoker import (
    AsyncAdapterRegistry,
    EventLoopThread,
    ExchangeOperation,
    HttpExchangeAdapter,
    HttpServiceMethod,
    exchange_methods,
)
from http_interface.invoker._common import DEFAULT_BLOCK_TIMEOUT
from http_interface.invoker._debug import fmt_type

__all__ = [
    "ExchangeDescription",
    "describe_exchanges",
    "describe_service",
]


@dataclass(frozen=True)
class ExchangeDescription:
    """Description of a single compiled service method.

    Attributes:
        name: Method name as it appears on the interface.
        http_method: The HTTP verb, or ``None`` when undeclared.
        url: The URL template, or ``None`` when undeclared.
        content_type: The request media type, or ``None``.
        accept: Acceptable response media types; empty when undeclared.
        operation: The transport operation the method invokes.
        body_type: Human-readable target body type, or ``None``.
        return_adapter: Name of the async adapter for the return type, or
            ``None`` when the call blocks.
        blocking: Whether the call blocks for its result.
        optional: Whether the declared return type is ``T | None``.
        param_types: Human-readable type names keyed by parameter name.
        param_defaults: Default values keyed by parameter name.
        doc: The method's docstring, or ``None``.

    """

    name: str
    http_method: str | None
    url: str | None
    content_type: str | None
    accept: tuple[str, ...]
    operation: ExchangeOperation
    body_type: str | None
    return_adapter: str | None
    blocking: bool
    optional: bool
    param_types: dict[str, str] = field(default_factory=dict)
    param_defaults: dict[str, object] = field(default_factory=dict)
    doc: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict; non-JSON defaults are rendered with ``repr``."""
        return {
            "name": self.name,
            "http_method": self.http_method,
            "url": self.url,
            "content_type": self.content_type,
            "accept": list(self.accept),
            "operation": self.operation.value,
            "body_type": self.body_type,
            "return_adapter": self.return_adapter,
            "blocking": self.blocking,
            "optional": self.optional,
            "param_types": dict(self.param_types),
            "param_defaults": {k: _json_default(v) for k, v in self.param_defaults.items()},
            "doc": self.doc,
        }


def _json_default(value: object) -> object:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return repr(value)


def _describe_method(method: HttpServiceMethod) -> ExchangeDescription:
    template = method.request_template
    plan = method.response_plan
    return ExchangeDescription(
        name=method.name,
        http_method=template.http_method.value if template.http_method is not None else None,
        url=template.url,
        content_type=str(template.content_type) if template.content_type is not None else None,
        accept=tuple(str(m) for m in template.accept) if template.accept is not None else (),
        operation=plan.operation,
        body_type=fmt_type(plan.body_type) if plan.operation.takes_body_type else None,
        return_adapter=plan.return_adapter.name if plan.return_adapter is not None else None,
        blocking=plan.blocking,
        optional=plan.block_for_optional,
        param_types={p.name: fmt_type(p.annotation) for p in method.parameters},
        param_defaults={p.name: p.default for p in method.parameters if p.has_default},
        doc=inspect.cleandoc(method.doc) if method.doc else None,
    )


def describe_exchanges(
    service_type: type, adapter_registry: AsyncAdapterRegistry | None = None
) -> list[ExchangeDescription]:
    """Compile *service_type* and describe each method, sorted by name.

    Args:
        service_type: The service interface.
        adapter_registry: Registry used to classify return types; the
            default registry when ``None``.

    Raises:
        HttpServiceDefinitionError: If any method cannot be compiled.

    """
    # The loop is never started: nothing is executed.
    loop = EventLoopThread()
    registry = adapter_registry if adapter_registry is not None else AsyncAdapterRegistry.default(loop)
    no_transport = cast(HttpExchangeAdapter, None)
    methods = [
        HttpServiceMethod(method, service_type, (), no_transport, registry, DEFAULT_BLOCK_TIMEOUT, loop)
        for method in exchange_methods(service_type).values()
    ]
    return sorted((_describe_method(m) for m in methods), key=lambda d: d.name)


def describe_service(service_type: type, adapter_registry: AsyncAdapterRegistry | None = None) -> str:
    """Return a human-readable description of an HTTP service interface."""
    lines: list[str] = [f"HTTP Service: {service_type.__name__}", ""]
    for desc in describe_exchanges(service_type, adapter_registry):
        target = f"{desc.http_method or '-'} {desc.url or '-'}"
        lines.append(f"  {desc.name}  {target}")
        lines.append(f"    operation: {desc.operation.value}")
        if desc.body_type is not None:
            lines.append(f"    body: {desc.body_type}")
        if desc.return_adapter is not None:
            lines.append(f"    returns: {desc.return_adapter}")
        else:
            lines.append(f"    returns: blocking{' (optional)' if desc.optional else ''}")
        if desc.content_type is not None:
            lines.append(f"    content-type: {desc.content_type}")
        if desc.accept:
            lines.append(f"    accept: {', '.join(desc.accept)}")
        if desc.param_types:
            params = ", ".join(f"{k}: {v}" for k, v in desc.param_types.items())
            lines.append(f"    params: {params}")
        if desc.doc:
            lines.append(f"    doc: {desc.doc}")
        lines.append("")
    return "\n".join(lines)
