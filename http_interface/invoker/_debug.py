"""Formatting helpers for debug logging and introspection.

All helpers return ``str`` and never log directly.  They are designed to be
called inside ``isEnabledFor`` guards so there is zero overhead when debug
logging is disabled.
"""

from __future__ import annotations

from collections.abc import Sequence
from types import UnionType
from typing import TYPE_CHECKING, Annotated, Any, Union, get_args, get_origin

if TYPE_CHECKING:
    from http_interface.invoker._request import RequestTemplate
    from http_interface.invoker._types import MethodParameter

_MAX_VALUE_LEN = 80
"""Maximum repr length for individual argument values."""


def fmt_type(hint: Any) -> str:
    """Format a type hint compactly.

    Returns:
        ``"list[User]"``, ``"AsyncIterator[Event]"``, ``"User | None"`` or
        ``"None"``.

    """
    if hint is None or hint is type(None):
        return "None"
    if hint is Ellipsis:
        return "..."
    if isinstance(hint, list):
        return "[" + ", ".join(fmt_type(h) for h in hint) + "]"
    origin = get_origin(hint)
    if origin is None:
        if isinstance(hint, type):
            return hint.__qualname__
        return str(hint).removeprefix("typing.")
    args = get_args(hint)
    if origin is Annotated:
        return fmt_type(args[0])
    if origin is Union or origin is UnionType:
        return " | ".join(fmt_type(a) for a in args)
    name = getattr(origin, "__qualname__", None) or str(origin).removeprefix("typing.")
    if not args:
        return name
    return f"{name}[{', '.join(fmt_type(a) for a in args)}]"


def fmt_template(template: RequestTemplate) -> str:
    """Format a request template.

    Returns:
        ``"GET /users/{id} content_type=None accept=[application/json]"``

    """
    method = template.http_method.value if template.http_method is not None else "-"
    accept = "None" if template.accept is None else "[" + ", ".join(str(m) for m in template.accept) + "]"
    return f"{method} {template.url or '-'} content_type={template.content_type} accept={accept}"


def fmt_arguments(parameters: Sequence[MethodParameter], arguments: Sequence[object]) -> str:
    """Format call arguments as ``name=value`` pairs with long reprs truncated."""
    parts: list[str] = []
    for param, value in zip(parameters, arguments, strict=False):
        r = repr(value)
        if len(r) > _MAX_VALUE_LEN:
            r = r[:_MAX_VALUE_LEN] + "..."
        parts.append(f"{param.name}={r}")
    return ", ".join(parts)
