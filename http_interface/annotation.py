# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Declarative exchange metadata for HTTP service interfaces.

An HTTP service interface is a ``typing.Protocol`` whose methods carry an
exchange declaration.  A declaration on the class supplies defaults that
method-level declarations override::

    @http_exchange("/users", accept=["application/json"])
    class UserService(Protocol):
        @get_exchange("/{user_id}")
        def get_user(self, user_id: int) -> User: ...

        @post_exchange(content_type="application/json")
        def create_user(self, user: User) -> ResponseEntity[None]: ...

Empty strings and empty sequences mean "not declared".  Values are kept as
declared; parsing and validation happen when a client is created.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

__all__ = [
    "HttpExchange",
    "delete_exchange",
    "find_exchange",
    "get_exchange",
    "http_exchange",
    "patch_exchange",
    "post_exchange",
    "put_exchange",
]

_EXCHANGE_ATTR = "__http_exchange__"

_T = TypeVar("_T")


@dataclass(frozen=True)
class HttpExchange:
    """Exchange metadata attached to a service interface or one of its methods.

    Attributes:
        url: URL or URL fragment.  Type-level and method-level fragments are
            joined with a single ``/``.
        method: HTTP verb, e.g. ``"GET"``.
        content_type: Media type of the request body.
        accept: Acceptable response media types, one media type per entry.

    """

    url: str = ""
    method: str = ""
    content_type: str = ""
    accept: tuple[str, ...] = ()


def _as_tuple(accept: str | Sequence[str]) -> tuple[str, ...]:
    # A bare string is one media type, not a sequence of characters.
    if isinstance(accept, str):
        return (accept,) if accept else ()
    return tuple(accept)


def http_exchange(
    url: str = "",
    *,
    method: str = "",
    content_type: str = "",
    accept: str | Sequence[str] = (),
) -> Callable[[_T], _T]:
    """Declare exchange metadata on a service interface or method.

    Args:
        url: URL or URL fragment.
        method: HTTP verb.
        content_type: Request body media type.
        accept: Acceptable response media types.

    Returns:
        A decorator that records an :class:`HttpExchange` on its target and
        returns the target unchanged.

    """
    exchange = HttpExchange(url=url, method=method, content_type=content_type, accept=_as_tuple(accept))

    def decorate(target: _T) -> _T:
        setattr(target, _EXCHANGE_ATTR, exchange)
        return target

    return decorate


def _verb_shortcut(verb: str) -> Callable[..., Callable[[_T], _T]]:
    def shortcut(
        url: str = "",
        *,
        content_type: str = "",
        accept: str | Sequence[str] = (),
    ) -> Callable[[_T], _T]:
        return http_exchange(url, method=verb, content_type=content_type, accept=accept)

    shortcut.__name__ = f"{verb.lower()}_exchange"
    shortcut.__qualname__ = shortcut.__name__
    shortcut.__doc__ = f"Shortcut for ``http_exchange(url, method={verb!r}, ...)``."
    return shortcut


get_exchange = _verb_shortcut("GET")
post_exchange = _verb_shortcut("POST")
put_exchange = _verb_shortcut("PUT")
patch_exchange = _verb_shortcut("PATCH")
delete_exchange = _verb_shortcut("DELETE")


def find_exchange(element: Any) -> HttpExchange | None:
    """Return the exchange declared on *element*, or ``None``.

    For classes the lookup follows the MRO, so an interface inherits the
    declaration of its bases unless it declares its own.
    """
    if isinstance(element, type):
        for klass in element.__mro__:
            found = vars(klass).get(_EXCHANGE_ATTR)
            if isinstance(found, HttpExchange):
                return found
        return None
    found = getattr(element, _EXCHANGE_ATTR, None)
    return found if isinstance(found, HttpExchange) else None
