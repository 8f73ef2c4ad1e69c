# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Request templates compiled from exchange declarations, and per-call request specs."""

from __future__ import annotations

from collections.abc import AsyncIterable, Mapping
from dataclasses import dataclass
from http import HTTPMethod
from types import MappingProxyType
from typing import Any

import httpx

from http_interface.annotation import HttpExchange
from http_interface.invoker._common import HttpServiceDefinitionError
from http_interface.media import MediaType

# ---------------------------------------------------------------------------
# HttpRequestSpec
# ---------------------------------------------------------------------------


class HttpRequestSpec:
    """Mutable request assembled for a single service method call.

    Argument resolvers populate it; once ``set_complete()`` has been called
    every mutator raises ``RuntimeError`` and the spec is read-only input to
    the transport.

    Not thread-safe: each call builds its own spec.
    """

    __slots__ = (
        "_body_element_type",
        "_body_publisher",
        "_body_value",
        "_complete",
        "_cookies",
        "_headers",
        "_http_method",
        "_query_params",
        "_uri",
        "_uri_template",
        "_uri_variables",
    )

    def __init__(self) -> None:
        """Initialize an empty request."""
        self._http_method: HTTPMethod | None = None
        self._uri: str | None = None
        self._uri_template: str | None = None
        self._uri_variables: dict[str, object] = {}
        self._headers = httpx.Headers()
        self._query_params: dict[str, list[str]] = {}
        self._cookies: dict[str, list[str]] = {}
        self._body_value: object | None = None
        self._body_publisher: AsyncIterable[Any] | None = None
        self._body_element_type: Any = None
        self._complete = False

    def _check_not_complete(self) -> None:
        if self._complete:
            raise RuntimeError("HttpRequestSpec is complete; no further changes are allowed")

    # --- Completion ---

    @property
    def complete(self) -> bool:
        """Whether ``set_complete()`` has been called."""
        return self._complete

    def set_complete(self) -> None:
        """Mark the request complete.  Further mutation raises ``RuntimeError``."""
        self._complete = True

    # --- Method and URI ---

    @property
    def http_method(self) -> HTTPMethod | None:
        """The HTTP verb, or ``None`` when not yet set."""
        return self._http_method

    @http_method.setter
    def http_method(self, value: HTTPMethod) -> None:
        self._check_not_complete()
        self._http_method = value

    @property
    def uri(self) -> str | None:
        """An absolute URI that takes precedence over the template, or ``None``."""
        return self._uri

    @uri.setter
    def uri(self, value: str) -> None:
        self._check_not_complete()
        self._uri = value

    @property
    def uri_template(self) -> str | None:
        """The URI template, e.g. ``"/users/{id}"``, or ``None``."""
        return self._uri_template

    @uri_template.setter
    def uri_template(self, value: str) -> None:
        self._check_not_complete()
        self._uri_template = value

    @property
    def uri_variables(self) -> Mapping[str, object]:
        """Values for the template's ``{name}`` placeholders (read-only view)."""
        return MappingProxyType(self._uri_variables)

    def set_uri_variable(self, name: str, value: object) -> None:
        """Set the value of the ``{name}`` placeholder."""
        self._check_not_complete()
        self._uri_variables[name] = value

    # --- Headers, query parameters, cookies ---

    @property
    def headers(self) -> httpx.Headers:
        """A copy of the request headers."""
        return self._headers.copy()

    def add_header(self, name: str, value: str) -> None:
        """Append a header value, keeping existing values for *name*."""
        self._check_not_complete()
        self._headers = httpx.Headers([*self._headers.multi_items(), (name, value)])

    def set_header(self, name: str, value: str) -> None:
        """Replace all values of header *name*."""
        self._check_not_complete()
        self._headers[name] = value

    @property
    def query_params(self) -> Mapping[str, tuple[str, ...]]:
        """Query parameters as a read-only multi-map."""
        return MappingProxyType({k: tuple(v) for k, v in self._query_params.items()})

    def add_query_param(self, name: str, value: str) -> None:
        """Append a query parameter value."""
        self._check_not_complete()
        self._query_params.setdefault(name, []).append(value)

    @property
    def cookies(self) -> Mapping[str, tuple[str, ...]]:
        """Cookies as a read-only multi-map."""
        return MappingProxyType({k: tuple(v) for k, v in self._cookies.items()})

    def add_cookie(self, name: str, value: str) -> None:
        """Append a cookie value."""
        self._check_not_complete()
        self._cookies.setdefault(name, []).append(value)

    # --- Body ---

    @property
    def body_value(self) -> object | None:
        """The body value, or ``None``."""
        return self._body_value

    @body_value.setter
    def body_value(self, value: object) -> None:
        self._check_not_complete()
        if self._body_publisher is not None:
            raise RuntimeError("Request body is already set to a publisher")
        self._body_value = value

    @property
    def body_publisher(self) -> AsyncIterable[Any] | None:
        """An async publisher producing the body, or ``None``."""
        return self._body_publisher

    @property
    def body_element_type(self) -> Any:
        """Element type of ``body_publisher``, or ``None``."""
        return self._body_element_type

    def set_body_publisher(self, publisher: AsyncIterable[Any], element_type: Any) -> None:
        """Stream the body from *publisher*, whose elements are of *element_type*."""
        self._check_not_complete()
        if self._body_value is not None:
            raise RuntimeError("Request body is already set to a value")
        self._body_publisher = publisher
        self._body_element_type = element_type

    def __repr__(self) -> str:
        """Summarise method, target and completion state."""
        target = self._uri or self._uri_template
        method = self._http_method.value if self._http_method is not None else None
        return f"HttpRequestSpec(method={method!r}, target={target!r}, complete={self._complete})"


# ---------------------------------------------------------------------------
# RequestTemplate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestTemplate:
    """Immutable request skeleton for one service method.

    Built once at client creation from the type-level and method-level
    exchange declarations.  ``None`` means "not declared at either level".

    Attributes:
        http_method: The HTTP verb.
        url: The URL or URL template.
        content_type: Request body media type.
        accept: Acceptable response media types.

    """

    http_method: HTTPMethod | None = None
    url: str | None = None
    content_type: MediaType | None = None
    accept: tuple[MediaType, ...] | None = None

    def new_request(self) -> HttpRequestSpec:
        """Create a fresh request populated with the declared fields."""
        request = HttpRequestSpec()
        if self.http_method is not None:
            request.http_method = self.http_method
        if self.url is not None:
            request.uri_template = self.url
        if self.content_type is not None:
            request.set_header("Content-Type", str(self.content_type))
        if self.accept is not None:
            request.set_header("Accept", ", ".join(str(m) for m in self.accept))
        return request

    @classmethod
    def compile(cls, method_exchange: HttpExchange | None, type_exchange: HttpExchange | None) -> RequestTemplate:
        """Merge type-level defaults with method-level overrides.

        Args:
            method_exchange: Declaration on the method, or ``None``.
            type_exchange: Declaration on the service interface, or ``None``.

        Returns:
            The compiled template.

        Raises:
            HttpServiceDefinitionError: If a verb or media type is malformed.

        """
        return cls(
            http_method=_init_http_method(type_exchange, method_exchange),
            url=_init_url(type_exchange, method_exchange),
            content_type=_init_content_type(type_exchange, method_exchange),
            accept=_init_accept(type_exchange, method_exchange),
        )


def _override(type_value: str | None, method_value: str | None) -> str | None:
    """Method-level text wins when non-blank, then type-level, else ``None``."""
    if method_value and method_value.strip():
        return method_value
    if type_value and type_value.strip():
        return type_value
    return None


def _init_http_method(type_exchange: HttpExchange | None, method_exchange: HttpExchange | None) -> HTTPMethod | None:
    value = _override(
        type_exchange.method if type_exchange else None,
        method_exchange.method if method_exchange else None,
    )
    if value is None:
        return None
    try:
        return HTTPMethod(value.strip().upper())
    except ValueError:
        raise HttpServiceDefinitionError(f"Invalid HTTP method {value!r}") from None


def _init_url(type_exchange: HttpExchange | None, method_exchange: HttpExchange | None) -> str | None:
    url1 = type_exchange.url if type_exchange else ""
    url2 = method_exchange.url if method_exchange else ""
    has_url1 = bool(url1 and url1.strip())
    has_url2 = bool(url2 and url2.strip())
    if has_url1 and has_url2:
        if url1.endswith("/") and url2.startswith("/"):
            return url1 + url2[1:]
        separator = "/" if not url1.endswith("/") and not url2.startswith("/") else ""
        return url1 + separator + url2
    if not has_url1 and not has_url2:
        return None
    return url2 if has_url2 else url1


def _init_content_type(type_exchange: HttpExchange | None, method_exchange: HttpExchange | None) -> MediaType | None:
    value = _override(
        type_exchange.content_type if type_exchange else None,
        method_exchange.content_type if method_exchange else None,
    )
    if value is None:
        return None
    try:
        return MediaType.parse(value)
    except ValueError as exc:
        raise HttpServiceDefinitionError(f"Invalid content type: {exc}") from exc


def _init_accept(
    type_exchange: HttpExchange | None, method_exchange: HttpExchange | None
) -> tuple[MediaType, ...] | None:
    values = method_exchange.accept if method_exchange and method_exchange.accept else None
    if values is None:
        values = type_exchange.accept if type_exchange and type_exchange.accept else None
    if values is None:
        return None
    try:
        return MediaType.parse_list(values)
    except ValueError as exc:
        raise HttpServiceDefinitionError(f"Invalid accept media type: {exc}") from exc
