"""Shared test fixtures for http-interface tests."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator, Callable, Iterator
from dataclasses import dataclass
from typing import Any

import httpx
import pytest

from http_interface import HttpRequestSpec, HttpServiceProxyFactory, MethodParameter, ResponseEntity

# ---------------------------------------------------------------------------
# Argument markers and resolvers
# ---------------------------------------------------------------------------


class PathVariable:
    """Marks a parameter as a URI template variable."""


@dataclass(frozen=True)
class HeaderValue:
    """Marks a parameter as a request header."""

    name: str


class Body:
    """Marks a parameter as the request body."""


class PathVariableResolver:
    """Sets a URI variable named after the parameter."""

    def resolve(self, argument: object, parameter: MethodParameter, request: HttpRequestSpec) -> None:
        """Set the URI variable for path parameters."""
        if parameter.has_metadata(PathVariable):
            request.set_uri_variable(parameter.name, argument)


class HeaderResolver:
    """Adds a header value."""

    def resolve(self, argument: object, parameter: MethodParameter, request: HttpRequestSpec) -> None:
        """Add the header for header parameters, skipping ``None``."""
        marker = parameter.find_metadata(HeaderValue)
        if marker is not None and argument is not None:
            request.add_header(marker.name, str(argument))


class BodyResolver:
    """Sets the body value."""

    def resolve(self, argument: object, parameter: MethodParameter, request: HttpRequestSpec) -> None:
        """Set the body for body parameters."""
        if parameter.has_metadata(Body):
            request.body_value = argument


class RecordingResolver:
    """Records every ``(label, parameter name, argument)`` it is offered."""

    def __init__(self, label: str, log: list[tuple[str, str, object]]) -> None:
        self.label = label
        self.log = log

    def resolve(self, argument: object, parameter: MethodParameter, request: HttpRequestSpec) -> None:
        """Record the offer and leave the request untouched."""
        self.log.append((self.label, parameter.name, argument))


# ---------------------------------------------------------------------------
# Recording exchange adapter
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordedCall:
    """One transport call seen by ``RecordingExchangeAdapter``."""

    operation: str
    request: HttpRequestSpec
    body_type: Any = None
    complete: bool = False


def _default_handler(request: HttpRequestSpec) -> httpx.Response:
    return httpx.Response(200, json={"ok": True})


class RecordingExchangeAdapter:
    """In-memory ``HttpExchangeAdapter`` that records calls.

    Responses come from *handler*, which maps a request to an
    ``httpx.Response``.  Bodies are the response JSON; stream operations
    yield the elements of a JSON array.  Every operation sleeps *delay*
    seconds before answering.
    """

    def __init__(
        self,
        handler: Callable[[HttpRequestSpec], httpx.Response] = _default_handler,
        *,
        delay: float = 0.0,
    ) -> None:
        self.handler = handler
        self.delay = delay
        self.calls: list[RecordedCall] = []
        self._lock = threading.Lock()

    @property
    def operations(self) -> list[str]:
        """Names of the operations called so far."""
        with self._lock:
            return [c.operation for c in self.calls]

    async def _respond(self, operation: str, request: HttpRequestSpec, body_type: Any = None) -> httpx.Response:
        with self._lock:
            self.calls.append(RecordedCall(operation, request, body_type, request.complete))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.handler(request)

    @staticmethod
    def _body(response: httpx.Response) -> Any:
        return response.json() if response.content else None

    async def request_to_void(self, request: HttpRequestSpec) -> None:
        """Record and discard the response."""
        await self._respond("request_to_void", request)

    async def request_to_headers(self, request: HttpRequestSpec) -> httpx.Headers:
        """Record and return the response headers."""
        return (await self._respond("request_to_headers", request)).headers

    async def request_to_bodiless_entity(self, request: HttpRequestSpec) -> ResponseEntity[None]:
        """Record and return status and headers."""
        response = await self._respond("request_to_bodiless_entity", request)
        return ResponseEntity(response.status_code, response.headers)

    async def request_to_entity(self, request: HttpRequestSpec, body_type: Any) -> ResponseEntity[Any]:
        """Record and return status, headers and body."""
        response = await self._respond("request_to_entity", request, body_type)
        return ResponseEntity(response.status_code, response.headers, self._body(response))

    async def request_to_body(self, request: HttpRequestSpec, body_type: Any) -> Any:
        """Record and return the body."""
        return self._body(await self._respond("request_to_body", request, body_type))

    async def request_to_body_flux(self, request: HttpRequestSpec, body_type: Any) -> AsyncIterator[Any]:
        """Record and yield the elements of the JSON array body."""
        response = await self._respond("request_to_body_flux", request, body_type)
        for item in self._body(response) or []:
            yield item

    async def request_to_entity_flux(
        self, request: HttpRequestSpec, body_type: Any
    ) -> ResponseEntity[AsyncIterator[Any]]:
        """Record and return status and headers with a streamed body."""
        response = await self._respond("request_to_entity_flux", request, body_type)
        return ResponseEntity(response.status_code, response.headers, _aiter(self._body(response) or []))


async def _aiter(items: list[Any]) -> AsyncIterator[Any]:
    for item in items:
        yield item


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def adapter() -> RecordingExchangeAdapter:
    """A recording adapter answering ``{"ok": true}``."""
    return RecordingExchangeAdapter()


@pytest.fixture
def make_factory() -> Iterator[Callable[..., HttpServiceProxyFactory]]:
    """Build factories with the standard resolvers; all are closed at teardown."""
    created: list[HttpServiceProxyFactory] = []

    def make(exchange_adapter: Any, **kwargs: Any) -> HttpServiceProxyFactory:
        kwargs.setdefault("argument_resolvers", [PathVariableResolver(), HeaderResolver(), BodyResolver()])
        factory = HttpServiceProxyFactory(exchange_adapter, **kwargs)
        created.append(factory)
        return factory

    yield make
    for factory in created:
        factory.close()
