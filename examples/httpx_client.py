"""Calling an HTTP service interface through an httpx-backed transport.

Shows the pieces an application supplies around the library: argument
resolvers that place arguments in the request, and an exchange adapter that
performs requests with ``httpx.AsyncClient``.  The "server" is an in-memory
``httpx.MockTransport`` handler, so no network is needed.

Run::

    python examples/httpx_client.py
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import re
from collections.abc import AsyncIterator, Iterator
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Annotated, Any, Protocol, get_args, get_origin
from urllib.parse import quote

import httpx

from http_interface import (
    HttpRequestSpec,
    HttpServiceProxyFactory,
    MethodParameter,
    ResponseEntity,
    delete_exchange,
    get_exchange,
    http_exchange,
    post_exchange,
)

# ---------------------------------------------------------------------------
# 1. Argument markers and resolvers
# ---------------------------------------------------------------------------


class PathVariable:
    """Marks a parameter as a ``{name}`` URL template variable."""


class Query:
    """Marks a parameter as a query parameter."""


class Body:
    """Marks a parameter as the JSON request body."""


class PathVariableResolver:
    """Sets URI template variables."""

    def resolve(self, argument: object, parameter: MethodParameter, request: HttpRequestSpec) -> None:
        """Set ``{parameter.name}`` when the parameter is a path variable."""
        if parameter.has_metadata(PathVariable):
            request.set_uri_variable(parameter.name, argument)


class QueryResolver:
    """Adds query parameters, skipping ``None``."""

    def resolve(self, argument: object, parameter: MethodParameter, request: HttpRequestSpec) -> None:
        """Add ``parameter.name=argument`` when the parameter is a query parameter."""
        if parameter.has_metadata(Query) and argument is not None:
            request.add_query_param(parameter.name, str(argument))


class BodyResolver:
    """Sets the request body."""

    def resolve(self, argument: object, parameter: MethodParameter, request: HttpRequestSpec) -> None:
        """Use *argument* as the body when the parameter is the body."""
        if parameter.has_metadata(Body):
            request.body_value = argument


# ---------------------------------------------------------------------------
# 2. An httpx-backed exchange adapter
# ---------------------------------------------------------------------------

_TEMPLATE_VAR = re.compile(r"\{(\w+)\}")


def _to_json(value: object) -> object:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def _decode(data: Any, body_type: Any) -> Any:
    """Convert decoded JSON into *body_type* (dataclasses and lists of them)."""
    if isinstance(body_type, type) and dataclasses.is_dataclass(body_type):
        return body_type(**data)
    if get_origin(body_type) is list:
        (element_type,) = get_args(body_type) or (Any,)
        return [_decode(item, element_type) for item in data]
    return data


class HttpxExchangeAdapter:
    """Performs requests with an ``httpx.AsyncClient``.

    A 404 response to ``request_to_body`` is read as "no value"; any other
    error status raises ``httpx.HTTPStatusError``.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        """Wrap *client*; the caller owns its lifecycle."""
        self._client = client

    def _build(self, request: HttpRequestSpec) -> httpx.Request:
        variables = request.uri_variables
        url = request.uri or _TEMPLATE_VAR.sub(
            lambda m: quote(str(variables[m.group(1)]), safe=""), request.uri_template or ""
        )
        headers = request.headers
        if request.cookies:
            headers["Cookie"] = "; ".join(f"{k}={v}" for k, values in request.cookies.items() for v in values)
        content = None
        if request.body_value is not None:
            content = json.dumps(_to_json(request.body_value)).encode()
        params = [(k, v) for k, values in request.query_params.items() for v in values]
        method = request.http_method.value if request.http_method is not None else "GET"
        return self._client.build_request(method, url, params=params or None, headers=headers, content=content)

    async def _send(self, request: HttpRequestSpec, *, stream: bool = False) -> httpx.Response:
        return await self._client.send(self._build(request), stream=stream)

    async def _lines(self, response: httpx.Response, body_type: Any) -> AsyncIterator[Any]:
        try:
            async for line in response.aiter_lines():
                if line.strip():
                    yield _decode(json.loads(line), body_type)
        finally:
            await response.aclose()

    async def request_to_void(self, request: HttpRequestSpec) -> None:
        """Perform the request and discard the response."""
        (await self._send(request)).raise_for_status()

    async def request_to_headers(self, request: HttpRequestSpec) -> httpx.Headers:
        """Perform the request and return the response headers."""
        response = await self._send(request)
        response.raise_for_status()
        return response.headers

    async def request_to_bodiless_entity(self, request: HttpRequestSpec) -> ResponseEntity[None]:
        """Perform the request and return status and headers."""
        response = await self._send(request)
        return ResponseEntity(response.status_code, response.headers)

    async def request_to_entity(self, request: HttpRequestSpec, body_type: Any) -> ResponseEntity[Any]:
        """Perform the request and return status, headers and decoded body."""
        response = await self._send(request)
        body = _decode(response.json(), body_type) if response.content else None
        return ResponseEntity(response.status_code, response.headers, body)

    async def request_to_body(self, request: HttpRequestSpec, body_type: Any) -> Any:
        """Perform the request and return the decoded body, ``None`` on 404."""
        response = await self._send(request)
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        return _decode(response.json(), body_type)

    async def request_to_body_flux(self, request: HttpRequestSpec, body_type: Any) -> AsyncIterator[Any]:
        """Stream newline-delimited JSON elements."""
        response = await self._send(request, stream=True)
        if response.is_error:
            await response.aclose()
            response.raise_for_status()
        async for item in self._lines(response, body_type):
            yield item

    async def request_to_entity_flux(
        self, request: HttpRequestSpec, body_type: Any
    ) -> ResponseEntity[AsyncIterator[Any]]:
        """Return status and headers with a streamed newline-delimited JSON body."""
        response = await self._send(request, stream=True)
        return ResponseEntity(response.status_code, response.headers, self._lines(response, body_type))


# ---------------------------------------------------------------------------
# 3. The service interface
# ---------------------------------------------------------------------------


@dataclass
class User:
    """A user record."""

    id: int
    name: str


@http_exchange("/users", accept="application/json")
class UserService(Protocol):
    """User directory."""

    @get_exchange("/{user_id}")
    def get_user(self, user_id: Annotated[int, PathVariable()]) -> User | None:
        """Fetch one user, ``None`` when unknown."""
        ...

    @get_exchange("/{user_id}")
    def get_user_later(self, user_id: Annotated[int, PathVariable()]) -> Future[User]:
        """Fetch one user without blocking."""
        ...

    @get_exchange("/search")
    def search(self, name: Annotated[str, Query()]) -> list[User]:
        """Find users whose name contains *name*."""
        ...

    @post_exchange(content_type="application/json")
    def create_user(self, user: Annotated[User, Body()]) -> ResponseEntity[None]:
        """Create a user; the ``Location`` header names it."""
        ...

    @http_exchange(method="HEAD")
    def count_users(self) -> httpx.Headers:
        """Return the ``X-Total-Count`` header."""
        ...

    @get_exchange(accept="application/x-ndjson")
    def list_users(self) -> Iterator[User]:
        """Stream every user."""
        ...

    @delete_exchange("/{user_id}")
    def delete_user(self, user_id: Annotated[int, PathVariable()]) -> None:
        """Delete a user."""
        ...


# ---------------------------------------------------------------------------
# 4. An in-memory server
# ---------------------------------------------------------------------------


class _FakeUserServer:
    """Handles requests for ``/users`` against a dict."""

    def __init__(self) -> None:
        self.users: dict[int, dict[str, Any]] = {
            1: {"id": 1, "name": "Ada Lovelace"},
            2: {"id": 2, "name": "Alan Turing"},
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/users" and request.method == "HEAD":
            return httpx.Response(200, headers={"X-Total-Count": str(len(self.users))})
        if path == "/users" and request.method == "GET":
            lines = "".join(json.dumps(u) + "\n" for u in self.users.values())
            return httpx.Response(200, content=lines.encode(), headers={"Content-Type": "application/x-ndjson"})
        if path == "/users" and request.method == "POST":
            data = json.loads(request.content)
            new_id = max(self.users) + 1
            self.users[new_id] = {"id": new_id, "name": data["name"]}
            return httpx.Response(201, headers={"Location": f"/users/{new_id}"})
        if path == "/users/search":
            needle = request.url.params.get("name", "")
            return httpx.Response(200, json=[u for u in self.users.values() if needle in u["name"]])
        match = re.fullmatch(r"/users/(\d+)", path)
        if match is not None:
            user_id = int(match.group(1))
            if user_id not in self.users:
                return httpx.Response(404)
            if request.method == "DELETE":
                del self.users[user_id]
                return httpx.Response(204)
            return httpx.Response(200, json=self.users[user_id])
        return httpx.Response(404)


# ---------------------------------------------------------------------------
# 5. Wire it together
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the example."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(_FakeUserServer()), base_url="http://users.test")
    adapter = HttpxExchangeAdapter(client)
    resolvers = [PathVariableResolver(), QueryResolver(), BodyResolver()]

    with HttpServiceProxyFactory(adapter, argument_resolvers=resolvers) as factory:
        users = factory.create_client(UserService)

        print(f"get_user(1)     = {users.get_user(1)}")
        print(f"get_user(99)    = {users.get_user(99)}")

        created = users.create_user(User(id=0, name="Grace Hopper"))
        print(f"create_user     = {created.status_code} {created.headers['Location']}")

        print(f"search('Al')    = {users.search('Al')}")
        print(f"X-Total-Count   = {users.count_users()['X-Total-Count']}")

        future = users.get_user_later(3)
        print(f"get_user_later  = {future.result(timeout=5)}")

        users.delete_user(2)
        for user in users.list_users():
            print(f"streamed        = {user.name}")

    asyncio.run(client.aclose())


if __name__ == "__main__":
    main()
