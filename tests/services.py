"""Service interfaces shared by the tests and the CLI tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Coroutine, Iterator
from concurrent.futures import Future
from typing import Annotated, Any, Protocol

import httpx

from http_interface import (
    ResponseEntity,
    delete_exchange,
    get_exchange,
    http_exchange,
    post_exchange,
    put_exchange,
)
from tests.conftest import Body, HeaderValue, PathVariable


@http_exchange("/users", accept="application/json")
class UserService(Protocol):
    """User directory."""

    @get_exchange("/{user_id}")
    def get_user(self, user_id: Annotated[int, PathVariable()]) -> dict[str, Any]:
        """Fetch one user."""
        ...

    @get_exchange("/{user_id}")
    def find_user(self, user_id: Annotated[int, PathVariable()]) -> dict[str, Any] | None:
        """Fetch one user, ``None`` when unknown."""
        ...

    @get_exchange("/{user_id}")
    def get_user_async(self, user_id: Annotated[int, PathVariable()]) -> Awaitable[dict[str, Any]]:
        ...

    @get_exchange("/{user_id}")
    def get_user_coroutine(self, user_id: Annotated[int, PathVariable()]) -> Coroutine[Any, Any, dict[str, Any]]:
        ...

    @get_exchange("/{user_id}")
    def get_user_future(self, user_id: Annotated[int, PathVariable()]) -> Future[dict[str, Any]]:
        ...

    @get_exchange("/{user_id}")
    def get_user_entity(self, user_id: Annotated[int, PathVariable()]) -> ResponseEntity[dict[str, Any]]:
        ...

    @get_exchange()
    def list_users(self) -> Iterator[dict[str, Any]]:
        """Stream every user."""
        ...

    @get_exchange()
    def list_users_async(self) -> AsyncIterator[dict[str, Any]]:
        ...

    @get_exchange()
    def list_users_entity(self) -> ResponseEntity[Iterator[dict[str, Any]]]:
        ...

    @get_exchange("/{user_id}")
    def watch_user(self, user_id: Annotated[int, PathVariable()]) -> AsyncIterator[ResponseEntity[dict[str, Any]]]:
        ...

    @get_exchange("/{user_id}")
    def poll_user(self, user_id: Annotated[int, PathVariable()]) -> Iterator[ResponseEntity[dict[str, Any]]]:
        ...

    @post_exchange("/ping")
    def ping(self) -> Iterator[None]:
        ...

    @post_exchange(content_type="application/json")
    def create_user(
        self,
        user: Annotated[dict[str, Any], Body()],
        request_id: Annotated[str | None, HeaderValue("X-Request-Id")] = None,
    ) -> ResponseEntity[None]:
        """Create a user."""
        ...

    @put_exchange("/{user_id}", content_type="application/json")
    def replace_user(self, user_id: Annotated[int, PathVariable()], user: Annotated[dict[str, Any], Body()]) -> None:
        ...

    @http_exchange(method="HEAD")
    def count_users(self) -> httpx.Headers:
        ...

    @delete_exchange("/{user_id}")
    def delete_user(self, user_id: Annotated[int, PathVariable()]) -> Awaitable[None]:
        ...

    def _helper(self) -> None:
        """Private names are not service methods."""


class UndeclaredService(Protocol):
    """A method without an exchange declaration."""

    def plain(self) -> str:
        ...


@http_exchange("/broken")
class BrokenService(Protocol):
    """An entity body may not be a single-value async container."""

    @get_exchange()
    def broken(self) -> ResponseEntity[Awaitable[str]]:
        ...
