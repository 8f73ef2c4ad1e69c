"""Tests for response adapter plan compilation and execution."""

from __future__ import annotations

import asyncio
import concurrent.futures
from collections.abc import AsyncIterator, Awaitable, Coroutine, Iterator
from dataclasses import dataclass
from typing import Annotated, Any, Optional

import httpx
import pytest

from http_interface.invoker import (
    AsyncAdapter,
    AsyncAdapterRegistry,
    EventLoopThread,
    ExchangeOperation,
    ExchangeTimeoutError,
    HttpServiceDefinitionError,
    RequestTemplate,
    ResponseAdapterPlan,
    ResponseEntity,
)

from .conftest import RecordingExchangeAdapter


@dataclass
class User:
    """Body type used in plans."""

    id: int


class Completion:
    """Custom container reporting no value."""


@pytest.fixture
def runner() -> Iterator[EventLoopThread]:
    """A background loop closed at teardown."""
    loop = EventLoopThread(name="plan-test-loop")
    yield loop
    loop.close()


@pytest.fixture
def registry(runner: EventLoopThread) -> AsyncAdapterRegistry:
    """The default registry bound to the test loop."""
    return AsyncAdapterRegistry.default(runner)


def _plan(return_type: Any, registry: AsyncAdapterRegistry, timeout: float = 5.0) -> ResponseAdapterPlan:
    return ResponseAdapterPlan.compile(return_type, registry, timeout)


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


class TestVoid:
    """Return types that carry no value."""

    def test_none(self, registry: AsyncAdapterRegistry) -> None:
        """-> None blocks on request_to_void."""
        plan = _plan(None, registry)
        assert plan.operation is ExchangeOperation.VOID
        assert plan.blocking
        assert plan.body_type is None

    def test_none_type(self, registry: AsyncAdapterRegistry) -> None:
        """NoneType is the same as None."""
        assert _plan(type(None), registry).operation is ExchangeOperation.VOID

    def test_awaitable_none(self, registry: AsyncAdapterRegistry) -> None:
        """-> Awaitable[None] is void without blocking."""
        plan = _plan(Awaitable[None], registry)
        assert plan.operation is ExchangeOperation.VOID
        assert plan.return_adapter is not None
        assert not plan.blocking

    def test_no_value_adapter(self, registry: AsyncAdapterRegistry) -> None:
        """A no-value adapter selects request_to_void regardless of anything else."""
        registry.register(AsyncAdapter(Completion, no_value=True))
        plan = _plan(Completion, registry)
        assert plan.operation is ExchangeOperation.VOID
        assert plan.return_adapter is not None and plan.return_adapter.async_type is Completion


class TestHeaders:
    """Headers-only results."""

    def test_headers(self, registry: AsyncAdapterRegistry) -> None:
        """-> httpx.Headers selects request_to_headers."""
        plan = _plan(httpx.Headers, registry)
        assert plan.operation is ExchangeOperation.HEADERS
        assert plan.blocking

    def test_awaitable_headers(self, registry: AsyncAdapterRegistry) -> None:
        """-> Awaitable[httpx.Headers] selects request_to_headers without blocking."""
        plan = _plan(Awaitable[httpx.Headers], registry)
        assert plan.operation is ExchangeOperation.HEADERS
        assert not plan.blocking


class TestEntity:
    """ResponseEntity return types."""

    def test_bodiless(self, registry: AsyncAdapterRegistry) -> None:
        """ResponseEntity[None] selects request_to_bodiless_entity."""
        assert _plan(ResponseEntity[None], registry).operation is ExchangeOperation.BODILESS_ENTITY

    def test_entity_with_body(self, registry: AsyncAdapterRegistry) -> None:
        """ResponseEntity[T] passes the full body type."""
        plan = _plan(ResponseEntity[list[User]], registry)
        assert plan.operation is ExchangeOperation.ENTITY
        assert plan.body_type == list[User]

    def test_single_value_body_rejected(self, registry: AsyncAdapterRegistry) -> None:
        """A single-value async body inside an entity fails compilation."""
        with pytest.raises(HttpServiceDefinitionError, match="not Awaitable"):
            _plan(ResponseEntity[Awaitable[User]], registry)

    def test_native_stream_fast_path(self, registry: AsyncAdapterRegistry) -> None:
        """ResponseEntity[AsyncIterator[T]] streams without a mapping step."""
        plan = _plan(ResponseEntity[AsyncIterator[User]], registry)
        assert plan.operation is ExchangeOperation.ENTITY_FLUX
        assert plan.body_type is User
        assert plan.body_adapter is None

    def test_other_stream_maps_body(self, registry: AsyncAdapterRegistry) -> None:
        """ResponseEntity[Iterator[T]] streams and rewraps the body."""
        plan = _plan(ResponseEntity[Iterator[User]], registry)
        assert plan.operation is ExchangeOperation.ENTITY_FLUX
        assert plan.body_type is User
        assert plan.body_adapter is not None and plan.body_adapter.async_type is Iterator

    def test_stream_of_entities(self, registry: AsyncAdapterRegistry) -> None:
        """A multi-value container of ResponseEntity lifts the single entity into a stream."""
        plan = _plan(AsyncIterator[ResponseEntity[User]], registry)
        assert plan.operation is ExchangeOperation.ENTITY
        assert plan.body_type is User
        assert plan.stream_single_value

    def test_awaitable_entity(self, registry: AsyncAdapterRegistry) -> None:
        """Awaitable[ResponseEntity[T]] unwraps one level first."""
        plan = _plan(Awaitable[ResponseEntity[User]], registry)
        assert plan.operation is ExchangeOperation.ENTITY
        assert plan.body_type is User
        assert not plan.blocking


class TestBody:
    """Plain body return types."""

    def test_plain(self, registry: AsyncAdapterRegistry) -> None:
        """-> T blocks on request_to_body."""
        plan = _plan(User, registry)
        assert plan.operation is ExchangeOperation.BODY
        assert plan.body_type is User
        assert plan.blocking
        assert not plan.block_for_optional

    def test_generic_body_type_kept(self, registry: AsyncAdapterRegistry) -> None:
        """Generic parameters reach the transport."""
        assert _plan(dict[str, list[int]], registry).body_type == dict[str, list[int]]

    @pytest.mark.parametrize("hint", [User | None, Optional[User]])  # noqa: UP045
    def test_optional(self, hint: Any, registry: AsyncAdapterRegistry) -> None:
        """-> T | None unwraps one level and blocks for an optional value."""
        plan = _plan(hint, registry)
        assert plan.operation is ExchangeOperation.BODY
        assert plan.body_type is User
        assert plan.block_for_optional
        assert plan.blocking

    def test_annotated(self, registry: AsyncAdapterRegistry) -> None:
        """Annotated metadata is ignored."""
        assert _plan(Annotated[User, "meta"], registry).body_type is User

    def test_future(self, registry: AsyncAdapterRegistry) -> None:
        """-> Future[T] is request_to_body through the Future adapter."""
        plan = _plan(concurrent.futures.Future[User], registry)
        assert plan.operation is ExchangeOperation.BODY
        assert plan.body_type is User
        assert plan.return_adapter is not None and plan.return_adapter.name == "Future"

    def test_coroutine_uses_return_argument(self, registry: AsyncAdapterRegistry) -> None:
        """-> Coroutine[Y, S, R] targets R, not the yield type."""
        plan = _plan(Coroutine[Any, Any, User], registry)
        assert plan.operation is ExchangeOperation.BODY
        assert plan.body_type is User

    def test_coroutine_of_none_is_void(self, registry: AsyncAdapterRegistry) -> None:
        """-> Coroutine[Any, Any, None] selects request_to_void."""
        assert _plan(Coroutine[Any, Any, None], registry).operation is ExchangeOperation.VOID

    def test_unparameterised_container(self, registry: AsyncAdapterRegistry) -> None:
        """A bare container has an Any body."""
        plan = _plan(Awaitable, registry)
        assert plan.operation is ExchangeOperation.BODY
        assert plan.body_type is Any

    def test_async_iterator(self, registry: AsyncAdapterRegistry) -> None:
        """-> AsyncIterator[T] selects request_to_body_flux."""
        plan = _plan(AsyncIterator[User], registry)
        assert plan.operation is ExchangeOperation.BODY_FLUX
        assert plan.body_type is User

    def test_iterator(self, registry: AsyncAdapterRegistry) -> None:
        """-> Iterator[T] selects request_to_body_flux."""
        plan = _plan(Iterator[User], registry)
        assert plan.operation is ExchangeOperation.BODY_FLUX
        assert not plan.stream_single_value

    def test_timeout_stored(self, registry: AsyncAdapterRegistry) -> None:
        """The block timeout is stored in the plan."""
        assert _plan(User, registry, 1.5).block_timeout == 1.5

    def test_empty_registry_blocks(self) -> None:
        """Without adapters every container type is a body."""
        plan = _plan(Awaitable[User], AsyncAdapterRegistry())
        assert plan.operation is ExchangeOperation.BODY
        assert plan.blocking


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def _request() -> Any:
    request = RequestTemplate(url="/x").new_request()
    request.set_complete()
    return request


class TestExecute:
    """Tests for ResponseAdapterPlan.execute."""

    def test_blocking_value(self, registry: AsyncAdapterRegistry, runner: EventLoopThread) -> None:
        """A blocking plan returns the transport's value."""
        adapter = RecordingExchangeAdapter(lambda r: httpx.Response(200, json={"id": 1}))
        plan = _plan(User, registry)
        assert plan.execute(_request(), adapter, runner) == {"id": 1}
        assert adapter.calls[0].body_type is User

    def test_optional_absent_returns_none(self, registry: AsyncAdapterRegistry, runner: EventLoopThread) -> None:
        """An absent optional value is None, not an error."""
        adapter = RecordingExchangeAdapter(lambda r: httpx.Response(404))
        plan = _plan(User | None, registry)
        assert plan.execute(_request(), adapter, runner) is None

    def test_timeout(self, registry: AsyncAdapterRegistry, runner: EventLoopThread) -> None:
        """A slow transport raises ExchangeTimeoutError naming the method."""
        adapter = RecordingExchangeAdapter(delay=1.0)
        plan = _plan(User, registry, 0.05)
        with pytest.raises(ExchangeTimeoutError, match=r"Svc\.get\(\) did not complete"):
            plan.execute(_request(), adapter, runner, method_name="Svc.get")

    def test_fast_call_within_timeout(self, registry: AsyncAdapterRegistry, runner: EventLoopThread) -> None:
        """A call faster than the timeout returns its value."""
        adapter = RecordingExchangeAdapter(delay=0.01)
        plan = _plan(dict, registry, 2.0)
        assert plan.execute(_request(), adapter, runner) == {"ok": True}

    def test_adapter_returns_without_blocking(self, registry: AsyncAdapterRegistry) -> None:
        """With a return adapter nothing runs on the loop."""
        idle = EventLoopThread()
        adapter = RecordingExchangeAdapter()
        plan = _plan(Awaitable[dict], registry)
        result = plan.execute(_request(), adapter, idle)
        assert not idle.running
        assert asyncio.run(result) == {"ok": True}

    def test_entity_stream_mapped(self, registry: AsyncAdapterRegistry, runner: EventLoopThread) -> None:
        """A mapped entity stream keeps status and headers and yields a sync iterator."""
        adapter = RecordingExchangeAdapter(lambda r: httpx.Response(206, json=[1, 2, 3], headers={"X-Page": "1"}))
        plan = _plan(ResponseEntity[Iterator[int]], registry)
        entity = plan.execute(_request(), adapter, runner)
        assert entity.status_code == 206
        assert entity.headers["X-Page"] == "1"
        assert list(entity.body) == [1, 2, 3]
        assert adapter.operations == ["request_to_entity_flux"]

    def test_headers_stream(self, registry: AsyncAdapterRegistry, runner: EventLoopThread) -> None:
        """-> Iterator[httpx.Headers] yields the one set of response headers."""
        adapter = RecordingExchangeAdapter(lambda r: httpx.Response(200, headers={"X-Total": "3"}))
        plan = _plan(Iterator[httpx.Headers], registry)
        (headers,) = list(plan.execute(_request(), adapter, runner))
        assert headers["X-Total"] == "3"
        assert adapter.operations == ["request_to_headers"]

    def test_void_stream_is_empty(self, registry: AsyncAdapterRegistry, runner: EventLoopThread) -> None:
        """-> AsyncIterator[None] completes the request and yields nothing."""
        adapter = RecordingExchangeAdapter()
        stream = _plan(AsyncIterator[None], registry).execute(_request(), adapter, runner)

        async def collect() -> list[Any]:
            return [item async for item in stream]

        assert asyncio.run(collect()) == []
        assert adapter.operations == ["request_to_void"]

    def test_void_returns_none(self, registry: AsyncAdapterRegistry, runner: EventLoopThread) -> None:
        """A void plan returns None."""
        adapter = RecordingExchangeAdapter()
        assert _plan(None, registry).execute(_request(), adapter, runner) is None
        assert adapter.operations == ["request_to_void"]
