"""Response envelope, parameter metadata, collaborator protocols, and type-hint helpers."""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator, Awaitable
from dataclasses import dataclass, field
from http import HTTPStatus
from types import UnionType
from typing import TYPE_CHECKING, Annotated, Any, Generic, Protocol, TypeVar, Union, get_args, get_origin

import httpx

if TYPE_CHECKING:
    from http_interface.invoker._request import HttpRequestSpec

T = TypeVar("T")
M = TypeVar("M")

# ---------------------------------------------------------------------------
# ResponseEntity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResponseEntity(Generic[T]):
    """An HTTP response envelope: status, headers, and a body.

    Declare ``ResponseEntity[T]`` as a return type to receive the full
    response, ``ResponseEntity[None]`` to ignore the body, or
    ``ResponseEntity[AsyncIterator[T]]`` to stream it.
    """

    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: T | None = None

    @property
    def status(self) -> HTTPStatus | int:
        """The status as ``HTTPStatus`` when it is a registered code."""
        try:
            return HTTPStatus(self.status_code)
        except ValueError:
            return self.status_code

    @property
    def is_success(self) -> bool:
        """Whether the status is 2xx."""
        return 200 <= self.status_code < 300


# ---------------------------------------------------------------------------
# MethodParameter
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MethodParameter:
    """Declared metadata of one service method parameter.

    Attributes:
        method_name: Name of the declaring method.
        index: Zero-based position, ``self`` excluded.
        name: Parameter name.
        annotation: Declared type with ``Annotated`` unwrapped, ``Any``
            when the parameter is not annotated.
        metadata: The extra ``Annotated[...]`` arguments, in order.
        default: The declared default, or ``inspect.Parameter.empty``.
        kind: The ``inspect.Parameter`` kind.

    """

    method_name: str
    index: int
    name: str
    annotation: Any = Any
    metadata: tuple[object, ...] = ()
    default: Any = inspect.Parameter.empty
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def has_default(self) -> bool:
        """Whether the parameter declares a default."""
        return self.default is not inspect.Parameter.empty

    @property
    def is_optional(self) -> bool:
        """Whether the declared type is ``T | None``."""
        return _is_optional_type(self.annotation)[1]

    def find_metadata(self, kind: type[M]) -> M | None:
        """Return the first ``Annotated`` metadata object of type *kind*, or ``None``."""
        for item in self.metadata:
            if isinstance(item, kind):
                return item
        return None

    def has_metadata(self, kind: type) -> bool:
        """Whether any ``Annotated`` metadata object is of type *kind*."""
        return self.find_metadata(kind) is not None


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------


class HttpServiceArgumentResolver(Protocol):
    """Translates one argument value into mutations of the request.

    Called for every resolver and every parameter, in configured resolver
    order.  A resolver that is not responsible for *parameter* must leave
    *request* untouched.
    """

    def resolve(self, argument: object, parameter: MethodParameter, request: HttpRequestSpec) -> None:
        """Apply *argument* to *request* when this resolver handles *parameter*."""
        ...


class HttpExchangeAdapter(Protocol):
    """Transport that performs requests and returns asynchronous results.

    Single-value operations return an awaitable; ``request_to_body_flux``
    returns an async iterator.  Implementations typically declare the
    single-value operations ``async def`` and ``request_to_body_flux`` as an
    async generator.
    """

    def request_to_void(self, request: HttpRequestSpec) -> Awaitable[None]:
        """Perform the request and discard the response."""
        ...

    def request_to_headers(self, request: HttpRequestSpec) -> Awaitable[httpx.Headers]:
        """Perform the request and return the response headers."""
        ...

    def request_to_bodiless_entity(self, request: HttpRequestSpec) -> Awaitable[ResponseEntity[None]]:
        """Perform the request and return status and headers without a body."""
        ...

    def request_to_entity(self, request: HttpRequestSpec, body_type: Any) -> Awaitable[ResponseEntity[Any]]:
        """Perform the request and return the full response with a body decoded as *body_type*."""
        ...

    def request_to_body(self, request: HttpRequestSpec, body_type: Any) -> Awaitable[Any]:
        """Perform the request and return the body decoded as *body_type*."""
        ...

    def request_to_body_flux(self, request: HttpRequestSpec, body_type: Any) -> AsyncIterator[Any]:
        """Perform the request and stream the body as elements of *body_type*."""
        ...

    def request_to_entity_flux(
        self, request: HttpRequestSpec, body_type: Any
    ) -> Awaitable[ResponseEntity[AsyncIterator[Any]]]:
        """Perform the request and return the response with a streamed body of *body_type* elements."""
        ...


# ---------------------------------------------------------------------------
# Type-hint helpers
# ---------------------------------------------------------------------------


def _unwrap_annotated(hint: Any) -> Any:
    """Unwrap Annotated[T, ...] to T, or return hint unchanged."""
    if get_origin(hint) is Annotated:
        return get_args(hint)[0]
    return hint


def _is_optional_type(hint: Any) -> tuple[Any, bool]:
    """Check if a type is Optional (X | None) and extract the inner type.

    Returns:
        Tuple of (inner_type, is_nullable).  If nullable, inner_type is the
        non-None type.  If not nullable, inner_type is the original type.

    """
    origin = get_origin(hint)
    args = get_args(hint)
    if origin is UnionType or origin is Union:
        non_none_types = [t for t in args if t is not type(None)]
        if len(non_none_types) == 1 and len(args) == 2:
            return non_none_types[0], True
    return hint, False


def _is_void(hint: Any) -> bool:
    """Whether *hint* declares no value."""
    return hint is None or hint is type(None)


def _raw_class(hint: Any) -> Any:
    """Return the generic origin of *hint* (``list`` for ``list[int]``), or *hint* itself."""
    hint = _unwrap_annotated(hint)
    origin = get_origin(hint)
    return origin if origin is not None else hint


def _first_type_arg(hint: Any) -> Any:
    """Return the first type argument of *hint*, ``Any`` when unparameterised."""
    return _type_arg(hint, 0)


def _type_arg(hint: Any, index: int) -> Any:
    """Return type argument *index* of *hint*, ``Any`` when absent."""
    args = get_args(_unwrap_annotated(hint))
    return _unwrap_annotated(args[index]) if len(args) > index else Any
