"""Errors, loggers, and shared constants for the service invoker."""

from __future__ import annotations

import logging
from enum import Enum

# ---------------------------------------------------------------------------
# Loggers
# ---------------------------------------------------------------------------

compile_logger = logging.getLogger("http_interface.compile")
"""Per-method template and plan compilation."""

invoke_logger = logging.getLogger("http_interface.invoke")
"""Per-call dispatch and blocking waits."""

loop_logger = logging.getLogger("http_interface.loop")
"""Background event loop lifecycle."""

DEFAULT_BLOCK_TIMEOUT = 5.0
"""Seconds a synchronous call waits for its result by default."""


# ---------------------------------------------------------------------------
# ExchangeOperation enum
# ---------------------------------------------------------------------------


class ExchangeOperation(Enum):
    """Transport operation selected for a service method.

    Each value is the name of the ``HttpExchangeAdapter`` method invoked.
    """

    VOID = "request_to_void"
    HEADERS = "request_to_headers"
    BODILESS_ENTITY = "request_to_bodiless_entity"
    ENTITY = "request_to_entity"
    BODY = "request_to_body"
    BODY_FLUX = "request_to_body_flux"
    ENTITY_FLUX = "request_to_entity_flux"

    @property
    def takes_body_type(self) -> bool:
        """Whether the transport call receives a target body type."""
        return self in _BODY_TYPED_OPERATIONS


_BODY_TYPED_OPERATIONS = frozenset(
    {ExchangeOperation.ENTITY, ExchangeOperation.BODY, ExchangeOperation.BODY_FLUX, ExchangeOperation.ENTITY_FLUX}
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class HttpServiceDefinitionError(Exception):
    """Raised at client creation when a service interface cannot be compiled.

    Covers missing or malformed exchange declarations and return or
    parameter declarations that no transport operation can satisfy.
    """


class ExchangeTimeoutError(TimeoutError):
    """Raised when a blocking call does not complete within its timeout.

    Attributes:
        method: Qualified name of the service method, e.g. ``"UserService.get_user"``.
        timeout: The timeout that elapsed, in seconds.

    """

    def __init__(self, method: str, timeout: float) -> None:
        """Initialize with the method name and elapsed timeout."""
        self.method = method
        self.timeout = timeout
        super().__init__(f"{method}() did not complete within {timeout:g}s")
