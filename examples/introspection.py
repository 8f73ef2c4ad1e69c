"""Inspecting a service interface without a transport.

``describe_exchanges`` compiles every method exactly as creating a client
would and reports the request template and the transport operation each
return type selects.  ``describe_service`` renders the same as text; the
``http-interface describe`` command prints it from the shell.

Run::

    python examples/introspection.py
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable
from typing import Protocol

from http_interface import (
    ResponseEntity,
    describe_exchanges,
    describe_service,
    get_exchange,
    http_exchange,
    put_exchange,
)

# ---------------------------------------------------------------------------
# 1. An interface mixing blocking, async and streaming methods
# ---------------------------------------------------------------------------


@http_exchange("/reports", accept="application/json")
class ReportService(Protocol):
    """Report storage."""

    @get_exchange("/{name}")
    def fetch(self, name: str) -> dict[str, int] | None:
        """Fetch a report by name."""
        ...

    @get_exchange("/{name}")
    def fetch_async(self, name: str) -> Awaitable[dict[str, int]]:
        """Fetch a report without blocking."""
        ...

    @put_exchange("/{name}", content_type="application/json")
    def store(self, name: str, report: dict[str, int]) -> ResponseEntity[None]:
        """Store a report."""
        ...

    @get_exchange("/{name}/rows", accept="application/x-ndjson")
    def rows(self, name: str) -> ResponseEntity[AsyncIterator[dict[str, int]]]:
        """Stream a report's rows with the response status."""
        ...


# ---------------------------------------------------------------------------
# 2. Describe it
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the example."""
    print(describe_service(ReportService))

    for desc in describe_exchanges(ReportService):
        mode = "blocking" if desc.blocking else f"async via {desc.return_adapter}"
        print(f"{desc.name:12} {desc.operation.value:28} {mode}")


if __name__ == "__main__":
    main()
