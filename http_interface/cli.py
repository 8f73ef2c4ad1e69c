"""Command-line interface for HTTP service interfaces.

Provides a ``describe`` command that compiles an interface and shows, per
method, the request template and the transport operation its return type
selects.  Compiling is a full validation: a malformed interface exits
with status 1 and the error on stderr.

Usage::

    http-interface describe myapp.clients:UserService
    http-interface --verbose describe myapp.clients:UserService --format json

"""

from __future__ import annotations

import importlib
import json
import logging
import os
import sys
from enum import StrEnum
from typing import Annotated

import typer

from http_interface.introspect import describe_exchanges, describe_service
from http_interface.invoker import HttpServiceDefinitionError

# ---------------------------------------------------------------------------
# Output format enum
# ---------------------------------------------------------------------------


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    text = "text"
    json = "json"


app = typer.Typer(
    name="http-interface",
    help="Inspect declarative HTTP service interfaces.",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def _main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show compile debug logs on stderr")] = False,
) -> None:
    """Configure logging."""
    if verbose:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger = logging.getLogger("http_interface")
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_target(target: str) -> type:
    """Import ``module:Class`` (``Class`` may be dotted) and return the class.

    Raises:
        ValueError: If *target* is malformed or does not name a class.
        ImportError: If the module cannot be imported.
        AttributeError: If the class is not found in the module.

    """
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"Expected MODULE:CLASS, got {target!r}")
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)
    obj: object = importlib.import_module(module_name)
    for part in attr_path.split("."):
        obj = getattr(obj, part)
    if not isinstance(obj, type):
        raise ValueError(f"{target!r} is not a class")
    return obj


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def describe(
    target: Annotated[str, typer.Argument(help="Service interface as MODULE:CLASS")],
    fmt: Annotated[OutputFormat, typer.Option("--format", "-f", help="Output format")] = OutputFormat.text,
) -> None:
    """Compile a service interface and show its methods."""
    try:
        service_type = _load_target(target)
        if fmt == OutputFormat.json:
            data = {
                "service": service_type.__name__,
                "methods": [d.to_dict() for d in describe_exchanges(service_type)],
            }
            output = json.dumps(data, indent=2)
        else:
            output = describe_service(service_type)
    except HttpServiceDefinitionError as e:
        typer.echo(f"Error: invalid service interface: {e}", err=True)
        raise typer.Exit(1) from None
    except (ImportError, AttributeError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    typer.echo(output)
