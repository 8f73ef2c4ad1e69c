# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Media type values for ``Content-Type`` and ``Accept`` declarations."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

__all__ = [
    "ALL",
    "APPLICATION_JSON",
    "APPLICATION_OCTET_STREAM",
    "TEXT_EVENT_STREAM",
    "TEXT_PLAIN",
    "MediaType",
]

# RFC 9110 token and quoted-string
_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_QUOTED = r'"(?:[^"\\]|\\.)*"'

_MEDIA_TYPE_RE = re.compile(
    rf"\s*(?P<type>{_TOKEN})/(?P<subtype>{_TOKEN})\s*(?P<params>(?:;\s*{_TOKEN}\s*=\s*(?:{_TOKEN}|{_QUOTED})\s*)*)"
)
_PARAM_RE = re.compile(rf";\s*(?P<name>{_TOKEN})\s*=\s*(?P<value>{_TOKEN}|{_QUOTED})\s*")
_ESCAPE_RE = re.compile(r"\\(.)")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return _ESCAPE_RE.sub(r"\1", value[1:-1])
    return value


def _quote_if_needed(value: str) -> str:
    if re.fullmatch(_TOKEN, value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(frozen=True)
class MediaType:
    """A parsed media type such as ``application/json; charset=utf-8``.

    Type, subtype and parameter names are stored lower-cased; parameter
    values keep their case.

    Attributes:
        type: Primary type, e.g. ``"application"``.
        subtype: Subtype, e.g. ``"json"``.
        parameters: Ordered ``(name, value)`` pairs.

    """

    type: str
    subtype: str
    parameters: tuple[tuple[str, str], ...] = ()

    @property
    def params(self) -> Mapping[str, str]:
        """Parameters as a read-only mapping."""
        return MappingProxyType(dict(self.parameters))

    @property
    def essence(self) -> str:
        """``type/subtype`` without parameters."""
        return f"{self.type}/{self.subtype}"

    @property
    def is_wildcard(self) -> bool:
        """Whether the type or subtype is ``*``."""
        return self.type == "*" or self.subtype == "*"

    def __str__(self) -> str:
        """Render the canonical header form."""
        rendered = self.essence
        for name, value in self.parameters:
            rendered += f";{name}={_quote_if_needed(value)}"
        return rendered

    @classmethod
    def parse(cls, value: str) -> MediaType:
        """Parse a single media type.

        Args:
            value: A media type string.  A bare ``*`` is read as ``*/*``.

        Returns:
            The parsed media type.

        Raises:
            ValueError: If *value* is empty or not a valid media type.

        """
        text = value.strip()
        if not text:
            raise ValueError("Media type must not be empty")
        if text == "*":
            text = "*/*"
        match = _MEDIA_TYPE_RE.fullmatch(text)
        if match is None:
            raise ValueError(f"Invalid media type {value!r}")
        type_ = match.group("type").lower()
        subtype = match.group("subtype").lower()
        if type_ == "*" and subtype != "*":
            raise ValueError(f"Invalid media type {value!r}: wildcard type is legal only in '*/*'")
        parameters = tuple(
            (m.group("name").lower(), _unquote(m.group("value"))) for m in _PARAM_RE.finditer(match.group("params"))
        )
        return cls(type_, subtype, parameters)

    @classmethod
    def parse_list(cls, values: Iterable[str]) -> tuple[MediaType, ...]:
        """Parse each entry of *values* as one media type."""
        return tuple(cls.parse(v) for v in values)


ALL = MediaType("*", "*")
APPLICATION_JSON = MediaType("application", "json")
APPLICATION_OCTET_STREAM = MediaType("application", "octet-stream")
TEXT_EVENT_STREAM = MediaType("text", "event-stream")
TEXT_PLAIN = MediaType("text", "plain")
