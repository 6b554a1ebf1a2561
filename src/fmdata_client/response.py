"""Parsing of raw Data API responses into header/body envelopes."""

from __future__ import annotations

import json
from typing import Any

from .errors import HeaderNotFoundError, MalformedStatusError

STATUS_HEADER = "Status"


def parse_headers(raw_headers: str) -> dict[str, str]:
    """Turn a raw HTTP header block into a mapping.

    The leading status line has no ``key: value`` shape; it is stored under the
    synthetic ``Status`` key. Keyless lines after the first real header are dropped.
    """

    lines: list[list[str]] = []
    for line in raw_headers.split("\n"):
        parts = [part.strip() for part in line.split(":", 1)]
        if parts[0] == "":
            continue
        lines.append(parts)

    headers: dict[str, str] = {}
    index = 0
    while index < len(lines) and len(lines[index]) == 1:
        headers[STATUS_HEADER] = lines[index][0]
        index += 1

    for parts in lines[index:]:
        if len(parts) < 2:
            continue
        headers[parts[0]] = parts[1]

    return headers


def parse_body(raw_body: str) -> tuple[Any, bool]:
    """Decode ``raw_body`` as JSON when possible.

    Returns the value and whether it counts as JSON. A body decoding to ``null``
    is kept as raw text.
    """

    try:
        decoded = json.loads(raw_body)
    except ValueError:
        return raw_body, False
    if decoded is None:
        return raw_body, False
    return decoded, True


class ResponseEnvelope:
    """Parsed headers and body of one Data API response."""

    def __init__(self, headers: dict[str, str], body: Any, is_json: bool = False) -> None:
        self._headers = dict(headers)
        self._body = body
        self._is_json = is_json

    @classmethod
    def parse(cls, raw_headers: str, raw_body: str) -> ResponseEnvelope:
        body, is_json = parse_body(raw_body)
        return cls(parse_headers(raw_headers), body, is_json)

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def is_json(self) -> bool:
        return self._is_json

    @property
    def status_code(self) -> int:
        return self.get_http_code()

    def get_header(self, name: str) -> str:
        """Look up ``name`` as given, then lower-cased."""
        if name in self._headers:
            return self._headers[name]
        lowered = name.lower()
        if lowered in self._headers:
            return self._headers[lowered]
        raise HeaderNotFoundError(f"Header not found: {name}")

    def get_http_code(self) -> int:
        status = self.get_header(STATUS_HEADER)
        tokens = status.split()
        try:
            return int(tokens[1])
        except (IndexError, ValueError) as exc:
            raise MalformedStatusError(f"Malformed status line: {status!r}") from exc

    def get_body(self, raw: bool = False) -> Any:
        if not raw:
            return self._body
        if self._is_json:
            return json.dumps(self._body, separators=(",", ":"), ensure_ascii=False)
        return self._body

    def structured_message(self) -> dict[str, Any] | None:
        """Return ``messages[0]`` when the body carries a service message, else None."""
        if not isinstance(self._body, dict):
            return None
        messages = self._body.get("messages")
        if not isinstance(messages, list) or not messages:
            return None
        first = messages[0]
        if not isinstance(first, dict) or first.get("message") is None:
            return None
        return first

    def __repr__(self) -> str:
        status = self._headers.get(STATUS_HEADER, "?")
        kind = "json" if self._is_json else "text"
        return f"ResponseEnvelope(status={status!r}, body={kind})"
