"""Wire-level request construction and execution for the Data API."""

from __future__ import annotations

import json
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType
from typing import Any
from urllib.parse import quote, urlencode

import httpx
from loguru import logger

from .errors import ServiceError, TransportError
from .response import STATUS_HEADER, ResponseEnvelope

METHODS = frozenset({"GET", "POST", "PATCH", "DELETE"})
DEFAULT_CONTENT_TYPE = "application/json"
DEFAULT_TIMEOUT_SECONDS = 30.0
UPLOAD_FIELD = "upload"


@dataclass
class FileUpload:
    """A local file sent as the multipart ``upload`` field."""

    path: Path
    filename: str
    mime_hint: str | None = None

    def content_type(self) -> str:
        if self.mime_hint:
            return self.mime_hint
        guessed, _ = mimetypes.guess_type(self.filename)
        return guessed or "application/octet-stream"


@dataclass
class RequestOptions:
    """Everything besides method and path that shapes one request.

    At most one body mode is active: ``json_fields`` or ``file``.
    """

    headers: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, Any] = field(default_factory=dict)
    json_fields: dict[str, Any] | None = None
    file: FileUpload | None = None

    def __post_init__(self) -> None:
        if self.json_fields is not None and self.file is not None:
            raise ValueError("json_fields and file are mutually exclusive")


def escape_path(path: str) -> str:
    """Percent-escape ``path`` completely, then restore literal ``/`` separators."""
    return quote(path, safe="").replace("%2F", "/")


def encode_query(params: dict[str, Any]) -> str:
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = int(value)
        pairs.append((key, str(value)))
    return urlencode(pairs)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def is_json_text(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        json.loads(value, parse_constant=_reject_constant)
    except ValueError:
        return False
    return True


def encode_json_fields(fields: dict[str, Any]) -> str:
    """Assemble a JSON object from ``fields``.

    String values that already hold valid JSON are embedded verbatim so nested
    payloads serialised upstream (``fieldData``, ``query``, ``portalData``) are not
    encoded twice. Everything else is JSON-encoded.
    """

    members = []
    for key, value in fields.items():
        rendered = value if is_json_text(value) else json.dumps(value)
        members.append(f"{json.dumps(str(key))}:{rendered}")
    return "{" + ",".join(members) + "}"


def validate_response(response: ResponseEnvelope) -> None:
    """Raise `ServiceError` when the response status marks a failure."""

    status = response.get_http_code()
    if not (400 <= status < 600 or status == 100):
        return

    first = response.structured_message()
    if first is not None:
        message = first["message"]
        if isinstance(message, list):
            message = " - ".join(str(part) for part in message)
        code = _service_code(first.get("code"), status)
        raise ServiceError(str(message), code, status)

    # 100 Continue without a service message is informational.
    if status == 100:
        return

    message = response.get_body(raw=True)
    if not message:
        message = response.get_header(STATUS_HEADER)
    raise ServiceError(str(message), status, status)


def _service_code(raw_code: Any, fallback: int) -> int:
    if raw_code is None:
        return fallback
    try:
        return int(raw_code)
    except (TypeError, ValueError):
        return fallback


def _has_header(headers: dict[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key in headers)


def _redacted(headers: dict[str, str]) -> dict[str, str]:
    return {
        key: ("[REDACTED]" if key.lower() == "authorization" else value)
        for key, value in headers.items()
    }


def _transport_error_code(exc: BaseException) -> int:
    cause = exc.__cause__ or exc.__context__
    while cause is not None:
        if isinstance(cause, OSError) and cause.errno:
            return int(cause.errno)
        cause = cause.__cause__ or cause.__context__
    return 0


def render_raw_headers(response: httpx.Response) -> str:
    """Rebuild the raw header block (status line first) of the final response."""
    status_line = f"{response.http_version} {response.status_code} {response.reason_phrase}"
    lines = [status_line.rstrip()]
    for key, value in response.headers.raw:
        lines.append(f"{key.decode('latin-1')}: {value.decode('latin-1')}")
    return "\r\n".join(lines) + "\r\n\r\n"


class RequestTransport:
    """Render one logical request to the wire, execute it and validate the result.

    TLS verification can be switched off entirely for self-signed deployments.
    Redirects are followed. There is no retry; each call is one blocking request.
    """

    def __init__(
        self,
        base_url: str,
        *,
        ssl_verify: bool = True,
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._ssl_verify = ssl_verify
        self._owns_client = client is None
        self._client = client or httpx.Client(
            verify=ssl_verify,
            follow_redirects=True,
            timeout=timeout,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def ssl_verify(self) -> bool:
        return self._ssl_verify

    def build_url(self, path: str, query_params: dict[str, Any] | None = None) -> str:
        url = self._base_url + escape_path(path)
        if query_params:
            query = encode_query(query_params)
            if query:
                url = f"{url}?{query}"
        return url

    def build_request(
        self, method: str, path: str, options: RequestOptions | None = None
    ) -> httpx.Request:
        """Render ``method`` + ``path`` + ``options`` into a wire request without sending it."""

        options = options or RequestOptions()
        method = method.upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        headers = dict(options.headers)
        content: bytes | None = None
        files: dict[str, tuple[str, bytes, str]] | None = None
        content_length: int | None = 0

        if options.file is not None and method == "POST":
            upload = options.file
            files = {UPLOAD_FIELD: (upload.filename, upload.path.read_bytes(), upload.content_type())}
            content_length = None
            # A bare multipart type would hide the boundary httpx generates.
            for key in [k for k in headers if k.lower() == "content-type"]:
                if "boundary=" not in headers[key]:
                    del headers[key]
        elif options.json_fields and method != "GET":
            content = encode_json_fields(options.json_fields).encode("utf-8")
            content_length = len(content)

        if files is None and not _has_header(headers, "Content-Type"):
            headers["Content-Type"] = DEFAULT_CONTENT_TYPE
        if content_length is not None and not _has_header(headers, "Content-Length"):
            headers["Content-Length"] = str(content_length)

        return self._client.build_request(
            method,
            self.build_url(path, options.query_params),
            headers=headers,
            content=content,
            files=files,
        )

    def execute(
        self, method: str, path: str, options: RequestOptions | None = None
    ) -> ResponseEnvelope:
        request = self.build_request(method, path, options)
        logger.debug(
            f"{request.method} {request.url} headers={_redacted(dict(request.headers))}"
        )

        try:
            raw = self._client.send(request, follow_redirects=True)
        except httpx.RequestError as exc:
            message = str(exc) or exc.__class__.__name__
            logger.warning(f"Transport failure for {request.method} {request.url}: {message}")
            raise TransportError(message, _transport_error_code(exc)) from exc

        response = ResponseEnvelope.parse(render_raw_headers(raw), raw.text)
        logger.debug(f"API response status: {raw.status_code} ({response!r})")

        try:
            validate_response(response)
        except ServiceError as exc:
            logger.warning(
                f"{request.method} {request.url.path} failed: {exc.code} {exc.message}"
            )
            raise
        return response

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> RequestTransport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
