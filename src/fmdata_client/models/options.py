"""Option models for Data API record operations.

These Pydantic models replace open-ended option dictionaries. Each one renders
itself into the query-string or JSON keys the Data API recognises, so a typo in
an option name fails at construction time instead of being silently ignored.
"""

import json
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

ScriptKind = Literal["prerequest", "presort", "after"]


class ScriptOption(BaseModel):
    """A script to run around a record request.

    Attributes:
        kind: When the script runs: before the request, before sorting, or after
            the request ("after" maps to the bare ``script`` key)
        name: Script name as defined in the file
        param: Optional script parameter
    """

    kind: ScriptKind = "after"
    name: str = Field(..., min_length=1)
    param: str | None = None

    def to_params(self) -> dict[str, str]:
        prefix = "script" if self.kind == "after" else f"script.{self.kind}"
        params = {prefix: self.name}
        if self.param is not None:
            params[f"{prefix}.param"] = self.param
        return params


class PortalOption(BaseModel):
    """A portal to include in record results, with optional paging."""

    name: str = Field(..., min_length=1)
    offset: int | None = Field(None, ge=1)
    limit: int | None = Field(None, ge=0)


class SortField(BaseModel):
    """One sort rule; ``sort_order`` is "ascend", "descend" or a value list name."""

    field_name: str = Field(..., min_length=1)
    sort_order: str = "ascend"

    def to_payload(self) -> dict[str, str]:
        return {"fieldName": self.field_name, "sortOrder": self.sort_order}


class FindCriteria(BaseModel):
    """One find request: field criteria, optionally marked as an omit request."""

    fields: dict[str, str] = Field(..., min_length=1)
    omit: bool = False

    @field_validator("fields", mode="before")
    @classmethod
    def stringify_criteria(cls, v: Mapping[str, Any]) -> dict[str, str]:
        return stringify_field_data(v)

    def to_payload(self) -> dict[str, str]:
        payload = dict(self.fields)
        if self.omit:
            payload["omit"] = "true"
        return payload


class ContainerUpload(BaseModel):
    """File upload into a container field.

    Attributes:
        layout: Layout holding the container field
        record_id: Target record
        field_name: Container field name
        file_path: Local file to upload
        repetition: Optional field repetition; omitted from the path when None
        filename: Name the service stores; defaults to the local file name
        mime_hint: Content type override; guessed from the filename when None
    """

    layout: str = Field(..., min_length=1)
    record_id: str | int
    field_name: str = Field(..., min_length=1)
    file_path: Path
    repetition: int | None = Field(None, ge=1)
    filename: str | None = None
    mime_hint: str | None = None

    @field_validator("file_path")
    @classmethod
    def validate_file_exists(cls, v: Path) -> Path:
        """Ensure file exists and is a regular file."""
        if not v.exists():
            raise FileNotFoundError(f"File not found: {v}")
        if not v.is_file():
            raise ValueError(f"Path is not a file: {v}")
        return v

    @property
    def target_filename(self) -> str:
        return self.filename or self.file_path.name

    def path(self) -> str:
        path = f"layouts/{self.layout}/records/{self.record_id}/containers/{self.field_name}"
        if self.repetition is not None:
            path += f"/{self.repetition}"
        return path


def stringify_value(value: Any) -> str:
    """Coerce a scalar field value to the string form sent to the service."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def stringify_field_data(data: Mapping[str, Any]) -> dict[str, str]:
    return {str(key): stringify_value(value) for key, value in data.items()}


def script_params(scripts: Iterable[ScriptOption]) -> dict[str, str]:
    params: dict[str, str] = {}
    for script in scripts:
        params.update(script.to_params())
    return params


def portal_params(portals: Sequence[PortalOption], prefix: str = "") -> dict[str, Any]:
    """Render portal options; ``prefix`` is "_" for query strings and "" for JSON bodies."""
    if not portals:
        return {}

    params: dict[str, Any] = {}
    for portal in portals:
        if portal.offset is not None:
            params[f"{prefix}offset.{portal.name}"] = portal.offset
        if portal.limit is not None:
            params[f"{prefix}limit.{portal.name}"] = portal.limit
    params["portal"] = json.dumps([portal.name for portal in portals])
    return params


def sort_param(sort: Sequence[SortField] | str) -> str:
    if isinstance(sort, str):
        return sort
    return json.dumps([rule.to_payload() for rule in sort])
