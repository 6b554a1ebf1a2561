"""Tests for record operation option models."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from fmdata_client.models.options import (
    ContainerUpload,
    FindCriteria,
    PortalOption,
    ScriptOption,
    SortField,
    portal_params,
    script_params,
    sort_param,
    stringify_field_data,
)


class TestScriptOption:
    def test_after_script_uses_bare_key(self) -> None:
        assert ScriptOption(name="Audit", param="x").to_params() == {
            "script": "Audit",
            "script.param": "x",
        }

    def test_prerequest_and_presort_are_suffixed(self) -> None:
        params = script_params(
            [
                ScriptOption(kind="prerequest", name="Before"),
                ScriptOption(kind="presort", name="Sorting", param="1"),
            ]
        )

        assert params == {
            "script.prerequest": "Before",
            "script.presort": "Sorting",
            "script.presort.param": "1",
        }

    def test_unknown_kind_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ScriptOption(kind="postrequest", name="Nope")  # type: ignore[arg-type]


class TestPortalParams:
    def test_empty_portals_render_nothing(self) -> None:
        assert portal_params([]) == {}

    def test_query_string_prefix(self) -> None:
        params = portal_params(
            [PortalOption(name="Lines", offset=2, limit=10), PortalOption(name="Notes")],
            prefix="_",
        )

        assert params == {
            "_offset.Lines": 2,
            "_limit.Lines": 10,
            "portal": '["Lines", "Notes"]',
        }

    def test_json_body_keys(self) -> None:
        params = portal_params([PortalOption(name="Lines", limit=5)])

        assert params == {"limit.Lines": 5, "portal": '["Lines"]'}

    def test_offset_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            PortalOption(name="Lines", offset=0)


class TestSortAndCriteria:
    def test_sort_rules_render_service_names(self) -> None:
        rendered = sort_param([SortField(field_name="Name"), SortField(field_name="Qty", sort_order="descend")])

        assert json.loads(rendered) == [
            {"fieldName": "Name", "sortOrder": "ascend"},
            {"fieldName": "Qty", "sortOrder": "descend"},
        ]

    def test_raw_sort_string_passes_through(self) -> None:
        assert sort_param('[{"fieldName":"Name"}]') == '[{"fieldName":"Name"}]'

    def test_find_criteria_stringifies_and_marks_omit(self) -> None:
        criteria = FindCriteria(fields={"Qty": 3, "Active": True}, omit=True)

        assert criteria.to_payload() == {"Qty": "3", "Active": "1", "omit": "true"}

    def test_find_criteria_requires_fields(self) -> None:
        with pytest.raises(ValidationError):
            FindCriteria(fields={})


def test_stringify_field_data_is_lossy_by_design() -> None:
    """Given mixed scalar types, when preparing field data, then every value is a string."""
    assert stringify_field_data({"n": 5, "f": 1.5, "t": True, "b": False, "none": None, "s": "x"}) == {
        "n": "5",
        "f": "1.5",
        "t": "1",
        "b": "0",
        "none": "",
        "s": "x",
    }


class TestContainerUpload:
    def test_path_with_and_without_repetition(self, tmp_path: Path) -> None:
        upload_file = tmp_path / "scan.pdf"
        upload_file.write_bytes(b"%PDF")

        upload = ContainerUpload(
            layout="Items", record_id=7, field_name="Scan", file_path=upload_file
        )
        repeated = upload.model_copy(update={"repetition": 2})

        assert upload.path() == "layouts/Items/records/7/containers/Scan"
        assert repeated.path() == "layouts/Items/records/7/containers/Scan/2"
        assert upload.target_filename == "scan.pdf"

    def test_missing_file_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            ContainerUpload(
                layout="Items",
                record_id=7,
                field_name="Scan",
                file_path=tmp_path / "missing.pdf",
            )

    def test_directory_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError, match="not a file"):
            ContainerUpload(layout="Items", record_id=7, field_name="Scan", file_path=tmp_path)
