"""FileMaker Data API operations on top of `RequestTransport`."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from loguru import logger

from .errors import INVALID_TOKEN, NO_RECORDS_MATCH, ServiceError
from .models.options import (
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
from .response import ResponseEnvelope
from .session import Session
from .transport import FileUpload, RequestOptions, RequestTransport

if TYPE_CHECKING:
    from .config import Settings

ACCESS_TOKEN_HEADER = "X-FM-Data-Access-Token"


class DataApiClient:
    """Named Data API operations for one session.

    Each operation builds a path and a payload, hands them to the transport, and
    extracts the relevant field from the decoded ``response`` body.
    """

    def __init__(self, transport: RequestTransport, session: Session) -> None:
        self._transport = transport
        self._session = session

    @classmethod
    def from_settings(cls, settings: Settings) -> DataApiClient:
        transport = RequestTransport(
            settings.base_url,
            ssl_verify=settings.ssl_verify,
            timeout=settings.timeout,
        )
        session = Session(
            database=settings.database,
            version=settings.version,
            username=settings.username,
            password=settings.password,
        )
        return cls(transport, session)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def api_token(self) -> str | None:
        return self._session.token

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> DataApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- session lifecycle -------------------------------------------------

    def login(self, username: str | None = None, password: str | None = None) -> str:
        """Open a session with Basic credentials and store the issued token."""
        if username is not None:
            self._session.username = username
            self._session.password = password

        response = self._transport.execute(
            "POST",
            self._session.database_path("sessions"),
            RequestOptions(headers=self._session.basic_headers(), json_fields={}),
        )
        self._session.token = response.get_header(ACCESS_TOKEN_HEADER)
        logger.info(f"Logged in to {self._session.database} as {self._session.username}")
        return self._session.token

    def login_oauth(self, request_id: str, identifier: str) -> str:
        response = self._transport.execute(
            "POST",
            self._session.database_path("sessions"),
            RequestOptions(
                headers={
                    "X-FM-Data-Login-Type": "oauth",
                    "X-FM-Data-OAuth-Request-Id": request_id,
                    "X-FM-Data-OAuth-Identifier": identifier,
                },
                json_fields={},
            ),
        )
        self._session.token = response.get_header(ACCESS_TOKEN_HEADER)
        logger.info(f"Logged in to {self._session.database} via OAuth")
        return self._session.token

    def logout(self) -> None:
        """Close the server session, then forget the token.

        If the request fails the error propagates and the token is kept.
        """
        if not self._session.token:
            self._session.reset()
            return

        self._transport.execute(
            "DELETE", self._session.database_path(f"sessions/{self._session.token}")
        )
        self._session.reset()
        logger.info(f"Logged out of {self._session.database}")

    def validate_session(self) -> bool:
        try:
            self._transport.execute(
                "GET",
                self._session.version_path("validateSession"),
                RequestOptions(headers=self._session.bearer_headers()),
            )
        except ServiceError as exc:
            if exc.code == INVALID_TOKEN:
                return False
            raise
        return True

    # -- records -----------------------------------------------------------

    def create_record(
        self,
        layout: str,
        data: Mapping[str, Any],
        scripts: Sequence[ScriptOption] = (),
        portal_data: Mapping[str, Any] | None = None,
    ) -> str:
        json_fields: dict[str, Any] = {"fieldData": json.dumps(stringify_field_data(data))}
        if portal_data:
            json_fields["portalData"] = json.dumps(portal_data)
        json_fields.update(script_params(scripts))

        body = self._request(
            "POST", f"layouts/{layout}/records", json_fields=json_fields
        ).get_body()
        return str(body["response"]["recordId"])

    def duplicate_record(
        self, layout: str, record_id: str | int, scripts: Sequence[ScriptOption] = ()
    ) -> str:
        body = self._request(
            "POST", f"layouts/{layout}/records/{record_id}", json_fields=script_params(scripts)
        ).get_body()
        return str(body["response"]["recordId"])

    def edit_record(
        self,
        layout: str,
        record_id: str | int,
        data: Mapping[str, Any],
        mod_id: str | int | None = None,
        portal_data: Mapping[str, Any] | None = None,
        scripts: Sequence[ScriptOption] = (),
    ) -> str:
        json_fields: dict[str, Any] = {"fieldData": json.dumps(stringify_field_data(data))}
        if mod_id is not None:
            json_fields["modId"] = str(mod_id)
        if portal_data:
            json_fields["portalData"] = json.dumps(portal_data)
        json_fields.update(script_params(scripts))

        body = self._request(
            "PATCH", f"layouts/{layout}/records/{record_id}", json_fields=json_fields
        ).get_body()
        return str(body["response"]["modId"])

    def delete_record(
        self, layout: str, record_id: str | int, scripts: Sequence[ScriptOption] = ()
    ) -> None:
        self._request(
            "DELETE", f"layouts/{layout}/records/{record_id}", json_fields=script_params(scripts)
        )

    def get_record(
        self,
        layout: str,
        record_id: str | int,
        portals: Sequence[PortalOption] = (),
        scripts: Sequence[ScriptOption] = (),
        response_layout: str | None = None,
    ) -> dict[str, Any]:
        query_params: dict[str, Any] = {
            **portal_params(portals, prefix="_"),
            **script_params(scripts),
        }
        if response_layout:
            query_params["layout.response"] = response_layout

        body = self._request(
            "GET", f"layouts/{layout}/records/{record_id}", query_params=query_params
        ).get_body()
        return body["response"]["data"][0]

    def get_records(
        self,
        layout: str,
        sort: Sequence[SortField] | str | None = None,
        offset: int | None = None,
        limit: int | None = None,
        portals: Sequence[PortalOption] = (),
        scripts: Sequence[ScriptOption] = (),
        response_layout: str | None = None,
    ) -> list[dict[str, Any]]:
        query_params: dict[str, Any] = {}
        if offset is not None:
            query_params["_offset"] = int(offset)
        if limit is not None:
            query_params["_limit"] = int(limit)
        if sort is not None:
            query_params["_sort"] = sort_param(sort)
        query_params.update(script_params(scripts))
        query_params.update(portal_params(portals, prefix="_"))
        if response_layout:
            query_params["layout.response"] = response_layout

        body = self._request(
            "GET", f"layouts/{layout}/records", query_params=query_params
        ).get_body()
        return list(body["response"]["data"])

    def find_records(
        self,
        layout: str,
        query: FindCriteria | Mapping[str, Any] | Sequence[FindCriteria | Mapping[str, Any]],
        sort: Sequence[SortField] | str | None = None,
        offset: int | None = None,
        limit: int | None = None,
        portals: Sequence[PortalOption] = (),
        scripts: Sequence[ScriptOption] = (),
        response_layout: str | None = None,
    ) -> list[dict[str, Any]]:
        """Run a find; a "no records match" answer yields an empty list."""

        if isinstance(query, (FindCriteria, Mapping)):
            query = [query]
        criteria = [
            item if isinstance(item, FindCriteria) else FindCriteria(fields=dict(item))
            for item in query
        ]
        json_fields: dict[str, Any] = {
            "query": json.dumps([item.to_payload() for item in criteria])
        }
        if offset is not None:
            json_fields["offset"] = int(offset)
        if limit is not None:
            json_fields["limit"] = int(limit)
        if sort is not None:
            json_fields["sort"] = sort_param(sort)
        json_fields.update(script_params(scripts))
        json_fields.update(portal_params(portals))
        if response_layout:
            json_fields["layout.response"] = response_layout

        try:
            response = self._request("POST", f"layouts/{layout}/_find", json_fields=json_fields)
        except ServiceError as exc:
            if exc.code == NO_RECORDS_MATCH:
                logger.debug(f"No records match find on {layout}")
                return []
            raise

        return list(response.get_body()["response"]["data"])

    # -- scripts, globals, containers --------------------------------------

    def execute_script(
        self, layout: str, script_name: str, script_param: str | None = None
    ) -> dict[str, Any]:
        query_params = {"script.param": script_param} if script_param is not None else {}
        body = self._request(
            "GET", f"layouts/{layout}/script/{script_name}", query_params=query_params
        ).get_body()
        return body["response"]

    def set_global_fields(self, global_fields: Mapping[str, Any]) -> Any:
        return self._request(
            "PATCH",
            "globals",
            json_fields={"globalFields": json.dumps(stringify_field_data(global_fields))},
        ).get_body()

    def upload_to_container(self, upload: ContainerUpload) -> bool:
        headers = {**self._session.bearer_headers(), "Content-Type": "multipart/form-data"}
        self._transport.execute(
            "POST",
            self._session.database_path(upload.path()),
            RequestOptions(
                headers=headers,
                file=FileUpload(
                    path=upload.file_path,
                    filename=upload.target_filename,
                    mime_hint=upload.mime_hint,
                ),
            ),
        )
        logger.info(f"Uploaded {upload.target_filename} to {upload.field_name}")
        return True

    # -- metadata ------------------------------------------------------------

    def get_product_info(self) -> dict[str, Any]:
        body = self._transport.execute(
            "GET", self._session.version_path("productInfo")
        ).get_body()
        return body["response"]["productInfo"]

    def get_database_names(self) -> list[dict[str, Any]]:
        headers = self._session.basic_headers() if self._session.username else {}
        body = self._transport.execute(
            "GET", self._session.version_path("databases"), RequestOptions(headers=headers)
        ).get_body()
        return list(body["response"]["databases"])

    def get_layout_names(self) -> list[dict[str, Any]]:
        return list(self._request("GET", "layouts").get_body()["response"]["layouts"])

    def get_script_names(self) -> list[dict[str, Any]]:
        return list(self._request("GET", "scripts").get_body()["response"]["scripts"])

    def get_layout_metadata(self, layout: str, record_id: str | int | None = None) -> dict[str, Any]:
        query_params = {"recordId": record_id} if record_id is not None else {}
        body = self._request("GET", f"layouts/{layout}", query_params=query_params).get_body()
        return body["response"]

    def _request(
        self,
        method: str,
        suffix: str,
        *,
        json_fields: dict[str, Any] | None = None,
        query_params: dict[str, Any] | None = None,
    ) -> ResponseEnvelope:
        """Execute an authenticated request against a database-scoped path."""
        return self._transport.execute(
            method,
            self._session.database_path(suffix),
            RequestOptions(
                headers=self._session.bearer_headers(),
                query_params=query_params or {},
                json_fields=json_fields,
            ),
        )
