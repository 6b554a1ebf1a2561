"""Session state for one Data API connection."""

from __future__ import annotations

import base64
from dataclasses import dataclass

from .errors import NotAuthenticatedError

DEFAULT_VERSION = "vLatest"


@dataclass
class Session:
    """Connection identity plus the access token issued at login.

    One session holds one token. Sharing a session between threads requires
    external locking since login and logout replace the token in place.
    """

    database: str
    version: str = DEFAULT_VERSION
    username: str | None = None
    password: str | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def version_path(self, suffix: str) -> str:
        return f"/{self.version}/{suffix}"

    def database_path(self, suffix: str) -> str:
        return f"/{self.version}/databases/{self.database}/{suffix}"

    def bearer_headers(self) -> dict[str, str]:
        if not self.token:
            raise NotAuthenticatedError("Session has no access token; call login() first")
        return {"Authorization": f"Bearer {self.token}"}

    def basic_headers(self) -> dict[str, str]:
        credentials = f"{self.username or ''}:{self.password or ''}".encode()
        return {"Authorization": f"Basic {base64.b64encode(credentials).decode('ascii')}"}

    def reset(self) -> None:
        """Forget the access token; connection settings and credentials stay."""
        self.token = None
