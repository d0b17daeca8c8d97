"""Request-scoped values passed between the adapters, the dispatcher and the signer."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from urllib.parse import urlencode

from hls_gatekeeper.exceptions import InvalidEventError


class AuthVerdict(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True, slots=True)
class Credentials:
    username: str
    password: str


# ── Request ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Request:
    path: str
    method: str
    headers: Mapping[str, str] = field(default_factory=dict)
    query_params: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.path, str) or not self.path.startswith("/"):
            raise InvalidEventError(f"Invalid request path: {self.path!r}")
        if not isinstance(self.method, str) or not self.method:
            raise InvalidEventError(f"Invalid request method: {self.method!r}")
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(
            self,
            "headers",
            MappingProxyType({str(k).lower(): str(v) for k, v in (self.headers or {}).items()}),
        )
        object.__setattr__(
            self,
            "query_params",
            MappingProxyType({str(k): str(v) for k, v in (self.query_params or {}).items()}),
        )

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> Request:
        """Build a Request from the canonical ALB-style event."""
        if not isinstance(event, Mapping):
            raise InvalidEventError("Event must be a mapping")
        headers = event.get("headers") or {}
        query = event.get("queryStringParameters") or {}
        if not isinstance(headers, Mapping) or not isinstance(query, Mapping):
            raise InvalidEventError("Event headers and query parameters must be mappings")
        return cls(
            path=event.get("path"),
            method=event.get("httpMethod"),
            headers=headers,
            query_params=query,
        )

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @property
    def query_string(self) -> str:
        return urlencode(dict(self.query_params))


# ── Signed URL ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SignedURL:
    base_url: str
    expires_at_epoch_ms: int
    signature_params: Mapping[str, str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "signature_params", MappingProxyType(dict(self.signature_params)))

    @property
    def href(self) -> str:
        sep = "&" if "?" in self.base_url else "?"
        return f"{self.base_url}{sep}{urlencode(dict(self.signature_params))}"

    @property
    def directory(self) -> str:
        """Everything before the final path segment of the signed URL."""
        return self.href.rsplit("/", 1)[0]


# ── Response ─────────────────────────────────────────────────────────────────

_STATUS_DESCRIPTIONS = {
    200: "200 OK",
    204: "204 No Content",
    400: "400 Bad Request",
    401: "401 Unauthorized",
    404: "404 Not Found",
    500: "500 Internal Server Error",
}


@dataclass(frozen=True)
class ManifestResponse:
    status_code: int
    headers: Mapping[str, str]
    body: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def to_alb_result(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "statusDescription": _STATUS_DESCRIPTIONS.get(self.status_code, str(self.status_code)),
            "headers": dict(self.headers),
            "body": self.body or "",
            "isBase64Encoded": False,
        }
