"""Canonical response shapes. Every response carries the CORS headers."""

from __future__ import annotations

import json

from hls_gatekeeper.models import ManifestResponse

MANIFEST_CONTENT_TYPE = "application/x-mpegURL"
BASIC_CHALLENGE = 'Basic realm="Access to HLS streams"'

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Origin",
}

PREFLIGHT_HEADERS: dict[str, str] = {
    **CORS_HEADERS,
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Max-Age": "86400",
}


def _reason_body(message: str | None) -> str | None:
    if not message:
        return None
    return json.dumps({"reason": message})


def manifest_response(text: str) -> ManifestResponse:
    return ManifestResponse(
        status_code=200,
        headers={"Content-Type": MANIFEST_CONTENT_TYPE, **CORS_HEADERS},
        body=text,
    )


def error_response(code: int, message: str | None = None) -> ManifestResponse:
    return ManifestResponse(
        status_code=code,
        headers={"Content-Type": "application/json", **CORS_HEADERS},
        body=_reason_body(message),
    )


def unauthorized_response(message: str | None = None) -> ManifestResponse:
    headers = {"WWW-Authenticate": BASIC_CHALLENGE, **CORS_HEADERS}
    if message:
        headers["Content-Type"] = "application/json"
    return ManifestResponse(status_code=401, headers=headers, body=_reason_body(message))


def preflight_response() -> ManifestResponse:
    return ManifestResponse(status_code=204, headers=dict(PREFLIGHT_HEADERS))
