"""Request classification and the manifest handlers.

Handlers return ``ManifestResponse | GatekeeperError``; ``Gatekeeper.dispatch``
maps the result (and any unexpected exception) to a response, so every code
path ends in a well-formed response with CORS headers.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from hls_gatekeeper.auth import Authenticator
from hls_gatekeeper.cloudfront import UrlSigner
from hls_gatekeeper.config import Settings
from hls_gatekeeper.exceptions import (
    AuthError,
    GatekeeperError,
    InvalidCredentialsError,
    InvalidEventError,
    NotFoundError,
    UpstreamError,
)
from hls_gatekeeper.manifest import HLSManifest, HLSMediaPlaylist, HLSMultiVariant
from hls_gatekeeper.models import AuthVerdict, ManifestResponse, Request
from hls_gatekeeper.responses import (
    error_response,
    manifest_response,
    preflight_response,
    unauthorized_response,
)

logger = logging.getLogger(__name__)

HandlerResult = ManifestResponse | GatekeeperError


class Route(str, enum.Enum):
    MEDIA_PLAYLIST = "media_playlist"
    MULTIVARIANT = "multivariant"
    PREFLIGHT = "preflight"
    NOT_FOUND = "not_found"


def classify(request: Request) -> Route:
    """Ordered predicate chain; the first match wins."""
    is_manifest = request.path.endswith(".m3u8")
    if is_manifest and request.query_params and request.method == "GET":
        # Already carries signature params from a multivariant rewrite
        return Route.MEDIA_PLAYLIST
    if is_manifest and request.method == "GET":
        return Route.MULTIVARIANT
    if request.method == "OPTIONS":
        return Route.PREFLIGHT
    return Route.NOT_FOUND


def to_response(result: HandlerResult) -> ManifestResponse:
    if isinstance(result, ManifestResponse):
        return result
    message = str(result) or None
    if isinstance(result, AuthError):
        return unauthorized_response(message)
    return error_response(result.status_code, message)


class Gatekeeper:
    def __init__(
        self,
        settings: Settings,
        signer: UrlSigner,
        authenticator: Authenticator,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.signer = signer
        self.authenticator = authenticator
        self.http_client = http_client

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient | None = None) -> Gatekeeper:
        """Build the signer and authenticator. Raises SigningError on bad key material."""
        signer = UrlSigner(settings.public_key, settings.private_key_pem, settings.origin)
        authenticator = Authenticator(settings.poc_username, settings.poc_password)
        return cls(settings, signer, authenticator, http_client=http_client)

    # ── Entry points ─────────────────────────────────────────────────────────

    async def handle_event(self, event: Mapping[str, Any]) -> dict[str, Any]:
        """Dispatch an ALB-style event and return an ALB-style result."""
        try:
            request = Request.from_event(event)
        except InvalidEventError as exc:
            logger.warning("Rejected event: %s", exc)
            return error_response(400, str(exc)).to_alb_result()
        response = await self.dispatch(request)
        return response.to_alb_result()

    async def dispatch(self, request: Request) -> ManifestResponse:
        route = classify(request)
        logger.info("%s %s -> %s", request.method, request.path, route.value)
        try:
            if route is Route.MEDIA_PLAYLIST:
                result = await self._handle_media_playlist(request)
            elif route is Route.MULTIVARIANT:
                result = await self._handle_basic_auth_multivariant(request)
            elif route is Route.PREFLIGHT:
                result = preflight_response()
            else:
                result = NotFoundError()
        except Exception as exc:
            logger.exception("Unhandled error for %s %s", request.method, request.path)
            return error_response(500, str(exc) or repr(exc))
        return to_response(result)

    # ── Handlers ─────────────────────────────────────────────────────────────

    async def _handle_basic_auth_multivariant(self, request: Request) -> HandlerResult:
        try:
            verdict = self.authenticator.check_header(request.header("authorization"))
        except AuthError as exc:
            return exc
        if verdict is not AuthVerdict.AUTHENTICATED:
            return InvalidCredentialsError()
        return await self._handle_multivariant(request)

    async def _handle_multivariant(self, request: Request) -> HandlerResult:
        expiry = self.settings.signed_url_expiry_secs
        signed = self.signer.sign(request.path, expiry)
        directory = signed.directory
        hls = HLSMultiVariant(
            signed.href,
            lambda uri: self.signer.signature_params_for(directory, uri, expiry),
            client=self.http_client,
            timeout=self.settings.upstream_timeout_secs,
        )
        return await self._render(hls)

    async def _handle_media_playlist(self, request: Request) -> HandlerResult:
        expiry = self.settings.signed_url_expiry_secs
        origin = self.settings.origin
        directory = origin + request.path.rsplit("/", 1)[0]
        hls = HLSMediaPlaylist(
            f"{origin}{request.path}?{request.query_string}",
            lambda uri: self.signer.signature_params_for(directory, uri, expiry),
            base_url=directory + "/",
            client=self.http_client,
            timeout=self.settings.upstream_timeout_secs,
        )
        return await self._render(hls)

    async def _render(self, hls: HLSManifest) -> HandlerResult:
        try:
            await hls.fetch()
        except Exception as exc:
            logger.warning("Manifest fetch failed for %s: %r", hls.url, exc)
            return UpstreamError(exc, hls.url)
        return manifest_response(str(hls))
