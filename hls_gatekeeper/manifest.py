"""
HLS manifest fetch-and-rewrite.

Fetches a manifest from the origin, parses it with ``m3u8`` and rewrites every
URI it references so the player can follow it with a fresh signature:

  * Multivariant manifests keep variant / rendition URIs relative, so the
    player comes back through the gatekeeper as a signed media playlist
    request.
  * Media playlists resolve segment, key and init-section URIs against the
    origin directory, so the player fetches them from the CDN directly.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from urllib.parse import urlencode, urljoin, urlsplit

import httpx
import m3u8

from hls_gatekeeper.exceptions import (
    ManifestFetchError,
    ManifestNotLoadedError,
    ManifestParseError,
)

logger = logging.getLogger(__name__)

SignUri = Callable[[str], Mapping[str, str]]

DEFAULT_TIMEOUT_SECS = 5.0


def append_query(uri: str, params: Mapping[str, str]) -> str:
    if not params:
        return uri
    sep = "&" if "?" in uri else "?"
    return f"{uri}{sep}{urlencode(dict(params))}"


def _is_fetchable(uri: str | None) -> bool:
    # data:, skd: and similar key URIs are not origin resources
    return bool(uri) and urlsplit(uri).scheme in ("", "http", "https")


class HLSManifest:
    """Base class: fetch, parse, rewrite, serialize."""

    expect_variant: bool

    def __init__(
        self,
        url: str,
        sign_uri: SignUri,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECS,
    ) -> None:
        self.url = str(url)
        self._sign_uri = sign_uri
        self._client = client
        self._timeout = timeout
        self._playlist: m3u8.M3U8 | None = None
        self._rewritten: dict[str, str] = {}

    async def fetch(self) -> None:
        text = await self._download()
        if not text.lstrip().startswith("#EXTM3U"):
            raise ManifestParseError("Response is not an HLS manifest")

        playlist = m3u8.loads(text)
        if playlist.is_variant != self.expect_variant:
            kind = "multivariant manifest" if self.expect_variant else "media playlist"
            raise ManifestParseError(f"Expected a {kind}")

        self._rewritten = {}
        self._rewrite(playlist)
        self._playlist = playlist

    async def _download(self) -> str:
        if self._client is not None:
            response = await self._client.get(self.url, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self.url)

        if not response.is_success:
            logger.warning("Origin returned %s for %s", response.status_code, self.url)
            raise ManifestFetchError(self.url, response.status_code)
        return response.text

    def _rewrite(self, playlist: m3u8.M3U8) -> None:
        raise NotImplementedError

    def _signed(self, uri: str) -> str:
        """Rewrite ``uri`` once per fetch; repeated references reuse the result."""
        if uri not in self._rewritten:
            self._rewritten[uri] = append_query(self._target(uri), self._sign_uri(uri))
        return self._rewritten[uri]

    def _target(self, uri: str) -> str:
        return uri

    def to_string(self) -> str:
        if self._playlist is None:
            raise ManifestNotLoadedError()
        return self._playlist.dumps()

    def __str__(self) -> str:
        return self.to_string()


class HLSMultiVariant(HLSManifest):
    expect_variant = True

    def _rewrite(self, playlist: m3u8.M3U8) -> None:
        for variant in playlist.playlists:
            variant.uri = self._signed(variant.uri)
        for iframe in playlist.iframe_playlists:
            if iframe.uri:
                iframe.uri = self._signed(iframe.uri)
        for media in playlist.media:
            if media.uri:
                media.uri = self._signed(media.uri)


class HLSMediaPlaylist(HLSManifest):
    expect_variant = False

    def __init__(
        self,
        url: str,
        sign_uri: SignUri,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECS,
    ) -> None:
        super().__init__(url, sign_uri, client=client, timeout=timeout)
        self.base_url = base_url

    def _target(self, uri: str) -> str:
        return urljoin(self.base_url, uri)

    def _rewrite(self, playlist: m3u8.M3U8) -> None:
        # Keys and init sections can be shared between the playlist and its
        # segments; rewrite each object once.
        seen: set[int] = set()

        def rewrite(obj) -> None:
            if obj is None or id(obj) in seen:
                return
            seen.add(id(obj))
            if _is_fetchable(obj.uri):
                obj.uri = self._signed(obj.uri)

        for key in playlist.keys:
            if key is not None and (key.method or "").upper() != "NONE":
                rewrite(key)
        for init_section in playlist.segment_map or []:
            rewrite(init_section)

        for segment in playlist.segments:
            if segment.key is not None and (segment.key.method or "").upper() != "NONE":
                rewrite(segment.key)
            rewrite(segment.init_section)
            rewrite(segment)
