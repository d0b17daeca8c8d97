"""CloudFront signed URL generation.

Pure utility, no HTTP or HLS knowledge. Requires the ``cryptography`` package.
"""

from __future__ import annotations

import base64
import json
import time
from urllib.parse import urljoin, urlsplit

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from hls_gatekeeper.exceptions import MalformedURLError, SigningError
from hls_gatekeeper.models import SignedURL


def _load_private_key(pem: str) -> rsa.RSAPrivateKey:
    if not pem:
        raise SigningError("CloudFront private key is not configured")
    try:
        key = serialization.load_pem_private_key(pem.encode("ascii"), password=None)
    except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm) as exc:
        raise SigningError("CloudFront private key could not be loaded") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError("CloudFront private key must be an RSA key")
    return key


# CloudFront reads base64 with "+=/" swapped for "-_~"
_CF_BASE64 = str.maketrans("+=/", "-_~")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _check_url(url: str) -> None:
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise MalformedURLError(url) from exc
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise MalformedURLError(url)


class UrlSigner:
    """Signs origin URLs with a CloudFront canned policy."""

    def __init__(self, key_pair_id: str, private_key_pem: str, origin: str):
        if not key_pair_id:
            raise SigningError("CloudFront key pair id is not configured")
        self.key_pair_id = key_pair_id
        self.origin = origin.rstrip("/")
        self._key = _load_private_key(private_key_pem)

    def sign(self, path: str, expires_in_seconds: int) -> SignedURL:
        """Sign ``origin + path``."""
        return self.sign_url(self.origin + path, expires_in_seconds)

    def sign_url(self, url: str, expires_in_seconds: int) -> SignedURL:
        if isinstance(expires_in_seconds, bool) or not isinstance(expires_in_seconds, int) or expires_in_seconds <= 0:
            raise ValueError(f"expires_in_seconds must be a positive integer, got {expires_in_seconds!r}")
        _check_url(url)

        expires_at_ms = _now_ms() + expires_in_seconds * 1000
        epoch = expires_at_ms // 1000
        return SignedURL(
            base_url=url,
            expires_at_epoch_ms=expires_at_ms,
            signature_params={
                "Expires": str(epoch),
                "Signature": self._signature(url, epoch),
                "Key-Pair-Id": self.key_pair_id,
            },
        )

    def signature_params_for(self, directory: str, uri: str, expires_in_seconds: int) -> dict[str, str]:
        """Signature query params for ``uri`` resolved against ``directory``.

        A plain relative ``uri`` signs ``directory + "/" + uri``; absolute,
        root-relative and dot-relative forms sign the URL they resolve to.
        """
        url = urljoin(f"{directory}/", uri)
        return dict(self.sign_url(url, expires_in_seconds).signature_params)

    def _signature(self, url: str, epoch: int) -> str:
        """RSA-SHA1 over the canned policy for ``url``, CloudFront base64."""
        policy = json.dumps(
            {"Statement": [{"Resource": url, "Condition": {"DateLessThan": {"AWS:EpochTime": epoch}}}]},
            separators=(",", ":"),
        )
        signed = self._key.sign(policy.encode(), padding.PKCS1v15(), hashes.SHA1())
        return base64.b64encode(signed).decode().translate(_CF_BASE64)
