"""HTTP Basic Auth for multivariant manifest requests."""

from __future__ import annotations

import base64
import binascii
import logging
import secrets

from hls_gatekeeper.exceptions import (
    MalformedAuthorizationError,
    MissingAuthorizationError,
    UnsupportedAuthSchemeError,
)
from hls_gatekeeper.models import AuthVerdict, Credentials

logger = logging.getLogger(__name__)

BASIC_SCHEME = "Basic"


def parse_authorization(header: str | None) -> tuple[str, str]:
    """Split an authorization header into ``(scheme, value)``.

    Raises MissingAuthorizationError, MalformedAuthorizationError or
    UnsupportedAuthSchemeError; the scheme match is case-sensitive.
    """
    if header is None or not header.strip():
        raise MissingAuthorizationError()

    scheme, *rest = header.split()
    if scheme != BASIC_SCHEME:
        raise UnsupportedAuthSchemeError(scheme)
    if len(rest) != 1:
        raise MalformedAuthorizationError()
    return scheme, rest[0]


def decode_basic_credentials(value: str) -> Credentials | None:
    """Decode ``base64(username:password)``. Returns None when undecodable."""
    try:
        decoded = base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return Credentials(username=username, password=password)


class Authenticator:
    """Checks credentials against the configured static username/password."""

    def __init__(self, username: str, password: str):
        self._username = username.encode("utf-8")
        self._password = password.encode("utf-8")

    def authenticate(self, username: str | None, password: str | None) -> AuthVerdict:
        if not isinstance(username, str) or not isinstance(password, str):
            return AuthVerdict.UNAUTHENTICATED

        # Constant-time comparison on both fields
        username_ok = secrets.compare_digest(username.encode("utf-8"), self._username)
        password_ok = secrets.compare_digest(password.encode("utf-8"), self._password)
        if username_ok and password_ok:
            return AuthVerdict.AUTHENTICATED
        return AuthVerdict.UNAUTHENTICATED

    def check_header(self, header: str | None) -> AuthVerdict:
        """Validate a full authorization header value.

        Header-level problems raise the AuthError subclasses; an undecodable
        value or a credential mismatch yields UNAUTHENTICATED.
        """
        _, value = parse_authorization(header)
        credentials = decode_basic_credentials(value)
        if credentials is None:
            logger.info("Undecodable Basic credentials")
            return AuthVerdict.UNAUTHENTICATED

        verdict = self.authenticate(credentials.username, credentials.password)
        if verdict is AuthVerdict.UNAUTHENTICATED:
            logger.info("Rejected credentials for user %r", credentials.username)
        return verdict
