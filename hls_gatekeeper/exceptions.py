"""Domain exception classes for the gatekeeper.

Raised by the signer, the authenticator and the manifest collaborator, and
mapped to responses in one place by the dispatcher.
"""


class GatekeeperError(Exception):
    """Base class for every error the dispatcher knows how to answer."""

    status_code: int = 500


# ── Auth (401) ───────────────────────────────────────────────────────────────

class AuthError(GatekeeperError):
    status_code = 401


class MissingAuthorizationError(AuthError):
    """Raised when the request carries no authorization header."""


class MalformedAuthorizationError(AuthError):
    def __init__(self) -> None:
        super().__init__("Malformed authorization header")


class UnsupportedAuthSchemeError(AuthError):
    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(f"Unsupported authentication method: {scheme}")


class InvalidCredentialsError(AuthError):
    """Raised when Basic credentials do not match the configured ones."""


# ── Routing ──────────────────────────────────────────────────────────────────

class NotFoundError(GatekeeperError):
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class InvalidEventError(GatekeeperError):
    """Raised when a transport event cannot be turned into a Request."""

    status_code = 400


# ── Upstream (500) ───────────────────────────────────────────────────────────

class UpstreamError(GatekeeperError):
    """Manifest fetch or parse failed for the attempted signed URL."""

    def __init__(self, cause: BaseException, url: str):
        self.cause = cause
        self.url = url
        super().__init__(f"{_describe(cause)}: {url}")


def _describe(exc: BaseException) -> str:
    return str(exc) or repr(exc)


# ── Signing ──────────────────────────────────────────────────────────────────

class SigningError(GatekeeperError):
    """Key material is absent or invalid. Fatal at startup."""


class MalformedURLError(GatekeeperError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Malformed URL: {url}")


# ── Manifest collaborator ────────────────────────────────────────────────────

class ManifestError(GatekeeperError):
    pass


class ManifestFetchError(ManifestError):
    def __init__(self, url: str, status_code: int):
        self.url = url
        self.upstream_status = status_code
        super().__init__(f"Origin responded with HTTP {status_code}")


class ManifestParseError(ManifestError):
    pass


class ManifestNotLoadedError(ManifestError):
    def __init__(self) -> None:
        super().__init__("Manifest has not been fetched")
