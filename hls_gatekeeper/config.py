import base64
import binascii
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hls_gatekeeper.exceptions import SigningError

DEFAULT_ORIGIN = "https://lab-signed.cdn.eyevinn.technology"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── CloudFront signing ───────────────────────────────────────────────────
    public_key: str = ""  # CloudFront key pair id
    private_key: str = ""  # PEM string
    private_key_b64: str = ""  # base64-encoded PEM, overrides private_key
    signed_url_expiry_secs: int = 3600

    # ── Origin ───────────────────────────────────────────────────────────────
    origin: str = DEFAULT_ORIGIN
    upstream_timeout_secs: float = 5.0

    # ── Basic auth ───────────────────────────────────────────────────────────
    poc_username: str = "eyevinnpoc"
    poc_password: str = "eyevinnpoc"

    # ── Local dev server ─────────────────────────────────────────────────────
    port: int = 8000
    log_level: str = "INFO"

    @field_validator("origin")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def private_key_pem(self) -> str:
        """Effective private key: decoded PRIVATE_KEY_B64 when set, else PRIVATE_KEY."""
        if not self.private_key_b64:
            return self.private_key
        try:
            return base64.b64decode(self.private_key_b64, validate=True).decode("ascii")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise SigningError("PRIVATE_KEY_B64 is not valid base64-encoded PEM") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
