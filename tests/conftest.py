import base64
from collections.abc import Callable, Mapping

import httpx
import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from hls_gatekeeper.auth import Authenticator
from hls_gatekeeper.cloudfront import UrlSigner
from hls_gatekeeper.config import Settings
from hls_gatekeeper.dispatcher import Gatekeeper

ORIGIN = "https://origin.example"
KEY_PAIR_ID = "K2JCJMDEHXQW5F"
USERNAME = "eyevinnpoc"
PASSWORD = "eyevinnpoc"

MULTIVARIANT = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aac",NAME="English",DEFAULT=YES,AUTOSELECT=YES,LANGUAGE="en",URI="audio/en.m3u8"
#EXT-X-STREAM-INF:BANDWIDTH=1280000,RESOLUTION=1280x720,AUDIO="aac"
video/720p.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=2560000,RESOLUTION=1920x1080,AUDIO="aac"
video/1080p.m3u8
"""

MEDIA_PLAYLIST = """#EXTM3U
#EXT-X-VERSION:6
#EXT-X-TARGETDURATION:10
#EXT-X-MEDIA-SEQUENCE:0
#EXT-X-MAP:URI="init.mp4"
#EXT-X-KEY:METHOD=AES-128,URI="keys/key1.bin"
#EXTINF:10.0,
seg0.m4s
#EXTINF:10.0,
seg1.m4s
#EXT-X-ENDLIST
"""

SIGNATURE_PARAMS = ("Expires", "Signature", "Key-Pair-Id")


def basic_auth(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return f"Basic {token}"


class FakeOrigin:
    """httpx.MockTransport handler serving manifests by path."""

    def __init__(self) -> None:
        self.manifests: dict[str, tuple[int, str]] = {}
        self.requests: list[httpx.Request] = []
        self.error: Exception | None = None

    def serve(self, path: str, text: str, status_code: int = 200) -> None:
        self.manifests[path] = (status_code, text)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        status_code, text = self.manifests.get(request.url.path, (404, "not found"))
        return httpx.Response(status_code, text=text)


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(private_key: rsa.RSAPrivateKey) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def settings(private_key_pem: str) -> Settings:
    return Settings(
        _env_file=None,
        public_key=KEY_PAIR_ID,
        private_key=private_key_pem,
        private_key_b64="",
        origin=ORIGIN,
        poc_username=USERNAME,
        poc_password=PASSWORD,
        signed_url_expiry_secs=3600,
    )


@pytest.fixture
def signer(settings: Settings) -> UrlSigner:
    return UrlSigner(settings.public_key, settings.private_key_pem, settings.origin)


@pytest.fixture
def origin() -> FakeOrigin:
    fake = FakeOrigin()
    fake.serve("/show/master.m3u8", MULTIVARIANT)
    fake.serve("/show/video/720p.m3u8", MEDIA_PLAYLIST)
    return fake


@pytest.fixture
def http_client(origin: FakeOrigin) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(origin))


@pytest.fixture
def gatekeeper(settings: Settings, signer: UrlSigner, http_client: httpx.AsyncClient) -> Gatekeeper:
    return Gatekeeper(
        settings,
        signer,
        Authenticator(settings.poc_username, settings.poc_password),
        http_client=http_client,
    )


@pytest.fixture
def verify_signature(private_key: rsa.RSAPrivateKey) -> Callable[[str, Mapping[str, str]], None]:
    """Check CloudFront canned-policy params against the resource URL they sign."""
    public_key = private_key.public_key()

    def verify(url: str, params: Mapping[str, str]) -> None:
        assert params["Key-Pair-Id"] == KEY_PAIR_ID
        policy = (
            '{"Statement":[{"Resource":"%s","Condition":{"DateLessThan":{"AWS:EpochTime":%s}}}]}'
            % (url, params["Expires"])
        )
        signature = base64.b64decode(
            params["Signature"].replace("-", "+").replace("_", "=").replace("~", "/")
        )
        public_key.verify(signature, policy.encode(), padding.PKCS1v15(), hashes.SHA1())

    return verify
