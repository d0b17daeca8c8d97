"""Local development server.

Maps every HTTP request onto the gatekeeper's canonical Request and the
resulting ManifestResponse back onto a native response, the same way the
load balancer does in production.
"""

import logging

import uvicorn
from fastapi import FastAPI
from starlette.requests import Request as HttpRequest
from starlette.responses import Response

from hls_gatekeeper.config import Settings, get_settings
from hls_gatekeeper.dispatcher import Gatekeeper
from hls_gatekeeper.middleware import request_id_middleware
from hls_gatekeeper.models import Request

logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")
logger = logging.getLogger(__name__)

_METHODS = ["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]


def to_gatekeeper_request(request: HttpRequest) -> Request:
    return Request(
        path=request.url.path,
        method=request.method,
        headers={k.lower(): v for k, v in request.headers.items()},
        query_params=dict(request.query_params),
    )


def create_app(settings: Settings | None = None, gatekeeper: Gatekeeper | None = None) -> FastAPI:
    settings = settings or get_settings()
    gatekeeper = gatekeeper or Gatekeeper.from_settings(settings)

    app = FastAPI(
        title="HLS Gatekeeper",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.gatekeeper = gatekeeper
    app.middleware("http")(request_id_middleware)

    @app.api_route("/{path:path}", methods=_METHODS, include_in_schema=False)
    async def gate(request: HttpRequest, path: str) -> Response:
        result = await gatekeeper.dispatch(to_gatekeeper_request(request))
        return Response(
            content=result.body or "",
            status_code=result.status_code,
            headers=dict(result.headers),
        )

    return app


def run() -> None:
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    app = create_app(settings)
    logger.info("Server listening at http://0.0.0.0:%s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
