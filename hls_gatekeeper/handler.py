"""
AWS Lambda handler: ALB target for HLS manifest requests

Triggered by:
  Application Load Balancer requests (``path``, ``httpMethod``, ``headers``,
  ``queryStringParameters``).

Flow:
  1. Multivariant requests (``*.m3u8`` without a query) are Basic-Auth gated,
     signed and rewritten.
  2. Media playlist requests (``*.m3u8?<signature>``) are fetched with their
     own signature and rewritten.
  3. OPTIONS requests get the CORS preflight answer.

Environment variables:
  PUBLIC_KEY        CloudFront key pair id
  PRIVATE_KEY       CloudFront private key (PEM)
  PRIVATE_KEY_B64   base64-encoded PEM, overrides PRIVATE_KEY
  ORIGIN            signed CloudFront origin
  POC_USERNAME      Basic auth username
  POC_PASSWORD      Basic auth password
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from functools import lru_cache

from hls_gatekeeper.config import get_settings
from hls_gatekeeper.dispatcher import Gatekeeper

logger = logging.getLogger()
logger.setLevel(logging.INFO)


@lru_cache(maxsize=1)
def get_gatekeeper() -> Gatekeeper:
    """Built once per container; SigningError here fails every invocation."""
    settings = get_settings()
    logger.setLevel(settings.log_level.upper())
    return Gatekeeper.from_settings(settings)


def handler(event: dict, context: object) -> dict:
    """Lambda entry point. Returns an ALB result dict."""
    if isinstance(event, Mapping):
        logger.info(
            "Event: %s %s query=%s",
            event.get("httpMethod"),
            event.get("path"),
            event.get("queryStringParameters"),
        )
    else:
        logger.warning("Event is not a mapping: %s", type(event).__name__)
    gatekeeper = get_gatekeeper()
    return asyncio.run(gatekeeper.handle_event(event))
