from __future__ import annotations

import logging
from typing import Any

import httpx

from signal_console.core.errors import ConfigurationError, UpstreamFailureError

logger = logging.getLogger(__name__)

FUNCTION_KEY_HEADER = "x-functions-key"


async def trigger_tag_generation(
    options: dict[str, Any],
    *,
    url: str | None,
    function_key: str | None = None,
    timeout_seconds: float = 30.0,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Forward a tag-candidate generation request to the upstream generator.

    Only the trigger lives here; the generator's response body is passed back
    verbatim as ``upstream_response``.
    """
    if not url:
        raise ConfigurationError("GSC_TAG_GENERATION_URL is not set")

    payload = {key: value for key, value in options.items() if value is not None}
    headers = {FUNCTION_KEY_HEADER: function_key} if function_key else {}

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout_seconds) as owned_client:
                response = await owned_client.post(url, json=payload, headers=headers)
        else:
            response = await client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        logger.error("tag generation trigger failed url=%s error=%s", url, exc)
        raise UpstreamFailureError(f"tag generation upstream unavailable: {exc}") from exc

    if response.status_code >= 400:
        logger.error("tag generation upstream rejected request status=%s", response.status_code)
        raise UpstreamFailureError(
            response.text or f"Failed to trigger tag generation ({response.status_code})",
        )

    logger.info("tag generation triggered status=%s", response.status_code)
    return {
        "message": "Tag candidate generation triggered.",
        "upstream_status": response.status_code,
        "upstream_response": response.text,
    }
