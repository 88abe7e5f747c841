"""Credential-forwarding relay: the server side of ProxiedRemoteCall."""

import json
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from vtryon.config import Settings

logger = logging.getLogger(__name__)


async def forward_generation(
    settings: Settings,
    endpoint: Optional[str],
    payload: Optional[Dict[str, Any]],
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[int, Dict[str, Any]]:
    """Forward a generateContent payload upstream with the server-held key.

    Returns the status code and JSON body to hand back to the caller. Upstream
    error statuses are preserved; a missed deadline becomes 408.
    """
    if not endpoint or not payload:
        return 400, {"error": "Missing endpoint or payload"}
    if not settings.gemini_api_key:
        logger.error("Gemini API key not found in environment")
        return 500, {
            "error": "API key not configured",
            "hint": "Set GEMINI_API_KEY in the server environment",
        }

    logger.info("Relaying %s (%d byte payload)", endpoint, len(json.dumps(payload)))
    url = f"{settings.api_base_url.rstrip('/')}/{endpoint.lstrip('/')}"
    owns_client = client is None
    client = client or httpx.AsyncClient()
    try:
        response = await client.post(
            url,
            params={"key": settings.gemini_api_key},
            json=payload,
            timeout=settings.relay_timeout,
        )
        if response.is_error:
            logger.error("Upstream error %d: %s", response.status_code, response.text[:500])
            return response.status_code, {"error": response.text, "status": response.status_code}
        return 200, response.json()
    except httpx.TimeoutException:
        logger.error("Relay request to %s timed out", endpoint)
        return 408, {"error": "Request timeout"}
    except (httpx.RequestError, ValueError) as e:
        logger.error("Relay request to %s failed: %s", endpoint, e)
        return 500, {"error": "Internal server error", "details": str(e)}
    finally:
        if owns_client:
            await client.aclose()
