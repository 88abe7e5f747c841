"""Garment image sources: a remote URL or a direct upload, normalized alike."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from vtryon.errors import TransportError, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

DEFAULT_GARMENT_FILENAME = "garment.jpg"

# Some retailer CDNs refuse requests that do not look like a browser.
FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
    "Referer": "https://www.google.com/",
}


@dataclass(frozen=True)
class ImageSource:
    data: bytes
    mime_type: str
    filename: str


def garment_from_upload(data: bytes, mime_type: str, filename: Optional[str] = None) -> ImageSource:
    return ImageSource(data=data, mime_type=mime_type, filename=filename or DEFAULT_GARMENT_FILENAME)


async def fetch_image(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 15.0,
) -> ImageSource:
    """Download an image URL, following redirects. Non-image responses are rejected."""
    owns_client = client is None
    client = client or httpx.AsyncClient()
    try:
        response = await client.get(url, follow_redirects=True, timeout=timeout, headers=FETCH_HEADERS)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise TransportError(
            f"Image server error: {e.response.status_code}", status_code=e.response.status_code
        ) from e
    except httpx.RequestError as e:
        raise TransportError(f"Failed to fetch image: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    content_type = response.headers.get("content-type", "").split(";")[0].strip()
    if not content_type.startswith("image/"):
        raise UnsupportedFileTypeError("URL is not a direct image link.")
    logger.info("Fetched garment image %s (%d bytes)", url, len(response.content))
    return ImageSource(data=response.content, mime_type=content_type, filename=DEFAULT_GARMENT_FILENAME)
