"""Single-shot generation helpers built on a RemoteCall."""

import logging
from typing import Optional

from vtryon.errors import NoCandidateImageError, TransportError
from vtryon.parts import (
    GenerationConfig,
    GenerationRequest,
    GenerationResponse,
    InlineBinaryPart,
    TextPart,
)
from vtryon.remote import RemoteCall

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"


def _require_text(response: GenerationResponse) -> str:
    text = response.first_text()
    if text is None:
        logger.error("Unexpected response format: %r", response)
        raise TransportError("Unexpected response format: no text part in first candidate")
    return text


async def generate_text(remote: RemoteCall, prompt: str, model: str = DEFAULT_TEXT_MODEL) -> str:
    response = await remote.generate(model, GenerationRequest(parts=[TextPart(prompt)]))
    return _require_text(response)


async def generate_content_with_image(
    remote: RemoteCall,
    prompt: str,
    image: InlineBinaryPart,
    model: str = DEFAULT_TEXT_MODEL,
) -> str:
    request = GenerationRequest(parts=[TextPart(prompt), image])
    return _require_text(await remote.generate(model, request))


async def generate_with_config(
    remote: RemoteCall,
    prompt: str,
    model: str = DEFAULT_TEXT_MODEL,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
    top_k: Optional[int] = None,
    max_output_tokens: Optional[int] = None,
) -> str:
    """Text generation with sampling defaults of 0.5 / 0.8 / 40 / 1024 tokens."""
    config = GenerationConfig(
        temperature=0.5 if temperature is None else temperature,
        top_p=0.8 if top_p is None else top_p,
        top_k=40 if top_k is None else top_k,
        max_output_tokens=1024 if max_output_tokens is None else max_output_tokens,
    )
    request = GenerationRequest(parts=[TextPart(prompt)], config=config)
    return _require_text(await remote.generate(model, request))


async def generate_image(
    remote: RemoteCall,
    prompt: str,
    model: str = DEFAULT_IMAGE_MODEL,
    config: Optional[GenerationConfig] = None,
) -> InlineBinaryPart:
    request = GenerationRequest(parts=[TextPart(prompt)], config=config or GenerationConfig())
    response = await remote.generate(model, request)
    image = response.first_inline_binary()
    if image is None:
        raise NoCandidateImageError("No image data found in response")
    return image
