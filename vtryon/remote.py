"""Remote generation strategies.

``DirectRemoteCall`` talks to the model through the google-generativeai SDK
with a locally held API key. ``ProxiedRemoteCall`` posts the REST payload to a
same-origin relay that holds the key server side. One of them is picked at
startup by :func:`build_remote`; callers only see :class:`RemoteCall`.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
import httpx
from google.api_core import exceptions as google_exceptions

from vtryon.config import Settings
from vtryon.errors import RequestTimeoutError, TransportError
from vtryon.parts import (
    GenerationRequest,
    GenerationResponse,
    InlineBinaryPart,
    TextPart,
    part_to_sdk,
    request_to_rest,
    response_from_rest,
)

logger = logging.getLogger(__name__)


class RemoteCall(ABC):
    """Send one generation request, bounded by a hard deadline."""

    def __init__(self, timeout: float = 55.0, default_temperature: float = 0.5):
        self.timeout = timeout
        self.default_temperature = default_temperature

    async def generate(self, model: str, request: GenerationRequest) -> GenerationResponse:
        request = GenerationRequest(
            parts=list(request.parts),
            config=request.config.with_defaults(self.default_temperature),
        )
        try:
            return await asyncio.wait_for(self._send(model, request), timeout=self.timeout)
        except RequestTimeoutError:
            raise
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(
                f"Request to {model} timed out after {self.timeout:g}s", status_code=408
            ) from e

    @abstractmethod
    async def _send(self, model: str, request: GenerationRequest) -> GenerationResponse:
        ...

    async def aclose(self) -> None:
        pass


def _response_from_sdk(response) -> GenerationResponse:
    candidates = []
    try:
        for candidate in response.candidates or []:
            parts = []
            content = candidate.content
            for part in (content.parts if content else []):
                if part.inline_data and part.inline_data.data:
                    parts.append(InlineBinaryPart(
                        data=part.inline_data.data,
                        mime_type=part.inline_data.mime_type or "image/png",
                    ))
                elif part.text:
                    parts.append(TextPart(part.text))
            candidates.append(parts)
    except (AttributeError, TypeError, KeyError, ValueError) as e:
        raise TransportError(f"Unexpected response format: {e}") from e
    return GenerationResponse(candidates=candidates)


class DirectRemoteCall(RemoteCall):
    """Calls the model provider directly with a locally held credential."""

    def __init__(self, api_key: str, timeout: float = 55.0, default_temperature: float = 0.5):
        super().__init__(timeout, default_temperature)
        if not api_key:
            raise ValueError("GEMINI_API_KEY is required for direct remote calls")
        genai.configure(api_key=api_key)
        self._models = {}

    def _model(self, name: str):
        if name not in self._models:
            self._models[name] = genai.GenerativeModel(model_name=name)
        return self._models[name]

    async def _send(self, model: str, request: GenerationRequest) -> GenerationResponse:
        contents = [part_to_sdk(p) for p in request.parts]
        try:
            response = await self._model(model).generate_content_async(
                contents,
                generation_config=request.config.as_sdk_dict(),
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.DeadlineExceeded as e:
            raise RequestTimeoutError(str(e), status_code=408) from e
        except google_exceptions.GoogleAPICallError as e:
            raise TransportError(f"HTTP {e.code}: {e.message}", status_code=e.code) from e
        except google_exceptions.GoogleAPIError as e:
            raise TransportError(str(e)) from e
        return _response_from_sdk(response)


class ProxiedRemoteCall(RemoteCall):
    """Delegates to a relay endpoint that forwards with a server-held key."""

    def __init__(
        self,
        relay_url: str,
        timeout: float = 55.0,
        default_temperature: float = 0.5,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout, default_temperature)
        self.relay_url = relay_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _send(self, model: str, request: GenerationRequest) -> GenerationResponse:
        body = {
            "endpoint": f"models/{model}:generateContent",
            "payload": request_to_rest(request),
        }
        try:
            response = await self._client.post(self.relay_url, json=body)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Relay request timed out: {e}", status_code=408) from e
        except httpx.RequestError as e:
            raise TransportError(f"Relay request failed: {e}") from e

        if response.is_error:
            raise TransportError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Relay returned invalid JSON: {e}", response.status_code) from e
        return response_from_rest(data)

    async def aclose(self) -> None:
        await self._client.aclose()


def build_remote(settings: Settings) -> RemoteCall:
    if settings.remote_mode == "proxied":
        logger.info("Remote mode: proxied via %s", settings.relay_url)
        return ProxiedRemoteCall(
            settings.relay_url,
            timeout=settings.request_timeout,
            default_temperature=settings.default_temperature,
        )
    logger.info("Remote mode: direct")
    return DirectRemoteCall(
        settings.gemini_api_key,
        timeout=settings.request_timeout,
        default_temperature=settings.default_temperature,
    )
