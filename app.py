import base64
import binascii
import logging
import platform
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from vtryon import __version__
from vtryon.config import Settings, load_settings
from vtryon.errors import (
    DecodeError,
    FileTooLargeError,
    GenerationError,
    TransportError,
    TryOnError,
    UnsupportedFileTypeError,
)
from vtryon.garments import ImageSource, fetch_image, garment_from_upload
from vtryon.orchestrator import TryOnOrchestrator
from vtryon.relay import forward_generation
from vtryon.remote import RemoteCall, build_remote
from vtryon.styling import StyleRecommendations, get_style_recommendations
from vtryon.workflow import prepare_source, run_tryon

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# --- 1. Configuration ---
# Built once per process and handed to everything through the dependencies below.
settings = load_settings()


def get_settings() -> Settings:
    return settings


@lru_cache(maxsize=1)
def _remote() -> RemoteCall:
    return build_remote(settings)


def get_remote() -> RemoteCall:
    try:
        return _remote()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))


def get_orchestrator(
    remote: RemoteCall = Depends(get_remote),
    settings: Settings = Depends(get_settings),
) -> TryOnOrchestrator:
    return TryOnOrchestrator.from_settings(remote, settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Only close a remote that was actually built.
    if _remote.cache_info().currsize:
        await _remote().aclose()
        _remote.cache_clear()


# --- 2. Pydantic Models ---
class TryOnPayload(BaseModel):
    personImage: str = Field(..., description="Base64 encoded photo of the person.")
    personMimeType: str = "image/jpeg"
    garmentImage: Optional[str] = Field(None, description="Base64 encoded garment image.")
    garmentMimeType: str = "image/jpeg"
    garmentImageUrl: Optional[str] = Field(None, description="Direct link to a garment image.")
    garmentName: str
    garmentType: str
    maxRetries: Optional[int] = Field(None, ge=0, le=5)
    cleanup: bool = False


class StylePayload(BaseModel):
    garmentImage: str = Field(..., description="Base64 encoded garment image.")
    garmentMimeType: str = "image/jpeg"


class RelayPayload(BaseModel):
    endpoint: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None


# --- 3. FastAPI Application Setup ---
app = FastAPI(
    title="AI Virtual Try-On API",
    description="Prepares a person photo and a garment image, then drives an image model through a validated retry session.",
    version=__version__,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _decode_b64(value: str, field_name: str) -> bytes:
    # Accept data URLs as well as bare base64.
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail=f"{field_name} is not valid base64.")


def _http_error(e: TryOnError) -> HTTPException:
    if isinstance(e, FileTooLargeError):
        return HTTPException(status_code=413, detail=str(e))
    if isinstance(e, UnsupportedFileTypeError):
        return HTTPException(status_code=415, detail=str(e))
    if isinstance(e, DecodeError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, GenerationError):
        return HTTPException(status_code=502, detail=f"Image generation failed: {e}")
    return HTTPException(status_code=500, detail=f"An internal server error occurred: {e}")


# --- 4. API Endpoints ---
@app.get("/proxy-image")
async def proxy_image(url: str):
    try:
        source = await fetch_image(url)
    except UnsupportedFileTypeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransportError as e:
        raise HTTPException(status_code=e.status_code or 400, detail=str(e))
    return Response(content=source.data, media_type=source.mime_type)


@app.post("/generate",
    response_class=Response,
    responses={
        200: {
            "content": {"image/png": {}, "image/jpeg": {}},
            "description": "The generated try-on image.",
        }
    }
)
async def generate_tryon(
    payload: TryOnPayload,
    orchestrator: TryOnOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
):
    user = ImageSource(
        data=_decode_b64(payload.personImage, "personImage"),
        mime_type=payload.personMimeType,
        filename="person.jpg",
    )
    try:
        if payload.garmentImage:
            garment = garment_from_upload(
                _decode_b64(payload.garmentImage, "garmentImage"), payload.garmentMimeType
            )
        elif payload.garmentImageUrl:
            garment = await fetch_image(payload.garmentImageUrl)
        else:
            raise HTTPException(status_code=400, detail="Provide garmentImage or garmentImageUrl.")

        result = await run_tryon(
            orchestrator,
            settings,
            user,
            garment,
            payload.garmentName,
            payload.garmentType,
            max_retries=payload.maxRetries,
            cleanup=payload.cleanup,
        )
    except TryOnError as e:
        logger.warning("Try-on request failed: %s", e)
        raise _http_error(e)

    return Response(
        content=result.image,
        media_type=result.mime_type,
        headers={
            "X-Tryon-Attempt": str(result.tryon.attempt),
            "X-Tryon-Validated": str(result.tryon.validated).lower(),
            "X-Tryon-Enhanced": str(result.enhanced).lower(),
        },
    )


@app.post("/style-recommendations", response_model=StyleRecommendations)
async def style_recommendations(
    payload: StylePayload,
    remote: RemoteCall = Depends(get_remote),
    settings: Settings = Depends(get_settings),
):
    source = garment_from_upload(_decode_b64(payload.garmentImage, "garmentImage"), payload.garmentMimeType)
    try:
        prepared = prepare_source(source, settings)
    except TryOnError as e:
        raise _http_error(e)
    return await get_style_recommendations(remote, prepared.to_part(), settings.style_model)


@app.post("/api/geminiHandler")
async def gemini_handler(payload: RelayPayload, settings: Settings = Depends(get_settings)):
    status, body = await forward_generation(settings, payload.endpoint, payload.payload)
    return JSONResponse(status_code=status, content=body)


@app.get("/api/diagnostics")
async def diagnostics(settings: Settings = Depends(get_settings)):
    key = settings.gemini_api_key or ""
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": {
            "REMOTE_MODE": settings.remote_mode,
            "GEMINI_API_KEY_EXISTS": bool(key),
            "GEMINI_API_KEY_LENGTH": len(key),
        },
        "runtime": {
            "pythonVersion": platform.python_version(),
            "platform": platform.platform(),
        },
    }


# --- 5. Run the Application ---
if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
