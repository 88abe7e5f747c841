"""Shared test doubles and image builders."""

from io import BytesIO
from typing import List

import numpy as np
from PIL import Image

from vtryon.parts import GenerationRequest, GenerationResponse, InlineBinaryPart, TextPart
from vtryon.remote import RemoteCall


class ScriptedRemote(RemoteCall):
    """RemoteCall that replays a script of responses or exceptions, one per call."""

    def __init__(self, script, timeout: float = 5.0):
        super().__init__(timeout=timeout)
        self.script = list(script)
        self.models: List[str] = []
        self.requests: List[GenerationRequest] = []

    async def _send(self, model, request):
        self.models.append(model)
        self.requests.append(request)
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return await step(request)
        return step


def image_response(data: bytes, mime_type: str = "image/png") -> GenerationResponse:
    return GenerationResponse(candidates=[[TextPart("Here is the result."), InlineBinaryPart(data, mime_type)]])


def text_response(text: str) -> GenerationResponse:
    return GenerationResponse(candidates=[[TextPart(text)]])


def make_image_bytes(width=64, height=48, color=(200, 140, 100), fmt="JPEG", mode="RGB") -> bytes:
    if mode == "RGBA" and len(color) == 3:
        color = tuple(color) + (255,)
    buf = BytesIO()
    Image.new(mode, (width, height), color).save(buf, fmt)
    return buf.getvalue()


def make_noise_bytes(width, height, fmt="JPEG", seed=0, quality=95) -> bytes:
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    buf = BytesIO()
    options = {"quality": quality} if fmt == "JPEG" else {}
    Image.fromarray(pixels, "RGB").save(buf, fmt, **options)
    return buf.getvalue()


async def no_sleep(_seconds):
    return None


