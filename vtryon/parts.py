"""Generation parts and the REST wire format used by the relay.

A request is an ordered list of parts, each either text or an inline binary
blob. The same shapes come back in every response candidate.
"""

import base64
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

from vtryon.errors import TransportError


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class InlineBinaryPart:
    data: bytes
    mime_type: str

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


Part = Union[TextPart, InlineBinaryPart]


@dataclass(frozen=True)
class GenerationConfig:
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_output_tokens: Optional[int] = None

    def with_defaults(self, temperature: float = 0.5) -> "GenerationConfig":
        if self.temperature is None:
            return replace(self, temperature=temperature)
        return self

    def as_sdk_dict(self) -> Dict[str, Any]:
        values = {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "top_k": self.top_k,
            "max_output_tokens": self.max_output_tokens,
        }
        return {k: v for k, v in values.items() if v is not None}

    def as_rest_dict(self) -> Dict[str, Any]:
        values = {
            "temperature": self.temperature,
            "topP": self.top_p,
            "topK": self.top_k,
            "maxOutputTokens": self.max_output_tokens,
        }
        return {k: v for k, v in values.items() if v is not None}


@dataclass(frozen=True)
class GenerationRequest:
    parts: List[Part]
    config: GenerationConfig = field(default_factory=GenerationConfig)


@dataclass(frozen=True)
class GenerationResponse:
    candidates: List[List[Part]] = field(default_factory=list)

    def first_parts(self) -> List[Part]:
        return self.candidates[0] if self.candidates else []

    def first_inline_binary(self) -> Optional[InlineBinaryPart]:
        for part in self.first_parts():
            if isinstance(part, InlineBinaryPart):
                return part
        return None

    def first_text(self) -> Optional[str]:
        for part in self.first_parts():
            if isinstance(part, TextPart):
                return part.text
        return None


def part_to_rest(part: Part) -> Dict[str, Any]:
    if isinstance(part, TextPart):
        return {"text": part.text}
    if isinstance(part, InlineBinaryPart):
        return {"inlineData": {"mimeType": part.mime_type, "data": part.to_base64()}}
    raise TypeError(f"Unknown part type: {type(part).__name__}")


def part_to_sdk(part: Part) -> Union[str, Dict[str, Any]]:
    if isinstance(part, TextPart):
        return part.text
    if isinstance(part, InlineBinaryPart):
        return {"mime_type": part.mime_type, "data": part.data}
    raise TypeError(f"Unknown part type: {type(part).__name__}")


def request_to_rest(request: GenerationRequest) -> Dict[str, Any]:
    """Encode a request as a generateContent JSON payload."""
    payload: Dict[str, Any] = {
        "contents": [{"parts": [part_to_rest(p) for p in request.parts]}],
    }
    config = request.config.as_rest_dict()
    if config:
        payload["generationConfig"] = config
    return payload


def _part_from_rest(raw: Dict[str, Any]) -> Optional[Part]:
    inline = raw.get("inlineData")
    if inline and inline.get("data"):
        return InlineBinaryPart(
            data=base64.b64decode(inline["data"]),
            mime_type=inline.get("mimeType") or "image/png",
        )
    if "text" in raw:
        return TextPart(raw["text"])
    return None


def response_from_rest(body: Any) -> GenerationResponse:
    """Decode a generateContent JSON body. Unknown part kinds are dropped.

    A body of the wrong shape, or with undecodable inline data, raises
    TransportError so callers treat it like any other failed call.
    """
    candidates = []
    try:
        for candidate in body.get("candidates") or []:
            content = candidate.get("content") or {}
            parts = []
            for raw in content.get("parts") or []:
                part = _part_from_rest(raw)
                if part is not None:
                    parts.append(part)
            candidates.append(parts)
    except (AttributeError, TypeError, KeyError, ValueError) as e:
        raise TransportError(f"Unexpected response format: {e}") from e
    return GenerationResponse(candidates=candidates)
