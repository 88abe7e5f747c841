"""Virtual try-on generation with bounded retries and an optional cleanup pass."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from vtryon.config import Settings
from vtryon.errors import (
    GenerationError,
    NoCandidateImageError,
    RetriesExhaustedError,
    ValidationFailure,
)
from vtryon.generation import DEFAULT_IMAGE_MODEL
from vtryon.parts import (
    GenerationConfig,
    GenerationRequest,
    InlineBinaryPart,
    Part,
    TextPart,
)
from vtryon.prompts import cleanup_prompt, tryon_prompt_for_attempt
from vtryon.remote import RemoteCall

logger = logging.getLogger(__name__)

TRYON_TEMPERATURE = 0.5


@dataclass(frozen=True)
class ProgressEvent:
    stage: str
    message: str
    attempt: Optional[int] = None
    detail: Dict[str, Any] = field(default_factory=dict)


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class GenerationAttempt:
    index: int
    prompt: str
    succeeded: bool = False
    parts: List[Part] = field(default_factory=list)
    error: Optional[GenerationError] = None
    # None means validation never ran because no image came back.
    validated: Optional[bool] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class TryOnResult:
    image: bytes
    mime_type: str
    prompt: str
    attempt_index: int
    validated: bool
    attempts: Tuple[GenerationAttempt, ...] = ()

    @property
    def attempt(self) -> int:
        """1-based number of the attempt that produced the image."""
        return self.attempt_index + 1


@dataclass(frozen=True)
class EnhancementResult:
    success: bool
    image: bytes
    mime_type: str
    enhanced: bool
    error: Optional[str] = None


def validate_tryon_result(original: bytes, result: bytes) -> bool:
    """A result byte-identical to the input means the garment was not applied."""
    return original != result


class TryOnOrchestrator:
    def __init__(
        self,
        remote: RemoteCall,
        model: str = DEFAULT_IMAGE_MODEL,
        max_retries: int = 2,
        backoff: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.remote = remote
        self.model = model
        self.max_retries = max_retries
        self.backoff = backoff
        self._sleep = sleep

    @classmethod
    def from_settings(cls, remote: RemoteCall, settings: Settings, **kwargs) -> "TryOnOrchestrator":
        return cls(
            remote,
            model=settings.image_model,
            max_retries=settings.max_retries,
            backoff=settings.retry_backoff,
            **kwargs,
        )

    async def generate_virtual_tryon(
        self,
        user_image: InlineBinaryPart,
        garment_image: InlineBinaryPart,
        garment_name: str,
        garment_type: str,
        max_retries: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> TryOnResult:
        """Run up to ``max_retries + 1`` attempts, escalating the instruction each time.

        Returns on the first result that differs from the user image. On the
        last attempt an unchanged result is accepted with ``validated=False``.
        Raises the last recorded error when no attempt yields an image.
        """
        budget = self.max_retries if max_retries is None else max_retries
        emit = progress or (lambda event: None)
        attempts: List[GenerationAttempt] = []
        last_error: Optional[GenerationError] = None

        for index in range(budget + 1):
            if index > 0:
                emit(ProgressEvent("retry.wait", f"Retrying with a stronger prompt in {self.backoff:g}s", index))
                await self._sleep(self.backoff)

            prompt = tryon_prompt_for_attempt(index, garment_name, garment_type)
            attempt = GenerationAttempt(index=index, prompt=prompt)
            attempts.append(attempt)
            logger.info("Virtual try-on attempt %d/%d", index + 1, budget + 1)
            emit(ProgressEvent("attempt.start", f"Attempt {index + 1} of {budget + 1}", index))

            request = GenerationRequest(
                parts=[TextPart(prompt), user_image, garment_image],
                config=GenerationConfig(temperature=TRYON_TEMPERATURE),
            )
            try:
                response = await self.remote.generate(self.model, request)
                attempt.parts = response.first_parts()
                image = response.first_inline_binary()
                if image is None:
                    raise NoCandidateImageError(f"Attempt {index + 1} returned no image")
            except GenerationError as e:
                logger.warning("Attempt %d failed: %s", index + 1, e)
                attempt.error = e
                last_error = e
                emit(ProgressEvent("attempt.end", f"Attempt {index + 1} failed", index, {"error": str(e)}))
                continue

            attempt.succeeded = True
            attempt.validated = validate_tryon_result(user_image.data, image.data)
            emit(ProgressEvent(
                "validation",
                "Clothing change detected" if attempt.validated else "No clothing change detected",
                index,
                {"validated": attempt.validated},
            ))

            if attempt.validated or index == budget:
                if not attempt.validated:
                    logger.warning("Accepting unvalidated result from final attempt %d", index + 1)
                emit(ProgressEvent("attempt.end", f"Attempt {index + 1} succeeded", index,
                                   {"validated": attempt.validated}))
                return TryOnResult(
                    image=image.data,
                    mime_type=image.mime_type,
                    prompt=prompt,
                    attempt_index=index,
                    validated=attempt.validated,
                    attempts=tuple(attempts),
                )

            logger.info("Attempt %d failed validation - result identical to input", index + 1)
            attempt.error = ValidationFailure(
                f"Try-on attempt {index + 1} failed - no clothing change detected"
            )
            last_error = attempt.error
            emit(ProgressEvent("attempt.end", f"Attempt {index + 1} rejected", index, {"validated": False}))

        raise last_error or RetriesExhaustedError("All virtual try-on attempts failed")

    async def cleanup(
        self,
        original_image: InlineBinaryPart,
        tryon_image: InlineBinaryPart,
        garment_name: str,
        progress: Optional[ProgressCallback] = None,
    ) -> EnhancementResult:
        """Single refinement pass; any failure returns the try-on image unchanged."""
        emit = progress or (lambda event: None)
        emit(ProgressEvent("cleanup.start", "Applying enhancement pass"))
        request = GenerationRequest(
            parts=[TextPart(cleanup_prompt(garment_name)), original_image, tryon_image],
        )
        try:
            response = await self.remote.generate(self.model, request)
            image = response.first_inline_binary()
            if image is None:
                raise NoCandidateImageError("Enhancement returned no image")
        except Exception as e:
            logger.warning("Enhancement failed, returning original result: %s", e)
            emit(ProgressEvent("cleanup.end", "Enhancement skipped", detail={"error": str(e)}))
            return EnhancementResult(
                success=False,
                image=tryon_image.data,
                mime_type=tryon_image.mime_type,
                enhanced=False,
                error=str(e),
            )

        emit(ProgressEvent("cleanup.end", "Enhancement applied"))
        return EnhancementResult(
            success=True,
            image=image.data,
            mime_type=image.mime_type,
            enhanced=True,
        )
