"""End-to-end try-on: validate uploads, prepare both images, generate, clean up."""

import logging
from dataclasses import dataclass
from typing import Optional

from vtryon.config import Settings
from vtryon.garments import ImageSource
from vtryon.orchestrator import (
    EnhancementResult,
    ProgressCallback,
    ProgressEvent,
    TryOnOrchestrator,
    TryOnResult,
)
from vtryon.parts import InlineBinaryPart
from vtryon.pipeline import PreparedImage, prepare_image, validate_upload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowResult:
    tryon: TryOnResult
    enhancement: Optional[EnhancementResult] = None

    @property
    def image(self) -> bytes:
        return self.enhancement.image if self.enhancement else self.tryon.image

    @property
    def mime_type(self) -> str:
        return self.enhancement.mime_type if self.enhancement else self.tryon.mime_type

    @property
    def enhanced(self) -> bool:
        return bool(self.enhancement and self.enhancement.enhanced)


def prepare_source(
    source: ImageSource,
    settings: Settings,
    progress: Optional[ProgressCallback] = None,
) -> PreparedImage:
    emit = progress or (lambda event: None)
    validate_upload(source.data, source.mime_type, settings.max_upload_bytes)
    emit(ProgressEvent("prepare.start", f"Preparing {source.filename}"))
    prepared = prepare_image(source.data, source.filename, settings)
    emit(ProgressEvent(
        "prepare.end",
        f"Prepared {prepared.filename}",
        detail={"width": prepared.width, "height": prepared.height,
                "bytes": prepared.size, "enhanced": prepared.enhanced},
    ))
    return prepared


async def run_tryon(
    orchestrator: TryOnOrchestrator,
    settings: Settings,
    user: ImageSource,
    garment: ImageSource,
    garment_name: str,
    garment_type: str,
    max_retries: Optional[int] = None,
    cleanup: bool = False,
    progress: Optional[ProgressCallback] = None,
) -> WorkflowResult:
    """Prepare the user photo then the garment, run the retry session, and
    optionally a cleanup pass against the prepared user photo.

    Both uploads are validated before either is prepared."""
    for source in (user, garment):
        validate_upload(source.data, source.mime_type, settings.max_upload_bytes)
    user_part = prepare_source(user, settings, progress).to_part()
    garment_part = prepare_source(garment, settings, progress).to_part()

    tryon = await orchestrator.generate_virtual_tryon(
        user_part,
        garment_part,
        garment_name,
        garment_type,
        max_retries=max_retries,
        progress=progress,
    )
    logger.info("Try-on finished on attempt %d (validated=%s)", tryon.attempt, tryon.validated)
    if not cleanup:
        return WorkflowResult(tryon=tryon)

    enhancement = await orchestrator.cleanup(
        user_part,
        InlineBinaryPart(data=tryon.image, mime_type=tryon.mime_type),
        garment_name,
        progress=progress,
    )
    return WorkflowResult(tryon=tryon, enhancement=enhancement)
