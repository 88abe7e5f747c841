import pytest

from vtryon import workflow
from vtryon.config import Settings
from vtryon.errors import FileTooLargeError, UnsupportedFileTypeError
from vtryon.garments import ImageSource
from vtryon.orchestrator import TryOnOrchestrator
from vtryon.parts import InlineBinaryPart
from vtryon.workflow import prepare_source, run_tryon

from tests.helpers import ScriptedRemote, image_response, make_image_bytes, no_sleep, text_response


def _user():
    return ImageSource(make_image_bytes(90, 120), "image/jpeg", "person.jpg")


def _garment():
    return ImageSource(make_image_bytes(60, 60, color=(20, 40, 160), fmt="PNG"), "image/png", "garment.png")


def _orchestrator(script):
    return TryOnOrchestrator(ScriptedRemote(script), model="image-model", sleep=no_sleep)


def test_prepare_source_validates_before_work(settings):
    with pytest.raises(UnsupportedFileTypeError):
        prepare_source(ImageSource(b"%PDF", "application/pdf", "doc.pdf"), settings)
    small = Settings(max_upload_bytes=10)
    with pytest.raises(FileTooLargeError):
        prepare_source(_user(), small)


def test_prepare_source_reports_progress(settings):
    events = []
    prepared = prepare_source(_garment(), settings, events.append)

    assert [e.stage for e in events] == ["prepare.start", "prepare.end"]
    assert events[1].detail == {
        "width": 60, "height": 60, "bytes": prepared.size, "enhanced": True,
    }
    assert prepared.mime_type == "image/jpeg"


@pytest.mark.asyncio
async def test_run_tryon_sends_prepared_images(settings):
    orchestrator = _orchestrator([image_response(b"dressed")])
    result = await run_tryon(orchestrator, settings, _user(), _garment(), "blue tee", "top")

    assert result.image == b"dressed"
    assert result.mime_type == "image/png"
    assert result.enhanced is False
    assert result.enhancement is None

    parts = orchestrator.remote.requests[0].parts
    assert parts[1].mime_type == "image/jpeg"
    assert parts[2].mime_type == "image/jpeg"
    assert parts[1].data != _user().data


@pytest.mark.asyncio
async def test_run_tryon_without_enhancement_uses_compression():
    settings = Settings(gemini_api_key="k", enhance_images=False)
    orchestrator = _orchestrator([image_response(b"dressed")])
    events = []
    await run_tryon(orchestrator, settings, _user(), _garment(), "blue tee", "top", progress=events.append)

    prepared = [e.detail for e in events if e.stage == "prepare.end"]
    assert [d["enhanced"] for d in prepared] == [False, False]


@pytest.mark.asyncio
async def test_cleanup_uses_prepared_user_and_tryon(settings):
    orchestrator = _orchestrator([image_response(b"dressed"), image_response(b"polished", "image/jpeg")])
    result = await run_tryon(orchestrator, settings, _user(), _garment(), "blue tee", "top", cleanup=True)

    assert result.image == b"polished"
    assert result.mime_type == "image/jpeg"
    assert result.enhanced is True
    assert result.tryon.image == b"dressed"

    first, second = orchestrator.remote.requests
    assert second.parts[1] == first.parts[1]
    assert second.parts[2] == InlineBinaryPart(b"dressed", "image/png")


@pytest.mark.asyncio
async def test_failed_cleanup_keeps_tryon_image(settings):
    orchestrator = _orchestrator([image_response(b"dressed"), text_response("cannot")])
    result = await run_tryon(orchestrator, settings, _user(), _garment(), "blue tee", "top", cleanup=True)

    assert result.image == b"dressed"
    assert result.enhanced is False
    assert result.enhancement.error


@pytest.mark.asyncio
@pytest.mark.parametrize("garment", [
    ImageSource(b"%PDF-1.7", "application/pdf", "lookbook.pdf"),
    ImageSource(b"x" * 2048, "image/jpeg", "huge.jpg"),
])
async def test_bad_garment_rejected_before_any_preparation(monkeypatch, garment):
    prepared = []

    def record(data, filename, settings):
        prepared.append(filename)
        raise AssertionError("no image should be prepared")

    monkeypatch.setattr(workflow, "prepare_image", record)
    settings = Settings(gemini_api_key="k", max_upload_bytes=1024)
    user = ImageSource(b"u" * 100, "image/jpeg", "person.jpg")
    orchestrator = _orchestrator([])

    with pytest.raises((UnsupportedFileTypeError, FileTooLargeError)):
        await run_tryon(orchestrator, settings, user, garment, "blue tee", "top")
    assert prepared == []
    assert orchestrator.remote.requests == []
