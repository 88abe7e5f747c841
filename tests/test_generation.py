import pytest

from vtryon.errors import NoCandidateImageError, TransportError
from vtryon.generation import (
    generate_content_with_image,
    generate_image,
    generate_text,
    generate_with_config,
)
from vtryon.parts import GenerationResponse, InlineBinaryPart, TextPart

from tests.helpers import ScriptedRemote, image_response, text_response


@pytest.mark.asyncio
async def test_generate_text_returns_first_text():
    remote = ScriptedRemote([text_response("A linen shirt.")])
    assert await generate_text(remote, "Describe it", model="text-model") == "A linen shirt."
    assert remote.models == ["text-model"]
    assert remote.requests[0].config.temperature == 0.5


@pytest.mark.asyncio
async def test_generate_text_without_text_part_fails():
    remote = ScriptedRemote([GenerationResponse(candidates=[[InlineBinaryPart(b"img", "image/png")]])])
    with pytest.raises(TransportError, match="Unexpected response format"):
        await generate_text(remote, "Describe it")


@pytest.mark.asyncio
async def test_generate_content_with_image_sends_prompt_then_image():
    remote = ScriptedRemote([text_response("dress|red|evening")])
    image = InlineBinaryPart(b"jpeg", "image/jpeg")
    result = await generate_content_with_image(remote, "What is it?", image)

    assert result == "dress|red|evening"
    assert remote.requests[0].parts == [TextPart("What is it?"), image]


@pytest.mark.asyncio
async def test_generate_with_config_defaults_and_overrides():
    remote = ScriptedRemote([text_response("ok"), text_response("ok")])
    await generate_with_config(remote, "p")
    await generate_with_config(remote, "p", temperature=0.9, top_k=5)

    first, second = (r.config for r in remote.requests)
    assert (first.temperature, first.top_p, first.top_k, first.max_output_tokens) == (0.5, 0.8, 40, 1024)
    assert (second.temperature, second.top_k) == (0.9, 5)


@pytest.mark.asyncio
async def test_generate_image_returns_inline_part():
    remote = ScriptedRemote([image_response(b"pixels", "image/webp")])
    image = await generate_image(remote, "a jacket")
    assert image == InlineBinaryPart(b"pixels", "image/webp")


@pytest.mark.asyncio
async def test_generate_image_without_image_fails():
    remote = ScriptedRemote([text_response("I cannot draw that.")])
    with pytest.raises(NoCandidateImageError):
        await generate_image(remote, "a jacket")
