import json

import pytest

from vtryon.errors import TransportError
from vtryon.parts import InlineBinaryPart
from vtryon.prompts import GARMENT_ANALYSIS_PROMPT
from vtryon.styling import (
    extract_json_object,
    fallback_recommendations,
    get_style_recommendations,
    parse_garment_analysis,
)

from tests.helpers import ScriptedRemote, text_response

GARMENT = InlineBinaryPart(b"garment", "image/jpeg")

RECOMMENDATIONS = {
    "summary": {"style": "Relaxed Casual", "compatibility": "88%", "season": "Spring", "rating": 4.2},
    "styling_tips": [{"icon": "👟", "tip": "Wear with white sneakers"}],
    "color_matches": [{"color": "Navy", "hex": "#000080", "description": "Calm contrast"}],
    "occasions": ["Brunch", "Weekend"],
    "care_instructions": [{"icon": "🧺", "instruction": "Machine wash cold"}],
    "key_features": ["Breathable cotton"],
}


@pytest.mark.parametrize("text, expected", [
    ("shirt|blue|casual", ("shirt", "blue", "casual")),
    ("  dress | red | evening \n", ("dress", "red", "evening")),
    ("jacket|black", ("jacket", "black", "")),
    ("", ("", "", "")),
])
def test_parse_garment_analysis(text, expected):
    assert parse_garment_analysis(text) == expected


def test_extract_json_from_fenced_answer():
    text = "Sure!\n```json\n" + json.dumps(RECOMMENDATIONS) + "\n```"
    assert extract_json_object(text)["occasions"] == ["Brunch", "Weekend"]


def test_extract_json_rejects_prose():
    with pytest.raises(ValueError):
        extract_json_object("I cannot help with that.")


@pytest.mark.asyncio
async def test_recommendations_from_model():
    remote = ScriptedRemote([
        text_response("t-shirt|white|casual"),
        text_response("Here you go: " + json.dumps(RECOMMENDATIONS)),
    ])
    result = await get_style_recommendations(remote, GARMENT, "style-model")

    assert result.fallback is False
    assert result.summary.style == "Relaxed Casual"
    assert result.summary.rating == "4.2"
    assert result.styling_tips[0].tip == "Wear with white sneakers"
    assert remote.models == ["style-model", "style-model"]

    analysis, styling = remote.requests
    assert analysis.parts[0].text == GARMENT_ANALYSIS_PROMPT
    assert analysis.parts[1] == GARMENT
    assert "t-shirt" in styling.parts[0].text and "white" in styling.parts[0].text


@pytest.mark.asyncio
async def test_transport_failure_uses_fallback():
    remote = ScriptedRemote([TransportError("HTTP 503: busy", status_code=503)])
    result = await get_style_recommendations(remote, GARMENT, "style-model")
    assert result == fallback_recommendations()
    assert result.fallback is True


@pytest.mark.asyncio
async def test_unparseable_answer_uses_fallback():
    remote = ScriptedRemote([text_response("coat|grey|formal"), text_response("no json here")])
    result = await get_style_recommendations(remote, GARMENT, "style-model")
    assert result.fallback is True
    assert result.summary.style == "Classic Elegant"
