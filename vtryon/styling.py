"""AI styling commentary for a garment, with a fixed fallback."""

import json
import logging
import re
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from vtryon.errors import GenerationError
from vtryon.generation import generate_content_with_image, generate_text
from vtryon.parts import InlineBinaryPart
from vtryon.prompts import GARMENT_ANALYSIS_PROMPT, style_recommendations_prompt
from vtryon.remote import RemoteCall

logger = logging.getLogger(__name__)


class StyleSummary(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    style: str = ""
    compatibility: str = ""
    season: str = ""
    rating: str = ""


class StylingTip(BaseModel):
    icon: str = ""
    tip: str


class ColorMatch(BaseModel):
    color: str
    hex: str = ""
    description: str = ""


class CareInstruction(BaseModel):
    icon: str = ""
    instruction: str


class StyleRecommendations(BaseModel):
    summary: StyleSummary = Field(default_factory=StyleSummary)
    styling_tips: List[StylingTip] = Field(default_factory=list)
    color_matches: List[ColorMatch] = Field(default_factory=list)
    occasions: List[str] = Field(default_factory=list)
    care_instructions: List[CareInstruction] = Field(default_factory=list)
    key_features: List[str] = Field(default_factory=list)
    fallback: bool = False


def fallback_recommendations() -> StyleRecommendations:
    return StyleRecommendations(
        summary=StyleSummary(style="Classic Elegant", compatibility="92%", season="All Seasons", rating="4.5/5"),
        styling_tips=[
            StylingTip(icon="👠", tip="Pair with nude heels for an elongated silhouette"),
            StylingTip(icon="💍", tip="Add delicate gold jewelry for sophistication"),
            StylingTip(icon="👜", tip="Complete with a small clutch or chain bag"),
        ],
        color_matches=[
            ColorMatch(color="Gold", hex="#FFD700", description="Perfect match"),
            ColorMatch(color="Nude", hex="#F5DEB3", description="Elegant"),
            ColorMatch(color="Black", hex="#000000", description="Classic"),
        ],
        occasions=["Cocktail Party", "Formal Dinner", "Wedding Guest", "Date Night"],
        care_instructions=[
            CareInstruction(icon="🌡️", instruction="30°C Wash"),
            CareInstruction(icon="🚫", instruction="No Bleach"),
            CareInstruction(icon="♨️", instruction="Low Iron"),
        ],
        key_features=["Versatile styling", "Timeless design", "Premium quality"],
        fallback=True,
    )


def parse_garment_analysis(text: str) -> Tuple[str, str, str]:
    """Split a ``type|color|style`` answer; missing fields come back empty."""
    fields = [f.strip() for f in text.strip().split("|")]
    fields += [""] * (3 - len(fields))
    return fields[0], fields[1], fields[2]


def extract_json_object(text: str) -> dict:
    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        raise ValueError("Invalid JSON response")
    return json.loads(match.group(0))


async def get_style_recommendations(
    remote: RemoteCall,
    garment_image: InlineBinaryPart,
    model: str,
) -> StyleRecommendations:
    try:
        analysis = await generate_content_with_image(remote, GARMENT_ANALYSIS_PROMPT, garment_image, model)
        garment_type, color, style = parse_garment_analysis(analysis)
        text = await generate_text(remote, style_recommendations_prompt(garment_type, color, style), model)
        return StyleRecommendations.model_validate(extract_json_object(text))
    except (GenerationError, ValueError) as e:
        logger.warning("Style recommendations failed, using fallback: %s", e)
        return fallback_recommendations()
