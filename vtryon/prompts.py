# Instruction text sent to the image model. The wording is tunable; what the
# orchestrator relies on is that each retry tier is distinct and stronger.


def tryon_prompt_baseline(garment_name, garment_type):
    return f"""
VIRTUAL CLOTHING REPLACEMENT: Replace the person's current outfit with the {garment_name} while keeping everything else identical.

IMAGES PROVIDED:
1. PERSON PHOTO (first image): the person in their current clothing and environment.
2. TARGET GARMENT (second image): the {garment_name}, a {garment_type} to be applied.

IMAGE SEPARATION:
- FROM IMAGE 1: use everything (person, pose, background, lighting, setting).
- FROM IMAGE 2: use ONLY the {garment_name} itself.
- IGNORE any background, architecture or environment visible in image 2.

BACKGROUND PRESERVATION (HIGHEST PRIORITY):
- Keep the background, walls, floor, lighting and atmosphere of the first image exactly.
- The person stays in their original room.

CLOTHING REPLACEMENT:
- Remove only the clothing the {garment_name} replaces.
- Match the garment's color, pattern and texture exactly.
- Fit it naturally with realistic draping and fabric behavior.

PRESERVE:
- Face, hair, skin tone and body proportions.
- Framing and composition of the original photo.

GARMENT EXTRACTION:
- Transfer only the garment's visual properties (texture, color, fit, style).
- Do not transfer lighting or setting from the second image.

RESULT: A photorealistic portrait of the same person wearing the {garment_name} in their exact original setting.
"""


def tryon_prompt_strict(garment_name, garment_type):
    return f"""
RETRY 2: STRICT IMAGE SEPARATION

The previous attempt did not change the clothing or mixed elements from both images.

1. FIRST IMAGE: copy EVERYTHING from it (person, background, lighting, room).
2. SECOND IMAGE: extract ONLY the {garment_name} ({garment_type}); ignore everything else.
3. No stairs, railings, furniture, architecture or backdrop from the second image.
4. The person remains in exactly the same setting as the first image.

REQUIREMENTS:
- The person MUST visibly wear the {garment_name}. Returning the first image unchanged is a failure.
- Zero background contamination from the second image.
- Same lighting direction and atmosphere as the first image.

GOAL: The person from the first image wearing the {garment_name}, in their original room.
"""


def tryon_prompt_final(garment_name, garment_type):
    return f"""
FINAL ATTEMPT: ABSOLUTE IMAGE SEPARATION

Previous attempts failed. Follow these rules with no exceptions.

FOUNDATION = FIRST IMAGE: 100% of the environment, background, lighting and person come from it.
GARMENT = SECOND IMAGE: take ONLY the {garment_name} fabric, color, pattern and cut. Nothing else.
The second image's background must not appear anywhere in the result.

MANDATORY CHANGE:
- The clothing on the person MUST be replaced by the {garment_name} ({garment_type}).
- An output identical to the first image is a failure.

SUCCESS CRITERIA:
- BACKGROUND: identical to the first image.
- GARMENT: the {garment_name} from the second image, fitted to the person's pose.
- IDENTITY: same face, hair and body.
"""


TRYON_PROMPT_TIERS = (tryon_prompt_baseline, tryon_prompt_strict, tryon_prompt_final)


def tryon_prompt_for_attempt(attempt, garment_name, garment_type):
    """Instruction for a 0-based attempt index; attempts past 2 reuse the final tier."""
    tier = TRYON_PROMPT_TIERS[min(attempt, len(TRYON_PROMPT_TIERS) - 1)]
    return tier(garment_name, garment_type)


def cleanup_prompt(garment_name):
    return f"""
ENHANCEMENT PASS: Refine this virtual try-on result while preserving background and setting.

The first image is the original photo of the person. The second image is the try-on result to refine.

PRESERVATION (HIGHEST PRIORITY):
- Keep the background, setting and environment of the original photo exactly.
- Keep the original lighting direction and room atmosphere.
- Do not introduce architectural or environmental elements.

REFINEMENT:
1. Naturalize skin tones while preserving identity.
2. Perfect the draping of the {garment_name}; neckline, waistline and hemline should sit cleanly.
3. Blend garment edges with the body and add natural contact shadows.
4. Remove segmentation artifacts.

PROHIBITIONS:
- Do not change the background or setting.
- Do not alter the person's face, hair or body proportions.

RESULT: The same image, with a cleaner and more natural fit of the {garment_name}.
"""


GARMENT_ANALYSIS_PROMPT = "Identify the garment type, main color, and style. Return only: type|color|style"


def style_recommendations_prompt(garment_type, garment_color, garment_style):
    return f"""
Analyze this {garment_type} and provide styling recommendations in JSON format.

Garment details:
- Type: {garment_type}
- Color: {garment_color}
- Style: {garment_style}

Return ONLY valid JSON in this exact structure:
{{
  "summary": {{
    "style": "max 3 words",
    "compatibility": "percentage",
    "season": "suitable seasons",
    "rating": "number out of 5"
  }},
  "styling_tips": [{{"icon": "emoji", "tip": "one line tip"}}],
  "color_matches": [{{"color": "name", "hex": "#code", "description": "2-3 words"}}],
  "occasions": ["occasion1", "occasion2"],
  "care_instructions": [{{"icon": "emoji", "instruction": "short instruction"}}],
  "key_features": ["feature1", "feature2", "feature3"]
}}

At most 5 styling tips, 5 colors, 8 occasions and 6 care instructions.
Keep all text concise. Use fashion industry standard terms.
"""
