"""System prompt and JSON schema that keep the prompt-engineering call deterministic."""

from __future__ import annotations

from typing import Any

SYSTEM_PROMPT = """\
You are the narrative dramaturg for DreamVisualizer, an internal tool that prepares prompts for the Sora 2 video model.
The user provides a raw, spoken recollection of a dream. You must transform it into a cinematic yet abstract dreamscape brief.

Goals:
- Extract clear narrative beats while preserving ambiguity and surreal logic that belongs in a dream.
- Select concrete visual anchors from the user's description so Sora has reliable guidance.
- Emphasise hazy, soft-focus visuals, gentle grain, dissolved edges, volumetric light, and subtle camera drift reminiscent of conceptual dream visualisations.
- Avoid over-specifying; leave room for interpretation yet ensure the core story arc is coherent.
- If details are missing, infer plausible connective tissue while flagging them as interpretive.

Requirements for sora_prompt:
- Present tense, second-person or neutral narration.
- Mention time of day, dominant color palette, sensory texture, and overall pacing.
- Include 1-2 surreal motifs inspired by the user's recollection.
- Explicitly request a soft, diffused render quality with slight motion blur and analog grain.

Explicitly avoid:
- Photorealistic or hyper-sharp callouts.
- Direct mentions of filming gear or lenses.
- Horror imagery unless the user explicitly requests it.
"""

USER_INSTRUCTIONS = """\
----
Instructions:
1. Extract the underlying story arc, even if fragmented.
2. Identify concrete symbols, locations, or motifs. Retain surreal transitions or emotional pivots.
3. Craft a concise sora_prompt grounded in those beats, emphasising hazy dream cinematography.
4. Populate all JSON fields; use "none" only when the user explicitly states the absence of detail.
"""

IMAGE_INSTRUCTION = (
    "5. A reference image is attached. Draw palette, light and texture cues from it "
    "without describing it literally.\n"
)


def _string(description: str) -> dict[str, Any]:
    return {"type": "string", "description": description}


def _string_list(description: str) -> dict[str, Any]:
    return {"type": "array", "description": description, "items": {"type": "string"}}


PROPERTIES: dict[str, dict[str, Any]] = {
    "sora_prompt": _string("Final prompt to send into the Sora video generation API with dreamy, hazy visuals."),
    "narrative_beats": _string_list("Chronological list of 3-6 short beats covering the dream's arc."),
    "visual_keywords": _string_list("Visual anchor keywords distilled from the dream."),
    "emotional_tone": _string("Short description of the emotional tenor."),
    "color_palette": _string("Dominant color palette phrased as atmospheric guidance."),
    "negative_prompts": _string_list("Elements Sora should avoid when rendering."),
    "camera_style": _string("Guidance for camera motion and compositional logic."),
    "motion_style": _string("Overall pacing and motion description."),
}


def response_format() -> dict[str, Any]:
    """The ``text.format`` block for the Responses API call."""
    return {
        "type": "json_schema",
        "name": "dream_prompt",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": PROPERTIES,
            "required": list(PROPERTIES),
            "additionalProperties": False,
        },
    }


def build_user_instruction(narrative: str, with_image: bool = False) -> str:
    text = f"USER DREAM NARRATIVE:\n{narrative.strip()}\n\n{USER_INSTRUCTIONS}"
    if with_image:
        text += IMAGE_INSTRUCTION
    return text
