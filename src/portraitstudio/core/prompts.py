"""Instruction text sent to the analysis and image models.

The analysis instruction asks the model for a character profile and four
planned prompts split into two sets.  Each generation call then sends one
planned prompt followed by a fixed suffix that restates the constraints the
image model tends to drift away from (likeness, expression, realism).

Usage
-----
::

    compiled = build_generation_prompt(planned)
"""

from __future__ import annotations

from .plan import PlannedPrompt

# ---------------------------------------------------------------------------
# Fixed instruction sections.  Per-portrait variation comes from the plan.
# ---------------------------------------------------------------------------

ANALYSIS_INSTRUCTIONS = """Role: Advanced realistic portrait photography application.

Task: Analyze the character features of the uploaded photo. Extract a precise
description of the face shape contour, facial feature proportions and
hairstyle characteristics.

Output a JSON plan for a photoshoot with these requirements:

1. Analysis fields:
   - "face_shape": precise description of the face shape contour.
   - "hairstyle": precise description of the hairstyle (volume, length, colour).
   - "outfit": one realistic fashion outfit that suits the style of the photo.

2. "prompts": an array of exactly 4 image prompts.

Rules for every prompt:
- Face and hairstyle lock: never change the original face or hair.
- Expression: no laughing and no visible teeth. Keep a cool, natural,
  relaxed or subtle expression.
- Realism: no cyberpunk styling, no artificial look, no heavy skin smoothing.
  Use realistic texture, visible skin pores, natural lighting, 8k resolution,
  shot on a full-frame mirrorless camera.
- Consistent clothing: all four photos show the exact outfit from "outfit".

Sets:
- Prompt 1: set 1 (location A, outdoor), medium shot, front view.
- Prompt 2: set 1 (location A, outdoor), close-up, side view.
- Prompt 3: set 2 (location B, indoor), full-body shot from a high or low angle.
- Prompt 4: set 2 (location B, indoor), looking-back angle.

Schema:
{
  "face_shape": "string",
  "hairstyle": "string",
  "outfit": "string",
  "prompts": [
    {"set": 1, "text": "full prompt", "caption": "Set 1: Medium Shot - Front View"},
    {"set": 1, "text": "full prompt", "caption": "Set 1: Close-up - Side View"},
    {"set": 2, "text": "full prompt", "caption": "Set 2: Full-body - Low/High Angle"},
    {"set": 2, "text": "full prompt", "caption": "Set 2: Looking-back Angle"}
  ]
}"""

GENERATION_SUFFIX = (
    "Ensure exact facial likeness. Expression must be cool/subtle (NO TEETH/LAUGHING). "
    "Shot on a full-frame camera, 85mm lens, photorealistic, 8k, "
    "highly detailed skin texture."
)

# Label shown in the analysis panel; the expression is fixed by the rules above.
EXPRESSION_SETTING = "Naturally cool (no laughing allowed)"


def build_generation_prompt(planned: PlannedPrompt) -> str:
    """Compile the text part of a generation call.

    Args:
        planned: The plan item to render.

    Returns:
        The plan text followed by the fixed realism suffix.
    """
    return f"{planned.text.strip()} . {GENERATION_SUFFIX}"
