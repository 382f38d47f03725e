"""Prompt assembly from admin-configurable templates."""

import logging
import re
from typing import Dict, List, Optional, Any, Union

from src.core.models import (
    DisplayMode,
    ModelDisplayRequest,
    ProductDisplayRequest,
    PromptTemplateSet,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

SCENE_FALLBACK = "automatically determined"

MODEL_MODE_KEYS = ("gender", "ageGroup", "ethnicity", "pose", "composition")
PRODUCT_MODE_KEYS = ("productForm", "productFocus", "productBackground")

DEFAULT_PROMPT_TEMPLATES = PromptTemplateSet(
    main_prompt="""TASK: Professional children's clothing commercial photography.

INSTRUCTIONS: Analyze the reference clothing images and the scene settings:
1. **SCENE**: Match the scene to the clothing's style{{scene}} (Automatically select or refine the most suitable scene)
2. **ATMOSPHERE**: Ensure the lighting and colors complement the clothing's aesthetic.

STYLE: {{style}}
QUALITY: {{quality}} - extremely high detail, commercial catalog quality.

{{mode_prompt}}

{{scene_guidance}}

{{custom_prompt}}

CRITICAL IDENTITY RULES:
1. IF A MODEL IMAGE IS PROVIDED: You MUST maintain 100% facial identity consistency. The child in the generated image must be the EXACT SAME PERSON as in the model photo. Capture every detail: eye shape, nose structure, lip curve, eyebrow thickness, and hair texture.
2. The generated child must look like they walked directly from the model photo into this new scene.
Render the clothing with accurate colors, patterns, and fabric texture. The background, lighting, and atmosphere should match the overall style.""",
    model_mode_prompt="""MODE: ON-MODEL PROFESSIONAL PHOTOSHOOT
IDENTITY: ABSOLUTE CONSISTENCY REQUIRED. Use the attached model photo as the ONLY reference for the child's identity, face, and hair.
MODEL DETAILS: {{gender}} child, age {{ageGroup}}, {{ethnicity}} heritage.
POSE & EMOTION: {{pose}}
COMPOSITION: {{composition}}""",
    product_mode_prompt="""MODE: PRODUCT DISPLAY (STILL LIFE)
FORM: {{productForm}}
FOCUS: {{productFocus}}
BACKGROUND: {{productBackground}}""",
    scene_guidance="""SCENE: {{scene}}
Scene should match the clothing's style. Lighting, colors, and atmosphere should complement the clothing design.""",
    quality_guidance="""QUALITY: {{quality}}
Use extremely high detail, commercial catalog quality standards.""",
    additional_guidance="ADDITIONAL DETAILS: {{customPrompt}}",
)

REQUIRED_TEMPLATE_FIELDS = (
    "main_prompt",
    "model_mode_prompt",
    "product_mode_prompt",
    "quality_guidance",
)


def render_template(template: str, values: Dict[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders in a single pass.

    Placeholders without a value are left verbatim; substituted values are
    never rescanned.

    Args:
        template: Template text
        values: Placeholder name to replacement text

    Returns:
        The rendered text
    """
    def _replace(match: "re.Match[str]") -> str:
        return values.get(match.group(1), match.group(0))

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def find_unresolved_placeholders(text: str) -> List[str]:
    """List placeholder names still present in ``text``, in order of appearance."""
    seen: List[str] = []
    for name in PLACEHOLDER_PATTERN.findall(text):
        if name not in seen:
            seen.append(name)
    return seen


def _mode_values(params: Union[ModelDisplayRequest, ProductDisplayRequest]) -> Dict[str, str]:
    values = {key: "" for key in MODEL_MODE_KEYS + PRODUCT_MODE_KEYS}
    if isinstance(params, ModelDisplayRequest):
        values.update({
            "gender": params.gender,
            "ageGroup": params.age_group,
            "ethnicity": params.ethnicity,
            "pose": params.pose,
            "composition": params.composition,
        })
    else:
        values.update({
            "productForm": params.product_form,
            "productFocus": params.product_focus,
            "productBackground": params.product_background,
        })
    return values


def build_prompt(
    params: Union[ModelDisplayRequest, ProductDisplayRequest],
    templates: PromptTemplateSet,
) -> str:
    """Build the instruction text sent to the image model.

    The mode sub-template is chosen by display mode and filled with that
    mode's fields only. Scene and custom-text guidance render to empty
    strings when their inputs are empty. Everything is then substituted into
    the main template, with the scene falling back to
    ``"automatically determined"``.

    Missing templates never raise: their placeholders stay in the output.

    Args:
        params: The generation request
        templates: Template set to render

    Returns:
        The fully substituted main template
    """
    quality = params.quality.value

    if params.display_mode == DisplayMode.MODEL:
        mode_template = templates.model_mode_prompt
    else:
        mode_template = templates.product_mode_prompt

    fragments: Dict[str, str] = {}

    if mode_template is not None:
        fragments["mode_prompt"] = render_template(mode_template, _mode_values(params))

    if not params.scene:
        fragments["scene_guidance"] = ""
    elif templates.scene_guidance is not None:
        fragments["scene_guidance"] = render_template(
            templates.scene_guidance, {"scene": params.scene}
        )

    if templates.quality_guidance is not None:
        fragments["quality_guidance"] = render_template(
            templates.quality_guidance, {"quality": quality}
        )

    if not params.custom_prompt:
        fragments["custom_prompt"] = ""
    elif templates.additional_guidance is not None:
        fragments["custom_prompt"] = render_template(
            templates.additional_guidance, {"customPrompt": params.custom_prompt}
        )

    if templates.main_prompt is None:
        logger.warning("Main prompt template is missing; returning empty prompt")
        return ""

    prompt = render_template(templates.main_prompt, {
        "style": params.style,
        "quality": quality,
        "scene": params.scene or SCENE_FALLBACK,
        **fragments,
    })

    unresolved = find_unresolved_placeholders(prompt)
    if unresolved:
        logger.warning(f"Prompt contains unresolved placeholders: {unresolved}")

    logger.debug(f"Built {params.display_mode.value} prompt ({len(prompt)} chars)")
    return prompt


def merge_with_defaults(
    stored: Optional[Union[PromptTemplateSet, Dict[str, Any]]],
    defaults: PromptTemplateSet = DEFAULT_PROMPT_TEMPLATES,
) -> PromptTemplateSet:
    """Backfill missing template fields from the defaults.

    Args:
        stored: Templates loaded from configuration (model, raw dict, or None)
        defaults: Templates used for any field that is absent or None

    Returns:
        A complete template set
    """
    if stored is None:
        return defaults.model_copy()

    if isinstance(stored, dict):
        stored = PromptTemplateSet.model_validate(stored)

    merged = defaults.model_dump()
    for field_name, value in stored.model_dump().items():
        if value is not None:
            merged[field_name] = value
        else:
            logger.info(f"Prompt template '{field_name}' missing; using default")

    return PromptTemplateSet(**merged)


def validate_template_set(templates: PromptTemplateSet) -> None:
    """Reject template sets that would produce an unusable prompt.

    Intended for configuration-save time; ``build_prompt`` itself never
    validates.

    Args:
        templates: Template set about to be stored

    Raises:
        ValueError: If a required template is missing or blank
    """
    missing = [
        name for name in REQUIRED_TEMPLATE_FIELDS
        if not (getattr(templates, name) or "").strip()
    ]
    if missing:
        raise ValueError(f"Prompt templates must not be empty: {', '.join(missing)}")
