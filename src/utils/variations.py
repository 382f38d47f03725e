"""One-click generation: expand a single garment into a batch of requests."""

import logging
from typing import List, Literal, Optional, Sequence, Union

from src.core.models import (
    DisplayMode,
    ModelDisplayRequest,
    ModelEntry,
    ProductDisplayRequest,
    QualityTier,
)

logger = logging.getLogger(__name__)

ClothingGender = Literal["boys", "girls", "unisex"]

PRODUCT_VARIATIONS = [
    {"background": "纯白底-电商标准", "angle": "平铺-微褶皱自然", "style": "电商标准", "ratio": "1:1"},
    {"background": "纯白底-电商标准", "angle": "挂拍-无痕隐形", "style": "电商标准", "ratio": "3:4"},
    {"background": "木纹底-温馨感", "angle": "平铺-微褶皱自然", "style": "社交媒体", "ratio": "1:1"},
    {"background": "大理石-轻奢感", "angle": "平铺-微褶皱自然", "style": "品牌宣传", "ratio": "3:4"},
    {"background": "纯白底-电商标准", "angle": "3D建模-立体支撑", "style": "社交媒体", "ratio": "1:1"},
    {"background": "地毯绒面", "angle": "挂拍-无痕隐形", "style": "艺术创意", "ratio": "3:4"},
]

MODEL_SCENES = ["奶油风室内", "公园绿地", "简约摄影棚（纯色背景）"]
MODEL_STYLES = ["森系", "街头潮流", "可爱风"]
MODEL_RATIOS = ["3:4", "1:1", "16:9"]

MODEL_VARIATION_COUNT = 9
AUTO_POOL_SIZE = 5
AUTO_POOL_SIZE_MIXED = 3

BOY_LABELS = ("男", "boy")
GIRL_LABELS = ("女", "girl")

Variation = Union[ModelDisplayRequest, ProductDisplayRequest]


def filter_models(
    models: Sequence[ModelEntry],
    gender: Optional[str] = None,
    age_group: Optional[str] = None,
    ethnicity: Optional[str] = None,
    search: Optional[str] = None,
) -> List[ModelEntry]:
    """Filter active library models; every given criterion must match.

    Args:
        models: Library entries
        gender: Exact gender label
        age_group: Exact age band
        ethnicity: Exact ethnicity label
        search: Case-insensitive substring of the model's name

    Returns:
        Matching active entries in library order
    """
    results = []
    for model in models:
        if model.status != "ACTIVE":
            continue
        if gender and model.gender != gender:
            continue
        if age_group and model.age_group != age_group:
            continue
        if ethnicity and model.ethnicity != ethnicity:
            continue
        if search and search.lower() not in (model.name or "").lower():
            continue
        results.append(model)
    return results


def _auto_model_pool(gender: ClothingGender, models: Sequence[ModelEntry]) -> List[ModelEntry]:
    models = filter_models(models)
    boys = [m for m in models if m.gender in BOY_LABELS]
    girls = [m for m in models if m.gender in GIRL_LABELS]

    if gender == "boys":
        pool = boys[:AUTO_POOL_SIZE]
    elif gender == "girls":
        pool = girls[:AUTO_POOL_SIZE]
    else:
        pool = boys[:AUTO_POOL_SIZE_MIXED] + girls[:AUTO_POOL_SIZE_MIXED]

    if not pool:
        logger.warning(f"No library models match '{gender}'; using first {AUTO_POOL_SIZE} entries")
        pool = list(models[:AUTO_POOL_SIZE])
    return pool


def build_product_variations(
    garment_image: str,
    quality: QualityTier = QualityTier.STANDARD,
) -> List[ProductDisplayRequest]:
    """Build the fixed batch of still-life variations for one garment."""
    return [
        ProductDisplayRequest(
            style=v["style"],
            quality=quality,
            aspect_ratio=v["ratio"],
            product_form=v["angle"],
            product_background=v["background"],
            garment_images=[garment_image],
        )
        for v in PRODUCT_VARIATIONS
    ]


def build_model_variations(
    garment_image: str,
    models: Sequence[ModelEntry],
    gender: ClothingGender = "unisex",
    selected_models: Optional[Sequence[str]] = None,
    quality: QualityTier = QualityTier.STANDARD,
) -> List[ModelDisplayRequest]:
    """Build on-model variations for one garment.

    With ``selected_models`` the batch is split evenly across the chosen
    models (scene, style and ratio cycle per model). Otherwise models are
    picked automatically by clothing gender and the batch cycles through
    them.

    Args:
        garment_image: Garment image (data URL or remote reference)
        models: Model library
        gender: Clothing target gender
        selected_models: Ids of manually chosen library models
        quality: Quality tier for every variation

    Returns:
        Up to nine ModelDisplayRequest objects

    Raises:
        ValueError: If the library is empty or a selected id is unknown
    """
    by_id = {m.id: m for m in models}
    variations: List[ModelDisplayRequest] = []

    if selected_models:
        unknown = [model_id for model_id in selected_models if model_id not in by_id]
        if unknown:
            raise ValueError(f"Unknown library models: {', '.join(unknown)}")

        per_model = -(-MODEL_VARIATION_COUNT // len(selected_models))
        for model_id in selected_models:
            for i in range(per_model):
                if len(variations) >= MODEL_VARIATION_COUNT:
                    break
                variations.append(ModelDisplayRequest(
                    style=MODEL_STYLES[i % 3],
                    quality=quality,
                    aspect_ratio=MODEL_RATIOS[min(i, 2)],
                    scene=MODEL_SCENES[i % 3],
                    garment_images=[garment_image],
                    model_image=by_id[model_id].url,
                ))
        return variations

    pool = _auto_model_pool(gender, models)
    if not pool:
        raise ValueError("Model library is empty")

    for i in range(MODEL_VARIATION_COUNT):
        variations.append(ModelDisplayRequest(
            style=MODEL_STYLES[i % 3],
            quality=quality,
            aspect_ratio=MODEL_RATIOS[i % 3],
            scene=MODEL_SCENES[i % 3],
            garment_images=[garment_image],
            model_image=pool[i % len(pool)].url,
        ))
    return variations


def build_generation_variations(
    display_mode: DisplayMode,
    garment_image: str,
    models: Sequence[ModelEntry] = (),
    gender: ClothingGender = "unisex",
    selected_models: Optional[Sequence[str]] = None,
    quality: QualityTier = QualityTier.STANDARD,
) -> List[Variation]:
    """Expand one garment into a one-click batch.

    Args:
        display_mode: PRODUCT for still-life shots, MODEL for on-model shots
        garment_image: Garment image
        models: Model library (model mode only)
        gender: Clothing target gender (model mode only)
        selected_models: Manually chosen model ids (model mode only)
        quality: Quality tier for every variation

    Returns:
        Generation requests for the batch
    """
    if DisplayMode(display_mode) == DisplayMode.PRODUCT:
        return list(build_product_variations(garment_image, quality))
    return list(build_model_variations(garment_image, models, gender, selected_models, quality))
