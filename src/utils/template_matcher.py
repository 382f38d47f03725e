"""Preset recommendation scoring."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from src.core.models import Preset, TemplateMatch

logger = logging.getLogger(__name__)

BASE_SCORE = 20

USAGE_POINTS_PER_USE = 5
USAGE_MAX_BONUS = 30
FREQUENT_USE_THRESHOLD = 3

RECENCY_WINDOW_DAYS = 7
RECENCY_MAX_BONUS = 20
RECENCY_DECAY_PER_DAY = 2
RECENT_USE_DAYS = 1

COMPLETENESS_POINTS_PER_FIELD = 5
COMPLETE_CONFIG_THRESHOLD = 10

POPULARITY_BONUS = 15
POPULAR_STYLES = ("韩系", "日系", "简约", "时尚")

MIN_SCORE = 0
MAX_SCORE = 100

REASON_FREQUENT = "frequently used"
REASON_RECENT = "recently used"
REASON_COMPLETE = "complete configuration"
REASON_POPULAR = "popular style"
REASON_DEFAULT = "recommended"


def score_preset(preset: Preset, now: Optional[datetime] = None) -> TemplateMatch:
    """Score a single preset.

    Args:
        preset: Preset to score
        now: Reference time (defaults to the current UTC time)

    Returns:
        TemplateMatch with a score in [0, 100] and its reasons
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    score: float = BASE_SCORE
    reasons: List[str] = []

    if preset.use_count > 0:
        score += min(preset.use_count * USAGE_POINTS_PER_USE, USAGE_MAX_BONUS)
        if preset.use_count >= FREQUENT_USE_THRESHOLD:
            reasons.append(REASON_FREQUENT)

    days_since_update = max((now - preset.updated_at).total_seconds() / 86400, 0.0)
    if days_since_update < RECENCY_WINDOW_DAYS:
        score += max(RECENCY_MAX_BONUS - days_since_update * RECENCY_DECAY_PER_DAY, 0)
        if days_since_update < RECENT_USE_DAYS:
            reasons.append(REASON_RECENT)

    config = preset.config
    completeness = sum(
        COMPLETENESS_POINTS_PER_FIELD
        for present in (config.scene, config.model_ref, config.custom_prompt)
        if present
    )
    score += completeness
    if completeness >= COMPLETE_CONFIG_THRESHOLD:
        reasons.append(REASON_COMPLETE)

    if any(style in config.style for style in POPULAR_STYLES):
        score += POPULARITY_BONUS
        reasons.append(REASON_POPULAR)

    score = min(max(score, MIN_SCORE), MAX_SCORE)

    if not reasons:
        reasons.append(REASON_DEFAULT)

    return TemplateMatch(preset=preset, score=int(math.floor(score + 0.5)), reasons=reasons)


def rank_presets(
    presets: Iterable[Preset],
    context_hints: Optional[Any] = None,
    now: Optional[datetime] = None,
) -> List[TemplateMatch]:
    """Score presets and order them best first.

    Ties keep their input order.

    Args:
        presets: Presets to rank
        context_hints: Caller context such as uploaded images; accepted for
            interface stability, not used in scoring
        now: Reference time for recency

    Returns:
        TemplateMatch list sorted by descending score
    """
    matches = [score_preset(preset, now) for preset in presets]
    matches.sort(key=lambda match: match.score, reverse=True)
    logger.debug(f"Ranked {len(matches)} presets")
    return matches


def get_recommended_presets(
    presets: Iterable[Preset],
    context_hints: Optional[Any] = None,
    count: int = 3,
    now: Optional[datetime] = None,
) -> List[TemplateMatch]:
    """Return the top ``count`` ranked presets."""
    return rank_presets(presets, context_hints, now)[:count]
