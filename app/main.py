"""Application wiring: logging, prompt templates, and the generator."""

import json
import logging
from pathlib import Path
from typing import Optional

from app.config import Settings, settings
from src.backends.gemini import GeminiBackend
from src.core.image_generator import ImageGenerator
from src.core.models import PromptTemplateSet
from src.utils.asset_library import AssetLibrary
from src.utils.preset_storage import PresetStore
from src.utils.prompt_builder import merge_with_defaults

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the application."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def load_prompt_templates(path: Optional[str] = None) -> PromptTemplateSet:
    """Load admin prompt templates, backfilling missing fields from defaults.

    Args:
        path: JSON file with template fields (camelCase or snake_case keys).
            A missing path or file yields the defaults.

    Returns:
        A complete PromptTemplateSet

    Raises:
        ValueError: If the file exists but is not a JSON object
    """
    if not path or not Path(path).exists():
        logger.info("No prompt template file configured; using defaults")
        return merge_with_defaults(None)

    with open(path, encoding="utf-8") as f:
        stored = json.load(f)

    if not isinstance(stored, dict):
        raise ValueError(f"Prompt template file must contain a JSON object: {path}")

    logger.info(f"Loaded prompt templates from {path}")
    return merge_with_defaults(stored)


def create_generator(config: Optional[Settings] = None) -> ImageGenerator:
    """Create the image generator from settings.

    Args:
        config: Settings to use (defaults to the global settings)

    Returns:
        Initialized ImageGenerator

    Raises:
        ValueError: If required configuration is missing
    """
    config = config or settings
    config.validate_required_keys()

    backend = GeminiBackend(
        api_key=config.gemini_api_key,
        high_fidelity_model=config.high_fidelity_model,
        fast_model=config.fast_model,
        base_url=config.gemini_api_base_url,
        timeout=config.request_timeout,
    )

    return ImageGenerator(
        backend,
        load_prompt_templates(config.prompt_templates_path),
        timeout=config.request_timeout,
        asset_base_url=config.asset_base_url,
        fetch_timeout=config.fetch_timeout,
    )


def create_preset_store(config: Optional[Settings] = None) -> PresetStore:
    """Create the preset store at the configured path."""
    return PresetStore((config or settings).preset_store_path)


def create_asset_library(config: Optional[Settings] = None) -> AssetLibrary:
    """Create an asset library bounded by the configured size."""
    return AssetLibrary(max_assets=(config or settings).max_assets)
