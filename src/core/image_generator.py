"""Generation orchestrator: prompt, image normalization, backend call."""

import asyncio
import logging
from typing import Callable, List, Optional, Union

from src.core.base_backend import BaseBackend
from src.core.exceptions import GenerationTimeoutError
from src.core.models import (
    GeneratedAsset,
    GenerationResult,
    ModelDisplayRequest,
    ProductDisplayRequest,
    PromptTemplateSet,
)
from src.utils.image_utils import create_thumbnail, normalize_image
from src.utils.prompt_builder import build_prompt

logger = logging.getLogger(__name__)

SaveResource = Callable[[GeneratedAsset], object]

THUMBNAIL_SIZE = 500
THUMBNAIL_QUALITY = 95


class ImageGenerator:
    """Runs one generation as a strict linear pipeline.

    The prompt is built, reference images are normalized one at a time, and
    a single backend call is made under a timeout. Failures propagate to the
    caller untouched; nothing is retried.

    Attributes:
        backend: Backend that performs the API call
        templates: Prompt template set, read-only here
        timeout: Seconds allowed for the backend call (None disables it)
        asset_base_url: Base URL for site-relative reference images
        fetch_timeout: Seconds allowed per reference image download
    """

    def __init__(
        self,
        backend: BaseBackend,
        templates: PromptTemplateSet,
        timeout: Optional[float] = 120.0,
        asset_base_url: Optional[str] = None,
        fetch_timeout: float = 30.0,
    ):
        self.backend = backend
        self.templates = templates
        self.timeout = timeout
        self.asset_base_url = asset_base_url
        self.fetch_timeout = fetch_timeout

        logger.info(f"Initialized ImageGenerator with backend: {backend.name}")

    def preview_prompt(self, params: Union[ModelDisplayRequest, ProductDisplayRequest]) -> str:
        """Build the prompt that ``generate_image`` would send, for review."""
        return build_prompt(params, self.templates)

    async def _normalize_all(self, images: List[str]) -> List[str]:
        normalized = []
        for image in images:
            normalized.append(
                await normalize_image(image, base_url=self.asset_base_url, timeout=self.fetch_timeout)
            )
        return normalized

    async def generate_image(
        self,
        params: Union[ModelDisplayRequest, ProductDisplayRequest],
        prompt: Optional[str] = None,
        save_resource: Optional[SaveResource] = None,
    ) -> GenerationResult:
        """Generate one product photo.

        Args:
            params: The generation request
            prompt: Reviewed prompt to send instead of building one
            save_resource: Optional callback receiving the new GeneratedAsset.
                Errors it raises are logged and do not fail the generation.

        Returns:
            GenerationResult with the image data URL and model used

        Raises:
            FetchError: If a reference image cannot be loaded
            NoImageGeneratedError: If the API returns no image
            GenerationTimeoutError: If the backend call exceeds the timeout
            RuntimeError: If the API call fails
            ConnectionError: If the API rejects the credentials
        """
        if prompt is None:
            prompt = build_prompt(params, self.templates)

        garment_images = await self._normalize_all(params.garment_images)

        model_image = None
        if isinstance(params, ModelDisplayRequest) and params.model_image:
            model_image = (await self._normalize_all([params.model_image]))[0]

        logger.info(
            f"Generating {params.display_mode.value} image "
            f"({len(garment_images)} garment images, model reference: {model_image is not None})"
        )

        call = self.backend.generate_image(
            prompt,
            params.quality,
            params.aspect_ratio,
            garment_images=garment_images,
            model_image=model_image,
        )
        try:
            result = await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Generation with {self.backend.name} timed out after {self.timeout}s")
            raise GenerationTimeoutError(self.timeout) from e

        if save_resource is not None:
            asset = self._to_asset(params, result)
            try:
                save_resource(asset)
            except Exception as e:
                # The image is already generated; the caller still gets it.
                logger.error(f"Failed to save generated asset {asset.id}: {e}")

        return result

    def _to_asset(
        self,
        params: Union[ModelDisplayRequest, ProductDisplayRequest],
        result: GenerationResult,
    ) -> GeneratedAsset:
        thumbnail = None
        try:
            thumbnail = create_thumbnail(
                result.url,
                max_width=THUMBNAIL_SIZE,
                max_height=THUMBNAIL_SIZE,
                quality=THUMBNAIL_QUALITY,
            )
        except ValueError as e:
            logger.warning(f"Thumbnail generation failed, using original image: {e}")

        return GeneratedAsset(
            url=result.url,
            type="GENERATE",
            display_type=params.display_mode,
            tags=[tag for tag in (params.style, params.quality.value) if tag],
            thumbnail=thumbnail,
            model_name=result.model_used,
        )

    def health_check(self) -> bool:
        """Check health of the configured backend."""
        healthy = self.backend.health_check()
        logger.info(f"Health check for {self.backend.name}: {healthy}")
        return healthy
