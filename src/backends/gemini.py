"""Gemini generateContent backend implementation."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from src.core.base_backend import BaseBackend
from src.core.exceptions import NoImageGeneratedError
from src.core.models import GenerationResult, QualityTier
from src.utils.image_utils import split_data_url

logger = logging.getLogger(__name__)


def extract_image_data_url(body: Dict[str, Any], model: Optional[str] = None) -> str:
    """Pull the first inline image out of a generateContent response.

    Only the first candidate is inspected; its parts are scanned in order.

    Args:
        body: Decoded JSON response
        model: Model identifier, used in the error message

    Returns:
        The image as ``data:image/png;base64,<data>``

    Raises:
        NoImageGeneratedError: If no part carries inline image data
    """
    candidates = body.get("candidates") or []
    if candidates:
        content = candidates[0].get("content") or {}
        for part in content.get("parts") or []:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                return f"data:image/png;base64,{inline['data']}"

    raise NoImageGeneratedError(model)


class GeminiBackend(BaseBackend):
    """Backend calling the Gemini REST API.

    Two model variants are used: a high-fidelity model for the 2K and 4K
    tiers and a fast model for 1K.

    Attributes:
        api_key: Gemini API key
        high_fidelity_model: Model used for 2K/4K output
        fast_model: Model used for 1K output
        base_url: API root, e.g. https://generativelanguage.googleapis.com/v1beta
        timeout: HTTP timeout in seconds
    """

    HIGH_FIDELITY_MODEL = "gemini-3-pro-image-preview"
    FAST_MODEL = "gemini-2.5-flash-image"
    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str,
        high_fidelity_model: Optional[str] = None,
        fast_model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
    ):
        """Initialize the Gemini backend.

        Args:
            api_key: Gemini API key
            high_fidelity_model: Optional override for the 2K/4K model
            fast_model: Optional override for the 1K model
            base_url: Optional API root override
            timeout: HTTP timeout in seconds

        Raises:
            ValueError: If API key is empty
        """
        super().__init__(api_key)

        if not api_key:
            raise ValueError("Gemini API key is required")

        self.high_fidelity_model = high_fidelity_model or self.HIGH_FIDELITY_MODEL
        self.fast_model = fast_model or self.FAST_MODEL
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        logger.info(
            f"Initialized Gemini backend (high fidelity: {self.high_fidelity_model}, "
            f"fast: {self.fast_model})"
        )

    def select_model(self, quality: QualityTier) -> str:
        """Pick the model variant for a quality tier."""
        if quality.is_high_fidelity:
            return self.high_fidelity_model
        return self.fast_model

    def build_request(
        self,
        prompt: str,
        quality: QualityTier,
        aspect_ratio: str,
        garment_images: Optional[List[str]] = None,
        model_image: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Assemble the generateContent request body.

        Parts are ordered prompt, garment images, then the model image.
        Images are sent without their data URL prefix.

        Args:
            prompt: Instruction text
            quality: Requested quality tier
            aspect_ratio: Output aspect ratio
            garment_images: Garment images as data URLs or bare base64
            model_image: Optional model reference as a data URL or bare base64

        Returns:
            JSON-serializable request body
        """
        parts: List[Dict[str, Any]] = [{"text": prompt}]

        images = list(garment_images or [])
        if model_image:
            images.append(model_image)

        for image in images:
            mime_type, data = split_data_url(image)
            parts.append({"inlineData": {"mimeType": mime_type, "data": data}})

        image_config: Dict[str, Any] = {"aspectRatio": aspect_ratio}
        if quality.is_high_fidelity:
            image_config["imageSize"] = quality.value

        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"imageConfig": image_config},
        }

    def _post(self, model: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/models/{model}:generateContent"
        try:
            response = requests.post(
                url,
                headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Gemini request failed: {e}")
            raise RuntimeError(f"Gemini request failed: {e}") from e

        if response.status_code in (401, 403):
            logger.error(f"Gemini authentication error: HTTP {response.status_code}")
            raise ConnectionError(
                "Invalid Gemini API key. Please check your GEMINI_API_KEY."
            )
        if response.status_code == 429:
            logger.error("Gemini rate limit exceeded")
            raise RuntimeError("Rate limit exceeded. Please try again later.")
        if not response.ok:
            logger.error(f"Gemini API error: HTTP {response.status_code} {response.text[:200]}")
            raise RuntimeError(f"Gemini API error: HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise RuntimeError(f"Gemini returned a non-JSON response: {e}") from e

    async def generate_image(
        self,
        prompt: str,
        quality: QualityTier,
        aspect_ratio: str,
        garment_images: Optional[List[str]] = None,
        model_image: Optional[str] = None,
    ) -> GenerationResult:
        """Generate one image with the model matching the quality tier.

        Args:
            prompt: Instruction text
            quality: Requested quality tier
            aspect_ratio: Output aspect ratio
            garment_images: Garment images as data URLs
            model_image: Optional model reference as a data URL

        Returns:
            GenerationResult with the image data URL and model used

        Raises:
            NoImageGeneratedError: If the response contains no image
            RuntimeError: If the API call fails
            ConnectionError: If the API key is rejected
        """
        model = self.select_model(quality)
        payload = self.build_request(prompt, quality, aspect_ratio, garment_images, model_image)

        logger.info(
            f"Generating {quality.value} image with {model} "
            f"({len(payload['contents'][0]['parts']) - 1} reference images)"
        )
        body = await asyncio.to_thread(self._post, model, payload)

        url = extract_image_data_url(body, model)
        logger.info(f"Successfully generated image with {model}")
        return GenerationResult(url=url, model_used=model)

    def health_check(self) -> bool:
        """Check that the API key can list models.

        Returns:
            True if the backend is healthy, False otherwise
        """
        try:
            logger.debug("Performing health check...")
            response = requests.get(
                f"{self.base_url}/models",
                headers={"x-goog-api-key": self.api_key},
                params={"pageSize": 1},
                timeout=10,
            )
            response.raise_for_status()
            logger.debug("Health check passed")
            return True
        except requests.exceptions.RequestException as e:
            logger.warning(f"Health check failed: {e}")
            return False

    @property
    def name(self) -> str:
        """Get the backend name.

        Returns:
            The string "Gemini"
        """
        return "Gemini"

    @property
    def supported_models(self) -> list[str]:
        """Get the two model variants in use."""
        return [self.high_fidelity_model, self.fast_model]
