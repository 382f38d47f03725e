"""Abstract base class for image generation backends."""

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import GenerationResult, QualityTier


class BaseBackend(ABC):
    """Abstract interface that image generation backends implement.

    A backend receives a finished prompt and already-embedded images and
    returns exactly one image or raises. It never retries.

    Attributes:
        api_key: Optional API key for cloud-based backends
    """

    def __init__(self, api_key: Optional[str] = None):
        """Initialize the backend.

        Args:
            api_key: Optional API key for authentication with cloud services
        """
        self.api_key = api_key

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        quality: QualityTier,
        aspect_ratio: str,
        garment_images: Optional[List[str]] = None,
        model_image: Optional[str] = None,
    ) -> GenerationResult:
        """Generate a single image.

        Args:
            prompt: Instruction text
            quality: Requested quality tier
            aspect_ratio: Output aspect ratio such as "3:4"
            garment_images: Garment reference images as data URLs
            model_image: Optional model reference image as a data URL

        Returns:
            GenerationResult with the image data URL and model identifier

        Raises:
            NoImageGeneratedError: If the response contains no image
            RuntimeError: If the generation fails
            ConnectionError: If authentication with the service fails
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the backend is available.

        Returns:
            True if the backend is healthy, False otherwise
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the human-readable name of this backend."""
        pass

    @property
    @abstractmethod
    def supported_models(self) -> list[str]:
        """Get the model identifiers this backend can call."""
        pass

    def __repr__(self) -> str:
        """String representation of the backend."""
        return f"{self.__class__.__name__}(name='{self.name}')"
