"""Errors raised along the generation path."""

from typing import Optional


class FetchError(RuntimeError):
    """A remote reference image could not be fetched or encoded.

    Attributes:
        url: The reference that failed
    """

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Failed to load image from {url}: {reason}")


class NoImageGeneratedError(RuntimeError):
    """The API call succeeded but the response carried no image."""

    def __init__(self, model: Optional[str] = None):
        self.model = model
        message = "No image generated"
        if model:
            message = f"{message} by {model}"
        super().__init__(message)


class GenerationTimeoutError(TimeoutError):
    """The generation call did not finish within the configured timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Image generation timed out after {timeout:g}s")
