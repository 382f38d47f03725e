"""Application configuration management."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    These settings are automatically loaded from the .env file or environment variables.
    All sensitive data (API keys) should be stored in environment variables, not hardcoded.

    Attributes:
        gemini_api_key: Gemini API key
        gemini_api_base_url: Root URL of the Gemini REST API
        high_fidelity_model: Model used for the 2K and 4K tiers
        fast_model: Model used for the 1K tier
        request_timeout: Seconds allowed for one generation call
        fetch_timeout: Seconds allowed per reference image download
        asset_base_url: Base URL for site-relative images (model library)
        prompt_templates_path: Optional JSON file with admin prompt templates
        preset_store_path: JSON file holding saved presets
        max_assets: Maximum number of images kept in the asset library
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        run_integration_tests: Whether to run integration tests
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # API Keys
    gemini_api_key: str = ""

    # Model Configuration
    gemini_api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    high_fidelity_model: str = "gemini-3-pro-image-preview"
    fast_model: str = "gemini-2.5-flash-image"

    # Request Settings
    request_timeout: float = 120.0
    fetch_timeout: float = 30.0
    asset_base_url: Optional[str] = None

    # Storage
    prompt_templates_path: Optional[str] = None
    preset_store_path: str = "data/presets.json"
    max_assets: int = 50

    # Application Settings
    log_level: str = "INFO"

    # Testing
    run_integration_tests: bool = False

    def validate_required_keys(self) -> None:
        """Validate that required API keys are present.

        Raises:
            ValueError: If required API keys are missing
        """
        if not self.gemini_api_key:
            raise ValueError(
                "GEMINI_API_KEY is required. "
                "Please set it in your .env file or environment variables. "
                "Get your key from: https://aistudio.google.com/apikey"
            )


# Global settings instance
settings = Settings()
