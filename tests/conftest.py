"""Shared test fixtures and configuration."""

import base64
import io
import os

import pytest
from PIL import Image

from src.core.models import (
    ModelDisplayRequest,
    ProductDisplayRequest,
    PromptTemplateSet,
    QualityTier,
)


@pytest.fixture
def sample_fake_image():
    """Return a fake PIL Image for testing."""
    return Image.new('RGB', (800, 600), color='red')


@pytest.fixture
def sample_image_bytes(sample_fake_image):
    """Return sample image as PNG bytes."""
    img_byte_arr = io.BytesIO()
    sample_fake_image.save(img_byte_arr, format='PNG')
    return img_byte_arr.getvalue()


@pytest.fixture
def sample_data_url(sample_image_bytes):
    """Return the sample image as a PNG data URL."""
    return "data:image/png;base64," + base64.b64encode(sample_image_bytes).decode("utf-8")


@pytest.fixture
def compact_templates():
    """Return a small template set that is easy to assert against."""
    return PromptTemplateSet(
        main_prompt=(
            "Style:{{style}} Q:{{quality}} Scene:{{scene}} "
            "{{mode_prompt}} {{scene_guidance}} {{custom_prompt}}"
        ),
        model_mode_prompt="G:{{gender}} A:{{ageGroup}}",
        product_mode_prompt="F:{{productForm}} B:{{productBackground}}",
        scene_guidance="SCENE={{scene}}",
        quality_guidance="QUALITY={{quality}}",
        additional_guidance="EXTRA={{customPrompt}}",
    )


@pytest.fixture
def model_request():
    """Return a model-mode request without reference images."""
    return ModelDisplayRequest(
        style="可爱风",
        quality=QualityTier.STANDARD,
        gender="girl",
        age_group="3-5",
        ethnicity="亚裔",
        pose="静态站立",
        composition="全身-展现整体",
    )


@pytest.fixture
def product_request():
    """Return a product-mode request."""
    return ProductDisplayRequest(
        style="简约",
        quality=QualityTier.HIGH,
        product_form="平铺-微褶皱自然",
        product_focus="整体呈现",
        product_background="纯白底-电商标准",
    )


@pytest.fixture
def gemini_image_response():
    """Return a generateContent response body carrying one image."""
    return {
        "candidates": [{
            "content": {
                "parts": [
                    {"text": "Here is your photo."},
                    {"inlineData": {"mimeType": "image/png", "data": "AAAA"}},
                ]
            }
        }]
    }


# Skip integration tests unless explicitly requested
def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests unless RUN_INTEGRATION_TESTS is set."""
    skip_integration = pytest.mark.skip(reason="Integration tests disabled (set RUN_INTEGRATION_TESTS=true to enable)")

    for item in items:
        if "integration" in item.keywords:
            if not os.getenv("RUN_INTEGRATION_TESTS", "").lower() == "true":
                item.add_marker(skip_integration)
