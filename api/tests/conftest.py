"""
Pytest configuration and fixtures for the plant edit API tests.
"""
import base64
import io
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image
from services.artifact_store import EphemeralArtifactStore

# Smallest well-formed PNG: 1x1 transparent pixel, 70 bytes
MINIMAL_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

RESULT_URL = "https://images.example.test/generated/result.png"


def encode_image(img: Image.Image, format: str = "PNG") -> bytes:
    """Encode a PIL image to bytes."""
    buffer = io.BytesIO()
    img.save(buffer, format=format)
    return buffer.getvalue()


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode()}"


def openai_images_response(url):
    """Shape of the object returned by client.images.edit."""
    return SimpleNamespace(data=[SimpleNamespace(url=url, b64_json=None)])


@pytest.fixture
def room_jpeg_bytes():
    """A 300x400 portrait room photo as JPEG."""
    from PIL import ImageDraw

    img = Image.new("RGB", (300, 400), color="lightgray")
    draw = ImageDraw.Draw(img)
    draw.rectangle([0, 280, 300, 400], fill="saddlebrown")  # Floor
    draw.rectangle([0, 0, 300, 40], fill="beige")  # Ceiling
    return encode_image(img, "JPEG")


@pytest.fixture
def room_png_bytes():
    img = Image.new("RGB", (200, 150), color="lightgray")
    return encode_image(img, "PNG")


@pytest.fixture
def artifact_dir(tmp_path):
    """Empty directory used as the artifact store root."""
    path = tmp_path / "artifacts"
    path.mkdir()
    return path


@pytest.fixture
def store(artifact_dir):
    return EphemeralArtifactStore(root=str(artifact_dir))


@pytest.fixture
def mock_openai_client():
    """AsyncOpenAI stand-in with images.edit returning RESULT_URL."""
    client = MagicMock()
    client.images.edit = AsyncMock(return_value=openai_images_response(RESULT_URL))
    return client
