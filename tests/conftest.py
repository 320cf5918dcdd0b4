# Test fixtures and configuration
import asyncio
import base64
import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hairstyle_studio.config import PipelineConfig
from hairstyle_studio.models import EncodedImage, StyleIdea
from hairstyle_studio.pipeline import HairstylePipeline


def make_image_bytes(image_format: str = "PNG", color: str = "white", size=(8, 8)) -> bytes:
    """Small in-memory image in the given format."""
    img = Image.new("RGB", size, color=color)
    output = io.BytesIO()
    img.save(output, format=image_format)
    return output.getvalue()


def prompt_of(image: EncodedImage) -> str:
    """Recover the prompt a FakeGenerationClient render was made from."""
    return base64.b64decode(image.data).decode("utf-8")


SAMPLE_IDEAS = [
    StyleIdea(name="Textured Crop", description="short textured crop with a low skin fade"),
    StyleIdea(name="Classic Pompadour", description="voluminous pompadour swept back"),
    StyleIdea(name="Side Part", description="neat side part with tapered sides"),
    StyleIdea(name="Curly Top", description="loose curls on top with a mid fade"),
]

SAMPLE_SUMMARY = "oval face, light skin, short brown hair, ~30yo"
SAMPLE_DESCRIPTION = "short textured crop, 2 inches on top, low skin fade, matte finish"


class FakeGenerationClient:
    """In-memory stand-in for GeminiClient.

    Rendered images carry their prompt as the payload so tests can tell which
    call produced which image. Delays, gates and errors are keyed by a
    substring of the render prompt.
    """

    def __init__(self, ideas=None):
        self.ideas = list(SAMPLE_IDEAS if ideas is None else ideas)
        self.summary = SAMPLE_SUMMARY
        self.description = SAMPLE_DESCRIPTION

        self.analyze_error: Exception | None = None
        self.suggest_error: Exception | None = None
        self.describe_error: Exception | None = None
        self.render_errors: dict[str, Exception] = {}
        self.render_delays: dict[str, float] = {}

        self.analyze_gate: asyncio.Event | None = None
        self.render_gate: asyncio.Event | None = None

        self.calls: list[tuple[str, object]] = []
        self.completed_renders: list[str] = []
        self.closed = False

    async def analyze_features(self, image):
        self.calls.append(("analyze_features", image))
        if self.analyze_gate is not None:
            await self.analyze_gate.wait()
        if self.analyze_error:
            raise self.analyze_error
        return self.summary

    async def suggest_styles(self, feature_summary, count):
        self.calls.append(("suggest_styles", (feature_summary, count)))
        if self.suggest_error:
            raise self.suggest_error
        return list(self.ideas)

    async def describe_image(self, image):
        self.calls.append(("describe_image", image))
        if self.describe_error:
            raise self.describe_error
        return self.description

    async def render_image(self, prompt, source_image):
        self.calls.append(("render_image", prompt))
        for key, delay in self.render_delays.items():
            if key in prompt:
                await asyncio.sleep(delay)
        if self.render_gate is not None:
            await self.render_gate.wait()
        for key, error in self.render_errors.items():
            if key in prompt:
                raise error
        self.completed_renders.append(prompt)
        return EncodedImage(
            mime_type="image/png",
            data=base64.b64encode(prompt.encode("utf-8")).decode("ascii"),
        )

    async def check_connection(self):
        return True

    async def close(self):
        self.closed = True

    def prompts(self, operation="render_image"):
        return [arg for op, arg in self.calls if op == operation]


@pytest.fixture
def png_bytes():
    """Small valid PNG image bytes."""
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes():
    """Small valid JPEG image bytes."""
    return make_image_bytes("JPEG", color="red")


@pytest.fixture
def config():
    """Pipeline config isolated from any local .env file."""
    return PipelineConfig(_env_file=None, gemini_api_key="test-key", call_timeout_seconds=5)


@pytest.fixture
def fake_client():
    return FakeGenerationClient()


@pytest.fixture
def pipeline(config, fake_client):
    """Pipeline wired to the in-memory generation client."""
    return HairstylePipeline(config, client=fake_client)
