"""
Shared test fixtures and in-process fakes for the generation service
"""

import asyncio
import io
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from PIL import Image

from deckgen.core.config import AppConfig
from deckgen.models.project import KeyPoint
from deckgen.services.generation_client import (
    AnalysisResult, ContentValidationResult, ImagePayload, SlideContent
)
from deckgen.services.project_store import ProjectStore


def make_png(width=16, height=16, color=(255, 0, 0)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class MockGenerationClient:
    """Stands in for GenerationClient; records every call it receives"""

    def __init__(self, key_point_count=5, suggested_slide_count=None,
                 slide_delays=None, image_delays=None,
                 slide_failures=None, image_failures=None, on_image_call=None,
                 rejected_terms=()):
        self.key_point_count = key_point_count
        self.suggested_slide_count = suggested_slide_count or key_point_count
        self.slide_delays = slide_delays or {}
        self.image_delays = image_delays or {}
        # ordinal -> exception, raised once
        self.slide_failures = dict(slide_failures or {})
        self.image_failures = dict(image_failures or {})
        self.on_image_call = on_image_call
        # content containing any of these is not approved
        self.rejected_terms = tuple(rejected_terms)

        self.analyze_calls = []
        self.slide_calls = []
        self.image_calls = []
        self.slide_completion_order = []
        self.image_completion_order = []
        self.validation_calls = []
        self.improvement_calls = []

    async def analyze(self, text, audience):
        self.analyze_calls.append(text)
        key_points = [
            KeyPoint(content=f"Key point number {i}", order=i)
            for i in range(1, self.key_point_count + 1)
        ]
        return AnalysisResult(key_points=key_points, suggested_slide_count=self.suggested_slide_count)

    async def generate_slide_content(self, key_point, audience, slide_number, total_slides):
        self.slide_calls.append(slide_number)
        await asyncio.sleep(self.slide_delays.get(slide_number, 0))
        if slide_number in self.slide_failures:
            raise self.slide_failures.pop(slide_number)
        self.slide_completion_order.append(slide_number)
        return SlideContent(
            title=f"Slide {slide_number}",
            body=f"Body for {key_point.content}",
            image_prompt=f"Image {slide_number}",
            notes=f"Notes {slide_number}"
        )

    async def generate_image(self, prompt, audience):
        ordinal = int(prompt.split()[-1])
        self.image_calls.append(ordinal)
        if self.on_image_call is not None:
            self.on_image_call(len(self.image_calls))
        await asyncio.sleep(self.image_delays.get(ordinal, 0))
        if ordinal in self.image_failures:
            raise self.image_failures.pop(ordinal)
        self.image_completion_order.append(ordinal)
        return ImagePayload(data=make_png(color=(ordinal * 40 % 256, 0, 0)), prompt=prompt)

    async def validate_content(self, content, audience):
        self.validation_calls.append((content, audience))
        concerns = [f"mentions {term}" for term in self.rejected_terms if term in content.lower()]
        return ContentValidationResult(is_approved=not concerns, concerns=concerns)

    async def suggest_improvement(self, content, concerns, audience):
        self.improvement_calls.append((content, list(concerns), audience))
        return f"Revised: {content}"

    async def close(self):
        pass


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def png_factory():
    return make_png


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(data_dir=tmp_path / "data", max_concurrency=4)


@pytest.fixture
def store(tmp_path):
    return ProjectStore(tmp_path / "data")


@pytest.fixture
def mock_client_class():
    return MockGenerationClient


@pytest.fixture
def document_text():
    sentence = "Photosynthesis turns light, water and carbon dioxide into sugar and oxygen. "
    text = sentence * 10
    return text[:500]
