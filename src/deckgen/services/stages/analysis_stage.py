"""
Content analysis stage: document text to ordered key points
"""

import logging
from typing import List

from ...core.config import AppConfig
from ...core.exceptions import (
    ContentTooLargeError, ErrorKind, GenerationError, InsufficientContentError
)
from ...models.project import Audience, KeyPoint
from ..generation_client import AnalysisResult, GenerationClient

logger = logging.getLogger(__name__)


class ContentAnalysisStage:
    """Validates document text and turns it into key points"""

    def __init__(self, client: GenerationClient, min_text_length: int = 100,
                 max_text_length: int = 50000, min_slide_count: int = 3,
                 max_slide_count: int = 50):
        self.client = client
        self.min_text_length = min_text_length
        self.max_text_length = max_text_length
        self.min_slide_count = min_slide_count
        self.max_slide_count = max_slide_count

    @classmethod
    def from_config(cls, client: GenerationClient, config: AppConfig) -> 'ContentAnalysisStage':
        return cls(
            client,
            min_text_length=config.min_text_length,
            max_text_length=config.max_text_length,
            min_slide_count=config.min_slide_count,
            max_slide_count=config.max_slide_count
        )

    def validate_text(self, text: str) -> str:
        text = (text or "").strip()
        if len(text) < self.min_text_length:
            raise InsufficientContentError(
                f"Document has {len(text)} characters; at least {self.min_text_length} are required"
            )
        if len(text) > self.max_text_length:
            raise ContentTooLargeError(
                f"Document has {len(text)} characters; at most {self.max_text_length} are allowed"
            )
        return text

    @staticmethod
    def normalize_ordinals(key_points: List[KeyPoint]) -> List[KeyPoint]:
        """Renumber key points 1..n, keeping the order the service gave them"""
        ordered = sorted(enumerate(key_points), key=lambda pair: (pair[1].order, pair[0]))
        return [
            KeyPoint(content=point.content, order=position, importance=point.importance, id=point.id)
            for position, (_, point) in enumerate(ordered, start=1)
        ]

    def clamp_slide_count(self, count: int) -> int:
        clamped = max(self.min_slide_count, min(self.max_slide_count, count))
        if clamped != count:
            logger.info(f"Suggested slide count {count} clamped to {clamped}")
        return clamped

    async def run(self, text: str, audience: Audience) -> AnalysisResult:
        text = self.validate_text(text)

        result = await self.client.analyze(text, audience)
        if not result.key_points:
            raise GenerationError("Content analysis produced no key points", kind=ErrorKind.FATAL)

        key_points = self.normalize_ordinals(result.key_points)
        slide_count = self.clamp_slide_count(result.suggested_slide_count)
        logger.info(f"Content analysis produced {len(key_points)} key points")
        return AnalysisResult(key_points=key_points, suggested_slide_count=slide_count)
