"""
Image stage: one generated image per slide, downloaded but not stored
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

from ...ai.retry import classify_error
from ...core.exceptions import ContentFilteredError, ErrorKind, GenerationCancelledError, StageFailedError
from ...models.project import Audience, Slide
from ...models.workflow import WorkflowStage
from ..content_filter import ContentFilter
from ..generation_client import GenerationClient, ImagePayload
from .base import run_bounded

logger = logging.getLogger(__name__)


class ImageStage:
    """Generates and downloads one image per slide with bounded concurrency.

    Slides that already carry image data, or whose ordinal is in the
    ``completed`` map of an earlier attempt, are not requested again. The
    bytes are returned to the caller, which decides when to store them.
    When a ContentFilter is given, each prompt is screened before dispatch.
    """

    def __init__(self, client: GenerationClient, max_concurrency: int = 4,
                 content_filter: Optional[ContentFilter] = None):
        self.client = client
        self.max_concurrency = max_concurrency
        self.content_filter = content_filter

    @staticmethod
    def prompt_for(slide: Slide) -> str:
        return slide.image_prompt or slide.title

    async def _generate(self, slide: Slide, audience: Audience) -> ImagePayload:
        prompt = self.prompt_for(slide)
        if self.content_filter is not None and not await self.content_filter.validate_image_prompt(prompt):
            raise ContentFilteredError(f"Image prompt for slide {slide.slide_number} was rejected: {prompt}")
        return await self.client.generate_image(prompt, audience)

    async def run(self, slides: List[Slide], audience: Audience,
                  completed: Optional[Dict[int, ImagePayload]] = None,
                  cancel_event: Optional[asyncio.Event] = None,
                  on_progress: Optional[Callable[[int, int], None]] = None) -> List[Tuple[int, ImagePayload]]:
        """Return ``(slide_number, payload)`` pairs in slide order"""
        total = len(slides)
        images: Dict[int, ImagePayload] = dict(completed or {})
        pending = [
            (slide.slide_number, slide) for slide in slides
            if slide.slide_number not in images and slide.image_data is None
        ]
        done_offset = total - len(pending) - len(images)

        def _on_result(ordinal: int, payload: ImagePayload):
            images[ordinal] = payload
            if on_progress is not None:
                on_progress(len(images) + done_offset, total)

        if on_progress is not None:
            on_progress(len(images) + done_offset, total)

        outcome = await run_bounded(
            pending, lambda slide: self._generate(slide, audience),
            self.max_concurrency, cancel_event, _on_result
        )

        if outcome.error is not None:
            raise StageFailedError(WorkflowStage.GENERATING_IMAGES, classify_error(outcome.error),
                                   partial=images, cause=outcome.error)
        if outcome.cancelled:
            cause = GenerationCancelledError(f"Cancelled with {len(images)} new images generated")
            raise StageFailedError(WorkflowStage.GENERATING_IMAGES, ErrorKind.CANCELLED, partial=images,
                                   cause=cause)

        logger.info(f"Generated {len(pending)} images ({total} slides)")
        return [(ordinal, images[ordinal]) for ordinal in sorted(images)]
