"""
Content filter: screens generated text and image prompts for the audience
"""

import asyncio
import logging
from typing import List, Tuple

from ..models.project import Audience
from .generation_client import ContentValidationResult, GenerationClient

logger = logging.getLogger(__name__)

PROHIBITED_IMAGE_TERMS: Tuple[str, ...] = ("violence", "blood", "weapon", "death", "nude", "explicit")


class ContentFilter:
    """Audience appropriateness checks backed by the generation service.

    Image prompts are checked against a local blocklist first and then by
    the service at the kids standard, the strictest one. When content is
    rejected, ``suggest_improvement`` offers a rewritten version.
    """

    def __init__(self, client: GenerationClient, batch_delay: float = 0.2,
                 prohibited_terms: Tuple[str, ...] = PROHIBITED_IMAGE_TERMS):
        self.client = client
        self.batch_delay = batch_delay
        self.prohibited_terms = prohibited_terms

    async def validate_content(self, content: str, audience: Audience) -> ContentValidationResult:
        logger.info(f"Validating content for {audience.value} audience")
        result = await self.client.validate_content(content, audience)
        if result.is_approved:
            logger.info("Content validated successfully")
        else:
            logger.warning(f"Content validation failed: {', '.join(result.concerns)}")
        return result

    async def validate_batch(self, contents: List[str], audience: Audience) -> List[ContentValidationResult]:
        """Validate items one after another; results keep the input order"""
        results = []
        for index, content in enumerate(contents):
            if index and self.batch_delay:
                await asyncio.sleep(self.batch_delay)
            results.append(await self.validate_content(content, audience))

        approved = sum(1 for result in results if result.is_approved)
        logger.info(f"Batch validation complete: {approved}/{len(contents)} approved")
        return results

    def blocked_term(self, prompt: str) -> str:
        """First prohibited term found in ``prompt``, or an empty string"""
        lowered = prompt.lower()
        for term in self.prohibited_terms:
            if term in lowered:
                return term
        return ""

    async def validate_image_prompt(self, prompt: str) -> bool:
        term = self.blocked_term(prompt)
        if term:
            logger.warning(f"Image prompt contains prohibited term: {term}")
            return False
        result = await self.validate_content(prompt, Audience.KIDS)
        return result.is_approved

    async def suggest_improvement(self, content: str, concerns: List[str], audience: Audience) -> str:
        improved = await self.client.suggest_improvement(content, concerns, audience)
        logger.info("Generated improved content")
        return improved
