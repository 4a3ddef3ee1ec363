"""
Typed client for the remote chat and image generation endpoints
"""

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp

from ..ai.base import AIMessage, AIProvider, ImageGenerationRequest, MessageRole
from ..ai.prompts import (
    ANALYSIS_SYSTEM_PROMPT, CONTENT_FILTER_SYSTEM_PROMPT, SLIDE_SYSTEM_PROMPT, PromptTemplates
)
from ..ai.providers import OpenAIProvider
from ..ai.retry import RetryPolicy
from ..core.config import AIConfig
from ..core.exceptions import (
    ConfigurationError, ErrorKind, GenerationError, ImageProcessingError, ValidationError
)
from ..models.project import Audience, ImageFormat, KeyPoint

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

VALIDATION_TEMPERATURE = 0.3
VALIDATION_MAX_TOKENS = 300


@dataclass
class AnalysisResult:
    key_points: List[KeyPoint]
    suggested_slide_count: int


@dataclass
class SlideContent:
    title: str
    body: str
    image_prompt: str
    notes: Optional[str] = None


@dataclass
class ContentValidationResult:
    is_approved: bool
    concerns: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class ImagePayload:
    """Downloaded image bytes, not yet written to the store"""
    data: bytes
    prompt: str
    source_url: Optional[str] = None
    format: ImageFormat = ImageFormat.PNG


class ImageDownloader:
    """Fetches generated images over HTTP"""

    def __init__(self, timeout: float = 60.0):
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def download(self, url: str) -> ImagePayload:
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    kind = ErrorKind.TRANSIENT if response.status >= 500 else ErrorKind.FATAL
                    raise GenerationError(f"Image download failed with HTTP {response.status}", kind=kind)
                data = await response.read()
                content_type = response.headers.get('content-type', 'image/png')

        if not data:
            raise ImageProcessingError(f"Image download returned no data: {url}")
        return ImagePayload(data=data, prompt="", source_url=url,
                            format=ImageFormat.from_mime_type(content_type))


def _parse_json(content: str, description: str) -> Dict[str, Any]:
    text = content.strip()
    match = _JSON_FENCE.match(text)
    if match:
        text = match.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Invalid JSON in {description} response: {e}") from e
    if not isinstance(data, dict):
        raise GenerationError(f"Unexpected {description} response shape: {type(data).__name__}")
    return data


class GenerationClient:
    """Maps pipeline requests onto the provider; every call goes through the retry policy"""

    def __init__(self, provider: AIProvider, retry_policy: RetryPolicy, ai_config: AIConfig,
                 downloader: Optional[ImageDownloader] = None):
        if provider is None:
            raise ConfigurationError("GenerationClient requires a provider")
        if retry_policy is None:
            raise ConfigurationError("GenerationClient requires a retry policy")
        self.provider = provider
        self.retry_policy = retry_policy
        self.config = ai_config
        self.downloader = downloader or ImageDownloader(timeout=ai_config.image_request_timeout)

    @classmethod
    def from_credentials(cls, credentials, ai_config: AIConfig,
                         retry_policy: Optional[RetryPolicy] = None) -> 'GenerationClient':
        """Build a client for the key the credential provider currently holds"""
        api_key = credentials.current_key() if credentials is not None else None
        if not api_key:
            raise ConfigurationError("No API key available; set OPENAI_API_KEY")
        provider = OpenAIProvider(ai_config, api_key=api_key)
        return cls(provider, retry_policy or RetryPolicy.from_config(ai_config), ai_config)

    async def analyze(self, text: str, audience: Audience) -> AnalysisResult:
        """Extract ordered key points from document text"""
        if not text or not text.strip():
            raise ValidationError("Document text is empty")

        messages = [
            AIMessage(role=MessageRole.SYSTEM, content=ANALYSIS_SYSTEM_PROMPT),
            AIMessage(role=MessageRole.USER, content=PromptTemplates.analysis_prompt(text, audience)),
        ]
        response = await self.retry_policy.execute(
            lambda: self.provider.chat_completion(messages, max_tokens=self.config.max_tokens),
            "Content analysis"
        )
        data = _parse_json(response.content, "analysis")

        key_points = []
        for index, item in enumerate(data.get("keyPoints") or [], start=1):
            if isinstance(item, str):
                content, order, importance = item, index, None
            elif isinstance(item, dict):
                content = item.get("content", "")
                order = item.get("order", index)
                importance = item.get("importance")
            else:
                continue
            content = str(content).strip()
            if not content:
                continue
            try:
                order = int(order)
            except (TypeError, ValueError):
                order = index
            key_points.append(KeyPoint(content=content, order=order, importance=importance))

        try:
            suggested = int(data.get("suggestedSlideCount") or len(key_points))
        except (TypeError, ValueError):
            suggested = len(key_points)

        logger.info(f"Analysis returned {len(key_points)} key points, suggested {suggested} slides")
        return AnalysisResult(key_points=key_points, suggested_slide_count=suggested)

    async def generate_slide_content(self, key_point: KeyPoint, audience: Audience,
                                     slide_number: int, total_slides: int) -> SlideContent:
        if not key_point.content or not key_point.content.strip():
            raise ValidationError("Key point content is empty")
        if total_slides < 1 or not 1 <= slide_number <= total_slides:
            raise ValidationError(f"Slide number {slide_number} is outside 1..{total_slides}")

        messages = [
            AIMessage(role=MessageRole.SYSTEM, content=SLIDE_SYSTEM_PROMPT),
            AIMessage(
                role=MessageRole.USER,
                content=PromptTemplates.slide_prompt(key_point, audience, slide_number, total_slides)
            ),
        ]
        response = await self.retry_policy.execute(
            lambda: self.provider.chat_completion(messages, max_tokens=self.config.slide_max_tokens),
            f"Slide {slide_number} content"
        )
        data = _parse_json(response.content, "slide")
        return SlideContent(
            title=str(data.get("title", "")),
            body=str(data.get("content", "")),
            image_prompt=str(data.get("imagePrompt", "")),
            notes=data.get("speakerNotes")
        )

    def _image_request(self, prompt: str, audience: Audience) -> ImageGenerationRequest:
        if audience == Audience.KIDS:
            quality, style = self.config.kids_image_quality, self.config.kids_image_style
        else:
            quality, style = self.config.image_quality, self.config.image_style
        return ImageGenerationRequest(
            model=self.config.image_model,
            prompt=PromptTemplates.enhance_image_prompt(prompt, audience),
            size=self.config.image_size,
            quality=quality,
            style=style
        )

    async def generate_image(self, prompt: str, audience: Audience) -> ImagePayload:
        """Generate one image and return its downloaded bytes"""
        if not prompt or not prompt.strip():
            raise ValidationError("Image prompt is empty")

        request = self._image_request(prompt, audience)
        images = await self.retry_policy.execute(
            lambda: self.provider.generate_image(request),
            "Image generation"
        )
        if not images:
            raise GenerationError("Image generation returned no images")
        image = images[0]

        if image.url:
            payload = await self.retry_policy.execute(
                lambda: self.downloader.download(image.url),
                "Image download"
            )
        elif image.b64_json:
            try:
                data = base64.b64decode(image.b64_json)
            except (binascii.Error, ValueError) as e:
                raise ImageProcessingError(f"Invalid base64 image data: {e}") from e
            payload = ImagePayload(data=data, prompt="")
        else:
            raise GenerationError("Image generation response had neither url nor data")

        payload.prompt = request.prompt
        return payload

    async def validate_content(self, content: str, audience: Audience) -> ContentValidationResult:
        """Ask the service whether content suits the audience"""
        if not content or not content.strip():
            raise ValidationError("Content to validate is empty")

        messages = [
            AIMessage(role=MessageRole.SYSTEM, content=CONTENT_FILTER_SYSTEM_PROMPT),
            AIMessage(role=MessageRole.USER, content=PromptTemplates.content_validation_prompt(content, audience)),
        ]
        response = await self.retry_policy.execute(
            lambda: self.provider.chat_completion(
                messages, temperature=VALIDATION_TEMPERATURE, max_tokens=VALIDATION_MAX_TOKENS
            ),
            "Content validation"
        )
        data = _parse_json(response.content, "validation")
        return ContentValidationResult(
            is_approved=data.get("isApproved") is True,
            concerns=[str(item) for item in data.get("concerns") or []],
            suggestions=[str(item) for item in data.get("suggestions") or []]
        )

    async def suggest_improvement(self, content: str, concerns: List[str], audience: Audience) -> str:
        """Rewrite rejected content so it addresses the given concerns"""
        messages = [
            AIMessage(role=MessageRole.SYSTEM,
                      content=PromptTemplates.improvement_system_prompt(concerns, audience)),
            AIMessage(role=MessageRole.USER, content=content),
        ]
        response = await self.retry_policy.execute(
            lambda: self.provider.chat_completion(messages, max_tokens=self.config.slide_max_tokens),
            "Content improvement"
        )
        improved = response.content.strip()
        if not improved:
            raise GenerationError("Content improvement returned an empty response")
        return improved

    async def validate_credential(self) -> bool:
        """Check the key against the service; False only when it is rejected"""
        try:
            await self.retry_policy.execute(self.provider.list_models, "Credential validation")
        except GenerationError as e:
            if e.kind == ErrorKind.AUTH:
                logger.warning("API key was rejected by the generation service")
                return False
            raise
        return True

    async def close(self):
        await self.provider.close()
