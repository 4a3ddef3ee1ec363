"""
AI provider implementations
"""

import json
import logging
from typing import Any, List, Optional

import openai

from .base import (
    AIProvider, AIMessage, AIResponse, ChatCompletionRequest,
    GeneratedImage, ImageGenerationRequest
)
from ..core.config import AIConfig
from ..core.exceptions import ContentFilteredError

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """OpenAI API provider"""

    def __init__(self, config: AIConfig, api_key: Optional[str] = None, client: Any = None):
        super().__init__(config)
        if client is not None:
            self.client = client
        else:
            # Retries are handled by RetryPolicy, never by the SDK
            self.client = openai.AsyncOpenAI(
                api_key=api_key or config.openai_api_key,
                base_url=config.openai_base_url,
                timeout=config.request_timeout,
                max_retries=0
            )

    def _log_payload(self, label: str, payload: Any):
        if self.config.log_ai_requests:
            logger.debug(f"{label} payload: {json.dumps(payload, ensure_ascii=False)[:2000]}")

    async def chat_completion(self, messages: List[AIMessage], **kwargs) -> AIResponse:
        """Generate chat completion using OpenAI"""
        config = self._merge_config(**kwargs)
        request = ChatCompletionRequest(messages=messages, **config)
        payload = request.to_payload()
        self._log_payload("Chat completion", payload)

        response = await self.client.chat.completions.create(**payload)

        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise ContentFilteredError("The generation service filtered the response content")

        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens
            }

        return AIResponse(
            id=response.id,
            content=choice.message.content or "",
            model=response.model,
            usage=usage,
            finish_reason=choice.finish_reason
        )

    async def generate_image(self, request: ImageGenerationRequest) -> List[GeneratedImage]:
        """Generate images using the OpenAI images endpoint"""
        payload = request.to_payload()
        self._log_payload("Image generation", payload)

        response = await self.client.images.generate(
            timeout=self.config.image_request_timeout,
            **payload
        )
        return [
            GeneratedImage(
                url=getattr(item, "url", None),
                b64_json=getattr(item, "b64_json", None),
                revised_prompt=getattr(item, "revised_prompt", None)
            )
            for item in (response.data or [])
        ]

    async def list_models(self) -> List[str]:
        """List models; doubles as a cheap credential check"""
        page = await self.client.models.list()
        return [model.id for model in page.data]

    async def close(self):
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
