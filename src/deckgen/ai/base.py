"""
Base types for AI providers
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.config import AIConfig


class MessageRole(str, Enum):
    """Chat message roles"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class AIMessage(BaseModel):
    """A single chat message"""
    role: MessageRole
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class ChatCompletionRequest(BaseModel):
    """Chat completion request body"""
    model: str
    messages: List[AIMessage]
    temperature: float = 0.7
    max_tokens: int = 2000
    top_p: float = 1.0
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(exclude={"messages"})
        payload["messages"] = [message.to_payload() for message in self.messages]
        return payload


class AIResponse(BaseModel):
    """Chat completion result"""
    id: Optional[str] = None
    content: str = ""
    model: str = ""
    usage: Dict[str, int] = Field(default_factory=dict)
    finish_reason: Optional[str] = None


class ImageGenerationRequest(BaseModel):
    """Image generation request body"""
    model: str
    prompt: str
    n: int = 1
    size: str = "1024x1024"
    quality: str = "standard"
    style: str = "natural"
    response_format: str = "url"

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump()


class GeneratedImage(BaseModel):
    """One entry of an image generation response"""
    url: Optional[str] = None
    b64_json: Optional[str] = None
    revised_prompt: Optional[str] = None


class AIProvider(ABC):
    """Abstract base class for remote generation providers"""

    def __init__(self, config: AIConfig):
        self.config = config
        self.model = config.openai_model
        self.image_model = config.image_model

    def _merge_config(self, **kwargs) -> Dict[str, Any]:
        """Merge per-call overrides with configured generation parameters"""
        merged = {
            "model": self.model,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "top_p": self.config.top_p,
            "presence_penalty": self.config.presence_penalty,
            "frequency_penalty": self.config.frequency_penalty,
        }
        merged.update({key: value for key, value in kwargs.items() if value is not None})
        return merged

    @abstractmethod
    async def chat_completion(self, messages: List[AIMessage], **kwargs) -> AIResponse:
        """Generate a chat completion"""

    @abstractmethod
    async def generate_image(self, request: ImageGenerationRequest) -> List[GeneratedImage]:
        """Generate images for a prompt"""

    async def list_models(self) -> List[str]:
        """List model ids available to the current credential"""
        return []

    async def close(self):
        """Release any network resources held by the provider"""
