"""
AI modules for deckgen
"""

from .base import AIProvider, AIMessage, AIResponse, MessageRole, ImageGenerationRequest, GeneratedImage
from .providers import OpenAIProvider
from .retry import RetryPolicy, classify_error
from .prompts import PromptTemplates

__all__ = [
    "AIProvider",
    "AIMessage",
    "AIResponse",
    "MessageRole",
    "ImageGenerationRequest",
    "GeneratedImage",
    "OpenAIProvider",
    "RetryPolicy",
    "classify_error",
    "PromptTemplates"
]
