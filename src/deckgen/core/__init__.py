"""
Core configuration, errors and logging for deckgen
"""

from .config import AIConfig, AppConfig, load_settings
from .exceptions import ErrorKind, DeckGenException
from .logging_config import setup_logging

__all__ = [
    "AIConfig",
    "AppConfig",
    "load_settings",
    "ErrorKind",
    "DeckGenException",
    "setup_logging",
]
