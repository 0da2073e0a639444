"""
Core module for openrouter-cli

Contains configuration resolution, the gateway API client and model list
handling.
"""

from .api import OpenRouterClient, ChatRequest, ChatResponse, Message, ModelInfo
from .config import Config, ConfigOverrides, resolve
from .models import filter_models

__all__ = [
    "OpenRouterClient",
    "ChatRequest",
    "ChatResponse",
    "Message",
    "ModelInfo",
    "Config",
    "ConfigOverrides",
    "resolve",
    "filter_models",
]
