"""
openrouter-cli - OpenRouter from the terminal

A command-line client that sends prompts to models behind the OpenRouter
gateway and lists the models it exposes.
"""

__version__ = "0.1.0"
__author__ = "OpenRouter CLI Development Team"

from .core.api import OpenRouterClient
from .core.config import Config, resolve
from .utils.logging import configure_default_logging

configure_default_logging()

__all__ = [
    "OpenRouterClient",
    "Config",
    "resolve",
]
