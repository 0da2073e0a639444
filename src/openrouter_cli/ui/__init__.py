"""
UI module for openrouter-cli

Contains the rich formatting components.
"""

from .formatting import RichFormatter, render_chat_response

__all__ = [
    "RichFormatter",
    "render_chat_response",
]
