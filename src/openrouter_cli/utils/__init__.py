"""
Utils module for openrouter-cli

Contains prompt input handling and logging helpers.
"""

from .input import resolve_input

__all__ = [
    "resolve_input",
]
