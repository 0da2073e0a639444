"""
Prompt input handling for openrouter-cli

Reads the prompt from command-line arguments, piped stdin, or both.
"""

import sys
from typing import IO, Optional, Sequence

import structlog

from ..core.errors import InputError, NoInputError

logger = structlog.get_logger(__name__)

MODE_SIMPLE = "simple"
MODE_COMBINE = "combine"


def read_piped_input(stream: Optional[IO] = None) -> Optional[str]:
    """
    Drain the stream when it is a pipe or file and return its stripped
    contents. Returns None when the stream is an interactive terminal.
    """
    if stream is None:
        stream = sys.stdin
    if stream is None or stream.isatty():
        return None

    try:
        data = stream.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"failed to read from stdin: {e}") from e

    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")

    logger.debug("Read piped input", size=len(data))
    return data.strip()


def resolve_input(
    args: Sequence[str],
    mode: str = MODE_SIMPLE,
    stream: Optional[IO] = None,
) -> str:
    """
    Resolve the prompt text.

    simple: arguments win; otherwise the piped stream is used.
    combine: arguments come first, then a blank line, then the piped stream;
    either part alone is returned as is.
    """
    prompt = " ".join(args)

    if mode == MODE_SIMPLE:
        if args:
            return prompt
        piped = read_piped_input(stream)
        if not piped:
            raise NoInputError()
        return piped

    if mode != MODE_COMBINE:
        raise ValueError(f"Unsupported input mode: {mode}")

    stdin_content = read_piped_input(stream) or ""

    if prompt and stdin_content:
        return f"{prompt}\n\n{stdin_content}"
    if prompt:
        return prompt
    if stdin_content:
        return stdin_content
    raise NoInputError()
