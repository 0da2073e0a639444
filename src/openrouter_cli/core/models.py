"""
Model list handling for openrouter-cli
"""

from typing import Iterable, List, Optional

import structlog

from .api import ModelInfo

logger = structlog.get_logger(__name__)


def filter_models(
    models: Iterable[ModelInfo],
    name_filter: Optional[str] = None,
    unavailable: Iterable[str] = (),
) -> List[ModelInfo]:
    """
    Drop models on the unavailable list, then keep those whose id or name
    contains name_filter (case-insensitive). The result may be empty.
    """
    denylist = set(unavailable)
    result = [m for m in models if m.id not in denylist]

    if name_filter:
        needle = name_filter.lower()
        result = [m for m in result if needle in m.id.lower() or needle in m.name.lower()]

    logger.debug("Filtered models", name_filter=name_filter, hidden=len(denylist), count=len(result))
    return result


def format_price(price: str) -> str:
    """Format a price string for display"""
    if price == "" or price == "0":
        return "free"
    if len(price) > 15:
        return price[:15] + "..."
    return price
