"""
Parser registry.

Maps engine names to their ParsingStrategy. Built-in strategies are
registered by the package __init__; callers may register their own.
"""

from __future__ import annotations

from src.search.parsers.strategy import ParsingStrategy, ResultParser
from src.utils.logging import get_logger

logger = get_logger(__name__)

_strategy_registry: dict[str, ParsingStrategy] = {}


def get_parser(engine_name: str) -> ResultParser | None:
    """
    Get parser instance for an engine.

    Args:
        engine_name: Engine name (case-insensitive).

    Returns:
        Parser instance or None if not available.
    """
    strategy = _strategy_registry.get(engine_name.lower())
    if strategy is None:
        logger.warning("No parser available for engine", engine=engine_name)
        return None
    return ResultParser(strategy)


def get_available_parsers() -> list[str]:
    """Get list of available parser engine names."""
    return sorted(_strategy_registry)


def register_parser(strategy: ParsingStrategy) -> None:
    """
    Register (or replace) the strategy for an engine.

    Args:
        strategy: Parsing strategy; its engine name is the registry key.
    """
    if not isinstance(strategy, ParsingStrategy):
        raise TypeError("register_parser expects a ParsingStrategy")

    _strategy_registry[strategy.engine.lower()] = strategy
    logger.debug("Registered parser", engine=strategy.engine)
