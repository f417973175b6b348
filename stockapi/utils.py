"""
Utility functions for the Stock API.

Logging configuration and message helpers shared by the server and CLI.
"""

import sys
from typing import Optional

from loguru import logger

from .config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure loguru sinks from settings."""
    if settings is None:
        settings = get_settings()

    # Remove default handler
    logger.remove()

    # Add console handler
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )

    # Add file handler if configured
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention="30 days",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
        )


def affected_message(action: str, rows_affected: int) -> str:
    """
    Build the acknowledgement message for update and delete.

    Args:
        action: Past-tense verb, e.g. 'updated'
        rows_affected: Affected row count reported by the database

    Returns:
        str: e.g. 'Stock updated successfully. Total rows/records affected 1'
    """
    return f"Stock {action} successfully. Total rows/records affected {rows_affected}"
