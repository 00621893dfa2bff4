"""
Logging configuration using Loguru.

Console output always; rotating file output when enabled in settings.
"""
import sys
from pathlib import Path
from loguru import logger

from flow_service.config import settings


def setup_logging() -> None:
    """
    Configure loguru logger with appropriate handlers and formatting.

    Development mode:
    - Colorized console output
    - Detailed format with file:line info

    Production mode:
    - Plain console output (for container logs)
    - File output with rotation when `log_to_file` is set
    """

    # Remove default handler
    logger.remove()

    dev_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    prod_format = (
        "{time:YYYY-MM-DD HH:mm:ss} | "
        "{level: <8} | "
        "{name}:{function}:{line} | "
        "{message}"
    )

    logger.add(
        sys.stdout,
        format=dev_format if settings.debug else prod_format,
        level=settings.log_level,
        colorize=settings.debug,
        backtrace=settings.debug,
        diagnose=settings.debug,
    )

    if settings.log_to_file and settings.log_file_name:
        log_dir = Path(settings.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / settings.log_file_name,
            format=prod_format,
            level="INFO",
            rotation="100 MB",
            retention="10 days",
            compression="zip",
            enqueue=True,
        )

    logger.info(f"Logging configured - Level: {settings.log_level}")
    logger.debug(f"Debug mode: {settings.debug}")
