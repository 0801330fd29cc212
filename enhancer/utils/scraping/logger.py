"""
Logging configuration for the enhancer package.
"""
import logging
import os
from pathlib import Path

# Logs live in the project root unless ENHANCER_LOG_DIR points elsewhere
LOG_DIR = Path(os.getenv('ENHANCER_LOG_DIR', Path(__file__).parent.parent.parent.parent / 'logs'))
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Main log file path
LOG_FILE = LOG_DIR / 'enhancer.log'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str = 'enhancer', log_level: int = logging.INFO) -> logging.Logger:
    """
    Set up a logger writing to the shared log file.

    Args:
        name: Name of the logger
        log_level: Logging level (default: logging.INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicate logs
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name, configured with the default settings.
    """
    level = logging.getLevelName(os.getenv('LOG_LEVEL', 'INFO').upper())
    if not isinstance(level, int):
        level = logging.INFO
    return setup_logger(name, level)


def enable_console_logging(level: int = logging.DEBUG) -> None:
    """Mirror every enhancer logger to stderr (used by the CLI's --verbose)."""
    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    for name, logger in logging.Logger.manager.loggerDict.items():
        if not name.startswith('enhancer') or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(level)
        if not any(type(h) is logging.StreamHandler for h in logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            logger.addHandler(handler)
