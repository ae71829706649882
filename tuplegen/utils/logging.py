"""
Logging configuration and utilities.

This module provides centralized logging configuration for the
tuplegen package with appropriate formatting and levels.
"""

import logging
import os
from typing import Optional

ROOT_LOGGER_NAME = "tuplegen"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the tuplegen package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
    """
    # Determine log level
    if level is None:
        level = os.environ.get("TUPLEGEN_LOG_LEVEL", "INFO")

    log_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance below the ``tuplegen`` namespace
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class ExpansionLogger:
    """
    Structured logging for the expansion pipeline.

    This class provides specialized logging methods for the stages of
    expanding one annotated site.
    """

    def __init__(self, name: str):
        """
        Initialize logger for specific component.

        Args:
            name: Component name for logging context
        """
        self.logger = get_logger(name)

    def log_expansion_start(self, site_name: str, mode: str, max_degree: int) -> None:
        """
        Log the beginning of a site expansion.

        Args:
            site_name: Display name of the annotated site
            mode: Expansion mode (full-automatic or semi-automatic)
            max_degree: Configured maximum tuple arity
        """
        self.logger.info(f"Expanding {site_name} ({mode}, arities 0..={max_degree})")

    def log_declaration(self, site_name: str, arity: int) -> None:
        """Log one generated declaration."""
        self.logger.debug(f"Generated arity {arity} declaration for {site_name}")

    def log_directive(self, position: str, arity: int, copies: int) -> None:
        """
        Log one repetition expansion.

        Args:
            position: Directive position (type, expression, statement, predicate)
            arity: Target tuple arity
            copies: Number of produced copies
        """
        self.logger.debug(f"Expanded {position} repetition at arity {arity} into {copies} copies")

    def log_skipped_method(self, method: str, reason: str) -> None:
        """Log a trait method that gets no generated body."""
        self.logger.debug(f"Skipping method '{method}': {reason}")

    def log_failure(self, site_name: str, error: Exception) -> None:
        """Log an aborted site expansion."""
        self.logger.warning(f"Expansion of {site_name} aborted: {error}")

    def log_cache_hit(self, site_name: str, max_degree: int) -> None:
        """
        Log cache hit for an expanded site.

        Args:
            site_name: Display name of the site
            max_degree: Degree the cached expansion was produced for
        """
        self.logger.debug(f"Cache hit for {site_name} at degree {max_degree}")

    def log_cache_miss(self, site_name: str, max_degree: int) -> None:
        """
        Log cache miss requiring a new expansion.

        Args:
            site_name: Display name of the site
            max_degree: Degree of the requested expansion
        """
        self.logger.debug(f"Cache miss for {site_name} at degree {max_degree}")


# Initialize logging on module import
setup_logging()
