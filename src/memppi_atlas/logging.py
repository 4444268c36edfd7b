"""
Logging setup shared by the API server, the CLI and the scripts.
"""

import logging

LOG_FORMAT = "%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s"


def setup_logging(name: str, level: str = "INFO") -> logging.Logger:
    """
    Configure process logging and return a named logger.

    Args:
        name: Logger name (usually the entry point, e.g. 'memppi_atlas.api').
        level: Log level string (e.g. 'INFO', 'DEBUG').

    Returns:
        Configured logger instance.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    return logging.getLogger(name)
