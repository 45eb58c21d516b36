"""
Metaload Logger - Per-invocation Logging Utility
Build one logger per command run and hand it to every component.
"""
import logging
import sys

LOGGER_NAME = "metaload"


def setup_logger(verbose: bool = False, stream=None, name: str = LOGGER_NAME) -> logging.Logger:
    # Create a custom logger
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Create handlers
    c_handler = logging.StreamHandler(stream or sys.stdout)
    c_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Create formatters and add it to handlers
    c_format = logging.Formatter('%(message)s')  # Clean output for CLI
    c_handler.setFormatter(c_format)

    # Replace whatever a previous run left attached
    close_logger(logger)
    logger.addHandler(c_handler)

    return logger


def close_logger(logger: logging.Logger):
    """Detach and close handlers so nothing outlives the invocation"""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def get_logger(logger: logging.Logger = None) -> logging.Logger:
    """Components fall back to the package logger when none is passed in"""
    return logger if logger is not None else logging.getLogger(LOGGER_NAME)


__all__ = ["setup_logger", "close_logger", "get_logger", "LOGGER_NAME"]
