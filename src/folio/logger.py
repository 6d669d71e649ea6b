# src/folio/logger.py
"""Logging setup for applications embedding Folio.

Library modules only create loggers; handlers are installed by the
application (the CLI calls configure_logging).
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty third-party loggers, capped at WARNING
NOISY_LOGGERS = ("LiteLLM", "LiteLLM Router", "LiteLLM Proxy", "httpx", "httpcore")


def configure_logging(level: str | int = "WARNING") -> None:
    """Install a single stream handler on the folio logger.

    Calling it again replaces the handler and level.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or number.
    """
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger("folio")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
