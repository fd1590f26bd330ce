import logging
import sys
from typing import Optional

LOGGER_NAMESPACES = ("shared", "worker", "coordinator")


def setup_logging(level="INFO", log_file: Optional[str] = None) -> None:
    """
    Configures console (and optional file) logging for the project packages.

    Args:
        level: Logging level name or number.
        log_file: Optional path to also write logs to.
    """
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    for namespace in LOGGER_NAMESPACES:
        logger = logging.getLogger(namespace)
        logger.setLevel(level)
        # Avoid duplicate output when called again after a reload
        if logger.hasHandlers():
            logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)

    logging.getLogger("shared").info("Logging initialized at %s", level)
