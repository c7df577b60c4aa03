"""Logging configuration helpers."""

import logging

_NOISY_LIBRARIES = ("httpx", "httpcore", "hpack")


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the ``beztern`` logger.

    Safe to call repeatedly; later calls only adjust the level.
    """
    logger = logging.getLogger("beztern")
    logger.setLevel(level.upper())
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s: %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
