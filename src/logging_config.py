"""Process-wide logging configuration.

Library modules only create module loggers; the command line entry point
calls ``setup_logging`` once. Repeated calls are no-ops.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers to suppress to WARNING
_SUPPRESSED_LOGGERS = ("httpx", "httpcore")

_configured = False


def setup_logging(level: str = "INFO") -> None:
    global _configured  # noqa: PLW0603
    if _configured:
        return
    _configured = True

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["LOG_DATEFMT", "LOG_FORMAT", "setup_logging"]
