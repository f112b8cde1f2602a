"""Logging setup for the CLI. Log lines go to stderr so stdout stays scriptable."""

import logging
import sys

VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def level_for_verbosity(count: int) -> int:
    """Map the number of -v flags to a log level; two or more means DEBUG."""
    return VERBOSITY_LEVELS.get(count, logging.DEBUG)


def configure_logging(level: int = logging.WARNING) -> None:
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
