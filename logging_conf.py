"""Logging setup for the engine's command line."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Loggers of the Supabase client stack; request-level chatter at INFO
NOISY_LOGGERS = ("httpx", "hpack", "httpcore")


def configure_logging(level="INFO"):
    """Route all engine logs to stderr at *level* (name or number).

    stdout belongs to the JSON result. Calling again replaces the handler,
    so the root logger never ends up with duplicates. Unknown level names
    fall back to INFO.
    """
    if isinstance(level, int):
        numeric_level = level
    else:
        numeric_level = logging.getLevelName(str(level).upper())
        if not isinstance(numeric_level, int):
            numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
