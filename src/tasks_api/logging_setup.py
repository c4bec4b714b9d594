from __future__ import annotations

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# PUBLIC_INTERFACE
def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure the root logger with a single stderr handler.

    Call this once, before the server starts. Pre-existing root handlers are
    removed to avoid duplicate lines when called from a reloader.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
