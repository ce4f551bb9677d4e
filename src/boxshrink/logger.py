"""
Project-wide logger utility.
Logs go to stderr so stdout stays free for image data.
"""
import logging
import sys
from typing import Optional


def get_logger(module_name: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(module_name)
    if not logger.hasHandlers():
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            fmt="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
