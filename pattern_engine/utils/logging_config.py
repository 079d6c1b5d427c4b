# pattern_engine/utils/logging_config.py

from typing import Union
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("pattern_engine")


def setup_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Configure root logging for command line use"""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logger.setLevel(level)
    return logger
