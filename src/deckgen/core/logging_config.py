"""
Logging utilities
"""

import logging
from typing import Union


def setup_logging(level: Union[int, str] = logging.INFO):
    """Configure logging with console output."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S',
        force=True
    )
