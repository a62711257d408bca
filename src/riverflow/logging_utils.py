"""Logging setup for riverflow."""

import logging


def setup_logging(level: str = "WARNING") -> None:
    """Configure the root logger.

    Parameters
    ----------
    level : str
        Logging level name (e.g. 'DEBUG', 'INFO'). Unknown names fall back to WARNING.
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    # basicConfig is a no-op if the root logger already has handlers
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
