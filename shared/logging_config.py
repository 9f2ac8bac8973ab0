"""
Logging configuration for the replica-set bootstrap tool.

Diagnostics are opt-in: with debug enabled every step is written to stderr,
otherwise the process stays silent and callers read the exit code.
"""

import logging
import sys
from typing import Optional


def setup_logging(
    component_name: str,
    debug: bool = False,
    format_string: Optional[str] = None
):
    """
    Configure logging for a bootstrap run.

    Args:
        component_name: Component identifier used in the line prefix (e.g., 'replboot')
        debug: Emit step-by-step DEBUG lines to the error stream
        format_string: Custom format string (default provided)
    """
    if format_string is None:
        format_string = f'[%(asctime)s] [{component_name.upper()}] %(levelname)s - %(message)s'

    if debug:
        handlers = [logging.StreamHandler(sys.stderr)]
        level = logging.DEBUG
    else:
        handlers = [logging.NullHandler()]
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
        force=True
    )

    logger = logging.getLogger(component_name)
    logger.debug(f"{component_name.upper()} logging initialized (level={logging.getLevelName(level)})")

    return logger
