"""
Logging setup shared by the CLI and the API server.

Modules log through ``logging.getLogger(__name__)``; this installs one rich
handler on the root logger.
"""

import logging

from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    """
    Route all log records through a RichHandler at the given level.

    Safe to call more than once; the previous handlers are replaced.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )

    # Request lines from httpx are only useful when debugging the store client
    if level.upper() != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
