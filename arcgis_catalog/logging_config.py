"""
Logging setup for the catalog connector.

Library modules only call ``logging.getLogger(__name__)``; the entry point
calls ``setup_logging`` once.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


def setup_logging(
    console_level: str = "INFO",
    file_path: Optional[Path] = None,
    file_level: str = "DEBUG"
) -> None:
    """
    Configure root logging for a run.

    Removes any existing root handlers, sets the root logger to DEBUG, and
    installs a console handler writing to stdout. Optionally installs a
    FileHandler at ``file_path`` (parents created if needed).

    Parameters:
        console_level (str): Level name for the console handler. Default: "INFO".
        file_path (Optional[Path]): Log file path; no file handler if None.
        file_level (str): Level name for the file handler. Default: "DEBUG".
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level.upper())
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    root_logger.addHandler(console_handler)

    if file_path:
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path, mode="w", encoding="utf-8")
        file_handler.setLevel(file_level.upper())
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root_logger.addHandler(file_handler)

    # Suppress noisy urllib3 connection chatter
    for name in ("urllib3", "urllib3.connectionpool"):
        logging.getLogger(name).setLevel(logging.ERROR)
