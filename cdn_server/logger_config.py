import logging
import sys
from pathlib import Path

from cdn_server.config import settings

ROOT_LOGGER = "cdn_server"

CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(levelname)s - %(name)s [%(filename)s:%(lineno)d] - %(message)s'


def _configure(root: logging.Logger):
    root.setLevel(logging.DEBUG)
    root.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(settings.LOG_LEVEL.upper())
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root.addHandler(console_handler)

    if settings.LOG_DIR:
        logs_dir = Path(settings.LOG_DIR)
        logs_dir.mkdir(exist_ok=True, parents=True)
        file_handler = logging.FileHandler(logs_dir / "cdn_server.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.addHandler(file_handler)


def setup_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger under ``cdn_server``, configuring the shared handlers once.

    Modules pass ``__name__`` so records show which service emitted them.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        _configure(root)
    return logging.getLogger(name)
