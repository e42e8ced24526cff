"""
Logging setup for the API and Lambda handlers.
"""
import logging

from photo_upload.core import config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure the root logger once; Lambda pre-installs a handler, so only its level is set there."""
    level = (level or config.settings.log_level).upper()
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
