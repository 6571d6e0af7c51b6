"""Root logger setup shared by the API process and scripts."""

from __future__ import annotations

import logging
import sys

from pythonjsonlogger import jsonlogger

from hospital.core.config import Settings

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(settings: Settings) -> None:
    if settings.log_json:
        formatter: logging.Formatter = jsonlogger.JsonFormatter(fmt=JSON_FORMAT)
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=settings.log_level.upper(), handlers=[handler], force=True)
