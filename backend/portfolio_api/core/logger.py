from __future__ import annotations

import functools
import logging
import sys

from portfolio_api.core.config import settings


class AppLogger:
    def __init__(self, name: str, log_level: int = logging.INFO):
        self.logger = logging.getLogger(name or settings.PROJECT_NAME)
        self.logger.setLevel(level=log_level)

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
        self.logger.propagate = True


@functools.lru_cache
def init_logger(name: str = "portfolio-api") -> logging.Logger:
    level = logging.getLevelName(settings.LOG_LEVEL)
    if not isinstance(level, int):
        level = logging.INFO
    return AppLogger(name=name, log_level=level).logger
