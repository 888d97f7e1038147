"""
HueQuery Structured Logging
loguru sink setup for the API process.
"""
import sys
from typing import Optional

from loguru import logger

from huequery.config import config

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message} | {extra}"


class StructuredLogger:
    """Owns the process-wide loguru sink."""

    def __init__(self, level: Optional[str] = None, serialize: Optional[bool] = None):
        self.level = (level or config.LOG_LEVEL).upper()
        self.serialize = config.LOG_JSON if serialize is None else serialize
        self.sink_id: Optional[int] = None
        self._configure_logger()

    def _configure_logger(self):
        # Replaces loguru's default stderr handler
        logger.remove()
        self.sink_id = logger.add(
            sys.stdout,
            format=LOG_FORMAT,
            level=self.level,
            serialize=self.serialize
        )

    def log_startup(self, port: int, weight_policy: str, vision_enabled: bool):
        logger.bind(port=port, weight_policy=weight_policy, vision=vision_enabled).info(
            f"Server running at http://localhost:{port}"
        )


# Global logger instance
_logger: Optional[StructuredLogger] = None


def get_logger() -> StructuredLogger:
    """Get or create global logger instance."""
    global _logger
    if _logger is None:
        _logger = StructuredLogger()
    return _logger
