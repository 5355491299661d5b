"""
Structured logging setup.

The library itself only calls structlog.get_logger(); configure_logging()
is for applications (and the CLI) that want the standard processor chain.
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog

from foundation_client.core.config import LogSettings, get_settings

SECRET_KEYS = frozenset({
    "ipmi_password",
    "ucsm_password",
    "xs_master_password",
})

REDACTED = "********"


def configure_logging(log_settings: Optional[LogSettings] = None) -> None:
    """Configure stdlib logging and structlog."""
    log_settings = log_settings or get_settings().log
    level = getattr(logging, log_settings.level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if log_settings.format == "json" else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def redact(value: Any) -> Any:
    """Return a copy of a JSON-like value with password fields masked."""
    if isinstance(value, dict):
        result: Dict[str, Any] = {}
        for key, item in value.items():
            if key in SECRET_KEYS and item is not None:
                result[key] = REDACTED
            else:
                result[key] = redact(item)
        return result
    if isinstance(value, list):
        return [redact(item) for item in value]
    return value
