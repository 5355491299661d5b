"""Configuration and logging shared by the Foundation client."""

from foundation_client.core.config import FoundationSettings, LogSettings, Settings, get_settings
from foundation_client.core.logging import configure_logging, redact

__all__ = [
    "FoundationSettings",
    "LogSettings",
    "Settings",
    "get_settings",
    "configure_logging",
    "redact",
]
