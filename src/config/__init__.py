"""Configuration module for the level queue.

Available Configurations:
- QueueSettings: Queue behavior, selection and persistence settings
"""

from src.config.queue_settings import (
    QueueSettings,
    SettingsError,
    load_settings,
    parse_duration,
    settings_from_mapping,
)

__all__ = [
    "QueueSettings",
    "SettingsError",
    "load_settings",
    "parse_duration",
    "settings_from_mapping",
]
