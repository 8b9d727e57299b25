"""Configuration — user-facing BeautifySettings and their JSON storage."""

from .settings import (
    BeautifySettings, SettingsError,
    settings_from_dict, load_settings, save_settings, apply_debug_logging,
)

__all__ = [
    "BeautifySettings", "SettingsError",
    "settings_from_dict", "load_settings", "save_settings", "apply_debug_logging",
]
