"""Settings models and persistence."""

from shellward.config.models import AppSettings
from shellward.config.store import SettingsStore

__all__ = ["AppSettings", "SettingsStore"]
