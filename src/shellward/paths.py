"""XDG path helpers and connection-scoped storage roots."""

from __future__ import annotations

import re
from pathlib import Path

from platformdirs import PlatformDirs

APP_NAME = "shellward"
APP_AUTHOR = "shellward"

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def dirs() -> PlatformDirs:
    return PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=False)


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_root() -> Path:
    return ensure_dir(Path(dirs().user_config_path))


def state_root() -> Path:
    return ensure_dir(Path(dirs().user_state_path))


def data_root() -> Path:
    return ensure_dir(Path(dirs().user_data_path))


def settings_path() -> Path:
    return config_root() / "settings.json"


def connection_slug(connection_id: str) -> str:
    slug = _UNSAFE_ID_CHARS.sub("-", connection_id).strip("-.")
    return slug or "default"


def connection_data_dir(connection_id: str) -> Path:
    return ensure_dir(data_root() / "connections" / connection_slug(connection_id))
