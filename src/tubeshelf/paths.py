from __future__ import annotations

from pathlib import Path

from platformdirs import user_cache_path, user_config_path, user_data_path

APP_NAME = "tubeshelf"
STORE_FILENAME = "saved-videos.json"


def cache_root() -> Path:
    root = user_cache_path(APP_NAME)
    root.mkdir(parents=True, exist_ok=True)
    return root


def config_root() -> Path:
    root = user_config_path(APP_NAME)
    root.mkdir(parents=True, exist_ok=True)
    return root


def config_path() -> Path:
    return config_root() / "config.json"


def default_storage_dir() -> Path:
    return user_data_path(APP_NAME) / "videos"


def store_path(storage_dir: Path) -> Path:
    return storage_dir / STORE_FILENAME


def thumbs_cache_dir() -> Path:
    path = cache_root() / "thumbs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def log_path() -> Path:
    return cache_root() / f"{APP_NAME}.log"
