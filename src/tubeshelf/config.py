from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from .paths import config_path, default_storage_dir

CONFIG_VERSION = 1
DEFAULT_AUDIO_FORMAT = "mp3"

ENV_API_KEY = "TUBESHELF_API_KEY"
ENV_STORAGE_DIR = "TUBESHELF_STORAGE_DIR"
ENV_OPEN_COMMAND = "TUBESHELF_OPEN_COMMAND"


@dataclass
class AppConfig:
    version: int = CONFIG_VERSION
    api_key: str | None = None
    storage_dir: str | None = None
    audio_format: str | None = None
    open_command: str | None = None

    def resolved_storage_dir(self) -> Path:
        if self.storage_dir:
            return Path(self.storage_dir).expanduser()
        return default_storage_dir()

    def resolved_audio_format(self) -> str:
        return (self.audio_format or DEFAULT_AUDIO_FORMAT).lower().lstrip(".")


def load_config(path: Path | None = None) -> tuple[AppConfig, str | None]:
    path = path or config_path()
    if not path.exists():
        return AppConfig(), None
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        return AppConfig(), f"Failed to read config: {path} ({exc})"
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return AppConfig(), f"Config file is not valid JSON: {path}"
    if not isinstance(data, dict):
        return AppConfig(), f"Config file must be a JSON object: {path}"
    return _parse_config_data(data), None


def save_config(config: AppConfig, path: Path | None = None) -> str | None:
    path = path or config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return f"Failed to create config directory: {path.parent} ({exc})"
    payload = _config_to_dict(config)
    try:
        path.write_text(
            json.dumps(payload, ensure_ascii=True, indent=2),
            encoding="utf-8",
        )
    except OSError as exc:
        return f"Failed to write config: {path} ({exc})"
    return None


def apply_env_overrides(config: AppConfig, environ: Mapping[str, str]) -> AppConfig:
    """Return a copy of ``config`` with values taken from the environment."""
    updates: dict[str, Any] = {}
    api_key = _as_str(environ.get(ENV_API_KEY))
    if api_key:
        updates["api_key"] = api_key
    storage_dir = _as_str(environ.get(ENV_STORAGE_DIR))
    if storage_dir:
        updates["storage_dir"] = storage_dir
    open_command = _as_str(environ.get(ENV_OPEN_COMMAND))
    if open_command:
        updates["open_command"] = open_command
    if not updates:
        return config
    return replace(config, **updates)


def _parse_config_data(data: dict[str, Any]) -> AppConfig:
    return AppConfig(
        version=_as_int(data.get("version")) or CONFIG_VERSION,
        api_key=_as_str(data.get("api_key")),
        storage_dir=_as_str(data.get("storage_dir")),
        audio_format=_as_str(data.get("audio_format")),
        open_command=_as_str(data.get("open_command")),
    )


def _config_to_dict(config: AppConfig) -> dict[str, Any]:
    data: dict[str, Any] = {"version": config.version}
    _set_if(data, "api_key", config.api_key)
    _set_if(data, "storage_dir", config.storage_dir)
    _set_if(data, "audio_format", config.audio_format)
    _set_if(data, "open_command", config.open_command)
    return data


def _set_if(data: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


def _as_str(value: Any) -> str | None:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None
