from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Callable

from .errors import NotFoundError, ProcessError

Launcher = Callable[[list[str]], object]


def opener_command(path: Path, command: str | None = None, platform: str | None = None) -> list[str]:
    """Build the argv that opens ``path``; an empty list means ``os.startfile``."""
    if command:
        return [*shlex.split(command), str(path)]
    platform = platform or sys.platform
    if platform.startswith("win"):
        return []
    if platform == "darwin":
        return ["open", str(path)]
    return [shutil.which("xdg-open") or "xdg-open", str(path)]


def open_path(
    path: Path,
    command: str | None = None,
    *,
    launcher: Launcher | None = None,
) -> None:
    if not path.exists():
        raise NotFoundError(f"File not found: {path}")
    argv = opener_command(path, command)
    try:
        if not argv:
            os.startfile(path)
            return
        launcher = launcher or _popen
        launcher(argv)
    except OSError as exc:
        raise ProcessError(f"Failed to open {path}: {exc}") from exc


def _popen(argv: list[str]) -> subprocess.Popen[bytes]:
    return subprocess.Popen(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
