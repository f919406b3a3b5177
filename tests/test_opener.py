from pathlib import Path

import pytest

from tubeshelf.errors import NotFoundError, ProcessError
from tubeshelf.opener import open_path, opener_command


def test_opener_command_platforms(tmp_path: Path) -> None:
    path = tmp_path / "video.mp4"
    assert opener_command(path, platform="darwin") == ["open", str(path)]
    assert opener_command(path, platform="win32") == []
    linux = opener_command(path, platform="linux")
    assert linux[0].endswith("xdg-open")
    assert linux[-1] == str(path)


def test_opener_command_configured(tmp_path: Path) -> None:
    path = tmp_path / "my video.mp4"
    assert opener_command(path, "mpv --fs") == ["mpv", "--fs", str(path)]


def test_open_path_uses_launcher(tmp_path: Path) -> None:
    path = tmp_path / "video.mp4"
    path.write_bytes(b"data")
    launched: list[list[str]] = []
    open_path(path, "vlc", launcher=launched.append)
    assert launched == [["vlc", str(path)]]


def test_open_path_missing_file(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        open_path(tmp_path / "missing.mp4", "vlc", launcher=lambda argv: None)


def test_open_path_launch_failure(tmp_path: Path) -> None:
    path = tmp_path / "video.mp4"
    path.write_bytes(b"data")

    def launcher(argv: list[str]) -> None:
        raise FileNotFoundError(argv[0])

    with pytest.raises(ProcessError):
        open_path(path, "missing-player", launcher=launcher)
