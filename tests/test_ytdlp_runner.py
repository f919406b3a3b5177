import subprocess
from pathlib import Path

import pytest

from tubeshelf.errors import NotFoundError
from tubeshelf.models import PageCursor, SearchResultItem
from tubeshelf.store import RecordStore
from tubeshelf.ytdlp_runner import (
    DownloadStatus,
    Downloader,
    build_ytdlp_command,
    output_template,
    run_download,
    sanitize_title,
)


def _item(title: str = "My Title") -> SearchResultItem:
    return SearchResultItem(
        video_id="abc123",
        title=title,
        description="",
        thumbnail_url=None,
        channel_title="Chan",
        publish_time="2022-03-04T05:06:07Z",
    )


def test_build_command_video() -> None:
    cmd = build_ytdlp_command(_item(), audio_only=False)
    assert cmd[0] == "yt-dlp"
    assert "--merge-output-format" in cmd
    assert "-x" not in cmd
    assert cmd[cmd.index("-o") + 1] == "abc123-My Title.%(ext)s"
    assert cmd[-1] == "https://www.youtube.com/watch?v=abc123"


def test_build_command_audio() -> None:
    cmd = build_ytdlp_command(_item(), audio_only=True)
    assert "-x" in cmd
    assert cmd[cmd.index("--audio-format") + 1] == "mp3"
    assert "--merge-output-format" not in cmd


def test_output_template_sanitizes_title() -> None:
    assert output_template(_item("a/b: c?  d")) == "abc123-a_b_ c_ d.%(ext)s"
    assert sanitize_title("  ...  ") == "video"


def test_run_download_success(tmp_path: Path) -> None:
    seen: dict[str, object] = {}

    def runner(command: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        seen["cwd"] = cwd
        return subprocess.CompletedProcess(command, 0, stdout="abc123-My Title.mp4\n\n", stderr="")

    result = run_download(_item(), tmp_path, False, runner=runner)
    assert result.status == DownloadStatus.DONE
    assert result.output_path == tmp_path / "abc123-My Title.mp4"
    assert seen["cwd"] == tmp_path


def test_run_download_failure(tmp_path: Path) -> None:
    def runner(command: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(command, 1, stdout="", stderr="warning\nERROR: boom")

    result = run_download(_item(), tmp_path, False, runner=runner)
    assert result.status == DownloadStatus.FAILED
    assert result.error == "ERROR: boom"


def test_run_download_missing_executable(tmp_path: Path) -> None:
    def runner(command: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        raise FileNotFoundError(command[0])

    result = run_download(_item(), tmp_path, True, runner=runner)
    assert result.status == DownloadStatus.FAILED
    assert result.error == "yt-dlp not found on PATH"


def test_downloader_records_success(tmp_path: Path) -> None:
    def runner(command: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        (cwd / "abc123-My Title.mp3").write_bytes(b"audio")
        return subprocess.CompletedProcess(command, 0, stdout=str(cwd / "abc123-My Title.mp3"), stderr="")

    store = RecordStore(tmp_path)
    downloader = Downloader(store, runner=runner)
    result = downloader.download(_item(), audio_only=True)
    assert result.status == DownloadStatus.DONE
    assert result.output_path == tmp_path / "abc123-My Title.mp3"
    record = store.get("abc123")
    assert record.publish_date == "2022-03-04"
    assert record.channel_title == "Chan"


def test_downloader_does_not_record_failed_exit(tmp_path: Path) -> None:
    def runner(command: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(command, 2, stdout="abc123-My Title.mp4", stderr="")

    store = RecordStore(tmp_path)
    result = Downloader(store, runner=runner).download(_item(), audio_only=False)
    assert result.status == DownloadStatus.FAILED
    assert store.records == []


@pytest.mark.parametrize("selection", [None, PageCursor("tok1")])
def test_downloader_requires_selection(tmp_path: Path, selection) -> None:
    calls: list[list[str]] = []

    def runner(command: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        calls.append(command)
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    downloader = Downloader(RecordStore(tmp_path), runner=runner)
    with pytest.raises(NotFoundError):
        downloader.download(selection, audio_only=False)
    assert calls == []


def test_unusable_storage_dir_fails_without_recording(tmp_path: Path) -> None:
    blocker = tmp_path / "videos"
    blocker.write_text("not a directory", encoding="utf-8")
    calls: list[list[str]] = []

    def runner(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    result = run_download(_item(), blocker, audio_only=False, runner=runner)
    assert result.status == DownloadStatus.FAILED
    assert "Cannot use storage directory" in (result.error or "")

    store = RecordStore(tmp_path / "library")
    downloader = Downloader(store, blocker, runner=runner)
    result = downloader.download(_item(), audio_only=True)
    assert result.status == DownloadStatus.FAILED
    assert calls == []
    assert store.records == []


def test_runner_os_error_is_reported(tmp_path: Path) -> None:
    def runner(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        raise PermissionError("denied")

    result = run_download(_item(), tmp_path, audio_only=False, runner=runner)
    assert result.status == DownloadStatus.FAILED
    assert result.error == "Failed to run yt-dlp: denied"


def test_recorded_fields_come_from_search_item(tmp_path: Path) -> None:
    item = _item("Song")
    record = item.to_record()
    assert (record.video_id, record.title, record.publish_date, record.channel_title) == (
        "abc123",
        "Song",
        "2022-03-04",
        "Chan",
    )

    def runner(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(cmd, 0, stdout=str(cwd / "abc123-Song.mp4"), stderr="")

    store = RecordStore(tmp_path)
    Downloader(store, runner=runner).download(item, audio_only=False)
    assert store.records == [record]
