from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from .errors import NotFoundError
from .models import PageCursor, SearchResultItem
from .store import RecordStore

Runner = Callable[[list[str], Path], subprocess.CompletedProcess[str]]
Selection = SearchResultItem | PageCursor | None

DEFAULT_AUDIO_FORMAT = "mp3"
VIDEO_FORMAT = "bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best"
VIDEO_CONTAINER = "mp4"

_INVALID_FILENAME_CHARS = set('<>:"/\\|?*')
_WHITESPACE_RE = re.compile(r"\s+")

logger = logging.getLogger(__name__)


class DownloadStatus(Enum):
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class DownloadResult:
    status: DownloadStatus
    output_path: Path | None
    error: str | None = None


def output_template(item: SearchResultItem) -> str:
    return f"{item.video_id}-{sanitize_title(item.title)}.%(ext)s"


def sanitize_title(title: str) -> str:
    cleaned = []
    for char in title:
        if char in _INVALID_FILENAME_CHARS or ord(char) < 32:
            cleaned.append("_")
        else:
            cleaned.append(char)
    sanitized = _WHITESPACE_RE.sub(" ", "".join(cleaned)).strip(" .")
    return sanitized or "video"


def build_ytdlp_command(
    item: SearchResultItem,
    audio_only: bool,
    *,
    audio_format: str = DEFAULT_AUDIO_FORMAT,
) -> list[str]:
    if audio_only:
        format_args = ["-x", "--audio-format", audio_format.lower().lstrip(".")]
    else:
        format_args = ["-f", VIDEO_FORMAT, "--merge-output-format", VIDEO_CONTAINER]
    return [
        "yt-dlp",
        "--no-playlist",
        "--newline",
        "--no-color",
        *format_args,
        "--no-simulate",
        "--print",
        "after_move:filepath",
        "-o",
        output_template(item),
        item.watch_url,
    ]


def run_download(
    item: SearchResultItem,
    storage_dir: Path,
    audio_only: bool,
    *,
    audio_format: str = DEFAULT_AUDIO_FORMAT,
    runner: Runner | None = None,
) -> DownloadResult:
    command = build_ytdlp_command(item, audio_only, audio_format=audio_format)
    runner = runner or _run_subprocess

    try:
        storage_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return DownloadResult(
            status=DownloadStatus.FAILED,
            output_path=None,
            error=f"Cannot use storage directory {storage_dir}: {exc}",
        )

    try:
        completed = runner(command, storage_dir)
    except FileNotFoundError:
        return DownloadResult(
            status=DownloadStatus.FAILED,
            output_path=None,
            error="yt-dlp not found on PATH",
        )
    except OSError as exc:
        return DownloadResult(
            status=DownloadStatus.FAILED,
            output_path=None,
            error=f"Failed to run yt-dlp: {exc}",
        )

    if completed.returncode != 0:
        return DownloadResult(
            status=DownloadStatus.FAILED,
            output_path=None,
            error=_summarize_error(completed),
        )

    line = _last_non_empty_line(completed.stdout or "")
    output_path = None
    if line is not None:
        output_path = Path(line)
        if not output_path.is_absolute():
            output_path = storage_dir / output_path
    return DownloadResult(status=DownloadStatus.DONE, output_path=output_path)


class Downloader:
    """Runs yt-dlp for a selected search result and records finished downloads."""

    def __init__(
        self,
        store: RecordStore,
        storage_dir: Path | None = None,
        *,
        audio_format: str = DEFAULT_AUDIO_FORMAT,
        runner: Runner | None = None,
    ) -> None:
        self.store = store
        self.storage_dir = storage_dir or store.storage_dir
        self.audio_format = audio_format
        self._runner = runner

    def download(self, selection: Selection, audio_only: bool) -> DownloadResult:
        if not isinstance(selection, SearchResultItem):
            raise NotFoundError("No item selected")
        item = selection
        logger.info(
            "Downloading %s (%s) as %s",
            item.video_id,
            item.title,
            "audio" if audio_only else "video",
        )
        result = run_download(
            item,
            self.storage_dir,
            audio_only,
            audio_format=self.audio_format,
            runner=self._runner,
        )
        if result.status != DownloadStatus.DONE:
            logger.warning("Download of %s failed: %s", item.video_id, result.error)
            return result
        output_path = result.output_path
        if output_path is None:
            output_path = self.store.find_file_by_video_id(item.video_id, self.storage_dir)
        record = item.to_record()
        self.store.add_record(
            title=record.title,
            video_id=record.video_id,
            publish_date=record.publish_date,
            channel_title=record.channel_title,
        )
        return DownloadResult(status=DownloadStatus.DONE, output_path=output_path)


def _run_subprocess(command: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(command, cwd=cwd, check=False, capture_output=True, text=True)


def _summarize_error(completed: subprocess.CompletedProcess[str]) -> str:
    stderr = completed.stderr or ""
    stdout = completed.stdout or ""
    message = stderr.strip() or stdout.strip()
    if not message:
        return f"yt-dlp failed with exit code {completed.returncode}"
    return message.splitlines()[-1]


def _last_non_empty_line(text: str) -> str | None:
    for line in reversed(text.splitlines()):
        if line.strip():
            return line.strip()
    return None
