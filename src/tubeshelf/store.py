from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from .errors import NotFoundError, StoreError
from .models import VideoRecord, truncate_date
from .paths import store_path

STORE_VERSION = 1

logger = logging.getLogger(__name__)


class RecordStore:
    """Saved-video index persisted as one JSON document in the storage dir.

    The storage directory is the source of truth for whether a download still
    exists; the saved list is an index over it that ``reconcile_with_disk``
    prunes. Records are kept most-recent-first and the whole file is rewritten
    on every mutation.
    """

    def __init__(self, storage_dir: Path, path: Path | None = None) -> None:
        self.storage_dir = storage_dir
        self.path = path or store_path(storage_dir)
        self._records: list[VideoRecord] = []
        self._loaded = False
        self._lock = threading.RLock()

    @property
    def records(self) -> list[VideoRecord]:
        with self._lock:
            self._ensure_loaded()
            return list(self._records)

    def load(self) -> list[VideoRecord]:
        with self._lock:
            if not self.path.exists():
                self._records = []
                self._loaded = True
                return []
            try:
                raw = self.path.read_text(encoding="utf-8")
            except OSError as exc:
                raise StoreError(f"Failed to read saved videos: {self.path} ({exc})") from exc
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise StoreError(f"Saved videos file is not valid JSON: {self.path}") from exc
            # an unreadable file must never be overwritten by a later save
            self._records = _parse_records(data, self.path)
            self._loaded = True
            logger.debug("Loaded %d records from %s", len(self._records), self.path)
            return list(self._records)

    def save(self) -> None:
        with self._lock:
            payload = {
                "version": STORE_VERSION,
                "videos": [record.to_dict() for record in self._records],
            }
            tmp_path = self.path.with_name(f".{self.path.name}.tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(
                    json.dumps(payload, ensure_ascii=False, indent=2) + "\n",
                    encoding="utf-8",
                )
                os.replace(tmp_path, self.path)
            except OSError as exc:
                raise StoreError(f"Failed to write saved videos: {self.path} ({exc})") from exc

    def get(self, video_id: str) -> VideoRecord:
        with self._lock:
            self._ensure_loaded()
            for record in self._records:
                if record.video_id == video_id:
                    return record
        raise NotFoundError(f"No saved video with id {video_id}")

    def add_record(
        self,
        title: str,
        video_id: str,
        publish_date: str,
        channel_title: str,
    ) -> bool:
        with self._lock:
            self._ensure_loaded()
            if any(record.video_id == video_id for record in self._records):
                return False
            record = VideoRecord(
                video_id=video_id,
                title=title,
                publish_date=truncate_date(publish_date),
                channel_title=channel_title,
            )
            self._records.insert(0, record)
            self.save()
        logger.info("Saved record %s (%s)", video_id, title)
        return True

    def reconcile_with_disk(self, storage_dir: Path | None = None) -> list[VideoRecord]:
        storage_dir = storage_dir or self.storage_dir
        with self._lock:
            self._ensure_loaded()
            names = _list_filenames(storage_dir, exclude={self.path.name})
            kept = [
                record
                for record in self._records
                if any(name.startswith(record.video_id) for name in names)
            ]
            dropped = len(self._records) - len(kept)
            self._records = kept
            self.save()
        if dropped:
            logger.info("Dropped %d records with no file in %s", dropped, storage_dir)
        return list(kept)

    def find_file_by_video_id(
        self, video_id: str, storage_dir: Path | None = None
    ) -> Path | None:
        storage_dir = storage_dir or self.storage_dir
        for name in _list_filenames(storage_dir, exclude={self.path.name}):
            if name.startswith(video_id):
                return storage_dir / name
        return None

    def delete_record(self, video_id: str) -> Path | None:
        with self._lock:
            self._ensure_loaded()
            index = _index_of(self._records, video_id)
            if index is None:
                raise NotFoundError(f"No saved video with id {video_id}")
            path = self.find_file_by_video_id(video_id)
            if path is not None:
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as exc:
                    raise StoreError(f"Failed to delete {path} ({exc})") from exc
            del self._records[index]
            self.save()
        logger.info("Deleted record %s (file: %s)", video_id, path)
        return path

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()


def _parse_records(data: Any, path: Path) -> list[VideoRecord]:
    if isinstance(data, dict):
        entries = data.get("videos", [])
    else:
        entries = data
    if not isinstance(entries, list):
        raise StoreError(f"Saved videos file has no video list: {path}")
    records: list[VideoRecord] = []
    seen: set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            raise StoreError(f"Saved videos file has an invalid entry: {path}")
        try:
            record = VideoRecord.from_dict(entry)
        except ValueError as exc:
            raise StoreError(f"{exc}: {path}") from exc
        if record.video_id in seen:
            continue
        seen.add(record.video_id)
        records.append(record)
    return records


def _list_filenames(directory: Path, exclude: set[str]) -> list[str]:
    try:
        with os.scandir(directory) as entries:
            names = [
                entry.name
                for entry in entries
                if entry.is_file()
                and entry.name not in exclude
                and not entry.name.startswith(".")
            ]
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise StoreError(f"Failed to list {directory} ({exc})") from exc
    return sorted(names)


def _index_of(records: list[VideoRecord], video_id: str) -> int | None:
    for index, record in enumerate(records):
        if record.video_id == video_id:
            return index
    return None
