from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

WATCH_URL = "https://www.youtube.com/watch?v="


def truncate_date(timestamp: str | None) -> str:
    return (timestamp or "")[:10]


@dataclass(frozen=True)
class VideoRecord:
    video_id: str
    title: str
    publish_date: str
    channel_title: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "videoId": self.video_id,
            "title": self.title,
            "publishDate": self.publish_date,
            "channelTitle": self.channel_title,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VideoRecord:
        video_id = data.get("videoId")
        if not isinstance(video_id, str) or not video_id:
            raise ValueError("Record is missing videoId")
        return cls(
            video_id=video_id,
            title=str(data.get("title") or ""),
            publish_date=truncate_date(str(data.get("publishDate") or "")),
            channel_title=str(data.get("channelTitle") or ""),
        )


@dataclass(frozen=True)
class SearchResultItem:
    video_id: str
    title: str
    description: str
    thumbnail_url: str | None
    channel_title: str
    publish_time: str

    @property
    def publish_date(self) -> str:
        return truncate_date(self.publish_time)

    @property
    def watch_url(self) -> str:
        return f"{WATCH_URL}{self.video_id}"

    def to_record(self) -> VideoRecord:
        return VideoRecord(
            video_id=self.video_id,
            title=self.title,
            publish_date=self.publish_date,
            channel_title=self.channel_title,
        )


@dataclass(frozen=True)
class SearchPage:
    items: list[SearchResultItem] = field(default_factory=list)
    next_page_token: str | None = None


@dataclass(frozen=True)
class PageCursor:
    """Pagination token attached to the trailing "next page" row."""

    token: str


@dataclass(frozen=True)
class VideoDetails:
    video_id: str
    title: str | None
    description: str | None
    tags: tuple[str, ...]
    view_count: int | None
    like_count: int | None
    duration: str | None
