from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .models import PageCursor, SearchResultItem, VideoRecord

Entry = SearchResultItem | VideoRecord
RowTarget = SearchResultItem | VideoRecord | PageCursor

DATE_WIDTH = 10
TITLE_WIDTH = 50
CHANNEL_WIDTH = 24
NEXT_PAGE_LABEL = "-- next page --"


class ViewState(Enum):
    EMPTY = "empty"
    RENDERED = "rendered"


@dataclass(frozen=True)
class Row:
    index: int
    text: str
    target: RowTarget

    @property
    def is_cursor(self) -> bool:
        return isinstance(self.target, PageCursor)


class ListingView:
    """Rendered rows of a search or library listing.

    Each row keeps the entry it was rendered from, so the selection at a row
    index resolves without re-reading the text. A listing with more results
    ends in one cursor row carrying the pagination token.
    """

    def __init__(self) -> None:
        self._rows: list[Row] = []
        self.state = ViewState.EMPTY

    @property
    def rows(self) -> list[Row]:
        return list(self._rows)

    @property
    def cursor(self) -> PageCursor | None:
        if self._rows and isinstance(self._rows[-1].target, PageCursor):
            return self._rows[-1].target
        return None

    def render(self, entries: Iterable[Entry], cursor: str | None = None) -> list[Row]:
        self._rows = []
        self._extend(entries, cursor)
        self.state = ViewState.RENDERED
        return self.rows

    def append(self, entries: Iterable[Entry], cursor: str | None = None) -> list[Row]:
        if self.cursor is not None:
            self._rows.pop()
        self._extend(entries, cursor)
        self.state = ViewState.RENDERED
        return self.rows

    def entries(self) -> list[Entry]:
        return [row.target for row in self._rows if not isinstance(row.target, PageCursor)]

    def lines(self) -> list[str]:
        return [row.text for row in self._rows]

    def selection_at(self, index: int | None) -> RowTarget | None:
        if index is None or index < 0 or index >= len(self._rows):
            return None
        return self._rows[index].target

    def index_of(self, video_id: str) -> int | None:
        for row in self._rows:
            if not isinstance(row.target, PageCursor) and row.target.video_id == video_id:
                return row.index
        return None

    def _extend(self, entries: Iterable[Entry], cursor: str | None) -> None:
        for entry in entries:
            self._rows.append(Row(len(self._rows), format_row(entry), entry))
        if cursor:
            target = PageCursor(cursor)
            self._rows.append(Row(len(self._rows), format_row(target), target))


def format_row(target: RowTarget) -> str:
    if isinstance(target, PageCursor):
        return NEXT_PAGE_LABEL
    date = _fit(target.publish_date, DATE_WIDTH)
    title = _fit(target.title, TITLE_WIDTH)
    channel = _fit(target.channel_title, CHANNEL_WIDTH)
    return f"{date}  {title}  {channel}".rstrip()


def _fit(text: str, width: int) -> str:
    text = " ".join(text.split())
    if len(text) > width:
        text = text[: max(0, width - 3)] + "..."
    return text.ljust(width)
