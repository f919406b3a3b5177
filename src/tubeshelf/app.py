from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Mapping

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.theme import Theme
from textual.widgets import Label, ListItem, ListView, Static
from textual_image.widget import Image as PreviewImage

from .config import AppConfig, apply_env_overrides, load_config
from .errors import NotFoundError, TubeshelfError
from .models import PageCursor, SearchPage, SearchResultItem, VideoDetails, VideoRecord
from .opener import open_path
from .paths import config_path, log_path
from .search import SearchClient
from .store import RecordStore
from .thumbs import fetch_thumbnail
from .ui.screens import DeleteRecordScreen, DownloadScreen, HelpScreen, SearchScreen
from .views import CHANNEL_WIDTH, DATE_WIDTH, TITLE_WIDTH, ListingView, Row, RowTarget
from .ytdlp_runner import DownloadResult, DownloadStatus, Downloader

TIP_TEXT = "Tip: press / to search, ? for help"
HELP_TEXT = """Keyboard shortcuts
q  quit
/  search videos
?  help
tab  switch between results and library

Search results
enter  download result (or load the next page on the last line)
d  download video
a  download audio only
n  load next page
i  show video details

Library
enter/o  open file
x  delete record and file
r  reconcile with the storage directory and refresh
i  show video details
"""

logger = logging.getLogger(__name__)

SHELF_THEME = Theme(
    name="shelf-night",
    primary="#7aa2f7",
    secondary="#7dcfff",
    accent="#bb9af7",
    warning="#e0af68",
    error="#f7768e",
    success="#9ece6a",
    foreground="#c0caf5",
    background="#1a1b26",
    surface="#1f2335",
    panel="#24283b",
    boost="#2f334d",
)


class RowListItem(ListItem):
    def __init__(self, row: Row) -> None:
        self.row = row
        classes = "cursor-row" if row.is_cursor else "entry-row"
        super().__init__(Label(_format_row_label(row)), classes=classes)


class TubeshelfApp(App):
    BINDINGS = [
        ("q", "quit", "Quit"),
        ("/", "search", "Search"),
        ("d", "download_video", "Download"),
        ("a", "download_audio", "Audio"),
        ("n", "next_page", "Next Page"),
        ("i", "details", "Details"),
        ("o", "open_file", "Open"),
        ("x", "delete_record", "Delete"),
        ("r", "refresh_library", "Refresh"),
        ("?", "help", "Help"),
    ]

    CSS = """
    Screen {
        background: $background;
        color: $text;
    }

    #root {
        height: 100%;
    }

    #main {
        height: 1fr;
        padding: 1 1;
    }

    #lists, #right {
        padding: 1 1;
        background: $surface;
    }

    #lists {
        width: 65%;
        border: round $primary;
    }

    #right {
        width: 35%;
        border: round $accent;
    }

    #search_list {
        height: 2fr;
    }

    #library_list {
        height: 1fr;
    }

    .cursor-row {
        color: $secondary;
        text-style: italic;
    }

    #thumb_image {
        height: 12;
    }

    #preview_text {
        height: 1fr;
    }

    #tip_bar {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        store: RecordStore,
        client: SearchClient,
        downloader: Downloader,
        *,
        open_command: str | None = None,
        thumbs_dir: Path | None = None,
    ) -> None:
        super().__init__()
        self.register_theme(SHELF_THEME)
        self.theme = SHELF_THEME.name
        self.store = store
        self.client = client
        self.downloader = downloader
        self.open_command = open_command
        self._thumbs_dir = thumbs_dir
        self._search_view = ListingView()
        self._library_view = ListingView()
        self._search_term: str | None = None
        self._page_loading = False
        self._search_list: ListView | None = None
        self._library_list: ListView | None = None
        self._preview_text: Static | None = None
        self._thumb_image: PreviewImage | None = None
        self._thumb_cache: dict[str, Path] = {}
        self._thumb_loading: set[str] = set()
        self._previewed_video: str | None = None

    def compose(self) -> ComposeResult:
        with Vertical(id="root"):
            with Horizontal(id="main"):
                with Vertical(id="lists"):
                    yield Label("Search results", id="search_label")
                    yield ListView(id="search_list")
                    yield Label("Library", id="library_label")
                    yield ListView(id="library_list")
                with Vertical(id="right"):
                    yield PreviewImage(None, id="thumb_image")
                    yield Static("Press / to search.", id="preview_text", markup=False)
            yield Static(TIP_TEXT, id="tip_bar")

    def on_mount(self) -> None:
        self._search_list = self.query_one("#search_list", ListView)
        self._library_list = self.query_one("#library_list", ListView)
        self._preview_text = self.query_one("#preview_text", Static)
        self._thumb_image = self.query_one("#thumb_image", PreviewImage)
        self._refresh_library()
        self._search_list.focus()

    def action_help(self) -> None:
        self.push_screen(HelpScreen(HELP_TEXT))

    def action_search(self) -> None:
        self.push_screen(SearchScreen(self._search_term), self._handle_search)

    def action_next_page(self) -> None:
        cursor = self._search_view.cursor
        if cursor is None or self._search_term is None:
            self._set_preview_message("No more results.")
            return
        self._fetch_page(self._search_term, cursor.token)

    def action_download_video(self) -> None:
        self._download_current(audio_only=False)

    def action_download_audio(self) -> None:
        self._download_current(audio_only=True)

    def action_details(self) -> None:
        target = self._focused_selection()
        if isinstance(target, (SearchResultItem, VideoRecord)):
            self._fetch_details(target.video_id)
            return
        self._set_preview_message("No item selected.")

    def action_open_file(self) -> None:
        record = self._library_selection()
        if record is None:
            self._set_preview_message("No saved video selected.")
            return
        try:
            path = self.store.find_file_by_video_id(record.video_id)
            if path is None:
                raise NotFoundError(f"File not found for {record.video_id}.")
            open_path(path, self.open_command)
        except TubeshelfError as exc:
            self._set_preview_message(str(exc))
            return
        self._set_preview_message(f"Opened:\n{path}")

    def action_delete_record(self) -> None:
        record = self._library_selection()
        if record is None:
            self._set_preview_message("No saved video selected.")
            return
        self.push_screen(
            DeleteRecordScreen(record),
            lambda confirmed: self._handle_delete(record, confirmed),
        )

    def action_refresh_library(self) -> None:
        self._refresh_library()

    def on_list_view_highlighted(self, event: ListView.Highlighted) -> None:
        if not isinstance(event.item, RowListItem):
            return
        target = event.item.row.target
        if isinstance(target, SearchResultItem):
            self._set_preview_message(_format_item_preview(target))
            self._show_thumbnail(target)
        elif isinstance(target, VideoRecord):
            try:
                path = self.store.find_file_by_video_id(target.video_id)
            except TubeshelfError:
                path = None
            self._set_preview_message(_format_record_preview(target, path))
        elif isinstance(target, PageCursor):
            self._set_preview_message("Press enter to load the next page.")

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if event.list_view is self._library_list:
            self.action_open_file()
            return
        target = self._search_view.selection_at(event.list_view.index)
        if isinstance(target, PageCursor):
            self.action_next_page()
        elif isinstance(target, SearchResultItem):
            self.push_screen(
                DownloadScreen(target),
                lambda audio_only: self._handle_download_choice(target, audio_only),
            )

    def _handle_search(self, term: str | None) -> None:
        if not term:
            return
        self._fetch_page(term, None)

    def _handle_download_choice(self, item: SearchResultItem, audio_only: bool | None) -> None:
        if audio_only is None:
            return
        self._start_download(item, audio_only)

    def _handle_delete(self, record: VideoRecord, confirmed: bool) -> None:
        if not confirmed:
            return
        try:
            path = self.store.delete_record(record.video_id)
        except TubeshelfError as exc:
            self._set_preview_message(f"Delete failed:\n{exc}")
            return
        self._refresh_library()
        removed = f"\nRemoved {path}" if path else ""
        self._set_preview_message(f"Deleted {record.title}.{removed}")

    def _fetch_page(self, term: str, page_token: str | None) -> None:
        if self._page_loading:
            self._set_preview_message("Search already in progress.")
            return
        self._page_loading = True
        self._set_preview_message(f"Searching for {term}...")

        def worker() -> None:
            try:
                if page_token is None:
                    page = self.client.search(term)
                else:
                    page = self.client.fetch_next_page(term, page_token)
            except (TubeshelfError, ValueError) as exc:
                self.call_from_thread(self._apply_search_error, str(exc))
                return
            self.call_from_thread(self._apply_search_page, term, page, page_token is not None)

        threading.Thread(target=worker, daemon=True).start()

    def _apply_search_error(self, message: str) -> None:
        self._page_loading = False
        self._set_preview_message(f"Search failed:\n{message}")

    def _apply_search_page(self, term: str, page: SearchPage, append: bool) -> None:
        self._page_loading = False
        list_view = self._search_list
        if list_view is None:
            return
        self._search_term = term
        if append:
            first_new = len(self._search_view.entries())
            rows = self._search_view.append(page.items, page.next_page_token)
        else:
            first_new = 0
            rows = self._search_view.render(page.items, page.next_page_token)
        _rebuild_list(list_view, rows, first_new)
        count = len(self._search_view.entries())
        more = " More available." if page.next_page_token else ""
        self._set_preview_message(f"{count} results for {self._search_term}.{more}")

    def _download_current(self, audio_only: bool) -> None:
        target = self._search_selection()
        if not isinstance(target, SearchResultItem):
            self._set_preview_message("No item selected.")
            return
        self._start_download(target, audio_only)

    def _start_download(self, item: SearchResultItem, audio_only: bool) -> None:
        kind = "audio" if audio_only else "video"
        self._set_preview_message(f"Downloading {kind}:\n{item.title}")

        def worker() -> None:
            try:
                result = self.downloader.download(item, audio_only)
            except (TubeshelfError, OSError) as exc:
                result = DownloadResult(DownloadStatus.FAILED, None, str(exc))
            self.call_from_thread(self._apply_download_result, item, result)

        threading.Thread(target=worker, daemon=True).start()

    def _apply_download_result(self, item: SearchResultItem, result: DownloadResult) -> None:
        if result.status == DownloadStatus.DONE:
            self._refresh_library(highlight=item.video_id)
            location = f"\n{result.output_path}" if result.output_path else ""
            self._set_preview_message(f"Download complete: {item.title}{location}")
            self.notify(f"Downloaded {item.title}")
            return
        self._set_preview_message(f"Download failed:\n{result.error}")
        self.notify(f"Download failed: {item.title}", severity="error")

    def _fetch_details(self, video_id: str) -> None:
        def worker() -> None:
            try:
                details = self.client.fetch_video_details(video_id)
            except TubeshelfError as exc:
                self.call_from_thread(self.notify, str(exc), severity="error")
                return
            self.call_from_thread(self._apply_details, details)

        threading.Thread(target=worker, daemon=True).start()

    def _apply_details(self, details: VideoDetails) -> None:
        self.notify(_format_details(details), title=details.title or details.video_id, timeout=10)

    def _refresh_library(self, highlight: str | None = None) -> None:
        list_view = self._library_list
        if list_view is None:
            return
        try:
            records = self.store.reconcile_with_disk()
        except TubeshelfError as exc:
            self._set_preview_message(f"Library error:\n{exc}")
            return
        rows = self._library_view.render(records)
        index = self._library_view.index_of(highlight) if highlight else None
        _rebuild_list(list_view, rows, index or 0)

    def _show_thumbnail(self, item: SearchResultItem) -> None:
        self._previewed_video = item.video_id
        cached = self._thumb_cache.get(item.video_id)
        if cached is not None:
            self._apply_thumbnail(item.video_id, cached)
            return
        if not item.thumbnail_url or item.video_id in self._thumb_loading:
            return
        self._thumb_loading.add(item.video_id)

        def worker() -> None:
            try:
                path = fetch_thumbnail(item, self._thumbs_dir)
            except (TubeshelfError, OSError) as exc:
                logger.warning("Thumbnail for %s failed: %s", item.video_id, exc)
                path = None
            self.call_from_thread(self._apply_thumbnail, item.video_id, path)

        threading.Thread(target=worker, daemon=True).start()

    def _apply_thumbnail(self, video_id: str, path: Path | None) -> None:
        self._thumb_loading.discard(video_id)
        if path is None:
            return
        self._thumb_cache[video_id] = path
        if self._thumb_image is None or self._previewed_video != video_id:
            return
        self._thumb_image.image = path

    def _search_selection(self) -> RowTarget | None:
        if self._search_list is None:
            return None
        return self._search_view.selection_at(self._search_list.index)

    def _library_selection(self) -> VideoRecord | None:
        if self._library_list is None:
            return None
        target = self._library_view.selection_at(self._library_list.index)
        return target if isinstance(target, VideoRecord) else None

    def _focused_selection(self) -> RowTarget | None:
        if self._library_list is not None and self._library_list.has_focus:
            return self._library_selection()
        return self._search_selection()

    def _set_preview_message(self, message: str) -> None:
        if self._preview_text is None:
            return
        self._preview_text.update(message)


def _format_row_label(row: Row) -> Text:
    if row.is_cursor:
        return Text(row.text)
    date_end = DATE_WIDTH
    title_end = date_end + 2 + TITLE_WIDTH
    label = Text(row.text)
    label.stylize("dim", 0, date_end)
    label.stylize("bold", date_end + 2, title_end)
    label.stylize(SHELF_THEME.secondary or "", title_end + 2, title_end + 2 + CHANNEL_WIDTH)
    return label


def _rebuild_list(list_view: ListView, rows: list[Row], highlight_index: int) -> None:
    list_view.clear()
    if not rows:
        list_view.index = None
        return
    list_view.extend(RowListItem(row) for row in rows)
    list_view.index = min(max(highlight_index, 0), len(rows) - 1)


def _format_item_preview(item: SearchResultItem) -> str:
    lines = [
        item.title,
        f"Channel: {item.channel_title}",
        f"Published: {item.publish_date}",
        f"URL: {item.watch_url}",
    ]
    if item.description:
        lines.extend(["", item.description])
    return "\n".join(lines)


def _format_record_preview(record: VideoRecord, path: Path | None) -> str:
    return "\n".join(
        [
            record.title,
            f"Channel: {record.channel_title}",
            f"Published: {record.publish_date}",
            f"File: {path.name if path else 'missing'}",
        ]
    )


def _format_details(details: VideoDetails) -> str:
    lines = []
    if details.duration:
        lines.append(f"Duration: {details.duration}")
    if details.view_count is not None:
        lines.append(f"Views: {details.view_count:,}")
    if details.like_count is not None:
        lines.append(f"Likes: {details.like_count:,}")
    if details.tags:
        lines.append(f"Tags: {', '.join(details.tags[:10])}")
    return "\n".join(lines) or "No details available."


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tubeshelf",
        description="Search videos, download them with yt-dlp and keep a local library.",
        epilog=f"Config file: {config_path()}",
    )
    parser.add_argument("--api-key", help="YouTube Data API key")
    parser.add_argument("--storage-dir", help="Directory for downloads and the saved list")
    parser.add_argument("--audio-format", help="Audio format for audio-only downloads")
    parser.add_argument("--open-command", help="Command used to open downloaded files")
    parser.add_argument("--config", help="Path to config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def resolve_config(
    args: argparse.Namespace,
    environ: Mapping[str, str],
) -> tuple[AppConfig, str | None]:
    path = Path(args.config).expanduser() if args.config else None
    config, error = load_config(path)
    config = apply_env_overrides(config, environ)
    if args.api_key:
        config.api_key = args.api_key
    if args.storage_dir:
        config.storage_dir = args.storage_dir
    if args.audio_format:
        config.audio_format = args.audio_format
    if args.open_command:
        config.open_command = args.open_command
    return config, error


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        filename=str(log_path()),
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config, error = resolve_config(args, os.environ)
    if error:
        print(error, file=sys.stderr)
        logger.warning(error)
    if not config.api_key:
        print("No API key configured; searches will fail.", file=sys.stderr)

    storage_dir = config.resolved_storage_dir()
    store = RecordStore(storage_dir)
    try:
        store.load()
    except TubeshelfError as exc:
        parser.error(str(exc))
    client = SearchClient(config.api_key)
    downloader = Downloader(store, storage_dir, audio_format=config.resolved_audio_format())
    app = TubeshelfApp(store, client, downloader, open_command=config.open_command)
    app.run()
