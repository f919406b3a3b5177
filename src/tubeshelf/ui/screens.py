from __future__ import annotations

from textual import events
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from ..models import SearchResultItem, VideoRecord


class HelpScreen(ModalScreen[None]):
    BINDINGS = [("escape", "close", "Close"), ("?", "close", "Close")]

    CSS = """
    HelpScreen {
        align: center middle;
        background: $surface 80%;
    }

    #help_dialog {
        width: 70%;
        max-width: 80;
        height: 80%;
        max-height: 90%;
        padding: 1 2;
        border: heavy $accent;
        background: $panel;
    }

    #help_scroll {
        height: 1fr;
    }
    """

    def __init__(self, help_text: str) -> None:
        super().__init__()
        self._help_text = help_text

    def compose(self) -> ComposeResult:
        with Vertical(id="help_dialog"):
            with VerticalScroll(id="help_scroll"):
                yield Static(self._help_text, id="help_text", markup=False)
            yield Button("Close", id="help_close")

    def on_mount(self) -> None:
        self.query_one("#help_scroll", VerticalScroll).focus()

    def action_close(self) -> None:
        self.dismiss(None)

    def on_key(self, event: events.Key) -> None:
        if event.key in {"up", "down", "pageup", "pagedown", "tab", "shift+tab"}:
            return
        if event.key == "escape" or event.character == "?":
            self.action_close()
        event.stop()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "help_close":
            self.dismiss(None)


class SearchScreen(ModalScreen[str | None]):
    BINDINGS = [("escape", "cancel", "Cancel")]

    CSS = """
    SearchScreen {
        align: center middle;
        background: $surface 80%;
    }

    #search_dialog {
        width: 70%;
        max-width: 80;
        padding: 1 2;
        border: heavy $accent;
        background: $panel;
    }

    #search_error {
        color: $error;
        height: 1;
    }
    """

    def __init__(self, current: str | None) -> None:
        super().__init__()
        self._current = current

    def compose(self) -> ComposeResult:
        with Vertical(id="search_dialog"):
            yield Label("Search videos")
            yield Input(
                value=self._current or "",
                placeholder="Search term",
                id="search_input",
            )
            yield Label("", id="search_error")
            with Horizontal():
                yield Button("Search", id="search_submit")
                yield Button("Cancel", id="search_cancel")

    def on_mount(self) -> None:
        self.query_one("#search_input", Input).focus()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "search_cancel":
            self.dismiss(None)
        elif event.button.id == "search_submit":
            self._submit()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "search_input":
            self._submit()

    def _submit(self) -> None:
        value = self.query_one("#search_input", Input).value.strip()
        if not value:
            self.query_one("#search_error", Label).update("Please enter a search term.")
            return
        self.dismiss(value)


class DownloadScreen(ModalScreen[bool | None]):
    """Ask how to download a result; dismisses with ``audio_only`` or None."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
        ("v", "video", "Video"),
        ("a", "audio", "Audio"),
    ]

    CSS = """
    DownloadScreen {
        align: center middle;
        background: $surface 80%;
    }

    #download_dialog {
        width: 70%;
        max-width: 80;
        padding: 1 2;
        border: heavy $accent;
        background: $panel;
    }
    """

    def __init__(self, item: SearchResultItem) -> None:
        super().__init__()
        self._item = item

    def compose(self) -> ComposeResult:
        with Vertical(id="download_dialog"):
            yield Label(f"Download {self._item.title}?", markup=False)
            yield Label(f"{self._item.channel_title} | {self._item.publish_date}", markup=False)
            with Horizontal():
                yield Button("Video (v)", id="download_video")
                yield Button("Audio (a)", id="download_audio")
                yield Button("Cancel", id="download_cancel")

    def action_cancel(self) -> None:
        self.dismiss(None)

    def action_video(self) -> None:
        self.dismiss(False)

    def action_audio(self) -> None:
        self.dismiss(True)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "download_cancel":
            self.dismiss(None)
        elif event.button.id == "download_video":
            self.dismiss(False)
        elif event.button.id == "download_audio":
            self.dismiss(True)


class DeleteRecordScreen(ModalScreen[bool]):
    BINDINGS = [("escape", "cancel", "Cancel")]

    CSS = """
    DeleteRecordScreen {
        align: center middle;
        background: $surface 80%;
    }

    #delete_dialog {
        width: 70%;
        max-width: 80;
        padding: 1 2;
        border: heavy $accent;
        background: $panel;
    }
    """

    def __init__(self, record: VideoRecord) -> None:
        super().__init__()
        self._record = record

    def compose(self) -> ComposeResult:
        with Vertical(id="delete_dialog"):
            yield Label(f"Delete {self._record.title} and its file?", markup=False)
            with Horizontal():
                yield Button("Delete", id="delete_confirm")
                yield Button("Cancel", id="delete_cancel")

    def action_cancel(self) -> None:
        self.dismiss(False)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "delete_cancel":
            self.dismiss(False)
        elif event.button.id == "delete_confirm":
            self.dismiss(True)
