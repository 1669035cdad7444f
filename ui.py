# ui.py
from typing import Callable, Iterable, Optional

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import (Button, DataTable, Input, Label, LoadingIndicator,
                             Markdown, RichLog, Static)
from textual.widgets.data_table import CellDoesNotExist

from models import DetailRecord, ModalState, ResultItem


def render_detail_markdown(detail: DetailRecord) -> str:
    """Formats a detail record for the details modal."""
    genres = " ".join(f"`{genre}`" for genre in detail.genres) or "N/A"
    lines = [
        f"## {detail.title}",
        "",
        f"**⭐ {detail.rating}/10** · {detail.rated} · {detail.runtime} · {detail.year}",
        "",
        genres,
        "",
        "### Overview",
        "",
        detail.plot,
        "",
        f"- **Release date**: {detail.released}",
        f"- **Countries**: {detail.country}",
        f"- **Status**: {detail.status}",
        f"- **Language**: {', '.join(detail.languages) or 'N/A'}",
        f"- **Director**: {detail.director}",
        f"- **Box office**: {detail.box_office}",
        f"- **Production Companies**: {detail.production}",
        f"- **Poster**: `{detail.poster_url}`",
    ]
    if detail.has_website:
        lines.append(f"- **Homepage**: {detail.website}")
    lines.append(f"- **IMDb**: https://www.imdb.com/title/{detail.id}/")
    return "\n".join(lines)


class SearchControls(Static):
    """Widget for the search input."""
    class QueryChanged(Message):
        def __init__(self, query: str, immediate: bool = False) -> None:
            self.query = query
            self.immediate = immediate
            super().__init__()

    def compose(self) -> ComposeResult:
        yield Label("Find movies you'll enjoy without the hassle:")
        yield Input(placeholder="Search through thousands of movies", id="search-input")

    def on_input_changed(self, event: Input.Changed) -> None:
        event.stop()
        self.post_message(self.QueryChanged(event.value))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.post_message(self.QueryChanged(event.value, immediate=True))


class ErrorLine(Static):
    """Shows the current session error, if any."""
    def show_error(self, message: Optional[str]) -> None:
        self.update(f"[red]{message}[/red]" if message else "")
        self.display = bool(message)


class DetailsPane(Static):
    """Widget to display a summary of the highlighted movie."""
    def on_mount(self) -> None:
        self.update_details(None, None)

    def update_details(self, item: Optional[ResultItem], detail: Optional[DetailRecord]) -> None:
        if item:
            rating = detail.rating if detail else "N/A"
            language = detail.primary_language if detail else "N/A"
            content = (
                f"## {item.title}\n\n- **Year**: {item.year}\n- **Type**: {item.media_type}"
                f"\n- **Rating**: {rating}\n- **Language**: {language}"
                f"\n- **Poster**: `{item.poster_url}`\n- **IMDb**: `{item.imdb_url}`"
                "\n\n*Press Enter for full details.*"
            )
        else:
            content = "## Details\n\n*Select a movie to see its details.*"
        self.query_one(Markdown).update(content)

    def compose(self) -> ComposeResult:
        yield Markdown()


class ResultsDisplay(DataTable):
    """Widget for the main results table.

    ``epoch`` changes every time the rows are replaced; detail lookups started
    for an older epoch must not touch the table.
    """
    class MovieChosen(Message):
        def __init__(self, key: str) -> None:
            self.key = key
            super().__init__()

    class MovieHighlighted(Message):
        def __init__(self, key: Optional[str]) -> None:
            self.key = key
            super().__init__()

    epoch = 0

    def on_mount(self) -> None:
        self.add_column("Title", key="title")
        self.add_column("Year", key="year")
        self.add_column("Type", key="type")
        self.add_column("Rating", key="rating")
        self.add_column("Language", key="language")
        self.cursor_type = "row"

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.row_key.value is not None:
            self.post_message(self.MovieChosen(event.row_key.value))

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        self.post_message(self.MovieHighlighted(event.row_key.value))

    def update_results(self, results: Iterable[ResultItem],
                       cached: Callable[[str], Optional[DetailRecord]]) -> int:
        self.epoch += 1
        self.clear()
        for r in results:
            detail = cached(r.id)
            self.add_row(
                r.title, r.year, r.media_type,
                detail.rating if detail else "N/A",
                detail.primary_language if detail else "N/A",
                key=r.id,
            )
        return self.epoch

    def apply_details(self, detail: DetailRecord, epoch: int) -> bool:
        """Fills in the rating and language columns of one row."""
        if epoch != self.epoch or not self.is_mounted:
            return False
        try:
            self.update_cell(detail.id, "rating", detail.rating)
            self.update_cell(detail.id, "language", detail.primary_language)
        except CellDoesNotExist:
            return False
        return True


class DetailsModal(ModalScreen):
    """Full details for one movie."""
    BINDINGS = [("escape", "close", "Close")]

    def __init__(self, state: ModalState) -> None:
        super().__init__()
        self.modal_state = state

    def compose(self) -> ComposeResult:
        with Vertical(id="details-dialog"):
            yield Button("×", id="close-details", variant="primary")
            yield LoadingIndicator(id="details-loading")
            yield Markdown(id="details-markdown")

    def on_mount(self) -> None:
        self.update_state(self.modal_state)

    def update_state(self, state: ModalState) -> None:
        self.modal_state = state
        if not self.is_mounted:
            return
        self.query_one(LoadingIndicator).display = state.loading
        markdown = self.query_one(Markdown)
        markdown.display = not state.loading
        if state.status == "loaded":
            markdown.update(render_detail_markdown(state.detail))
        elif state.status == "failed":
            markdown.update("No details found.")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "close-details":
            event.stop()
            self.dismiss()

    def action_close(self) -> None:
        self.dismiss()


class LogPane(RichLog):
    """A dedicated widget for logging application events."""
    def add_message(self, message: str) -> None:
        self.write(message)
