# main.py
import sys
from dataclasses import replace
from typing import Optional, Sequence

try:
    import pyperclip
except ImportError:
    pyperclip = None

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.reactive import reactive
from textual.widgets import Button, Footer, Header, Input

from config import Config, ConfigError, configure_logging
from controller import Debouncer, ModalController, SearchController
from models import AppState, ModalState, ResultItem, SearchSession
from services import DetailCache, DetailService, OmdbGateway
from ui import (DetailsModal, DetailsPane, ErrorLine, LogPane, ResultsDisplay,
                SearchControls)


class FindMoviesApp(App):
    BINDINGS = [
        ("d", "toggle_dark", "Toggle dark mode"),
        ("q", "quit", "Quit"),
        ("c", "copy_link", "Copy Link"),
        ("m", "load_more", "Load More"),
    ]
    CSS_PATH = "find_movies.tcss"
    TITLE = "findMovies"

    app_state = reactive(AppState(), always_update=True, init=False)

    def __init__(self, gateway: OmdbGateway, details: DetailService, config: Config):
        super().__init__()
        self.gateway = gateway
        self.details = details
        self.config = config
        self.search_controller = SearchController(gateway, config, on_change=self._on_session_changed)
        self.modal_controller = ModalController(details, on_change=self._on_modal_changed)
        self.debouncer = Debouncer(self._on_effective_query, config.DEBOUNCE_SECONDS)
        self._details_modal: Optional[DetailsModal] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="main-container"):
            with Horizontal(id="app-grid"):
                with Vertical(id="left-pane"):
                    yield SearchControls()
                    yield ErrorLine(id="error-message")
                    yield ResultsDisplay(id="results-table")
                    yield Button("Load More", id="load-more", variant="primary")
                with Vertical(id="right-pane"):
                    yield DetailsPane(id="details-pane")
            yield LogPane(id="log", wrap=True, highlight=True, markup=True)
        yield Footer()

    def on_mount(self) -> None:
        log = self.query_one(LogPane)
        self.query_one(Input).focus()
        self.query_one(ErrorLine).show_error(None)
        self.query_one("#load-more", Button).display = False
        if pyperclip:
            log.add_message("[green]✅ Clipboard found.[/green]")
        else:
            log.add_message("[yellow]⚠️ 'pyperclip' not installed.[/yellow]")
        self.debouncer.flush("")

    async def on_unmount(self) -> None:
        self.debouncer.cancel()
        await self.gateway.aclose()

    def watch_app_state(self, old_state: AppState, new_state: AppState) -> None:
        old, new = old_state.session, new_state.session
        table = self.query_one(ResultsDisplay)
        if old.visible_items != new.visible_items or old.generation != new.generation:
            epoch = table.update_results(new.visible_items, self.details.cached)
            self._enrich_rows(new.visible_items, epoch)
        table.loading = new.is_loading
        self.query_one(ErrorLine).show_error(new.error_message)
        self.query_one("#load-more", Button).display = new.can_load_more
        selected = new_state.selected
        self.query_one(DetailsPane).update_details(
            selected, self.details.cached(selected.id) if selected else None
        )
        if self._details_modal is not None and old_state.modal != new_state.modal:
            self._details_modal.update_state(new_state.modal)

    def _on_session_changed(self, session: SearchSession) -> None:
        selected = self.app_state.selected
        if selected and selected not in session.visible_items:
            selected = None
        self.app_state = replace(self.app_state, session=session, selected=selected)

    def _on_modal_changed(self, modal: ModalState) -> None:
        self.app_state = replace(self.app_state, modal=modal)

    def _on_effective_query(self, query: str) -> None:
        query = query.strip()
        if query:
            self.query_one(LogPane).add_message(f"🔎 Searching for '{query}'...")
        else:
            self.query_one(LogPane).add_message(f"🎬 Browsing '{self.config.DEFAULT_TOPIC}'...")
        self.run_worker(self.perform_search(query), group="search_worker")

    def _enrich_rows(self, items: Sequence[ResultItem], epoch: int) -> None:
        for item in items:
            if self.details.cached(item.id) is None:
                self.run_worker(self.enrich_row(item.id, epoch), group="details_worker")

    def action_copy_link(self) -> None:
        log = self.query_one(LogPane)
        if not pyperclip:
            log.add_message("[red]❌ 'pyperclip' not installed.[/red]")
            return
        if self.app_state.selected:
            pyperclip.copy(self.app_state.selected.imdb_url)
            log.add_message(f"📋 Copied IMDb link for '[b]{self.app_state.selected.title}[/b]'.")
        else:
            log.add_message("[yellow]⚠️ No movie selected.[/yellow]")

    def action_load_more(self) -> None:
        if self.app_state.session.can_load_more:
            self.run_worker(self.perform_load_more(), group="search_worker")

    def on_search_controls_query_changed(self, message: SearchControls.QueryChanged) -> None:
        if message.immediate:
            self.debouncer.flush(message.query.strip())
        else:
            self.debouncer.submit(message.query.strip())

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "load-more":
            self.action_load_more()

    def on_results_display_movie_chosen(self, message: ResultsDisplay.MovieChosen) -> None:
        self.open_details(message.key)

    def on_results_display_movie_highlighted(self, message: ResultsDisplay.MovieHighlighted) -> None:
        selected = next((r for r in self.app_state.session.visible_items if r.id == message.key), None)
        self.app_state = replace(self.app_state, selected=selected)

    def open_details(self, item_id: str) -> None:
        if self._details_modal is None:
            self._details_modal = DetailsModal(ModalState(is_open=True, focused_id=item_id, loading=True))
            self.push_screen(self._details_modal, self._on_details_dismissed)
        self.run_worker(self.modal_controller.on_item_selected(item_id), group="modal_worker")

    def _on_details_dismissed(self, result: object = None) -> None:
        self._details_modal = None
        self.modal_controller.close()

    async def perform_search(self, query: str) -> None:
        session = await self.search_controller.on_query_changed(query)
        if session.query != query or session.is_loading:
            return
        log = self.query_one(LogPane)
        if session.error_message:
            log.add_message(f"[red]❌ {session.error_message}[/red]")
        elif query:
            log.add_message(f"🎶 Found {session.total_count} results for '{query}'.")
        else:
            log.add_message(f"🍿 Showing {len(session.visible_items)} popular titles.")

    async def perform_load_more(self) -> None:
        before = len(self.app_state.session.visible_items)
        session = await self.search_controller.on_load_more_clicked()
        if session.error_message:
            self.query_one(LogPane).add_message(f"[red]❌ {session.error_message}[/red]")
        elif len(session.visible_items) > before:
            self.query_one(LogPane).add_message(
                f"➕ Showing {len(session.visible_items)} of {session.total_count} results."
            )

    async def enrich_row(self, item_id: str, epoch: int) -> None:
        record = await self.details.get_details(item_id)
        if record is not None:
            self.query_one(ResultsDisplay).apply_details(record, epoch)


def main() -> None:
    app_config = Config.from_env()
    try:
        api_key = app_config.require_api_key()
    except ConfigError as exc:
        sys.exit(f"findMovies: {exc}")
    configure_logging(app_config.LOG_LEVEL)

    gateway = OmdbGateway(
        api_key,
        base_url=app_config.API_BASE_URL,
        timeout=app_config.FETCH_TIMEOUT_SECONDS,
        placeholder_poster=app_config.PLACEHOLDER_POSTER,
    )
    details = DetailService(gateway, DetailCache())

    app = FindMoviesApp(gateway, details, app_config)
    app.run()


if __name__ == "__main__":
    main()
