"""Integration tests driving FindMoviesApp through Textual's pilot."""

import pytest
from textual.widgets import Button

from config import Config
from main import FindMoviesApp
from models import DetailRecord, ResultPage
from services import DetailCache, DetailService
from ui import DetailsModal, ErrorLine, ResultsDisplay, render_detail_markdown

from fakes import FakeGateway, make_items, page_of


def browse_pages(query, page):
    if query != "Avengers":
        return ResultPage(ok=False, error_message="Movie not found!")
    return page_of(make_items("av", (page - 1) * 10, 10), 150)


@pytest.fixture
def gateway():
    return FakeGateway(
        pages={
            ("batman", 1): page_of(make_items("bat", 0, 10), 23),
            ("batman", 2): page_of(make_items("bat", 10, 10), 23),
        },
        details={"ttav0000": DetailRecord(id="ttav0000", title="Avengers 0", rating="8.0",
                                          languages=("English", "Russian"))},
        fallback=browse_pages,
    )


@pytest.fixture
def app(gateway):
    config = Config(OMDB_API_KEY="test-key", DEBOUNCE_SECONDS=0.1)
    return FindMoviesApp(gateway, DetailService(gateway, DetailCache()), config)


async def settle(app, pilot):
    await pilot.pause(0.2)
    for _ in range(2):
        await app.workers.wait_for_complete()
        await pilot.pause()


@pytest.mark.asyncio
async def test_starts_in_browse_mode(app, gateway):
    async with app.run_test() as pilot:
        await settle(app, pilot)

        table = app.query_one(ResultsDisplay)
        assert table.row_count == 20
        assert not app.query_one("#load-more", Button).display
        assert gateway.search_calls == [("Avengers", 1), ("Avengers", 2)]


@pytest.mark.asyncio
async def test_rows_are_enriched_from_details(app):
    async with app.run_test() as pilot:
        await settle(app, pilot)

        table = app.query_one(ResultsDisplay)
        assert table.get_cell("ttav0000", "rating") == "8.0"
        assert table.get_cell("ttav0000", "language") == "English"
        assert table.get_cell("ttav0001", "rating") == "N/A"


@pytest.mark.asyncio
async def test_typing_searches_and_loads_more(app, gateway):
    async with app.run_test() as pilot:
        await settle(app, pilot)

        await pilot.press(*"batman")
        await settle(app, pilot)

        table = app.query_one(ResultsDisplay)
        assert table.row_count == 10
        assert app.query_one("#load-more", Button).display
        assert [call for call in gateway.search_calls if call[0] == "batman"] == [("batman", 1)]

        app.action_load_more()
        await settle(app, pilot)

        assert table.row_count == 20
        assert app.app_state.session.display_window == 25


@pytest.mark.asyncio
async def test_search_error_is_shown(app, gateway):
    async with app.run_test() as pilot:
        await settle(app, pilot)

        await pilot.press(*"zzzqqq", "enter")
        await settle(app, pilot)

        assert app.app_state.session.error_message == "Movie not found!"
        assert app.query_one(ErrorLine).display
        assert app.query_one(ResultsDisplay).row_count == 0


@pytest.mark.asyncio
async def test_details_modal_opens_and_closes(app):
    async with app.run_test() as pilot:
        await settle(app, pilot)

        app.open_details("ttav0000")
        await settle(app, pilot)

        assert isinstance(app.screen, DetailsModal)
        assert app.modal_controller.state.status == "loaded"
        assert app.app_state.modal.detail.title == "Avengers 0"

        await pilot.press("escape")
        await pilot.pause()

        assert not isinstance(app.screen, DetailsModal)
        assert app.modal_controller.state.status == "closed"


def test_render_detail_markdown():
    detail = DetailRecord(
        id="tt0372784", title="Batman Begins", rating="8.2", rated="PG-13", runtime="140 min",
        year="2005", genres=("Action", "Crime"), plot="Bruce trains.", languages=("English",),
        website="https://batmanbegins.com",
    )

    markdown = render_detail_markdown(detail)

    assert markdown.startswith("## Batman Begins")
    assert "8.2/10" in markdown
    assert "`Action` `Crime`" in markdown
    assert "Bruce trains." in markdown
    assert "**Status**: Unknown" in markdown
    assert "**Homepage**: https://batmanbegins.com" in markdown
    assert "https://www.imdb.com/title/tt0372784/" in markdown
