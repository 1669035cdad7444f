# models.py
from dataclasses import dataclass, field
from typing import Optional, Tuple

from errors import UpstreamLogicalError

BROWSE_MODE = "browse"
SEARCH_MODE = "search"


@dataclass(frozen=True)
class ResultItem:
    """A single row of an OMDb search page."""
    id: str
    title: str
    year: str
    poster_url: str
    media_type: str

    @property
    def imdb_url(self) -> str:
        return f"https://www.imdb.com/title/{self.id}/"


@dataclass(frozen=True)
class ResultPage:
    """The outcome of one gateway search call."""
    items: Tuple[ResultItem, ...] = ()
    total_count: int = 0
    ok: bool = True
    error_message: Optional[str] = None

    def raise_for_error(self) -> None:
        if not self.ok:
            raise UpstreamLogicalError(self.error_message or "Failed to fetch movies")


@dataclass(frozen=True)
class DetailRecord:
    """Extended attributes for one title, as returned by an OMDb id lookup."""
    id: str
    title: str = "N/A"
    year: str = "N/A"
    rated: str = "N/A"
    released: str = "N/A"
    runtime: str = "N/A"
    genres: Tuple[str, ...] = ()
    director: str = "N/A"
    plot: str = "N/A"
    languages: Tuple[str, ...] = ()
    country: str = "N/A"
    poster_url: str = ""
    rating: str = "N/A"
    box_office: str = "N/A"
    website: str = "N/A"
    production: str = "N/A"
    dvd: str = "N/A"

    @property
    def primary_language(self) -> str:
        return self.languages[0] if self.languages else "N/A"

    @property
    def status(self) -> str:
        return "Released" if self.dvd != "N/A" else "Unknown"

    @property
    def has_website(self) -> bool:
        return self.website not in ("", "N/A")


@dataclass(frozen=True)
class SearchSession:
    """The accumulated state tied to one effective query.

    A new session replaces the old one whenever the effective query changes;
    ``generation`` identifies it so late responses for older sessions can be
    recognised and dropped.
    """
    query: str = ""
    generation: int = 0
    mode: str = BROWSE_MODE
    remote_page: int = 1
    items: Tuple[ResultItem, ...] = ()
    total_count: int = 0
    display_window: int = 0
    is_loading: bool = False
    error_message: Optional[str] = None

    @property
    def visible_items(self) -> Tuple[ResultItem, ...]:
        return self.items[:self.display_window]

    @property
    def can_load_more(self) -> bool:
        if self.mode != SEARCH_MODE or self.is_loading or self.error_message:
            return False
        return len(self.visible_items) < self.total_count


@dataclass(frozen=True)
class ModalState:
    """State of the details modal."""
    is_open: bool = False
    focused_id: Optional[str] = None
    detail: Optional[DetailRecord] = None
    loading: bool = False

    @classmethod
    def closed(cls) -> "ModalState":
        return cls()

    @property
    def status(self) -> str:
        if not self.is_open:
            return "closed"
        if self.loading:
            return "loading"
        return "loaded" if self.detail is not None else "failed"


@dataclass(frozen=True)
class AppState:
    """A single object to hold the entire application state."""
    session: SearchSession = field(default_factory=SearchSession)
    modal: ModalState = field(default_factory=ModalState)
    selected: Optional[ResultItem] = None
