# services.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from errors import NetworkError, OmdbError, ParseError
from models import DetailRecord, ResultItem, ResultPage

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


def _parse_count(raw: Any) -> int:
    try:
        value = int(str(raw).strip(), 10)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Malformed totalResults value: {raw!r}") from exc
    if value < 0:
        raise ParseError(f"Negative totalResults value: {raw!r}")
    return value


def parse_total_results(raw: Any) -> int:
    """Parses OMDb's string-encoded total count, degrading to 0 when malformed."""
    try:
        return _parse_count(raw)
    except ParseError as exc:
        logger.warning("%s; treating as 0", exc)
        return 0


def _split_list(raw: Optional[str]) -> tuple:
    if not raw or raw == NOT_AVAILABLE:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _text(item: dict, key: str) -> str:
    value = item.get(key)
    return value if value else NOT_AVAILABLE


class OmdbGateway:
    """A service to handle interactions with the OMDb REST API."""
    def __init__(self, api_key: str, base_url: str = "https://www.omdbapi.com/",
                 timeout: float = 10.0, placeholder_poster: str = "no-movie.png",
                 client: Optional[httpx.AsyncClient] = None):
        if not api_key:
            raise ValueError("An OMDb API key is required")
        self.api_key = api_key
        self.base_url = base_url
        self.placeholder_poster = placeholder_poster
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def search(self, query: str, page: int = 1) -> ResultPage:
        """Fetches one remote page of search results for ``query``."""
        logger.debug("Searching OMDb for %r (page %d)", query, page)
        data = await self._get({"s": query, "page": page})
        if data.get("Response") != "True":
            return ResultPage(ok=False, error_message=data.get("Error") or "Failed to fetch movies")

        items = []
        for entry in data.get("Search") or []:
            parsed = self._parse_item(entry)
            if parsed:
                items.append(parsed)
        return ResultPage(items=tuple(items), total_count=parse_total_results(data.get("totalResults")))

    async def fetch_details(self, item_id: str) -> Optional[DetailRecord]:
        """Fetches the full record for one title; ``None`` when OMDb has no match."""
        logger.debug("Fetching OMDb details for %s", item_id)
        data = await self._get({"i": item_id, "plot": "full"})
        if data.get("Response") != "True":
            return None
        return self._parse_detail(item_id, data)

    async def _get(self, params: Dict[str, Any]) -> dict:
        query = {"apikey": self.api_key, **params}
        try:
            response = await self.client.get(self.base_url, params=query)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("OMDb request failed: %s", type(exc).__name__)
            raise NetworkError(f"OMDb request failed: {type(exc).__name__}") from exc
        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkError("OMDb returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise NetworkError("OMDb returned an unexpected payload")
        return data

    def _poster(self, raw: Optional[str]) -> str:
        if not raw or raw == NOT_AVAILABLE:
            return self.placeholder_poster
        return raw

    def _parse_item(self, entry: dict) -> Optional[ResultItem]:
        """Parses a single raw search entry into our ResultItem data model."""
        if not isinstance(entry, dict) or not entry.get("imdbID"):
            return None
        return ResultItem(
            id=entry["imdbID"],
            title=_text(entry, "Title"),
            year=_text(entry, "Year"),
            poster_url=self._poster(entry.get("Poster")),
            media_type=_text(entry, "Type"),
        )

    def _parse_detail(self, item_id: str, data: dict) -> DetailRecord:
        return DetailRecord(
            id=data.get("imdbID") or item_id,
            title=_text(data, "Title"),
            year=_text(data, "Year"),
            rated=_text(data, "Rated"),
            released=_text(data, "Released"),
            runtime=_text(data, "Runtime"),
            genres=_split_list(data.get("Genre")),
            director=_text(data, "Director"),
            plot=_text(data, "Plot"),
            languages=_split_list(data.get("Language")),
            country=_text(data, "Country"),
            poster_url=self._poster(data.get("Poster")),
            rating=_text(data, "imdbRating"),
            box_office=_text(data, "BoxOffice"),
            website=_text(data, "Website"),
            production=_text(data, "Production"),
            dvd=_text(data, "DVD"),
        )


class DetailCache:
    """Process-lifetime cache of detail records keyed by id.

    Entries are never evicted. Concurrent requests for the same id share one
    in-flight fetch; a fetch that yields nothing is not cached.
    """
    def __init__(self):
        self._records: Dict[str, DetailRecord] = {}
        self._pending: Dict[str, "asyncio.Future[Optional[DetailRecord]]"] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._records

    def get(self, item_id: str) -> Optional[DetailRecord]:
        return self._records.get(item_id)

    async def get_or_fetch(self, item_id: str,
                           fetch: Callable[[str], Awaitable[Optional[DetailRecord]]]) -> Optional[DetailRecord]:
        cached = self._records.get(item_id)
        if cached is not None:
            return cached

        pending = self._pending.get(item_id)
        if pending is None:
            pending = asyncio.ensure_future(fetch(item_id))
            self._pending[item_id] = pending
            pending.add_done_callback(lambda fut: self._settle(item_id, fut))
        # Shielded so one caller going away does not cancel the shared fetch.
        return await asyncio.shield(pending)

    def _settle(self, item_id: str, future: "asyncio.Future[Optional[DetailRecord]]") -> None:
        self._pending.pop(item_id, None)
        if future.cancelled() or future.exception() is not None:
            return
        record = future.result()
        if record is not None:
            self._records.setdefault(item_id, record)


class DetailService:
    """Memoised per-item detail lookups; failures degrade to ``None``."""
    def __init__(self, gateway: OmdbGateway, cache: DetailCache):
        self.gateway = gateway
        self.cache = cache

    def cached(self, item_id: str) -> Optional[DetailRecord]:
        return self.cache.get(item_id)

    async def get_details(self, item_id: str) -> Optional[DetailRecord]:
        try:
            return await self.cache.get_or_fetch(item_id, self.gateway.fetch_details)
        except OmdbError as exc:
            logger.warning("Details for %s unavailable: %s", item_id, exc)
            return None
