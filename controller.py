# controller.py
import asyncio
import logging
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from config import Config
from errors import NetworkError, OmdbError
from models import (BROWSE_MODE, SEARCH_MODE, ModalState, ResultItem, ResultPage,
                    SearchSession)
from services import DetailService, OmdbGateway

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Error fetching movies. Please try again later."


class Debouncer:
    """Collapses a burst of values into one emission after a quiet period.

    Each ``submit`` re-arms the timer, so the callback only fires ``delay``
    seconds after the last value of a burst. A value equal to the last one
    emitted is dropped, even if the search it triggered failed; ``flush``
    (Enter in the search box) always emits and is the way to retry it.
    """
    _UNSET = object()

    def __init__(self, callback: Callable[[str], None], delay: float = 0.5):
        self.callback = callback
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._value: Optional[str] = None
        self._last_emitted = self._UNSET

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def submit(self, value: str) -> None:
        self.cancel()
        self._value = value
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def flush(self, value: Optional[str] = None) -> None:
        """Emits immediately, using ``value`` or the pending one.

        Unlike timed emissions, a flush fires even when the value matches the
        last one emitted, so an explicit submit can retry a failed query.
        """
        if value is None:
            if self._handle is None:
                return
            value = self._value
        self.cancel()
        self._value = value
        self._fire(force=True)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, force: bool = False) -> None:
        self._handle = None
        value = self._value
        if value == self._last_emitted and not force:
            return
        self._last_emitted = value
        self.callback(value)


class SearchController:
    """Owns the search session and decides when to call the gateway.

    Every transition builds a new ``SearchSession`` snapshot and hands it to
    ``on_change``. Responses are tagged with the generation of the session
    that requested them and dropped if a newer session has started since.
    """
    def __init__(self, gateway: OmdbGateway, config: Config,
                 on_change: Optional[Callable[[SearchSession], None]] = None):
        self.gateway = gateway
        self.config = config
        self.on_change = on_change
        self._state = SearchSession()
        self._generation = 0

    @property
    def state(self) -> SearchSession:
        return self._state

    def _publish(self, session: SearchSession) -> SearchSession:
        self._state = session
        if self.on_change:
            self.on_change(session)
        return session

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug("Dropping response for stale session %d (current %d)", generation, self._generation)
            return False
        return True

    def _failed(self, session: SearchSession, exc: OmdbError) -> SearchSession:
        message = NETWORK_ERROR_MESSAGE if isinstance(exc, NetworkError) else str(exc)
        logger.info("Session %d failed: %s", session.generation, exc)
        return self._publish(replace(
            session, items=(), total_count=0, is_loading=False, error_message=message
        ))

    async def on_query_changed(self, query: str) -> SearchSession:
        """Starts a fresh session for ``query`` (browse mode when empty)."""
        query = (query or "").strip()
        self._generation += 1
        if query:
            session = SearchSession(
                query=query, generation=self._generation, mode=SEARCH_MODE,
                display_window=self.config.SEARCH_INITIAL_LIMIT, is_loading=True,
            )
            self._publish(session)
            return await self._fetch_search_page(session, 1)

        session = SearchSession(
            generation=self._generation, mode=BROWSE_MODE,
            display_window=self.config.DEFAULT_LIMIT, is_loading=True,
        )
        self._publish(session)
        return await self._fetch_default(session)

    async def on_load_more_clicked(self) -> SearchSession:
        """Reveals the next slice of results, fetching a page only when needed."""
        session = self._state
        if not session.can_load_more:
            return session

        step = self.config.SEARCH_LOAD_MORE_COUNT
        window = session.display_window + step
        buffered = len(session.items)
        if buffered >= session.display_window + step or buffered >= session.total_count:
            return self._publish(replace(session, display_window=window))

        next_page = buffered // self.config.PAGE_SIZE + 1
        # The window grows even if the page comes back short or empty.
        session = self._publish(replace(session, display_window=window, is_loading=True))
        return await self._fetch_search_page(session, next_page)

    async def _fetch_search_page(self, session: SearchSession, page: int) -> SearchSession:
        try:
            result = await self.gateway.search(session.query, page)
            if not self._is_current(session.generation):
                return self._state
            result.raise_for_error()
        except OmdbError as exc:
            if not self._is_current(session.generation):
                return self._state
            return self._failed(session, exc)

        base = () if page == 1 else session.items
        if result.total_count:
            items = _merge(base, result.items, result.total_count)
            total = result.total_count
        else:
            # Unparseable count: keep what arrived and treat it as the whole set.
            items = _merge(base, result.items)
            total = len(items)
        return self._publish(replace(
            session, remote_page=page, items=items, total_count=total,
            is_loading=False, error_message=None,
        ))

    async def _fetch_default(self, session: SearchSession) -> SearchSession:
        limit = self.config.DEFAULT_LIMIT
        collected: Tuple[ResultItem, ...] = ()
        total = 0
        page = 1
        while len(collected) < limit:
            try:
                result: ResultPage = await self.gateway.search(self.config.DEFAULT_TOPIC, page)
                if not self._is_current(session.generation):
                    return self._state
                result.raise_for_error()
            except OmdbError as exc:
                if not self._is_current(session.generation):
                    return self._state
                return self._failed(session, exc)

            total = result.total_count
            collected = _merge(collected, result.items)
            if len(collected) >= limit or len(collected) >= total:
                break
            page += 1
            if page > self.config.MAX_DEFAULT_PAGES:
                logger.warning("Stopped browsing %r after %d pages", self.config.DEFAULT_TOPIC, page - 1)
                break

        items = collected[:limit]
        return self._publish(replace(
            session, remote_page=min(page, self.config.MAX_DEFAULT_PAGES),
            items=items, total_count=max(total, len(items)),
            is_loading=False, error_message=None,
        ))


def _merge(existing: Tuple[ResultItem, ...], incoming: Tuple[ResultItem, ...],
           cap: Optional[int] = None) -> Tuple[ResultItem, ...]:
    """Appends ``incoming`` to ``existing`` skipping known ids, capped at ``cap``."""
    seen = {item.id for item in existing}
    merged: List[ResultItem] = list(existing)
    for item in incoming:
        if item.id not in seen:
            seen.add(item.id)
            merged.append(item)
    if cap is not None:
        merged = merged[:max(cap, len(existing))]
    return tuple(merged)


class ModalController:
    """Closed -> loading(id) -> loaded | failed -> closed."""
    def __init__(self, details: DetailService,
                 on_change: Optional[Callable[[ModalState], None]] = None):
        self.details = details
        self.on_change = on_change
        self._state = ModalState.closed()

    @property
    def state(self) -> ModalState:
        return self._state

    def _publish(self, state: ModalState) -> ModalState:
        self._state = state
        if self.on_change:
            self.on_change(state)
        return state

    async def on_item_selected(self, item_id: str) -> ModalState:
        self._publish(ModalState(is_open=True, focused_id=item_id, loading=True))
        record = await self.details.get_details(item_id)
        current = self._state
        if not current.is_open or current.focused_id != item_id:
            logger.debug("Ignoring details for %s; modal moved on", item_id)
            return current
        return self._publish(replace(current, detail=record, loading=False))

    def close(self) -> ModalState:
        return self._publish(ModalState.closed())
