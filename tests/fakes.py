"""In-memory stand-ins for the OMDb gateway used across the test suite."""

import asyncio
from typing import Callable, Dict, List, Optional, Tuple, Union

from models import DetailRecord, ResultItem, ResultPage


def make_items(prefix: str, start: int, count: int) -> Tuple[ResultItem, ...]:
    return tuple(
        ResultItem(
            id=f"tt{prefix}{n:04d}",
            title=f"{prefix.title()} {n}",
            year="2008",
            poster_url=f"https://img.example/{prefix}{n}.jpg",
            media_type="movie",
        )
        for n in range(start, start + count)
    )


def page_of(items: Tuple[ResultItem, ...], total: int) -> ResultPage:
    return ResultPage(items=items, total_count=total)


PageResult = Union[ResultPage, Exception]


class FakeGateway:
    """Scripted gateway: pages keyed by ``(query, page)``.

    ``hold(query, page)`` returns an event the request waits on, which lets a
    test interleave responses.
    """

    def __init__(self, pages: Optional[Dict[Tuple[str, int], PageResult]] = None,
                 details: Optional[Dict[str, Union[DetailRecord, Exception, None]]] = None,
                 fallback: Optional[Callable[[str, int], PageResult]] = None):
        self.pages = pages or {}
        self.details = details or {}
        self.fallback = fallback
        self.search_calls: List[Tuple[str, int]] = []
        self.detail_calls: List[str] = []
        self.gates: Dict[object, asyncio.Event] = {}
        self.closed = False

    def hold(self, *key) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[key if len(key) > 1 else key[0]] = event
        return event

    async def search(self, query: str, page: int = 1) -> ResultPage:
        self.search_calls.append((query, page))
        gate = self.gates.get((query, page))
        if gate is not None:
            await gate.wait()
        if (query, page) in self.pages:
            result = self.pages[(query, page)]
        elif self.fallback is not None:
            result = self.fallback(query, page)
        else:
            result = ResultPage(ok=False, error_message="Movie not found!")
        if isinstance(result, Exception):
            raise result
        return result

    async def fetch_details(self, item_id: str) -> Optional[DetailRecord]:
        self.detail_calls.append(item_id)
        gate = self.gates.get(item_id)
        if gate is not None:
            await gate.wait()
        result = self.details.get(item_id)
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self) -> None:
        self.closed = True
