"""Page-based traversal of list endpoints.

A ``PaginationWalker`` repeatedly calls a page-fetching coroutine and yields
non-empty pages in ascending order until the server-reported total, a short
page or an empty page ends the walk.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    Generic,
    List,
    Optional,
    Tuple,
    TypeVar,
)

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    """Which page to fetch and how large pages are."""

    page: int = 1
    per_page: int = 50

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ConfigurationError("page must be at least 1")
        if self.per_page < 1:
            raise ConfigurationError("per_page must be at least 1")

    def next(self) -> "PageRequest":
        return replace(self, page=self.page + 1)


@dataclass(frozen=True)
class PaginationMeta:
    """Totals reported by the server alongside a page."""

    total_pages: Optional[int] = None
    total_count: Optional[int] = None

    def last_page(self, per_page: int) -> Optional[int]:
        """Number of the last page, when the server reported enough to know it."""
        if self.total_pages is not None:
            return self.total_pages
        if self.total_count is not None:
            return math.ceil(self.total_count / per_page)
        return None


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of decoded items."""

    items: Tuple[T, ...]
    page: int
    per_page: int
    meta: Optional[PaginationMeta] = None

    def __len__(self) -> int:
        return len(self.items)


FetchPage = Callable[[PageRequest], Awaitable[Page[T]]]


class PaginationWalker(Generic[T]):
    """Async iterator over the pages of a list endpoint.

    Each step issues exactly one fetch. Errors raised by the fetch propagate
    immediately and end the walk. A walker can be iterated only once.

    Example:
        walker = PaginationWalker(fetch, PageRequest(per_page=100))
        async for page in walker:
            ...
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        start: Optional[PageRequest] = None,
        max_pages: Optional[int] = None,
    ):
        if max_pages is not None and max_pages < 1:
            raise ConfigurationError("max_pages must be at least 1")
        self._fetch_page = fetch_page
        self._start = start or PageRequest()
        self._max_pages = max_pages
        self._started = False
        self.pages_fetched = 0

    def __aiter__(self) -> AsyncIterator[Page[T]]:
        if self._started:
            raise RuntimeError("PaginationWalker cannot be restarted")
        self._started = True
        return self._walk()

    async def _walk(self) -> AsyncIterator[Page[T]]:
        request = self._start
        yielded = 0
        served = 0

        while self._max_pages is None or yielded < self._max_pages:
            page = await self._fetch_page(request)
            self.pages_fetched += 1

            if not page.items:
                logger.debug(f"Page {request.page} is empty, stopping")
                return

            yield page
            yielded += 1
            served = max(served, len(page.items))

            last_page = (
                page.meta.last_page(min(request.per_page, served)) if page.meta else None
            )
            if last_page is not None:
                # Reported totals win over page size; servers may clamp perPage
                if request.page >= last_page:
                    return
            elif len(page.items) < request.per_page:
                return

            request = request.next()

    async def collect(self) -> List[T]:
        """Walk every page and concatenate the items in order."""
        items: List[T] = []
        async for page in self:
            items.extend(page.items)
        return items
