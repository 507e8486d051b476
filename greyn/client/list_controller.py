"""
Shared list-page controller: debounced search, filters, paging and a
stale-response guard.

Each fetch takes a new fetch id; a response is applied only if no newer
fetch has started since. Superseded requests are not cancelled, their
results are just dropped.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from greyn.client.api_client import ApiResponse
from greyn.logging_config import get_logger

logger = get_logger(__name__)

SEARCH_DEBOUNCE_SECONDS = 0.4

Fetcher = Callable[..., Awaitable[ApiResponse]]


class ListController:
    """
    Usage:
        controller = ListController(client.admin.rate_limits.list, limit=20)
        await controller.refresh()
        controller.set_search("auth")     # fires after the debounce delay
        await controller.set_filter("status", "critical")
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        limit: int = 20,
        debounce: float = SEARCH_DEBOUNCE_SECONDS,
        filters: Optional[Dict[str, Any]] = None,
    ):
        self.fetcher = fetcher
        self.limit = limit
        self.debounce = debounce

        self.search = ""
        self.filters: Dict[str, Any] = dict(filters or {})
        self.current_page = 1
        self.items: List[Dict[str, Any]] = []
        self.stats: Dict[str, Any] = {}
        self.pagination: Dict[str, Any] = {}
        self.loading = False
        self.error: Optional[str] = None

        self.fetch_id = 0
        self._pending_search: Optional[asyncio.Task] = None
        self._search_waiting = False

    def params(self) -> Dict[str, Any]:
        return {
            "search": self.search or None,
            "page": self.current_page,
            "limit": self.limit,
            **{k: v for k, v in self.filters.items() if v not in (None, "", "all")},
        }

    async def fetch(self) -> bool:
        """Fetch the current page. Returns False when the response was stale or failed."""
        self.fetch_id += 1
        this_id = self.fetch_id
        self.loading = True
        self.error = None

        try:
            response = await self.fetcher(**self.params())
        finally:
            # A newer fetch owns the flag once it has started
            if this_id == self.fetch_id:
                self.loading = False

        if this_id != self.fetch_id:
            logger.debug("Discarding stale list response", extra={"fetch_id": this_id})
            return False

        if not response.success:
            self.error = response.message or "Failed to load"
            return False

        data = response.data or {}
        self.items = list(data.get("items") or [])
        self.stats = dict(data.get("stats") or {})
        self.pagination = dict(data.get("pagination") or {})
        return True

    async def refresh(self) -> bool:
        return await self.fetch()

    def set_search(self, text: str) -> None:
        """
        Record a keystroke; the fetch runs once typing pauses for the debounce delay.

        Only a search still inside its delay is cancelled. One that has already
        reached the fetcher completes and is dropped by the stale guard.
        """
        self.search = text
        if self._search_waiting and self._pending_search is not None:
            self._pending_search.cancel()
        self._search_waiting = True
        self._pending_search = asyncio.ensure_future(self._debounced_search())

    async def _debounced_search(self) -> None:
        await asyncio.sleep(self.debounce)
        self._search_waiting = False
        self.current_page = 1
        await self.fetch()

    async def wait_for_search(self) -> None:
        """Await the pending debounced search, if any."""
        task = self._pending_search
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def set_filter(self, name: str, value: Any) -> bool:
        self.filters[name] = value
        self.current_page = 1
        return await self.fetch()

    async def set_page(self, page: int) -> bool:
        self.current_page = max(1, page)
        return await self.fetch()
