"""
List-screen state shared by every table: page cursor, debounced search and
fixed-interval polling.

Timers run on background threads (threading.Timer / threading.Thread), so
callbacks fire off the caller's thread.  All mutable state is guarded by a
lock.
"""
import logging
import math
import threading
from typing import Any, Callable, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
DEFAULT_SEARCH_DELAY_SECONDS = 0.8


class Pagination(BaseModel):
    """Paging metadata returned alongside every list response."""
    page: int = 1
    pages: int = 1
    total: int = 0
    limit: int = DEFAULT_PAGE_SIZE

    @classmethod
    def for_total(cls, total: int, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> "Pagination":
        limit = max(int(limit), 1)
        pages = max(math.ceil(total / limit), 1)
        page = min(max(int(page), 1), pages)
        return cls(page=page, pages=pages, total=total, limit=limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def paginate(total: int, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Pagination:
    return Pagination.for_total(total, page, limit)


class Paginator:
    """Page cursor: moves forward only below the last page, back only above 1."""

    def __init__(self, initial_page: int = 1):
        self.page = max(initial_page, 1)

    def next(self, pagination: Pagination) -> int:
        if self.page < pagination.pages:
            self.page += 1
            logger.debug("Going to next page: %d", self.page)
        return self.page

    def prev(self) -> int:
        if self.page > 1:
            self.page -= 1
            logger.debug("Going to previous page: %d", self.page)
        return self.page

    def reset(self) -> int:
        self.page = 1
        return self.page


class Debouncer:
    """
    Calls *callback* with the latest value once *delay* seconds pass without
    another call().  Every call() cancels and restarts the timer.
    """

    def __init__(self, delay: float, callback: Callable[[Any], None]):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._pending: Any = None
        self._has_pending = False
        self._lock = threading.Lock()

    def call(self, value: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = value
            self._has_pending = True
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            if not self._has_pending:
                return
            value = self._pending
            self._has_pending = False
            self._timer = None
        self.callback(value)

    def flush(self) -> None:
        """Fire the pending value now instead of waiting for the delay."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._fire()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._has_pending = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._has_pending


class SearchState:
    """
    Search box state for a list screen.  The raw term updates on every
    keystroke; the settled term (what queries use) updates after the
    debounce delay and sends the page cursor back to 1.
    """

    def __init__(
        self,
        delay: float = DEFAULT_SEARCH_DELAY_SECONDS,
        on_change: Optional[Callable[[str], None]] = None,
        paginator: Optional[Paginator] = None,
    ):
        self.term = ""
        self.settled_term = ""
        self.paginator = paginator or Paginator()
        self._on_change = on_change
        self._debouncer = Debouncer(delay, self._settle)

    def type(self, term: str) -> None:
        self.term = term
        self._debouncer.call(term)

    def _settle(self, term: str) -> None:
        if term == self.settled_term:
            return
        self.settled_term = term
        self.paginator.reset()
        if self._on_change is not None:
            self._on_change(term)

    def flush(self) -> None:
        self._debouncer.flush()

    def cancel(self) -> None:
        self._debouncer.cancel()

    def query_params(self, limit: int = DEFAULT_PAGE_SIZE) -> dict:
        return {"page": self.paginator.page, "limit": limit, "search": self.settled_term}


class Poller:
    """
    Runs *fetch* every *interval* seconds on a background thread until
    stop().  A failed fetch is logged and the last good result kept.
    """

    def __init__(self, interval: float, fetch: Callable[[], Any]):
        self.interval = interval
        self.fetch = fetch
        self.last_result: Any = None
        self.last_error: Optional[BaseException] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def poll_once(self) -> Any:
        try:
            self.last_result = self.fetch()
            self.last_error = None
        except Exception as exc:
            self.last_error = exc
            logger.warning("Poll failed, keeping previous result: %s", exc)
        return self.last_result

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
