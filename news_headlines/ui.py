"""Presentation state for the category tabs and the headline ticker."""

from __future__ import annotations

import concurrent.futures
import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .models import Category, Headline

logger = logging.getLogger(__name__)

CategoryFetcher = Callable[[Category], List[Headline]]
SearchAction = Callable[[str], None]

PRIORITY_CATEGORIES = (Category.WORLD, Category.TECHNOLOGY)
MAX_TAB_HEADLINES = 6
SKELETON_ROWS = 6

TICKER_REFRESH_SECONDS = 30 * 60
MAX_TICKER_HEADLINES = 8
MIN_TICKER_HEADING_LENGTH = 10
_GENERIC_HEADINGS = re.compile(
    r"^(CNN|BBC|News|Google News|Yahoo|Headlines)$", re.IGNORECASE
)

DEFAULT_TICKER_HEADLINES = [
    Headline(heading=text, message=text)
    for text in (
        "Operation Sindoor boosts Indian defense sector and stocks",
        "India to Cut 100% Tariffs on US Goods, Trump Says",
        "NJ Transit strike disrupts service affecting 300,000 commuters",
        "Trump signs $1 trillion deals with Saudi Arabia and Qatar",
        "India's Operation Sindoor boosts defense companies' shares",
        "Activision ends Call of Duty: Warzone Mobile support",
    )
]


class FetchState(str, Enum):
    UNFETCHED = "unfetched"
    LOADING = "loading"
    LOADED = "loaded"
    LOADED_EMPTY = "loaded-empty"


@dataclass
class TabView:
    """Snapshot of one tab used by the templates."""

    category: Category
    label: str
    active: bool
    loading: bool
    state: FetchState
    headlines: List[Headline] = field(default_factory=list)


class CategoryTabs:
    """Per-category headline lists with lazy loading and background pre-fetch.

    Every fetch is a task keyed by category. A category with a task in
    flight is not fetched again, and ``cancel``/``reset`` supersede a task
    so that its late result is discarded instead of written back.
    """

    def __init__(
        self,
        fetch: CategoryFetcher,
        on_select: Optional[SearchAction] = None,
        *,
        active: Category = Category.LOCAL,
        priority: Sequence[Category] = PRIORITY_CATEGORIES,
        executor: Optional[concurrent.futures.Executor] = None,
    ):
        self._fetch = fetch
        self._on_select = on_select
        self._priority = tuple(priority)
        self._owns_executor = executor is None
        self._executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="headline-tabs"
        )
        self._lock = threading.RLock()
        self.active = active
        self._headlines: Dict[Category, List[Headline]] = {}
        self._states: Dict[Category, FetchState] = {
            category: FetchState.UNFETCHED for category in Category
        }
        self._tasks: Dict[Category, concurrent.futures.Future] = {}
        self._generations: Dict[Category, int] = {category: 0 for category in Category}

    def state(self, category: Category) -> FetchState:
        with self._lock:
            return self._states[category]

    def headlines(self, category: Category) -> List[Headline]:
        with self._lock:
            return list(self._headlines.get(category, []))

    def is_loading(self, category: Category) -> bool:
        """Tabs show skeleton rows until their first fetch completes."""
        return self.state(category) in (FetchState.UNFETCHED, FetchState.LOADING)

    def fetch_category(self, category: Category) -> concurrent.futures.Future:
        """Start (or join) the fetch for ``category``.

        Populated categories are not fetched again; the returned future is
        already resolved in that case.
        """
        with self._lock:
            if self._headlines.get(category):
                done: concurrent.futures.Future = concurrent.futures.Future()
                done.set_result(self.headlines(category))
                return done

            task = self._tasks.get(category)
            if task is not None and not task.done():
                return task

            generation = self._generations[category]
            self._states[category] = FetchState.LOADING
            task = self._executor.submit(self._run, category, generation)
            if not task.done():
                self._tasks[category] = task
            return task

    def _run(self, category: Category, generation: int) -> List[Headline]:
        try:
            fetched = self._fetch(category)
        except Exception:  # noqa: BLE001
            logger.exception("Error fetching headlines for %s", category.value)
            fetched = []

        with self._lock:
            if generation != self._generations[category]:
                logger.debug("Discarding superseded fetch for %s", category.value)
                return fetched

            if fetched:
                self._headlines[category] = list(fetched[:MAX_TAB_HEADLINES])
            if self._headlines.get(category):
                self._states[category] = FetchState.LOADED
            else:
                self._states[category] = FetchState.LOADED_EMPTY
            self._tasks.pop(category, None)
            return list(self._headlines.get(category, []))

    def select(self, category: Category) -> concurrent.futures.Future:
        """Activate a tab and lazily load its headlines."""
        with self._lock:
            self.active = category
        return self.fetch_category(category)

    def start(self) -> concurrent.futures.Future:
        """Load the active tab, then pre-fetch the priority tabs in the background."""
        active = self.active
        future = self.fetch_category(active)

        def _prefetch(_: concurrent.futures.Future) -> None:
            for category in self._priority:
                if category != active:
                    try:
                        self.fetch_category(category)
                    except RuntimeError as exc:
                        logger.warning(
                            "Could not pre-fetch %s: %s", category.value, exc
                        )

        future.add_done_callback(_prefetch)
        return future

    def cancel(self, category: Category) -> None:
        """Supersede the in-flight fetch for ``category``, if any."""
        with self._lock:
            task = self._tasks.pop(category, None)
            if task is None:
                return
            self._generations[category] += 1
            task.cancel()
            if self._states[category] == FetchState.LOADING:
                self._states[category] = (
                    FetchState.LOADED
                    if self._headlines.get(category)
                    else FetchState.UNFETCHED
                )
            logger.debug("Cancelled fetch for %s", category.value)

    def reset(self) -> None:
        """Drop all loaded headlines and supersede outstanding fetches."""
        with self._lock:
            for category in list(self._tasks):
                self.cancel(category)
            self._headlines.clear()
            for category in Category:
                self._states[category] = FetchState.UNFETCHED

    def click(self, headline: Headline) -> None:
        """Trigger the search action with the headline's message."""
        if self._on_select is not None:
            self._on_select(headline.message)

    def view(self) -> List[TabView]:
        with self._lock:
            return [
                TabView(
                    category=category,
                    label=category.label,
                    active=category == self.active,
                    loading=self.is_loading(category),
                    state=self._states[category],
                    headlines=list(self._headlines.get(category, [])),
                )
                for category in Category
            ]

    def close(self) -> None:
        with self._lock:
            for category in list(self._tasks):
                self.cancel(category)
        if self._owns_executor:
            self._executor.shutdown(wait=False)


def filter_ticker_headlines(headlines: Iterable[Headline]) -> List[Headline]:
    """Keep substantive headings, at most ``MAX_TICKER_HEADLINES``.

    The ticker searches for the displayed heading, so ``message`` is set to
    it.
    """
    kept: List[Headline] = []
    for headline in headlines:
        heading = headline.heading or ""
        if len(heading) <= MIN_TICKER_HEADING_LENGTH or _GENERIC_HEADINGS.match(heading):
            continue
        kept.append(Headline(heading=heading, message=heading))
        if len(kept) >= MAX_TICKER_HEADLINES:
            break
    return kept


class HeadlineTicker:
    """Single headline list refreshed on start and on a fixed interval."""

    def __init__(
        self,
        fetch: Callable[[], List[Headline]],
        on_select: Optional[SearchAction] = None,
        *,
        defaults: Sequence[Headline] = DEFAULT_TICKER_HEADLINES,
        interval: float = TICKER_REFRESH_SECONDS,
    ):
        self._fetch = fetch
        self._on_select = on_select
        self.defaults = list(defaults)
        self.interval = interval
        self._lock = threading.Lock()
        self._headlines: List[Headline] = list(defaults)
        self.loading = True
        self.last_refreshed: Optional[datetime] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def headlines(self) -> List[Headline]:
        with self._lock:
            return list(self._headlines)

    def refresh(self) -> List[Headline]:
        """Fetch once and replace the list; failures keep the previous list."""
        with self._lock:
            self.loading = True
        try:
            fetched = filter_ticker_headlines(self._fetch())
            if not fetched:
                logger.warning("No headlines returned from API; using defaults")
                fetched = list(self.defaults)
            with self._lock:
                self._headlines = fetched
                self.last_refreshed = datetime.now(timezone.utc)
        except Exception:  # noqa: BLE001
            logger.exception("Error fetching news headlines")
        finally:
            with self._lock:
                self.loading = False
        return self.headlines

    def _loop(self, immediate: bool) -> None:
        if immediate:
            self.refresh()
        while not self._stop.wait(self.interval):
            self.refresh()

    def start(self, immediate: bool = True) -> None:
        """Refresh now (unless ``immediate`` is false) and then every ``interval`` seconds."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(immediate,),
            name="headline-ticker",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def click(self, headline: Headline) -> None:
        if self._on_select is not None:
            self._on_select(headline.message)
