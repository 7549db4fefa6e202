"""Aggregation of category feeds and headline rewriting."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from . import db
from .cache import HeadlineCache, RewriteCache
from .config import Settings
from .enhancer import HeadlineEnhancer
from .feeds import FeedFetchError, fetch_headlines
from .models import Category, Headline

logger = logging.getLogger(__name__)

Payload = Tuple[dict, int]
HeadlineFetcher = Callable[[Category, Settings], List[Headline]]


def build_cache(settings: Settings) -> HeadlineCache:
    """Return the SQL-backed cache when a database is configured, else in-memory."""
    cache_config = settings.cache
    if cache_config.database_url:
        engine = db.init_engine(cache_config.database_url)
        if engine is not None:
            return db.SqlRewriteCache(
                db.get_session_factory(engine),
                ttl_seconds=cache_config.ttl_seconds,
                capacity=cache_config.capacity,
            )
    return RewriteCache(
        ttl_seconds=cache_config.ttl_seconds, capacity=cache_config.capacity
    )


class HeadlineService:
    """Serves cleaned, optionally rewritten headlines per category.

    Concurrent requests for the same category share a single upstream
    fetch.
    """

    def __init__(
        self,
        settings: Settings,
        enhancer: Optional[HeadlineEnhancer] = None,
        fetcher: HeadlineFetcher = fetch_headlines,
    ):
        self._settings = settings
        self._enhancer = enhancer or HeadlineEnhancer(
            settings.enhancer, cache=build_cache(settings)
        )
        self._fetcher = fetcher
        self._lock = threading.Lock()
        self._in_flight: Dict[Category, concurrent.futures.Future] = {}

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def enhancer(self) -> HeadlineEnhancer:
        return self._enhancer

    def load(self, category: Category) -> List[Headline]:
        """Fetch and rewrite headlines, joining any in-flight load for the category."""
        with self._lock:
            future = self._in_flight.get(category)
            owner = future is None
            if owner:
                future = concurrent.futures.Future()
                self._in_flight[category] = future

        if not owner:
            logger.debug("Joining in-flight fetch for %s", category.value)
            return future.result()

        try:
            headlines = self._load_uncached(category)
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(headlines)
            return headlines
        finally:
            with self._lock:
                self._in_flight.pop(category, None)

    def _load_uncached(self, category: Category) -> List[Headline]:
        headlines = self._fetcher(category, self._settings)

        if self._settings.enhancer.enabled:
            logger.info("Enhancing headlines for category %s", category.value)
            started = time.monotonic()
            try:
                headlines = self._enhancer.enhance(headlines)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to enhance headlines for %s", category.value)
            else:
                logger.info(
                    "Enhanced %d headlines for category %s in %dms",
                    len(headlines),
                    category.value,
                    (time.monotonic() - started) * 1000,
                )
        return headlines

    def get_headlines(self, category: Category) -> Payload:
        """Return the aggregation endpoint payload and HTTP status."""
        try:
            headlines = self.load(category)
        except FeedFetchError as exc:
            logger.error("Error fetching news headlines: %s", exc)
            return {"error": "Failed to fetch news headlines", "headlines": []}, 500

        return {
            "headlines": [headline.to_dict() for headline in headlines],
            "category": category.value,
        }, 200

    def enhancement_report(self) -> Payload:
        """Return the diagnostic payload comparing sample rewrites."""
        config = self._settings.enhancer
        status = {"enabled": config.enabled, "apiKeySet": bool(config.api_key)}
        if not config.active:
            return {
                "error": "Headline enhancement is disabled or OpenAI API key is not set",
                **status,
            }, 400

        try:
            results = self._enhancer.compare_samples()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error testing headline enhancement")
            return {
                "error": "Failed to test headline enhancement",
                "message": str(exc),
            }, 500

        return {"results": results, **status}, 200
