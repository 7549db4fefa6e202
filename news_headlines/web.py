"""Flask application exposing the headline API and pages."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from collections import deque
from typing import Deque, Optional
from urllib.parse import quote_plus

from flask import Blueprint, Flask, current_app, jsonify, redirect, request

from .config import Settings, load_settings
from .models import Category
from .renderers import render_tabs_page, render_ticker_page
from .service import HeadlineService
from .ui import SKELETON_ROWS, CategoryTabs, HeadlineTicker

logger = logging.getLogger(__name__)

EXTENSION_KEY = "news_headlines"
PAGE_WAIT_SECONDS = 15.0

headlines_bp = Blueprint("headlines", __name__)


def build_search_url(query: str, template: str) -> str:
    """Return the external search target for a headline message."""
    return template.format(query=quote_plus(query or ""))


class AppState:
    """Service plus UI state shared by the request handlers."""

    def __init__(
        self,
        service: HeadlineService,
        tabs: Optional[CategoryTabs] = None,
        ticker: Optional[HeadlineTicker] = None,
        ticker_category: Category = Category.LOCAL,
    ):
        self.service = service
        self.recent_searches: Deque[str] = deque(maxlen=50)
        self.tabs = tabs or CategoryTabs(service.load, on_select=self.submit_search)
        self.ticker_category = ticker_category
        self.ticker = ticker or HeadlineTicker(
            lambda: service.load(ticker_category), on_select=self.submit_search
        )
        self._tabs_started = False
        self._lock = threading.Lock()

    @property
    def settings(self) -> Settings:
        return self.service.settings

    def submit_search(self, query: str) -> None:
        logger.info("Search submitted: %s", query)
        self.recent_searches.append(query)

    def open_tab(self, category: Category) -> concurrent.futures.Future:
        """First visit loads the tab and pre-fetches priority tabs; later visits select."""
        with self._lock:
            if not self._tabs_started:
                self._tabs_started = True
                self.tabs.active = category
                return self.tabs.start()
        return self.tabs.select(category)

    def ensure_ticker(self) -> None:
        """Start polling; skip the immediate refresh if the list is already fresh."""
        self.ticker.start(immediate=self.ticker.last_refreshed is None)

    def reset_tabs(self) -> None:
        with self._lock:
            self.tabs.reset()
            self._tabs_started = False


def get_state() -> AppState:
    return current_app.extensions[EXTENSION_KEY]


def _category_arg() -> Category:
    value = request.args.get("category")
    try:
        return Category.parse(value)
    except ValueError:
        logger.warning("Unknown category %r; using %s", value, Category.LOCAL.value)
        return Category.LOCAL


@headlines_bp.route("/api/news-headlines", methods=["GET"])
def news_headlines():
    """Return cleaned (and optionally rewritten) headlines for a category."""
    category = _category_arg()
    payload, status = get_state().service.get_headlines(category)
    return jsonify(payload), status


@headlines_bp.route("/api/test/headlines", methods=["GET"])
def test_headlines():
    """Compare sample headlines with their rewrites."""
    payload, status = get_state().service.enhancement_report()
    return jsonify(payload), status


@headlines_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@headlines_bp.route("/", methods=["GET"])
def tabs_page():
    state = get_state()
    category = _category_arg()
    if request.args.get("refresh") == "1":
        state.reset_tabs()

    future = state.open_tab(category)
    try:
        future.result(timeout=PAGE_WAIT_SECONDS)
    except concurrent.futures.TimeoutError:
        logger.info("Rendering %s tab before its headlines arrived", category.value)
    except concurrent.futures.CancelledError:
        logger.debug("Fetch for %s was superseded", category.value)

    return render_tabs_page(state.tabs.view())


@headlines_bp.route("/headlines", methods=["GET"])
def ticker_page():
    state = get_state()
    state.ensure_ticker()
    return render_ticker_page(
        state.ticker.headlines,
        loading=state.ticker.loading,
        skeleton_rows=len(state.ticker.defaults) or SKELETON_ROWS,
        category=state.ticker_category,
    )


@headlines_bp.route("/search", methods=["GET"])
def search():
    """Search action triggered by clicking a headline."""
    state = get_state()
    query = (request.args.get("q") or "").strip()
    if not query:
        return jsonify({"error": "Missing 'q' parameter"}), 400
    state.submit_search(query)
    return redirect(build_search_url(query, state.settings.search_url_template))


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[HeadlineService] = None,
    state: Optional[AppState] = None,
) -> Flask:
    """Application factory."""
    if state is None:
        if service is None:
            service = HeadlineService(settings or load_settings())
        state = AppState(service)

    app = Flask(__name__)
    app.extensions[EXTENSION_KEY] = state
    app.register_blueprint(headlines_bp)
    logger.info(
        "Headline app ready (enhancement %s)",
        "enabled" if state.settings.enhancer.active else "disabled",
    )
    return app
