"""Rendering helpers for the headline pages."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .models import Category, Headline
from .templating import get_environment
from .ui import SKELETON_ROWS, TabView


def render_tabs_page(
    tabs: Sequence[TabView], search_path: str = "/search", title: str = "News Headlines"
) -> str:
    """Render the category tabs page."""
    env = get_environment()
    template = env.get_template("tabs.html.j2")
    return template.render(
        tabs=tabs,
        search_path=search_path,
        title=title,
        skeleton_rows=SKELETON_ROWS,
    )


def render_ticker_page(
    headlines: List[Headline],
    loading: bool,
    skeleton_rows: int,
    search_path: str = "/search",
    category: Optional[Category] = None,
) -> str:
    """Render the single headline list with skeleton rows while loading."""
    env = get_environment()
    template = env.get_template("ticker.html.j2")
    return template.render(
        headlines=headlines,
        loading=loading,
        skeleton_rows=skeleton_rows,
        search_path=search_path,
        category=category,
    )
