"""Feed fetching and headline normalisation."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

import feedparser
import requests
from bs4 import BeautifulSoup

from .config import USER_AGENT, Settings
from .models import Category, Headline

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10

# Applied in order; prefixes first, then source attributions.
_CLEANING_RULES = [
    re.compile(r"^Video:\s*", re.IGNORECASE),
    re.compile(r"^Watch:\s*", re.IGNORECASE),
    re.compile(r"^Audio:\s*", re.IGNORECASE),
    re.compile(r"^Podcast:\s*", re.IGNORECASE),
    re.compile(r"^Live:\s*", re.IGNORECASE),
    re.compile(r"\s+-\s+.*$"),
    re.compile(r"\s+\|.*$"),
]


class FeedFetchError(RuntimeError):
    """Raised when a category feed cannot be retrieved."""


def clean_title(title: Optional[str]) -> str:
    """Strip media prefixes and trailing source attributions from a title."""
    value = title or ""
    for rule in _CLEANING_RULES:
        value = rule.sub("", value)
    return value.strip()


def _strip_html(raw_value: str) -> str:
    if "<" not in raw_value:
        return raw_value
    return BeautifulSoup(raw_value, "html.parser").get_text(separator=" ", strip=True)


def fetch_headlines(
    category: Category, settings: Settings, limit: int = DEFAULT_LIMIT
) -> List[Headline]:
    """Fetch and clean the first ``limit`` headlines of a category feed."""
    feed = settings.feed_for(category)
    logger.info("Fetching %s headlines (%s)", category.value, feed.url)
    try:
        response = requests.get(
            feed.url,
            headers={"User-Agent": USER_AGENT},
            timeout=settings.feed_timeout,
        )
        response.raise_for_status()
        content = response.content
    except requests.RequestException as exc:
        logger.warning(
            "Failed to fetch feed for %s (%s): %s", category.value, feed.url, exc
        )
        raise FeedFetchError(
            f"Failed to fetch RSS for {category.value}: {exc}"
        ) from exc

    parsed = feedparser.parse(content)
    headlines: List[Headline] = []

    for entry in parsed.entries[:limit]:
        title = getattr(entry, "title", None)
        if not title:
            logger.debug("Skipping entry without title in feed '%s'", feed.url)
            continue

        heading = clean_title(_strip_html(title))
        headlines.append(
            Headline(
                heading=heading,
                message=heading,
                pub_date=getattr(entry, "published", None) or "",
                link=getattr(entry, "link", None) or "",
            )
        )

    logger.info(
        "Fetched %d headlines from Google News RSS for category %s",
        len(headlines),
        category.value,
    )
    return headlines
