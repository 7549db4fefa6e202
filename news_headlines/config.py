"""Configuration loading for feeds, headline rewriting and the web UI."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional
from xml.etree import ElementTree as ET

from .models import Category, FeedConfig

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; NewsHeadlinesBot/1.0)"

DEFAULT_SEARCH_URL_TEMPLATE = "https://www.google.com/search?q={query}"

DEFAULT_RSS_URLS: Dict[Category, str] = {
    Category.LOCAL: "https://news.google.com/rss/topics/CAAqJggKIiBDQkFTRWdvSUwyMHZNRGx1YlY4U0FtVnVHZ0pWVXlnQVAB?hl=en-US&gl=US&ceid=US:en",
    Category.WORLD: "https://news.google.com/rss/topics/CAAqKggKIiRDQkFTRlFvSUwyMHZNRGx6TVdZU0JXVnVMVWRDR2dKSlRpZ0FQAQ?hl=en-US&gl=US&ceid=US:en",
    Category.BUSINESS: "https://news.google.com/rss/topics/CAAqKggKIiRDQkFTRlFvSUwyMHZNRGx6TVdZU0JXVnVMVWRDR2dKSlRpZ0FQAQ?hl=en-US&gl=US&ceid=US:en",
    Category.TECHNOLOGY: "https://news.google.com/rss/topics/CAAqKggKIiRDQkFTRlFvSUwyMHZNRGRqTVhZU0JXVnVMVWRDR2dKSlRpZ0FQAQ?hl=en-US&gl=US&ceid=US:en",
    Category.ENTERTAINMENT: "https://news.google.com/rss/topics/CAAqKggKIiRDQkFTRlFvSUwyMHZNREpxYW5RU0JXVnVMVWRDR2dKSlRpZ0FQAQ?hl=en-US&gl=US&ceid=US:en",
    Category.SCIENCE: "https://news.google.com/rss/topics/CAAqKggKIiRDQkFTRlFvSUwyMHZNRFp0Y1RjU0JXVnVMVWRDR2dKSlRpZ0FQAQ?hl=en-US&gl=US&ceid=US:en",
    Category.SPORTS: "https://news.google.com/rss/topics/CAAqKggKIiRDQkFTRlFvSUwyMHZNRFp1ZEdvU0JXVnVMVWRDR2dKSlRpZ0FQAQ?hl=en-US&gl=US&ceid=US:en",
    Category.HEALTH: "https://news.google.com/rss/topics/CAAqIQgKIhtDQkFTRGdvSUwyMHZNR3QwTlRFU0FtVnVLQUFQAQ?hl=en-US&gl=US&ceid=US:en",
}


@dataclass
class EnhancerConfig:
    enabled: bool = False
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    batch_size: int = 5

    @property
    def active(self) -> bool:
        """Rewriting only happens with the flag on and a credential present."""
        return self.enabled and bool(self.api_key)


@dataclass
class CacheConfig:
    ttl_seconds: float = 60 * 60
    capacity: int = 1024
    database_url: Optional[str] = None


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class Settings:
    """Runtime settings resolved from the environment."""

    feed_overrides: Dict[Category, str] = field(default_factory=dict)
    feed_timeout: float = 10.0
    feed_limit: int = 10
    enhancer: EnhancerConfig = field(default_factory=EnhancerConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    search_url_template: str = DEFAULT_SEARCH_URL_TEMPLATE

    def feed_for(self, category: Category) -> FeedConfig:
        """Return the feed for a category, preferring the configured override."""
        url = self.feed_overrides.get(category) or DEFAULT_RSS_URLS[category]
        return FeedConfig(category=category, url=url)


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build ``Settings`` from environment variables."""
    env = os.environ if environ is None else environ

    overrides: Dict[Category, str] = {}
    for category in Category:
        url = (env.get(f"RSS_URL_{category.value}") or "").strip()
        if url:
            overrides[category] = url
            logger.debug("Using feed override for %s: %s", category.value, url)

    enhancer = EnhancerConfig(
        enabled=_flag(env.get("ENHANCE_HEADLINES")),
        api_key=(env.get("OPENAI_API_KEY") or "").strip() or None,
        model=(env.get("ENHANCE_MODEL") or "").strip() or EnhancerConfig.model,
        temperature=_number(
            env, "ENHANCE_TEMPERATURE", EnhancerConfig.temperature, float
        ),
        batch_size=_number(env, "ENHANCE_BATCH_SIZE", EnhancerConfig.batch_size, int),
    )
    if enhancer.batch_size <= 0:
        raise ValueError("ENHANCE_BATCH_SIZE must be positive.")

    cache = CacheConfig(
        ttl_seconds=_number(env, "HEADLINE_CACHE_TTL", CacheConfig.ttl_seconds, float),
        capacity=_number(env, "HEADLINE_CACHE_CAPACITY", CacheConfig.capacity, int),
        database_url=(env.get("DATABASE_URL") or "").strip() or None,
    )

    logging_config = LoggingConfig(
        level=(env.get("LOG_LEVEL") or "").strip() or LoggingConfig.level,
        file=(env.get("LOG_FILE") or "").strip() or None,
    )

    return Settings(
        feed_overrides=overrides,
        feed_timeout=_number(env, "FEED_TIMEOUT", 10.0, float),
        enhancer=enhancer,
        cache=cache,
        logging=logging_config,
        search_url_template=(env.get("SEARCH_URL_TEMPLATE") or "").strip()
        or DEFAULT_SEARCH_URL_TEMPLATE,
    )


def parse_env_config(path: Optional[str]) -> Dict[str, str]:
    """Parse environment variables from XML."""
    env_vars: Dict[str, str] = {}
    if not path:
        return env_vars

    logger.info("Loading environment configuration from %s", path)
    try:
        tree = ET.parse(path)
        root = tree.getroot()
        for var in root.findall("variable"):
            name = var.attrib.get("name")
            value = var.text
            if name and value:
                env_vars[name] = value.strip()
    except Exception as exc:
        logger.warning("Failed to load environment config: %s", exc)
        raise

    return env_vars
