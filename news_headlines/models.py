"""Shared data models for news_headlines."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class Category(str, Enum):
    """Fixed set of news categories offered by the feed provider."""

    LOCAL = "LOCAL"
    WORLD = "WORLD"
    BUSINESS = "BUSINESS"
    TECHNOLOGY = "TECHNOLOGY"
    ENTERTAINMENT = "ENTERTAINMENT"
    SCIENCE = "SCIENCE"
    SPORTS = "SPORTS"
    HEALTH = "HEALTH"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(
        cls, value: Optional[str], default: Optional["Category"] = None
    ) -> "Category":
        """Return the category named by ``value`` (case-insensitive).

        Empty values resolve to ``default`` (LOCAL when not given). Unknown
        names raise ``ValueError``.
        """
        if not value or not value.strip():
            return default or cls.LOCAL
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown news category: {value}") from None


@dataclass(frozen=True)
class FeedConfig:
    """Resolved feed endpoint for a single category."""

    category: Category
    url: str


@dataclass(frozen=True)
class Headline:
    """A cleaned headline as served to the UI."""

    heading: str
    message: str
    pub_date: str = ""
    link: str = ""

    def with_heading(self, heading: str) -> "Headline":
        return replace(self, heading=heading)

    def to_dict(self) -> dict:
        return {
            "heading": self.heading,
            "message": self.message,
            "pubDate": self.pub_date,
            "link": self.link,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Headline":
        heading = data.get("heading") or ""
        return cls(
            heading=heading,
            message=data.get("message") or heading,
            pub_date=data.get("pubDate") or "",
            link=data.get("link") or "",
        )
