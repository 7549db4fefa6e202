"""HTTP client for a running headlines server."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import requests

from .models import Category, Headline

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000"


class ApiError(RuntimeError):
    """Raised when the headlines API answers with a non-success status."""

    def __init__(self, status_code: int, reason: str, body: str = ""):
        super().__init__(f"API error: {status_code} {reason}")
        self.status_code = status_code
        self.reason = reason
        self.body = body


class HeadlinesClient:
    """Thin wrapper over the aggregation and diagnostic endpoints."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: Optional[float] = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, params: Optional[dict] = None) -> requests.Response:
        response = requests.get(
            f"{self.base_url}{path}",
            params=params,
            headers={"Cache-Control": "no-store"},
            timeout=self.timeout,
        )
        if not response.ok:
            raise ApiError(response.status_code, response.reason or "", response.text)
        return response

    def fetch(self, category: Category) -> List[Headline]:
        """Return the headlines the server reports for ``category``."""
        data = self._get("/api/news-headlines", {"category": category.value}).json()
        headlines = [Headline.from_dict(item) for item in data.get("headlines") or []]
        logger.info("Received %d headlines from API for %s", len(headlines), category.value)
        return headlines

    def enhancement_report(self) -> Tuple[dict, int]:
        """Return the diagnostic payload and status, including error payloads."""
        response = requests.get(
            f"{self.base_url}/api/test/headlines", timeout=self.timeout
        )
        try:
            payload = response.json()
        except ValueError:
            raise ApiError(
                response.status_code, response.reason or "", response.text
            ) from None
        return payload, response.status_code
