"""Headline rewriting through the OpenAI chat completions API."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from bs4 import BeautifulSoup
from openai import OpenAI

from .cache import HeadlineCache, RewriteCache
from .config import EnhancerConfig
from .models import Headline

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a skilled news editor who rewrites headlines to be more engaging "
    "while preserving their exact meaning."
)

USER_PROMPT = """\
Rewrite the following news headlines to make them more engaging and interesting,
while preserving their exact meaning. Make them captivating but don't exaggerate or
add information that's not in the original. Keep them concise, factual and accurate.
Don't use clickbait techniques. Format the output as one headline per line.

Headlines:
{headlines}
"""

SAMPLE_HEADLINES = [
    "Study finds correlation between exercise and cognitive function",
    "Tech company announces new smartphone model",
    "Scientists discover new species in Amazon rainforest",
    "Global market shows signs of recovery after recession",
    "Local authorities implement new traffic regulations",
]

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")
_QUOTES = "\"'“”"


class EmptyResponseError(RuntimeError):
    """Raised when the model returns no usable text."""


def build_prompt(headings: Sequence[str]) -> str:
    """Return the user message asking for one rewrite per line."""
    return USER_PROMPT.format(headlines="\n".join(headings))


def clean_rewrite(line: str) -> str:
    """Normalise one line of model output into a bare headline."""
    text = BeautifulSoup(line, "html.parser").get_text() if "<" in line else line
    text = _LIST_MARKER.sub("", text.strip())
    text = text.strip()
    if len(text) >= 2 and text[0] in _QUOTES and text[-1] in _QUOTES:
        text = text[1:-1]
    return text.strip()


def split_rewrites(response_text: str) -> List[str]:
    """Split model output into non-blank lines."""
    return [line for line in response_text.strip().splitlines() if line.strip()]


class HeadlineEnhancer:
    """Rewrites headlines in fixed-size batches with per-item fallback."""

    def __init__(
        self,
        config: EnhancerConfig,
        cache: Optional[HeadlineCache] = None,
        client: Optional[OpenAI] = None,
    ):
        self._config = config
        self._cache = cache if cache is not None else RewriteCache()
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._config.active

    @property
    def cache(self) -> HeadlineCache:
        return self._cache

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self._config.api_key)
        return self._client

    def _request_rewrites(self, headings: Sequence[str]) -> List[str]:
        response = self._get_client().chat.completions.create(
            model=self._config.model,
            temperature=self._config.temperature,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(headings)},
            ],
        )
        try:
            response_text = response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as exc:
            raise EmptyResponseError(f"Unexpected completion payload: {exc}") from exc

        logger.debug("Rewrite response text: %s", response_text)
        if not response_text.strip():
            raise EmptyResponseError("No response text extracted from completion")
        return split_rewrites(response_text)

    def enhance(self, headlines: Sequence[Headline]) -> List[Headline]:
        """Return headlines with rewritten headings, preserving input order."""
        if not headlines:
            return []

        if not self.enabled:
            return list(headlines)

        results: List[Optional[Headline]] = [None] * len(headlines)
        pending: Dict[str, List[int]] = {}

        for index, headline in enumerate(headlines):
            try:
                cached = self._cache.get(headline.heading)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Failed to read cached rewrite for %.30s: %s", headline.heading, exc
                )
                cached = None
            if cached is not None:
                results[index] = headline.with_heading(cached)
                logger.debug("Using cached rewrite for: %.30s", headline.heading)
            else:
                pending.setdefault(headline.heading, []).append(index)

        if not pending:
            logger.info("All headlines found in cache, skipping API call")
            return [result for result in results if result is not None]

        headings = list(pending)
        batch_size = self._config.batch_size
        total_batches = (len(headings) + batch_size - 1) // batch_size

        for start in range(0, len(headings), batch_size):
            batch = headings[start : start + batch_size]
            logger.info(
                "Rewriting batch %d of %d (size: %d)",
                (start // batch_size) + 1,
                total_batches,
                len(batch),
            )
            try:
                rewrites = self._request_rewrites(batch)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Failed to rewrite batch starting at index %d: %s", start, exc
                )
                continue

            for position, original in enumerate(batch):
                if position >= len(rewrites):
                    break
                rewritten = clean_rewrite(rewrites[position])
                if not rewritten:
                    continue
                try:
                    self._cache.put(original, rewritten)
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "Failed to cache rewrite for %.30s: %s", original, exc
                    )
                for index in pending[original]:
                    results[index] = headlines[index].with_heading(rewritten)

        final = [
            result if result is not None else headlines[index]
            for index, result in enumerate(results)
        ]
        changed = sum(
            1
            for original, result in zip(headlines, final)
            if original.heading != result.heading
        )
        logger.info(
            "Rewrote %d/%d headlines with %s", changed, len(headlines), self._config.model
        )
        return final

    def compare_samples(self) -> List[Dict[str, str]]:
        """Rewrite the built-in sample headlines and pair them with the originals."""
        samples = [Headline(heading=text, message="") for text in SAMPLE_HEADLINES]
        enhanced = self.enhance(samples)
        return [
            {"original": original.heading, "enhanced": result.heading}
            for original, result in zip(samples, enhanced)
        ]
