"""
Prompt catalog backed by the public spreadsheet's CSV export.

Columns: id (publish date YYYY-MM-DD), prompt, description, category, tags.
The parsed list is cached per canonical day with a short TTL, so the day's
prompt flips at Eastern midnight even if the TTL has not expired.
"""
from __future__ import annotations

import csv
import io
import logging
import threading
import time
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple

import httpx

from dailydoodle.core.config import settings
from dailydoodle.core.eastern_time import date_cache_key, today_est
from dailydoodle.core.errors import UpstreamError
from dailydoodle.models.prompt import Prompt

logger = logging.getLogger("dailydoodle")

FETCH_TIMEOUT_SECONDS = 10.0
UNTITLED = "Untitled Prompt"


def csv_export_url(now: Optional[datetime] = None) -> str:
    base = (
        f"https://docs.google.com/spreadsheets/d/{settings.PROMPT_SHEET_ID}"
        f"/export?format=csv&gid={settings.PROMPT_SHEET_GID}"
    )
    return f"{base}&_cb={date_cache_key(now)}"


def parse_prompts_csv(text: str) -> List[Prompt]:
    """Parse the CSV export, skipping the header and malformed rows."""
    rows = list(csv.reader(io.StringIO(text.strip())))
    prompts: List[Prompt] = []
    for row in rows[1:]:
        if len(row) < 5 or not row[0] or not row[1]:
            continue
        raw_id, raw_title, description, category, tags = row[:5]
        prompts.append(
            Prompt(
                id=raw_id.strip(),
                title=raw_title.strip() or UNTITLED,
                description=(description or "").strip(),
                category=(category or "").strip(),
                tags=[t.strip() for t in (tags or "").split(",") if t.strip()],
            )
        )
    return prompts


def _http_fetch(url: str) -> str:
    with httpx.Client(timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True) as client:
        try:
            response = client.get(url)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Failed to fetch prompts: {exc}") from exc
    if response.status_code >= 300:
        raise UpstreamError(f"Failed to fetch prompts: {response.status_code} {response.reason_phrase}")
    return response.text


class PromptSource:
    def __init__(
        self,
        fetcher: Callable[[str], str] = _http_fetch,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher
        self._ttl = settings.PROMPT_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # (canonical day, fetched at, prompts)
        self._cache: Optional[Tuple[date, float, List[Prompt]]] = None

    def list_prompts(self, now: Optional[datetime] = None) -> List[Prompt]:
        day = today_est(now)
        with self._lock:
            if self._cache is not None:
                cached_day, fetched_at, prompts = self._cache
                if cached_day == day and self._clock() - fetched_at < self._ttl:
                    return prompts

        text = self._fetcher(csv_export_url(now))
        if not text or not text.strip():
            raise UpstreamError("Empty response from prompt spreadsheet")
        prompts = parse_prompts_csv(text)
        if not prompts:
            raise UpstreamError("No valid prompts found in spreadsheet")

        with self._lock:
            self._cache = (day, self._clock(), prompts)
        logger.info("prompts.fetched", extra={"count": len(prompts), "day": day.isoformat()})
        return prompts

    def get_prompt_for_date(self, day: str, now: Optional[datetime] = None) -> Optional[Prompt]:
        for prompt in self.list_prompts(now):
            if prompt.publish_date == day:
                return prompt
        return None

    def get_today_prompt(self, now: Optional[datetime] = None) -> Optional[Prompt]:
        return self.get_prompt_for_date(today_est(now).isoformat(), now)

    def invalidate(self) -> None:
        with self._lock:
            self._cache = None


prompt_source = PromptSource()
