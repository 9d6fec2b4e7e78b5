"""Ingestors for the report's news sources.

- Hacker News: ranked identifier list, details fanned out per item
- Reddit: one ready-made top-of-day list per subreddit
- New York Times: ready-made top stories list

Each ingestor is also the formatter for its own items, so everything
downstream only sees RenderableItem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests

from sponge.config import VERSION
from sponge.fanout.collector import collect
from sponge.ingestion.fetcher import DEFAULT_TIMEOUT, JSONItemFetcher
from sponge.ingestion.item_types import RenderableItem

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


class IngestError(Exception):
    """The source's list endpoint could not be read."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


def _get_json(
    session: requests.Session,
    url: str,
    *,
    source: str,
    timeout: float,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    try:
        resp = session.get(url, params=params, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise IngestError(source, str(e)) from e
    if resp.status_code != 200:
        raise IngestError(source, f"non 200 response: {resp.status_code}")
    try:
        return resp.json()
    except ValueError as e:
        raise IngestError(source, f"invalid_json: {e}") from e


def _take_top(entries: Sequence[Any], limit: int, *, source: str) -> List[Any]:
    """First `limit` entries; shorter lists are used as-is."""
    if len(entries) < limit:
        logger.warning(f"{source} returned {len(entries)} entries, fewer than the {limit} requested")
    return list(entries[: max(0, limit)])


class BaseIngestor:
    name: str = "base"
    label: str = "Base"

    def is_configured(self) -> bool:
        return True

    def produce(self, title: str, url: str) -> RenderableItem:
        return RenderableItem(title=title, url=url, source=self.label)

    def project(self, entries: Sequence[Any]) -> List[RenderableItem]:
        out: List[RenderableItem] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            title = entry.get("title") or ""
            url = entry.get("url") or ""
            if not title or not url:
                continue
            out.append(self.produce(str(title).strip(), str(url).strip()))
        return out

    def fetch(self, *, limit: int = DEFAULT_LIMIT) -> List[RenderableItem]:
        raise NotImplementedError


@dataclass(frozen=True)
class HackerNewsIngestor(BaseIngestor):
    session: requests.Session
    timeout: float = DEFAULT_TIMEOUT
    max_workers: Optional[int] = None
    list_endpoint: str = "https://hacker-news.firebaseio.com/v0/topstories.json"
    item_endpoint: str = "https://hacker-news.firebaseio.com/v0/item/{}.json"

    name: str = "hackernews"
    label: str = "Hacker News"

    def fetch(self, *, limit: int = DEFAULT_LIMIT) -> List[RenderableItem]:
        ids = _get_json(self.session, self.list_endpoint, source=self.label, timeout=self.timeout)
        if not isinstance(ids, list):
            raise IngestError(self.label, f"unexpected list payload: {type(ids).__name__}")
        top = _take_top(ids, limit, source=self.label)
        fetcher = JSONItemFetcher(
            session=self.session,
            url_template=self.item_endpoint,
            formatter=self,
            timeout=self.timeout,
        )
        return collect(top, fetcher, max_workers=self.max_workers)


@dataclass(frozen=True)
class RedditIngestor(BaseIngestor):
    """Top posts of the day for one subreddit.

    Reddit answers 429 without a descriptive User-Agent, so the ingestor is
    disabled unless a username is configured.
    """

    session: requests.Session
    username: str
    subreddit: str = "golang"
    timeout: float = DEFAULT_TIMEOUT
    endpoint: str = "https://www.reddit.com/r/{}/top.json"

    name: str = "reddit"

    @property
    def label(self) -> str:
        return f"Reddit {self.subreddit[:1].upper()}{self.subreddit[1:]}"

    @property
    def user_agent(self) -> str:
        return f"python Sponge:{VERSION} (by /u/{self.username})"

    def is_configured(self) -> bool:
        return bool(self.username)

    def fetch(self, *, limit: int = DEFAULT_LIMIT) -> List[RenderableItem]:
        data = _get_json(
            self.session,
            self.endpoint.format(self.subreddit),
            source=self.label,
            timeout=self.timeout,
            params={"raw_json": 1, "t": "day", "limit": limit},
            headers={"User-Agent": self.user_agent},
        )
        listing = data.get("data") if isinstance(data, dict) else None
        children = listing.get("children") if isinstance(listing, dict) else None
        if not isinstance(children, list):
            raise IngestError(self.label, "listing without data.children")
        posts = [c.get("data") for c in children if isinstance(c, dict)]
        return self.project(_take_top(posts, limit, source=self.label))


@dataclass(frozen=True)
class NYTimesIngestor(BaseIngestor):
    session: requests.Session
    api_key: str
    timeout: float = DEFAULT_TIMEOUT
    endpoint: str = "https://api.nytimes.com/svc/topstories/v2/home.json"

    name: str = "nyt"
    label: str = "New York Times"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def fetch(self, *, limit: int = DEFAULT_LIMIT) -> List[RenderableItem]:
        data = _get_json(
            self.session,
            self.endpoint,
            source=self.label,
            timeout=self.timeout,
            params={"api-key": self.api_key},
        )
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise IngestError(self.label, "payload without results")
        return self.project(_take_top(results, limit, source=self.label))
