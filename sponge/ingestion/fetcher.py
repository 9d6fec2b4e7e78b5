"""Single-item detail fetch.

One call = one HTTP round trip with a fixed timeout, decoded into a
RenderableItem through the source's formatter. Failures are raised as
FetchError subclasses so the fan-out engine can drop the identifier and
keep going.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import requests

from sponge.ingestion.item_types import DetailRecord, Identifier, ItemFormatter, RenderableItem

DEFAULT_TIMEOUT = 10
USER_AGENT = "Sponge/0.1"


class FetchError(Exception):
    """Base class for per-item fetch failures."""

    def __init__(self, identifier: Identifier, message: str):
        super().__init__(f"item {identifier}: {message}")
        self.identifier = identifier


class FetchNetworkError(FetchError):
    pass


class FetchStatusError(FetchError):
    def __init__(self, identifier: Identifier, status_code: int):
        super().__init__(identifier, f"http_{status_code}")
        self.status_code = status_code


class FetchDecodeError(FetchError):
    pass


class ItemFetcher:
    """Capability handed to the engine: identifier in, item out (or raise)."""

    def fetch(self, identifier: Identifier) -> RenderableItem:
        raise NotImplementedError


@dataclass(frozen=True)
class JSONItemFetcher(ItemFetcher):
    """Fetch `url_template.format(identifier)` and project title/link fields.

    The session is shared between concurrent calls and only read from;
    everything else lives on the call stack.
    """

    session: requests.Session
    url_template: str
    formatter: ItemFormatter
    timeout: float = DEFAULT_TIMEOUT
    title_field: str = "title"
    url_field: str = "url"
    headers: Optional[Dict[str, str]] = None

    def fetch(self, identifier: Identifier) -> RenderableItem:
        record = self.fetch_record(identifier)
        title = record.get(self.title_field)
        url = record.get(self.url_field)
        if not title or not url:
            missing = self.title_field if not title else self.url_field
            raise FetchDecodeError(identifier, f"missing_{missing}")
        return self.formatter.produce(str(title).strip(), str(url).strip())

    def fetch_record(self, identifier: Identifier) -> DetailRecord:
        url = self.url_template.format(identifier)
        try:
            resp = self.session.get(url, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchNetworkError(identifier, str(e)) from e
        if not 200 <= resp.status_code < 300:
            raise FetchStatusError(identifier, resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise FetchDecodeError(identifier, f"invalid_json: {e}") from e
        if not isinstance(data, dict):
            raise FetchDecodeError(identifier, f"unexpected_payload: {type(data).__name__}")
        return data


def build_session(user_agent: Optional[str] = None) -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = user_agent or USER_AGENT
    return session
