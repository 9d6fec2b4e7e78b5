"""Runtime configuration, loaded once and passed explicitly."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

VERSION = "0.1.0"

DEFAULT_OUTPUT_PATH = "/tmp/sponge_out.txt"


def _split_csv(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass
class SpongeConfig:
    """Settings for one report run."""

    output_path: str = DEFAULT_OUTPUT_PATH
    items_to_fetch: int = 10
    request_timeout: float = 10.0  # seconds, per request
    max_workers: Optional[int] = None  # None = one worker per item

    # Source credentials; empty disables the source
    reddit_username: str = ""
    reddit_subreddits: Tuple[str, ...] = field(default_factory=lambda: ("golang",))
    nyt_api_key: str = ""

    # Scheduled mode
    schedule_minutes: int = 60

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> "SpongeConfig":
        """Load and validate configuration from environment variables."""
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        workers = environ.get("SPONGE_MAX_WORKERS", "").strip()
        subreddits = _split_csv(environ.get("SPONGE_SUBREDDITS", ""))
        config = cls(
            output_path=environ.get("SPONGE_OUTPUT", "").strip() or DEFAULT_OUTPUT_PATH,
            items_to_fetch=int(environ.get("SPONGE_ITEMS", "10")),
            request_timeout=float(environ.get("SPONGE_REQUEST_TIMEOUT", "10")),
            max_workers=(int(workers) or None) if workers else None,
            reddit_username=environ.get("REDDIT_USERNAME", "").strip(),
            reddit_subreddits=subreddits or ("golang",),
            nyt_api_key=environ.get("NYT_API_KEY", "").strip(),
            schedule_minutes=int(environ.get("SPONGE_SCHEDULE_MINUTES", "60")),
        )
        config.validate()
        return config

    def validate(self) -> None:
        errors = []

        if not self.output_path:
            errors.append("SPONGE_OUTPUT must not be empty")

        if self.items_to_fetch < 1 or self.items_to_fetch > 500:
            errors.append("SPONGE_ITEMS should be between 1 and 500")

        if not math.isfinite(self.request_timeout) or self.request_timeout < 1 or self.request_timeout > 300:
            errors.append("SPONGE_REQUEST_TIMEOUT should be between 1 and 300 seconds")

        if self.max_workers is not None and self.max_workers < 1:
            errors.append("SPONGE_MAX_WORKERS should be 0 (unbounded) or a positive number")

        if self.schedule_minutes < 1:
            errors.append("SPONGE_SCHEDULE_MINUTES should be at least 1")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            raise ValueError(error_msg)
