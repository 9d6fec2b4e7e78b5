#!/usr/bin/env python3
"""Report worker.

Runs one collection cycle (or scheduled) over:
- New York Times top stories
- Hacker News top stories (details fetched concurrently)
- Reddit top-of-day posts for each configured subreddit

and writes one section per source into a plain-text report.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from typing import Dict, List, Optional, Sequence

import requests
import schedule

from sponge.config import VERSION, SpongeConfig
from sponge.ingestion.fetcher import build_session
from sponge.ingestion.ingestors import (
    BaseIngestor,
    HackerNewsIngestor,
    IngestError,
    NYTimesIngestor,
    RedditIngestor,
)
from sponge.ingestion.item_types import RenderableItem
from sponge.report.writer import ReportSinkError, ReportWriter

logger = logging.getLogger("sponge")


def build_ingestors(config: SpongeConfig, session: requests.Session) -> List[BaseIngestor]:
    """Sources in report order."""
    ingestors: List[BaseIngestor] = [
        NYTimesIngestor(session=session, api_key=config.nyt_api_key, timeout=config.request_timeout),
        HackerNewsIngestor(session=session, timeout=config.request_timeout, max_workers=config.max_workers),
    ]
    for subreddit in config.reddit_subreddits:
        ingestors.append(
            RedditIngestor(
                session=session,
                username=config.reddit_username,
                subreddit=subreddit,
                timeout=config.request_timeout,
            )
        )
    return ingestors


def gather_section(ingestor: BaseIngestor, limit: int) -> List[RenderableItem]:
    """Fetch one source; any source-level failure yields an empty section."""
    if not ingestor.is_configured():
        logger.warning(f"{ingestor.label} disabled: required credential not set")
        return []
    try:
        return ingestor.fetch(limit=limit)
    except IngestError as e:
        logger.warning(f"[ingest] {e}")
        return []


def run_once(config: SpongeConfig, ingestors: Optional[Sequence[BaseIngestor]] = None) -> Dict[str, int]:
    """Collect every source, then write the report. Returns items written per section."""
    session = None
    if ingestors is None:
        session = build_session(f"python Sponge:{VERSION}")
        ingestors = build_ingestors(config, session)

    try:
        sections = [(ing.label, gather_section(ing, config.items_to_fetch)) for ing in ingestors]
    finally:
        if session is not None:
            session.close()

    counts: Dict[str, int] = {}
    with ReportWriter(config.output_path) as report:
        for label, items in sections:
            counts[label] = report.write_section(label, items)

    logger.info(f"Done writing output to {config.output_path}")
    return counts


def run_scheduled(config: SpongeConfig) -> None:
    run_once(config)
    schedule.every(config.schedule_minutes).minutes.do(run_once, config)
    while True:
        schedule.run_pending()
        time.sleep(5)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Collect top stories from several sources into one text report")
    parser.add_argument("--out", default=None, help="Output file (default: $SPONGE_OUTPUT or /tmp/sponge_out.txt)")
    parser.add_argument("--items", type=int, default=None, help="Items to fetch per source")
    parser.add_argument("--max-workers", type=int, default=None, help="Cap concurrent item fetches (0 = one per item)")
    parser.add_argument("--scheduled", action="store_true", help="Keep running and rebuild the report periodically")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        config = SpongeConfig.from_env()
        if args.out:
            config.output_path = args.out
        if args.items is not None:
            config.items_to_fetch = args.items
        if args.max_workers is not None:
            config.max_workers = args.max_workers or None
        config.validate()
    except ValueError as e:
        logger.error(f"Configuration error:\n{e}")
        return 1

    mode = (os.environ.get("SPONGE_MODE") or "once").lower().strip()
    try:
        if args.scheduled or mode in ("scheduled", "daemon"):
            run_scheduled(config)
        else:
            run_once(config)
    except ReportSinkError as e:
        logger.error(f"Report not written: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
