"""Fan-out/fan-in fetch engine.

Every identifier becomes one fetch unit on a thread pool. Units publish
successful results to a single shared queue and always count down a latch
when they finish; a closer thread waits for the latch and then puts a
sentinel on the queue. The caller drains the queue until it sees the
sentinel, so it never returns while a fetch is still outstanding.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

from sponge.ingestion.fetcher import ItemFetcher
from sponge.ingestion.item_types import Identifier

logger = logging.getLogger(__name__)

ErrorHook = Callable[[Identifier, Exception], None]

_DONE = object()


class CountDownLatch:
    """Blocks waiters until `count_down` has been called `count` times."""

    def __init__(self, count: int):
        if count < 0:
            raise ValueError("count must be >= 0")
        self._count = count
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def count_down(self) -> None:
        with self._cond:
            if self._count == 0:
                return
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)


def _check_max_workers(max_workers: Optional[int]) -> None:
    if max_workers is not None and max_workers < 1:
        raise ValueError("max_workers must be >= 1 or None")


def iter_results(
    identifiers: Iterable[Identifier],
    fetcher: ItemFetcher,
    *,
    max_workers: Optional[int] = None,
    on_error: Optional[ErrorHook] = None,
) -> Iterator[Tuple[int, Any]]:
    """Yield `(input_position, result)` pairs in arrival order.

    `max_workers=None` runs one worker per identifier; an integer caps the
    number of fetches in flight.
    """
    ids = list(identifiers)
    _check_max_workers(max_workers)
    return _drain(ids, fetcher, max_workers, on_error)


def _drain(
    ids: List[Identifier],
    fetcher: ItemFetcher,
    max_workers: Optional[int],
    on_error: Optional[ErrorHook],
) -> Iterator[Tuple[int, Any]]:
    if not ids:
        return

    workers = len(ids) if max_workers is None else min(max_workers, len(ids))
    channel: "queue.Queue[Any]" = queue.Queue()
    latch = CountDownLatch(len(ids))

    def fetch_one(position: int, identifier: Identifier) -> None:
        try:
            result = fetcher.fetch(identifier)
        except Exception as e:
            logger.warning(f"Fetch failed for {identifier}: {e}")
            if on_error is not None:
                try:
                    on_error(identifier, e)
                except Exception:
                    logger.exception(f"Error hook failed for {identifier}")
        else:
            channel.put((position, result))
        finally:
            latch.count_down()

    def close_when_done() -> None:
        latch.wait()
        channel.put(_DONE)

    closer = threading.Thread(target=close_when_done, name="sponge-fanout-closer", daemon=True)
    closer.start()

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sponge-fetch") as executor:
        for position, identifier in enumerate(ids):
            executor.submit(fetch_one, position, identifier)
        while True:
            entry = channel.get()
            if entry is _DONE:
                break
            yield entry

    closer.join()


def collect(
    identifiers: Iterable[Identifier],
    fetcher: ItemFetcher,
    *,
    max_workers: Optional[int] = None,
    ordered: bool = False,
    on_error: Optional[ErrorHook] = None,
) -> List[Any]:
    """Fetch every identifier concurrently and return the successes.

    Failed fetches are logged and dropped. Results come back in arrival
    order unless `ordered` is set, in which case they follow input order.
    """
    ids = list(identifiers)
    _check_max_workers(max_workers)
    if not ids:
        return []

    arrivals = list(iter_results(ids, fetcher, max_workers=max_workers, on_error=on_error))
    if ordered:
        arrivals.sort(key=lambda pair: pair[0])

    logger.info(f"Collected {len(arrivals)}/{len(ids)} items")
    return [result for _, result in arrivals]
