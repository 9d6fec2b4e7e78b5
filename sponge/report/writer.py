"""Plain-text report sink: one heading-delimited section per source."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Optional, Sequence, Union

from sponge.ingestion.item_types import RenderableItem

logger = logging.getLogger(__name__)

RULE = "=" * 37


class ReportSinkError(Exception):
    """The report file could not be created or written."""


def format_heading(label: str) -> str:
    return f"\n\n{RULE}\n{label}\n{RULE}\n\n"


class ReportWriter:
    """Writes sections to `path`; use as a context manager.

    Opening truncates any previous report at the same path.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fh: Optional[IO[str]] = None

    def __enter__(self) -> "ReportWriter":
        try:
            self._fh = open(self.path, "w", encoding="utf-8")
        except OSError as e:
            raise ReportSinkError(f"cannot create {self.path}: {e}") from e
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._fh is None:
            return
        # Buffered writes surface I/O errors (e.g. a full disk) here.
        try:
            self._fh.close()
        except OSError as e:
            raise ReportSinkError(f"cannot write {self.path}: {e}") from e
        finally:
            self._fh = None

    def write_section(self, label: str, items: Sequence[RenderableItem]) -> int:
        if self._fh is None:
            raise ReportSinkError("report is not open")
        try:
            self._fh.write(format_heading(label))
            for item in items:
                self._fh.write(item.formatted())
                self._fh.write("\n\n")
        except OSError as e:
            raise ReportSinkError(f"cannot write {self.path}: {e}") from e

        logger.info(f"wrote {len(items)} {label} items")
        return len(items)
