"""
JSONL file writer with daily rotation.

Keeps a local copy of every captured record next to (or instead of) the
backend delivery.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any
from typing import IO

logger = logging.getLogger(__name__)


class RecordWriter:
    """
    Appends records to daily JSONL files named records_YYYY-MM-DD.jsonl.
    """

    def __init__(
        self,
        output_dir: Path | str,
        filename_pattern: str = "records_{date}.jsonl",
    ):
        """
        Args:
            output_dir: Directory for output files
            filename_pattern: Filename pattern with {date} placeholder
        """
        self.output_dir = Path(output_dir).expanduser()
        self.filename_pattern = filename_pattern
        self._current_file: Path | None = None
        self._fo: IO[bytes] | None = None
        self._record_count: int = 0

    def write(self, record: dict[str, Any]) -> None:
        self._maybe_rotate()

        if self._fo is None:
            logger.error("No file handle available for writing")
            return

        try:
            line = json.dumps(record, separators=(",", ":"), ensure_ascii=False)
            self._fo.write((line + "\n").encode("utf-8"))
            self._fo.flush()
            self._record_count += 1
        except (TypeError, ValueError) as e:
            logger.error(f"Record is not serializable: {e}")
        except OSError as e:
            logger.error(f"Failed to write record: {e}")

    def _maybe_rotate(self) -> None:
        expected_file = self._get_current_filepath()
        if self._current_file == expected_file:
            return

        self._close_handle()

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self._fo = open(expected_file, "ab")
            self._current_file = expected_file
            logger.info(f"Opened record file: {expected_file}")
        except OSError as e:
            logger.error(f"Failed to open record file: {e}")

    def _get_current_filepath(self) -> Path:
        filename = self.filename_pattern.format(date=date.today().isoformat())
        return self.output_dir / filename

    def _close_handle(self) -> None:
        if self._fo is not None:
            try:
                self._fo.close()
            except OSError as e:
                logger.error(f"Failed to close record file: {e}")
            self._fo = None
            self._current_file = None

    def close(self) -> None:
        if self._fo is not None:
            logger.info(f"Closing record file (wrote {self._record_count} records)")
        self._close_handle()

    @property
    def current_file(self) -> Path | None:
        return self._current_file

    @property
    def record_count(self) -> int:
        return self._record_count
