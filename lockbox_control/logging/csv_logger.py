"""
Buffered CSV logging of lockbox control steps.

Rows are held in memory and written when the buffer fills or the flush
interval elapses, so logging stays out of the way of the control loop.
"""

from typing import Any, Dict, List, Optional, Sequence
from pathlib import Path
from collections import deque
import csv
import threading
import time

import numpy as np

STEP_COLUMNS = ['step', 'time', 'setpoint', 'measurement', 'error', 'output']


class CSVLogger:
    """
    CSV writer with a row buffer.

    Example:
        >>> with CSVLogger("lock.csv") as log:
        ...     log.log({"step": 0, "measurement": 0.1, "output": 0.02})
    """

    def __init__(
        self,
        file_path: str,
        columns: Optional[List[str]] = None,
        buffer_size: int = 100,
        flush_interval: float = 1.0,
        append: bool = False
    ):
        """
        Initialize CSV logger.

        Args:
            file_path: Path to CSV file (parent directories are created)
            columns: Column names (lockbox step columns if None)
            buffer_size: Rows buffered before a write
            flush_interval: Maximum seconds between writes
            append: Append to an existing file instead of truncating
        """
        columns = list(columns) if columns is not None else list(STEP_COLUMNS)
        if not columns:
            raise ValueError("columns cannot be empty")
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive")

        self._file_path = Path(file_path)
        self._columns = columns
        self._buffer_size = buffer_size
        self._flush_interval = flush_interval

        self._lock = threading.Lock()
        self._buffer: deque = deque()
        self._last_flush_time = time.monotonic()
        self._total_rows = 0

        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        existing = append and self._file_path.exists() and self._file_path.stat().st_size > 0
        self._file = open(self._file_path, 'a' if append else 'w', newline='', buffering=1)
        self._writer = csv.DictWriter(self._file, fieldnames=columns)
        if not existing:
            self._writer.writeheader()
        self._closed = False

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def columns(self) -> List[str]:
        return list(self._columns)

    @property
    def total_rows(self) -> int:
        """Rows accepted so far, written or buffered."""
        return self._total_rows

    @property
    def buffer_count(self) -> int:
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    def _row(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {col: data.get(col, '') for col in self._columns}

    def log(self, data: Dict[str, Any]) -> None:
        """
        Log one row; missing columns are written empty, unknown keys ignored.

        Raises:
            RuntimeError: If the logger is closed
        """
        self.log_batch([data])

    def log_batch(self, data_list: Sequence[Dict[str, Any]]) -> None:
        """Log several rows at once."""
        if self._closed:
            raise RuntimeError("Logger is closed")
        rows = [self._row(data) for data in data_list]

        with self._lock:
            self._buffer.extend(rows)
            self._total_rows += len(rows)
            due = (
                len(self._buffer) >= self._buffer_size or
                time.monotonic() - self._last_flush_time >= self._flush_interval
            )
        if due:
            self.flush()

    def flush(self) -> None:
        """Write buffered rows to disk. Rows are kept if the write fails."""
        with self._lock:
            if not self._buffer or self._closed:
                return
            rows = list(self._buffer)
            self._buffer.clear()
            self._last_flush_time = time.monotonic()

        try:
            self._writer.writerows(rows)
            self._file.flush()
        except OSError as e:
            with self._lock:
                self._buffer.extendleft(reversed(rows))
            raise RuntimeError(f"Failed to write to {self._file_path}: {e}") from e

    def close(self) -> None:
        """Flush remaining rows and close the file."""
        if self._closed:
            return
        self.flush()
        with self._lock:
            self._closed = True
            self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def load_log(file_path: str) -> Dict[str, np.ndarray]:
    """
    Read a CSV log back into column arrays.

    Empty or non-numeric cells become NaN.

    Args:
        file_path: Path to a file written by CSVLogger

    Returns:
        Dictionary mapping column name to float array
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {file_path}")

    columns: Dict[str, List[float]] = {}
    with open(path, 'r', newline='') as f:
        reader = csv.DictReader(f)
        for name in reader.fieldnames or []:
            columns[name] = []
        for row in reader:
            for key, value in row.items():
                try:
                    columns[key].append(float(value))
                except (ValueError, TypeError):
                    columns[key].append(np.nan)

    return {k: np.array(v) for k, v in columns.items()}
