"""
CSV table writer - One CSV file per target table, shared by all workers.

Rows are written with the table's column order and a header line. Booleans
become true/false and None becomes an empty unquoted field so COPY ... CSV
reads it back as NULL.
"""

import csv
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from loguru import logger

from services.ingestor.tables import TABLES, TableSpec


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class _TableFile:
    def __init__(self, spec: TableSpec, path: Path):
        self.spec = spec
        self.path = path
        self.lock = threading.Lock()
        self.rows = 0
        self._handle = open(path, "w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._handle)
        self._writer.writerow(spec.columns)

    def write(self, row: Mapping[str, Any]) -> None:
        values = [_cell(row.get(column)) for column in self.spec.columns]
        with self.lock:
            self._writer.writerow(values)
            self.rows += 1

    def close(self) -> None:
        with self.lock:
            if not self._handle.closed:
                self._handle.close()


class TableWriter:
    """
    Thread-safe CSV writer for all catalogue tables.

    Usage:
        with TableWriter(output_dir) as writer:
            writer.write("hotel_rates", row)
        counts = writer.counts()
    """

    def __init__(self, output_dir: Path, tables: Optional[Iterable[TableSpec]] = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._files: Dict[str, _TableFile] = {}
        for spec in tables if tables is not None else TABLES:
            self._files[spec.name] = _TableFile(spec, self.output_dir / f"{spec.name}.csv")
        logger.debug(f"Opened {len(self._files)} table files in {self.output_dir}")

    def __enter__(self) -> "TableWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def write(self, table: str, row: Mapping[str, Any]) -> None:
        handle = self._files.get(table)
        if handle is None:
            raise ValueError(f"Unknown table: '{table}'")
        handle.write(row)

    def write_many(self, table: str, rows: Iterable[Mapping[str, Any]]) -> int:
        written = 0
        for row in rows:
            self.write(table, row)
            written += 1
        return written

    def counts(self) -> Dict[str, int]:
        return {name: handle.rows for name, handle in self._files.items()}

    def paths(self) -> Dict[str, Path]:
        return {name: handle.path for name, handle in self._files.items()}

    def tables(self) -> List[str]:
        return list(self._files.keys())

    def close(self) -> None:
        for handle in self._files.values():
            handle.close()
