"""Wide-column table store holding the movie data.

Rows are kept in byte order of their keys; each cell is addressed by
row, column family and qualifier and carries a millisecond timestamp.
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Optional, Union

from movierating.config import HBaseConfig

logger = logging.getLogger(__name__)

Families = Union[Mapping[str, Optional[Iterable[str]]], Iterable[str], str, None]


class StoreError(Exception):
    """Raised when a store operation is rejected."""


@dataclass(frozen=True)
class Cell:
    row: str
    family: str
    qualifier: str
    value: bytes
    timestamp: Optional[int] = None


@dataclass(frozen=True)
class Result:
    """The cells returned for a single row."""

    cells: tuple[Cell, ...] = ()

    def row_key(self) -> str:
        """Row key of the result, or an empty string if it holds no cells."""
        return self.cells[0].row if self.cells else ""

    def to_map(self) -> dict[str, dict[str, bytes]]:
        """Group cell values as ``{family: {qualifier: value}}``."""
        mapping: dict[str, dict[str, bytes]] = {}
        for cell in self.cells:
            mapping.setdefault(cell.family, {})[cell.qualifier] = cell.value
        return mapping


def _normalise_families(families: Families) -> Optional[dict[str, Optional[frozenset[str]]]]:
    if families is None:
        return None
    if isinstance(families, str):
        return {families: None}
    if isinstance(families, Mapping):
        return {
            family: frozenset(qualifiers) if qualifiers else None
            for family, qualifiers in families.items()
        }
    return {family: None for family in families}


def _select(
    columns: Mapping[tuple[str, str], Cell],
    wanted: Optional[dict[str, Optional[frozenset[str]]]],
) -> tuple[Cell, ...]:
    def keep(family: str, qualifier: str) -> bool:
        if wanted is None:
            return True
        if family not in wanted:
            return False
        qualifiers = wanted[family]
        return qualifiers is None or qualifier in qualifiers

    return tuple(cell for (family, qualifier), cell in sorted(columns.items()) if keep(family, qualifier))


def _row_order(row: str) -> bytes:
    return row.encode("utf-8")


class Table:
    """A single table of rows, safe to use from several threads."""

    def __init__(self, name: str = "moviedata"):
        self.name = name
        self.compression: Optional[str] = None
        self._rows: dict[str, dict[tuple[str, str], Cell]] = {}
        self._lock = threading.Lock()

    def put(
        self,
        row: str,
        family: str,
        qualifier: str,
        value: Union[bytes, str],
        timestamp: Optional[int] = None,
    ) -> Cell:
        """Write a cell; a write older than the stored cell is ignored."""
        if not row:
            raise StoreError("row key must not be empty")
        if not family:
            raise StoreError("column family must not be empty")
        data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        stamp = int(time.time() * 1000) if timestamp is None else int(timestamp)
        cell = Cell(row, family, qualifier, data, stamp)
        with self._lock:
            columns = self._rows.setdefault(row, {})
            current = columns.get((family, qualifier))
            if current is None or (current.timestamp or 0) <= stamp:
                columns[(family, qualifier)] = cell
                return cell
            return current

    def get(self, row: str, families: Families = None) -> Result:
        """Fetch one row, optionally restricted to some families or columns."""
        if not row:
            raise StoreError("row key must not be empty")
        wanted = _normalise_families(families)
        with self._lock:
            columns = dict(self._rows.get(row, {}))
        return Result(_select(columns, wanted))

    def scan(
        self,
        start_row: str = "",
        stop_row: str = "",
        families: Families = None,
    ) -> Iterator[Result]:
        """Yield rows in key order from ``start_row`` (inclusive) to ``stop_row`` (exclusive).

        Empty bounds are open. Rows with no matching cells are skipped.
        """
        wanted = _normalise_families(families)
        start = _row_order(start_row)
        stop = _row_order(stop_row) if stop_row else None
        with self._lock:
            snapshot = [
                (row, dict(columns))
                for row, columns in self._rows.items()
                if _row_order(row) >= start and (stop is None or _row_order(row) < stop)
            ]
        snapshot.sort(key=lambda entry: _row_order(entry[0]))
        for _row, columns in snapshot:
            cells = _select(columns, wanted)
            if cells:
                yield Result(cells)


_table: Optional[Table] = None


def init_store(conf: HBaseConfig, table: Optional[Table] = None) -> Table:
    """Install ``table`` (or a new empty one) as the shared store and probe it."""
    global _table
    quorum = f"{conf.zk_quorum}:{conf.zk_port}"
    _table = table if table is not None else Table()
    try:
        _table.get("1")
    except StoreError:
        logger.error("store connection to %s failed", quorum)
        raise
    logger.info("store connected (%s, table %s)", quorum, _table.name)
    return _table


def get_table() -> Table:
    """Return the shared table installed by :func:`init_store`."""
    if _table is None:
        raise StoreError("store has not been initialised")
    return _table


def enable_compression(compression: str) -> None:
    """Record the compression setting on the shared table."""
    get_table().compression = compression