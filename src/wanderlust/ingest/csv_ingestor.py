"""CSV reader turning raw trip tables into validated trip records."""

from __future__ import annotations

import io
import logging
import math
import warnings
from pathlib import Path
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from .domain_types import DatasetError, HOURS_PER_DAY, RawTripRecord
from .ingest_config import LOGICAL_COLUMNS, ColumnAliases

logger = logging.getLogger(__name__)


def resolve_columns(headers: Sequence[str], aliases: ColumnAliases) -> Dict[str, int]:
    """Map every logical column to the index of its first matching header.

    Raises
    ------
    DatasetError
        If any logical column matches none of its aliases. The message lists
        every unresolved column together with the names that were tried.
    """
    normalized = [_normalize_header(header) for header in headers]
    resolved: Dict[str, int] = {}
    missing: List[str] = []
    for column in LOGICAL_COLUMNS:
        candidates = aliases.aliases_for(column)
        index = next((normalized.index(name) for name in candidates if name in normalized), -1)
        if index < 0:
            missing.append(f"{column} (tried: {', '.join(candidates)})")
            continue
        resolved[column] = index
    if missing:
        raise DatasetError(
            "CSV schema mismatch: missing required column(s) " + "; ".join(missing)
        )
    return resolved


def _normalize_header(header: object) -> str:
    return str(header).strip().lstrip("\ufeff").strip()


class CsvIngestor:
    """Parses delimited OD tables into :class:`RawTripRecord` instances.

    Rows whose coordinates or quantity do not parse to finite numbers, whose
    quantity is not positive, or whose hour falls outside ``[0, 24)`` are
    skipped silently and only counted in :attr:`skipped_rows`.
    """

    def __init__(self, aliases: ColumnAliases | None = None, *, delimiter: str = ",") -> None:
        self.aliases = aliases or ColumnAliases()
        self.delimiter = delimiter
        self.total_rows = 0
        self.skipped_rows = 0

    # ------------------------------------------------------------------ reading
    def read(self, path: str | Path) -> List[RawTripRecord]:
        """Read and parse a CSV file; unreadable paths are fatal."""
        source = Path(path)
        try:
            text = source.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise DatasetError(f"Failed to read trip CSV at {source}: {exc}") from exc
        return self.parse_text(text)

    def parse_text(self, text: str) -> List[RawTripRecord]:
        lines = [line for line in text.splitlines() if line.strip()]
        if len(lines) < 2:
            raise DatasetError(
                "CSV input is empty: expected a header row and at least one data row."
            )
        # Fields past the header width are dropped and the row is kept.
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            frame = pd.read_csv(
                io.StringIO("\n".join(lines)),
                sep=self.delimiter,
                header=0,
                dtype=str,
                keep_default_na=False,
                index_col=False,
            )
        columns = resolve_columns(list(frame.columns), self.aliases)
        self.total_rows = len(lines) - 1
        records = self._records_from_frame(frame, columns)
        self.skipped_rows = self.total_rows - len(records)
        logger.info(
            "Parsed %d trip records from %d data rows (%d skipped).",
            len(records),
            self.total_rows,
            self.skipped_rows,
        )
        return records

    # ----------------------------------------------------------------- internal
    def _records_from_frame(self, frame: pd.DataFrame, columns: Dict[str, int]) -> List[RawTripRecord]:
        if frame.empty:
            return []
        numeric = pd.DataFrame(
            {
                column: pd.to_numeric(
                    frame.iloc[:, index].astype(str).str.strip(), errors="coerce"
                )
                for column, index in columns.items()
            }
        )
        values = numeric[list(LOGICAL_COLUMNS)].to_numpy(dtype=float)
        valid = np.isfinite(values).all(axis=1)
        valid &= numeric["quantity"].to_numpy(dtype=float) > 0.0
        hours = numeric["hour"].to_numpy(dtype=float)
        valid &= (hours >= 0.0) & (hours < HOURS_PER_DAY)

        records: List[RawTripRecord] = []
        for row in numeric[valid].itertuples(index=False):
            records.append(
                RawTripRecord(
                    origin_lon=float(row.origin_lon),
                    origin_lat=float(row.origin_lat),
                    destination_lon=float(row.destination_lon),
                    destination_lat=float(row.destination_lat),
                    quantity=float(row.quantity),
                    hour=int(math.floor(row.hour)),
                )
            )
        return records
