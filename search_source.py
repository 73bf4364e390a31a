from dataclasses import dataclass, field
from datetime import date, datetime

import pandas as pd

from file_type_handler import FileTypeHandler
from logging_setup import get_logger

logger = get_logger(__name__)

EXCEL_EPOCH = pd.Timestamp("1899-12-30")


@dataclass
class SearchResult:
    rows: list[list] = field(default_factory=list)
    headers: list = field(default_factory=list)
    error: str | None = None
    not_found: bool = False
    unknown_column: bool = False


def _text(value) -> str:
    if value is None:
        return ""
    return str(value)


def _iso_date(value):
    """Normalize a date cell to YYYY-MM-DD; other values pass through."""
    if isinstance(value, (datetime, date, pd.Timestamp)):
        return pd.Timestamp(value).strftime("%Y-%m-%d")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return (EXCEL_EPOCH + pd.to_timedelta(float(value), unit="D")).strftime("%Y-%m-%d")
        except (ValueError, OverflowError):
            return value
    return value


class SearchSource:
    """Runs search queries over the most recently ingested file."""

    def __init__(self, grid, file_name: str = ""):
        self.grid = [list(row) for row in (grid or [])]
        self.file_name = file_name

    @classmethod
    def from_file(cls, path: str) -> "SearchSource":
        handler = FileTypeHandler(path)
        return cls(handler.read_grid(), handler.file_name)

    def _split_header(self):
        for idx, row in enumerate(self.grid):
            if row and _text(row[0]).strip().lower() == "date":
                return idx
        return None

    def search(self, query: str, column: str = "All") -> SearchResult:
        if not query or not query.strip():
            return SearchResult()

        header_idx = self._split_header()
        if header_idx is None:
            return SearchResult()

        headers = ["" if h is None else h for h in self.grid[header_idx]]
        body = self.grid[header_idx + 1 :]
        if not body:
            return SearchResult(headers=headers)

        width = max(len(headers), max(len(row) for row in body))
        frame = pd.DataFrame(
            [row + [""] * (width - len(row)) for row in body],
            columns=range(width),
            dtype=object,
        ).fillna("")

        lowered = [_text(h).strip().lower() for h in headers]
        date_col = lowered.index("date")
        frame[date_col] = frame[date_col].map(_iso_date)

        needle = query.strip().lower()
        text = frame.apply(lambda col: col.map(_text).str.lower())

        column = column or "All"
        if column.lower() != "all":
            target = column.strip().lower()
            if target not in lowered:
                logger.info("search column %r not in source", column)
                return SearchResult(headers=headers, unknown_column=True)
            col_idx = lowered.index(target)
            mask = text[col_idx].str.strip() == needle
            if not mask.any():
                return SearchResult(
                    headers=headers,
                    error=f"No exact match for '{query.strip()}' in column '{column}'",
                    not_found=True,
                )
        else:
            mask = text.apply(lambda col: col.str.contains(needle, regex=False)).any(axis=1)

        matched = frame[mask].values.tolist()
        logger.info("search %r in %s: %d rows", query, column, len(matched))
        return SearchResult(rows=[row[: len(headers)] for row in matched], headers=headers)
