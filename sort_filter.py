from datetime import date, datetime, timedelta

import pandas as pd

from errors import ValidationError
from logging_setup import get_logger

logger = get_logger(__name__)

FILTER_STATES = ("none", "today", "tomorrow", "yesterday", "this-week", "prev-week")
SORT_MODES = ("date-asc", "date-desc", "text-asc", "text-desc")
DATE_COLUMN = "Date"


def parse_date(value) -> datetime | None:
    """Parse a cell into a naive datetime, or None when it is not a date."""
    if value is None:
        return None
    if isinstance(value, bool) or isinstance(value, (int, float)):
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
    elif not isinstance(value, (date, datetime, pd.Timestamp)):
        return None

    try:
        ts = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts.to_pydatetime()


def local_midnight(now: datetime | None = None) -> datetime:
    now = now or datetime.now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def week_range(day: datetime) -> tuple[datetime, datetime]:
    """Monday 00:00:00.000 through Sunday 23:59:59.999 around ``day``."""
    monday = local_midnight(day) - timedelta(days=day.weekday())
    sunday_end = monday + timedelta(days=6, hours=23, minutes=59, seconds=59, milliseconds=999)
    return monday, sunday_end


def bucket_predicate(state: str, now: datetime | None = None):
    """Return a predicate over parsed datetimes for a filter state."""
    today = local_midnight(now)

    if state == "today":
        return lambda d: d.date() == today.date()
    if state == "tomorrow":
        target = (today + timedelta(days=1)).date()
        return lambda d: d.date() == target
    if state == "yesterday":
        target = (today - timedelta(days=1)).date()
        return lambda d: d.date() == target
    if state == "this-week":
        start, end = week_range(today)
        return lambda d: start <= d <= end
    if state == "prev-week":
        this_start, _ = week_range(today)
        start, end = week_range(this_start - timedelta(days=1))
        return lambda d: start <= d <= end
    raise ValidationError(f"Unknown filter: {state}")


class SortFilterEngine:
    """Date-bucket filtering (view only) and explicit sorting (mutates rows)."""

    def __init__(self, store):
        self.store = store

    # ---------- filter ----------
    def filtered_rows(self, state: str = "none", now: datetime | None = None):
        """Return (row_index, row) pairs for the data rows visible under ``state``."""
        indexed = list(enumerate(self.store.rows))[1:]
        if not state or state == "none":
            return indexed

        predicate = bucket_predicate(state, now)
        date_idx = self.store.column_index(DATE_COLUMN)
        if date_idx == -1:
            return indexed

        visible = []
        for r, row in indexed:
            parsed = parse_date(row[date_idx])
            if parsed is not None and predicate(parsed):
                visible.append((r, row))
        return visible

    # ---------- sort ----------
    def sort_rows(self, column_name, mode: str) -> bool:
        if mode not in SORT_MODES:
            raise ValidationError(f"Sort mode must be one of {', '.join(SORT_MODES)}")
        col = self.store.column_index(column_name)
        if col == -1:
            logger.info("sort skipped: column %r not found", column_name)
            return False

        data = list(self.store.data_rows)
        if mode in ("date-asc", "date-desc"):
            descending = mode == "date-desc"

            def date_key(row):
                parsed = parse_date(row[col])
                if parsed is None:
                    return (1, 0)
                stamp = pd.Timestamp(parsed).value
                return (0, -stamp if descending else stamp)

            data.sort(key=date_key)
        else:
            def text_key(row):
                value = row[col]
                return "" if value is None else str(value).lower()

            data.sort(key=text_key, reverse=(mode == "text-desc"))

        self.store.replace_data_rows(data)
        logger.info("sorted %d rows by %r (%s)", len(data), column_name, mode)
        return True
