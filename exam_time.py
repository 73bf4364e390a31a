import re

SESSION_HEADER_KEYS = ("session", "sem", "type", "shift")
SESSION_START_TIMES = {"M": "9:30 AM", "E": "1:30 PM"}

_TIME_WORD = re.compile(r"\btime\b")


def exam_start_time(code) -> str:
    """Start time for a session code (M morning, E evening), "" otherwise."""
    if code is None:
        return ""
    return SESSION_START_TIMES.get(str(code).strip().upper(), "")


def _header_text(header) -> str:
    return "" if header is None else str(header).strip().lower()


def find_time_column(headers) -> int | None:
    for i, header in enumerate(headers):
        if _TIME_WORD.search(_header_text(header)):
            return i
    return None


def find_session_column(headers, exclude=None) -> int | None:
    for i, header in enumerate(headers):
        if i == exclude:
            continue
        text = _header_text(header)
        if text and any(k in text for k in SESSION_HEADER_KEYS):
            return i
    return None


class ExamTimeColumn:
    """Derives the Time column of a timetable from its session code column.

    Only data rows are derived; the header row and every other column pass
    through. A session code with no known start time keeps the stored cell.
    """

    def __init__(self, headers):
        headers = list(headers or [])
        self.time_col = find_time_column(headers)
        self.session_col = (
            find_session_column(headers, exclude=self.time_col)
            if self.time_col is not None
            else None
        )

    @property
    def active(self) -> bool:
        return self.time_col is not None and self.session_col is not None

    def value(self, row, c):
        cell = row[c]
        if not self.active or c != self.time_col or self.session_col >= len(row):
            return cell
        return exam_start_time(row[self.session_col]) or cell
