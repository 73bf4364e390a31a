import pandas as pd

from logging_setup import get_logger

logger = get_logger(__name__)


def _normalize_header(value) -> str:
    return "" if value is None else str(value).strip().lower()


class GridStore:
    """Headers plus rows, with rows[0] mirroring the headers.

    Every row is kept at exactly len(headers) cells. Shorter rows are padded
    with "" and longer ones cut back on the way in.
    """

    def __init__(self):
        self.headers: list = []
        self.rows: list[list] = []

    # ---------- shape ----------
    @property
    def is_empty(self) -> bool:
        return not self.headers

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @property
    def row_count(self) -> int:
        """Number of data rows (header row excluded)."""
        return max(0, len(self.rows) - 1)

    @property
    def data_rows(self) -> list[list]:
        return self.rows[1:]

    def _fit(self, row) -> list:
        width = len(self.headers)
        values = list(row or [])
        if len(values) < width:
            values.extend([""] * (width - len(values)))
        return values[:width]

    def in_bounds(self, r: int, c: int) -> bool:
        return 0 <= r < len(self.rows) and 0 <= c < len(self.headers)

    def cell(self, r: int, c: int):
        if not self.in_bounds(r, c):
            return None
        return self.rows[r][c]

    def column_index(self, name) -> int:
        """Case-insensitive exact header lookup; -1 when absent."""
        if name is None:
            return -1
        target = str(name).strip().lower()
        for idx, header in enumerate(self.headers):
            if _normalize_header(header) == target:
                return idx
        return -1

    # ---------- mutation ----------
    def initialize(self, headers) -> bool:
        if self.headers:
            logger.debug("initialize ignored: headers already set")
            return False
        headers = ["" if h is None else h for h in (headers or [])]
        if not headers:
            return False
        self.headers = list(headers)
        self.rows = [list(headers)]
        logger.info("workspace headers set (%d columns)", len(headers))
        return True

    def append_row(self, row) -> bool:
        if not self.headers:
            return False
        self.rows.append(self._fit(row))
        return True

    def set_cell(self, r: int, c: int, value) -> bool:
        if r == 0 or not self.in_bounds(r, c):
            return False
        self.rows[r][c] = value
        return True

    def add_empty_row(self) -> bool:
        if not self.headers:
            return False
        self.rows.append([""] * len(self.headers))
        return True

    def delete_last_row(self) -> bool:
        if len(self.rows) <= 1:
            return False
        self.rows.pop()
        return True

    def rename_header(self, idx: int, text) -> bool:
        if idx < 0 or idx >= len(self.headers):
            return False
        text = "" if text is None else text
        self.headers[idx] = text
        if self.rows:
            self.rows[0][idx] = text
        return True

    def replace_data_rows(self, rows) -> None:
        """Swap in a reordered set of data rows, keeping the header row pinned."""
        if not self.rows:
            return
        self.rows = [self.rows[0]] + [self._fit(row) for row in rows]

    def clear(self) -> None:
        self.headers = []
        self.rows = []

    # ---------- views ----------
    def to_frame(self) -> pd.DataFrame:
        labels = [
            str(h) if str(h).strip() else f"Col {i + 1}"
            for i, h in enumerate(self.headers)
        ]
        frame = pd.DataFrame(self.data_rows, columns=range(len(labels)))
        frame.columns = labels
        return frame
