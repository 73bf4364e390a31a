import os
import re
import zipfile
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from errors import ValidationError, WorkspaceIOError
from logging_setup import get_logger

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = {".xlsx", ".xls", ".csv", ".pdf"}
PDF_MAX_ROWS = 19

_FIELD_SPLIT = re.compile(r"\s{2,}|\t+")


@dataclass
class IngestResult:
    headers: list
    rows: list[list] = field(default_factory=list)
    file_name: str = ""
    grid: list[list] = field(default_factory=list)


def _cell(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def pad_rows(rows, width: int) -> list[list]:
    padded = []
    for row in rows:
        values = list(row)
        if len(values) < width:
            values.extend([""] * (width - len(values)))
        padded.append(values[:width])
    return padded


class FileTypeHandler:
    """Turns an uploaded spreadsheet, CSV or PDF into headers plus rows."""

    def __init__(self, path: str):
        self.path = path
        _, ext = os.path.splitext(path)
        self.ext = ext.lower()

        if self.ext not in SUPPORTED_EXTENSIONS:
            raise ValidationError("Only PDF, Excel (.xlsx, .xls) and CSV files are supported.")

    @property
    def file_name(self) -> str:
        return os.path.basename(self.path)

    def read_grid(self) -> list[list]:
        """Every row of the first sheet, header row included, blanks as ""."""
        if not os.path.exists(self.path):
            raise WorkspaceIOError(f"File not found: {self.path}")

        if self.ext == ".pdf":
            return self._read_pdf_grid()

        try:
            if self.ext == ".csv":
                frame = pd.read_csv(
                    self.path,
                    header=None,
                    dtype=object,
                    keep_default_na=False,
                    skip_blank_lines=True,
                )
            else:
                self._ensure_excel_engine()
                frame = pd.read_excel(self.path, sheet_name=0, header=None, dtype=object)
        except pd.errors.EmptyDataError:
            return []
        except (OSError, ValueError, zipfile.BadZipFile) as exc:
            logger.warning("could not read %s: %s", self.path, exc)
            raise WorkspaceIOError(f"Could not read {self.file_name}: {exc}") from exc

        return [[_cell(v) for v in row] for row in frame.itertuples(index=False, name=None)]

    def load(self) -> IngestResult:
        grid = self.read_grid()
        if not grid:
            raise WorkspaceIOError(f"No tabular data found in {self.file_name}")

        width = max(len(row) for row in grid)
        headers = ["" if h is None else str(h).strip() for h in grid[0]]
        headers.extend([""] * (width - len(headers)))
        rows = pad_rows(grid[1:], len(headers))
        logger.info("ingested %s: %d columns, %d rows", self.file_name, len(headers), len(rows))
        return IngestResult(headers=headers, rows=rows, file_name=self.file_name, grid=grid)

    # ---------- pdf ----------
    def _read_pdf_grid(self) -> list[list]:
        try:
            text = extract_text_from_pdf(self.path)
        except (OSError, PdfReadError) as exc:
            logger.warning("could not read %s: %s", self.path, exc)
            raise WorkspaceIOError(f"Could not read {self.file_name}: {exc}") from exc

        headers, rows = parse_table_from_text(text)
        if not headers or not rows:
            raise WorkspaceIOError(
                "Could not extract table data from PDF. Try Excel format instead."
            )
        return [headers] + rows

    def _ensure_excel_engine(self):
        module = "openpyxl" if self.ext == ".xlsx" else "xlrd"
        try:
            __import__(module)
        except ImportError as exc:
            raise ValidationError(
                f"{self.ext} support requires {module}. Install via: pip install {module}"
            ) from exc


def extract_text_from_pdf(source) -> str:
    """Text of every page, in order; ``source`` is a path or a binary stream."""
    reader = PdfReader(source)
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n".join(pages).strip()


def parse_table_from_text(text: str) -> tuple[list, list[list]]:
    lines = [line.strip() for line in (text or "").split("\n")]
    lines = [line for line in lines if line]
    if len(lines) < 2:
        return [], []

    header_pos = next(
        (i for i, line in enumerate(lines) if len(line.split()) > 1), None
    )
    if header_pos is None:
        return [], []

    headers = [h.strip() for h in _FIELD_SPLIT.split(lines[header_pos]) if h.strip()]
    body = lines[header_pos + 1 : header_pos + 1 + PDF_MAX_ROWS]
    rows = [[c.strip() for c in _FIELD_SPLIT.split(line)] for line in body]
    return headers, pad_rows(rows, len(headers))
