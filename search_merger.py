from dataclasses import dataclass
from enum import Enum

from errors import NotFoundError, ValidationError, WorkspaceIOError
from logging_setup import get_logger

logger = get_logger(__name__)

DEDUP_DATE_COLUMN = "Date"
DEDUP_CODE_COLUMN = "Sub Code"
ALL_COLUMNS = "All"


class MergeOutcome(Enum):
    ADDED = "added"
    ALREADY_PRESENT = "already_present"
    MIXED = "mixed"


MERGE_MESSAGES = {
    MergeOutcome.ADDED: "Matching rows added to workspace.",
    MergeOutcome.ALREADY_PRESENT: "All matching rows already exist in workspace.",
    MergeOutcome.MIXED: "Some rows were added, some were already present.",
}


@dataclass
class MergeResult:
    outcome: MergeOutcome
    added: int
    already_present: int
    dedup_enabled: bool

    @property
    def message(self) -> str:
        return MERGE_MESSAGES[self.outcome]


def _normalize(value):
    if value is None:
        return None
    return str(value).strip().lower()


def _outcome(added: int, existing: int) -> MergeOutcome:
    if added and existing:
        return MergeOutcome.MIXED
    if existing:
        return MergeOutcome.ALREADY_PRESENT
    return MergeOutcome.ADDED


class SearchMerger:
    """Folds search results into a GridStore, skipping rows already present.

    Two rows are the same when their normalized Date and Sub Code cells match.
    When the workspace lacks either column every incoming row is appended.
    """

    def __init__(self, store, search_source=None):
        self.store = store
        self.search_source = search_source

    def dedup_columns(self) -> tuple[int, int] | None:
        date_idx = self.store.column_index(DEDUP_DATE_COLUMN)
        code_idx = self.store.column_index(DEDUP_CODE_COLUMN)
        if date_idx == -1 or code_idx == -1:
            return None
        return date_idx, code_idx

    def merge(self, headers, rows) -> MergeResult:
        rows = list(rows or [])

        if self.store.is_empty:
            if not self.store.initialize(headers):
                raise ValidationError("Search result has no headers")
            for row in rows:
                self.store.append_row(row)
            logger.info("workspace seeded with %d rows", len(rows))
            return MergeResult(MergeOutcome.ADDED, len(rows), 0, dedup_enabled=False)

        key_cols = self.dedup_columns()
        if key_cols is None:
            for row in rows:
                self.store.append_row(row)
            logger.info("dedup columns unresolved; appended %d rows", len(rows))
            return MergeResult(MergeOutcome.ADDED, len(rows), 0, dedup_enabled=False)

        date_idx, code_idx = key_cols

        def key_of(row):
            date_val = row[date_idx] if date_idx < len(row) else None
            code_val = row[code_idx] if code_idx < len(row) else None
            return _normalize(date_val), _normalize(code_val)

        seen = {key_of(row) for row in self.store.data_rows}
        added = 0
        existing = 0
        for row in rows:
            key = key_of(row)
            if key in seen:
                existing += 1
                continue
            self.store.append_row(row)
            seen.add(key)
            added += 1

        result = MergeResult(_outcome(added, existing), added, existing, dedup_enabled=True)
        logger.info(
            "merge: %d added, %d already present (%s)",
            added,
            existing,
            result.outcome.value,
        )
        return result

    def search_and_merge(self, query, column=ALL_COLUMNS) -> MergeResult:
        if query is None or not str(query).strip():
            raise ValidationError("Please type something to search")
        if self.search_source is None:
            raise WorkspaceIOError("No source file loaded. Upload a file first.")

        column = column or ALL_COLUMNS
        try:
            result = self.search_source.search(str(query), column)
        except OSError as exc:
            logger.warning("search failed: %s", exc)
            raise WorkspaceIOError(f"Search failed: {exc}") from exc

        if result.error and not result.not_found:
            logger.warning("search returned error: %s", result.error)
            raise WorkspaceIOError(f"Search failed: {result.error}")

        if result.unknown_column:
            raise ValidationError("Input correct column, no exact match found.")

        if not result.rows:
            if column.lower() != ALL_COLUMNS.lower():
                raise NotFoundError("Input correct column, no exact match found.")
            raise NotFoundError("No matching rows found for this search.")

        headers = result.headers or self.store.headers
        return self.merge(headers, result.rows)
