import pytest

from errors import NotFoundError, ValidationError, WorkspaceIOError
from grid_store import GridStore
from search_merger import MergeOutcome, SearchMerger
from search_source import SearchResult, SearchSource


class FakeSource:
    def __init__(self, result=None, exc=None):
        self.result = result
        self.exc = exc
        self.calls = []

    def search(self, query, column):
        self.calls.append((query, column))
        if self.exc is not None:
            raise self.exc
        return self.result


HEADERS = ["Date", "Sub Code"]


def test_first_search_seeds_empty_workspace():
    store = GridStore()
    result = SearchMerger(store).merge(HEADERS, [["2024-01-01", "CS101"]])
    assert store.rows == [["Date", "Sub Code"], ["2024-01-01", "CS101"]]
    assert result.outcome is MergeOutcome.ADDED
    assert result.message == "Matching rows added to workspace."


def test_repeated_search_is_already_present():
    store = GridStore()
    merger = SearchMerger(store)
    merger.merge(HEADERS, [["2024-01-01", "CS101"]])
    result = merger.merge(HEADERS, [["2024-01-01", "CS101"]])
    assert result.outcome is MergeOutcome.ALREADY_PRESENT
    assert result.message == "All matching rows already exist in workspace."
    assert store.row_count == 1


def test_merge_is_idempotent_for_any_batch():
    store = GridStore()
    merger = SearchMerger(store)
    batch = [["2024-01-01", "CS101"], ["2024-01-02", "CS102"], ["2024-01-01", "cs101 "]]
    merger.merge(HEADERS, batch)
    snapshot = [list(r) for r in store.rows]
    merger.merge(HEADERS, batch)
    assert store.rows == snapshot


def test_mixed_outcome_and_normalized_keys():
    store = GridStore()
    merger = SearchMerger(store)
    merger.merge(HEADERS, [["2024-01-01", "CS101"]])
    result = merger.merge(
        HEADERS,
        [[" 2024-01-01 ", "cs101"], ["2024-01-05", "MA200"]],
    )
    assert result.outcome is MergeOutcome.MIXED
    assert result.added == 1
    assert result.already_present == 1
    assert result.message == "Some rows were added, some were already present."
    assert store.data_rows[-1] == ["2024-01-05", "MA200"]


def test_duplicates_within_one_batch_are_added_once():
    store = GridStore()
    merger = SearchMerger(store)
    merger.merge(HEADERS, [["2024-01-01", "CS101"]])
    result = merger.merge(HEADERS, [["2024-02-01", "X1"], ["2024-02-01", "x1"]])
    assert result.added == 1
    assert result.already_present == 1
    assert store.row_count == 2


def test_dedup_disabled_without_key_columns():
    store = GridStore()
    merger = SearchMerger(store)
    merger.merge(["Name", "Code"], [["a", "1"]])
    result = merger.merge(["Name", "Code"], [["a", "1"]])
    assert result.dedup_enabled is False
    assert result.outcome is MergeOutcome.ADDED
    assert store.row_count == 2


def test_incoming_rows_are_padded_to_header_length():
    store = GridStore()
    merger = SearchMerger(store)
    merger.merge(["Date", "Sub Code", "Room"], [["2024-01-01", "CS101"]])
    assert store.data_rows == [["2024-01-01", "CS101", ""]]


def test_search_and_merge_rejects_blank_query():
    source = FakeSource(SearchResult(rows=[["x", "y"]], headers=HEADERS))
    merger = SearchMerger(GridStore(), source)
    with pytest.raises(ValidationError, match="Please type something to search"):
        merger.search_and_merge("   ")
    assert source.calls == []


def test_search_and_merge_not_found_messages():
    store = GridStore()
    merger = SearchMerger(store, FakeSource(SearchResult(headers=HEADERS)))
    with pytest.raises(NotFoundError, match="No matching rows found for this search."):
        merger.search_and_merge("zzz")
    with pytest.raises(NotFoundError, match="Input correct column, no exact match found."):
        merger.search_and_merge("zzz", "Sub Code")
    assert store.is_empty


def test_search_and_merge_unknown_column_is_validation():
    store = GridStore()
    source = SearchSource([["Date", "Sub Code"], ["2024-01-01", "CS101"]])
    merger = SearchMerger(store, source)
    with pytest.raises(ValidationError, match="Input correct column"):
        merger.search_and_merge("cs101", "Room")
    assert store.is_empty

    merger.search_and_merge("cs101", "sub code")
    assert store.row_count == 1


def test_search_and_merge_collaborator_failure_leaves_grid():
    store = GridStore()
    merger = SearchMerger(store, FakeSource(exc=OSError("disk gone")))
    with pytest.raises(WorkspaceIOError):
        merger.search_and_merge("CS101")
    assert store.is_empty

    merger.search_source = FakeSource(SearchResult(error="backend exploded"))
    with pytest.raises(WorkspaceIOError):
        merger.search_and_merge("CS101")
    assert store.is_empty


def test_search_and_merge_without_source():
    with pytest.raises(WorkspaceIOError):
        SearchMerger(GridStore()).search_and_merge("CS101")


def test_search_and_merge_passes_column_through():
    source = FakeSource(SearchResult(rows=[["2024-01-01", "CS101"]], headers=HEADERS))
    store = GridStore()
    result = SearchMerger(store, source).search_and_merge("CS101", "Sub Code")
    assert source.calls == [("CS101", "Sub Code")]
    assert result.outcome is MergeOutcome.ADDED
    assert store.row_count == 1
