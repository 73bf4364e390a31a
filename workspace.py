import os
from contextlib import contextmanager

from PIL import ImageColor

from cell_overlay import (
    BORDER_STYLES,
    SizeOverlay,
    StyleOverlay,
    WorkspaceDefaults,
    clamp_border_width,
    clamp_dimension,
    clamp_font_size,
)
from errors import ValidationError
from export_renderer import ExportRenderer, ScrollContainer
from file_type_handler import FileTypeHandler
from grid_store import GridStore
from logging_setup import get_logger
from resize_interaction import PointerEventSource, ResizeInteraction
from search_merger import ALL_COLUMNS, SearchMerger
from search_source import SearchSource
from sort_filter import FILTER_STATES, SortFilterEngine

logger = get_logger(__name__)

COLOR_FIELDS = ("color", "background_color", "border_color")


def _check_color(value: str) -> str:
    try:
        ImageColor.getrgb(value)
    except (ValueError, AttributeError) as exc:
        raise ValidationError(f"Not a color: {value}") from exc
    return value


def _clamped_patch(patch: dict) -> dict:
    patch = dict(patch)
    if patch.get("font_size") is not None:
        patch["font_size"] = clamp_font_size(patch["font_size"])
    if patch.get("border_width") is not None:
        patch["border_width"] = clamp_border_width(patch["border_width"])
    for key in COLOR_FIELDS:
        if patch.get(key) is not None:
            _check_color(patch[key])
    return patch


class Workspace:
    """One open workspace: grid data, overlays, view state and interactions."""

    def __init__(self, config: dict | None = None):
        self.config = dict(config or {})
        self.styles = StyleOverlay()
        self.sizes = SizeOverlay()
        self.defaults = self._config_defaults()
        self.events = PointerEventSource()
        self.resize = ResizeInteraction(self.sizes, self.events)

        self.store = GridStore()
        self.engine = SortFilterEngine(self.store)
        self.merger = SearchMerger(self.store)
        self.visible_columns: list[int] = []
        self.filter_state = "none"
        self.file_name: str | None = None
        self.info_message = ""
        self.scroll_containers: list[ScrollContainer] = []
        self._busy: set[str] = set()

    def _config_defaults(self) -> WorkspaceDefaults:
        return WorkspaceDefaults(
            border_color=self.config.get("BORDER_COLOR", WorkspaceDefaults.border_color),
            border_style=self.config.get("BORDER_STYLE", WorkspaceDefaults.border_style),
        )

    # ---------- busy flags ----------
    def is_busy(self, action: str) -> bool:
        return action in self._busy

    @contextmanager
    def busy(self, action: str):
        if action in self._busy:
            raise ValidationError(f"{action.capitalize()} already in progress")
        self._busy.add(action)
        try:
            yield
        finally:
            self._busy.discard(action)

    # ---------- selection ----------
    @property
    def selected(self):
        return self.resize.selected

    def select_cell(self, r: int, c: int) -> bool:
        if not self.store.in_bounds(r, c):
            return False
        self.resize.select_cell(r, c)
        return True

    def clear_selection(self):
        self.resize.clear_selection()

    def view_rows(self, now=None):
        return self.engine.filtered_rows(self.filter_state, now=now)

    # ---------- data ----------
    def ingest(self, path: str, populate: bool = False):
        """Load a source file for searching; with populate, merge every row now."""
        handler = FileTypeHandler(path)
        result = handler.load()
        self.merger.search_source = SearchSource(result.grid, result.file_name)
        self.file_name = result.file_name
        logger.info("source %s ready (%d rows)", result.file_name, len(result.rows))
        if populate:
            merged = self.merger.merge(result.headers, result.rows)
            self._sync_visible_columns()
            return merged
        return result

    def search(self, query, column=ALL_COLUMNS):
        with self.busy("search"):
            result = self.merger.search_and_merge(query, column)
        self._sync_visible_columns()
        self.info_message = result.message
        return result

    def merge(self, headers, rows):
        result = self.merger.merge(headers, rows)
        self._sync_visible_columns()
        self.info_message = result.message
        return result

    def _sync_visible_columns(self):
        if not self.visible_columns and self.store.column_count:
            self.visible_columns = list(range(self.store.column_count))

    def edit_cell(self, r: int, c: int, value) -> bool:
        return self.store.set_cell(r, c, value)

    def rename_header(self, idx: int, text) -> bool:
        return self.store.rename_header(idx, text)

    def add_row(self) -> bool:
        return self.store.add_empty_row()

    def delete_last_row(self) -> bool:
        removed = self.store.delete_last_row()
        sel = self.resize.selected
        if removed and sel is not None and sel[0] >= len(self.store.rows):
            self.resize.clear_selection()
        return removed

    # ---------- view ----------
    def set_filter(self, state: str):
        if state not in FILTER_STATES:
            raise ValidationError(f"Filter must be one of {', '.join(FILTER_STATES)}")
        self.filter_state = state

    def sort(self, column_name, mode: str) -> bool:
        return self.engine.sort_rows(column_name, mode)

    def toggle_column(self, idx: int) -> bool:
        if idx < 0 or idx >= self.store.column_count:
            return False
        if idx in self.visible_columns:
            if len(self.visible_columns) == 1:
                raise ValidationError("At least one column must stay visible")
            self.visible_columns.remove(idx)
        else:
            self.visible_columns.append(idx)
            self.visible_columns.sort()
        return True

    # ---------- formatting ----------
    def target_cell(self, r=None, c=None):
        if r is None or c is None:
            if self.resize.selected is None:
                raise ValidationError("Select a cell first")
            return self.resize.selected
        return r, c

    def set_style(self, patch: dict, r=None, c=None):
        r, c = self.target_cell(r, c)
        return self.styles.update_style(r, c, None, _clamped_patch(patch))

    def set_size(self, height=None, width=None, r=None, c=None):
        r, c = self.target_cell(r, c)
        height = None if height is None else clamp_dimension(height)
        width = None if width is None else clamp_dimension(width)
        return self.sizes.update_size(r, c, height=height, width=width)

    def apply_to_all(self, patch: dict | None = None, height=None, width=None) -> int:
        """Apply a style patch and optional size to every data cell."""
        patch = _clamped_patch(patch or {})
        height = None if height is None else clamp_dimension(height)
        width = None if width is None else clamp_dimension(width)
        count = 0
        for r in range(1, len(self.store.rows)):
            for c in range(self.store.column_count):
                if patch:
                    self.styles.update_style(r, c, None, patch)
                if height is not None or width is not None:
                    self.sizes.update_size(r, c, height=height, width=width)
                count += 1
        logger.info("applied formatting to %d cells", count)
        return count

    def set_default_border(self, color=None, style=None):
        if color is not None:
            self.defaults.border_color = _check_color(color)
        if style is not None:
            if style not in BORDER_STYLES:
                raise ValidationError(f"Border style must be one of {', '.join(BORDER_STYLES)}")
            self.defaults.border_style = style

    def effective_style(self, r: int, c: int):
        return self.styles.effective_style(r, c, self.defaults)

    def clear_formats(self):
        self.styles.clear()
        self.sizes.clear()
        self.defaults = WorkspaceDefaults()
        self.resize.reset()
        logger.info("formats cleared")

    def clear_workspace(self):
        self.resize.reset()
        self.resize.clear_selection()
        self.store.clear()
        self.styles.clear()
        self.sizes.clear()
        self.visible_columns = []
        self.filter_state = "none"
        self.info_message = ""
        logger.info("workspace cleared")

    # ---------- export ----------
    def renderer(self) -> ExportRenderer:
        renderer = ExportRenderer(
            self.store,
            self.styles,
            self.sizes,
            self.defaults,
            visible_columns=self.visible_columns or None,
            delimiter=self.config.get("EXPORT_DELIMITER", ","),
            image_scale=self.config.get("EXPORT_IMAGE_SCALE", 2),
            page_orientation=self.config.get("EXPORT_PAGE_ORIENTATION", "p"),
        )
        renderer.scroll_containers = self.scroll_containers
        return renderer

    def export_path(self, name: str, ext: str) -> str:
        if os.path.dirname(name) or os.path.isabs(name):
            base = name
        else:
            base = os.path.join(self.config.get("EXPORT_DIRECTORY", "."), name)
        if not base.lower().endswith(ext):
            base = f"{base}{ext}"
        return base

    def export(self, kind: str, name: str = "workspace") -> str:
        renderer = self.renderer()
        if kind == "csv":
            return renderer.write_csv(self.export_path(name, ".csv"))
        if kind == "json":
            return renderer.write_json(self.export_path(name, ".json"))
        if kind in ("png", "pdf"):
            with self.busy("capture"):
                if kind == "png":
                    return renderer.write_png(self.export_path(name, ".png"))
                return renderer.write_pdf(self.export_path(name, ".pdf"))
        raise ValidationError("Export format must be one of csv, png, pdf, json")

    def dispose(self):
        self.resize.dispose()
        logger.info("workspace disposed")
