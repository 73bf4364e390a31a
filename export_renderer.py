import json
import math
from contextlib import contextmanager
from dataclasses import dataclass, replace

import pandas as pd
from PIL import Image, ImageDraw, ImageFont

from cell_overlay import DEFAULT_HEIGHT, DEFAULT_WIDTH, SizeOverlay, StyleOverlay, WorkspaceDefaults
from errors import ValidationError, WorkspaceIOError
from exam_time import ExamTimeColumn
from logging_setup import get_logger

logger = get_logger(__name__)

A4_POINTS = (595, 842)
HEADER_BACKGROUND = "#f3f4f6"
CELL_PADDING = 4
NO_DATA_MESSAGE = "No data to export."


@dataclass
class ScrollContainer:
    """A clipped, scrollable region of the UI that hides rows from a capture."""

    name: str
    max_height: int | None = None
    overflow_y: str = "auto"


@contextmanager
def full_height_capture(containers):
    """Expand every container for the duration of a capture, then restore it."""
    saved = [(c, c.max_height, c.overflow_y) for c in containers]
    for container in containers:
        container.max_height = None
        container.overflow_y = "visible"
    try:
        yield
    finally:
        for container, max_height, overflow_y in saved:
            container.max_height = max_height
            container.overflow_y = overflow_y


def quote_field(value, quote='"') -> str:
    text = "" if value is None else str(value)
    return quote + text.replace(quote, quote * 2) + quote


def page_offsets(image_height: float, page_height: float) -> list[float]:
    """Vertical image offsets, one per page, for an image scaled to page width.

    Page one places the image at 0; every further page shifts it up by one
    more page height while image remains below the fold.
    """
    offsets = [0.0]
    height_left = image_height - page_height
    while height_left > 0:
        offsets.append(height_left - image_height)
        height_left -= page_height
    return offsets


# ---------- fonts ----------
_FONT_CACHE: dict = {}


def _load_font(size: int, bold: bool = False):
    key = (size, bold)
    if key in _FONT_CACHE:
        return _FONT_CACHE[key]
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        font = ImageFont.truetype(name, size=size)
    except OSError:
        font = ImageFont.load_default(size=size)
    _FONT_CACHE[key] = font
    return font


def _wrap_lines(draw, text: str, font, max_width: float) -> list[str]:
    lines = []
    for paragraph in text.split("\n"):
        words = paragraph.split(" ")
        current = ""
        for word in words:
            candidate = word if not current else f"{current} {word}"
            if current and draw.textlength(candidate, font=font) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return lines


def _draw_edge(draw, start, end, color: str, style: str, width: int):
    if style == "none" or width <= 0:
        return
    if style == "solid":
        draw.line([start, end], fill=color, width=width)
        return
    if style == "double":
        gap = max(1, width)
        horizontal = start[1] == end[1]
        for shift in (-gap, gap):
            if horizontal:
                a, b = (start[0], start[1] + shift), (end[0], end[1] + shift)
            else:
                a, b = (start[0] + shift, start[1]), (end[0] + shift, end[1])
            draw.line([a, b], fill=color, width=max(1, width // 2))
        return

    dash = width * (3 if style == "dashed" else 1)
    step = dash * 2
    (x0, y0), (x1, y1) = start, end
    length = max(abs(x1 - x0), abs(y1 - y0))
    pos = 0
    while pos < length:
        seg_end = min(pos + dash, length)
        if y0 == y1:
            draw.line([(x0 + pos, y0), (x0 + seg_end, y0)], fill=color, width=width)
        else:
            draw.line([(x0, y0 + pos), (x0, y0 + seg_end)], fill=color, width=width)
        pos += step


class ExportRenderer:
    """Projects the grid, restricted to visible columns, into export artifacts."""

    def __init__(
        self,
        store,
        styles: StyleOverlay | None = None,
        sizes: SizeOverlay | None = None,
        defaults: WorkspaceDefaults | None = None,
        visible_columns=None,
        delimiter: str = ",",
        image_scale: int = 2,
        page_orientation: str = "p",
    ):
        self.store = store
        self.styles = styles or StyleOverlay()
        self.sizes = sizes or SizeOverlay()
        self.defaults = defaults or WorkspaceDefaults()
        self.visible_columns = visible_columns
        self.delimiter = delimiter
        self.image_scale = max(1, int(image_scale))
        self.page_orientation = page_orientation
        self.scroll_containers: list[ScrollContainer] = []

    # ---------- projection ----------
    def columns(self) -> list[int]:
        width = self.store.column_count
        if self.visible_columns is None:
            return list(range(width))
        return [c for c in self.visible_columns if 0 <= c < width]

    def header_labels(self) -> list[str]:
        labels = []
        for c in self.columns():
            header = self.store.headers[c]
            text = "" if header is None else str(header)
            labels.append(text if text.strip() else f"Col {c + 1}")
        return labels

    def projected_rows(self) -> list[list]:
        cols = self.columns()
        exam = ExamTimeColumn(self.store.headers)
        return [[exam.value(row, c) for c in cols] for row in self.store.data_rows]

    def require_data(self):
        if self.store.is_empty or self.store.row_count == 0:
            raise ValidationError(NO_DATA_MESSAGE)

    # ---------- text formats ----------
    def to_delimited(self, delimiter: str | None = None) -> str:
        delimiter = self.delimiter if delimiter is None else delimiter
        lines = [delimiter.join(quote_field(v) for v in self.header_labels())]
        for row in self.projected_rows():
            lines.append(delimiter.join(quote_field(v) for v in row))
        return "\n".join(lines)

    def frame(self) -> pd.DataFrame:
        cols = self.columns()
        frame = self.store.to_frame().iloc[:, cols].copy()
        frame.columns = self.header_labels()
        exam = ExamTimeColumn(self.store.headers)
        if exam.active and exam.time_col in cols:
            derived = [exam.value(row, exam.time_col) for row in self.store.data_rows]
            frame.iloc[:, cols.index(exam.time_col)] = derived
        return frame

    def clipboard_text(self) -> str:
        return self.frame().to_csv(sep="\t", index=False)

    def snapshot(self) -> dict:
        cols = self.columns()
        return {
            "headers": [self.store.headers[c] for c in cols],
            "rows": self.projected_rows(),
        }

    # ---------- raster ----------
    def _column_widths(self) -> list[int]:
        return [self.sizes.column_width(c) or DEFAULT_WIDTH for c in self.columns()]

    def _row_height(self, r: int) -> int:
        heights = []
        for c in self.columns():
            rec = self.sizes.get(r, c)
            if rec is not None and rec.height:
                heights.append(rec.height)
        return max(heights) if heights else DEFAULT_HEIGHT

    def _cell_style(self, r: int, c: int):
        style = self.styles.effective_style(r, c, self.defaults)
        if r == 0:
            record = self.styles.get(r, c)
            if record is None or record.background_color is None:
                style = replace(style, background_color=HEADER_BACKGROUND)
        return style

    def render_image(self) -> Image.Image:
        """Draw an off-screen replica of the table, scaled by image_scale."""
        self.require_data()
        with full_height_capture(self.scroll_containers):
            return self._render()

    def _render(self) -> Image.Image:
        s = self.image_scale
        cols = self.columns()
        widths = [w * s for w in self._column_widths()]
        pad = CELL_PADDING * s

        measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        exam = ExamTimeColumn(self.store.headers)
        layout = []
        for r, row in enumerate(self.store.rows):
            cells = []
            row_h = self._row_height(r) * s
            for i, c in enumerate(cols):
                style = self._cell_style(r, c)
                font = _load_font(style.font_size * s, bold=(r == 0))
                val = exam.value(row, c) if r > 0 else row[c]
                text = "" if val is None else str(val)
                if r == 0 and not text.strip():
                    text = f"Col {c + 1}"
                if style.wrap:
                    lines = _wrap_lines(measure, text, font, widths[i] - 2 * pad)
                else:
                    lines = text.split("\n")
                line_h = style.font_size * s * 1.25
                row_h = max(row_h, int(len(lines) * line_h + 2 * pad))
                cells.append((style, font, lines, line_h))
            layout.append((row_h, cells))

        total_w = max(1, sum(widths))
        total_h = max(1, sum(h for h, _ in layout))
        image = Image.new("RGB", (total_w, total_h), "#ffffff")
        draw = ImageDraw.Draw(image)

        y = 0
        for row_h, cells in layout:
            x = 0
            for i, (style, font, lines, line_h) in enumerate(cells):
                box = (x, y, x + widths[i], y + row_h)
                self._draw_cell(draw, box, style, font, lines, line_h, pad)
                x += widths[i]
            y += row_h
        return image

    def _draw_cell(self, draw, box, style, font, lines, line_h, pad):
        x0, y0, x1, y1 = box
        draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=style.background_color)

        block_h = len(lines) * line_h
        if style.vertical_align == "middle":
            ty = y0 + (y1 - y0 - block_h) / 2
        elif style.vertical_align == "bottom":
            ty = y1 - pad - block_h
        else:
            ty = y0 + pad
        for line in lines:
            tw = draw.textlength(line, font=font)
            if style.text_align == "center":
                tx = x0 + (x1 - x0 - tw) / 2
            elif style.text_align == "right":
                tx = x1 - pad - tw
            else:
                tx = x0 + pad
            draw.text((tx, ty), line, font=font, fill=style.color)
            ty += line_h

        bw = style.border_width * self.image_scale
        edges = {
            "border_top": ((x0, y0), (x1 - 1, y0)),
            "border_bottom": ((x0, y1 - 1), (x1 - 1, y1 - 1)),
            "border_left": ((x0, y0), (x0, y1 - 1)),
            "border_right": ((x1 - 1, y0), (x1 - 1, y1 - 1)),
        }
        for side, enabled in style.sides().items():
            if enabled:
                start, end = edges[side]
                _draw_edge(draw, start, end, style.border_color, style.border_style, bw)

    # ---------- paginated document ----------
    def page_size(self) -> tuple[int, int]:
        w, h = A4_POINTS
        return (h, w) if self.page_orientation == "l" else (w, h)

    def paginate(self, image: Image.Image) -> list[Image.Image]:
        """Slice the bitmap into page-sized images at the bitmap's own resolution."""
        page_w, page_h = self.page_size()
        page_px_w = image.width
        page_px_h = max(1, round(image.width * page_h / page_w))

        pages = []
        for offset in page_offsets(image.height, page_px_h):
            page = Image.new("RGB", (page_px_w, page_px_h), "#ffffff")
            page.paste(image, (0, int(offset)))
            pages.append(page)
        return pages

    def page_count(self, image: Image.Image) -> int:
        page_w, page_h = self.page_size()
        page_px_h = max(1, round(image.width * page_h / page_w))
        return max(1, math.ceil(image.height / page_px_h))

    # ---------- writers ----------
    def write_csv(self, path: str) -> str:
        self.require_data()
        self._write_text(path, self.to_delimited())
        logger.info("exported csv to %s", path)
        return path

    def write_json(self, path: str) -> str:
        self.require_data()
        self._write_text(path, json.dumps(self.snapshot(), indent=2, default=str))
        logger.info("exported snapshot to %s", path)
        return path

    def write_png(self, path: str) -> str:
        image = self.render_image()
        try:
            image.save(path, "PNG")
        except OSError as exc:
            logger.warning("png export failed: %s", exc)
            raise WorkspaceIOError("Could not download PNG.") from exc
        logger.info("exported png %dx%d to %s", image.width, image.height, path)
        return path

    def write_pdf(self, path: str) -> str:
        image = self.render_image()
        pages = self.paginate(image)
        page_w, _ = self.page_size()
        resolution = 72.0 * image.width / page_w
        try:
            pages[0].save(
                path,
                "PDF",
                resolution=resolution,
                save_all=True,
                append_images=pages[1:],
            )
        except OSError as exc:
            logger.warning("pdf export failed: %s", exc)
            raise WorkspaceIOError("Could not download PDF.") from exc
        logger.info("exported pdf (%d pages) to %s", len(pages), path)
        return path

    def _write_text(self, path: str, text: str):
        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(text)
        except OSError as exc:
            logger.warning("export to %s failed: %s", path, exc)
            raise WorkspaceIOError(f"Could not write {path}: {exc}") from exc
