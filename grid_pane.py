import curses

from cell_overlay import DEFAULT_WIDTH
from exam_time import ExamTimeColumn
from export_renderer import ScrollContainer

HANDLE_GLYPHS = {
    "left": "<",
    "right": ">",
    "top": "^",
    "bottom": "v",
    "corner": "+",
}


class GridPane:
    PAIR_CELL_ACTIVE = 1
    PAIR_HEADER = 2
    PAIR_HANDLE = 3
    PAIR_CELL_TEXT = 6
    CHAR_PX = 8
    LINE_PX = 16
    MIN_COL_CHARS = 3
    MAX_COL_CHARS = 60

    def __init__(self, workspace):
        self.ws = workspace
        try:
            curses.start_color()
            curses.use_default_colors()
            curses.init_pair(self.PAIR_CELL_ACTIVE, -1, curses.COLOR_WHITE)
            curses.init_pair(self.PAIR_CELL_TEXT, curses.COLOR_WHITE, -1)
            curses.init_pair(self.PAIR_HEADER, curses.COLOR_BLACK, curses.COLOR_WHITE)
            curses.init_pair(self.PAIR_HANDLE, curses.COLOR_YELLOW, -1)
        except curses.error:
            pass

        # cursor positions index into the filtered view and visible columns
        self.curr_row = 0
        self.curr_col = 0
        self.row_offset = 0
        self.col_offset = 0

        self.scroll = ScrollContainer("grid", max_height=None, overflow_y="auto")
        self.ws.scroll_containers.append(self.scroll)

        self.cell_boxes = {}
        self.handle_boxes = {}

    # ---------- geometry ----------
    def view_rows(self):
        return self.ws.view_rows()

    def columns(self):
        if self.ws.visible_columns:
            return list(self.ws.visible_columns)
        return list(range(self.ws.store.column_count))

    def col_chars(self, c):
        width_px = self.ws.sizes.column_width(c) or DEFAULT_WIDTH
        chars = width_px // self.CHAR_PX
        return max(self.MIN_COL_CHARS, min(self.MAX_COL_CHARS, chars))

    def current_cell(self):
        rows = self.view_rows()
        cols = self.columns()
        if not rows or not cols:
            return None
        r_idx = min(self.curr_row, len(rows) - 1)
        c_idx = min(self.curr_col, len(cols) - 1)
        return rows[r_idx][0], cols[c_idx]

    def clamp_cursor(self):
        rows = self.view_rows()
        cols = self.columns()
        self.curr_row = min(max(0, self.curr_row), max(0, len(rows) - 1))
        self.curr_col = min(max(0, self.curr_col), max(0, len(cols) - 1))

    def adjust_col_viewport(self, win=None):
        """Shift col_offset so curr_col sits inside the drawable width."""
        cols = self.columns()
        if not cols:
            self.col_offset = 0
            return

        if win is not None:
            h, w = win.getmaxyx()
        else:
            h, w = 24, 120

        row_w = self._row_label_width()
        avail_w = max(20, w - (row_w + 1))

        if self.curr_col < self.col_offset:
            self.col_offset = self.curr_col

        while True:
            used = 0
            visible_count = 0
            for c in cols[self.col_offset :]:
                cw = self.col_chars(c)
                if used + cw + 1 > avail_w:
                    break
                used += cw + 1
                visible_count += 1
            visible_count = max(1, visible_count)
            if self.curr_col < self.col_offset + visible_count:
                break
            self.col_offset += 1

        self.col_offset = max(0, min(self.col_offset, len(cols) - 1))

    def _row_label_width(self):
        return max(3, len(str(len(self.ws.store.rows))) + 1)

    # ---------- navigation ----------
    def move_left(self):
        self.curr_col = max(0, self.curr_col - 1)

    def move_right(self):
        self.curr_col = min(max(0, len(self.columns()) - 1), self.curr_col + 1)

    def move_down(self):
        self.curr_row = min(max(0, len(self.view_rows()) - 1), self.curr_row + 1)

    def move_up(self):
        self.curr_row = max(0, self.curr_row - 1)

    def focus_cell(self, r, c):
        """Move the cursor onto storage cell (r, c) if it is in the view."""
        for i, (row_idx, _) in enumerate(self.view_rows()):
            if row_idx == r:
                self.curr_row = i
                break
        cols = self.columns()
        if c in cols:
            self.curr_col = cols.index(c)

    # ---------- hit testing ----------
    def hit_test(self, y, x):
        """Return ("handle", direction), ("cell", (r, c)) or None."""
        for direction, (hy, hx) in self.handle_boxes.items():
            if hy == y and hx == x:
                return "handle", direction
        for key, (cy, cx, cw) in self.cell_boxes.items():
            if cy == y and cx <= x < cx + cw:
                return "cell", key
        return None

    def to_pointer(self, y, x):
        return x * self.CHAR_PX, y * self.LINE_PX

    # ---------- rendering ----------
    def cell_text(self, r, row, c, exam=None):
        """Display text of a data cell, with the exam Time column derived."""
        if exam is None:
            exam = ExamTimeColumn(self.ws.store.headers)
        val = exam.value(row, c) if r > 0 else row[c]
        return "" if val is None else str(val).replace("\n", " ")

    @staticmethod
    def _aligned(text, width, align):
        text = text[:width]
        if align == "center":
            return text.center(width)
        if align == "right":
            return text.rjust(width)
        return text.ljust(width)

    def draw(self, win, active=False):
        win.erase()
        try:
            win.bkgd(" ", curses.color_pair(self.PAIR_CELL_TEXT))
        except curses.error:
            pass
        h, w = win.getmaxyx()
        self.cell_boxes = {}
        self.handle_boxes = {}

        store = self.ws.store
        if store.is_empty:
            msg = "Empty workspace. :load PATH then :search QUERY"
            try:
                win.addnstr(1, 1, msg, max(1, w - 2), curses.A_DIM)
            except curses.error:
                pass
            win.refresh()
            return

        rows = self.view_rows()
        cols = self.columns()
        self.clamp_cursor()
        self.adjust_col_viewport(win)

        row_w = self._row_label_width()
        base_y = 2
        budget = max(0, h - base_y - 1)
        if self.scroll.overflow_y != "visible":
            self.scroll.max_height = budget

        if self.curr_row < self.row_offset:
            self.row_offset = self.curr_row
        elif budget and self.curr_row >= self.row_offset + budget:
            self.row_offset = self.curr_row - budget + 1

        visible_cols = []
        x = row_w + 1
        for c in cols[self.col_offset :]:
            cw = self.col_chars(c)
            if x >= w - 1:
                break
            eff_cw = min(cw, max(1, w - x - 1))
            visible_cols.append((c, x, eff_cw))
            x += eff_cw + 1

        # header
        for c, x, cw in visible_cols:
            label = store.headers[c]
            label = "" if label is None else str(label)
            if not label.strip():
                label = f"Col {c + 1}"
            try:
                win.addnstr(1, x, label[:cw].ljust(cw), cw, curses.A_BOLD)
            except curses.error:
                pass
            self.cell_boxes[(0, c)] = (1, x, cw)

        selected = self.ws.selected
        exam = ExamTimeColumn(store.headers)
        y = base_y
        for r, row in rows[self.row_offset : self.row_offset + budget]:
            try:
                win.addnstr(y, 0, str(r).rjust(row_w), row_w)
            except curses.error:
                pass
            for c, x, cw in visible_cols:
                style = self.ws.effective_style(r, c)
                text = self.cell_text(r, row, c, exam)
                attr = curses.color_pair(self.PAIR_CELL_TEXT)
                if style.wrap:
                    attr |= curses.A_UNDERLINE
                if selected == (r, c):
                    attr |= curses.A_REVERSE
                try:
                    win.addnstr(y, x, self._aligned(text, cw, style.text_align), cw, attr)
                except curses.error:
                    pass
                self.cell_boxes[(r, c)] = (y, x, cw)
            y += 1

        if self.ws.resize.drag_mode_enabled and selected in self.cell_boxes:
            self._draw_handles(win, self.cell_boxes[selected], h, w)

        try:
            win.hline(h - 1, 0, " ", w)
        except curses.error:
            pass

        win.refresh()

    def _draw_handles(self, win, box, h, w):
        y, x, cw = box
        mid = x + cw // 2
        spots = {
            "left": (y, x),
            "right": (y, x + cw - 1),
            "top": (y - 1, mid),
            "bottom": (y + 1, mid),
            "corner": (y + 1, x + cw - 1),
        }
        armed = self.ws.resize.armed_handle
        for direction, (hy, hx) in spots.items():
            if not (0 <= hy < h - 1 and 0 <= hx < w):
                continue
            attr = curses.color_pair(self.PAIR_HANDLE) | curses.A_BOLD
            if direction == armed:
                attr |= curses.A_REVERSE
            try:
                win.addnstr(hy, hx, HANDLE_GLYPHS[direction], 1, attr)
            except curses.error:
                pass
            self.handle_boxes[direction] = (hy, hx)
