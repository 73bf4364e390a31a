import curses
import time

from command_executor import EXPORT_KINDS, CommandExecutor
from command_pane import CommandPane
from grid_pane import GridPane
from logging_setup import get_logger
from resize_interaction import HANDLES
from screen_layout import ScreenLayout
from search_merger import ALL_COLUMNS
from sort_filter import FILTER_STATES, SORT_MODES
from status_bar import render_status

logger = get_logger(__name__)

HANDLE_KEYS = {ord(str(i + 1)): name for i, name in enumerate(HANDLES)}
STATUS_SECONDS = {"success": 3, "info": 4, "validation": 4, "io": 6, "error": 6}


class Orchestrator:
    def __init__(self, stdscr, workspace, config=None):
        self.stdscr = stdscr
        curses.curs_set(1)
        curses.raw()
        self.stdscr.nodelay(False)
        self.stdscr.timeout(100)
        self.stdscr.keypad(True)
        try:
            curses.mousemask(curses.ALL_MOUSE_EVENTS | curses.REPORT_MOUSE_POSITION)
            curses.mouseinterval(0)
        except curses.error:
            pass

        self.ws = workspace
        self.layout = ScreenLayout(stdscr)
        self.grid = GridPane(workspace)

        self.command = CommandPane()
        self.exec = CommandExecutor(workspace, config)
        self.command.set_command_names(self.exec.get_command_names())
        self.command.set_argument_choices(
            {
                "sort": list(SORT_MODES),
                "filter": list(FILTER_STATES),
                "export": list(EXPORT_KINDS),
                "handle": list(HANDLES),
                "row": ["add", "del"],
                "search": [ALL_COLUMNS],
            }
        )

        self.focus = 0  # 0=grid, 1=cmd

        # ---- status ----
        self.status_msg = None
        self.status_msg_until = 0
        if self.ws.info_message:
            self._set_status(self.ws.info_message, 4)

    # ---------------- helpers ----------------

    def _set_status(self, msg, seconds=3):
        self.status_msg = msg
        self.status_msg_until = time.time() + seconds

    def _status_context(self):
        return {
            "status_msg": self.status_msg,
            "status_until": self.status_msg_until,
            "focus": self.focus,
            "file_name": self.ws.file_name,
            "total_rows": self.ws.store.row_count,
            "shown_rows": len(self.ws.view_rows()) if not self.ws.store.is_empty else 0,
            "filter_state": self.ws.filter_state,
            "drag_mode": self.ws.resize.drag_mode_enabled,
            "armed_handle": self.ws.resize.armed_handle,
            "selected": self.ws.selected,
        }

    def _select_cursor_cell(self):
        cell = self.grid.current_cell()
        if cell is not None:
            self.ws.select_cell(*cell)

    # ---------------- UI ----------------

    def redraw(self):
        try:
            curses.curs_set(1 if (self.focus == 1 and self.command.active) else 0)
        except curses.error:
            pass

        self.grid.draw(self.layout.table_win, active=(self.focus == 0))

        sw = self.layout.status_win
        sw.erase()
        _, w = sw.getmaxyx()
        try:
            sw.addnstr(0, 0, render_status(self._status_context(), w), w)
        except curses.error:
            pass
        sw.refresh()

        self.command.draw(self.layout.cmd_win, active=(self.focus == 1))

    # ---------------- command exec ----------------

    def _execute_command_buffer(self):
        line = self.command.get_buffer().strip()
        self.command.reset()
        self.focus = 0

        if not line:
            self._set_status("No command to execute", 3)
            return

        result = self.exec.execute(line)
        logger.debug("command %r -> %s", line, result.kind)
        if result.ok:
            self.command.push_history(line)
        if result.message:
            self._set_status(result.message, STATUS_SECONDS.get(result.kind, 3))

        if self.ws.selected is not None:
            self.grid.focus_cell(*self.ws.selected)
        self.grid.clamp_cursor()

    # ---------------- grid keys ----------------

    def _handle_grid_key(self, ch):
        if ch in (curses.KEY_LEFT, ord("h")):
            self.grid.move_left()
            self._select_cursor_cell()
        elif ch in (curses.KEY_RIGHT, ord("l")):
            self.grid.move_right()
            self._select_cursor_cell()
        elif ch in (curses.KEY_DOWN, ord("j")):
            self.grid.move_down()
            self._select_cursor_cell()
        elif ch in (curses.KEY_UP, ord("k")):
            self.grid.move_up()
            self._select_cursor_cell()
        elif ch == ord("d"):
            enabled = self.ws.resize.toggle_drag_mode()
            self._set_status("Drag mode on" if enabled else "Drag mode off", 2)
        elif ch in HANDLE_KEYS:
            if not self.ws.resize.drag_mode_enabled:
                self._set_status("Turn on drag mode first (d)", 3)
                return
            self.ws.resize.tap_handle(HANDLE_KEYS[ch])
        elif ch == ord("+"):
            if self.ws.add_row():
                self._set_status("Row added", 2)
        elif ch == ord("-"):
            if self.ws.delete_last_row():
                self.grid.clamp_cursor()
                self._set_status("Last row deleted", 2)
        elif ch == 27:  # Esc
            self.ws.resize.cancel()
            self.ws.clear_selection()

    # ---------------- mouse ----------------

    def _handle_mouse(self):
        try:
            _, mx, my, _, bstate = curses.getmouse()
        except curses.error:
            return
        y, x = self.layout.to_table(my, mx)
        pointer = self.grid.to_pointer(y, x)

        pressed = bstate & (curses.BUTTON1_PRESSED | curses.BUTTON1_CLICKED)
        released = bstate & curses.BUTTON1_RELEASED

        if self.ws.resize.is_dragging:
            if released:
                self.ws.resize.pointer_up(pointer)
                record = self.ws.sizes.get(*self.ws.selected)
                if record is not None:
                    self._set_status(f"Size {record.width}x{record.height}", 2)
            else:
                self.ws.resize.pointer_move(pointer)
            return

        hit = self.grid.hit_test(y, x)
        if hit is None or not pressed:
            return
        kind, target = hit
        if kind == "handle":
            self.ws.resize.press_handle(
                target, pointer if bstate & curses.BUTTON1_PRESSED else None
            )
            return

        self.ws.select_cell(*target)
        self.grid.focus_cell(*target)

    # ---------------- main loop ----------------

    def run(self):
        self.stdscr.clear()
        self.stdscr.refresh()
        self.redraw()

        try:
            while True:
                ch = self.stdscr.getch()

                if ch == -1:
                    self.redraw()
                    continue

                if ch in (3, 24):
                    break

                if ch == curses.KEY_RESIZE:
                    curses.update_lines_cols()
                    self.layout.rebuild()
                    self.stdscr.clear()
                    self.stdscr.refresh()
                elif ch == curses.KEY_MOUSE:
                    self._handle_mouse()
                elif self.focus == 0:
                    if ch == ord(":"):
                        self.command.activate()
                        self.focus = 1
                    else:
                        self._handle_grid_key(ch)
                elif self.focus == 1:
                    result = self.command.handle_key(ch)
                    if result == "submit":
                        self._execute_command_buffer()
                    elif result == "cancel":
                        self.focus = 0

                self.redraw()
        finally:
            self.ws.dispose()
