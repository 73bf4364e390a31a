import curses


class ScreenLayout:
    """Grid on top, then one status row and one command row."""

    STATUS_ROWS = 1
    COMMAND_ROWS = 1

    def __init__(self, stdscr):
        self.stdscr = stdscr
        self.rebuild()

    def rebuild(self):
        """Recreate the windows for the current terminal size."""
        self.H, self.W = self.stdscr.getmaxyx()
        self.table_h = max(1, self.H - self.STATUS_ROWS - self.COMMAND_ROWS)
        status_y = self.table_h
        cmd_y = self.table_h + self.STATUS_ROWS

        self.table_win = curses.newwin(self.table_h, self.W, 0, 0)
        # grid pane must never own cursor
        self.table_win.leaveok(True)

        self.status_win = curses.newwin(self.STATUS_ROWS, self.W, status_y, 0)
        self.status_win.leaveok(True)

        self.cmd_win = curses.newwin(self.COMMAND_ROWS, self.W, cmd_y, 0)

    def to_table(self, y, x):
        """Translate screen coordinates into table window coordinates."""
        win_y, win_x = self.table_win.getbegyx()
        return y - win_y, x - win_x
