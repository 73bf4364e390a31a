import curses

# separators between words in a command line: spaces plus the punctuation
# used by KEY=VALUE assignments, paths and COLUMN:MODE pairs
WORD_SEPARATORS = " \t=,:/"

CTRL_A, CTRL_D, CTRL_E, CTRL_H = 1, 4, 5, 8
CTRL_K, CTRL_N, CTRL_P, CTRL_U, CTRL_W = 11, 14, 16, 21, 23
TAB, ESC, BACKSPACE = 9, 27, 127


class CommandPane:
    """One-line ``:`` command editor with history and Tab completion."""

    PROMPT = ":"

    def __init__(self):
        self.buffer = ""
        self.cursor = 0
        self.hscroll = 0
        self.active = False
        self.history = []
        self.history_idx = None  # None means not navigating history
        self.command_names = []
        self.argument_choices = {}
        self.meta_pending = False
        self.ghost_attr = curses.A_DIM
        try:
            curses.start_color()
            curses.use_default_colors()
            curses.init_pair(9, curses.COLOR_WHITE, -1)
            self.ghost_attr = curses.color_pair(9) | curses.A_DIM
        except curses.error:
            self.ghost_attr = curses.A_DIM

    # ---------- state ----------
    def reset(self):
        self.buffer = ""
        self.cursor = 0
        self.hscroll = 0
        self.active = False
        self.history_idx = None
        self.meta_pending = False

    def activate(self):
        self.active = True
        self.cursor = max(0, min(self.cursor, len(self.buffer)))
        self.history_idx = None

    def get_buffer(self):
        return self.buffer

    def set_buffer(self, text):
        self.buffer = text or ""
        self.cursor = len(self.buffer)
        self.hscroll = 0
        self.history_idx = None

    def set_command_names(self, names):
        self.command_names = sorted(names or [])

    def set_argument_choices(self, choices):
        """Map a command name to the values offered for its arguments."""
        self.argument_choices = {k: list(v) for k, v in (choices or {}).items()}

    def push_history(self, line):
        line = (line or "").strip()
        if line and (not self.history or self.history[-1] != line):
            self.history.append(line)
        self.history_idx = None

    def _show_history(self):
        if self.history_idx is None:
            self.buffer = ""
        else:
            self.buffer = self.history[self.history_idx]
        self.cursor = len(self.buffer)
        self.hscroll = 0

    def _history_prev(self):
        if not self.history:
            return
        if self.history_idx is None:
            self.history_idx = len(self.history) - 1
        else:
            self.history_idx = max(0, self.history_idx - 1)
        self._show_history()

    def _history_next(self):
        if not self.history:
            return
        if self.history_idx is not None:
            self.history_idx += 1
            if self.history_idx >= len(self.history):
                self.history_idx = None
        self._show_history()

    # ---------- completion ----------
    def _extract_token(self):
        """(start, end, token, command, position) for the word before the cursor."""
        prefix = self.buffer[: self.cursor]
        after = self.buffer[self.cursor :]
        if after and not after[0].isspace():
            return None

        start = len(prefix)
        while start > 0 and not prefix[start - 1].isspace():
            start -= 1
        token = prefix[start:]
        if not token:
            return None

        words = prefix[:start].split()
        command = words[0] if words else None
        return start, self.cursor, token, command, len(words)

    def _candidates(self, command, position):
        if command is None:
            return self.command_names
        # sort takes COLUMN first, so its mode is the last argument
        if command == "sort":
            return self.argument_choices.get("sort", []) if position >= 2 else []
        if position == 1:
            return self.argument_choices.get(command, [])
        return []

    def _choose_suggestion(self, token, candidates):
        matches = sorted(
            (c for c in candidates if c.startswith(token) and c != token),
            key=lambda c: (len(c), c),
        )
        if not matches:
            return None
        chosen = matches[0]
        return chosen, chosen[len(token) :]

    def _get_suggestion(self):
        token_info = self._extract_token()
        if not token_info:
            return None
        start, end, token, command, position = token_info

        suggestion = self._choose_suggestion(token, self._candidates(command, position))
        if not suggestion:
            return None
        chosen, display = suggestion
        return {
            "replacement": chosen,
            "display": display,
            "start": start,
            "end": end,
            "command": command,
        }

    def _apply_suggestion(self, suggestion):
        start, end = suggestion["start"], suggestion["end"]
        replacement = suggestion["replacement"]
        self.buffer = self.buffer[:start] + replacement + self.buffer[end:]
        self.cursor = start + len(replacement)
        self.hscroll = min(self.hscroll, self.cursor)
        self.history_idx = None

    # ---------- word motion ----------
    def _word_left(self):
        i = self.cursor
        while i > 0 and self.buffer[i - 1] in WORD_SEPARATORS:
            i -= 1
        while i > 0 and self.buffer[i - 1] not in WORD_SEPARATORS:
            i -= 1
        return i

    def _word_right(self):
        i = self.cursor
        n = len(self.buffer)
        while i < n and self.buffer[i] in WORD_SEPARATORS:
            i += 1
        while i < n and self.buffer[i] not in WORD_SEPARATORS:
            i += 1
        return i

    # ---------- editing ----------
    def _delete(self, start, end):
        if start < end:
            self.buffer = self.buffer[:start] + self.buffer[end:]
            self.cursor = start
            self.history_idx = None

    def _insert(self, text):
        self.buffer = self.buffer[: self.cursor] + text + self.buffer[self.cursor :]
        self.cursor += len(text)
        self.history_idx = None

    def _handle_meta(self, ch):
        self.meta_pending = False
        if ch in (ord("f"), ord("F")):
            self.cursor = self._word_right()
            return None
        if ch in (ord("b"), ord("B")):
            self.cursor = self._word_left()
            return None
        if ch in (ord("d"), ord("D")):
            self._delete(self.cursor, self._word_right())
            return None
        # a lone Esc cancels the line
        self.reset()
        return "cancel"

    def handle_key(self, ch):
        """Apply one key; returns "submit", "cancel" or None."""
        if not self.active:
            return None
        if self.meta_pending:
            return self._handle_meta(ch)

        if ch in (10, 13, curses.KEY_ENTER):
            return "submit"
        if ch == ESC:
            self.meta_pending = True
        elif ch == TAB:
            suggestion = self._get_suggestion()
            if suggestion:
                self._apply_suggestion(suggestion)
        elif ch in (CTRL_P, curses.KEY_UP):
            self._history_prev()
        elif ch in (CTRL_N, curses.KEY_DOWN):
            self._history_next()
        elif ch == CTRL_W:
            self._delete(self._word_left(), self.cursor)
        elif ch == CTRL_U:
            self._delete(0, self.cursor)
        elif ch == CTRL_K:
            self._delete(self.cursor, len(self.buffer))
        elif ch in (curses.KEY_BACKSPACE, BACKSPACE):
            self._delete(max(0, self.cursor - 1), self.cursor)
        elif ch == curses.KEY_DC:
            self._delete(self.cursor, min(len(self.buffer), self.cursor + 1))
        elif ch in (CTRL_H, curses.KEY_LEFT):
            self.cursor = max(0, self.cursor - 1)
        elif ch in (CTRL_D, curses.KEY_RIGHT):
            self.cursor = min(len(self.buffer), self.cursor + 1)
        elif ch in (CTRL_A, curses.KEY_HOME):
            self.cursor = 0
        elif ch in (CTRL_E, curses.KEY_END):
            self.cursor = len(self.buffer)
        elif 32 <= ch <= 126:
            self._insert(chr(ch))
        return None

    # ---------- rendering ----------
    def draw(self, win, active=False):
        win.erase()
        _, w = win.getmaxyx()
        text_w = max(1, w - len(self.PROMPT) - 1)

        # keep the cursor inside the visible slice
        if self.cursor < self.hscroll:
            self.hscroll = self.cursor
        elif self.cursor > self.hscroll + text_w:
            self.hscroll = self.cursor - text_w
        visible = self.buffer[self.hscroll : self.hscroll + text_w]

        try:
            win.addnstr(0, 0, self.PROMPT, len(self.PROMPT))
            win.addnstr(0, len(self.PROMPT), visible, text_w)
        except curses.error:
            pass

        cursor_col = self.cursor - self.hscroll
        suggestion = self._get_suggestion() if self.active else None
        if suggestion and suggestion["display"] and 0 <= cursor_col < text_w:
            remaining = text_w - cursor_col
            try:
                win.addnstr(
                    0,
                    len(self.PROMPT) + cursor_col,
                    suggestion["display"][:remaining],
                    remaining,
                    self.ghost_attr,
                )
            except curses.error:
                pass

        if active and self.active:
            try:
                win.move(0, max(0, min(len(self.PROMPT) + cursor_col, w - 1)))
            except curses.error:
                pass

        win.refresh()
