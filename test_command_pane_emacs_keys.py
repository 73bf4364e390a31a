import curses

from command_pane import CommandPane


def _feed(pane: CommandPane, keys):
    pane.activate()
    for k in keys:
        pane.handle_key(k)


def test_alt_f_stops_at_assignment_separator():
    pane = CommandPane()
    pane.set_buffer("style bg=#fef3c7")
    pane.cursor = len("style ")
    _feed(pane, [27, ord("f")])  # Alt+f
    assert pane.cursor == len("style bg")


def test_alt_b_moves_back_one_word():
    pane = CommandPane()
    text = "sort Date:date-desc"
    pane.set_buffer(text)
    _feed(pane, [27, ord("b")])  # Alt+b
    assert pane.cursor == len("sort Date:")


def test_alt_d_deletes_next_word():
    pane = CommandPane()
    pane.set_buffer("export png table")
    pane.cursor = len("export")
    _feed(pane, [27, ord("d")])
    assert pane.get_buffer() == "export table"


def test_ctrl_w_deletes_prev_path_segment():
    pane = CommandPane()
    pane.set_buffer("load ~/exams/timetable.xlsx")
    _feed(pane, [23])  # Ctrl+W
    assert pane.get_buffer() == "load ~/exams/"
    assert pane.cursor == len("load ~/exams/")


def test_ctrl_u_and_ctrl_k_kill():
    pane = CommandPane()
    pane.set_buffer("abc def")
    pane.cursor = len("abc de")
    _feed(pane, [21])  # Ctrl+U
    assert pane.get_buffer() == "f"
    assert pane.cursor == 0

    pane.set_buffer("select 1 Date")
    pane.cursor = len("select 1")
    _feed(pane, [11])  # Ctrl+K
    assert pane.get_buffer() == "select 1"


def test_typing_and_backspace():
    pane = CommandPane()
    _feed(pane, [ord(c) for c in "drag"] + [curses.KEY_BACKSPACE, ord("g")])
    assert pane.get_buffer() == "drag"
    assert pane.handle_key(10) == "submit"


def test_history_walks_back_and_forward():
    pane = CommandPane()
    pane.push_history("drag")
    pane.push_history("pad 10 10")
    _feed(pane, [16, 16])  # Ctrl+P twice
    assert pane.get_buffer() == "drag"
    pane.handle_key(14)  # Ctrl+N
    assert pane.get_buffer() == "pad 10 10"
    pane.handle_key(14)
    assert pane.get_buffer() == ""


def test_esc_alone_cancels():
    pane = CommandPane()
    pane.activate()
    pane.set_buffer("something")
    res = pane.handle_key(27)
    # no meta follow-up, so the next key cancels
    res2 = pane.handle_key(ord("z"))
    assert res is None
    assert res2 == "cancel"
    assert pane.get_buffer() == ""
    assert pane.cursor == 0
