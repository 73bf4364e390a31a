import time

from status_bar import render_status


def _ctx(**overrides):
    ctx = {
        "status_msg": None,
        "status_until": 0,
        "focus": 0,
        "file_name": "timetable.xlsx",
        "total_rows": 5,
        "shown_rows": 5,
        "filter_state": "none",
        "drag_mode": False,
        "armed_handle": None,
        "selected": None,
    }
    ctx.update(overrides)
    return ctx


def test_summary_line():
    text = render_status(_ctx(selected=(2, 0)), 80)
    assert text.rstrip() == " GRID | timetable.xlsx | 5/5 rows | R2C1"
    assert len(text) == 80


def test_filter_and_drag_mode_shown():
    text = render_status(
        _ctx(shown_rows=2, filter_state="this-week", drag_mode=True, armed_handle="corner"),
        120,
    )
    assert "GRID:DRAG[corner]" in text
    assert "2/5 rows (this-week)" in text


def test_command_focus_without_file():
    text = render_status(_ctx(focus=1, file_name=None), 60)
    assert text.startswith(" CMD | no file |")


def test_live_status_message_wins():
    ctx = _ctx(status_msg="Workspace copied", status_until=time.time() + 5)
    assert render_status(ctx, 40).rstrip() == " Workspace copied"


def test_expired_status_message_ignored():
    ctx = _ctx(status_msg="old news", status_until=time.time() - 1)
    assert "old news" not in render_status(ctx, 80)


def test_truncates_to_width():
    assert len(render_status(_ctx(), 10)) == 10
