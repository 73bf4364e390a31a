import csv
import io
import json
import math

import pytest
from PIL import Image

from cell_overlay import SizeOverlay, StyleOverlay
from errors import ValidationError, WorkspaceIOError
from export_renderer import ExportRenderer, ScrollContainer, page_offsets, quote_field
from grid_store import GridStore


def _store(headers, rows):
    store = GridStore()
    store.initialize(headers)
    for row in rows:
        store.append_row(row)
    return store


def test_quote_doubling_in_delimited_text():
    store = _store(["Note"], [['He said "hi", bye']])
    lines = ExportRenderer(store).to_delimited().split("\n")
    assert lines[0] == '"Note"'
    assert lines[1] == '"He said ""hi"", bye"'


def test_delimited_round_trip_through_csv_reader():
    rows = [
        ["2024-01-01", 'quote "x"', "comma, inside"],
        ["", None, "line\nbreak"],
    ]
    store = _store(["Date", "Sub Code", "Name"], rows)
    text = ExportRenderer(store).to_delimited()
    parsed = list(csv.reader(io.StringIO(text)))
    assert parsed[0] == ["Date", "Sub Code", "Name"]
    assert parsed[1] == rows[0]
    assert parsed[2] == ["", "", "line\nbreak"]


def test_visible_columns_and_blank_header_labels():
    store = _store(["Date", "", "Name"], [["d", "c", "n"]])
    renderer = ExportRenderer(store, visible_columns=[1, 2], delimiter=";")
    assert renderer.to_delimited() == '"Col 2";"Name"\n"c";"n"'


def test_export_requires_data_rows():
    store = _store(["Date"], [])
    renderer = ExportRenderer(store)
    with pytest.raises(ValidationError, match="No data to export."):
        renderer.write_csv("unused.csv")
    with pytest.raises(ValidationError):
        renderer.render_image()


def test_snapshot_has_no_styling():
    store = _store(["Date", "Name"], [["2024-01-01", "x"]])
    styles = StyleOverlay()
    styles.update_style(1, 0, "color", "#ff0000")
    snap = ExportRenderer(store, styles).snapshot()
    assert snap == {"headers": ["Date", "Name"], "rows": [["2024-01-01", "x"]]}


def test_write_json_and_csv(tmp_path):
    store = _store(["Date", "Name"], [["2024-01-01", "x"]])
    renderer = ExportRenderer(store)
    json_path = renderer.write_json(str(tmp_path / "out.json"))
    with open(json_path, encoding="utf-8") as f:
        assert json.load(f)["rows"] == [["2024-01-01", "x"]]
    csv_path = renderer.write_csv(str(tmp_path / "out.csv"))
    with open(csv_path, encoding="utf-8", newline="") as f:
        assert f.read() == '"Date","Name"\n"2024-01-01","x"'


def test_write_failure_is_io_error(tmp_path):
    store = _store(["Date"], [["x"]])
    with pytest.raises(WorkspaceIOError):
        ExportRenderer(store).write_csv(str(tmp_path / "missing" / "out.csv"))


def test_clipboard_text_is_tab_separated():
    store = _store(["Date", "Name"], [["2024-01-01", "x"], ["2024-01-02", "y"]])
    text = ExportRenderer(store).clipboard_text()
    assert text == "Date\tName\n2024-01-01\tx\n2024-01-02\ty\n"


@pytest.mark.parametrize("height", [1, 500, 842, 843, 2000, 5000])
def test_page_offsets_count_matches_ceil(height):
    offsets = page_offsets(height, 842)
    assert len(offsets) == max(1, math.ceil(height / 842))
    assert offsets[0] == 0
    for i, offset in enumerate(offsets[1:], start=1):
        assert offset == pytest.approx(-842 * i)


def test_paginate_slices_bitmap_into_pages():
    renderer = ExportRenderer(_store(["A"], [["x"]]))
    image = Image.new("RGB", (595, 2000), "#ff0000")
    pages = renderer.paginate(image)
    assert len(pages) == 3
    assert all(page.size == (595, 842) for page in pages)
    assert renderer.page_count(image) == 3


def test_landscape_page_size():
    renderer = ExportRenderer(_store(["A"], [["x"]]), page_orientation="l")
    assert renderer.page_size() == (842, 595)


def test_render_image_uses_cell_sizes_and_scale():
    store = _store(["Date", "Name"], [["2024-01-01", "x"]])
    sizes = SizeOverlay()
    sizes.update_size(1, 1, width=200, height=40)
    image = ExportRenderer(store, sizes=sizes, image_scale=2).render_image()
    assert image.size == ((120 + 200) * 2, (24 + 40) * 2)


def test_render_image_paints_backgrounds():
    store = _store(["Date"], [["x"]])
    styles = StyleOverlay()
    styles.update_style(1, 0, None, {"background_color": "#ff0000", "border_width": 0})
    image = ExportRenderer(store, styles, image_scale=1).render_image()
    assert image.getpixel((60, 2)) == (243, 244, 246)
    assert image.getpixel((100, 40)) == (255, 0, 0)


def test_wrapped_text_grows_row():
    text = "a rather long note that cannot fit on one line of a narrow cell"
    store = _store(["Note"], [[text]])
    styles = StyleOverlay()
    styles.update_style(1, 0, "wrap", True)
    image = ExportRenderer(store, styles, image_scale=1).render_image()
    assert image.height > 48


def test_write_png_and_pdf(tmp_path):
    store = _store(["Date", "Name"], [[f"2024-01-{i:02d}", "x"] for i in range(1, 30)])
    renderer = ExportRenderer(store, image_scale=1)
    png = renderer.write_png(str(tmp_path / "out.png"))
    with Image.open(png) as img:
        assert img.size == (240, 30 * 24)
    pdf = renderer.write_pdf(str(tmp_path / "out.pdf"))
    with open(pdf, "rb") as f:
        assert f.read(5) == b"%PDF-"


def test_scroll_containers_expanded_during_capture_and_restored():
    store = _store(["Date"], [["x"]])
    renderer = ExportRenderer(store)
    container = ScrollContainer("grid", max_height=10, overflow_y="auto")
    renderer.scroll_containers = [container]
    seen = []

    def fake_render():
        seen.append((container.max_height, container.overflow_y))
        return Image.new("RGB", (1, 1))

    renderer._render = fake_render
    renderer.render_image()
    assert seen == [(None, "visible")]
    assert (container.max_height, container.overflow_y) == (10, "auto")


def test_scroll_containers_restored_after_failure():
    store = _store(["Date"], [["x"]])
    renderer = ExportRenderer(store)
    container = ScrollContainer("grid", max_height=10, overflow_y="auto")
    renderer.scroll_containers = [container]

    def boom():
        raise RuntimeError("capture failed")

    renderer._render = boom
    with pytest.raises(RuntimeError):
        renderer.render_image()
    assert container.max_height == 10
    assert container.overflow_y == "auto"


def test_quote_field_handles_none():
    assert quote_field(None) == '""'


def test_exports_derive_exam_time_from_session():
    store = _store(
        ["Date", "Session", "Time"],
        [["2024-01-01", "M", ""], ["2024-01-02", "E", ""], ["2024-01-03", "X", "4 PM"]],
    )
    renderer = ExportRenderer(store)
    lines = renderer.to_delimited().split("\n")
    assert lines[0] == '"Date","Session","Time"'
    assert lines[1] == '"2024-01-01","M","9:30 AM"'
    assert lines[2] == '"2024-01-02","E","1:30 PM"'
    assert lines[3] == '"2024-01-03","X","4 PM"'
    assert renderer.snapshot()["rows"][0] == ["2024-01-01", "M", "9:30 AM"]
    assert list(renderer.frame()["Time"]) == ["9:30 AM", "1:30 PM", "4 PM"]
    # the stored cells are untouched
    assert store.rows[1][2] == ""
