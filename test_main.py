import json

import pytest

import main
from _version import __version__
from errors import ValidationError
from logging_setup import reset_logging


@pytest.fixture(autouse=True)
def _isolated_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def no_user_config(monkeypatch, tmp_path):
    monkeypatch.setattr(
        main,
        "load_config",
        lambda: {"LOG_LEVEL": "WARNING", "EXPORT_DIRECTORY": str(tmp_path)},
    )


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "timetable.csv"
    path.write_text(
        "Date,Sub Code,Subject\n"
        "2024-01-03,CS102,Data Structures\n"
        "2024-01-01,CS101,Intro to Computing\n"
        "2024-01-02,MA200,Linear Algebra\n"
    )
    return str(path)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Date:date-desc", ("Date", "date-desc")),
        ("Sub Code:TEXT-ASC", ("Sub Code", "text-asc")),
        ("a:b:text-desc", ("a:b", "text-desc")),
    ],
)
def test_parse_sort(text, expected):
    assert main.parse_sort(text) == expected


@pytest.mark.parametrize("text", ["Date", ":date-asc", "Date:", ""])
def test_parse_sort_rejects(text):
    with pytest.raises(ValidationError):
        main.parse_sort(text)


def test_export_kind():
    assert main.export_kind("out/Table.PDF") == "pdf"
    assert main.export_kind("noext") == ""


def test_version_flag(capsys):
    assert main.main(["-v"]) == 0
    assert capsys.readouterr().out.strip() == __version__


def test_help_flag(capsys):
    assert main.main(["--help"]) == 0
    assert "Usage:" in capsys.readouterr().out


def test_batch_export_sorted_json(no_user_config, source, tmp_path, capsys):
    out = tmp_path / "sorted.json"
    code = main.main([source, "--sort", "Date:date-asc", "--export", str(out)])
    assert code == 0
    assert capsys.readouterr().out.strip() == str(out)

    data = json.loads(out.read_text())
    assert [row[1] for row in data["rows"]] == ["CS101", "MA200", "CS102"]


def test_batch_search_narrows_rows(no_user_config, source, tmp_path):
    out = tmp_path / "hits.csv"
    assert main.main([source, "--search", "CS", "--export", str(out)]) == 0
    lines = out.read_text().split("\n")
    assert lines[0] == '"Date","Sub Code","Subject"'
    assert len(lines) == 3


def test_batch_reports_errors(no_user_config, source, tmp_path, capsys):
    out = tmp_path / "x.csv"
    assert main.main([source, "--sort", "Room:text-asc", "--export", str(out)]) == 1
    assert "Room" in capsys.readouterr().err

    assert main.main([source, "--search", "CS"]) == 1
    assert "--export" in capsys.readouterr().err

    assert main.main([source, "--export", str(tmp_path / "x.xlsx")]) == 1
