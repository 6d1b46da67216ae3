"""Tests for utils/csv_reader.py."""
import pytest

from media_rollup.utils.csv_reader import read_rows


def test_read_rows(tmp_path):
    path = tmp_path / "FR-ALLMODELS-MAR-25.csv"
    path.write_text("Week of Year,Model,Clicks\n10,Model A,5\n11,,7\n")
    fieldnames, rows = read_rows(path)
    assert fieldnames == ["Week of Year", "Model", "Clicks"]
    assert rows[1] == {"Week of Year": "11", "Model": "", "Clicks": "7"}


def test_read_rows_strips_bom(tmp_path):
    path = tmp_path / "export.csv"
    path.write_bytes("\ufeffWeek of Year,Clicks\n10,5\n".encode("utf-8"))
    fieldnames, _ = read_rows(path)
    assert fieldnames[0] == "Week of Year"


def test_read_rows_header_only(tmp_path):
    path = tmp_path / "export.csv"
    path.write_text("Week of Year,Clicks\n")
    fieldnames, rows = read_rows(path)
    assert fieldnames == ["Week of Year", "Clicks"]
    assert rows == []


def test_read_rows_empty_file(tmp_path):
    path = tmp_path / "export.csv"
    path.write_text("")
    assert read_rows(path) == ([], [])


def test_read_rows_missing(tmp_path):
    with pytest.raises(FileNotFoundError, match="Export file not found"):
        read_rows(tmp_path / "nope.csv")


def test_read_rows_not_utf8(tmp_path):
    path = tmp_path / "export.csv"
    path.write_bytes(b"Week of Year,Model\n10,\xff\xfe\xfa\n")
    with pytest.raises(UnicodeDecodeError):
        read_rows(path)
