import pandas as pd
import pytest

from voter_roster.exceptions import DataPersistenceError
from voter_roster.utils.tabular import read_tabular_rows


def test_read_csv_keeps_leading_zeros(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text("Họ tên,CCCD,Khu vực\nAn,079123456789,Khu vực 1\nBình,,Khu vực 2\n", encoding="utf-8")

    rows = read_tabular_rows(path)

    assert rows[0]["CCCD"] == "079123456789"
    assert rows[1]["Họ tên"] == "Bình"


def test_read_excel(tmp_path):
    path = tmp_path / "roster.xlsx"
    pd.DataFrame({"Họ và tên": ["An", "Bình"], "Số CCCD": ["001", None]}).to_excel(path, index=False)

    rows = read_tabular_rows(path)

    assert rows[0] == {"Họ và tên": "An", "Số CCCD": "001"}
    assert rows[1]["Số CCCD"] is None


def test_unsupported_extension(tmp_path):
    path = tmp_path / "roster.pdf"
    path.write_bytes(b"%PDF")

    with pytest.raises(DataPersistenceError):
        read_tabular_rows(path)


def test_missing_file(tmp_path):
    with pytest.raises(DataPersistenceError):
        read_tabular_rows(tmp_path / "missing.csv")


def test_legacy_xls_is_rejected_as_unsupported(tmp_path):
    path = tmp_path / "roster.xls"
    path.write_bytes(b"\xd0\xcf\x11\xe0")

    with pytest.raises(DataPersistenceError) as exc:
        read_tabular_rows(path)

    assert "Unsupported file type '.xls'" in exc.value.message
