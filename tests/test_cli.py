import pandas as pd
import pytest

import main


@pytest.fixture
def json_env(monkeypatch, tmp_path):
    monkeypatch.setenv("ROSTER_STORE", "json")
    monkeypatch.setenv("ROSTER_JSON_PATH", str(tmp_path / "roster.json"))
    from voter_roster.config import reset_config
    reset_config()
    return tmp_path


def test_import_checkin_and_export(json_env):
    source = json_env / "input.csv"
    source.write_text(
        "Họ tên,CCCD,Khu vực bỏ phiếu,Tổ bầu cử\n"
        "An,001,Khu vực 1,Tổ 1\n"
        "Bình,002,Khu vực 2,Tổ 2\n"
        "Lặp,001,Khu vực 1,Tổ 1\n",
        encoding="utf-8",
    )

    assert main.main(["import", str(source)]) == 0
    assert main.main(["checkin", "001", "--staff-area", "Khu vực 1"]) == 0
    assert main.main(["stats", "--by", "group", "--output", str(json_env / "turnout.csv")]) == 0
    assert (json_env / "turnout.csv").exists()

    out = json_env / "report.csv"
    assert main.main(["export", str(out)]) == 0
    df = pd.read_csv(out, dtype=str, encoding="utf-8-sig")
    assert df["Trạng thái"].tolist() == ["Đã bầu", "Chưa bầu"]


def test_out_of_scope_checkin_exits_non_zero(json_env):
    assert main.main(["seed-sample", "--count", "30", "--seed", "1"]) == 0
    assert main.main(["checkin", "100000000029", "--staff-area", "Khu vực 1"]) == 2


def test_staff_cannot_clear(json_env):
    assert main.main(["seed-sample", "--count", "5"]) == 0
    assert main.main(["clear", "--yes", "--staff-area", "Khu vực 1"]) == 2
    assert main.main(["clear"]) == 1
    assert main.main(["clear", "--yes"]) == 0


def test_unknown_user(json_env):
    assert main.main(["search", "An", "--as", "ghost"]) == 2
    assert main.main(["search", "An", "--as", "admin", "--password", "wrong"]) == 2


def test_export_defaults_to_exports_dir(json_env, monkeypatch):
    from voter_roster.config import reset_config

    monkeypatch.setenv("EXPORT_DIR", str(json_env / "exports"))
    reset_config()

    assert main.main(["seed-sample", "--count", "3"]) == 0
    assert main.main(["export"]) == 0
    assert len(list((json_env / "exports").glob("roster_*.csv"))) == 1
