"""
Tabular export of voter lists and turnout tables.

Builds pandas DataFrames in the column layout used by the printed reports
and writes them as spreadsheet-friendly CSV.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

import pandas as pd

from ..exceptions import DataPersistenceError
from ..models import TurnoutRow, Voter
from ..utils.file_utils import ensure_dir

# Report column headers, in order
EXPORT_COLUMNS = [
    "STT",
    "Họ và Tên",
    "Số CCCD",
    "Địa chỉ",
    "Khu phố",
    "Tổ bầu cử",
    "Đơn vị bầu cử",
    "Khu vực bỏ phiếu",
    "Trạng thái",
    "Thời điểm bầu",
]

TURNOUT_COLUMNS = ["Nhóm", "Tổng số", "Đã bầu", "Chưa bầu", "Tỷ lệ (%)"]

DEFAULT_TIMEZONE = "Asia/Ho_Chi_Minh"
TIMESTAMP_FORMAT = "%H:%M:%S %d/%m/%Y"


def build_export_frame(voters: Iterable[Voter], tz: Optional[str] = DEFAULT_TIMEZONE) -> pd.DataFrame:
    """
    One row per voter with a 1-based sequence number.

    Check-in times are shown in ``tz`` local time; "-" when not voted.
    """
    zone = ZoneInfo(tz) if tz else None

    records = []
    for index, voter in enumerate(voters, start=1):
        voted_at = "-"
        if voter.voted_at is not None:
            stamp = voter.voted_at.astimezone(zone) if zone else voter.voted_at
            voted_at = stamp.strftime(TIMESTAMP_FORMAT)

        records.append([
            index,
            voter.full_name,
            voter.id_card,
            voter.address,
            voter.neighborhood,
            voter.voting_group,
            voter.constituency,
            voter.voting_area,
            voter.status_label,
            voted_at,
        ])

    return pd.DataFrame(records, columns=EXPORT_COLUMNS)


def build_turnout_frame(rows: Iterable[TurnoutRow]) -> pd.DataFrame:
    """Aggregation rows as a table."""
    return pd.DataFrame(
        [[r.key, r.total, r.voted, r.not_voted, r.percentage] for r in rows],
        columns=TURNOUT_COLUMNS,
    )


def export_voters_csv(voters: Iterable[Voter], path: Path, tz: Optional[str] = DEFAULT_TIMEZONE) -> Path:
    """
    Write the voter report to CSV.

    UTF-8 with BOM so spreadsheet programs detect the encoding.

    Returns:
        Path to the written file
    """
    return _write_csv(build_export_frame(voters, tz=tz), path)


def export_turnout_csv(rows: List[TurnoutRow], path: Path) -> Path:
    return _write_csv(build_turnout_frame(rows), path)


def _write_csv(frame: pd.DataFrame, path: Path) -> Path:
    path = Path(path)
    try:
        ensure_dir(path.parent)
        frame.to_csv(path, index=False, encoding="utf-8-sig")
    except OSError as e:
        raise DataPersistenceError(f"Cannot write {path}: {e}", file_path=str(path), operation="save") from e
    return path
