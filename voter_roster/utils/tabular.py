"""
Tabular file reading for the import command.

The roster engine consumes rows as plain dicts; this adapter turns a
spreadsheet or CSV file into such rows with pandas.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List

import pandas as pd

from ..exceptions import DataPersistenceError

CSV_EXTENSIONS = {".csv", ".txt"}
EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}


def read_tabular_rows(path: Path, sheet: int | str = 0) -> List[dict[str, Any]]:
    """
    Read the first sheet (or a CSV file) into a list of row dicts.

    Every cell is read as text so identity numbers keep their leading
    zeros; empty cells become None.

    Args:
        path: .csv / .xlsx / .xlsm file
        sheet: Sheet index or name for spreadsheets

    Returns:
        Rows keyed by header name
    """
    path = Path(path)
    suffix = path.suffix.lower()

    try:
        if suffix in CSV_EXTENSIONS:
            df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        elif suffix in EXCEL_EXTENSIONS:
            df = pd.read_excel(path, sheet_name=sheet, dtype=str)
        else:
            raise DataPersistenceError(
                f"Unsupported file type '{suffix}' (expected CSV or Excel)",
                file_path=str(path),
                operation="load",
            )
    except (OSError, ValueError) as e:
        raise DataPersistenceError(f"Could not read {path.name}: {e}", file_path=str(path), operation="load") from e

    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")
