# inspect_excel.py
"""Preview the enrolment workbook: sheet list, header view and data view."""
import argparse
from pathlib import Path

import pandas as pd

from humanities_shared import (
    DATA_SKIP_ROWS,
    EXCEL_FILE,
    HEADER_N_ROWS,
    HEADER_SKIP_ROWS,
    SHEET_INDEX,
    SUBJECT_FIELDS,
    forward_fill,
    cell_text,
)


def list_sheets(path: Path) -> list:
    with pd.ExcelFile(path, engine="openpyxl") as xls:
        return list(xls.sheet_names)


def preview(path: Path, sheet_index: int = SHEET_INDEX, n_cols: int = 12, n_rows: int = 5) -> dict:
    """
    Raw header rows (before and after forward-fill) and the first data rows.

    Nothing is validated here, so a misplaced offset shows up as odd labels
    rather than an exception.
    """
    with pd.ExcelFile(path, engine="openpyxl") as xls:
        sheet = xls.sheet_names[sheet_index]
        headers = pd.read_excel(xls, sheet_name=sheet, header=None,
                                skiprows=HEADER_SKIP_ROWS, nrows=HEADER_N_ROWS)
        data = pd.read_excel(xls, sheet_name=sheet, header=None,
                             skiprows=DATA_SKIP_ROWS, nrows=n_rows)

    n_sub = len(SUBJECT_FIELDS)
    raw = [[cell_text(v) for v in headers.iloc[i, n_sub:n_sub + n_cols].tolist()]
           for i in range(headers.shape[0])]
    return {
        "sheet": sheet,
        "raw_headers": raw,
        "filled_headers": [forward_fill(r) for r in raw],
        "data": data.iloc[:, : n_sub + n_cols],
    }


def main():
    p = argparse.ArgumentParser(description="Preview the enrolment workbook layout.")
    p.add_argument("--input", default=str(EXCEL_FILE), help="Path to Excel file")
    p.add_argument("--sheet", type=int, default=SHEET_INDEX + 1, help="Sheet number, counting from 1 (default: 8)")
    args = p.parse_args()

    path = Path(args.input)
    if not path.exists():
        raise FileNotFoundError(f"Not found: {path}")

    print("\nSheets:")
    for i, s in enumerate(list_sheets(path), 1):
        print(f"  {i}. {s}")

    info = preview(path, args.sheet - 1)
    print(f"\n[{info['sheet']}] header rows (raw -> filled):")
    for raw, filled in zip(info["raw_headers"], info["filled_headers"]):
        print(f"  {raw}")
        print(f"  -> {filled}")
    print("\n  Sample rows:")
    print(info["data"].to_string(index=False))


if __name__ == "__main__":
    main()
