from __future__ import annotations

import math
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

# ---------------- Paths ----------------
DATA_DIR = Path("./data")
OUTPUT_DIR = Path("./output")
EXCEL_FILE = DATA_DIR / "enrolments.xlsx"

# ---------------- Sheet layout ----------------
# Sheet 8 of the workbook (pandas counts sheets from 0)
SHEET_INDEX = 7
HEADER_SKIP_ROWS = 2
HEADER_N_ROWS = 3        # qualification level / qualification type / year
DATA_SKIP_ROWS = 5

HEADER_SEP = "|"

SUBJECT_FIELDS = ["field_broad", "field_narrow", "field_detailed"]
KEY_FIELDS = ["qualification_level", "qualification_type", "year"]
COUNT_FIELD = "student_count"
ROW_FIELD = "row"

TOTAL_SUFFIX = ": Total"

# ---------------- Qualification filters ----------------
QUALIFICATION_LEVELS = [
    "Bachelors",
    "Honours/postgrad cert-dip",
    "Masters",
    "Doctorates",
]
TOTAL_TYPE = "Total"   # drops the domestic/international split

# ---------------- Subject taxonomy ----------------
SOCIETY_AND_CULTURE = "Society and Culture"

# Detailed fields counted as humanities (grouped by narrow field)
HUMANITIES_SUBJECTS = [
    # Studies in Human Society
    "Studies in Human Society, n.f.d.",
    "Sociology",
    "Anthropology",
    "History",
    "Archaeology",
    "Human Geography",
    "Indigenous Studies",
    "Gender Specific Studies",
    "Studies in Human Society, n.e.c.",
    # Language and Literature
    "Language and Literature, n.f.d.",
    "English Language",
    "Northern European Languages",
    "Southern European Languages",
    "Eastern European Languages",
    "Southwest Asian and North African Languages",
    "Southern Asian Languages",
    "Southeast Asian Languages",
    "Eastern Asian Languages",
    "Linguistics",
    "Literature",
    # Philosophy and Religious Studies
    "Philosophy and Religious Studies, n.f.d.",
    "Philosophy",
    "Religious Studies",
]

# Catch-all codes, not real subjects; left out of the per-subject comparison
AGGREGATE_SUBJECTS = [
    "Studies in Human Society, n.f.d.",
    "Studies in Human Society, n.e.c.",
    "Language and Literature, n.f.d.",
    "Philosophy and Religious Studies, n.f.d.",
]

# ---------------- Comparison window ----------------
BASE_YEAR = 2008
COMPARE_YEAR = 2017
DELTA_TOP_N = 5          # losses and gains each -> 10 bars
DELTA_SUBJECTS: List[str] | None = None   # set to pin the bar chart to a fixed list

# ---------------- Proportion bands (bottom -> top) ----------------
BAND_HUMANITIES = "Humanities"
BAND_OTHER_SC = "Other Society and Culture"
BAND_ALL_OTHER = "All other fields"
BANDS_BOTTOM_TO_TOP = [BAND_HUMANITIES, BAND_OTHER_SC, BAND_ALL_OTHER]

# ---------------- Unified palette (Okabe–Ito) ----------------
UNIFIED_PALETTE = {
    BAND_HUMANITIES: "#CC79A7",   # purple
    BAND_OTHER_SC:   "#F0C5A8",   # light burnt orange
    BAND_ALL_OTHER:  "#D8D8D8",   # light gray
}
TREND_LINE_COLOR = "#0072B2"      # blue
TREND_FIT_COLOR = "#D55E00"       # vermilion
GAIN_COLOR = "#1b6ca8"            # dark blue
LOSS_COLOR = "#955196"            # purple


# ---------------- Blank handling & forward-fill ----------------
def is_blank(val) -> bool:
    if val is None or val is pd.NA:
        return True
    if isinstance(val, float) and math.isnan(val):
        return True
    if isinstance(val, str) and not val.strip():
        return True
    return False

def forward_fill(values: Sequence) -> List:
    """
    Replace each blank with the nearest preceding non-blank value.

    Mirrors a merged spreadsheet cell, whose label is only recorded in its
    first cell. Leading blanks have nothing to carry and come back as None.
    """
    out = []
    carry = None
    for val in values:
        if is_blank(val):
            out.append(carry)
        else:
            carry = val
            out.append(val)
    return out

def cell_text(val) -> str | None:
    """Header cell as text; whole-number floats lose their '.0' (2008.0 -> '2008')."""
    if is_blank(val):
        return None
    if isinstance(val, (float, np.floating)) and float(val).is_integer():
        return str(int(val))
    return str(val).strip()


# ---------------- Loaders ----------------
def load_sheet(path: Path = EXCEL_FILE, sheet_index: int = SHEET_INDEX,
               header_skip: int = HEADER_SKIP_ROWS, header_rows: int = HEADER_N_ROWS,
               data_skip: int = DATA_SKIP_ROWS) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Read the two overlapping views of one sheet.

    Returns:
        (headers, data): untyped grids with positional column labels. The
        headers grid holds exactly `header_rows` rows; the data grid holds
        every non-blank row below `data_skip`, trimmed to the header width.

    Raises:
        FileNotFoundError: workbook missing
        ValueError: sheet index out of range, or a grid of the wrong shape
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Not found: {path}")

    with pd.ExcelFile(path, engine="openpyxl") as xls:
        n_sheets = len(xls.sheet_names)
        if not 0 <= sheet_index < n_sheets:
            raise ValueError(
                f"Sheet index {sheet_index} out of range: workbook has {n_sheets} sheets"
            )
        sheet = xls.sheet_names[sheet_index]
        headers = pd.read_excel(xls, sheet_name=sheet, header=None,
                                skiprows=header_skip, nrows=header_rows)
        data = pd.read_excel(xls, sheet_name=sheet, header=None, skiprows=data_skip)

    if headers.shape[0] < header_rows:
        raise ValueError(f"Expected {header_rows} header rows in '{sheet}', found {headers.shape[0]}")
    if headers.shape[1] <= len(SUBJECT_FIELDS):
        raise ValueError(f"No data columns after the subject fields in '{sheet}'")

    width = headers.shape[1]
    if data.shape[1] > width:
        extra = data.iloc[:, width:]
        if extra.notna().any().any():
            raise ValueError(
                f"Data in '{sheet}' extends past the {width} header columns"
            )
    data = data.reindex(columns=range(width))
    data = data.dropna(how="all").reset_index(drop=True)

    return headers, data


# ---------------- Header synthesis ----------------
def synthesize_headers(headers: pd.DataFrame, n_subject_cols: int = len(SUBJECT_FIELDS),
                       sep: str = HEADER_SEP) -> List[str]:
    """
    Build one composite key per data column from the stacked header rows.

    Each header row is forward-filled left to right over the data columns,
    then the rows are joined top to bottom with `sep`.
    """
    filled_rows = []
    for i in range(headers.shape[0]):
        cells = [cell_text(v) for v in headers.iloc[i, n_subject_cols:].tolist()]
        filled = forward_fill(cells)
        if filled and filled[0] is None:
            raise ValueError(
                f"Header row {i + 1} has no label in its first data column; "
                "cannot forward-fill merged cells"
            )
        for label in filled:
            if sep in label:
                raise ValueError(f"Header label {label!r} contains the separator {sep!r}")
        filled_rows.append(filled)

    keys = [sep.join(parts) for parts in zip(*filled_rows)]
    dupes = sorted({k for k in keys if keys.count(k) > 1})
    if dupes:
        raise ValueError(f"Duplicate composite header keys: {dupes[:5]}")
    return keys

def split_key(key: str, sep: str = HEADER_SEP) -> Tuple[str, str, str]:
    parts = key.split(sep)
    if len(parts) != len(KEY_FIELDS):
        raise ValueError(f"Malformed composite key {key!r}")
    return tuple(parts)


# ---------------- Reshape ----------------
def build_wide(data: pd.DataFrame, keys: List[str]) -> pd.DataFrame:
    """Name the data grid: subject fields first, composite keys for the counts."""
    n_subject = len(SUBJECT_FIELDS)
    if data.shape[1] != n_subject + len(keys):
        raise ValueError(
            f"Data grid has {data.shape[1]} columns, expected {n_subject + len(keys)}"
        )
    wide = data.copy()
    wide.columns = SUBJECT_FIELDS + list(keys)
    return wide

def reshape_to_tall(wide: pd.DataFrame, sep: str = HEADER_SEP) -> pd.DataFrame:
    """
    Unpivot the wide table: one row per (source row, count column).

    The composite key is split back into qualification level, qualification
    type and year. Rows = len(wide) * number of count columns.
    """
    value_cols = [c for c in wide.columns if c not in SUBJECT_FIELDS]
    w = wide.reset_index(drop=True).copy()
    w.insert(0, ROW_FIELD, range(len(w)))

    tall = w.melt(id_vars=[ROW_FIELD] + SUBJECT_FIELDS, value_vars=value_cols,
                  var_name="_key", value_name=COUNT_FIELD)
    parts = pd.DataFrame([split_key(k, sep) for k in tall["_key"]],
                         columns=KEY_FIELDS, index=tall.index)
    tall = pd.concat([tall.drop(columns="_key"), parts], axis=1)

    years = pd.to_numeric(tall["year"], errors="coerce")
    if years.isna().any():
        bad = sorted(set(tall.loc[years.isna(), "year"].astype(str)))
        raise ValueError(f"Non-numeric year labels in header: {bad[:5]}")
    tall["year"] = years.astype(int)
    tall[COUNT_FIELD] = pd.to_numeric(tall[COUNT_FIELD], errors="coerce").astype("Int64")

    tall = tall.sort_values([ROW_FIELD], kind="stable").reset_index(drop=True)
    return tall[[ROW_FIELD] + SUBJECT_FIELDS + KEY_FIELDS + [COUNT_FIELD]]

def pivot_to_wide(tall: pd.DataFrame, sep: str = HEADER_SEP) -> pd.DataFrame:
    """Inverse of reshape_to_tall: rebuild the wide table keyed on source row."""
    t = tall.copy()
    t["_key"] = (t["qualification_level"].astype(str) + sep +
                 t["qualification_type"].astype(str) + sep +
                 t["year"].astype(str))
    key_order = list(dict.fromkeys(t["_key"]))
    counts = t.pivot(index=ROW_FIELD, columns="_key", values=COUNT_FIELD)[key_order]
    counts.columns.name = None
    subjects = t.drop_duplicates(subset=[ROW_FIELD]).set_index(ROW_FIELD)[SUBJECT_FIELDS]
    wide = pd.concat([subjects, counts], axis=1).sort_index()
    wide.index.name = None
    return wide.reset_index(drop=True)


# ---------------- Clean & filter ----------------
def strip_total_suffix(val, suffix: str = TOTAL_SUFFIX):
    if isinstance(val, str) and val.endswith(suffix):
        return val[: -len(suffix)].strip()
    return val

def clean_subjects(tall: pd.DataFrame, suffix: str = TOTAL_SUFFIX) -> pd.DataFrame:
    """
    Fill the subject hierarchy down the sheet, strip ': Total', drop subtotal rows.

    Broad and narrow labels sit only on the first row of their block in the
    sheet, so the fill runs over source rows in order before the tall rows
    pick them up.
    """
    per_row = (tall.drop_duplicates(subset=[ROW_FIELD])
                   .sort_values(ROW_FIELD)[[ROW_FIELD] + SUBJECT_FIELDS]
                   .reset_index(drop=True))
    for col in ("field_broad", "field_narrow"):
        per_row[col] = forward_fill(per_row[col].tolist())
    for col in SUBJECT_FIELDS:
        per_row[col] = [strip_total_suffix(v, suffix) for v in per_row[col]]
        per_row[col] = [None if is_blank(v) else v for v in per_row[col]]

    out = tall.drop(columns=SUBJECT_FIELDS).merge(per_row, on=ROW_FIELD, how="left")
    out = out[out["field_detailed"].notna()].copy()
    cols = [ROW_FIELD] + SUBJECT_FIELDS + [c for c in out.columns
                                           if c not in SUBJECT_FIELDS and c != ROW_FIELD]
    return out[cols].reset_index(drop=True)

def filter_qualifications(tall: pd.DataFrame, levels: Sequence[str] = QUALIFICATION_LEVELS,
                          total_type: str = TOTAL_TYPE) -> pd.DataFrame:
    """Keep degree-level-or-higher 'Total' rows, then drop the now-constant type column."""
    mask = tall["qualification_level"].isin(list(levels)) & (tall["qualification_type"] == total_type)
    return tall[mask].drop(columns=["qualification_type"]).reset_index(drop=True)

def filter_humanities(filtered: pd.DataFrame, subjects: Sequence[str] = HUMANITIES_SUBJECTS,
                      broad: str = SOCIETY_AND_CULTURE) -> pd.DataFrame:
    mask = (filtered["field_broad"] == broad) & filtered["field_detailed"].isin(list(subjects))
    return filtered[mask].reset_index(drop=True)


# ---------------- Full preparation ----------------
def prepare_enrolments(path: Path = EXCEL_FILE, sheet_index: int = SHEET_INDEX,
                       levels: Sequence[str] = QUALIFICATION_LEVELS,
                       total_type: str = TOTAL_TYPE) -> pd.DataFrame:
    """Load the sheet and run it through header synthesis, reshape, clean and filter."""
    headers, data = load_sheet(path, sheet_index)
    keys = synthesize_headers(headers)
    wide = build_wide(data, keys)
    tall = reshape_to_tall(wide)
    print(f"  Reshaped {len(wide)} rows x {len(keys)} columns -> {len(tall)} tall rows")
    cleaned = clean_subjects(tall)
    filtered = filter_qualifications(cleaned, levels, total_type)
    print(f"  Kept {len(filtered)} rows after cleaning and qualification filters")
    return filtered

def summarize_years(df: pd.DataFrame) -> Dict[str, int]:
    if df.empty:
        return {"first": 0, "last": 0, "n": 0}
    years = sorted(df["year"].unique())
    return {"first": int(years[0]), "last": int(years[-1]), "n": len(years)}
