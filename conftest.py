"""Synthetic enrolment workbook shaped like the real sheet 8."""
from pathlib import Path

import pytest
from openpyxl import Workbook

LEVELS = ["Bachelors", "Masters", "Sub-bachelor"]
TYPES = ["Domestic", "Total"]
YEARS = [2008, 2017]

# Total-type counts per subject: {level: (2008, 2017)}; Domestic is Total - 10
SUBJECT_COUNTS = {
    "History":                {"Bachelors": (1000, 800), "Masters": (100, 90), "Sub-bachelor": (50, 40)},
    "Sociology":              {"Bachelors": (500, 600),  "Masters": (50, 70),  "Sub-bachelor": (20, 20)},
    "Literature":             {"Bachelors": (700, 500),  "Masters": (80, 60),  "Sub-bachelor": (10, 10)},
    "Linguistics":            {"Bachelors": (None, 300), "Masters": (30, 45),  "Sub-bachelor": (5, 5)},
    "Economics":              {"Bachelors": (900, 1200), "Masters": (200, 250), "Sub-bachelor": (30, 30)},
    "Structural Engineering": {"Bachelors": (2000, 2500), "Masters": (300, 400), "Sub-bachelor": (100, 100)},
}


def _counts_row(subject):
    vals = []
    for level in LEVELS:
        for typ in TYPES:
            for i, _year in enumerate(YEARS):
                total = SUBJECT_COUNTS[subject][level][i]
                if total is None:
                    vals.append(None)
                else:
                    vals.append(total if typ == "Total" else total - 10)
    return vals


def _subtotal_row(subjects):
    rows = [_counts_row(s) for s in subjects]
    return [sum(v for v in col if v is not None) for col in zip(*rows)]


def sheet_rows():
    """Rows of the sheet as lists, starting at row 1."""
    n_cols = len(LEVELS) * len(TYPES) * len(YEARS)
    level_row, type_row, year_row = [None] * 3, [None] * 3, ["Field of education", None, None]
    for level in LEVELS:
        for t, typ in enumerate(TYPES):
            for y, year in enumerate(YEARS):
                level_row.append(level if t == 0 and y == 0 else None)
                type_row.append(typ if y == 0 else None)
                year_row.append(year)
    blank = [None] * n_cols

    return [
        ["Table 8: Award course students by broad, narrow and detailed field of education"],
        [],
        level_row,
        type_row,
        year_row,
        ["Society and Culture", None, None] + blank,
        [None, "Studies in Human Society", None] + blank,
        [None, None, "History"] + _counts_row("History"),
        [None, None, "Sociology"] + _counts_row("Sociology"),
        [None, "Studies in Human Society: Total", None] + _subtotal_row(["History", "Sociology"]),
        [None, "Language and Literature", None] + blank,
        [None, None, "Literature"] + _counts_row("Literature"),
        [None, None, "Linguistics"] + _counts_row("Linguistics"),
        [None, "Economics and Econometrics", None] + blank,
        [None, None, "Economics"] + _counts_row("Economics"),
        ["Society and Culture: Total", None, None]
            + _subtotal_row(["History", "Sociology", "Literature", "Linguistics", "Economics"]),
        ["Engineering and Related Technologies", None, None] + blank,
        [None, "Civil Engineering", None] + blank,
        [None, None, "Structural Engineering"] + _counts_row("Structural Engineering"),
        ["Engineering and Related Technologies: Total", None, None] + _subtotal_row(["Structural Engineering"]),
    ]


def write_workbook(path: Path, rows, n_sheets: int = 8) -> Path:
    wb = Workbook()
    wb.active.title = "Sheet 1"
    for i in range(2, n_sheets + 1):
        wb.create_sheet(f"Sheet {i}")
    ws = wb.worksheets[n_sheets - 1]
    for r, row in enumerate(rows, start=1):
        for c, val in enumerate(row, start=1):
            if val is not None:
                ws.cell(row=r, column=c, value=val)
    wb.save(path)
    return path


@pytest.fixture
def enrolment_workbook(tmp_path):
    return write_workbook(tmp_path / "enrolments.xlsx", sheet_rows())
