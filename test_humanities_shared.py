"""Test loading, header synthesis, reshaping and filtering of the enrolment sheet"""
import numpy as np
import pandas as pd
import pytest

from conftest import sheet_rows, write_workbook
from humanities_shared import (
    SUBJECT_FIELDS,
    build_wide,
    clean_subjects,
    filter_humanities,
    filter_qualifications,
    forward_fill,
    load_sheet,
    pivot_to_wide,
    prepare_enrolments,
    reshape_to_tall,
    synthesize_headers,
)


def _wide_fixture():
    data = pd.DataFrame([
        ["Society and Culture", "Studies in Human Society", None, 10, 20, np.nan],
        [None, None, "History", 100, 80, 5],
        [None, "Language and Literature", "Literature", np.nan, 7, 9],
    ])
    keys = ["Bachelors|Total|2008", "Bachelors|Total|2017", "Masters|Domestic|2008"]
    return build_wide(data, keys)


def test_forward_fill_carries_last_value():
    assert forward_fill(["A", None, "B"]) == ["A", "A", "B"]
    assert forward_fill(["X", "Y", ""]) == ["X", "Y", "Y"]
    assert forward_fill([None, float("nan"), "C", "  "]) == [None, None, "C", "C"]


def test_forward_fill_never_leaves_blank_after_value():
    vals = ["Society and Culture", None, None, "Engineering", "", float("nan")]
    filled = forward_fill(vals)
    for prev, cur in zip(filled, filled[1:]):
        if prev is not None:
            assert cur is not None


def test_synthesize_headers_two_row_example():
    headers = pd.DataFrame([
        [None, None, None, "A", None, "B"],
        [None, None, None, "X", "Y", None],
    ])
    assert synthesize_headers(headers) == ["A|X", "A|Y", "B|Y"]


def test_synthesize_headers_renders_whole_number_years():
    headers = pd.DataFrame([
        [None, None, None, "Bachelors", None],
        [None, None, None, "Total", None],
        [None, None, None, 2008.0, 2017.0],
    ])
    assert synthesize_headers(headers) == ["Bachelors|Total|2008", "Bachelors|Total|2017"]


def test_synthesize_headers_leading_blank_is_fatal():
    headers = pd.DataFrame([
        [None, None, None, None, "Bachelors"],
        [None, None, None, "Total", "Total"],
        [None, None, None, 2008, 2017],
    ])
    with pytest.raises(ValueError, match="first data column"):
        synthesize_headers(headers)


def test_synthesize_headers_rejects_separator_and_duplicates():
    with pytest.raises(ValueError, match="separator"):
        synthesize_headers(pd.DataFrame([[None, None, None, "A|B"]]))
    with pytest.raises(ValueError, match="Duplicate"):
        synthesize_headers(pd.DataFrame([[None, None, None, "A", None]]))


def test_reshape_row_count_and_split():
    wide = _wide_fixture()
    tall = reshape_to_tall(wide)
    assert len(tall) == 3 * 3
    first = tall.iloc[0]
    assert first["qualification_level"] == "Bachelors"
    assert first["qualification_type"] == "Total"
    assert first["year"] == 2008
    assert tall["student_count"].dtype == "Int64"
    assert tall["student_count"].isna().sum() == 2


def test_unpivot_then_repivot_reproduces_wide():
    wide = _wide_fixture()
    back = pivot_to_wide(reshape_to_tall(wide))

    assert list(back.columns) == list(wide.columns)
    pd.testing.assert_frame_equal(back[SUBJECT_FIELDS], wide[SUBJECT_FIELDS], check_dtype=False)
    counts = [c for c in wide.columns if c not in SUBJECT_FIELDS]
    pd.testing.assert_frame_equal(back[counts].astype("float64"), wide[counts].astype("float64"))


def test_reshape_rejects_non_numeric_year():
    wide = build_wide(pd.DataFrame([[None, None, "History", 1]]), ["Bachelors|Total|Year"])
    with pytest.raises(ValueError, match="Non-numeric year"):
        reshape_to_tall(wide)


def test_clean_subjects_fills_strips_and_drops_subtotals():
    data = pd.DataFrame([
        ["Society and Culture", None, None, 1],
        [None, "Studies in Human Society", None, 2],
        [None, None, "History", 3],
        [None, "Studies in Human Society: Total", None, 4],
        [None, None, "Sociology", 5],
        ["Society and Culture: Total", None, None, 6],
    ])
    tall = reshape_to_tall(build_wide(data, ["Bachelors|Total|2008"]))
    cleaned = clean_subjects(tall)

    assert cleaned["field_detailed"].tolist() == ["History", "Sociology"]
    assert set(cleaned["field_broad"]) == {"Society and Culture"}
    assert set(cleaned["field_narrow"]) == {"Studies in Human Society"}
    assert cleaned["student_count"].tolist() == [3, 5]


def test_filter_total_type_drops_column():
    tall = pd.DataFrame({
        "field_detailed": ["History"] * 3,
        "qualification_level": ["Bachelors"] * 3,
        "qualification_type": ["Total", "Domestic", "International"],
        "year": [2008] * 3,
        "student_count": pd.array([10, 6, 4], dtype="Int64"),
    })
    out = filter_qualifications(tall)
    assert len(out) == 1
    assert out["student_count"].iloc[0] == 10
    assert "qualification_type" not in out.columns


def test_filter_qualifications_keeps_degree_levels_only():
    tall = pd.DataFrame({
        "qualification_level": ["Bachelors", "Enabling", "Doctorates", "Masters"],
        "qualification_type": ["Total"] * 4,
        "student_count": [1, 2, 3, 4],
    })
    assert filter_qualifications(tall)["qualification_level"].tolist() == ["Bachelors", "Doctorates", "Masters"]


def test_filter_humanities_needs_broad_field_and_whitelist():
    filtered = pd.DataFrame({
        "field_broad": ["Society and Culture", "Society and Culture", "Creative Arts"],
        "field_detailed": ["History", "Economics", "History"],
    })
    assert filter_humanities(filtered).shape[0] == 1


def test_load_sheet_views(enrolment_workbook):
    headers, data = load_sheet(enrolment_workbook)
    assert headers.shape == (3, 15)
    assert data.shape == (15, 15)
    assert data.iloc[0, 0] == "Society and Culture"


def test_load_sheet_errors(tmp_path, enrolment_workbook):
    with pytest.raises(FileNotFoundError):
        load_sheet(tmp_path / "missing.xlsx")
    with pytest.raises(ValueError, match="out of range"):
        load_sheet(enrolment_workbook, sheet_index=8)
    # Only two rows left below the header offset
    with pytest.raises(ValueError, match="header rows"):
        load_sheet(enrolment_workbook, header_skip=len(sheet_rows()) - 2)

    truncated = write_workbook(tmp_path / "narrow.xlsx", [row[:3] for row in sheet_rows()])
    with pytest.raises(ValueError, match="No data columns"):
        load_sheet(truncated)


def test_load_sheet_rejects_data_past_headers(tmp_path):
    rows = sheet_rows()
    rows[7] = rows[7] + [None, "stray"]
    path = write_workbook(tmp_path / "wide.xlsx", rows)
    with pytest.raises(ValueError, match="extends past"):
        load_sheet(path)


def test_prepare_enrolments_end_to_end(enrolment_workbook):
    filtered = prepare_enrolments(enrolment_workbook)
    assert len(filtered) == 6 * 2 * 2
    assert set(filtered["qualification_level"]) == {"Bachelors", "Masters"}
    assert "qualification_type" not in filtered.columns
    assert not filtered["field_detailed"].str.endswith(": Total").any()

    hist = filtered[(filtered["field_detailed"] == "History") &
                    (filtered["qualification_level"] == "Bachelors")]
    assert dict(zip(hist["year"], hist["student_count"])) == {2008: 1000, 2017: 800}
    assert set(hist["field_narrow"]) == {"Studies in Human Society"}

    eng = filtered[filtered["field_detailed"] == "Structural Engineering"]
    assert set(eng["field_broad"]) == {"Engineering and Related Technologies"}

    humanities = filter_humanities(filtered)
    assert sorted(humanities["field_detailed"].unique()) == ["History", "Linguistics", "Literature", "Sociology"]
    ling = humanities[(humanities["field_detailed"] == "Linguistics") &
                      (humanities["qualification_level"] == "Bachelors") &
                      (humanities["year"] == 2008)]
    assert ling["student_count"].isna().all()
