"""
Summary views over the cleaned enrolment table.

Three read-only views feed the charts and the report:
1. Trend: total humanities students per year (plus an OLS fit of the trend)
2. Delta: per-subject change between the base and comparison years
3. Proportion: humanities / rest of Society and Culture / everyone else,
   as percentages of all degree-level students per year

Nothing here guards against missing years or zero denominators: those come
out as NaN/inf and are drawn as such.
"""

from __future__ import annotations

from typing import Dict, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from humanities_shared import (
    AGGREGATE_SUBJECTS,
    BAND_ALL_OTHER,
    BAND_HUMANITIES,
    BAND_OTHER_SC,
    BANDS_BOTTOM_TO_TOP,
    BASE_YEAR,
    COMPARE_YEAR,
    COUNT_FIELD,
    DELTA_TOP_N,
    SOCIETY_AND_CULTURE,
)


def _yearly_sum(df: pd.DataFrame) -> pd.Series:
    # min_count=1: a year whose counts are all unknown stays unknown instead of 0
    return (df.groupby("year")[COUNT_FIELD]
              .sum(min_count=1)
              .astype("float64")
              .sort_index())


# ---------------- Trend ----------------
def build_trend(humanities: pd.DataFrame) -> pd.DataFrame:
    """Returns: year | students"""
    s = _yearly_sum(humanities)
    return s.rename("students").reset_index()


def fit_trend(trend: pd.DataFrame) -> Dict:
    """
    Ordinary least-squares fit of students on year.

    Returns a dict with slope (students per year), intercept, r_squared,
    p_value and n. With fewer than 3 usable years the fit is not attempted
    and 'error' is set instead.
    """
    clean = trend.dropna(subset=["students"])
    clean = clean[np.isfinite(clean["students"])]
    if len(clean) < 3:
        return {"error": "Insufficient years for a trend fit", "n": len(clean)}

    res = stats.linregress(clean["year"].astype(float), clean["students"].astype(float))
    return {
        "slope": float(res.slope),
        "intercept": float(res.intercept),
        "r_squared": float(res.rvalue ** 2),
        "p_value": float(res.pvalue),
        "n": len(clean),
    }


# ---------------- Delta ----------------
def build_delta(humanities: pd.DataFrame, base_year: int = BASE_YEAR,
                compare_year: int = COMPARE_YEAR,
                exclude: Sequence[str] = AGGREGATE_SUBJECTS) -> pd.DataFrame:
    """
    Per-subject change between two years.

    Returns:
        subject | <base_year> | <compare_year> | gap | percent_change,
        sorted ascending by gap (largest loss first). A year with no rows
        for a subject comes through as NaN.
    """
    sub = humanities[humanities["year"].isin([base_year, compare_year])]
    sub = sub[~sub["field_detailed"].isin(list(exclude))]

    grouped = (sub.groupby(["field_detailed", "year"])[COUNT_FIELD]
                  .sum(min_count=1)
                  .astype("float64")
                  .reset_index())
    wide = grouped.pivot(index="field_detailed", columns="year", values=COUNT_FIELD)
    wide = wide.reindex(columns=[base_year, compare_year])
    wide.columns.name = None
    wide.index.name = "subject"

    wide["gap"] = wide[compare_year] - wide[base_year]
    wide["percent_change"] = wide["gap"] / wide[base_year] * 100

    out = wide.reset_index().sort_values(["gap", "subject"], kind="stable")
    return out.reset_index(drop=True)


def select_extremes(delta: pd.DataFrame, n_each: int = DELTA_TOP_N,
                    subjects: Sequence[str] | None = None) -> pd.DataFrame:
    """
    Pick the bars for the delta chart.

    With an explicit subject list, those subjects (in delta order). Otherwise
    the n_each largest losses and n_each largest gains; a subject that falls
    in both ends is only shown once.
    """
    if subjects is not None:
        return delta[delta["subject"].isin(list(subjects))].reset_index(drop=True)

    ranked = delta.dropna(subset=["gap"])
    losses = ranked.head(n_each)
    gains = ranked.tail(n_each)
    picked = pd.concat([losses, gains]).drop_duplicates(subset=["subject"])
    return picked.sort_values(["gap", "subject"], kind="stable").reset_index(drop=True)


# ---------------- Proportion ----------------
def build_proportion(filtered: pd.DataFrame, humanities: pd.DataFrame,
                     broad: str = SOCIETY_AND_CULTURE) -> pd.DataFrame:
    """
    Share of all students in each band, per year.

    The three totals are joined on year before any subtraction, so the bands
    do not depend on row order in the inputs.

    Returns:
        year | humanities | society_culture | all_students |
        Humanities | Other Society and Culture | All other fields
    """
    totals = pd.concat(
        [
            _yearly_sum(humanities).rename("humanities"),
            _yearly_sum(filtered[filtered["field_broad"] == broad]).rename("society_culture"),
            _yearly_sum(filtered).rename("all_students"),
        ],
        axis=1,
        join="outer",
    ).sort_index()
    totals.index.name = "year"

    # 0/0 and x/0 give NaN/inf here on purpose: they are charted as gaps
    with np.errstate(divide="ignore", invalid="ignore"):
        denom = totals["all_students"]
        totals[BAND_HUMANITIES] = totals["humanities"] / denom * 100
        totals[BAND_OTHER_SC] = (totals["society_culture"] - totals["humanities"]) / denom * 100
        totals[BAND_ALL_OTHER] = (totals["all_students"] - totals["society_culture"]) / denom * 100

    return totals.reset_index()


def band_table(proportion: pd.DataFrame) -> pd.DataFrame:
    """Proportion bands only, indexed by year, stacked bottom to top."""
    return proportion.set_index("year")[BANDS_BOTTOM_TO_TOP]


def compute_cagr(start_value: float, end_value: float, years: int) -> float:
    """Compound annual growth rate as a decimal; NaN when undefined."""
    if years <= 0 or pd.isna(start_value) or pd.isna(end_value) or start_value <= 0:
        return float("nan")
    return (end_value / start_value) ** (1.0 / years) - 1.0
