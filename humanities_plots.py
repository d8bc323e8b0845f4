"""
Plotting Module for the Humanities Enrolment Analysis

This module generates the three static charts:
1. Trend: total humanities students per year, with the OLS trend line
2. Delta: diverging horizontal bars of the largest subject gains/losses
3. Proportion: stacked area of humanities / other Society and Culture /
   all other fields as a share of all degree-level students

Key Design Patterns:
- Horizontal bars (barh) for subject comparisons (long subject names)
- Okabe–Ito colours shared with the PDF report via humanities_shared
- Every figure carries a version stamp and is closed after saving
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.patheffects as pe
import matplotlib.ticker as mtick
import numpy as np
import pandas as pd
from matplotlib.ticker import FuncFormatter

from humanities_shared import (
    BANDS_BOTTOM_TO_TOP,
    BASE_YEAR,
    COMPARE_YEAR,
    GAIN_COLOR,
    LOSS_COLOR,
    TREND_FIT_COLOR,
    TREND_LINE_COLOR,
    UNIFIED_PALETTE,
)

# Version stamp
CODE_VERSION = "v2018.06.12-HUMANITIES"

halo = [pe.Stroke(linewidth=4.0, foreground="white"), pe.Normal()]


def comma_formatter():
    """Returns formatter for thousands separator."""
    return FuncFormatter(lambda x, _: f"{int(x):,}")


def _stamp(fig, y_pos=0.01):
    """Add version stamp to figure."""
    fig.text(0.99, y_pos, f"Code: {CODE_VERSION}", ha="right", va="bottom",
             fontsize=8, color="#666666")


def _clean_spines(ax):
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)
    for s in ax.spines.values():
        s.set_alpha(0.4)


def _save(fig, out_path: Path):
    out_path.parent.mkdir(parents=True, exist_ok=True)
    _stamp(fig)
    fig.savefig(out_path, dpi=200, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    print(f"[OK] Saved {out_path}")


# ---------- Trend ----------
def plot_trend(out_path: Path, trend: pd.DataFrame, fit: Dict | None = None,
               title: str = "Humanities students at degree level and above"):
    """
    Line chart of total humanities students per year.

    Args:
        out_path: Output PNG file path
        trend: DataFrame with columns ['year', 'students']
        fit: Output of fit_trend(); the fitted line and a short annotation are
             drawn when it holds a slope
    """
    if trend is None or trend.empty:
        print(f"[SKIP] No trend data for {out_path}")
        return

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(trend["year"], trend["students"], color=TREND_LINE_COLOR, linewidth=3.0,
            marker="o", markersize=6, markerfacecolor="white", markeredgewidth=2,
            label="Humanities students", path_effects=halo, zorder=5)

    if fit and "slope" in fit:
        xs = np.array([trend["year"].min(), trend["year"].max()], dtype=float)
        ax.plot(xs, fit["intercept"] + fit["slope"] * xs, color=TREND_FIT_COLOR,
                linestyle="--", linewidth=2.0, alpha=0.9, label="Linear trend", zorder=4)
        ann = (
            f"Linear trend: {fit['slope']:+,.0f} students per year\n"
            f"R² ≈ {fit['r_squared']:.2f}   (n = {fit['n']} years)"
        )
        ax.annotate(ann, xy=(0.01, 0.02), xycoords="axes fraction",
                    va="bottom", ha="left", fontsize=9,
                    bbox=dict(boxstyle="round", facecolor="white", alpha=0.9, pad=0.5))

    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_xlabel("Year")
    ax.set_ylabel("Students")
    ax.yaxis.set_major_formatter(comma_formatter())
    ax.xaxis.set_major_locator(mtick.MaxNLocator(integer=True))
    ax.grid(True, axis="y", alpha=0.25)
    _clean_spines(ax)
    ax.legend(loc="upper right", frameon=False)
    fig.tight_layout()

    _save(fig, out_path)


# ---------- Delta ----------
def plot_delta(out_path: Path, picked: pd.DataFrame, base_year: int = BASE_YEAR,
               compare_year: int = COMPARE_YEAR, title: str | None = None):
    """
    Diverging horizontal bars of student change per subject.

    Args:
        out_path: Output PNG file path
        picked: Rows of build_delta() to draw, already sorted by gap
    """
    if picked is None or picked.empty:
        print(f"[SKIP] No subjects to compare for {out_path}")
        return

    gaps = picked["gap"].to_numpy(dtype=float)
    pcts = picked["percent_change"].to_numpy(dtype=float)
    labels = picked["subject"].tolist()
    y_pos = np.arange(len(labels))

    fig_h = max(4.0, 0.55 * len(labels) + 1.5)
    fig, ax = plt.subplots(figsize=(10, fig_h))
    colors = [GAIN_COLOR if g >= 0 else LOSS_COLOR for g in gaps]
    ax.barh(y_pos, gaps, height=0.7, color=colors, edgecolor="white", linewidth=0.0, zorder=2)
    ax.axvline(0, color="black", linewidth=0.8, zorder=3)

    span = np.nanmax(np.abs(gaps)) if np.isfinite(gaps).any() else 1.0
    span = max(float(span), 1.0)
    pad = span * 0.02
    for y, g, p in zip(y_pos, gaps, pcts):
        if not np.isfinite(g):
            continue
        txt = f"{g:+,.0f}" + (f" ({p:+.0f}%)" if np.isfinite(p) else "")
        ax.text(g + (pad if g >= 0 else -pad), y, txt, va="center",
                ha="left" if g >= 0 else "right", fontsize=9,
                path_effects=[pe.withStroke(linewidth=2, foreground="white", alpha=0.8)])

    ax.set_yticks(y_pos)
    ax.set_yticklabels(labels)
    ax.set_xlim(-span * 1.35, span * 1.35)
    ax.xaxis.set_major_formatter(FuncFormatter(lambda x, _: f"{x:+,.0f}" if x else "0"))
    ax.set_xlabel(f"Change in students, {base_year} to {compare_year}")
    ax.set_title(title or f"Biggest gains and losses in humanities subjects, {base_year}–{compare_year}",
                 fontsize=14, fontweight="bold")
    ax.grid(True, axis="x", alpha=0.22, linewidth=0.5)
    _clean_spines(ax)
    ax.spines['left'].set_visible(False)
    ax.tick_params(axis="y", length=0)
    fig.tight_layout()

    _save(fig, out_path)


# ---------- Proportion ----------
def plot_proportion(out_path: Path, bands: pd.DataFrame,
                    title: str = "Share of degree-level students by field"):
    """
    Stacked area of the proportion bands.

    Args:
        out_path: Output PNG file path
        bands: DataFrame indexed by year with the BANDS_BOTTOM_TO_TOP columns
               (percentages summing to 100 per year)
    """
    if bands is None or bands.empty:
        print(f"[SKIP] No proportion data for {out_path}")
        return

    cols = [c for c in BANDS_BOTTOM_TO_TOP if c in bands.columns]
    years = bands.index.to_numpy()
    stacks = [bands[c].to_numpy(dtype=float) for c in cols]

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.stackplot(years, *stacks, labels=cols,
                 colors=[UNIFIED_PALETTE.get(c, "#777777") for c in cols],
                 edgecolor="white", linewidth=0.5)

    # Label the humanities band at its last year
    hum = stacks[0]
    if len(hum) and np.isfinite(hum[-1]):
        ax.text(years[-1], hum[-1] / 2.0, f"{hum[-1]:.1f}%", ha="right", va="center",
                fontsize=10, fontweight="bold",
                path_effects=[pe.withStroke(linewidth=2, foreground="white", alpha=0.8)])

    ax.set_ylim(0, 100)
    lo, hi = years.min(), years.max()
    if lo == hi:
        lo, hi = lo - 0.5, hi + 0.5
    ax.set_xlim(lo, hi)
    ax.yaxis.set_major_formatter(mtick.PercentFormatter(xmax=100))
    ax.xaxis.set_major_locator(mtick.MaxNLocator(integer=True))
    ax.set_xlabel("Year")
    ax.set_ylabel("Share of all students")
    ax.set_title(title, fontsize=14, fontweight="bold")
    _clean_spines(ax)

    # Legend reversed so it reads top to bottom like the stack
    handles, labels = ax.get_legend_handles_labels()
    ax.legend(handles[::-1], labels[::-1], loc="upper left",
              bbox_to_anchor=(1.01, 1.0), frameon=False)
    fig.tight_layout()

    _save(fig, out_path)
