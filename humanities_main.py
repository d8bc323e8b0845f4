"""
Main script to generate the humanities enrolment charts and report.

This script:
1. Loads sheet 8 of the enrolment workbook (or the cached tall table)
2. Synthesizes the merged header rows, reshapes wide -> tall, cleans the
   subject hierarchy and keeps degree-level 'Total' rows
3. Restricts to the humanities subjects
4. Builds the Trend, Delta and Proportion views and saves each as CSV + PNG
5. Composes the PDF report

USAGE
  python humanities_main.py --input data/enrolments.xlsx --out_dir output
"""

import argparse
from pathlib import Path

from cache_manager import CACHE_DIR, load_from_cache, save_cache, use_cache
from compose_pdf import build_pdf, build_trend_summary
from humanities_plots import plot_delta, plot_proportion, plot_trend
from humanities_shared import (
    BASE_YEAR,
    COMPARE_YEAR,
    DELTA_SUBJECTS,
    DELTA_TOP_N,
    EXCEL_FILE,
    OUTPUT_DIR,
    SHEET_INDEX,
    filter_humanities,
    prepare_enrolments,
    summarize_years,
)
from humanities_views import (
    band_table,
    build_delta,
    build_proportion,
    build_trend,
    fit_trend,
    select_extremes,
)


def run(input_path: Path = EXCEL_FILE, sheet_index: int = SHEET_INDEX,
        out_dir: Path = OUTPUT_DIR, force_recompute: bool = False,
        make_pdf: bool = True, cache_dir: Path = CACHE_DIR) -> dict:
    """Run the whole analysis. Returns the output paths keyed by name."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 60)
    print("Humanities Enrolment Analysis")
    print("=" * 60)

    print("\n[1/5] Loading data...")
    if use_cache(force_recompute, cache_dir, source=input_path, sheet_index=sheet_index):
        filtered = load_from_cache(cache_dir)
    else:
        filtered = prepare_enrolments(Path(input_path), sheet_index)
        save_cache(filtered, source=input_path, sheet_index=sheet_index, cache_dir=cache_dir)

    yrs = summarize_years(filtered)
    print(f"  Degree-level rows: {len(filtered)}, years {yrs['first']} to {yrs['last']}")

    print("\n[2/5] Selecting humanities subjects...")
    humanities = filter_humanities(filtered)
    n_subjects = humanities["field_detailed"].nunique()
    print(f"  {len(humanities)} rows across {n_subjects} subjects")
    if humanities.empty:
        print("[WARN] No humanities rows matched; charts will be empty.")

    print("\n[3/5] Building views...")
    trend = build_trend(humanities)
    fit = fit_trend(trend)
    delta = build_delta(humanities, BASE_YEAR, COMPARE_YEAR)
    picked = select_extremes(delta, DELTA_TOP_N, DELTA_SUBJECTS)
    proportion = build_proportion(filtered, humanities)
    bands = band_table(proportion)

    outputs = {
        "trend_csv": out_dir / "humanities_trend.csv",
        "delta_csv": out_dir / "humanities_delta.csv",
        "proportion_csv": out_dir / "humanities_proportion.csv",
        "trend": out_dir / "humanities_trend.png",
        "delta": out_dir / "humanities_delta.png",
        "proportion": out_dir / "humanities_proportion.png",
    }
    trend.to_csv(outputs["trend_csv"], index=False)
    delta.to_csv(outputs["delta_csv"], index=False)
    proportion.to_csv(outputs["proportion_csv"], index=False)
    for key in ("trend_csv", "delta_csv", "proportion_csv"):
        print(f"  Saved CSV → {outputs[key]}")

    print("\n[4/5] Plotting...")
    plot_trend(outputs["trend"], trend, fit)
    plot_delta(outputs["delta"], picked, BASE_YEAR, COMPARE_YEAR)
    plot_proportion(outputs["proportion"], bands)

    print("\n[5/5] Composing report...")
    if make_pdf:
        outputs["pdf"] = out_dir / "humanities_report.pdf"
        build_pdf(outputs["pdf"], outputs, trend, fit, picked, bands, BASE_YEAR, COMPARE_YEAR)
    else:
        print("[SKIP] PDF report disabled (--no-pdf)")

    print("\n=== Summary ===")
    for line in build_trend_summary(trend, fit):
        print(f"  {line}")
    return outputs


def main():
    p = argparse.ArgumentParser(description="Humanities enrolments: trend, subject changes and share of students.")
    p.add_argument("--input", default=str(EXCEL_FILE), help="Path to Excel file")
    p.add_argument("--sheet", type=int, default=SHEET_INDEX + 1, help="Sheet number, counting from 1 (default: 8)")
    p.add_argument("--out_dir", default=str(OUTPUT_DIR), help="Directory for outputs")
    p.add_argument("--force-recompute", action="store_true", help="Ignore the cached tall table")
    p.add_argument("--no-pdf", action="store_true", help="Skip the PDF report")
    args = p.parse_args()

    run(Path(args.input), args.sheet - 1, Path(args.out_dir),
        force_recompute=args.force_recompute, make_pdf=not args.no_pdf)


if __name__ == "__main__":
    main()
