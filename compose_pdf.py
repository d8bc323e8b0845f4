"""
PDF Report Generator for the Humanities Enrolment Analysis

This module bundles the three charts into a short PDF:
- Section 1: Trend of humanities students, with the fitted trend and CAGR
- Section 2: Subject gains and losses between the comparison years
- Section 3: Humanities share of all degree-level students
- Footer: source line and page number on every page
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import numpy as np
import pandas as pd
from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import HRFlowable, Image, PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from humanities_shared import (
    BANDS_BOTTOM_TO_TOP,
    BASE_YEAR,
    COMPARE_YEAR,
    UNIFIED_PALETTE,
)
from humanities_views import compute_cagr

# ---- Styles ----
styles = getSampleStyleSheet()
style_title_main = ParagraphStyle("title_main", parent=styles["Heading1"], fontSize=14, leading=17, spaceAfter=2)
style_title_sub  = ParagraphStyle("title_sub",  parent=styles["Normal"],   fontSize=12, leading=14, spaceAfter=6)
style_body       = ParagraphStyle("body",       parent=styles["Normal"],   fontSize=9,  leading=12)
style_num        = ParagraphStyle("num",        parent=styles["Normal"],   fontSize=9,  leading=12, alignment=2)
style_hdr_left   = ParagraphStyle("hdr_left",   parent=styles["Normal"],   fontSize=9,  leading=12, alignment=0)
style_hdr_right  = ParagraphStyle("hdr_right",  parent=styles["Normal"],   fontSize=9,  leading=12, alignment=2)
style_table_num  = ParagraphStyle("table_num",  parent=styles["Normal"],   fontSize=8,  leading=10, alignment=2, fontName='Helvetica-Oblique', backColor=colors.HexColor("#F5F5F5"))

NEG_COLOR        = HexColor("#955196")
style_num_neg    = ParagraphStyle("num_neg", parent=style_num, textColor=NEG_COLOR)

# Footer
SOURCE_LINE = "Source: Department of Education, Higher Education Student Data, award course enrolments by field of education"

def draw_footer(canvas, doc):
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    y1 = 0.4 * inch
    canvas.drawString(doc.leftMargin, y1, SOURCE_LINE)
    x_right = doc.pagesize[0] - doc.rightMargin
    canvas.drawRightString(x_right, y1, f"Page {canvas.getPageNumber()}")
    canvas.restoreState()

# ---- Formatting ----
def fmt_int(v) -> str:
    return "n/a" if v is None or not np.isfinite(v) else f"{v:,.0f}"

def fmt_signed(v) -> str:
    return "n/a" if v is None or not np.isfinite(v) else f"{v:+,.0f}"

def fmt_pct(v, signed: bool = False) -> str:
    if v is None or not np.isfinite(v):
        return "n/a"
    return f"{v:+.1f}%" if signed else f"{v:.1f}%"

def _num(text: str, value=None) -> Paragraph:
    neg = value is not None and np.isfinite(value) and value < 0
    return Paragraph(text, style_num_neg if neg else style_num)

def _chart(path: Path, width: float, max_h: float):
    if not path.exists():
        return Paragraph(f"[Missing chart image: {path.name}]", style_body)
    im = Image(str(path))
    ratio = im.imageHeight / float(im.imageWidth)
    im.drawWidth = width
    im.drawHeight = width * ratio
    if im.drawHeight > max_h:
        im.drawHeight = max_h
        im.drawWidth = im.drawHeight / ratio
    return im

def _base_table_style() -> TableStyle:
    return TableStyle([
        ("LINEBELOW", (0,0), (-1,0), 0.5, colors.black),
        ("VALIGN", (0,0), (-1,-1), "MIDDLE"),
        ("ALIGN", (1,1), (-1,-1), "RIGHT"),
        ("LEFTPADDING",  (0,0), (-1,-1), 4),
        ("RIGHTPADDING", (0,0), (-1,-1), 4),
        ("TOPPADDING",   (0,0), (-1,-1), 3),
        ("BOTTOMPADDING",(0,0), (-1,-1), 3),
    ])

# ---- Tables ----
def build_trend_summary(trend: pd.DataFrame, fit: Dict) -> List[str]:
    """Plain-language lines describing the trend, for the report and the console."""
    lines: List[str] = []
    clean = trend.dropna(subset=["students"])
    if clean.empty:
        return ["No humanities enrolments found."]
    first, last = clean.iloc[0], clean.iloc[-1]
    years = int(last["year"]) - int(first["year"])
    cagr = compute_cagr(float(first["students"]), float(last["students"]), years)
    lines.append(
        f"Humanities students went from {fmt_int(first['students'])} in {int(first['year'])} "
        f"to {fmt_int(last['students'])} in {int(last['year'])} "
        f"(CAGR {fmt_pct(cagr * 100, signed=True)} per year)."
    )
    if fit and "slope" in fit:
        lines.append(
            f"Linear trend: {fit['slope']:+,.0f} students per year "
            f"(R² = {fit['r_squared']:.2f}, p = {fit['p_value']:.3f}, n = {fit['n']})."
        )
    elif fit:
        lines.append(f"No trend fitted: {fit.get('error', 'unknown reason')}.")
    return lines

def build_delta_table(picked: pd.DataFrame, base_year: int = BASE_YEAR,
                      compare_year: int = COMPARE_YEAR) -> Table:
    header = [
        Paragraph("Subject", style_hdr_left),
        Paragraph(f"{base_year}", style_hdr_right),
        Paragraph(f"{compare_year}", style_hdr_right),
        Paragraph("Change", style_hdr_right),
        Paragraph("% change", style_hdr_right),
    ]
    data: List[List] = [header]
    for _, r in picked.iterrows():
        gap = float(r["gap"]); pct = float(r["percent_change"])
        data.append([
            Paragraph(str(r["subject"]), style_body),
            _num(fmt_int(float(r.loc[base_year]))),
            _num(fmt_int(float(r.loc[compare_year]))),
            _num(fmt_signed(gap), gap),
            _num(fmt_pct(pct, signed=True), pct),
        ])
    tbl = Table(data, colWidths=[2.9*inch, 0.9*inch, 0.9*inch, 0.9*inch, 0.9*inch], hAlign="LEFT")
    tbl.setStyle(_base_table_style())
    return tbl

def build_band_table(bands: pd.DataFrame) -> Table:
    """First and last year of each proportion band, with a colour swatch column."""
    years = [int(bands.index.min()), int(bands.index.max())] if not bands.empty else []
    header = [Paragraph("", style_hdr_left), Paragraph("Field", style_hdr_left)]
    header += [Paragraph(str(y), style_hdr_right) for y in years]
    header.append(Paragraph("Change (pts)", style_hdr_right))
    data: List[List] = [header]
    for band in BANDS_BOTTOM_TO_TOP[::-1]:
        vals = [float(bands.loc[y, band]) for y in years]
        change = vals[-1] - vals[0] if len(vals) == 2 else float("nan")
        row = ["", Paragraph(band, style_body)]
        row += [_num(fmt_pct(v)) for v in vals]
        row.append(_num(f"{change:+.1f}" if np.isfinite(change) else "n/a", change))
        data.append(row)
    widths = [0.25*inch, 2.6*inch] + [0.9*inch] * len(years) + [1.0*inch]
    tbl = Table(data, colWidths=widths, hAlign="LEFT")
    ts = _base_table_style()
    for i, band in enumerate(BANDS_BOTTOM_TO_TOP[::-1], start=1):
        ts.add("BACKGROUND", (0,i), (0,i), HexColor(UNIFIED_PALETTE.get(band, "#777777")))
    tbl.setStyle(ts)
    return tbl

# ---- Document ----
def build_pdf(out_path: Path, charts: Dict[str, Path], trend: pd.DataFrame, fit: Dict,
              picked: pd.DataFrame, bands: pd.DataFrame,
              base_year: int = BASE_YEAR, compare_year: int = COMPARE_YEAR):
    """
    Write the report.

    Args:
        out_path: Output PDF path
        charts: {'trend': png, 'delta': png, 'proportion': png}
        trend, fit: build_trend() and fit_trend() output
        picked: select_extremes() output
        bands: band_table() output
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    doc = SimpleDocTemplate(str(out_path), pagesize=A4,
        leftMargin=0.6*inch, rightMargin=0.6*inch, topMargin=0.6*inch, bottomMargin=0.7*inch)
    max_h = doc.height * 0.5

    story: List = []
    story.append(Paragraph("The decline of the humanities", style_title_main))
    story.append(Paragraph("Bachelor degree and above, all students, Society and Culture humanities subjects", style_title_sub))
    story.append(HRFlowable(width="100%", thickness=0.5, color=colors.lightgrey, spaceBefore=0, spaceAfter=6))

    story.append(Paragraph("1. Humanities students per year", style_title_sub))
    story.append(_chart(Path(charts["trend"]), doc.width, max_h))
    story.append(Spacer(0, 6))
    for line in build_trend_summary(trend, fit):
        story.append(Paragraph(line, style_body))
    story.append(PageBreak())

    story.append(Paragraph(f"2. Gains and losses by subject, {base_year}–{compare_year}", style_title_sub))
    story.append(_chart(Path(charts["delta"]), doc.width, max_h))
    story.append(Spacer(0, 6))
    story.append(Paragraph("<i>Table 1</i>", style_table_num))
    story.append(Spacer(0, 3))
    if picked is not None and not picked.empty:
        story.append(build_delta_table(picked, base_year, compare_year))
    else:
        story.append(Paragraph("No subjects with data in both years.", style_body))
    story.append(PageBreak())

    story.append(Paragraph("3. Share of all degree-level students", style_title_sub))
    story.append(_chart(Path(charts["proportion"]), doc.width, max_h))
    story.append(Spacer(0, 6))
    story.append(Paragraph("<i>Table 2</i>", style_table_num))
    story.append(Spacer(0, 3))
    story.append(build_band_table(bands))

    doc.build(story, onFirstPage=draw_footer, onLaterPages=draw_footer)
    print(f"[OK] Saved {out_path}")
