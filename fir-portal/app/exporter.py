"""Excel and PDF export of the FIR report table.

Excel goes through openpyxl (one "FIRs" sheet). The PDF is drawn with
PyMuPDF on landscape A4: twenty columns don't fit across one page, so the
table is split into two ten-column halves, the second half starting on a
fresh page.
"""

from __future__ import annotations

import io
import math
from datetime import datetime
from zoneinfo import ZoneInfo

import pymupdf
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from app.records import FirRecord, export_headers, table_rows

# A4 landscape in points
_PAGE_W = 842
_PAGE_H = 595
_MARGIN = 40
_TABLE_TOP = 60
_FONT = "helv"
_FONT_SIZE = 7
_LINE_H = 10
_CELL_PAD = 3
_COLUMNS_PER_TABLE = 10

_HEAD_FILL = (41 / 255, 128 / 255, 185 / 255)
_ALT_FILL = (240 / 255, 240 / 255, 240 / 255)
_GRID = (0.75, 0.75, 0.75)

_TIMEZONE = ZoneInfo("Asia/Kolkata")


class ExportError(Exception):
    """Nothing could be exported."""


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------

def export_excel(records: list[FirRecord]) -> bytes:
    """Return an .xlsx workbook with one row per record."""
    wb = Workbook()
    ws = wb.active
    ws.title = "FIRs"

    headers = export_headers()
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill("solid", fgColor="2980B9")

    rows = table_rows(records)
    for row in rows:
        ws.append(row)

    for idx, header in enumerate(headers, start=1):
        width = max([len(header)] + [len(str(r[idx - 1])) for r in rows])
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = min(width + 2, 50)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------

def _text_width(text: str) -> float:
    return pymupdf.get_text_length(text, fontname=_FONT, fontsize=_FONT_SIZE)


def _wrapped_lines(text: str, width: float) -> int:
    """Count the lines *text* wraps to inside a cell of *width* points."""
    usable = max(width - 2 * _CELL_PAD, 1)
    space = _text_width(" ")
    lines = 0
    for para in (text or "").split("\n"):
        lines += 1
        line_w = 0.0
        for word in para.split():
            word_w = _text_width(word)
            if word_w > usable:
                # over-long words are broken across lines
                lines += math.ceil(word_w / usable) - (0 if line_w else 1)
                line_w = word_w % usable
            elif line_w and line_w + space + word_w > usable:
                lines += 1
                line_w = word_w
            else:
                line_w += (space if line_w else 0) + word_w
    return max(lines, 1)


def _row_height(cells: list[str], col_w: float) -> float:
    lines = max(_wrapped_lines(c, col_w) for c in cells)
    # slack below the last line
    return lines * _LINE_H + 2 * _CELL_PAD + 2


def _draw_row(
    page: pymupdf.Page,
    cells: list[str],
    y: float,
    col_w: float,
    height: float,
    fill: tuple | None,
    text_color: tuple,
) -> None:
    for idx, text in enumerate(cells):
        x0 = _MARGIN + idx * col_w
        rect = pymupdf.Rect(x0, y, x0 + col_w, y + height)
        page.draw_rect(rect, color=_GRID, fill=fill, width=0.5)
        page.insert_textbox(
            rect + (_CELL_PAD, _CELL_PAD, -_CELL_PAD, -_CELL_PAD),
            text,
            fontsize=_FONT_SIZE,
            fontname=_FONT,
            color=text_color,
        )


def _draw_table(
    doc: pymupdf.Document,
    page: pymupdf.Page,
    headers: list[str],
    rows: list[list[str]],
    top: float,
) -> pymupdf.Page:
    col_w = (_PAGE_W - 2 * _MARGIN) / len(headers)
    head_h = _row_height(headers, col_w)

    _draw_row(page, headers, top, col_w, head_h, _HEAD_FILL, (1, 1, 1))
    y = top + head_h

    for idx, row in enumerate(rows):
        height = _row_height(row, col_w)
        if y + height > _PAGE_H - _MARGIN:
            page = doc.new_page(width=_PAGE_W, height=_PAGE_H)
            y = _MARGIN
            _draw_row(page, headers, y, col_w, head_h, _HEAD_FILL, (1, 1, 1))
            y += head_h
        fill = _ALT_FILL if idx % 2 else None
        _draw_row(page, row, y, col_w, height, fill, (0, 0, 0))
        y += height
    return page


def export_pdf(records: list[FirRecord], generated_at: datetime | None = None) -> bytes:
    """Return a landscape A4 PDF report of *records*."""
    if not records:
        raise ExportError("No data available to export to PDF")

    generated_at = generated_at or datetime.now(_TIMEZONE)
    if generated_at.tzinfo is not None:
        generated_at = generated_at.astimezone(_TIMEZONE)

    headers = export_headers()
    rows = table_rows(records)

    doc = pymupdf.open()
    page = doc.new_page(width=_PAGE_W, height=_PAGE_H)
    page.insert_text((_MARGIN, 30), "FIR Reports", fontsize=18, fontname=_FONT)
    page.insert_text(
        (_MARGIN, 45),
        f"Generated on: {generated_at.strftime('%d/%m/%Y, %I:%M:%S %p')}",
        fontsize=11,
        fontname=_FONT,
        color=(100 / 255, 100 / 255, 100 / 255),
    )

    first = slice(0, _COLUMNS_PER_TABLE)
    second = slice(_COLUMNS_PER_TABLE, None)

    _draw_table(doc, page, headers[first], [r[first] for r in rows], _TABLE_TOP)

    page = doc.new_page(width=_PAGE_W, height=_PAGE_H)
    _draw_table(doc, page, headers[second], [r[second] for r in rows], _MARGIN)

    pdf_bytes = doc.tobytes()
    doc.close()
    return pdf_bytes
