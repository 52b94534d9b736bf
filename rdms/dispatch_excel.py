from __future__ import annotations

import io
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from rdms.dispatch import detect_entry_type


HEADERS = [
    "DATE", "PARTY", "SIZE", "TYPE",
    "GROSS WT", "CORE WT", "NET WT", "PRODUCTION WT",
    "PCS", "METER", "BUNDLE", "JOINT", "STATUS",
]


def export_dispatch_log(groups: List[Dict[str, Any]]) -> bytes:
    """Production log grouped by date|party, one subtotal row per group."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Production Log"

    header_fill = PatternFill("solid", fgColor="00B0F0")
    group_fill = PatternFill("solid", fgColor="DDEBF7")
    bold = Font(bold=True)
    center = Alignment(horizontal="center", vertical="center")
    thin = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin")
    )

    for col, title in enumerate(HEADERS, start=1):
        cell = ws.cell(row=1, column=col, value=title)
        cell.fill = header_fill
        cell.font = bold
        cell.alignment = center
        cell.border = thin
        ws.column_dimensions[get_column_letter(col)].width = 16

    row = 2
    for group in groups:
        for e in group["entries"]:
            values = [
                e.get("date", ""),
                e.get("party_name", ""),
                e.get("size", ""),
                detect_entry_type(e),
                e.get("gross_weight"),
                e.get("core_weight"),
                e.get("weight", 0),
                e.get("production_weight"),
                e.get("pcs", 0),
                e.get("meter"),
                e.get("bundle", 0),
                e.get("joint"),
                e.get("status", ""),
            ]
            for col, value in enumerate(values, start=1):
                cell = ws.cell(row, col, value)
                cell.border = thin
                cell.alignment = center
            row += 1

        ws.cell(row, 1, group["date"])
        ws.cell(row, 2, f"{group['party_name']} ({group['count']} entries)")
        ws.cell(row, 7, group["total_weight"])
        ws.cell(row, 11, group["total_bundles"])
        for col in range(1, len(HEADERS) + 1):
            cell = ws.cell(row, col)
            cell.fill = group_fill
            cell.font = bold
            cell.border = thin
            cell.alignment = center
        row += 1

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
