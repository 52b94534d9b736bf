from __future__ import annotations

import io
from typing import Any, Dict

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from rdms.challans import challan_state
from rdms.utils import safe_float


TITLES = {
    "invoice": "TAX INVOICE",
    "jobwork": "JOB WORK CHALLAN",
    "credit_note": "CREDIT NOTE",
    "debit_note": "DELIVERY CHALLAN",
}


def render_challan_pdf(entry: Dict[str, Any], company: Dict[str, str]) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4

    left = 25
    right = width - 25
    y = height - 30
    is_job = entry.get("challan_type") == "jobwork"

    # ================= COMPANY HEADER =================
    c.setFont("Helvetica-Bold", 16)
    c.drawString(left, y, company.get("name", ""))
    y -= 18
    if company.get("address"):
        c.setFont("Helvetica", 9)
        c.drawString(left, y, company["address"])
        y -= 12

    c.setFont("Helvetica-Bold", 14)
    c.drawRightString(right, height - 30, TITLES.get(entry.get("challan_type", ""), "CHALLAN"))

    y -= 13
    c.line(left, y, right, y)
    y -= 15

    # ================= CHALLAN DETAILS =================
    c.setFont("Helvetica", 10)
    c.drawString(left, y, f"Challan No : {entry.get('challan_no') or 'Auto'}")
    c.drawRightString(right, y, f"Date : {entry.get('date', '')}")
    y -= 14
    c.drawString(left, y, f"Party : {entry.get('party_name', '')}")
    c.drawRightString(right, y, f"Payment : {challan_state(entry).upper()}")

    y -= 20
    c.line(left, y, right, y)
    y -= 15

    # ================= TABLE =================
    c.setFont("Helvetica-Bold", 9)
    headers = ["#", "Size", "Weight (kg)", "Rate", "Amount"]
    x = [left, 60, 300, 400, 500]
    for i, h in enumerate(headers):
        c.drawString(x[i], y, h)
    y -= 8
    c.line(left, y, right, y)
    y -= 12

    c.setFont("Helvetica", 9)
    for idx, it in enumerate(entry.get("items", []), start=1):
        if y < 60:
            c.showPage()
            c.setFont("Helvetica", 9)
            y = height - 40
        c.drawString(x[0], y, str(idx))
        c.drawString(x[1], y, str(it.get("size", "")))
        c.drawRightString(x[2] + 50, y, f"{safe_float(it.get('weight')):.3f}")
        if not is_job:
            c.drawRightString(x[3] + 40, y, f"{safe_float(it.get('price')):.2f}")
            c.drawRightString(right, y, f"{safe_float(it.get('total')):.2f}")
        y -= 16

    y -= 10
    c.line(300, y, right, y)
    y -= 20

    # ================= TOTALS =================
    total_wt = sum(safe_float(it.get("weight")) for it in entry.get("items", []))
    c.setFont("Helvetica-Bold", 10)
    c.drawRightString(480, y, "Total Weight:")
    c.drawRightString(right, y, f"{total_wt:.3f} kg")
    y -= 16

    c.setFont("Helvetica-Bold", 11)
    c.drawRightString(480, y, "Grand Total:")
    c.drawRightString(right, y, "JOB WORK" if is_job else f"{safe_float(entry.get('grand_total')):.2f}")

    c.showPage()
    c.save()
    return buf.getvalue()
