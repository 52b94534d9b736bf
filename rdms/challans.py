from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from rdms import mongo_store, settings
from rdms.audit_log import write_audit_log
from rdms.utils import entry_date, is_blank, parse_day, safe_float


logger = logging.getLogger(__name__)

CHALLAN_TYPES = ("invoice", "jobwork", "credit_note", "debit_note")
PAYMENT_TYPES = ("credit", "cash")
ENTRY_MODES = ("unpaid", "cash", "job")
FILTER_RANGES = ("today", "7days", "30days", "custom")
SUMMARY_FILTERS = ("all", "cash", "unpaid")

_MODE_TYPES = {
    "cash": ("cash", "debit_note"),
    "job": ("credit", "jobwork"),
    "unpaid": ("credit", "debit_note"),
}


def mode_to_types(mode: str) -> Tuple[str, str]:
    key = str(mode or "unpaid").strip().lower()
    if key not in _MODE_TYPES:
        raise ValueError(f"Unknown entry mode '{mode}'.")
    return _MODE_TYPES[key]


def types_to_mode(payment_type: str, challan_type: str) -> str:
    if payment_type == "cash":
        return "cash"
    if challan_type == "jobwork":
        return "job"
    return "unpaid"


def challan_state(entry: Dict[str, Any]) -> str:
    """Display state: paid (cash), job (job work) or unpaid."""
    mode = types_to_mode(entry.get("payment_type", ""), entry.get("challan_type", ""))
    return {"cash": "paid", "job": "job", "unpaid": "unpaid"}[mode]


def is_receivable(entry: Dict[str, Any]) -> bool:
    return entry.get("payment_type") == "credit" and entry.get("challan_type") != "jobwork"


# -------------------------------
# Items & form shaping
# -------------------------------
def build_item(size: Any, weight: Any, price: Any, mode: str = "unpaid", item_id: Optional[str] = None) -> Dict[str, Any]:
    size_text = str(size or "").strip()
    if not size_text or is_blank(weight):
        raise ValueError("Item size and weight are required.")
    if mode != "job" and is_blank(price):
        raise ValueError(f"Price is required for '{size_text}'.")
    w = safe_float(weight)
    p = safe_float(price)
    return {
        "id": item_id or uuid.uuid4().hex,
        "size": size_text,
        "weight": w,
        "price": p,
        "total": round(w * p, 2),
    }


def _resolve_types(form: Dict[str, Any]) -> Tuple[str, str, str]:
    payment_type = str(form.get("payment_type") or "").strip().lower()
    challan_type = str(form.get("challan_type") or "").strip().lower()
    if payment_type and challan_type:
        if payment_type not in PAYMENT_TYPES:
            raise ValueError(f"Unknown payment type '{payment_type}'.")
        if challan_type not in CHALLAN_TYPES:
            raise ValueError(f"Unknown challan type '{challan_type}'.")
        return payment_type, challan_type, types_to_mode(payment_type, challan_type)
    mode = str(form.get("entry_mode") or "unpaid").strip().lower()
    payment_type, challan_type = mode_to_types(mode)
    return payment_type, challan_type, mode


def shape_challan(form: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    party_name = str(form.get("party_name") or "").strip()
    raw_items = form.get("items") or []
    if not party_name or not raw_items:
        raise ValueError("Party name and at least one item are required.")

    payment_type, challan_type, mode = _resolve_types(form)
    items = [
        build_item(i.get("size"), i.get("weight"), i.get("price"), mode, item_id=i.get("id"))
        for i in raw_items
    ]
    return {
        "challan_no": str(form.get("challan_no") or "").strip(),
        "date": entry_date(form.get("date"), today),
        "party_name": party_name,
        "payment_type": payment_type,
        "challan_type": challan_type,
        "items": items,
        "grand_total": round(sum(i["total"] for i in items), 2),
    }


# -------------------------------
# Summary & filters
# -------------------------------
def challan_summary(challans: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    received = 0.0
    receivable = 0.0
    for c in challans:
        total = safe_float(c.get("grand_total"))
        if c.get("payment_type") == "cash":
            received += total
        elif is_receivable(c):
            receivable += total
    return {"receivable": round(receivable, 2), "received": round(received, 2)}


def _in_range(entry_day: Optional[date], filter_range: str, custom_date: str, raw_date: str, today: date) -> bool:
    if filter_range == "custom":
        return raw_date == custom_date
    if entry_day is None:
        return False
    if filter_range == "today":
        return entry_day == today
    days = 7 if filter_range == "7days" else 30
    return today - timedelta(days=days) <= entry_day <= today


def filter_challans(
    challans: Iterable[Dict[str, Any]],
    filter_range: str = "today",
    custom_date: Optional[str] = None,
    search: str = "",
    summary_filter: str = "all",
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    if filter_range not in FILTER_RANGES:
        raise ValueError(f"Unknown range '{filter_range}'.")
    if summary_filter not in SUMMARY_FILTERS:
        raise ValueError(f"Unknown summary filter '{summary_filter}'.")
    today = today or date.today()
    custom_date = custom_date or today.isoformat()
    term = (search or "").strip().lower()

    rows = []
    for c in challans:
        if term and term not in str(c.get("challan_no", "")).lower() and term not in str(c.get("party_name", "")).lower():
            continue
        if summary_filter == "cash" and c.get("payment_type") != "cash":
            continue
        if summary_filter == "unpaid" and not is_receivable(c):
            continue
        raw_date = str(c.get("date", ""))
        if not term and not _in_range(parse_day(raw_date), filter_range, custom_date, raw_date, today):
            continue
        rows.append(c)

    return sorted(rows, key=lambda c: parse_day(c.get("date")) or date.min, reverse=True)


# -------------------------------
# Persistence
# -------------------------------
def create_challan(form: Dict[str, Any], user: Optional[str] = None) -> Dict[str, Any]:
    entry = shape_challan(form)
    if not entry["challan_no"]:
        entry["challan_no"] = mongo_store.next_series(settings.challan_prefix(), mongo_store.CHALLANS, "challan_no")
    doc_id = mongo_store.add_document(mongo_store.CHALLANS, entry)
    write_audit_log(user=user, module="challan", action="create", reference=entry["challan_no"], after=entry)
    logger.info(f"Challan {entry['challan_no']} saved for {entry['party_name']} ({entry['grand_total']:.2f})")
    return mongo_store.get_document(mongo_store.CHALLANS, doc_id)


def update_challan(doc_id: str, form: Dict[str, Any], user: Optional[str] = None) -> Dict[str, Any]:
    before = mongo_store.get_document(mongo_store.CHALLANS, doc_id)
    entry = shape_challan(form)
    if not entry["challan_no"]:
        entry["challan_no"] = before.get("challan_no", "")
    saved = mongo_store.update_document(mongo_store.CHALLANS, doc_id, entry)
    write_audit_log(user=user, module="challan", action="update", reference=entry["challan_no"], before=before, after=entry)
    return saved


def delete_challan(doc_id: str, user: Optional[str] = None) -> None:
    before = mongo_store.delete_document(mongo_store.CHALLANS, doc_id)
    write_audit_log(user=user, module="challan", action="delete", reference=before.get("challan_no"), before=before)
