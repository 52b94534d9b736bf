from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

from pymongo.errors import PyMongoError

from rdms import mongo_store
from rdms.audit_log import write_audit_log
from rdms.utils import entry_date, is_blank, safe_float, safe_int, today_str


logger = logging.getLogger(__name__)

STATUSES = ("pending", "running", "completed")
ENTRY_TYPES = ("standard", "slitting", "production")

OPTIONAL_FLOAT_FIELDS = ("gross_weight", "core_weight", "production_weight", "meter")


def _normalize_status(value: Any) -> str:
    status = str(value or "pending").strip().lower()
    if status not in STATUSES:
        raise ValueError(f"Unknown status '{value}'.")
    return status


def is_mm_size(size: Any) -> bool:
    return "mm" in str(size or "").lower()


# -------------------------------
# Form shaping
# -------------------------------
def shape_dispatch(form: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    party_name = str(form.get("party_name") or "").strip()
    size = str(form.get("size") or "").strip()
    if not party_name or not size:
        raise ValueError("Party & Size required")

    weight = safe_float(form.get("weight"))
    gross = form.get("gross_weight")
    core = form.get("core_weight")
    if not is_blank(gross) and not is_blank(core):
        g, c = safe_float(gross), safe_float(core)
        if g > c:
            weight = round(g - c, 3)

    status = _normalize_status(form.get("status"))
    if status == "completed" and weight <= 0:
        raise ValueError("Net Weight is required")

    bundle = safe_int(form.get("bundle"))
    pcs_raw = form.get("pcs")
    pcs = safe_float(pcs_raw)
    if is_mm_size(size) and is_blank(pcs_raw):
        pcs = float(bundle)

    entry: Dict[str, Any] = {
        "date": entry_date(form.get("date"), today),
        "party_name": party_name,
        "size": size,
        "weight": weight,
        "pcs": pcs,
        "bundle": bundle,
        "status": status,
    }
    for field in OPTIONAL_FLOAT_FIELDS:
        if not is_blank(form.get(field)):
            entry[field] = safe_float(form.get(field))
    if not is_blank(form.get("joint")):
        entry["joint"] = safe_int(form.get("joint"))
    return entry


def detect_entry_type(entry: Dict[str, Any]) -> str:
    if entry.get("joint") is not None or (entry.get("meter") and not entry.get("bundle")):
        return "production"
    if entry.get("core_weight") is not None:
        return "slitting"
    return "standard"


def duplicate_form(entry: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """Prefill a new form from an existing entry; weights stay empty."""
    return {
        "party_name": entry.get("party_name", ""),
        "size": entry.get("size", ""),
        "weight": "",
        "gross_weight": "",
        "core_weight": "",
        "production_weight": "",
        "pcs": entry.get("pcs") or "",
        "meter": entry.get("meter") or "",
        "bundle": entry.get("bundle") or "",
        "joint": "",
        "date": today_str(today),
        "status": "pending",
    }


# -------------------------------
# Listing helpers
# -------------------------------
def search_entries(entries: Iterable[Dict[str, Any]], query: str = "") -> List[Dict[str, Any]]:
    q = (query or "").strip().lower()
    rows = sorted(entries, key=lambda e: safe_float(e.get("timestamp")), reverse=True)
    if not q:
        return rows
    return [
        e for e in rows
        if q in str(e.get("party_name", "")).lower() or q in str(e.get("size", "")).lower()
    ]


def group_by_date_party(entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for entry in entries:
        key = f"{entry.get('date', '')}|{entry.get('party_name', '')}"
        groups.setdefault(key, []).append(entry)

    out = []
    for key, items in groups.items():
        day, party_name = key.split("|", 1)
        out.append(
            {
                "key": key,
                "date": day,
                "party_name": party_name,
                "count": len(items),
                "total_weight": round(sum(safe_float(i.get("weight")) for i in items), 3),
                "total_bundles": sum(safe_int(i.get("bundle")) for i in items),
                "entries": items,
            }
        )
    return out


def share_text(items: List[Dict[str, Any]]) -> str:
    if not items:
        return ""
    first = items[0]
    lines = [f"*Update - {first.get('date', '')}*", f"*Party:* {first.get('party_name', '')}", ""]
    total_wt = 0.0
    total_bdl = 0
    for item in items:
        wt = safe_float(item.get("weight"))
        detail = ""
        if item.get("gross_weight"):
            detail = f"(Gross: {item.get('gross_weight')} | Core: {item.get('core_weight')})"
        lines.append(f"• {item.get('size', '')} {detail}: {wt:.3f} kg | {safe_int(item.get('bundle'))} Pkg")
        total_wt += wt
        total_bdl += safe_int(item.get("bundle"))
    lines.append("")
    lines.append(f"*Total Net Weight:* {total_wt:.3f} kg")
    lines.append(f"*Total Bundles:* {total_bdl}")
    return "\n".join(lines)


def share_url(items: List[Dict[str, Any]]) -> str:
    return "https://wa.me/?text=" + quote(share_text(items), safe="")


# -------------------------------
# Persistence
# -------------------------------
def create_dispatch(form: Dict[str, Any], user: Optional[str] = None) -> Dict[str, Any]:
    entry = shape_dispatch(form)
    doc_id = mongo_store.add_document(mongo_store.DISPATCH, entry)
    saved = mongo_store.get_document(mongo_store.DISPATCH, doc_id)
    write_audit_log(user=user, module="dispatch", action="create", reference=doc_id, after=entry)
    return saved


def update_dispatch(doc_id: str, form: Dict[str, Any], user: Optional[str] = None) -> Dict[str, Any]:
    before = mongo_store.get_document(mongo_store.DISPATCH, doc_id)
    entry = shape_dispatch(form)
    unset = [f for f in OPTIONAL_FLOAT_FIELDS + ("joint",) if f in before and f not in entry]
    saved = mongo_store.update_document(mongo_store.DISPATCH, doc_id, entry, unset=unset)
    write_audit_log(user=user, module="dispatch", action="update", reference=doc_id, before=before, after=entry)
    return saved


def delete_dispatch(doc_id: str, user: Optional[str] = None) -> None:
    before = mongo_store.delete_document(mongo_store.DISPATCH, doc_id)
    write_audit_log(user=user, module="dispatch", action="delete", reference=doc_id, before=before)


def bulk_delete(ids: Iterable[str], user: Optional[str] = None) -> Tuple[List[str], List[str]]:
    done: List[str] = []
    failed: List[str] = []
    for doc_id in ids:
        try:
            delete_dispatch(doc_id, user=user)
            done.append(doc_id)
        except (LookupError, PyMongoError) as e:
            logger.error(f"Bulk delete error for {doc_id}: {e}")
            failed.append(doc_id)
    return done, failed


def bulk_update_status(ids: Iterable[str], status: str, user: Optional[str] = None) -> Tuple[List[str], List[str]]:
    status = _normalize_status(status)
    done: List[str] = []
    failed: List[str] = []
    for doc_id in ids:
        try:
            mongo_store.update_document(mongo_store.DISPATCH, doc_id, {"status": status})
            write_audit_log(user=user, module="dispatch", action="status", reference=doc_id, after={"status": status})
            done.append(doc_id)
        except (LookupError, PyMongoError) as e:
            logger.error(f"Bulk update error for {doc_id}: {e}")
            failed.append(doc_id)
    return done, failed
