"""Derived aggregates over dispatch entries for the dashboard and analytics views.

Everything here works on plain lists of serialized documents, so the same
functions serve the JSON views, the chart renderer and the Excel export.
"""
from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from rdms.dispatch import STATUSES, group_by_date_party
from rdms.utils import parse_day, safe_float, safe_int


SORT_KEYS = ("timestamp", "date", "party_name", "size", "weight", "pcs", "bundle", "status")


def unique_parties(entries: Iterable[Dict[str, Any]]) -> List[str]:
    return sorted({str(e.get("party_name", "")) for e in entries})


def unique_sizes(entries: Iterable[Dict[str, Any]]) -> List[str]:
    return sorted({str(e.get("size", "")) for e in entries})


def filter_dispatch(entries: Iterable[Dict[str, Any]], filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Apply dashboard filters.

    A calendar-selected date wins over every other filter. Otherwise status,
    exact party, exact size and an inclusive YYYY-MM-DD range are combined.
    """
    f = filters or {}
    selected = f.get("selected_date") or ""
    if selected:
        return [e for e in entries if e.get("date") == selected]

    status = (f.get("status") or "all").lower()
    if status != "all" and status not in STATUSES:
        raise ValueError(f"Unknown status '{status}'.")
    party = f.get("party") or ""
    size = f.get("size") or ""
    start = f.get("start_date") or ""
    end = f.get("end_date") or ""

    out = []
    for e in entries:
        if status != "all" and e.get("status") != status:
            continue
        if party and e.get("party_name") != party:
            continue
        if size and e.get("size") != size:
            continue
        day = str(e.get("date", ""))
        if start and day < start:
            continue
        if end and day > end:
            continue
        out.append(e)
    return out


def sort_entries(entries: Iterable[Dict[str, Any]], key: str = "timestamp", direction: str = "desc") -> List[Dict[str, Any]]:
    if key not in SORT_KEYS:
        raise ValueError(f"Cannot sort by '{key}'.")
    numeric = key in ("timestamp", "weight", "pcs", "bundle")

    def _key(e):
        return safe_float(e.get(key)) if numeric else str(e.get(key, ""))

    return sorted(entries, key=_key, reverse=(direction != "asc"))


def dispatch_totals(entries: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    totals = {"weight": 0.0, "bundles": 0, "pcs": 0.0, "count": 0}
    for e in entries:
        totals["weight"] += safe_float(e.get("weight"))
        totals["bundles"] += safe_int(e.get("bundle"))
        totals["pcs"] += safe_float(e.get("pcs"))
        totals["count"] += 1
    totals["weight"] = round(totals["weight"], 3)
    return totals


def last_7_days(entries: Iterable[Dict[str, Any]], today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    days = [(today - timedelta(days=i)).isoformat() for i in range(6, -1, -1)]
    weights = {d: 0.0 for d in days}
    for e in entries:
        if e.get("date") in weights:
            weights[e["date"]] += safe_float(e.get("weight"))
    return [{"date": d[5:].replace("-", "/"), "weight": round(weights[d], 3)} for d in days]


def calendar_month(entries: Iterable[Dict[str, Any]], year: int, month: int) -> Dict[str, Any]:
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12.")
    counts: Dict[str, int] = {}
    for e in entries:
        counts[str(e.get("date", ""))] = counts.get(str(e.get("date", "")), 0) + 1

    # Sunday-first grid
    leading_blanks = (date(year, month, 1).weekday() + 1) % 7
    days = []
    for d in range(1, calendar.monthrange(year, month)[1] + 1):
        key = f"{year:04d}-{month:02d}-{d:02d}"
        days.append({"date": key, "day": d, "count": counts.get(key, 0)})
    return {"year": year, "month": month, "leading_blanks": leading_blanks, "days": days}


def _weight_by(entries: Iterable[Dict[str, Any]], field: str) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for e in entries:
        name = str(e.get(field, ""))
        out[name] = out.get(name, 0.0) + safe_float(e.get("weight"))
    return out


def top_parties(entries: Iterable[Dict[str, Any]], n: int = 5) -> List[Dict[str, Any]]:
    rows = sorted(_weight_by(entries, "party_name").items(), key=lambda kv: kv[1], reverse=True)
    return [{"name": k, "weight": round(v, 3)} for k, v in rows[:n]]


def size_distribution(entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    rows = sorted(_weight_by(entries, "size").items(), key=lambda kv: kv[1], reverse=True)
    return [{"name": k, "value": round(v, 3)} for k, v in rows]


def date_trend(entries: Iterable[Dict[str, Any]], days: int = 7) -> List[Dict[str, Any]]:
    by_date = _weight_by(entries, "date")
    rows = sorted(by_date.items(), key=lambda kv: parse_day(kv[0]) or date.min)
    return [{"date": k, "weight": round(v, 3)} for k, v in rows[-days:]]


def analytics_summary(entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    parties = top_parties(entries, n=1)
    sizes = size_distribution(entries)
    return {
        "total_weight": round(sum(safe_float(e.get("weight")) for e in entries), 3),
        "total_bundles": sum(safe_int(e.get("bundle")) for e in entries),
        "top_party": parties[0]["name"] if parties else "",
        "top_size": sizes[0]["name"] if sizes else "",
    }


def analytics_view(entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "empty": not entries,
        "summary": analytics_summary(entries),
        "top_parties": top_parties(entries),
        "size_distribution": size_distribution(entries),
        "date_trend": date_trend(entries),
    }


def dashboard_view(
    entries: List[Dict[str, Any]],
    filters: Optional[Dict[str, Any]] = None,
    view_mode: str = "stats",
    year: Optional[int] = None,
    month: Optional[int] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    today = today or date.today()
    f = dict(filters or {})
    if view_mode != "calendar":
        f.pop("selected_date", None)
    filtered = sort_entries(filter_dispatch(entries, f))

    view: Dict[str, Any] = {
        "view_mode": view_mode,
        "totals": dispatch_totals(entries if view_mode == "calendar" else filtered),
        "chart": last_7_days(entries, today),
        "groups": group_by_date_party(filtered),
        "options": {"parties": unique_parties(entries), "sizes": unique_sizes(entries)},
    }
    if view_mode == "calendar":
        view["calendar"] = calendar_month(entries, year or today.year, month or today.month)
        view["selected_date"] = f.get("selected_date") or None
    return view
