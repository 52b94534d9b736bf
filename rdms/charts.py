from __future__ import annotations

import io
from datetime import date
from typing import Any, Dict, List, Optional

from matplotlib.figure import Figure

from rdms import analytics


COLORS = ["#6366f1", "#8b5cf6", "#ec4899", "#10b981", "#f59e0b", "#3b82f6"]
CHARTS = ("top-parties", "sizes", "trend", "last-7-days")


def _png(fig: Figure) -> bytes:
    buf = io.BytesIO()
    fig.tight_layout()
    fig.savefig(buf, format="png", dpi=100)
    return buf.getvalue()


def render_chart(name: str, entries: List[Dict[str, Any]], today: Optional[date] = None) -> bytes:
    if name not in CHARTS:
        raise ValueError(f"Unknown chart '{name}'.")

    fig = Figure(figsize=(6, 4))
    ax = fig.add_subplot(111)

    if name == "top-parties":
        data = analytics.top_parties(entries)
        ax.bar([d["name"] for d in data], [d["weight"] for d in data], color=COLORS[0])
        ax.set_title("Top Parties by Weight")
        ax.set_ylabel("Weight (kg)")
        ax.tick_params(axis="x", labelrotation=30)
    elif name == "sizes":
        data = analytics.size_distribution(entries)
        if data:
            ax.pie(
                [d["value"] for d in data],
                labels=[d["name"] for d in data],
                colors=[COLORS[i % len(COLORS)] for i in range(len(data))],
                wedgeprops={"width": 0.4},
            )
        ax.set_title("Size Distribution")
    elif name == "trend":
        data = analytics.date_trend(entries)
        ax.plot([d["date"] for d in data], [d["weight"] for d in data], marker="o", color=COLORS[1])
        ax.set_title("Weight Trend")
        ax.set_ylabel("Weight (kg)")
        ax.tick_params(axis="x", labelrotation=30)
    else:
        data = analytics.last_7_days(entries, today)
        labels = [d["date"] for d in data]
        weights = [d["weight"] for d in data]
        ax.fill_between(range(len(labels)), weights, color=COLORS[0], alpha=0.3)
        ax.plot(range(len(labels)), weights, color=COLORS[0])
        ax.set_xticks(range(len(labels)))
        ax.set_xticklabels(labels)
        ax.set_title("Last 7 Days")

    return _png(fig)
