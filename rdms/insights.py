from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types as genai_types

from rdms import settings
from rdms.utils import safe_float


logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = "You are an expert supply chain analyst assistant."
NO_DATA_MESSAGE = "No data available for analysis."
NOT_CONFIGURED_MESSAGE = "AI insights are not configured. Set GEMINI_API_KEY to enable them."
EMPTY_REPLY_MESSAGE = "Unable to generate insights."
ERROR_MESSAGE = "Error generating AI insights. Please check your API key or internet connection."

RECENT_LIMIT = 50


def recent_rows(entries: List[Dict[str, Any]], limit: int = RECENT_LIMIT) -> List[Dict[str, Any]]:
    """Newest `limit` entries, oldest first, reduced to the fields the prompt needs."""
    newest = sorted(entries, key=lambda e: safe_float(e.get("timestamp")), reverse=True)[:limit]
    rows = []
    for e in reversed(newest):
        rows.append(
            {
                "date": e.get("date"),
                "party": e.get("party_name"),
                "size": e.get("size"),
                "weight": safe_float(e.get("weight")),
                "pcs": safe_float(e.get("pcs")),
                "wastage": round(safe_float(e.get("production_weight")) - safe_float(e.get("weight")), 3),
            }
        )
    return rows


def build_prompt(rows: List[Dict[str, Any]]) -> str:
    return f"""
Analyze the following dispatch and production data for a steel/material manufacturing company.
Data (Last {len(rows)} entries): {json.dumps(rows)}

Please provide a concise executive summary in markdown format.
Include:
1. Trend analysis (is volume increasing or decreasing?).
2. Identification of the most valuable customer (by weight).
3. Wastage analysis: Are there specific sizes or dates with high wastage (Production Weight vs Dispatched Weight)?
4. Any anomalies in the size distribution or ordering patterns.
5. A brief suggestion for inventory planning based on recent demand.

Keep the tone professional and actionable.
""".strip()


def get_genai_client() -> Optional[genai.Client]:
    api_key = settings.gemini_api_key()
    if not api_key:
        return None
    return genai.Client(api_key=api_key)


def generate_dispatch_insights(entries: List[Dict[str, Any]], client: Optional[genai.Client] = None) -> str:
    if not entries:
        return NO_DATA_MESSAGE

    client = client or get_genai_client()
    if client is None:
        return NOT_CONFIGURED_MESSAGE

    prompt = build_prompt(recent_rows(entries))
    try:
        response = client.models.generate_content(
            model=settings.gemini_model(),
            contents=prompt,
            config=genai_types.GenerateContentConfig(system_instruction=SYSTEM_INSTRUCTION),
        )
    except Exception as e:
        logger.exception(f"Gemini analysis error: {e}")
        return ERROR_MESSAGE
    return (getattr(response, "text", None) or "").strip() or EMPTY_REPLY_MESSAGE


def plain_text(insight: str) -> str:
    return re.sub(r"[*#]", "", insight or "")
