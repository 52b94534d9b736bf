from __future__ import annotations

import logging
from typing import List

from pymongo import ASCENDING

from rdms import mongo_store
from rdms.utils import now_ms


logger = logging.getLogger(__name__)

DEFAULT_PARTIES = [
    "Acme Construction",
    "BuildRight Inc",
    "Global Steel Co",
    "Urban Developers",
    "Metro Infra",
    "TechStruct Ltd",
    "Prime Materials",
]


def custom_parties() -> List[str]:
    rows = mongo_store.collection(mongo_store.PARTIES).find({}).sort("timestamp", ASCENDING)
    return [str(r.get("name", "")).strip() for r in rows if str(r.get("name", "")).strip()]


def list_parties() -> List[str]:
    out: List[str] = []
    for name in DEFAULT_PARTIES + custom_parties():
        if name not in out:
            out.append(name)
    return out


def add_party(name: str) -> str:
    text = str(name or "").strip()
    if not text:
        raise ValueError("Party name is required.")
    if text in DEFAULT_PARTIES:
        return text
    mongo_store.collection(mongo_store.PARTIES).update_one(
        {"name": text},
        {"$setOnInsert": {"name": text, "timestamp": now_ms()}},
        upsert=True,
    )
    logger.info(f"Party saved: {text}")
    return text
