from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from rdms import settings
from rdms.utils import now_ms


logger = logging.getLogger(__name__)

DISPATCH = "dispatch"
CHALLANS = "challans"
PARTIES = "parties"
AUDIT_LOG = "audit_log"
COUNTERS = "counters"


class StoreNotConfigured(RuntimeError):
    pass


class DocumentNotFound(LookupError):
    pass


_client: Optional[MongoClient] = None
_database: Optional[Database] = None
_client_lock = threading.Lock()


def use_database(db: Optional[Database]) -> None:
    """Install an explicit database handle; None goes back to MONGODB_URI."""
    global _database
    _database = db


def _mongo_client() -> MongoClient:
    global _client
    with _client_lock:
        if _client is None:
            uri = settings.mongo_uri()
            if not uri:
                raise StoreNotConfigured("MONGODB_URI is not configured.")
            _client = MongoClient(uri)
            logger.info(f"Connected Mongo client for database '{settings.db_name()}'")
        return _client


def database() -> Database:
    if _database is not None:
        return _database
    return _mongo_client()[settings.db_name()]


def collection(name: str) -> Collection:
    return database()[name]


def _id_filter(doc_id: str) -> Dict[str, Any]:
    text = str(doc_id or "").strip()
    if ObjectId.is_valid(text):
        return {"_id": ObjectId(text)}
    return {"_id": text}


def serialize_doc(row: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(row)
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    return out


def list_documents(name: str) -> List[Dict[str, Any]]:
    rows = collection(name).find({}).sort("timestamp", DESCENDING)
    return [serialize_doc(r) for r in rows]


def get_document(name: str, doc_id: str) -> Dict[str, Any]:
    row = collection(name).find_one(_id_filter(doc_id))
    if not row:
        raise DocumentNotFound(f"No {name} document with id '{doc_id}'.")
    return serialize_doc(row)


def add_document(name: str, data: Dict[str, Any]) -> str:
    row = {k: v for k, v in data.items() if k not in ("id", "_id")}
    row.setdefault("timestamp", now_ms())
    result = collection(name).insert_one(row)
    return str(result.inserted_id)


def update_document(
    name: str,
    doc_id: str,
    updates: Dict[str, Any],
    unset: Optional[List[str]] = None,
) -> Dict[str, Any]:
    fields = {k: v for k, v in updates.items() if k not in ("id", "_id")}
    ops: Dict[str, Any] = {}
    if fields:
        ops["$set"] = fields
    if unset:
        ops["$unset"] = {f: "" for f in unset if f not in fields}
    if not ops:
        return get_document(name, doc_id)
    row = collection(name).find_one_and_update(
        _id_filter(doc_id),
        ops,
        return_document=ReturnDocument.AFTER,
    )
    if not row:
        raise DocumentNotFound(f"No {name} document with id '{doc_id}'.")
    return serialize_doc(row)


def delete_document(name: str, doc_id: str) -> Dict[str, Any]:
    row = collection(name).find_one_and_delete(_id_filter(doc_id))
    if not row:
        raise DocumentNotFound(f"No {name} document with id '{doc_id}'.")
    return serialize_doc(row)


def next_series(prefix: str, coll_name: str, field: str) -> str:
    row = collection(COUNTERS).find_one_and_update(
        {"_id": f"{coll_name}:{field}"},
        {"$inc": {"value": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    number = int((row or {}).get("value", 1))
    return f"{prefix}{number:04d}"


def ensure_indexes() -> None:
    collection(DISPATCH).create_index([("timestamp", DESCENDING)])
    collection(DISPATCH).create_index([("date", DESCENDING), ("party_name", ASCENDING)])
    collection(CHALLANS).create_index([("timestamp", DESCENDING)])
    collection(CHALLANS).create_index([("date", DESCENDING)])
    collection(PARTIES).create_index([("name", ASCENDING)], unique=True)
    collection(AUDIT_LOG).create_index([("timestamp", DESCENDING)])
