"""Offline restore of an `rdms_cloud_backup_*.json` file into MongoDB.

Import through the API stays disabled; this is the operator-side path.
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo.collection import Collection

from rdms import mongo_store, settings


logger = logging.getLogger(__name__)

SECTIONS = {"dispatch": mongo_store.DISPATCH, "challan": mongo_store.CHALLANS}


def read_backup(path: Path) -> Dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Backup file must contain a JSON object.")
    return data


def to_list(value: Any) -> List[Dict[str, Any]]:
    if isinstance(value, list):
        return [v for v in value if isinstance(v, dict)]
    if isinstance(value, dict):
        return [value]
    return []


def upsert_many(coll: Collection, rows: Iterable[Dict[str, Any]]) -> int:
    count = 0
    for row in rows:
        doc = dict(row)
        key = str(doc.pop("id", "") or "").strip()
        doc.pop("_id", None)
        if not key:
            coll.insert_one(doc)
        else:
            _id = ObjectId(key) if ObjectId.is_valid(key) else key
            coll.replace_one({"_id": _id}, doc, upsert=True)
        count += 1
    return count


def restore_backup(data: Dict[str, Any]) -> Dict[str, int]:
    counts = {}
    for section, coll_name in SECTIONS.items():
        counts[section] = upsert_many(mongo_store.collection(coll_name), to_list(data.get(section)))
        logger.info(f"Restored {counts[section]} {section} rows")
    return counts


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Restore an RDMS cloud backup into MongoDB.")
    parser.add_argument("backup", type=Path, help="path to rdms_cloud_backup_YYYY-MM-DD.json")
    args = parser.parse_args(argv)

    settings.configure_logging()
    if not settings.mongo_uri():
        raise SystemExit("MONGODB_URI is required.")

    counts = restore_backup(read_backup(args.backup))
    print("Restore completed.")
    for section, n in counts.items():
        print(f"{section}={n}")


if __name__ == "__main__":
    main()
