from __future__ import annotations

import json
from datetime import date
from typing import Any, Dict, Optional, Tuple

from rdms import mongo_store
from rdms.utils import today_str


IMPORT_DISABLED_MESSAGE = "Import is disabled in Cloud Mode."


def backup_filename(today: Optional[date] = None) -> str:
    return f"rdms_cloud_backup_{today_str(today)}.json"


def build_backup(today: Optional[date] = None) -> Tuple[Dict[str, Any], str]:
    data = {
        "dispatch": mongo_store.list_documents(mongo_store.DISPATCH),
        "challan": mongo_store.list_documents(mongo_store.CHALLANS),
    }
    return data, backup_filename(today)


def dump_backup(data: Dict[str, Any]) -> bytes:
    return json.dumps(data, indent=2, default=str).encode("utf-8")
