from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING

from rdms import mongo_store
from rdms.utils import now_ms


logger = logging.getLogger(__name__)


def write_audit_log(
    user: Optional[str] = None,
    module: Optional[str] = None,
    action: Optional[str] = None,
    reference: Optional[str] = None,
    before: Any = None,
    after: Any = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    log = {
        "timestamp": now_ms(),
        "time": datetime.now().strftime("%d-%m-%Y %H:%M:%S"),
        "user": str(user or "").strip() or "web_user",
        "module": module,
        "action": action,
        "reference": reference,
        "before": before,
        "after": after,
    }
    if extra:
        log.update(extra)

    mongo_store.collection(mongo_store.AUDIT_LOG).insert_one(log)
    logger.info(f"{log['user']} {action} {module} {reference or ''}".rstrip())


def recent_audit_logs(limit: int = 200) -> List[Dict[str, Any]]:
    limit = max(1, min(int(limit), 5000))
    rows = mongo_store.collection(mongo_store.AUDIT_LOG).find({}).sort("timestamp", DESCENDING).limit(limit)
    return [mongo_store.serialize_doc(r) for r in rows]
