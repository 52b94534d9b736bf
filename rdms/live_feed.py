"""Collection subscriptions: full snapshots pushed whenever a collection changes."""
from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

from pymongo.errors import PyMongoError

from rdms import mongo_store, settings


logger = logging.getLogger(__name__)

FEEDS = {"dispatch": mongo_store.DISPATCH, "challans": mongo_store.CHALLANS}


def snapshot(name: str) -> List[Dict[str, Any]]:
    return mongo_store.list_documents(name)


def fingerprint(rows: List[Dict[str, Any]]) -> str:
    blob = json.dumps(rows, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha1(blob).hexdigest()


def _poll(name: str, interval: float, sleep: Callable[[float], None], last: Optional[str]) -> Iterator[List[Dict[str, Any]]]:
    while True:
        try:
            rows = snapshot(name)
        except PyMongoError as e:
            logger.error(f"{name} subscription error: {e}")
            sleep(interval)
            continue
        fp = fingerprint(rows)
        if fp != last:
            last = fp
            yield rows
        else:
            sleep(interval)


def _watch(name: str) -> Iterator[List[Dict[str, Any]]]:
    with mongo_store.collection(name).watch() as stream:
        for _change in stream:
            yield snapshot(name)


def iter_snapshots(
    name: str,
    poll_interval: Optional[float] = None,
    change_streams: Optional[bool] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[List[Dict[str, Any]]]:
    """Yield the current snapshot, then a fresh one after every change."""
    interval = settings.feed_poll_seconds() if poll_interval is None else poll_interval
    use_streams = settings.use_change_streams() if change_streams is None else change_streams

    rows = snapshot(name)
    yield rows
    last = fingerprint(rows)

    if use_streams:
        try:
            for rows in _watch(name):
                last = fingerprint(rows)
                yield rows
        except PyMongoError as e:
            logger.error(f"{name} change stream failed, polling instead: {e}")

    yield from _poll(name, interval, sleep, last)


def sse_events(name: str, max_events: Optional[int] = None, **kwargs: Any) -> Iterator[str]:
    for count, rows in enumerate(iter_snapshots(name, **kwargs), start=1):
        payload = json.dumps({"collection": name, "count": len(rows), "rows": rows}, default=str)
        yield f"event: snapshot\ndata: {payload}\n\n"
        if max_events is not None and count >= max_events:
            return
