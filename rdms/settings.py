from __future__ import annotations

import logging
import os
from typing import Dict, Tuple


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or default).strip()


def mongo_uri() -> str:
    return _env("MONGODB_URI")


def db_name() -> str:
    return _env("MONGODB_DB_NAME", "rdms")


def credential_pairs() -> Dict[str, Tuple[str, str]]:
    """Role -> (username, password). One fixed pair per role."""
    return {
        "admin": (_env("ADMIN_USERNAME", "Admin"), _env("ADMIN_PASSWORD", "Admin.123")),
        "user": (_env("OPERATOR_USERNAME", "User"), _env("OPERATOR_PASSWORD", "User.123")),
    }


def gemini_api_key() -> str:
    return _env("GEMINI_API_KEY") or _env("API_KEY")


def gemini_model() -> str:
    return _env("GEMINI_MODEL", "gemini-2.5-flash")


def feed_poll_seconds() -> float:
    try:
        return max(0.1, float(_env("FEED_POLL_SECONDS", "2.0")))
    except ValueError:
        return 2.0


def use_change_streams() -> bool:
    return _env("FEED_USE_CHANGE_STREAMS", "0").lower() in ("1", "true", "yes")


def challan_prefix() -> str:
    return _env("CHALLAN_PREFIX", "CH")


def configure_logging() -> None:
    level = getattr(logging, _env("LOG_LEVEL", "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def company() -> Dict[str, str]:
    return {
        "name": _env("COMPANY_NAME", "RDMS Production"),
        "address": _env("COMPANY_ADDRESS"),
    }
