"""Role check against the two fixed credential pairs, plus per-role navigation."""
from __future__ import annotations

import hmac
import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

from rdms import settings


logger = logging.getLogger(__name__)

ADMIN = "admin"
OPERATOR = "user"
ROLES = (ADMIN, OPERATOR)

ROLE_LABELS = {ADMIN: "Administrator", OPERATOR: "Operator"}


class AppView(str, Enum):
    ENTRY = "ENTRY"
    DASHBOARD = "DASHBOARD"
    ANALYTICS = "ANALYTICS"
    CHALLAN = "CHALLAN"


VIEWS_BY_ROLE: Dict[str, List[AppView]] = {
    ADMIN: [AppView.DASHBOARD, AppView.ANALYTICS, AppView.CHALLAN],
    OPERATOR: [AppView.ENTRY, AppView.CHALLAN],
}


class AccessDenied(Exception):
    pass


def normalize_role(role: Optional[str]) -> str:
    return (role or "").strip().lower()


def authenticate(role: str, username: str, password: str) -> str:
    """Return the role when the pair for that role matches, else raise ValueError."""
    role = normalize_role(role)
    pair = settings.credential_pairs().get(role)
    if pair is None:
        raise ValueError("Invalid ID or Password")
    expected_user, expected_pwd = pair
    user_ok = hmac.compare_digest((username or "").encode("utf-8"), expected_user.encode("utf-8"))
    pwd_ok = hmac.compare_digest((password or "").encode("utf-8"), expected_pwd.encode("utf-8"))
    if not (user_ok and pwd_ok):
        logger.warning(f"Failed login for role '{role}' as '{username}'")
        raise ValueError("Invalid ID or Password")
    logger.info(f"Login ok: {username} ({role})")
    return role


def allowed_views(role: str) -> List[AppView]:
    return list(VIEWS_BY_ROLE.get(normalize_role(role), []))


def default_view(role: str) -> AppView:
    return AppView.ENTRY if normalize_role(role) == OPERATOR else AppView.DASHBOARD


def resolve_view(role: str, requested: Optional[str]) -> AppView:
    try:
        view = AppView((requested or "").strip().upper())
    except ValueError:
        return default_view(role)
    if view == AppView.CHALLAN:
        return view
    if normalize_role(role) == OPERATOR:
        return AppView.ENTRY
    if view == AppView.ENTRY:
        return AppView.DASHBOARD
    return view


def role_guard(role: Optional[str], allowed: Iterable[str]) -> str:
    value = normalize_role(role)
    allowed_norm = {a.lower() for a in allowed}
    if value not in allowed_norm:
        raise AccessDenied("Access denied for this role.")
    return value


def session_payload(role: str, username: str) -> Dict[str, object]:
    return {
        "ok": True,
        "role": role,
        "user": username,
        "label": ROLE_LABELS[role],
        "views": [v.value for v in allowed_views(role)],
        "default_view": default_view(role).value,
    }
