from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse
from pydantic import BaseModel
from pymongo.database import Database

from rdms import (
    __version__,
    analytics,
    auth,
    backup,
    challans,
    charts,
    dispatch,
    insights,
    live_feed,
    mongo_store,
    parties,
    settings,
)
from rdms.audit_log import recent_audit_logs
from rdms.challan_pdf import render_challan_pdf
from rdms.dispatch_excel import export_dispatch_log


logger = logging.getLogger(__name__)

APP_TITLE = "RDMS Dispatch & Challan API"

BOTH = [auth.ADMIN, auth.OPERATOR]
ADMIN_ONLY = [auth.ADMIN]

Num = Optional[Union[float, str]]


class LoginRequest(BaseModel):
    username: str
    password: str
    role: str = auth.ADMIN


class DispatchForm(BaseModel):
    date: Optional[str] = None
    party_name: str = ""
    size: str = ""
    weight: Num = None
    gross_weight: Num = None
    core_weight: Num = None
    production_weight: Num = None
    pcs: Num = None
    meter: Num = None
    bundle: Num = None
    joint: Num = None
    status: str = "pending"


class ChallanItemIn(BaseModel):
    id: Optional[str] = None
    size: str = ""
    weight: Num = None
    price: Num = None


class ChallanForm(BaseModel):
    challan_no: str = ""
    date: Optional[str] = None
    party_name: str = ""
    entry_mode: str = "unpaid"
    payment_type: Optional[str] = None
    challan_type: Optional[str] = None
    items: List[ChallanItemIn] = []


class IdsRequest(BaseModel):
    ids: List[str]


class BulkStatusRequest(BaseModel):
    ids: List[str]
    status: str


class PartyRequest(BaseModel):
    name: str


def _actor(x_user_role: Optional[str], x_user_name: Optional[str], allowed: List[str]) -> Tuple[str, str]:
    role = auth.role_guard(x_user_role, allowed)
    return role, (x_user_name or "").strip() or "web_user"


def _with_entry_type(row: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(row)
    out["entry_type"] = dispatch.detect_entry_type(row)
    return out


def _with_state(row: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(row)
    out["state"] = challans.challan_state(row)
    out["entry_mode"] = challans.types_to_mode(row.get("payment_type", ""), row.get("challan_type", ""))
    return out


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValueError)
    async def value_error(_request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(mongo_store.DocumentNotFound)
    async def not_found(_request: Request, exc: mongo_store.DocumentNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(auth.AccessDenied)
    async def access_denied(_request: Request, exc: auth.AccessDenied) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(mongo_store.StoreNotConfigured)
    async def store_not_configured(_request: Request, exc: mongo_store.StoreNotConfigured) -> JSONResponse:
        logger.error(str(exc))
        return JSONResponse(status_code=500, content={"detail": str(exc)})


def create_app(database: Optional[Database] = None) -> FastAPI:
    settings.configure_logging()
    if database is not None:
        mongo_store.use_database(database)

    app = FastAPI(title=APP_TITLE, version=__version__)
    _register_error_handlers(app)

    @app.on_event("startup")
    def startup() -> None:
        mongo_store.ensure_indexes()

    @app.get("/")
    def root() -> Dict[str, str]:
        return {"service": "rdms-dispatch-api", "status": "ok", "docs": "/docs", "app": "/app"}

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "healthy"}

    # -------------------------------
    # Auth & navigation
    # -------------------------------
    @app.post("/auth/login")
    def auth_login(payload: LoginRequest) -> Dict[str, Any]:
        try:
            role = auth.authenticate(payload.role, payload.username, payload.password)
        except ValueError as e:
            raise HTTPException(status_code=401, detail=str(e))
        return auth.session_payload(role, payload.username)

    @app.get("/navigation")
    def navigation(view: Optional[str] = None, x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        role = auth.role_guard(x_user_role, BOTH)
        return {
            "role": role,
            "label": auth.ROLE_LABELS[role],
            "views": [v.value for v in auth.allowed_views(role)],
            "default_view": auth.default_view(role).value,
            "current_view": auth.resolve_view(role, view).value,
            "can_export": role == auth.ADMIN,
        }

    # -------------------------------
    # Parties
    # -------------------------------
    @app.get("/parties")
    def parties_list(x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, BOTH)
        return {"parties": parties.list_parties()}

    @app.post("/parties")
    def parties_add(payload: PartyRequest, x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, BOTH)
        name = parties.add_party(payload.name)
        return {"ok": True, "name": name, "parties": parties.list_parties()}

    # -------------------------------
    # Dispatch / job entries
    # -------------------------------
    @app.get("/dispatch")
    def dispatch_list(q: str = "", x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, BOTH)
        rows = dispatch.search_entries(mongo_store.list_documents(mongo_store.DISPATCH), q)
        return {"count": len(rows), "rows": [_with_entry_type(r) for r in rows]}

    @app.get("/dispatch/groups")
    def dispatch_groups(q: str = "", x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, BOTH)
        rows = dispatch.search_entries(mongo_store.list_documents(mongo_store.DISPATCH), q)
        return {"groups": dispatch.group_by_date_party([_with_entry_type(r) for r in rows])}

    @app.post("/dispatch")
    def dispatch_create(
        payload: DispatchForm,
        x_user_role: Optional[str] = Header(default=None),
        x_user_name: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _, user = _actor(x_user_role, x_user_name, BOTH)
        return {"ok": True, "entry": dispatch.create_dispatch(payload.model_dump(), user=user)}

    @app.post("/dispatch/bulk-delete")
    def dispatch_bulk_delete(
        payload: IdsRequest,
        x_user_role: Optional[str] = Header(default=None),
        x_user_name: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _, user = _actor(x_user_role, x_user_name, BOTH)
        done, failed = dispatch.bulk_delete(payload.ids, user=user)
        return {"ok": not failed, "deleted": done, "failed": failed}

    @app.post("/dispatch/bulk-status")
    def dispatch_bulk_status(
        payload: BulkStatusRequest,
        x_user_role: Optional[str] = Header(default=None),
        x_user_name: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _, user = _actor(x_user_role, x_user_name, BOTH)
        done, failed = dispatch.bulk_update_status(payload.ids, payload.status, user=user)
        return {"ok": not failed, "updated": done, "failed": failed}

    @app.post("/dispatch/share")
    def dispatch_share(payload: IdsRequest, x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, BOTH)
        items = [mongo_store.get_document(mongo_store.DISPATCH, i) for i in payload.ids]
        return {"text": dispatch.share_text(items), "url": dispatch.share_url(items)}

    @app.get("/dispatch/{entry_id}")
    def dispatch_get(entry_id: str, x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, BOTH)
        return _with_entry_type(mongo_store.get_document(mongo_store.DISPATCH, entry_id))

    @app.get("/dispatch/{entry_id}/duplicate")
    def dispatch_duplicate(entry_id: str, x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, BOTH)
        entry = mongo_store.get_document(mongo_store.DISPATCH, entry_id)
        return {"form": dispatch.duplicate_form(entry), "entry_type": dispatch.detect_entry_type(entry)}

    @app.put("/dispatch/{entry_id}")
    def dispatch_update(
        entry_id: str,
        payload: DispatchForm,
        x_user_role: Optional[str] = Header(default=None),
        x_user_name: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _, user = _actor(x_user_role, x_user_name, BOTH)
        return {"ok": True, "entry": dispatch.update_dispatch(entry_id, payload.model_dump(), user=user)}

    @app.delete("/dispatch/{entry_id}")
    def dispatch_delete(
        entry_id: str,
        x_user_role: Optional[str] = Header(default=None),
        x_user_name: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _, user = _actor(x_user_role, x_user_name, BOTH)
        dispatch.delete_dispatch(entry_id, user=user)
        return {"ok": True}

    # -------------------------------
    # Challans
    # -------------------------------
    @app.get("/challans")
    def challans_list(
        filter_range: str = Query(default="today", alias="range"),
        date: Optional[str] = None,
        q: str = "",
        summary: str = "all",
        x_user_role: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        auth.role_guard(x_user_role, BOTH)
        data = mongo_store.list_documents(mongo_store.CHALLANS)
        rows = challans.filter_challans(data, filter_range=filter_range, custom_date=date, search=q, summary_filter=summary)
        return {
            "summary": challans.challan_summary(data),
            "count": len(rows),
            "rows": [_with_state(r) for r in rows],
        }

    @app.post("/challans")
    def challans_create(
        payload: ChallanForm,
        x_user_role: Optional[str] = Header(default=None),
        x_user_name: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _, user = _actor(x_user_role, x_user_name, BOTH)
        return {"ok": True, "challan": _with_state(challans.create_challan(payload.model_dump(), user=user))}

    @app.get("/challans/{challan_id}")
    def challans_get(challan_id: str, x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, BOTH)
        return _with_state(mongo_store.get_document(mongo_store.CHALLANS, challan_id))

    @app.get("/challans/{challan_id}/pdf")
    def challans_pdf(challan_id: str, x_user_role: Optional[str] = Header(default=None)) -> Response:
        auth.role_guard(x_user_role, BOTH)
        entry = mongo_store.get_document(mongo_store.CHALLANS, challan_id)
        pdf = render_challan_pdf(entry, settings.company())
        filename = f"challan_{entry.get('challan_no') or challan_id}.pdf"
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={"Content-Disposition": f'inline; filename="{filename}"'},
        )

    @app.put("/challans/{challan_id}")
    def challans_update(
        challan_id: str,
        payload: ChallanForm,
        x_user_role: Optional[str] = Header(default=None),
        x_user_name: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _, user = _actor(x_user_role, x_user_name, BOTH)
        return {"ok": True, "challan": _with_state(challans.update_challan(challan_id, payload.model_dump(), user=user))}

    @app.delete("/challans/{challan_id}")
    def challans_delete(
        challan_id: str,
        x_user_role: Optional[str] = Header(default=None),
        x_user_name: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _, user = _actor(x_user_role, x_user_name, BOTH)
        challans.delete_challan(challan_id, user=user)
        return {"ok": True}

    # -------------------------------
    # Dashboard & analytics (admin)
    # -------------------------------
    @app.get("/dashboard")
    def dashboard(
        party: str = "",
        size: str = "",
        start_date: str = "",
        end_date: str = "",
        status: str = "all",
        view: str = "stats",
        selected_date: str = "",
        year: Optional[int] = None,
        month: Optional[int] = None,
        x_user_role: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        auth.role_guard(x_user_role, ADMIN_ONLY)
        if view not in ("stats", "calendar"):
            raise ValueError(f"Unknown dashboard view '{view}'.")
        filters = {
            "party": party,
            "size": size,
            "start_date": start_date,
            "end_date": end_date,
            "status": status,
            "selected_date": selected_date,
        }
        entries = mongo_store.list_documents(mongo_store.DISPATCH)
        return analytics.dashboard_view(entries, filters, view_mode=view, year=year, month=month)

    @app.get("/analytics")
    def analytics_overview(x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, ADMIN_ONLY)
        return analytics.analytics_view(mongo_store.list_documents(mongo_store.DISPATCH))

    @app.get("/analytics/charts/{name}")
    def analytics_chart(name: str, x_user_role: Optional[str] = Header(default=None)) -> Response:
        auth.role_guard(x_user_role, ADMIN_ONLY)
        png = charts.render_chart(name, mongo_store.list_documents(mongo_store.DISPATCH))
        return Response(content=png, media_type="image/png")

    @app.post("/analytics/insights")
    def analytics_insights(plain: bool = False, x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, ADMIN_ONLY)
        text = insights.generate_dispatch_insights(mongo_store.list_documents(mongo_store.DISPATCH))
        return {"insight": insights.plain_text(text) if plain else text}

    # -------------------------------
    # Export / import / audit (admin)
    # -------------------------------
    @app.get("/export/backup")
    def export_backup(x_user_role: Optional[str] = Header(default=None)) -> Response:
        auth.role_guard(x_user_role, ADMIN_ONLY)
        data, filename = backup.build_backup()
        return Response(
            content=backup.dump_backup(data),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/import/backup")
    def import_backup(x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, ADMIN_ONLY)
        raise HTTPException(status_code=403, detail=backup.IMPORT_DISABLED_MESSAGE)

    @app.get("/export/dispatch.xlsx")
    def export_dispatch(x_user_role: Optional[str] = Header(default=None)) -> Response:
        auth.role_guard(x_user_role, ADMIN_ONLY)
        rows = analytics.sort_entries(mongo_store.list_documents(mongo_store.DISPATCH))
        return Response(
            content=export_dispatch_log(dispatch.group_by_date_party(rows)),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": 'attachment; filename="production_log.xlsx"'},
        )

    @app.get("/audit")
    def audit(limit: int = 200, x_user_role: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        auth.role_guard(x_user_role, ADMIN_ONLY)
        rows = recent_audit_logs(limit)
        return {"count": len(rows), "rows": rows}

    # -------------------------------
    # Live feed
    # -------------------------------
    @app.get("/stream/{feed}")
    def stream(
        feed: str,
        role: Optional[str] = None,
        max_events: Optional[int] = None,
        x_user_role: Optional[str] = Header(default=None),
    ) -> StreamingResponse:
        auth.role_guard(x_user_role or role, BOTH)
        name = live_feed.FEEDS.get(feed)
        if name is None:
            raise HTTPException(status_code=404, detail=f"Unknown feed '{feed}'.")
        return StreamingResponse(
            live_feed.sse_events(name, max_events=max_events),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )

    @app.get("/app", response_class=HTMLResponse)
    def web_app() -> HTMLResponse:
        return HTMLResponse(
            """
            <!doctype html>
            <html>
            <head>
              <meta charset="utf-8">
              <meta name="viewport" content="width=device-width, initial-scale=1">
              <title>RDMS - Production</title>
              <style>body{font-family:Segoe UI,Tahoma,sans-serif;padding:20px;background:#f4f7fb} .card{max-width:920px;margin:0 auto;background:#fff;border:1px solid #d8e0ec;border-radius:10px;padding:16px} code{background:#eef4fc;padding:2px 6px;border-radius:6px}</style>
            </head>
            <body>
              <div class="card">
                <h2>RDMS Dispatch &amp; Challan API is Live</h2>
                <p>Log in with <code>POST /auth/login</code>, then send <code>x-user-role</code> and <code>x-user-name</code> headers.</p>
                <p>Live collections: <code>/stream/dispatch</code> and <code>/stream/challans</code>. API docs: <code>/docs</code>.</p>
              </div>
            </body>
            </html>
            """
        )

    return app


app = create_app()
