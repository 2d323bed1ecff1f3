#!/usr/bin/env python3
"""
HTTP surface for the inventory store and the chat advisor.

`create_app()` accepts ready-made collaborators (used by tests); anything left
out is built from CONFIG.yaml when the application starts. Serve the
module-level `app` with any ASGI server, e.g. `uvicorn bisnis_pintar.app:app`.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bisnis_pintar.advisor.chat import ChatSession
from bisnis_pintar.advisor.gemini_client import GeminiAdvisor
from bisnis_pintar.errors import AdvisorBusyError, PersistenceError
from bisnis_pintar.inventory.forms import ItemForm, build_item
from bisnis_pintar.inventory.models import BusinessMetrics
from bisnis_pintar.inventory.snapshots import snapshot_store_from_config
from bisnis_pintar.inventory.store import InventoryStore
from bisnis_pintar.utils.config import AppConfig, AppSettings, load_config
from bisnis_pintar.utils.money import format_rupiah

logger = logging.getLogger(__name__)


class ChatQuestion(BaseModel):
    question: str


def dashboard_greeting(metrics: BusinessMetrics) -> Dict[str, str]:
    body = f"Total aset modal Anda saat ini {format_rupiah(metrics.total_capital)}."
    if metrics.total_items == 0:
        body += " Ayo mulai catat barang dagangan Anda."
    else:
        body += " Pastikan stok selalu aman."
    return {"title": "Halo, Juragan!", "body": body}


def create_app(
    store: Optional[InventoryStore] = None,
    chat: Optional[ChatSession] = None,
    config: Optional[AppConfig] = None,
) -> FastAPI:
    settings = config.app if config is not None else AppSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.store is None:
            cfg = config or load_config()
            app.state.settings = cfg.app
            app.state.store = InventoryStore.open(snapshot_store_from_config(cfg))
            if app.state.chat is None:
                app.state.chat = ChatSession(app.state.store, GeminiAdvisor.from_settings(cfg.advisor))
        yield
        if app.state.chat is not None:
            app.state.chat.close()

    app = FastAPI(title=settings.title, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.chat = chat

    @app.exception_handler(PersistenceError)
    async def _persistence_failed(request: Request, exc: PersistenceError) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={"detail": f"Perubahan tersimpan di memori tetapi gagal disimpan permanen: {exc}"},
        )

    def _store(request: Request) -> InventoryStore:
        current = request.app.state.store
        if current is None:
            raise HTTPException(status_code=503, detail="Inventory store is not ready")
        return current

    def _chat(request: Request) -> ChatSession:
        current = request.app.state.chat
        if current is None:
            raise HTTPException(status_code=503, detail="Chat advisor is not configured")
        return current

    @app.get("/health", tags=["health"])
    def healthcheck() -> Dict[str, str]:
        """Minimal liveness probe."""
        return {"status": "ok"}

    @app.get("/api/items", tags=["inventory"])
    def list_items(request: Request, q: str = "") -> Dict[str, Any]:
        items = _store(request).search(q)
        return {"items": [item.to_dict() for item in items], "count": len(items)}

    @app.post("/api/items", status_code=201, tags=["inventory"])
    def create_item(form: ItemForm, request: Request) -> Dict[str, Any]:
        inventory = _store(request)
        item = build_item(
            form,
            taken=inventory,
            default_category=request.app.state.settings.default_category,
        )
        inventory.add(item)
        return {"item": item.to_dict()}

    @app.put("/api/items/{item_id}", tags=["inventory"])
    def update_item(item_id: str, form: ItemForm, request: Request) -> Dict[str, Any]:
        inventory = _store(request)
        found = item_id in inventory
        item = build_item(
            form,
            item_id=item_id,
            default_category=request.app.state.settings.default_category,
        )
        inventory.update(item)
        return {"found": found, "item": item.to_dict() if found else None}

    @app.delete("/api/items/{item_id}", tags=["inventory"])
    def delete_item(item_id: str, request: Request) -> Dict[str, Any]:
        inventory = _store(request)
        found = item_id in inventory
        inventory.remove(item_id)
        return {"found": found}

    @app.get("/api/metrics", tags=["summary"])
    def get_metrics(request: Request) -> Dict[str, Any]:
        return _store(request).metrics().to_dict()

    @app.get("/api/chart", tags=["summary"])
    def get_chart(request: Request, limit: int = Query(10, ge=0, le=100)) -> Dict[str, Any]:
        rows = _store(request).top_by_profit(limit)
        return {"data": [row.to_dict() for row in rows]}

    @app.get("/api/dashboard", tags=["summary"])
    def get_dashboard(request: Request) -> Dict[str, Any]:
        inventory = _store(request)
        metrics = inventory.metrics()
        limit = request.app.state.settings.chart_limit
        return {
            "greeting": dashboard_greeting(metrics),
            "metrics": metrics.to_dict(),
            "formatted": {
                "totalCapital": format_rupiah(metrics.total_capital),
                "totalPotentialRevenue": format_rupiah(metrics.total_potential_revenue),
                "totalPotentialProfit": format_rupiah(metrics.total_potential_profit),
                "totalItems": f"{metrics.total_items} Item",
            },
            "chart": [row.to_dict() for row in inventory.top_by_profit(limit)],
        }

    @app.get("/api/chat", tags=["chat"])
    def get_chat(request: Request) -> Dict[str, Any]:
        session = _chat(request)
        return {"messages": session.transcript(), "pending": session.pending}

    @app.post("/api/chat", tags=["chat"])
    async def post_chat(payload: ChatQuestion, request: Request) -> Dict[str, Any]:
        session = _chat(request)
        try:
            reply = await session.ask(payload.question)
        except AdvisorBusyError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"reply": reply.to_dict() if reply else None, "messages": session.transcript()}

    return app


app = create_app()
