"""Mock open-banking API for local development and integration tests"""

import json
import os
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

# Support both local development and Docker
DATA_DIR = Path("/bank_stub") if os.path.exists("/bank_stub") else Path(__file__).resolve().parent / "bank_stub"


def _load_fixture(name: str) -> List[Dict[str, Any]]:
    file = DATA_DIR / f"{name}.json"
    if not file.exists():
        return []
    return json.loads(file.read_text())


def create_app(
    accounts: Optional[List[Dict[str, Any]]] = None,
    transactions: Optional[List[Dict[str, Any]]] = None,
    pending: Optional[List[Dict[str, Any]]] = None,
    page_size: int = 2,
) -> FastAPI:
    """
    Build a mock bank.

    `app.state.fail_next` is a list of HTTP status codes; each request pops
    the first one and fails with it, letting tests script transient errors.
    `app.state.requests` records "METHOD /path" for every request received.
    """
    app = FastAPI(title="Mock Bank Server", version="1.0.0")
    app.state.accounts = accounts if accounts is not None else _load_fixture("accounts")
    app.state.transactions = transactions if transactions is not None else _load_fixture("transactions")
    app.state.pending = pending if pending is not None else []
    app.state.transfers = {}
    app.state.fail_next = []
    app.state.requests = []

    @app.middleware("http")
    async def inject_failures(request: Request, call_next):
        app.state.requests.append(f"{request.method} {request.url.path}")
        if request.url.path != "/health" and app.state.fail_next:
            status = app.state.fail_next.pop(0)
            return JSONResponse(status_code=status, content={"success": False, "message": f"injected {status}"})
        return await call_next(request)

    @app.get("/health")
    def health(): return {"status": "ok"}

    @app.get("/accounts")
    def list_accounts():
        return {"success": True, "items": app.state.accounts}

    @app.get("/transactions")
    def list_transactions(start: str, end: str, cursor: Optional[str] = None):
        # Dates compare lexically as ISO strings
        selected = [
            tx for tx in app.state.transactions
            if start <= tx.get("date", "")[:10] <= end
        ]
        offset = int(cursor) if cursor else 0
        page = selected[offset:offset + page_size]
        next_offset = offset + page_size
        return {
            "success": True,
            "items": page,
            "cursor": {"next": str(next_offset) if next_offset < len(selected) else None},
        }

    @app.get("/transactions/pending")
    def list_pending():
        return {"success": True, "items": app.state.pending}

    @app.post("/refresh")
    def refresh():
        return {"success": True}

    @app.post("/transfers")
    async def create_transfer(request: Request):
        payload = await request.json()
        if payload.get("amount", 0) <= 0:
            raise HTTPException(status_code=400, detail="amount must be positive")
        transfer_id = f"transfer_{uuid.uuid4().hex[:12]}"
        app.state.transfers[transfer_id] = {"_id": transfer_id, "status": "SENT", **payload}
        return {"success": True, "item": {"_id": transfer_id}}

    @app.get("/transfers/{transfer_id}")
    def get_transfer(transfer_id: str):
        transfer = app.state.transfers.get(transfer_id)
        if transfer is None:
            raise HTTPException(status_code=404, detail="transfer not found")
        return {"success": True, "item": transfer}

    return app


app = create_app()
