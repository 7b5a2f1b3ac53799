# posdesk/health.py
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/health/realtime")
def realtime_health(request: Request):
    manager = getattr(request.app.state, "subscriptions", None)
    paths = manager.active_paths() if manager is not None else []
    return {"status": "ok", "active_subscriptions": len(paths), "paths": paths}
