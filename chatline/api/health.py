"""Health and welcome endpoints."""

from fastapi import APIRouter, Request

from ..utils.time_utils import utc_now_z

health_router = APIRouter(tags=["health"])


@health_router.get("/api/v1/health")
async def health_check(request: Request) -> dict:
    gateway = getattr(request.app.state, "gateway", None)
    return {
        "status": "ok",
        "timestamp": utc_now_z(),
        "realtime": gateway.get_stats() if gateway is not None else None,
    }


@health_router.get("/")
async def read_root() -> dict:
    return {"message": "Welcome to the Chatline API"}
