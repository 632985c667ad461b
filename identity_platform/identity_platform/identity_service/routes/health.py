"""
Health check endpoints for the identity service
"""
from fastapi import APIRouter, HTTPException, Request, status
from datetime import datetime, timezone
from typing import Dict, Any

from ..schemas import HealthResponse

router = APIRouter(tags=["health"])


def _database_connected(request: Request) -> bool:
    lifecycle = request.app.state.lifecycle
    if not lifecycle.accepting or not lifecycle.store_available():
        return False
    return request.app.state.pool.probe()


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
def health_check(request: Request) -> Dict[str, Any]:
    """
    Process liveness plus store connectivity.

    Always answers 200; an unreachable store reports ``degraded`` rather
    than failing the check.
    """
    db_connected = _database_connected(request)
    return {
        "status": "ok" if db_connected else "degraded",
        "database": "connected" if db_connected else "disconnected",
        "lifecycle": request.app.state.lifecycle.state.value,
        "pool": request.app.state.pool.stats(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready", status_code=status.HTTP_200_OK)
def readiness_check(request: Request) -> Dict[str, Any]:
    """
    Readiness check endpoint.

    Raises:
        HTTPException: 503 if the store is not reachable
    """
    db_connected = _database_connected(request)
    response = {
        "status": "ready" if db_connected else "not_ready",
        "database": "connected" if db_connected else "disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if not db_connected:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=response)
    return response
