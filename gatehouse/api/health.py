"""
Health check API endpoint.

Reports the gateway's health and the version of the running service.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Response


def create_router(gateway, version: str) -> APIRouter:
    router = APIRouter()

    @router.get("/api/health")
    async def api_health(response: Response) -> Dict[str, Any]:
        """
        Get gateway health.

        Returns 200 when healthy, 503 when the root is missing or unreadable.
        """
        status = gateway.get_health_status()
        if not status["healthy"]:
            response.status_code = 503

        return {
            "healthy": status["healthy"],
            "version": version,
            "gates": {status["gate"]: status},
        }

    return router


__all__ = ["create_router"]
