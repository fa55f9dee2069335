"""Status route — dependency health checks."""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["status"])


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    """Report document store and e-signature gateway reachability.

    Only the document store decides the overall status; the gateway is
    reported for information.
    """
    cosmos = request.app.state.cosmos
    contracts = request.app.state.contracts
    cosmos_ok, contracts_ok = await asyncio.gather(cosmos.ping(), contracts.ping())

    body: dict[str, Any] = {
        "status": "healthy" if cosmos_ok else "unhealthy",
        "environment": request.app.state.settings.app.env,
        "checks": {
            "cosmos": "healthy" if cosmos_ok else "unreachable",
            "contracts": "healthy" if contracts_ok else "unreachable",
        },
    }
    return JSONResponse(body, status_code=200 if cosmos_ok else 503)
