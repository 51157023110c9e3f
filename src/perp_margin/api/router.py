"""Risk REST API — metrics preview, snapshot publication, published metrics."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.perp_common.response import ApiResponse, success_response
from src.perp_margin.application.schemas import AccountSnapshotRequest
from src.perp_margin.application.service import RiskApplicationService

router = APIRouter(prefix="/risk", tags=["risk"])

_service = RiskApplicationService()


def get_risk_service() -> RiskApplicationService:
    """FastAPI dependency: the process-wide service and its SnapshotStore."""
    return _service


ServiceDep = Annotated[RiskApplicationService, Depends(get_risk_service)]


@router.post("/metrics")
async def preview_metrics(
    body: AccountSnapshotRequest,
    service: ServiceDep,
    request: Request,
    market_index: int = Query(0, ge=0, description="Perp market used for buying power"),
) -> ApiResponse:
    data = service.preview_metrics(body, market_index)
    return success_response(data.model_dump(), request)


@router.put("/accounts/{authority}/snapshot")
async def publish_snapshot(
    authority: str,
    body: AccountSnapshotRequest,
    service: ServiceDep,
    request: Request,
) -> ApiResponse:
    data = service.publish_snapshot(authority, body)
    return success_response(data.model_dump(), request)


@router.delete("/accounts/{authority}/snapshot")
async def remove_snapshot(
    authority: str,
    service: ServiceDep,
    request: Request,
) -> ApiResponse:
    service.remove_snapshot(authority)
    return success_response({"authority": authority}, request)


@router.get("/accounts/{authority}")
async def get_metrics(
    authority: str,
    service: ServiceDep,
    request: Request,
    market_index: int = Query(0, ge=0, description="Perp market used for buying power"),
) -> ApiResponse:
    data = service.get_metrics(authority, market_index)
    return success_response(data.model_dump(), request)
