from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from developer_tracking import DeveloperReadService, DeveloperSortKey
from api.schemas import (
    DeveloperListResponse,
    DeveloperProfileResponse,
    DeveloperResponse,
    RiskReportResponse,
    StatsResponse,
)

router = APIRouter(prefix="/developers", tags=["Developers"])
service_router = APIRouter(tags=["Service"])


def get_read_service(request: Request) -> DeveloperReadService:
    return request.app.state.read_service


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")


def _list_response(developers) -> DeveloperListResponse:
    data = [DeveloperResponse.model_validate(d) for d in developers]
    return DeveloperListResponse(count=len(data), data=data)


@router.get("/top", response_model=DeveloperListResponse)
def list_top_developers(
    sort_by: DeveloperSortKey = Query(DeveloperSortKey.REPUTATION),
    limit: Optional[int] = Query(None, ge=1),
    service: DeveloperReadService = Depends(get_read_service),
):
    """
    Developers ordered by migrationRate, reputation or migratedCount, descending.
    """
    return _list_response(service.list_top_developers(sort_by, limit))


@router.get("/search", response_model=DeveloperListResponse)
def search_developers(
    q: str = Query(..., min_length=1),
    limit: Optional[int] = Query(None, ge=1),
    service: DeveloperReadService = Depends(get_read_service),
):
    """
    Case-insensitive match on display name, primary wallet or any linked wallet.
    """
    return _list_response(service.search_developers(q, limit))


@router.get("/by-wallet/{wallet}", response_model=DeveloperResponse)
def get_developer_by_wallet(
    wallet: str,
    service: DeveloperReadService = Depends(get_read_service),
):
    developer = service.get_developer_by_wallet(wallet)
    if developer is None:
        raise _not_found(f"Developer for wallet {wallet}")
    return DeveloperResponse.model_validate(developer)


@router.get("/by-token/{token_address}", response_model=DeveloperResponse)
def get_developer_by_token(
    token_address: str,
    service: DeveloperReadService = Depends(get_read_service),
):
    developer = service.get_developer_by_token(token_address)
    if developer is None:
        raise _not_found(f"Developer for token {token_address}")
    return DeveloperResponse.model_validate(developer)


@router.get("/{developer_id}", response_model=DeveloperResponse)
def get_developer(
    developer_id: int,
    service: DeveloperReadService = Depends(get_read_service),
):
    developer = service.get_developer(developer_id)
    if developer is None:
        raise _not_found(f"Developer {developer_id}")
    return DeveloperResponse.model_validate(developer)


@router.get("/{developer_id}/profile", response_model=DeveloperProfileResponse)
def get_developer_profile(
    developer_id: int,
    service: DeveloperReadService = Depends(get_read_service),
):
    """
    Developer with linked wallets, tokens (newest first) and social accounts.
    """
    profile = service.get_developer_profile(developer_id)
    if profile is None:
        raise _not_found(f"Developer {developer_id}")
    return DeveloperProfileResponse.model_validate(profile)


@router.get("/{developer_id}/risk", response_model=RiskReportResponse)
def get_developer_risk(
    developer_id: int,
    service: DeveloperReadService = Depends(get_read_service),
):
    report = service.get_risk_report(developer_id)
    if report is None:
        raise _not_found(f"Developer {developer_id}")
    return RiskReportResponse.model_validate(report)


@service_router.get("/stats", response_model=StatsResponse)
def get_stats(request: Request):
    """
    Ingestion counters per source. 404 when the API runs without ingestion.
    """
    ingestion = getattr(request.app.state, "ingestion", None)
    if ingestion is None:
        raise HTTPException(status_code=404, detail="Ingestion service not running in this process")
    return StatsResponse.model_validate(ingestion.stats())
