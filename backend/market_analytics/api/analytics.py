"""Index and portfolio analytics API routes."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from market_analytics.config import DEFAULT_MOVERS_LIMIT
from market_analytics.models.analytics import (
    AnalyticsRequest,
    AnalyticsResponse,
    GainerLoser,
    Heatmap,
    MarketCapAllocation,
    SectorAllocation,
    TimeFrameRequest,
)
from market_analytics.models.market import TimeFrame
from market_analytics.services.facade import (
    index_analytics_facade,
    portfolio_analytics_facade,
)

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


def time_frame_query(
    from_date: date | None = None,
    to_date: date | None = None,
    time_frame: TimeFrame = TimeFrame.DAY,
) -> TimeFrameRequest | None:
    """Historical window from query params; None means live quotes."""
    if from_date is None and to_date is None:
        return None
    if from_date is None or to_date is None:
        raise HTTPException(
            status_code=400, detail="from_date and to_date must be given together"
        )
    if from_date > to_date:
        raise HTTPException(status_code=400, detail="from_date must not be after to_date")
    return TimeFrameRequest(from_date=from_date, to_date=to_date, time_frame=time_frame)


def _check_advanced_request(req: AnalyticsRequest) -> None:
    if req.time_frame and req.time_frame.from_date > req.time_frame.to_date:
        raise HTTPException(status_code=400, detail="from_date must not be after to_date")


# ---- Index analytics ----


@router.get("/index/{index_symbol}/heatmap", response_model=Heatmap)
async def get_index_heatmap(
    index_symbol: str, time_frame: TimeFrameRequest | None = Depends(time_frame_query)
):
    return await index_analytics_facade.generate_sector_heatmap(index_symbol, time_frame)


@router.get("/index/{index_symbol}/movers", response_model=GainerLoser)
async def get_index_movers(
    index_symbol: str,
    limit: int = Query(DEFAULT_MOVERS_LIMIT, ge=1, le=100),
    time_frame: TimeFrameRequest | None = Depends(time_frame_query),
):
    return await index_analytics_facade.get_top_gainers_losers(
        index_symbol, limit, time_frame
    )


@router.get("/index/{index_symbol}/sector-allocation", response_model=SectorAllocation)
async def get_index_sector_allocation(
    index_symbol: str, time_frame: TimeFrameRequest | None = Depends(time_frame_query)
):
    return await index_analytics_facade.calculate_sector_allocations(
        index_symbol, time_frame
    )


@router.get(
    "/index/{index_symbol}/market-cap-allocation", response_model=MarketCapAllocation
)
async def get_index_market_cap_allocation(
    index_symbol: str, time_frame: TimeFrameRequest | None = Depends(time_frame_query)
):
    return await index_analytics_facade.calculate_market_cap_allocations(
        index_symbol, time_frame
    )


@router.post("/index/{index_symbol}/advanced", response_model=AnalyticsResponse)
async def get_index_advanced_analytics(index_symbol: str, req: AnalyticsRequest):
    _check_advanced_request(req)
    return await index_analytics_facade.calculate_advanced_analytics(index_symbol, req)


# ---- Portfolio analytics ----


@router.get("/portfolio/{portfolio_id}/heatmap", response_model=Heatmap)
async def get_portfolio_heatmap(
    portfolio_id: str, time_frame: TimeFrameRequest | None = Depends(time_frame_query)
):
    return await portfolio_analytics_facade.generate_sector_heatmap(
        portfolio_id, time_frame
    )


@router.get("/portfolio/{portfolio_id}/movers", response_model=GainerLoser)
async def get_portfolio_movers(
    portfolio_id: str,
    limit: int = Query(DEFAULT_MOVERS_LIMIT, ge=1, le=100),
    time_frame: TimeFrameRequest | None = Depends(time_frame_query),
):
    return await portfolio_analytics_facade.get_top_gainers_losers(
        portfolio_id, limit, time_frame
    )


@router.get(
    "/portfolio/{portfolio_id}/sector-allocation", response_model=SectorAllocation
)
async def get_portfolio_sector_allocation(
    portfolio_id: str, time_frame: TimeFrameRequest | None = Depends(time_frame_query)
):
    return await portfolio_analytics_facade.calculate_sector_allocations(
        portfolio_id, time_frame
    )


@router.get(
    "/portfolio/{portfolio_id}/market-cap-allocation",
    response_model=MarketCapAllocation,
)
async def get_portfolio_market_cap_allocation(
    portfolio_id: str, time_frame: TimeFrameRequest | None = Depends(time_frame_query)
):
    return await portfolio_analytics_facade.calculate_market_cap_allocations(
        portfolio_id, time_frame
    )


@router.post("/portfolio/{portfolio_id}/advanced", response_model=AnalyticsResponse)
async def get_portfolio_advanced_analytics(portfolio_id: str, req: AnalyticsRequest):
    _check_advanced_request(req)
    return await portfolio_analytics_facade.calculate_advanced_analytics(
        portfolio_id, req
    )
