"""Portfolio holdings API routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from market_analytics.models.database import get_db
from market_analytics.services.portfolio import parse_portfolio_id, portfolio_service
from market_analytics.services.rounding import round2
from market_analytics.api.schemas import (
    HoldingAddRequest,
    HoldingResponse,
    PortfolioCreateRequest,
    PortfolioDetailResponse,
    PortfolioRenameRequest,
    PortfolioResponse,
)

router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])


async def _get_portfolio_or_404(db: AsyncSession, portfolio_id: str):
    canonical = parse_portfolio_id(portfolio_id)
    portfolio = (
        await portfolio_service.get_portfolio(db, canonical) if canonical else None
    )
    if portfolio is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    return portfolio


@router.post("", response_model=PortfolioResponse)
async def create_portfolio(
    req: PortfolioCreateRequest, db: AsyncSession = Depends(get_db)
):
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    p = await portfolio_service.create_portfolio(db, name)
    return PortfolioResponse(id=p.id, name=p.name, created_at=p.created_at)


@router.get("", response_model=list[PortfolioResponse])
async def list_portfolios(db: AsyncSession = Depends(get_db)):
    portfolios = await portfolio_service.list_portfolios(db)
    return [
        PortfolioResponse(id=p.id, name=p.name, created_at=p.created_at)
        for p in portfolios
    ]


@router.get("/{portfolio_id}", response_model=PortfolioDetailResponse)
async def get_portfolio_detail(portfolio_id: str, db: AsyncSession = Depends(get_db)):
    portfolio = await _get_portfolio_or_404(db, portfolio_id)
    holdings = await portfolio_service.get_holdings(db, portfolio.id)
    return PortfolioDetailResponse(
        id=portfolio.id,
        name=portfolio.name,
        created_at=portfolio.created_at,
        holdings=[
            HoldingResponse(
                symbol=h.symbol,
                quantity=h.quantity,
                avg_price=h.avg_price,
                cost=round2(h.cost),
            )
            for h in holdings
        ],
        total_cost=round2(sum(h.cost for h in holdings)),
    )


@router.patch("/{portfolio_id}", response_model=PortfolioResponse)
async def rename_portfolio(
    portfolio_id: str,
    req: PortfolioRenameRequest,
    db: AsyncSession = Depends(get_db),
):
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    portfolio = await _get_portfolio_or_404(db, portfolio_id)
    portfolio = await portfolio_service.rename_portfolio(db, portfolio.id, name)
    return PortfolioResponse(id=portfolio.id, name=portfolio.name, created_at=portfolio.created_at)


@router.delete("/{portfolio_id}")
async def delete_portfolio(portfolio_id: str, db: AsyncSession = Depends(get_db)):
    portfolio = await _get_portfolio_or_404(db, portfolio_id)
    await portfolio_service.delete_portfolio(db, portfolio.id)
    return {"status": "ok"}


@router.post("/{portfolio_id}/holdings")
async def add_holding_to_portfolio(
    portfolio_id: str,
    req: HoldingAddRequest,
    db: AsyncSession = Depends(get_db),
):
    portfolio = await _get_portfolio_or_404(db, portfolio_id)
    symbol = req.symbol.strip()
    if not symbol:
        raise HTTPException(status_code=400, detail="Symbol cannot be empty")
    holding = await portfolio_service.add_holding(
        db, portfolio.id, symbol, req.quantity, req.avg_price
    )
    return {"status": "ok", "symbol": holding.symbol}


@router.delete("/{portfolio_id}/holdings/{symbol}")
async def remove_holding_from_portfolio(
    portfolio_id: str,
    symbol: str,
    db: AsyncSession = Depends(get_db),
):
    portfolio = await _get_portfolio_or_404(db, portfolio_id)
    await portfolio_service.remove_holding(db, portfolio.id, symbol)
    return {"status": "ok"}
