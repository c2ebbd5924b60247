"""Portfolio holdings management service."""

import logging
import uuid

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from market_analytics.models.portfolio import Portfolio, PortfolioHolding

logger = logging.getLogger(__name__)


def parse_portfolio_id(portfolio_id: str) -> str | None:
    """Canonical UUID string, or None when ``portfolio_id`` is not a UUID."""
    try:
        return str(uuid.UUID(str(portfolio_id)))
    except ValueError:
        logger.error(f"Invalid portfolio ID format: {portfolio_id}")
        return None


class PortfolioService:
    """Manages user portfolios and their stock holdings."""

    async def create_portfolio(self, session: AsyncSession, name: str) -> Portfolio:
        portfolio = Portfolio(name=name)
        session.add(portfolio)
        await session.commit()
        return portfolio

    async def get_portfolio(
        self, session: AsyncSession, portfolio_id: str
    ) -> Portfolio | None:
        return await session.get(Portfolio, portfolio_id)

    async def list_portfolios(self, session: AsyncSession) -> list[Portfolio]:
        result = await session.execute(select(Portfolio))
        return list(result.scalars().all())

    async def delete_portfolio(self, session: AsyncSession, portfolio_id: str) -> None:
        await session.execute(
            delete(PortfolioHolding).where(PortfolioHolding.portfolio_id == portfolio_id)
        )
        await session.execute(delete(Portfolio).where(Portfolio.id == portfolio_id))
        await session.commit()

    async def rename_portfolio(
        self, session: AsyncSession, portfolio_id: str, name: str
    ) -> Portfolio | None:
        portfolio = await session.get(Portfolio, portfolio_id)
        if portfolio is None:
            return None
        portfolio.name = name
        await session.commit()
        return portfolio

    async def add_holding(
        self,
        session: AsyncSession,
        portfolio_id: str,
        symbol: str,
        quantity: float,
        avg_price: float = 0.0,
    ) -> PortfolioHolding:
        holding = PortfolioHolding(
            portfolio_id=portfolio_id,
            symbol=symbol.strip().upper(),
            quantity=quantity,
            avg_price=avg_price,
        )
        session.add(holding)
        await session.commit()
        return holding

    async def get_holdings(
        self, session: AsyncSession, portfolio_id: str
    ) -> list[PortfolioHolding]:
        result = await session.execute(
            select(PortfolioHolding)
            .where(PortfolioHolding.portfolio_id == portfolio_id)
            .order_by(PortfolioHolding.id)
        )
        return list(result.scalars().all())

    async def remove_holding(
        self, session: AsyncSession, portfolio_id: str, symbol: str
    ) -> None:
        await session.execute(
            delete(PortfolioHolding).where(
                PortfolioHolding.portfolio_id == portfolio_id,
                PortfolioHolding.symbol == symbol.strip().upper(),
            )
        )
        await session.commit()

    async def get_symbol_quantities(
        self, session: AsyncSession, portfolio_id: str
    ) -> dict[str, float]:
        """Symbol -> total quantity; repeated lots of one symbol are summed."""
        quantities: dict[str, float] = {}
        for holding in await self.get_holdings(session, portfolio_id):
            if not holding.symbol:
                continue
            quantities[holding.symbol] = quantities.get(holding.symbol, 0.0) + holding.quantity
        return quantities


portfolio_service = PortfolioService()
