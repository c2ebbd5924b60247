"""Pydantic schemas for API request/response."""

from pydantic import BaseModel, Field


class PortfolioCreateRequest(BaseModel):
    name: str


class PortfolioRenameRequest(BaseModel):
    name: str


class HoldingAddRequest(BaseModel):
    symbol: str
    quantity: float = Field(gt=0)
    avg_price: float = Field(default=0.0, ge=0)


class PortfolioResponse(BaseModel):
    id: str
    name: str
    created_at: str


class HoldingResponse(BaseModel):
    symbol: str
    quantity: float
    avg_price: float
    cost: float


class PortfolioDetailResponse(BaseModel):
    id: str
    name: str
    created_at: str
    holdings: list[HoldingResponse]
    total_cost: float
