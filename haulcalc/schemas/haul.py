from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime
from haulcalc.models.haul import ExchangeRateSnapshot, LineItem


class LineItemIn(BaseModel):
    """Line item as entered by the user. Derived prices are never accepted from clients."""
    id: Optional[str] = None
    quantity: int = Field(1, ge=1)
    name: str = ""
    weight_g: float = Field(0.0, ge=0)
    unit_price: float = Field(..., ge=0)
    unit_freight: float = Field(0.0, ge=0)
    link: str = ""

    model_config = {"from_attributes": True}


class HaulCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    line_items: List[LineItemIn] = Field(..., min_length=1)
    exchange_rates: ExchangeRateSnapshot
    shipping_usd: float = Field(0.0, ge=0)


class HaulUpdate(BaseModel):
    """All fields optional. When version is given the update only applies to that version."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    line_items: Optional[List[LineItemIn]] = Field(None, min_length=1)
    exchange_rates: Optional[ExchangeRateSnapshot] = None
    shipping_usd: Optional[float] = Field(None, ge=0)
    version: Optional[int] = None


class HaulResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    line_items: List[LineItem]
    exchange_rates: ExchangeRateSnapshot
    shipping_usd: float
    total_cost: float
    total_weight: float
    version: int
    created_at: datetime
    updated_at: datetime


class HaulSummary(BaseModel):
    """Row in the haul list."""
    id: str
    name: str
    item_count: int
    total_cost: float
    total_weight: float
    created_at: datetime
    updated_at: datetime
