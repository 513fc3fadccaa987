from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from bson import ObjectId
from datetime import datetime
from haulcalc.models.base import MongoModel, PyObjectId


def new_line_item_id() -> str:
    return str(ObjectId())


class RateQuote(BaseModel):
    """Buy/sell pair for one market, in local currency per USD."""
    buy: float = Field(0.0, ge=0)
    sell: float = Field(0.0, ge=0)

    model_config = ConfigDict(frozen=True)


class ExchangeRateSnapshot(BaseModel):
    """Rates for the official and informal (crypto) markets at one point in time."""
    official: RateQuote
    informal: RateQuote
    fetched_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


# Embedded documents don't need MongoModel (no separate _id)
class LineItem(BaseModel):
    id: str = Field(default_factory=new_line_item_id)
    quantity: int = Field(1, ge=1)
    name: str = ""
    weight_g: float = Field(0.0, ge=0)  # per unit
    unit_price: float = Field(..., ge=0)  # source currency
    unit_freight: float = Field(0.0, ge=0)  # source currency
    # Derived from the fields above and the haul's rates; see services.pricing
    unit_price_usd: float = 0.0
    unit_price_local: float = 0.0
    link: str = ""


class Haul(MongoModel):
    owner_id: PyObjectId
    name: str
    line_items: List[LineItem] = []
    exchange_rates: ExchangeRateSnapshot
    shipping_usd: float = 0.0

    # Aggregates, recomputed on every write
    total_cost: float = 0.0  # local currency
    total_weight: float = 0.0  # grams

    version: int = 1
