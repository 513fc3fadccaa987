from typing import List
from pydantic import BaseModel, Field
from haulcalc.models.haul import ExchangeRateSnapshot
from haulcalc.schemas.haul import LineItemIn


class TotalsRequest(BaseModel):
    line_items: List[LineItemIn] = []
    shipping_usd: float = Field(0.0, ge=0)
    use_exemption: bool = True
    exchange_rates: ExchangeRateSnapshot


class TotalsResponse(BaseModel):
    subtotal_usd: float
    shipping_usd: float
    landed_value_usd: float
    landed_value_local: float
    duty_usd: float
    duty_local: float
    surcharge_usd: float
    surcharge_local: float
    total_usd: float
    total_local: float

    model_config = {"from_attributes": True}


class ExtractedProduct(BaseModel):
    name: str = ""
    price: float
    freight: float = 0.0
    quantity: int = Field(1, ge=1)
    weight_g: float = 0.0

    model_config = {"from_attributes": True}


class ParseTextRequest(BaseModel):
    text: str


class ParseResult(BaseModel):
    """Parser output. An empty product list means nothing could be extracted."""
    text: str
    products: List[ExtractedProduct]


class LineItemsRequest(BaseModel):
    products: List[ExtractedProduct]
    exchange_rates: ExchangeRateSnapshot
