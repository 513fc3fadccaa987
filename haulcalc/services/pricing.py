from typing import Iterable, List, Optional

from haulcalc.core.config import settings
from haulcalc.models.haul import ExchangeRateSnapshot, LineItem
from haulcalc.services.receipt_parser import ExtractedFields
from haulcalc.services.tax_engine import TaxPolicy, unit_price_usd


def get_tax_policy() -> TaxPolicy:
    """Tax policy built from the current settings."""
    return TaxPolicy(
        source_to_usd=settings.SOURCE_TO_USD_RATE,
        postal_surcharge_local=settings.POSTAL_SURCHARGE_LOCAL,
        duty_free_allowance_usd=settings.DUTY_FREE_ALLOWANCE_USD,
        duty_rate=settings.DUTY_RATE,
    )


def price_line_item(item, rates: ExchangeRateSnapshot, policy: Optional[TaxPolicy] = None) -> LineItem:
    """
    Return a LineItem with derived USD/local prices recomputed from ``item``.

    ``item`` may be any object with the LineItem input fields; derived values
    it carries are discarded.
    """
    policy = policy or get_tax_policy()
    data = {
        "quantity": item.quantity,
        "name": item.name,
        "weight_g": item.weight_g,
        "unit_price": item.unit_price,
        "unit_freight": item.unit_freight,
        "link": item.link,
    }
    if getattr(item, "id", None):
        data["id"] = item.id

    usd = unit_price_usd(item.unit_price, item.unit_freight, policy)
    data["unit_price_usd"] = usd
    data["unit_price_local"] = usd * rates.informal.sell
    return LineItem(**data)


def price_line_items(items: Iterable, rates: ExchangeRateSnapshot, policy: Optional[TaxPolicy] = None) -> List[LineItem]:
    policy = policy or get_tax_policy()
    return [price_line_item(item, rates, policy) for item in items]


def line_item_from_extracted(
    fields: ExtractedFields,
    rates: ExchangeRateSnapshot,
    policy: Optional[TaxPolicy] = None,
) -> LineItem:
    """New LineItem with a fresh id. The name stays empty for the user to fill in."""
    item = LineItem(
        quantity=fields.quantity,
        name=fields.name,
        weight_g=fields.weight_g,
        unit_price=fields.price,
        unit_freight=fields.freight,
    )
    return price_line_item(item, rates, policy)
