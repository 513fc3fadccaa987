"""
Landed-cost and import duty calculation.

Goods and shipping are converted to local currency at the informal (crypto)
market sell rate, while customs values the duty and the postal surcharge at
the official rate. The two rates are applied on purpose; do not unify them.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from haulcalc.models.haul import ExchangeRateSnapshot


@dataclass(frozen=True)
class TaxPolicy:
    source_to_usd: float = 0.14
    postal_surcharge_local: float = 4900.0
    duty_free_allowance_usd: float = 50.0
    duty_rate: float = 0.5


@dataclass(frozen=True)
class Totals:
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


def unit_price_usd(unit_price: float, unit_freight: float, policy: TaxPolicy) -> float:
    """Per-unit cost in USD, freight included."""
    return (unit_price + unit_freight) * policy.source_to_usd


def compute_duty_usd(landed_value_usd: float, use_exemption: bool, policy: TaxPolicy) -> float:
    if use_exemption:
        return max(0.0, (landed_value_usd - policy.duty_free_allowance_usd) * policy.duty_rate)
    return landed_value_usd * policy.duty_rate


def compute_totals(
    line_items: Iterable,
    shipping_usd: float,
    use_exemption: bool,
    rates: ExchangeRateSnapshot,
    policy: Optional[TaxPolicy] = None,
) -> Totals:
    """
    Total a haul in USD and local currency.

    ``line_items`` only need ``unit_price``, ``unit_freight`` and ``quantity``;
    stored derived prices are ignored so the result depends on inputs alone.
    """
    policy = policy or TaxPolicy()

    subtotal_usd = sum(
        unit_price_usd(item.unit_price, item.unit_freight, policy) * item.quantity
        for item in line_items
    )
    landed_value_usd = subtotal_usd + shipping_usd
    landed_value_local = landed_value_usd * rates.informal.sell

    duty_usd = compute_duty_usd(landed_value_usd, use_exemption, policy)
    duty_local = duty_usd * rates.official.sell

    surcharge_local = policy.postal_surcharge_local
    if rates.official.sell > 0:
        surcharge_usd = surcharge_local / rates.official.sell
    else:
        surcharge_usd = 0.0

    return Totals(
        subtotal_usd=subtotal_usd,
        shipping_usd=shipping_usd,
        landed_value_usd=landed_value_usd,
        landed_value_local=landed_value_local,
        duty_usd=duty_usd,
        duty_local=duty_local,
        surcharge_usd=surcharge_usd,
        surcharge_local=surcharge_local,
        total_usd=subtotal_usd + shipping_usd + duty_usd + surcharge_usd,
        total_local=landed_value_local + duty_local + surcharge_local,
    )
