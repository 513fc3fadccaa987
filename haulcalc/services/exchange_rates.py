import logging
from datetime import datetime, timezone

import requests

from haulcalc.core.config import settings
from haulcalc.core.exceptions import ExchangeRateError
from haulcalc.models.haul import ExchangeRateSnapshot, RateQuote

logger = logging.getLogger("haulcalc.rates")

OFFICIAL_MARKET = "oficial"
INFORMAL_MARKET = "cripto"


def _fetch_quote(market: str) -> RateQuote:
    url = f"{settings.EXCHANGE_RATE_API_URL.rstrip('/')}/{market}"
    try:
        response = requests.get(url, timeout=settings.EXCHANGE_RATE_TIMEOUT_SECONDS)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        logger.warning("Exchange rate request for %s failed: %s", market, e)
        raise ExchangeRateError(f"Failed to fetch {market} exchange rate") from e
    except ValueError as e:
        raise ExchangeRateError(f"Invalid {market} exchange rate response") from e

    if not isinstance(data, dict):
        raise ExchangeRateError(f"Invalid {market} exchange rate response")

    try:
        return RateQuote(
            buy=float(data.get("compra") or 0),
            sell=float(data.get("venta") or 0)
        )
    except (TypeError, ValueError) as e:
        raise ExchangeRateError(f"Invalid {market} exchange rate response") from e


def fetch_exchange_rates() -> ExchangeRateSnapshot:
    """
    Fetch current official and informal market USD rates.

    Always hits the API; callers store the returned snapshot with whatever
    they computed from it.

    :raises ExchangeRateError: when either market cannot be fetched
    """
    snapshot = ExchangeRateSnapshot(
        official=_fetch_quote(OFFICIAL_MARKET),
        informal=_fetch_quote(INFORMAL_MARKET),
        fetched_at=datetime.now(timezone.utc)
    )
    logger.info(
        "Fetched exchange rates: official %.2f / informal %.2f",
        snapshot.official.sell, snapshot.informal.sell
    )
    return snapshot
