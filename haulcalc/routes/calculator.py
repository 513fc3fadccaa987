import asyncio
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from haulcalc.core.config import settings
from haulcalc.models.haul import ExchangeRateSnapshot, LineItem
from haulcalc.schemas.calculator import (
    TotalsRequest,
    TotalsResponse,
    ParseTextRequest,
    ParseResult,
    ExtractedProduct,
    LineItemsRequest,
)
from haulcalc.services import exchange_rates, ocr_service
from haulcalc.services.pricing import get_tax_policy, line_item_from_extracted
from haulcalc.services.receipt_parser import extract_products
from haulcalc.services.tax_engine import compute_totals

router = APIRouter(tags=["calculator"])
logger = logging.getLogger("haulcalc.calculator")


def _log_trace(event: str, data: Dict[str, Any]) -> None:
    logger.debug("parser %s %s", event, data)


def _parse(text: str) -> ParseResult:
    trace = _log_trace if logger.isEnabledFor(logging.DEBUG) else None
    products = extract_products(text, trace=trace)
    logger.info("Extracted %d product(s) from %d characters", len(products), len(text))
    return ParseResult(
        text=text,
        products=[ExtractedProduct.model_validate(p) for p in products]
    )


@router.get("/exchange-rates", response_model=ExchangeRateSnapshot)
async def get_exchange_rates():
    """Current official and informal (crypto) USD rates. Not cached."""
    return await asyncio.to_thread(exchange_rates.fetch_exchange_rates)


@router.post("/calculator/totals", response_model=TotalsResponse)
async def calculate_totals(request: TotalsRequest):
    """Subtotal, duty and grand total in USD and local currency."""
    totals = compute_totals(
        request.line_items,
        request.shipping_usd,
        request.use_exemption,
        request.exchange_rates,
        get_tax_policy()
    )
    return TotalsResponse.model_validate(totals)


@router.post("/calculator/parse-text", response_model=ParseResult)
async def parse_text(request: ParseTextRequest):
    """Extract products from OCR text. An empty list means nothing was found."""
    return _parse(request.text)


@router.post("/calculator/process-image", response_model=ParseResult)
async def process_image(image: UploadFile = File(...)):
    """
    Run OCR on an order screenshot and extract its products.

    OCR failures are reported as 502 so the user can retry or type the
    products in by hand.
    """
    content_type = image.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload must be an image"
        )

    image_data = await image.read()
    if not image_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded image is empty"
        )
    if len(image_data) > settings.MAX_FILE_SIZE:
        raise HTTPException(
            status_code=413,
            detail="Image is too large"
        )

    text = await asyncio.to_thread(ocr_service.extract_text_from_image, image_data, content_type)
    return _parse(text)


@router.post("/calculator/line-items", response_model=List[LineItem])
async def build_line_items(request: LineItemsRequest):
    """Turn extracted products into priced line items with fresh ids."""
    policy = get_tax_policy()
    return [
        line_item_from_extracted(product, request.exchange_rates, policy)
        for product in request.products
    ]
