"""Haul validation and aggregate utilities."""
from typing import List
from haulcalc.models.haul import LineItem


class HaulValidationError(Exception):
    """Custom exception for haul validation errors."""
    pass


def validate_line_items(items: List[LineItem]) -> None:
    """
    Validate haul line items.

    Rules:
    - a haul holds at least one item
    - item ids are unique within the haul
    - prices, freight and weight are non-negative
    - quantity is positive
    """
    if not items:
        raise HaulValidationError("A haul needs at least one line item")

    seen_ids = set()
    for item in items:
        label = item.name or item.id
        if item.id in seen_ids:
            raise HaulValidationError(f"Duplicate line item id: {item.id}")
        seen_ids.add(item.id)

        if item.unit_price < 0:
            raise HaulValidationError(
                f"Item '{label}' has negative price: {item.unit_price}"
            )

        if item.unit_freight < 0:
            raise HaulValidationError(
                f"Item '{label}' has negative freight: {item.unit_freight}"
            )

        if item.weight_g < 0:
            raise HaulValidationError(
                f"Item '{label}' has negative weight: {item.weight_g}"
            )

        if item.quantity <= 0:
            raise HaulValidationError(
                f"Item '{label}' has non-positive quantity: {item.quantity}"
            )


def calculate_total_cost(items: List[LineItem]) -> float:
    """Total cost in local currency."""
    return sum(item.unit_price_local * item.quantity for item in items)


def calculate_total_weight(items: List[LineItem]) -> float:
    """Total weight in grams."""
    return sum(item.weight_g * item.quantity for item in items)
