import logging
from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId
from datetime import datetime, timezone
from typing import Optional

from haulcalc.models.haul import Haul, ExchangeRateSnapshot
from haulcalc.schemas.haul import HaulCreate, HaulUpdate
from haulcalc.services.pricing import get_tax_policy, price_line_items
from haulcalc.services.tax_engine import TaxPolicy
from haulcalc.utils.haul_validation import (
    validate_line_items,
    calculate_total_cost,
    calculate_total_weight,
)

logger = logging.getLogger("haulcalc.hauls")


class HaulConflictError(Exception):
    """The haul changed since the client last read it."""
    pass


class HaulRepository:
    """Haul database operations. Every query is scoped to the owner."""

    def __init__(self, db: AsyncIOMotorDatabase, policy: Optional[TaxPolicy] = None):
        self.db = db
        self.collection = db["hauls"]
        self.policy = policy or get_tax_policy()

    def _recalculate(self, line_items, rates: ExchangeRateSnapshot) -> dict:
        """Reprice items against ``rates`` and derive the aggregates stored beside them."""
        items = price_line_items(line_items, rates, self.policy)
        validate_line_items(items)
        return {
            "line_items": [item.model_dump(mode="python") for item in items],
            "exchange_rates": rates.model_dump(mode="python"),
            "total_cost": calculate_total_cost(items),
            "total_weight": calculate_total_weight(items),
        }

    async def create_haul(self, haul_data: HaulCreate, owner_id: str) -> Haul:
        """Create a haul with derived prices and totals computed from the given rates."""
        computed = self._recalculate(haul_data.line_items, haul_data.exchange_rates)
        now = datetime.now(timezone.utc)

        haul_dict = {
            "owner_id": ObjectId(owner_id),
            "name": haul_data.name.strip(),
            "shipping_usd": haul_data.shipping_usd,
            **computed,
            "version": 1,
            "created_at": now,
            "updated_at": now
        }

        result = await self.collection.insert_one(haul_dict)
        haul_dict["_id"] = result.inserted_id
        logger.info("Created haul %s for owner %s", result.inserted_id, owner_id)
        return Haul(**haul_dict)

    async def list_hauls(self, owner_id: str) -> list[Haul]:
        """List hauls for an owner, newest first."""
        if not ObjectId.is_valid(owner_id):
            return []
        cursor = self.collection.find({"owner_id": ObjectId(owner_id)}).sort("created_at", -1)
        hauls = await cursor.to_list(None)
        return [Haul(**doc) for doc in hauls]

    async def get_haul(self, haul_id: str, owner_id: str) -> Optional[Haul]:
        """Get a haul by id if it belongs to the owner."""
        if not ObjectId.is_valid(haul_id) or not ObjectId.is_valid(owner_id):
            return None
        doc = await self.collection.find_one({
            "_id": ObjectId(haul_id),
            "owner_id": ObjectId(owner_id)
        })
        if doc:
            return Haul(**doc)
        return None

    async def update_haul(self, haul_id: str, owner_id: str, update_data: HaulUpdate) -> Optional[Haul]:
        """
        Update a haul (owner only).

        Line items are repriced and aggregates recomputed in the same write,
        so a reader never sees new items next to old totals.
        Raises HaulConflictError when ``version`` is stale.
        """
        existing = await self.get_haul(haul_id, owner_id)
        if not existing:
            return None

        if update_data.version is not None and update_data.version != existing.version:
            raise HaulConflictError(
                f"Haul was modified (version {existing.version}, got {update_data.version})"
            )

        line_items = update_data.line_items if update_data.line_items is not None else existing.line_items
        rates = update_data.exchange_rates or existing.exchange_rates
        computed = self._recalculate(line_items, rates)

        updates = {**computed, "updated_at": datetime.now(timezone.utc)}
        if update_data.name is not None:
            updates["name"] = update_data.name.strip()
        if update_data.shipping_usd is not None:
            updates["shipping_usd"] = update_data.shipping_usd

        result = await self.collection.find_one_and_update(
            {
                "_id": existing.id,
                "owner_id": existing.owner_id,
                "version": existing.version
            },
            {"$set": updates, "$inc": {"version": 1}},
            return_document=True
        )
        if result is None:
            # Deleted or rewritten between our read and write
            raise HaulConflictError("Haul was modified concurrently")
        return Haul(**result)

    async def delete_haul(self, haul_id: str, owner_id: str) -> bool:
        """Delete a haul (owner only)."""
        if not ObjectId.is_valid(haul_id) or not ObjectId.is_valid(owner_id):
            return False
        result = await self.collection.delete_one({
            "_id": ObjectId(haul_id),
            "owner_id": ObjectId(owner_id)
        })
        if result.deleted_count:
            logger.info("Deleted haul %s for owner %s", haul_id, owner_id)
        return result.deleted_count > 0
