from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List

from haulcalc.db.mongo import get_db
from haulcalc.core.auth import get_current_user
from haulcalc.models.user import UserResponse
from haulcalc.models.haul import Haul
from haulcalc.schemas.haul import HaulCreate, HaulUpdate, HaulResponse, HaulSummary
from haulcalc.schemas.calculator import TotalsResponse
from haulcalc.repositories.haul_repo import HaulRepository, HaulConflictError
from haulcalc.services.pricing import get_tax_policy
from haulcalc.services.tax_engine import compute_totals
from haulcalc.utils.haul_validation import HaulValidationError

router = APIRouter(prefix="/hauls", tags=["hauls"])


def _to_haul_response(haul: Haul) -> HaulResponse:
    """Convert Haul model to HaulResponse schema."""
    return HaulResponse(
        id=str(haul.id),
        owner_id=str(haul.owner_id),
        name=haul.name,
        line_items=haul.line_items,
        exchange_rates=haul.exchange_rates,
        shipping_usd=haul.shipping_usd,
        total_cost=haul.total_cost,
        total_weight=haul.total_weight,
        version=haul.version,
        created_at=haul.created_at,
        updated_at=haul.updated_at
    )


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Haul not found"
    )


@router.post("", response_model=HaulResponse, status_code=status.HTTP_201_CREATED)
async def create_haul(
    haul_data: HaulCreate,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Save a new haul. Derived prices and totals are computed server side."""
    repo = HaulRepository(db)
    try:
        haul = await repo.create_haul(haul_data, current_user.id)
    except HaulValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _to_haul_response(haul)


@router.get("", response_model=List[HaulSummary])
async def list_hauls(
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """List the current user's hauls, newest first."""
    repo = HaulRepository(db)
    hauls = await repo.list_hauls(current_user.id)
    return [
        HaulSummary(
            id=str(haul.id),
            name=haul.name,
            item_count=len(haul.line_items),
            total_cost=haul.total_cost,
            total_weight=haul.total_weight,
            created_at=haul.created_at,
            updated_at=haul.updated_at
        )
        for haul in hauls
    ]


@router.get("/{haul_id}", response_model=HaulResponse)
async def get_haul(
    haul_id: str,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Get one of the current user's hauls."""
    repo = HaulRepository(db)
    haul = await repo.get_haul(haul_id, current_user.id)
    if not haul:
        raise _not_found()
    return _to_haul_response(haul)


@router.put("/{haul_id}", response_model=HaulResponse)
async def update_haul(
    haul_id: str,
    update_data: HaulUpdate,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """
    Update a haul (owner only).

    - Omitted fields keep their stored value
    - Line items are repriced against the (new or stored) exchange rates
    - If version is sent, a stale version is rejected with 409
    """
    repo = HaulRepository(db)
    try:
        haul = await repo.update_haul(haul_id, current_user.id, update_data)
    except HaulValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except HaulConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if not haul:
        raise _not_found()
    return _to_haul_response(haul)


@router.delete("/{haul_id}")
async def delete_haul(
    haul_id: str,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Delete a haul (owner only)."""
    repo = HaulRepository(db)
    deleted = await repo.delete_haul(haul_id, current_user.id)
    if not deleted:
        raise _not_found()
    return {"message": "Haul deleted"}


@router.get("/{haul_id}/totals", response_model=TotalsResponse)
async def get_haul_totals(
    haul_id: str,
    use_exemption: bool = Query(True, description="Apply the duty-free allowance"),
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Landed cost and duty for a saved haul, using the rates stored with it."""
    repo = HaulRepository(db)
    haul = await repo.get_haul(haul_id, current_user.id)
    if not haul:
        raise _not_found()

    totals = compute_totals(
        haul.line_items,
        haul.shipping_usd,
        use_exemption,
        haul.exchange_rates,
        get_tax_policy()
    )
    return TotalsResponse.model_validate(totals)
