"""
Admin API - FastAPI router for reference data maintenance.

Every successful write reloads the engine so new quotes price against the
edited data straight away.
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException

from ..services.reference_service import ReferenceDataError
from .schemas import SurchargeCreate, SurchargeUpdate, RoofTypeUpdate, PriceBulkUpdate, PriceTableReplace
from . import state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _reload():
    state.engine.reload_data()


# Surcharges

@router.get("/surcharges")
async def list_surcharges(category: Optional[str] = None, include_inactive: bool = True):
    surcharges = state.reference_service.list_surcharges(include_inactive=include_inactive)
    if category:
        surcharges = [s for s in surcharges if s["category"] == category]
    return surcharges


@router.post("/surcharges")
async def create_surcharge(data: SurchargeCreate):
    """Create a surcharge definition."""
    try:
        surcharge, warnings = state.reference_service.create_surcharge(data.model_dump())
    except ReferenceDataError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _reload()
    return {"surcharge": surcharge, "warnings": warnings}


@router.put("/surcharges/{code}")
async def update_surcharge(code: str, data: SurchargeUpdate):
    """Update a surcharge definition."""
    try:
        surcharge, warnings = state.reference_service.update_surcharge(code, data.model_dump(exclude_unset=True))
    except ReferenceDataError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    _reload()
    return {"surcharge": surcharge, "warnings": warnings}


@router.delete("/surcharges/{code}")
async def delete_surcharge(code: str):
    try:
        warnings = state.reference_service.delete_surcharge(code)
    except ReferenceDataError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    _reload()
    return {"status": "deleted", "code": code, "warnings": warnings}


# Roof types

@router.get("/roof-types")
async def list_roof_types():
    return state.reference_service.list_roof_types()


@router.put("/roof-types/{code}")
async def update_roof_type(code: str, data: RoofTypeUpdate):
    try:
        roof_type, warnings = state.reference_service.update_roof_type(code, data.model_dump(exclude_unset=True))
    except ReferenceDataError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    _reload()
    return {"roof_type": roof_type, "warnings": warnings}


# Prices

@router.get("/prices")
async def list_prices(roof_type: Optional[str] = None):
    return state.reference_service.list_prices(roof_type)


@router.patch("/prices")
async def bulk_update_prices(data: PriceBulkUpdate):
    """Change price and height of existing matrix cells in one go."""
    updates = [u.model_dump(exclude_unset=True) for u in data.updates]
    try:
        count, warnings = state.reference_service.bulk_update_prices(data.roof_type, updates)
    except ReferenceDataError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    _reload()
    return {"updated": count, "warnings": warnings}


@router.put("/prices/{roof_type}")
async def replace_price_table(roof_type: str, data: PriceTableReplace):
    """Replace the whole price matrix of one roof type."""
    try:
        count, warnings = state.reference_service.replace_price_table(
            roof_type, [row.model_dump() for row in data.rows]
        )
    except ReferenceDataError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    _reload()
    return {"rows": count, "warnings": warnings}
