"""
Quotes API - FastAPI router for stored quotes.
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Response

from ..render.quote_pdf import generate_pdf
from ..services.quote_service import Customer, Dealer
from .schemas import QuoteCreate, QuoteUpdate
from . import state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quotes", tags=["quotes"])


def _summary(quote) -> dict:
    return {
        "number": quote.number,
        "status": quote.status,
        "customer_name": quote.customer.name,
        "customer_email": quote.customer.email,
        "roof_type_code": quote.roof_type_code,
        "width": quote.configuration.width,
        "modules": quote.configuration.modules,
        "final_price": quote.final_price,
        "created_at": quote.created_at,
        "valid_until": quote.valid_until,
    }


@router.get("")
async def list_quotes(status: Optional[str] = None, search: Optional[str] = None, limit: int = 50, offset: int = 0):
    """List quotes, newest first."""
    quotes, total = state.quote_service.list_quotes(status=status, search=search, limit=limit, offset=offset)
    return {"quotes": [_summary(q) for q in quotes], "total": total}


@router.get("/stats")
async def get_stats():
    """Get quote statistics."""
    return state.quote_service.get_stats()


@router.get("/{number}")
async def get_quote(number: str):
    """Get a single quote with its full breakdown."""
    quote = state.quote_service.get_quote(number)
    if not quote:
        raise HTTPException(status_code=404, detail=f"Quote '{number}' not found")
    return quote.to_dict()


@router.post("")
async def create_quote(data: QuoteCreate):
    """Calculate a configuration and store it as a new quote."""
    configuration = data.configuration.to_configuration()
    result, validation = state.price_configuration(configuration)
    roof_type = state.engine.reference_data.roof_type(configuration.roof_type_code)

    try:
        quote = state.quote_service.create_quote(
            configuration=configuration,
            result=result,
            customer=Customer(
                name=data.customer_name,
                email=data.customer_email,
                phone=data.customer_phone,
                address=data.customer_address,
            ),
            dealer=Dealer(name=data.dealer_name, contact=data.dealer_contact) if data.dealer_name else None,
            roof_type=roof_type,
            notes=data.notes,
            validity_months=data.validity_months,
            prepared_by=data.prepared_by,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    response = quote.to_dict()
    response["warnings"] = validation.warnings
    return response


@router.put("/{number}")
async def update_quote(number: str, updates: QuoteUpdate):
    """Update quote metadata (status, notes, customer, validity)."""
    update_dict = updates.model_dump(exclude_unset=True)
    if state.quote_service.get_quote(number) is None:
        raise HTTPException(status_code=404, detail=f"Quote '{number}' not found")
    try:
        return state.quote_service.update_quote(number, update_dict).to_dict()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{number}")
async def delete_quote(number: str):
    """Delete a quote."""
    try:
        state.quote_service.delete_quote(number)
        return {"success": True, "message": f"Quote '{number}' deleted"}
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{number}/pdf")
async def get_quote_pdf(number: str):
    """Download the quote as PDF."""
    quote = state.quote_service.get_quote(number)
    if not quote:
        raise HTTPException(status_code=404, detail=f"Quote '{number}' not found")

    pdf = generate_pdf(quote)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{quote.number}.pdf"',
            "Cache-Control": "no-cache",
        },
    )
