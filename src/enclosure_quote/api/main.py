from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from enclosure_quote import __version__
from enclosure_quote.config.logging import configure_logging
from enclosure_quote.data.price_report import build_price_report
from enclosure_quote.api import state
from enclosure_quote.api.admin_api import router as admin_router
from enclosure_quote.api.quotes_api import router as quotes_router
from enclosure_quote.api.schemas import ConfigurationModel
from enclosure_quote.api.state import settings, price_configuration

configure_logging(settings.log_level)

app = FastAPI(
    title="Enclosure Quote API",
    description="Pricing and quotes for pool and terrace roof enclosures",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(quotes_router)
app.include_router(admin_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Enclosure Quote API Active"}


@app.get("/roof-types")
async def get_roof_types():
    return [
        {
            "code": rt.code,
            "name": rt.name,
            "min_width": rt.min_width,
            "max_width": rt.max_width,
            "has_skirts": rt.has_skirts,
            "min_modules": rt.min_modules,
            "max_modules": rt.max_modules,
        }
        for rt in state.engine.reference_data.roof_types
    ]


@app.get("/prices")
async def get_prices(roof_type: str):
    if state.engine.reference_data.roof_type(roof_type) is None:
        raise HTTPException(status_code=404, detail=f"Unknown roof type '{roof_type}'")
    return [
        {
            "width_label": p.width_label,
            "width_min": p.width_min,
            "width_max": p.width_max,
            "modules": p.modules,
            "price": p.price,
            "height": p.height,
        }
        for p in state.engine.reference_data.price_table(roof_type)
    ]


@app.get("/surcharges")
async def get_surcharges(category: Optional[str] = None):
    return [
        {
            "code": s.code,
            "name": s.name,
            "category": s.category,
            "type": s.kind,
            "value": s.value,
            "value_rock": s.value_rock,
            "min_value": s.min_value,
        }
        for s in state.engine.reference_data.surcharges
        if category is None or s.category == category
    ]


@app.post("/calculate")
async def calculate(configuration: ConfigurationModel):
    result, validation = price_configuration(configuration.to_configuration())
    response = result.to_dict()
    response["warnings"] = validation.warnings
    return response


@app.get("/system/status")
async def get_status():
    data = state.engine.reference_data
    has_report = settings.build_report.exists()
    return {
        "engine_active": True,
        "roof_types": len(data.roof_types),
        "prices": data.price_count(),
        "surcharges": len(data.surcharges),
        "last_report": settings.build_report.stat().st_mtime if has_report else None,
    }


@app.post("/system/reload")
async def reload_reference_data():
    """Reload reference data and re-check the price matrices."""
    state.engine.reload_data()
    report = build_price_report(state.engine.reference_data)
    return {
        "status": report["status"],
        "errors": report["errors"],
        "warnings": report["warnings"],
    }
