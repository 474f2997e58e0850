"""Configuration API endpoints."""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_engine
from app.config import get_settings
from app.services.valuation import ValuationEngine

router = APIRouter(prefix="/api/config", tags=["config"])


@router.get("/valuation")
async def get_valuation_config():
    """Get valuation configuration as shipped in defaults.yaml."""
    settings = get_settings()
    defaults = settings.load_defaults_config()
    return defaults.get("valuation", {})


@router.get("/valuation/active")
async def get_active_valuation_config(
    engine: ValuationEngine = Depends(get_engine),
):
    """Get the multiplier tables the valuation engine is actually using."""
    return {
        "default_multiplier": engine.default_multiplier,
        "payout_scale": engine.payout_scale,
        "mode_multipliers": engine.mode_multipliers,
    }
