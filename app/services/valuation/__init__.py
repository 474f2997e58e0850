"""Valuation module for WagerClock."""

from app.services.valuation.engine import (
    ValuationEngine,
    ValuationResult,
    WagerInput,
    get_valuation_engine,
    value_wager,
)
from app.services.valuation.game_types import GameType, TeamSide, resolve_team_side

__all__ = [
    "ValuationEngine",
    "ValuationResult",
    "WagerInput",
    "get_valuation_engine",
    "value_wager",
    "GameType",
    "TeamSide",
    "resolve_team_side",
]
