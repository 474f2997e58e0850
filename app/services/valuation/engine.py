"""Wager valuation engine.

Derives the payout multiplier and payout amount a wager is entitled to from
its game type, prediction and market/match context. Used both for the
advisory "potential payout" of pending wagers and for the authoritative
payout computed at settlement time.

UNITS:
- bet_amount is an integer in minor currency units
- every multiplier and odd is an integer scaled by 100 (190 == 1.90x)
- payout = bet_amount * multiplier // payout_scale (truncating)

The engine is pure: it never mutates the wager, market or match it is given
and holds no mutable state after construction, so one instance can be
shared by any number of concurrent callers.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

import structlog
import yaml

from app.services.errors import InvalidWagerError, UnresolvedContextWarning
from app.services.storage import MarketContext, MatchContext
from app.services.valuation.game_types import (
    GameType,
    TeamSide,
    resolve_team_side,
    satamatka_label,
    satamatka_mode,
)

logger = structlog.get_logger(__name__)


class WagerLike(Protocol):
    """Attributes the engine reads from a wager (ORM row or WagerInput)."""

    game_type: str
    prediction: str
    bet_amount: int | None


@dataclass(frozen=True)
class WagerInput:
    """Minimal wager description for pricing without an ORM row."""

    game_type: str
    prediction: str
    bet_amount: int | None
    game_mode: str | None = None


@dataclass(frozen=True)
class ValuationResult:
    """Outcome of pricing one wager."""

    game_type: GameType
    multiplier: int
    payout: int
    bet_amount: int

    # Resolution details
    mode: str | None = None
    side: TeamSide | None = None
    prediction_label: str = ""

    # True for potential payouts shown on pending wagers
    advisory: bool = False

    # Set when context was missing and the default multiplier was used
    warning: UnresolvedContextWarning | None = None

    @property
    def used_fallback(self) -> bool:
        return self.warning is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "game_type": self.game_type.value,
            "multiplier": self.multiplier,
            "payout": self.payout,
            "bet_amount": self.bet_amount,
            "mode": self.mode,
            "side": self.side.value if self.side else None,
            "prediction_label": self.prediction_label,
            "advisory": self.advisory,
            "warning": str(self.warning) if self.warning else None,
        }


class ValuationEngine:
    """
    Price wagers by game type.

    Multiplier rules:
    - cricket_toss / team_match: the backed side's odds from the match,
      default when the side or the odds cannot be determined
    - satamatka_*: keyed by prediction mode (market override, then table),
      default for unknown modes
    - coin_flip and anything else: default
    """

    def __init__(self, config: dict[str, Any] | None = None):
        """
        Initialize valuation engine.

        Args:
            config: Optional valuation configuration. If not provided,
                   loads from defaults.yaml
        """
        if config is None:
            config = self._load_default_config()

        self.config = config
        self.default_multiplier = config.get("default_multiplier")
        self.payout_scale = config.get("payout_scale")
        self.mode_multipliers = dict(config.get("mode_multipliers") or {})

        self._validate_config()

    def _load_default_config(self) -> dict[str, Any]:
        """Load valuation config from defaults.yaml."""
        config_path = Path(__file__).parent.parent.parent / "config" / "defaults.yaml"
        if config_path.exists():
            with open(config_path) as f:
                full_config = yaml.safe_load(f) or {}
                if "valuation" in full_config:
                    return full_config["valuation"]
        return self._get_fallback_config()

    def _get_fallback_config(self) -> dict[str, Any]:
        """Fallback configuration if defaults.yaml not found."""
        return {
            "default_multiplier": 190,
            "payout_scale": 10000,
            "mode_multipliers": {
                "jodi": 9000,
                "harf": 900,
                "crossing": 9500,
                "odd_even": 190,
            },
        }

    def _validate_config(self) -> None:
        """Validate multipliers are positive integers."""
        for name in ("default_multiplier", "payout_scale"):
            value = getattr(self, name)
            if not _is_positive_int(value):
                raise ValueError(f"Invalid {name}: {value!r}")
        for mode, value in self.mode_multipliers.items():
            if not _is_positive_int(value):
                raise ValueError(f"Invalid multiplier for mode {mode}: {value!r}")

    def payout_for(self, bet_amount: int, multiplier: int) -> int:
        """Payout in minor units for a bet at a multiplier scaled by 100."""
        return bet_amount * multiplier // self.payout_scale

    def value(
        self,
        wager: WagerLike,
        context: MatchContext | MarketContext | None = None,
        advisory: bool = False,
    ) -> ValuationResult:
        """
        Price a wager.

        Args:
            wager: Anything with game_type, prediction, bet_amount and
                   optionally game_mode
            context: The wager's match (team games) or market (satamatka)
            advisory: Mark the result as a potential payout

        Returns:
            ValuationResult with multiplier and payout

        Raises:
            InvalidWagerError: bet_amount missing, negative or not an integer
        """
        bet_amount = _validate_bet_amount(wager.bet_amount)
        game_type = GameType.parse(wager.game_type)
        prediction = wager.prediction or ""

        mode = None
        side = None
        label = prediction
        warning = None

        if game_type.is_team_game:
            multiplier, side, warning = self._team_multiplier(prediction, context)
            if side is not None and isinstance(context, MatchContext):
                label = context.team_a if side is TeamSide.TEAM_A else context.team_b
        elif game_type is GameType.SATAMATKA:
            mode = satamatka_mode(wager.game_type, getattr(wager, "game_mode", None))
            multiplier = self._mode_multiplier(mode, context)
            market_name = context.name if isinstance(context, MarketContext) else None
            label = satamatka_label(prediction, mode, market_name)
        else:
            multiplier = self.default_multiplier

        if warning is not None:
            logger.warning(
                "valuation_context_unresolved",
                game_type=game_type.value,
                prediction=prediction,
                reason=str(warning),
            )

        return ValuationResult(
            game_type=game_type,
            multiplier=multiplier,
            payout=self.payout_for(bet_amount, multiplier),
            bet_amount=bet_amount,
            mode=mode,
            side=side,
            prediction_label=label,
            advisory=advisory,
            warning=warning,
        )

    def potential_payout(
        self,
        wager: WagerLike,
        context: MatchContext | MarketContext | None = None,
    ) -> ValuationResult:
        """Advisory valuation for a pending wager. Not authoritative."""
        return self.value(wager, context, advisory=True)

    def _team_multiplier(
        self,
        prediction: str,
        context: MatchContext | MarketContext | None,
    ) -> tuple[int, TeamSide | None, UnresolvedContextWarning | None]:
        if not isinstance(context, MatchContext):
            return (
                self.default_multiplier,
                resolve_team_side(prediction),
                UnresolvedContextWarning("match context not available"),
            )

        side = resolve_team_side(prediction, context.team_a, context.team_b)
        if side is None:
            # Opaque label, priced at the default
            return self.default_multiplier, None, None

        odd = context.odd_team_a if side is TeamSide.TEAM_A else context.odd_team_b
        if not _is_positive_int(odd):
            return (
                self.default_multiplier,
                side,
                UnresolvedContextWarning(f"odds missing for {side.value}"),
            )
        return odd, side, None

    def _mode_multiplier(
        self,
        mode: str | None,
        context: MatchContext | MarketContext | None,
    ) -> int:
        if mode is None:
            return self.default_multiplier

        if isinstance(context, MarketContext):
            override = context.payout_multipliers.get(mode)
            if _is_positive_int(override):
                return override

        return self.mode_multipliers.get(mode, self.default_multiplier)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _validate_bet_amount(bet_amount: Any) -> int:
    if bet_amount is None:
        raise InvalidWagerError("bet_amount is required")
    if isinstance(bet_amount, bool) or not isinstance(bet_amount, int):
        raise InvalidWagerError(
            f"bet_amount must be an integer in minor units, got {bet_amount!r}"
        )
    if bet_amount < 0:
        raise InvalidWagerError(f"bet_amount must not be negative, got {bet_amount}")
    return bet_amount


@lru_cache
def get_valuation_engine() -> ValuationEngine:
    """Shared engine configured from defaults.yaml."""
    return ValuationEngine()


def value_wager(
    game_type: str,
    prediction: str,
    bet_amount: int | None,
    context: MatchContext | MarketContext | None = None,
    game_mode: str | None = None,
) -> ValuationResult:
    """
    Quick valuation without building a WagerInput.

    Args:
        game_type: Stored game type string, e.g. "satamatka_jodi"
        prediction: The wager's prediction
        bet_amount: Stake in minor units
        context: Optional match or market
        game_mode: Optional explicit satamatka mode

    Returns:
        ValuationResult
    """
    wager = WagerInput(
        game_type=game_type,
        prediction=prediction,
        bet_amount=bet_amount,
        game_mode=game_mode,
    )
    return get_valuation_engine().value(wager, context)
