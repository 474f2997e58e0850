"""Unit tests for the wager valuation engine.

Payout convention: payout = bet_amount * multiplier // 10000, with the
bet in minor units and the multiplier scaled by 100.
"""

from types import SimpleNamespace

import pytest

from app.services.errors import InvalidWagerError, UnresolvedContextWarning
from app.services.storage import MatchContext
from app.services.valuation import (
    GameType,
    TeamSide,
    ValuationEngine,
    WagerInput,
    value_wager,
)


def wager(game_type, prediction="", bet_amount=10000, game_mode=None):
    return WagerInput(
        game_type=game_type,
        prediction=prediction,
        bet_amount=bet_amount,
        game_mode=game_mode,
    )


class TestValuationEngine:
    """Test the ValuationEngine class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = ValuationEngine()

    def test_engine_initialization(self):
        """Engine loads the default tables."""
        assert self.engine.default_multiplier == 190
        assert self.engine.payout_scale == 10000
        assert self.engine.mode_multipliers["jodi"] == 9000

    def test_satamatka_jodi(self):
        """₹100.00 on jodi -> 9000 multiplier, payout 9000."""
        result = self.engine.value(wager("satamatka_jodi", "42", 10000))

        assert result.game_type is GameType.SATAMATKA
        assert result.mode == "jodi"
        assert result.multiplier == 9000
        assert result.payout == 9000

    def test_cricket_toss_team_a_odds(self, match_context):
        """Team A at 2.50x."""
        result = self.engine.value(wager("cricket_toss", "team_a", 5000), match_context)
        assert result.multiplier == 250
        assert result.payout == 125

        result = self.engine.value(wager("cricket_toss", "team_a", 10000), match_context)
        assert result.payout == 250
        assert result.side is TeamSide.TEAM_A
        assert result.prediction_label == "Mumbai Indians"

    def test_coin_flip_default_multiplier(self):
        """₹20.00 on a coin flip at 1.9x."""
        result = self.engine.value(wager("coin_flip", "heads", 2000))
        assert result.multiplier == 190
        assert result.payout == 38
        assert result.warning is None

    def test_unknown_game_type_uses_default(self):
        result = self.engine.value(wager("dice_roll", "6", 1000))
        assert result.game_type is GameType.OTHER
        assert result.multiplier == 190

    def test_payout_truncates(self):
        """333 * 190 / 10000 = 6.327 -> 6."""
        result = self.engine.value(wager("coin_flip", "tails", 333))
        assert result.payout == 6

    def test_zero_bet_amount(self):
        result = self.engine.value(wager("coin_flip", "heads", 0))
        assert result.payout == 0


class TestSatamatkaModes:
    """Mode multipliers for satamatka games."""

    def setup_method(self):
        self.engine = ValuationEngine()

    @pytest.mark.parametrize(
        "game_type,expected",
        [
            ("satamatka_jodi", 9000),
            ("satamatka_harf", 900),
            ("satamatka_crossing", 9500),
            ("satamatka_odd_even", 190),
            ("satamatka_panna", 190),
        ],
    )
    def test_mode_from_game_type(self, game_type, expected):
        assert self.engine.value(wager(game_type, "5")).multiplier == expected

    def test_explicit_game_mode_wins(self):
        result = self.engine.value(wager("satamatka", "7", game_mode="harf"))
        assert result.mode == "harf"
        assert result.multiplier == 900

    def test_no_mode_uses_default(self):
        result = self.engine.value(wager("satamatka", "7"))
        assert result.mode is None
        assert result.multiplier == 190

    def test_market_override(self, make_market):
        """A market's own multiplier for a mode replaces the table value."""
        market = make_market(1, payout_multipliers={"jodi": 9500})
        result = self.engine.value(wager("satamatka_jodi", "42", 1000), market)
        assert result.multiplier == 9500
        assert result.payout == 950

    def test_market_override_for_other_mode_ignored(self, make_market):
        market = make_market(1, payout_multipliers={"harf": 950})
        result = self.engine.value(wager("satamatka_jodi", "42"), market)
        assert result.multiplier == 9000

    def test_label_uses_mode_name(self):
        result = self.engine.value(wager("satamatka_jodi", "42"))
        assert result.prediction_label == "Jodi (42)"

    def test_label_includes_market_name(self, make_market):
        market = make_market(1, name="Dishawar")
        result = self.engine.value(wager("satamatka", "5", game_mode="harf"), market)
        assert result.prediction_label == "Dishawar - Harf (5)"

    def test_satamatka_without_market_has_no_warning(self):
        result = self.engine.value(wager("satamatka_jodi", "42"))
        assert result.warning is None


class TestTeamGames:
    """Side resolution and fallbacks for cricket_toss / team_match."""

    def setup_method(self):
        self.engine = ValuationEngine()

    def test_team_b_odds(self, match_context):
        result = self.engine.value(wager("team_match", "team_b", 10000), match_context)
        assert result.side is TeamSide.TEAM_B
        assert result.multiplier == 160
        assert result.payout == 160

    def test_case_variant(self, match_context):
        result = self.engine.value(wager("cricket_toss", "Team_b"), match_context)
        assert result.side is TeamSide.TEAM_B
        assert result.multiplier == 160

    def test_prediction_containing_team_name(self, match_context):
        result = self.engine.value(
            wager("team_match", "Chennai Super Kings to win"), match_context
        )
        assert result.side is TeamSide.TEAM_B
        assert result.prediction_label == "Chennai Super Kings"
        assert result.multiplier == 160

    def test_unresolvable_prediction_is_opaque_label(self, match_context):
        result = self.engine.value(wager("team_match", "draw"), match_context)
        assert result.side is None
        assert result.prediction_label == "draw"
        assert result.multiplier == 190
        assert result.warning is None

    def test_missing_context_falls_back(self):
        """Missing match degrades to the default instead of failing."""
        result = self.engine.value(wager("cricket_toss", "team_a", 10000), None)
        assert result.multiplier == 190
        assert result.payout == 190
        assert isinstance(result.warning, UnresolvedContextWarning)
        assert result.used_fallback

    def test_market_context_is_not_a_match(self, make_market):
        result = self.engine.value(wager("cricket_toss", "team_a"), make_market(1))
        assert result.multiplier == 190
        assert result.warning is not None

    def test_missing_odds_fall_back(self):
        match = MatchContext(id=1, team_a="India", team_b="Australia", odd_team_a=None)
        result = self.engine.value(wager("cricket_toss", "team_a"), match)
        assert result.side is TeamSide.TEAM_A
        assert result.multiplier == 190
        assert result.warning is not None


class TestInvalidWagers:
    """Caller-side contract violations are raised, not absorbed."""

    def setup_method(self):
        self.engine = ValuationEngine()

    def test_missing_bet_amount(self):
        with pytest.raises(InvalidWagerError):
            self.engine.value(wager("coin_flip", "heads", None))

    def test_negative_bet_amount(self):
        with pytest.raises(InvalidWagerError):
            self.engine.value(wager("coin_flip", "heads", -100))

    def test_fractional_bet_amount(self):
        with pytest.raises(InvalidWagerError):
            self.engine.value(wager("coin_flip", "heads", 10.5))

    def test_invalid_wager_error_is_value_error(self):
        with pytest.raises(ValueError):
            self.engine.value(wager("satamatka_jodi", "42", -1))


class TestPurity:
    """The engine is deterministic and never mutates its inputs."""

    def setup_method(self):
        self.engine = ValuationEngine()

    def test_repeated_calls_identical(self, match_context):
        w = wager("cricket_toss", "team_a", 7777)
        results = [self.engine.value(w, match_context) for _ in range(5)]
        assert all(r == results[0] for r in results)

    def test_wager_not_mutated(self, match_context):
        stored = SimpleNamespace(
            game_type="cricket_toss",
            game_mode=None,
            prediction="Team_a",
            bet_amount=5000,
            status="pending",
            result=None,
            payout=None,
        )
        before = dict(vars(stored))
        self.engine.value(stored, match_context)
        assert vars(stored) == before

    def test_potential_payout_is_advisory(self, match_context):
        w = wager("cricket_toss", "team_a", 10000)
        potential = self.engine.potential_payout(w, match_context)
        actual = self.engine.value(w, match_context)

        assert potential.advisory is True
        assert actual.advisory is False
        assert potential.payout == actual.payout


class TestEngineConfig:
    """Configuration handling."""

    def test_custom_tables(self):
        engine = ValuationEngine(
            {
                "default_multiplier": 200,
                "payout_scale": 10000,
                "mode_multipliers": {"jodi": 8000},
            }
        )
        assert engine.value(wager("coin_flip", "heads", 10000)).payout == 200
        assert engine.value(wager("satamatka_jodi", "1", 10000)).payout == 8000
        assert engine.value(wager("satamatka_harf", "1", 10000)).multiplier == 200

    def test_invalid_default_rejected(self):
        with pytest.raises(ValueError, match="default_multiplier"):
            ValuationEngine({"default_multiplier": 0, "payout_scale": 10000})

    def test_invalid_mode_multiplier_rejected(self):
        with pytest.raises(ValueError, match="jodi"):
            ValuationEngine(
                {
                    "default_multiplier": 190,
                    "payout_scale": 10000,
                    "mode_multipliers": {"jodi": "90x"},
                }
            )

    def test_to_dict(self, match_context):
        data = ValuationEngine().value(wager("cricket_toss", "team_a"), match_context).to_dict()
        assert data["game_type"] == "cricket_toss"
        assert data["side"] == "team_a"
        assert data["multiplier"] == 250
        assert data["warning"] is None


class TestConvenienceFunction:
    """value_wager mirrors the engine."""

    def test_value_wager(self):
        result = value_wager("satamatka_crossing", "123", 1000)
        assert result.multiplier == 9500
        assert result.payout == 950
