"""Game type taxonomy and team-side resolution."""

from enum import Enum


class GameType(str, Enum):
    """Game types the valuation engine knows how to price."""
    CRICKET_TOSS = "cricket_toss"
    TEAM_MATCH = "team_match"
    COIN_FLIP = "coin_flip"
    SATAMATKA = "satamatka"      # all satamatka_* variants
    OTHER = "other"              # anything unrecognised, priced at the default

    @classmethod
    def parse(cls, raw: str | None) -> "GameType":
        """Map a stored game type string onto the taxonomy."""
        if not raw:
            return cls.OTHER
        value = raw.strip().lower()
        if "satamatka" in value:
            return cls.SATAMATKA
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER

    @property
    def is_team_game(self) -> bool:
        return self in (GameType.CRICKET_TOSS, GameType.TEAM_MATCH)


class TeamSide(str, Enum):
    """Canonical prediction tokens for team games."""
    TEAM_A = "team_a"
    TEAM_B = "team_b"


def satamatka_mode(game_type: str | None, game_mode: str | None = None) -> str | None:
    """
    Prediction mode of a satamatka wager.

    An explicit game_mode wins; otherwise the suffix of the game type is
    used ("satamatka_jodi" -> "jodi"). Returns None when neither is set.
    """
    if game_mode and game_mode.strip():
        return game_mode.strip().lower()
    if not game_type:
        return None
    _, _, suffix = game_type.strip().lower().partition("satamatka")
    suffix = suffix.lstrip("_")
    return suffix or None


MODE_NAMES = {
    "jodi": "Jodi",
    "harf": "Harf",
    "crossing": "Crossing",
    "odd_even": "Odd/Even",
}


def mode_display_name(mode: str | None) -> str:
    """Human-readable satamatka mode ("odd_even" -> "Odd/Even")."""
    if not mode:
        return ""
    return MODE_NAMES.get(mode, mode.replace("_", " "))


def satamatka_label(
    prediction: str,
    mode: str | None,
    market_name: str | None = None,
) -> str:
    """
    Display label for a satamatka prediction, e.g. "Gali - Jodi (42)".

    Falls back to the bare prediction when there is no mode.
    """
    mode_name = mode_display_name(mode)
    label = f"{mode_name} ({prediction})" if mode_name else prediction
    if market_name:
        return f"{market_name} - {label}" if label else market_name
    return label


def resolve_team_side(
    prediction: str | None,
    team_a: str | None = None,
    team_b: str | None = None,
) -> TeamSide | None:
    """
    Work out which side a team-game prediction backs.

    Precedence:
    1. Exact canonical token ("team_a" / "team_b")
    2. Case variant of the token ("Team_a", "TEAM_B")
    3. Prediction contains team A's name, then team B's name

    Step 3 is a plain substring test, so a team whose name is contained in
    the other team's name can be misread. Returns None when nothing matches.
    """
    if not prediction:
        return None

    for side in TeamSide:
        if prediction == side.value:
            return side

    lowered = prediction.lower()
    for side in TeamSide:
        if lowered == side.value:
            return side

    if team_a and team_a in prediction:
        return TeamSide.TEAM_A
    if team_b and team_b in prediction:
        return TeamSide.TEAM_B

    return None
