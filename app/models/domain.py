"""Domain models for WagerClock.

Markets and matches are time-boxed wagering rounds. Their status only ever
moves forward:

    OPEN --(close time elapsed)--> CLOSED --(settlement)--> RESULTED

Wagers reference a market (satamatka games) or a match (team games).
All money is stored as integers in minor currency units and all odds and
multipliers as integers scaled by 100 (190 == 1.90x).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class MarketStatus(str, Enum):
    """Lifecycle of a market or match."""
    OPEN = "open"
    CLOSED = "closed"
    RESULTED = "resulted"

    def can_transition_to(self, target: "MarketStatus") -> bool:
        """Only single forward steps are allowed."""
        return (self, target) in _ALLOWED_TRANSITIONS


_ALLOWED_TRANSITIONS = {
    (MarketStatus.OPEN, MarketStatus.CLOSED),
    (MarketStatus.CLOSED, MarketStatus.RESULTED),
}


class WagerStatus(str, Enum):
    """Lifecycle of a wager."""
    PENDING = "pending"
    SETTLED = "settled"
    CANCELLED = "cancelled"


class Market(Base, TimestampMixin):
    """
    Satamatka market: a time-boxed round with per-mode payout multipliers.

    payout_multipliers maps a prediction mode to a multiplier scaled by 100,
    e.g. {"jodi": 9000, "harf": 900}. Modes missing from the map fall back
    to the engine's default table.
    """

    __tablename__ = "markets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    market_type: Mapped[str] = mapped_column(
        String(50), nullable=False, doc="'dishawar', 'gali', 'mumbai', 'custom'"
    )
    open_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    close_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MarketStatus.OPEN.value
    )
    payout_multipliers: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType, nullable=True
    )
    open_result: Mapped[str | None] = mapped_column(String(10), nullable=True)
    close_result: Mapped[str | None] = mapped_column(String(10), nullable=True)

    wagers: Mapped[list["Wager"]] = relationship("Wager", back_populates="market")

    __table_args__ = (Index("idx_markets_status_close", "status", "close_time"),)

    def __repr__(self) -> str:
        return f"<Market {self.name} ({self.market_type}) status={self.status}>"


class Match(Base, TimestampMixin):
    """
    Two-sided market (team A vs team B) with independent odds per side.

    Odds are scaled by 100: odd_team_a=250 means 2.50x.
    """

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    team_a: Mapped[str] = mapped_column(String(100), nullable=False)
    team_b: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="cricket")
    match_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    odd_team_a: Mapped[int | None] = mapped_column(Integer, nullable=True)
    odd_team_b: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MarketStatus.OPEN.value
    )
    result: Mapped[str | None] = mapped_column(String(20), nullable=True)

    wagers: Mapped[list["Wager"]] = relationship("Wager", back_populates="match")

    def __repr__(self) -> str:
        return f"<Match {self.team_a} vs {self.team_b} status={self.status}>"


class Wager(Base, TimestampMixin):
    """
    A single bet placed by a user.

    Exactly one of these holds at any time:
    - status PENDING, result empty (or the literal "pending")
    - status SETTLED, result present, payout present
    - status CANCELLED (refund applied elsewhere)
    """

    __tablename__ = "wagers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    game_type: Mapped[str] = mapped_column(String(50), nullable=False)
    game_mode: Mapped[str | None] = mapped_column(
        String(30), nullable=True, doc="Satamatka mode: jodi, harf, crossing, odd_even"
    )
    market_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("markets.id"), nullable=True
    )
    match_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("matches.id"), nullable=True
    )
    bet_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    prediction: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WagerStatus.PENDING.value
    )
    result: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payout: Mapped[int | None] = mapped_column(Integer, nullable=True)
    balance_after: Mapped[int | None] = mapped_column(Integer, nullable=True)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)

    market: Mapped[Optional["Market"]] = relationship("Market", back_populates="wagers")
    match: Mapped[Optional["Match"]] = relationship("Match", back_populates="wagers")

    __table_args__ = (Index("idx_wagers_user_status", "user_id", "status"),)

    def __repr__(self) -> str:
        return f"<Wager {self.id} {self.game_type} {self.bet_amount} status={self.status}>"
