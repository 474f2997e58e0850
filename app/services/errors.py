"""Error taxonomy for market lifecycle and wager valuation."""


class StorageError(Exception):
    """Base class for storage collaborator failures."""


class TransientStorageError(StorageError):
    """A query or update failed in a way that may succeed on retry."""


class MarketNotFoundError(StorageError):
    """The market to update does not exist."""

    def __init__(self, market_id: int):
        self.market_id = market_id
        super().__init__(f"Market {market_id} not found")


class InvalidStatusTransitionError(StorageError):
    """A status update would move a market backward or skip a state."""

    def __init__(self, market_id: int, current: str, target: str):
        self.market_id = market_id
        self.current = current
        self.target = target
        super().__init__(
            f"Market {market_id} cannot move from {current} to {target}"
        )


class InvalidWagerError(ValueError):
    """Wager input the valuation engine cannot price (missing or negative amount)."""


class UnresolvedContextWarning(UserWarning):
    """
    Match/market context was missing or incomplete.

    Never raised. Attached to a valuation result that fell back to the
    default multiplier.
    """
