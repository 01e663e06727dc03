"""
forter/exceptions.py

Errors raised by the settlement engine.
"""


class SettlementError(Exception):
    """Base class for settlement and reputation failures."""
    pass


class InvariantViolation(SettlementError, ValueError):
    """Inputs break a ledger invariant (bad totals, negative amounts, wrong state)."""
    pass


class AmountOverflow(SettlementError, OverflowError):
    """An amount or intermediate product exceeds the ledger's uint256 range."""
    pass


class LedgerDecodeError(SettlementError, ValueError):
    """A ledger payload could not be decoded into a domain entity."""
    pass
