"""
forter/protocol/positions.py

Position codec: pool stance, staker choice and the ledger boolean.

A stake's position exists in three forms:
- the pool creator's Stance (AFFIRMATIVE / NEGATIVE)
- the staker's Choice relative to that stance (AGREE / DISAGREE)
- the boolean the ledger stores per stake

The ledger boolean means "the staker's effective stance equals the pool's
stance", except that the ledger's stake() entry point was deployed expecting
the negation of that value. The flip lives in LEDGER_AGREE_FLAG_INVERTED and is
applied here and nowhere else.

Usage:
    from forter.protocol.positions import PositionCodec

    codec = PositionCodec()
    flag = codec.encode_choice(Stance.NEGATIVE, Choice.AGREE)   # False
    codec.from_ledger_encoding(flag, Stance.NEGATIVE)           # Choice.AGREE
"""

import logging

from ..config import LEDGER_AGREE_FLAG_INVERTED
from ..models import Choice, Stance

logger = logging.getLogger("forter.protocol.positions")


def resolve_effective_stance(pool_stance: Stance, choice: Choice) -> Stance:
    """
    Resolve a staker's absolute direction on the claim.

    Agreeing with an affirmative pool or disagreeing with a negative one
    means the staker expects the claim to happen.
    """
    if choice is Choice.AGREE:
        return pool_stance
    return pool_stance.opposite()


def choice_for_stance(effective_stance: Stance, pool_stance: Stance) -> Choice:
    """Inverse of resolve_effective_stance."""
    return Choice.AGREE if effective_stance is pool_stance else Choice.DISAGREE


def stance_to_ledger(stance: Stance) -> bool:
    """Pool position boolean as stored by createPool (true = YES)."""
    return stance is Stance.AFFIRMATIVE


def stance_from_ledger(position: bool) -> Stance:
    return Stance.AFFIRMATIVE if position else Stance.NEGATIVE


class PositionCodec:
    """
    Converts stake positions to and from the ledger boolean.

    Args:
        inverted: Whether the ledger expects the negated agree flag.
            Defaults to LEDGER_AGREE_FLAG_INVERTED.
    """

    def __init__(self, inverted: bool = LEDGER_AGREE_FLAG_INVERTED):
        self.inverted = inverted

    @staticmethod
    def resolve_effective_stance(pool_stance: Stance, choice: Choice) -> Stance:
        return resolve_effective_stance(pool_stance, choice)

    def to_ledger_encoding(self, effective_stance: Stance, pool_stance: Stance) -> bool:
        """
        Produce the boolean passed to the ledger's stake() call.

        Args:
            effective_stance: Staker's absolute direction
            pool_stance: The pool creator's stance

        Returns:
            Ledger position flag
        """
        agrees = effective_stance is pool_stance
        flag = (not agrees) if self.inverted else agrees
        logger.debug(
            f"Encoded stance {effective_stance.value} on {pool_stance.value} pool "
            f"-> ledger flag {flag}"
        )
        return flag

    def from_ledger_encoding(self, flag: bool, pool_stance: Stance) -> Choice:
        """
        Read a stored ledger flag back into the staker's choice.

        Args:
            flag: Boolean stored by the ledger for the stake
            pool_stance: The pool creator's stance

        Returns:
            AGREE or DISAGREE relative to the pool creator
        """
        agrees = (not flag) if self.inverted else bool(flag)
        return Choice.AGREE if agrees else Choice.DISAGREE

    def encode_choice(self, pool_stance: Stance, choice: Choice) -> bool:
        """Shortcut: choice straight to ledger flag."""
        return self.to_ledger_encoding(
            resolve_effective_stance(pool_stance, choice), pool_stance
        )

    def effective_stance_from_ledger(self, flag: bool, pool_stance: Stance) -> Stance:
        return resolve_effective_stance(
            pool_stance, self.from_ledger_encoding(flag, pool_stance)
        )


DEFAULT_CODEC = PositionCodec()
