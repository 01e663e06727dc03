"""
forter/report.py

Tabular views of settlements and reputation for operators.

Frames carry integer amounts in smallest units; formatting for display is
left to the caller (see forter.ledger.units).

Usage:
    from forter.report import settle_many, settlement_frame, summary_frame

    batch = settle_many(RewardCalculator(), [(pool, stakes), ...])
    summary_frame(batch.settlements).to_csv("pools.csv", index=False)
    for pool_id, reason in batch.failures.items():
        print(pool_id, reason)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple

import pandas as pd

from .exceptions import SettlementError
from .models import AnalysisPool, ParticipantStake, ReputationRecord
from .protocol.reputation import sort_analysts
from .protocol.rewards import PoolSettlement, RewardCalculator

logger = logging.getLogger("forter.report")


PAYOUT_COLUMNS = ["pool_id", "role", "participant", "choice", "staked", "payout", "won"]
SUMMARY_COLUMNS = [
    "pool_id", "creator", "creator_was_correct", "total_pool", "protocol_fee",
    "creator_payout", "distributed_to_stakers", "undistributed", "winners", "conserved",
]
LEADERBOARD_COLUMNS = [
    "rank", "participant", "tier", "points", "accuracy", "total_pools",
    "correct_pools", "wrong_pools", "best_streak",
]


@dataclass
class BatchSettlement:
    """Result of settling many pools; a failed pool never hides the others."""
    settlements: List[PoolSettlement] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def settle_many(
    calculator: RewardCalculator,
    pools_with_stakes: Iterable[Tuple[AnalysisPool, Sequence[ParticipantStake]]],
) -> BatchSettlement:
    """
    Settle each pool independently.

    A pool that fails validation is logged, recorded in `failures` with the
    error message, and skipped.
    """
    batch = BatchSettlement()
    for pool, stakes in pools_with_stakes:
        try:
            batch.settlements.append(calculator.settle(pool, stakes))
        except SettlementError as e:
            logger.warning(f"Skipping pool {pool.pool_id}: {e}")
            batch.failures[pool.pool_id] = str(e)
    return batch


def settlement_frame(settlement: PoolSettlement) -> pd.DataFrame:
    """
    One row per payout line of a settlement.

    Rows: the creator, every stake, the protocol fee and any floor dust.
    The payout column sums to the pool total.
    """
    rows = [{
        "pool_id": settlement.pool_id,
        "role": "creator",
        "participant": settlement.creator,
        "choice": None,
        "staked": None,
        "payout": settlement.creator_payout,
        "won": settlement.creator_was_correct,
    }]
    for reward in settlement.staker_rewards:
        rows.append({
            "pool_id": settlement.pool_id,
            "role": "staker",
            "participant": reward.participant,
            "choice": reward.choice.value,
            "staked": reward.amount,
            "payout": reward.reward,
            "won": reward.won,
        })
    rows.append({
        "pool_id": settlement.pool_id,
        "role": "protocol_fee",
        "participant": None,
        "choice": None,
        "staked": None,
        "payout": settlement.protocol_fee,
        "won": None,
    })
    if settlement.undistributed:
        rows.append({
            "pool_id": settlement.pool_id,
            "role": "undistributed",
            "participant": None,
            "choice": None,
            "staked": None,
            "payout": settlement.undistributed,
            "won": None,
        })

    df = pd.DataFrame(rows, columns=PAYOUT_COLUMNS)
    # Object dtype keeps amounts as exact Python ints past int64
    df["payout"] = df["payout"].astype(object)
    return df


def summary_frame(settlements: Iterable[PoolSettlement]) -> pd.DataFrame:
    """One row per settled pool."""
    rows = []
    for s in settlements:
        rows.append({
            "pool_id": s.pool_id,
            "creator": s.creator,
            "creator_was_correct": s.creator_was_correct,
            "total_pool": s.total_pool,
            "protocol_fee": s.protocol_fee,
            "creator_payout": s.creator_payout,
            "distributed_to_stakers": s.distributed_to_stakers,
            "undistributed": s.undistributed,
            "winners": sum(1 for r in s.staker_rewards if r.won),
            "conserved": s.conserved(),
        })
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def leaderboard_frame(records: Iterable[ReputationRecord], by: str = "accuracy") -> pd.DataFrame:
    """Ranked analyst table, ordered as sort_analysts orders it."""
    rows = []
    for rank, record in enumerate(sort_analysts(records, by=by), start=1):
        rows.append({
            "rank": rank,
            "participant": record.participant,
            "tier": record.tier.value,
            "points": record.points,
            "accuracy": record.accuracy,
            "total_pools": record.total_pools,
            "correct_pools": record.correct_pools,
            "wrong_pools": record.wrong_pools,
            "best_streak": record.best_streak,
        })
    return pd.DataFrame(rows, columns=LEADERBOARD_COLUMNS)
