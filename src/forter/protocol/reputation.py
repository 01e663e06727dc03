"""
forter/protocol/reputation.py

Analyst reputation points and tiers.

Reputation comes only from pools a participant CREATED. Staking on someone
else's pool never moves the staker's own points.

Points per resolved pool:
    +100 if the creator was correct, -30 if wrong,
    scaled by a multiplier keyed to the creator's stake on that pool:

    | Creator stake  | Multiplier |
    |----------------|------------|
    | < 100          | 1.0x       |
    | 100 - 499      | 1.5x       |
    | 500 - 999      | 2.0x       |
    | 1,000 - 4,999  | 2.5x       |
    | >= 5,000       | 3.0x       |

Tiers need BOTH the points and the resolved-pool count:

    | Tier    | Points | Pools |
    |---------|--------|-------|
    | Legend  | 5000   | 20    |
    | Master  | 1000   | 10    |
    | Expert  | 500    | 5     |
    | Analyst | 200    | 0     |
    | Novice  | 0      | 0     |

Usage:
    from forter.protocol.reputation import ReputationAccumulator

    accumulator = ReputationAccumulator()
    record = accumulator.accumulate("0xabc", resolved_pools)
    record.tier  # Tier.MASTER
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from ..config import DEFAULT_CONFIG, MULTIPLIER_SCALE, SettlementConfig
from ..exceptions import InvariantViolation
from ..models import AnalysisPool, CategoryStats, PoolState, ReputationRecord, Tier
from .rewards import check_amount

logger = logging.getLogger("forter.protocol.reputation")


# ============================================================================
# SCORING FUNCTIONS
# ============================================================================

def _round_half_away(numerator: int, denominator: int) -> int:
    """Integer division rounding half away from zero."""
    quotient, remainder = divmod(abs(numerator), denominator)
    if remainder * 2 >= denominator:
        quotient += 1
    return quotient if numerator >= 0 else -quotient


def stake_multiplier(creator_stake: int, config: SettlementConfig = DEFAULT_CONFIG) -> int:
    """
    Stake multiplier in tenths (15 means 1.5x).

    Thresholds are compared against creator_stake as stored, multiplied by
    config.stake_multiplier_unit (1 unless a deployment scales them).

    Examples:
        50   -> 10
        150  -> 15
        5000 -> 30
    """
    for min_stake, multiplier in config.stake_multipliers:
        if creator_stake >= min_stake * config.stake_multiplier_unit:
            return multiplier
    return MULTIPLIER_SCALE


def points_for_pool(
    creator_stake: int,
    creator_correct: bool,
    config: SettlementConfig = DEFAULT_CONFIG,
) -> int:
    """round(base * multiplier) for one resolved pool."""
    base = config.points_correct if creator_correct else config.points_wrong
    return _round_half_away(base * stake_multiplier(creator_stake, config), MULTIPLIER_SCALE)


def calculate_tier(
    points: int,
    pool_count: int,
    config: SettlementConfig = DEFAULT_CONFIG,
) -> Tier:
    """
    Tier for a (points, resolved pool count) pair.

    Highest tier first; a tier applies only when both gates hold.
    Negative points are always Novice.
    """
    if points < 0:
        return Tier.NOVICE
    for name, min_points, min_pools in config.tier_thresholds:
        if points >= min_points and pool_count >= min_pools:
            return Tier(name)
    return Tier.NOVICE


def calculate_accuracy(correct_pools: int, wrong_pools: int) -> int:
    """Percentage of correct pools, rounded half up; 0 with no resolved pools."""
    resolved = correct_pools + wrong_pools
    if resolved <= 0:
        return 0
    return (correct_pools * 200 + resolved) // (resolved * 2)


# ============================================================================
# ACCUMULATOR
# ============================================================================

class ReputationAccumulator:
    """
    Folds a creator's resolved pools into a ReputationRecord.

    Points and tier depend only on the set of pools. Streaks follow
    resolution order.
    """

    def __init__(self, config: Optional[SettlementConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def points_for_pool(self, pool: AnalysisPool) -> int:
        self._check_resolved(pool)
        check_amount("creator_stake", pool.creator_stake, self.config.max_amount)
        return points_for_pool(pool.creator_stake, bool(pool.creator_was_correct), self.config)

    def tier(self, points: int, pool_count: int) -> Tier:
        return calculate_tier(points, pool_count, self.config)

    @staticmethod
    def _check_resolved(pool: AnalysisPool) -> None:
        if pool.state is not PoolState.RESOLVED or pool.creator_was_correct is None:
            raise InvariantViolation(f"pool {pool.pool_id} is not resolved")

    def apply(self, record: ReputationRecord, pool: AnalysisPool) -> ReputationRecord:
        """
        Record one newly resolved pool.

        Args:
            record: Current record (ReputationRecord(participant) for a new one)
            pool: Resolved pool created by record.participant

        Returns:
            A new ReputationRecord; the input is left untouched
        """
        if pool.creator != record.participant:
            raise InvariantViolation(
                f"pool {pool.pool_id} was created by {pool.creator}, "
                f"not {record.participant}"
            )
        delta = self.points_for_pool(pool)
        correct = bool(pool.creator_was_correct)

        points = record.points + delta
        total = record.total_pools + 1
        correct_pools = record.correct_pools + (1 if correct else 0)
        wrong_pools = record.wrong_pools + (0 if correct else 1)
        current_streak = record.current_streak + 1 if correct else 0

        category_stats = dict(record.category_stats)
        if pool.category:
            stats = category_stats.get(pool.category, CategoryStats())
            cat_total = stats.total + 1
            cat_correct = stats.correct + (1 if correct else 0)
            category_stats[pool.category] = CategoryStats(
                total=cat_total,
                correct=cat_correct,
                accuracy=calculate_accuracy(cat_correct, cat_total - cat_correct),
            )

        resolved_at = pool.resolved_at
        member_since = record.member_since
        last_active = record.last_active
        if resolved_at is not None:
            member_since = resolved_at if member_since is None else min(member_since, resolved_at)
            last_active = resolved_at if last_active is None else max(last_active, resolved_at)

        logger.debug(
            f"Pool {pool.pool_id} scored {delta:+d} for {record.participant} "
            f"(stake={pool.creator_stake}, correct={correct})"
        )

        return replace(
            record,
            points=points,
            total_pools=total,
            correct_pools=correct_pools,
            wrong_pools=wrong_pools,
            tier=self.tier(points, total),
            accuracy=calculate_accuracy(correct_pools, wrong_pools),
            current_streak=current_streak,
            best_streak=max(record.best_streak, current_streak),
            category_stats=category_stats,
            member_since=member_since,
            last_active=last_active,
        )

    def accumulate(
        self,
        participant: str,
        pools: Iterable[AnalysisPool],
    ) -> ReputationRecord:
        """
        Build a participant's record from their pool history.

        Pools created by others and pools still active are skipped, so a
        mixed history can be passed straight in.
        """
        own = [
            p for p in pools
            if p.creator == participant and p.state is PoolState.RESOLVED
        ]
        # Stable resolution order keeps streaks reproducible
        own.sort(key=lambda p: (p.resolved_at or 0, p.pool_id))

        record = ReputationRecord(participant=participant)
        for pool in own:
            record = self.apply(record, pool)
        return record

    def progress_to_next_tier(self, record: ReputationRecord) -> Dict[str, Any]:
        """Points and pools still needed for the next tier up."""
        tiers = list(Tier)
        idx = tiers.index(record.tier)
        if idx == len(tiers) - 1:
            return {'next_tier': None, 'points_needed': 0, 'pools_needed': 0}

        next_tier = tiers[idx + 1]
        gates = {name: (pts, pools) for name, pts, pools in self.config.tier_thresholds}
        min_points, min_pools = gates[next_tier.value]
        return {
            'next_tier': next_tier.value,
            'points_needed': max(0, min_points - record.points),
            'pools_needed': max(0, min_pools - record.total_pools),
        }


# ============================================================================
# LEADERBOARD
# ============================================================================

SORT_KEYS = ('accuracy', 'points', 'total_pools', 'recent')


def sort_analysts(records: Iterable[ReputationRecord], by: str = 'accuracy') -> List[ReputationRecord]:
    """
    Order analysts for a leaderboard.

    'accuracy' ranks by tier first, then accuracy within a tier.
    """
    if by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key '{by}', expected one of {SORT_KEYS}")

    ordered = sorted(records, key=lambda r: r.participant)
    if by == 'accuracy':
        ordered.sort(key=lambda r: (r.tier.ordinal, r.accuracy), reverse=True)
    elif by == 'points':
        ordered.sort(key=lambda r: r.points, reverse=True)
    elif by == 'total_pools':
        ordered.sort(key=lambda r: r.total_pools, reverse=True)
    else:
        ordered.sort(key=lambda r: r.member_since or 0, reverse=True)
    return ordered


def global_stats(records: Iterable[ReputationRecord]) -> Dict[str, Any]:
    """Aggregate figures across all analysts."""
    records = list(records)
    distribution = {tier.value: 0 for tier in reversed(list(Tier))}
    for record in records:
        distribution[record.tier.value] += 1

    if not records:
        return {
            'total_analysts': 0,
            'avg_accuracy': 0.0,
            'total_pools_created': 0,
            'tier_distribution': distribution,
        }

    return {
        'total_analysts': len(records),
        'avg_accuracy': round(sum(r.accuracy for r in records) / len(records), 2),
        'total_pools_created': sum(r.total_pools for r in records),
        'tier_distribution': distribution,
    }
