"""
forter/protocol/settlement.py

Read-side facade over positions, rewards and reputation.

Profile pages and pool cards ask the same handful of questions: what would
this stake earn, what did that stake earn, how is this analyst doing. The
SettlementView answers them from snapshots held in a LedgerIndex the caller
builds once and passes in; nothing is looked up from shared state.

Usage:
    from forter.protocol.settlement import LedgerIndex, SettlementView

    index = LedgerIndex.build(pools=pools, claims=claims, stakes=stakes)
    view = SettlementView(index)

    preview = view.preview_stake(pool, Choice.AGREE, 50_000_000)
    record = view.summarize("0xabc")
    stats = view.staking_stats("0xdef")
"""

import logging
from dataclasses import dataclass, field, asdict
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..config import DEFAULT_CONFIG, SettlementConfig
from ..exceptions import InvariantViolation
from ..models import (
    AnalysisPool,
    Choice,
    Claim,
    ParticipantStake,
    PoolState,
    ReputationRecord,
    Stance,
)
from .positions import DEFAULT_CODEC, PositionCodec, resolve_effective_stance
from .reputation import ReputationAccumulator, calculate_accuracy
from .rewards import PoolSettlement, RewardCalculator

logger = logging.getLogger("forter.protocol.settlement")


# ============================================================================
# LEDGER INDEX
# ============================================================================

@dataclass(frozen=True, eq=False)
class LedgerIndex:
    """
    Snapshot of pools, claims and stakes keyed for lookup.

    Built once by the caller from a consistent ledger read. The lookup maps
    are read-only; an index compares and hashes by identity.
    """
    pools: Mapping[str, AnalysisPool] = field(default_factory=dict)
    claims: Mapping[str, Claim] = field(default_factory=dict)
    stakes: Mapping[str, Tuple[ParticipantStake, ...]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'pools', MappingProxyType(dict(self.pools)))
        object.__setattr__(self, 'claims', MappingProxyType(dict(self.claims)))
        object.__setattr__(self, 'stakes', MappingProxyType(
            {pool_id: tuple(items) for pool_id, items in self.stakes.items()}
        ))

    @classmethod
    def build(
        cls,
        pools: Iterable[AnalysisPool] = (),
        claims: Iterable[Claim] = (),
        stakes: Iterable[ParticipantStake] = (),
    ) -> "LedgerIndex":
        by_pool: Dict[str, List[ParticipantStake]] = {}
        for stake in stakes:
            by_pool.setdefault(stake.pool_id, []).append(stake)
        return cls(
            pools={p.pool_id: p for p in pools},
            claims={c.claim_id: c for c in claims},
            stakes={pid: tuple(items) for pid, items in by_pool.items()},
        )

    def pool(self, pool_id: str) -> AnalysisPool:
        try:
            return self.pools[pool_id]
        except KeyError:
            raise KeyError(f"pool {pool_id} is not in the index") from None

    def stakes_for(self, pool_id: str) -> Tuple[ParticipantStake, ...]:
        return self.stakes.get(pool_id, ())

    def stakes_by(self, participant: str) -> List[ParticipantStake]:
        return [
            s for pool_stakes in self.stakes.values()
            for s in pool_stakes if s.participant == participant
        ]


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass
class StakePreview:
    """
    Best case and worst case of a stake not yet placed.

    max_reward is the payout under the favorable outcome; max_loss is the
    whole stake, forfeited under the other one.
    """
    pool_id: str
    choice: Choice
    amount: int
    max_reward: int
    max_loss: int
    favorable_outcome: bool   # creator_correct value under which the stake wins
    break_even: bool          # max_reward returns at least the stake
    binding: bool = False

    @property
    def net_gain(self) -> int:
        return self.max_reward - self.amount

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['choice'] = self.choice.value
        result['net_gain'] = self.net_gain
        return result


@dataclass
class StakeOutcome:
    """What one stake received, or that it is still open."""
    pool_id: str
    participant: str
    choice: Choice
    amount: int
    effective_stance: Stance
    ledger_flag: bool
    status: str               # 'active', 'won' or 'lost'
    reward: int = 0

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['choice'] = self.choice.value
        result['effective_stance'] = self.effective_stance.value
        return result


@dataclass
class StakingStats:
    """Staking track record. Informational only; tiers ignore it."""
    participant: str
    total_stakes: int = 0
    won_stakes: int = 0
    lost_stakes: int = 0
    active_stakes: int = 0
    win_rate: int = 0
    total_staked: int = 0
    total_earnings: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================================
# SETTLEMENT VIEW
# ============================================================================

class SettlementView:
    """
    Stateless composition of the codec, calculator and accumulator.

    Args:
        index: Ledger snapshot to answer lookups from
        config: Ledger constants (defaults to DEFAULT_CONFIG)
        codec: Position codec (defaults to DEFAULT_CODEC)
    """

    def __init__(
        self,
        index: Optional[LedgerIndex] = None,
        config: Optional[SettlementConfig] = None,
        codec: Optional[PositionCodec] = None,
    ):
        self.index = index or LedgerIndex()
        self.config = config or DEFAULT_CONFIG
        self.codec = codec or DEFAULT_CODEC
        self.calculator = RewardCalculator(self.config)
        self.accumulator = ReputationAccumulator(self.config)

    # =========== PREVIEWS ===========

    def preview_stake(
        self,
        pool: AnalysisPool,
        choice: Choice,
        amount: int,
    ) -> StakePreview:
        """
        Preview a stake under both outcomes.

        Args:
            pool: Active pool snapshot
            choice: AGREE or DISAGREE with the pool creator
            amount: Stake in smallest units

        Returns:
            StakePreview with the favorable payout and the full-loss downside
        """
        if_correct = self.calculator.preview(pool, choice, amount, creator_correct=True)
        if_wrong = self.calculator.preview(pool, choice, amount, creator_correct=False)
        best = if_correct if if_correct.reward >= if_wrong.reward else if_wrong

        preview = StakePreview(
            pool_id=pool.pool_id,
            choice=choice,
            amount=amount,
            max_reward=best.reward,
            max_loss=amount,
            favorable_outcome=best.creator_correct,
            break_even=best.reward >= amount,
        )
        logger.debug(
            f"Preview {choice.value} {amount} on pool {pool.pool_id}: "
            f"up to {preview.max_reward}, down {preview.max_loss}"
        )
        return preview

    # =========== REPUTATION ===========

    def summarize(
        self,
        participant: str,
        history: Optional[Iterable[AnalysisPool]] = None,
    ) -> ReputationRecord:
        """
        Fold a participant's resolved pools into their reputation record.

        Args:
            participant: Analyst address
            history: Pools to consider; defaults to every pool in the index

        Returns:
            ReputationRecord (identical for identical histories)
        """
        pools = self.index.pools.values() if history is None else history
        return self.accumulator.accumulate(participant, pools)

    # =========== STAKES ===========

    def stake_outcome(self, stake: ParticipantStake) -> StakeOutcome:
        """Settle a single stake against its pool in the index."""
        pool = self.index.pool(stake.pool_id)
        effective = resolve_effective_stance(pool.stance, stake.choice)
        outcome = StakeOutcome(
            pool_id=stake.pool_id,
            participant=stake.participant,
            choice=stake.choice,
            amount=stake.amount,
            effective_stance=effective,
            ledger_flag=self.codec.to_ledger_encoding(effective, pool.stance),
            status='active',
        )
        if pool.state is PoolState.ACTIVE:
            return outcome

        outcome.reward = self.calculator.reward_for_stake(pool, stake)
        winner = self.calculator.winning_choice(bool(pool.creator_was_correct))
        outcome.status = 'won' if stake.choice is winner else 'lost'
        return outcome

    def pool_settlement(self, pool_id: str) -> PoolSettlement:
        """Full settlement of an indexed pool using its indexed stakes."""
        pool = self.index.pool(pool_id)
        return self.calculator.settle(pool, self.index.stakes_for(pool_id))

    def staking_stats(
        self,
        participant: str,
        stakes: Optional[Iterable[ParticipantStake]] = None,
    ) -> StakingStats:
        """
        Aggregate a participant's staking record.

        Args:
            participant: Staker address
            stakes: Stakes to count; defaults to the participant's indexed stakes
        """
        if stakes is None:
            stakes = self.index.stakes_by(participant)

        stats = StakingStats(participant=participant)
        for stake in stakes:
            if stake.participant != participant:
                raise InvariantViolation(
                    f"stake on pool {stake.pool_id} belongs to {stake.participant}"
                )
            outcome = self.stake_outcome(stake)
            stats.total_stakes += 1
            stats.total_staked += stake.amount
            if outcome.status == 'won':
                stats.won_stakes += 1
                stats.total_earnings += outcome.reward
            elif outcome.status == 'lost':
                stats.lost_stakes += 1
            else:
                stats.active_stakes += 1

        stats.win_rate = calculate_accuracy(stats.won_stakes, stats.lost_stakes)
        return stats

    def claim_for_pool(self, pool_id: str) -> Optional[Claim]:
        """The claim a pool analyses, if the index holds it."""
        pool = self.index.pool(pool_id)
        return self.index.claims.get(pool.claim_id)
