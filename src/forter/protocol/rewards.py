"""
forter/protocol/rewards.py

Reward settlement for resolved analysis pools.

Mirrors the ledger's settlement arithmetic exactly. All amounts are integers
in the token's smallest unit; every division floors.

Distribution for a resolved pool:
    total_pool    = creator_stake + agree_total + disagree_total
    protocol_fee  = total_pool * 200 // 10000            (2%)
    distributable = total_pool - protocol_fee

    creator correct:
        creator_reward = distributable * 20 // 100
        staker_pool    = distributable - creator_reward   (remainder, not 80%)
        winners        = AGREE stakers
    creator wrong:
        creator_reward = 0
        staker_pool    = distributable
        winners        = DISAGREE stakers

    each winner gets staker_pool * stake // winning_total, losers get 0.

If nobody sits on the winning side the staker pool accrues to the creator.
Floor dust from the per-staker division is reported as `undistributed`, so
    creator_payout + sum(staker rewards) + protocol_fee + undistributed
always equals total_pool.

Usage:
    from forter.protocol.rewards import RewardCalculator

    calculator = RewardCalculator()
    settlement = calculator.settle(pool, stakes)
    assert settlement.conserved()

    preview = calculator.preview(pool, Choice.AGREE, 50_000_000, creator_correct=True)
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import (
    BPS_DENOMINATOR,
    DEFAULT_CONFIG,
    MAX_UINT256,
    PERCENT_DENOMINATOR,
    SettlementConfig,
)
from ..exceptions import AmountOverflow, InvariantViolation
from ..models import AnalysisPool, Choice, ParticipantStake, PoolState

logger = logging.getLogger("forter.protocol.rewards")


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def check_amount(name: str, value: Any, max_amount: int = MAX_UINT256) -> int:
    """Reject non-integers, negatives and values beyond the ledger range."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvariantViolation(f"{name} must be an integer amount, got {value!r}")
    if value < 0:
        raise InvariantViolation(f"{name} is negative: {value}")
    if value > max_amount:
        raise AmountOverflow(f"{name} exceeds supported range: {value}")
    return value


def _checked_mul(a: int, b: int, max_amount: int = MAX_UINT256) -> int:
    product = a * b
    if product > max_amount:
        raise AmountOverflow(f"{a} * {b} exceeds supported range")
    return product


def calculate_protocol_fee(
    total_pool: int,
    fee_bps: int = DEFAULT_CONFIG.protocol_fee_bps,
    max_amount: int = MAX_UINT256,
) -> int:
    """
    Protocol fee on the whole pool, floored to the smallest unit.

    Examples:
        4200 -> 84
        49   -> 0  (the floored remainder stays distributable)
    """
    check_amount("total_pool", total_pool, max_amount)
    return _checked_mul(total_pool, fee_bps, max_amount) // BPS_DENOMINATOR


def split_distributable(
    distributable: int,
    creator_correct: bool,
    creator_share_percent: int = DEFAULT_CONFIG.creator_share_percent,
    max_amount: int = MAX_UINT256,
) -> Tuple[int, int]:
    """
    Split the post-fee pool between creator and stakers.

    Returns:
        (creator_reward, staker_pool)
    """
    check_amount("distributable", distributable, max_amount)
    if not creator_correct:
        return 0, distributable
    creator_reward = (
        _checked_mul(distributable, creator_share_percent, max_amount) // PERCENT_DENOMINATOR
    )
    return creator_reward, distributable - creator_reward


def proportional_share(
    staker_pool: int,
    stake: int,
    winning_total: int,
    max_amount: int = MAX_UINT256,
) -> int:
    """
    One winner's floored share of the staker pool.

    Callers must not pass a zero winning_total; the empty winning side is a
    policy decision handled by RewardCalculator.
    """
    if winning_total <= 0:
        raise InvariantViolation("winning side total must be positive to share a pool")
    if stake > winning_total:
        raise InvariantViolation(
            f"stake {stake} larger than its side total {winning_total}"
        )
    return _checked_mul(staker_pool, stake, max_amount) // winning_total


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class StakerReward:
    """Settlement of a single stake."""
    participant: str
    pool_id: str
    choice: Choice
    amount: int
    reward: int
    won: bool

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['choice'] = self.choice.value
        return result


@dataclass
class PoolSettlement:
    """Complete settlement of one resolved pool."""
    pool_id: str
    creator: str
    creator_was_correct: bool
    total_pool: int
    protocol_fee: int
    distributable: int
    creator_reward: int           # the creator's 20% share (0 if wrong)
    creator_accrual: int          # unclaimed staker pool handed to the creator
    staker_pool: int
    winning_choice: Choice
    winning_total: int
    staker_rewards: List[StakerReward] = field(default_factory=list)
    distributed_to_stakers: int = 0
    undistributed: int = 0

    @property
    def creator_payout(self) -> int:
        """Everything the creator receives from the distribution."""
        return self.creator_reward + self.creator_accrual

    def conserved(self) -> bool:
        """Every unit of the pool is accounted for, exactly."""
        return (
            self.creator_payout
            + self.distributed_to_stakers
            + self.protocol_fee
            + self.undistributed
        ) == self.total_pool

    def reward_for(self, participant: str) -> int:
        """Sum of staker rewards owed to a participant in this pool."""
        return sum(r.reward for r in self.staker_rewards if r.participant == participant)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pool_id': self.pool_id,
            'creator': self.creator,
            'creator_was_correct': self.creator_was_correct,
            'total_pool': self.total_pool,
            'protocol_fee': self.protocol_fee,
            'distributable': self.distributable,
            'creator_reward': self.creator_reward,
            'creator_accrual': self.creator_accrual,
            'creator_payout': self.creator_payout,
            'staker_pool': self.staker_pool,
            'winning_choice': self.winning_choice.value,
            'winning_total': self.winning_total,
            'staker_rewards': [r.to_dict() for r in self.staker_rewards],
            'distributed_to_stakers': self.distributed_to_stakers,
            'undistributed': self.undistributed,
        }


@dataclass
class RewardPreview:
    """
    Non-binding estimate for a stake not yet placed on an active pool.

    Computed from current totals and a hypothetical outcome; the pool can
    still move before resolution.
    """
    pool_id: str
    choice: Choice
    amount: int
    creator_correct: bool
    reward: int
    protocol_fee: int
    creator_reward: int
    staker_pool: int
    winning_total: int
    binding: bool = False

    @property
    def wins(self) -> bool:
        return self.reward > 0

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['choice'] = self.choice.value
        return result


# ============================================================================
# REWARD CALCULATOR
# ============================================================================

class RewardCalculator:
    """
    Computes exact settlement amounts for analysis pools.

    Holds no state beyond its configuration; calling any method twice with
    the same inputs returns equal results.
    """

    def __init__(self, config: Optional[SettlementConfig] = None):
        """
        Initialize RewardCalculator.

        Args:
            config: Ledger constants (defaults to DEFAULT_CONFIG)
        """
        self.config = config or DEFAULT_CONFIG

    # =========== VALIDATION ===========

    def validate_pool(self, pool: AnalysisPool) -> int:
        """
        Check a pool snapshot against the ledger invariants.

        Returns:
            The pool total
        """
        limit = self.config.max_amount
        creator_stake = check_amount("creator_stake", pool.creator_stake, limit)
        agree_total = check_amount("agree_total", pool.agree_total, limit)
        disagree_total = check_amount("disagree_total", pool.disagree_total, limit)
        recorded = check_amount("total_staked", pool.total_staked, limit)

        total = creator_stake + agree_total + disagree_total
        if total > limit:
            raise AmountOverflow(f"pool {pool.pool_id} total exceeds supported range")
        if total != recorded:
            logger.warning(
                f"Pool {pool.pool_id} totals disagree: components sum to {total}, "
                f"ledger recorded {recorded}"
            )
            raise InvariantViolation(
                f"pool {pool.pool_id}: creator_stake + agree_total + disagree_total "
                f"= {total} but total_staked = {recorded}"
            )
        return total

    def _validate_stakes(
        self,
        pool: AnalysisPool,
        stakes: Sequence[ParticipantStake],
    ) -> None:
        sums = {Choice.AGREE: 0, Choice.DISAGREE: 0}
        for stake in stakes:
            if stake.pool_id != pool.pool_id:
                raise InvariantViolation(
                    f"stake by {stake.participant} belongs to pool {stake.pool_id}, "
                    f"not {pool.pool_id}"
                )
            check_amount("stake amount", stake.amount, self.config.max_amount)
            if stake.amount == 0:
                raise InvariantViolation(f"stake by {stake.participant} has zero amount")
            sums[stake.choice] += stake.amount

        for choice in (Choice.AGREE, Choice.DISAGREE):
            if sums[choice] != pool.side_total(choice):
                logger.warning(
                    f"Pool {pool.pool_id} {choice.value} stakes sum to {sums[choice]}, "
                    f"pool records {pool.side_total(choice)}"
                )
                raise InvariantViolation(
                    f"pool {pool.pool_id}: {choice.value} stakes sum to {sums[choice]} "
                    f"but pool records {pool.side_total(choice)}"
                )

    # =========== DISTRIBUTION ===========

    def _split(self, total_pool: int, creator_correct: bool) -> Tuple[int, int, int, int]:
        """Returns (protocol_fee, distributable, creator_reward, staker_pool)."""
        limit = self.config.max_amount
        fee = calculate_protocol_fee(total_pool, self.config.protocol_fee_bps, limit)
        distributable = total_pool - fee
        creator_reward, staker_pool = split_distributable(
            distributable, creator_correct, self.config.creator_share_percent, limit
        )
        return fee, distributable, creator_reward, staker_pool

    @staticmethod
    def winning_choice(creator_correct: bool) -> Choice:
        """Agreeing stakers win with a correct creator, disagreeing ones otherwise."""
        return Choice.AGREE if creator_correct else Choice.DISAGREE

    def settle(
        self,
        pool: AnalysisPool,
        stakes: Sequence[ParticipantStake] = (),
    ) -> PoolSettlement:
        """
        Settle a resolved pool.

        Args:
            pool: Resolved pool snapshot
            stakes: Every participant stake on the pool; their per-side sums
                must match the pool totals

        Returns:
            PoolSettlement with per-stake rewards

        Raises:
            InvariantViolation: pool unresolved or inconsistent
            AmountOverflow: amounts beyond the ledger range
        """
        if pool.state is not PoolState.RESOLVED or pool.creator_was_correct is None:
            raise InvariantViolation(f"pool {pool.pool_id} is not resolved")

        total_pool = self.validate_pool(pool)
        self._validate_stakes(pool, stakes)

        correct = bool(pool.creator_was_correct)
        fee, distributable, creator_reward, staker_pool = self._split(total_pool, correct)
        winner = self.winning_choice(correct)
        winning_total = pool.side_total(winner)

        staker_rewards: List[StakerReward] = []
        distributed = 0
        for stake in stakes:
            won = stake.choice is winner
            reward = 0
            if won:
                reward = proportional_share(
                    staker_pool, stake.amount, winning_total, self.config.max_amount
                )
            distributed += reward
            staker_rewards.append(StakerReward(
                participant=stake.participant,
                pool_id=pool.pool_id,
                choice=stake.choice,
                amount=stake.amount,
                reward=reward,
                won=won,
            ))

        creator_accrual = 0
        undistributed = staker_pool - distributed
        if winning_total == 0:
            if self.config.unclaimed_pool_accrues_to_creator:
                creator_accrual = staker_pool
                undistributed = 0
            logger.debug(
                f"Pool {pool.pool_id} has no {winner.value} stakers; "
                f"staker pool {staker_pool} accrued to creator: {creator_accrual > 0}"
            )

        settlement = PoolSettlement(
            pool_id=pool.pool_id,
            creator=pool.creator,
            creator_was_correct=correct,
            total_pool=total_pool,
            protocol_fee=fee,
            distributable=distributable,
            creator_reward=creator_reward,
            creator_accrual=creator_accrual,
            staker_pool=staker_pool,
            winning_choice=winner,
            winning_total=winning_total,
            staker_rewards=staker_rewards,
            distributed_to_stakers=distributed,
            undistributed=undistributed,
        )

        logger.debug(
            f"Settled pool {pool.pool_id}: total={total_pool} fee={fee} "
            f"creator={settlement.creator_payout} stakers={distributed} "
            f"undistributed={undistributed}"
        )
        return settlement

    def reward_for_stake(self, pool: AnalysisPool, stake: ParticipantStake) -> int:
        """
        Reward owed to a single stake on a resolved pool.

        Uses the pool's aggregate totals only, so the full stake list is
        not needed. Losing stakes return 0; the stake itself is forfeited.
        """
        if pool.state is not PoolState.RESOLVED or pool.creator_was_correct is None:
            raise InvariantViolation(f"pool {pool.pool_id} is not resolved")
        if stake.pool_id != pool.pool_id:
            raise InvariantViolation(
                f"stake belongs to pool {stake.pool_id}, not {pool.pool_id}"
            )
        check_amount("stake amount", stake.amount, self.config.max_amount)

        total_pool = self.validate_pool(pool)
        correct = bool(pool.creator_was_correct)
        winner = self.winning_choice(correct)
        if stake.choice is not winner:
            return 0

        _, _, _, staker_pool = self._split(total_pool, correct)
        return proportional_share(
            staker_pool, stake.amount, pool.side_total(winner), self.config.max_amount
        )

    def preview(
        self,
        pool: AnalysisPool,
        choice: Choice,
        amount: int,
        creator_correct: bool,
    ) -> RewardPreview:
        """
        Estimate what a new stake would receive under a hypothetical outcome.

        The stake is added to its side and to the pool total before the
        formulas run. The result is never binding.

        Args:
            pool: Active pool snapshot with current totals
            choice: AGREE or DISAGREE with the pool creator
            amount: Hypothetical stake in smallest units
            creator_correct: Hypothetical outcome

        Returns:
            RewardPreview
        """
        if pool.state is not PoolState.ACTIVE:
            raise InvariantViolation(
                f"pool {pool.pool_id} is resolved; previews are only for active pools"
            )
        check_amount("stake amount", amount, self.config.max_amount)
        if amount < self.config.min_stake_units or amount == 0:
            raise InvariantViolation(
                f"stake {amount} below minimum of {self.config.min_stake} tokens"
            )

        total_pool = self.validate_pool(pool) + amount
        if total_pool > self.config.max_amount:
            raise AmountOverflow("pool total with hypothetical stake exceeds supported range")

        fee, _, creator_reward, staker_pool = self._split(total_pool, creator_correct)
        winner = self.winning_choice(creator_correct)
        winning_total = pool.side_total(winner)
        if choice is winner:
            winning_total += amount

        reward = 0
        if choice is winner:
            reward = proportional_share(
                staker_pool, amount, winning_total, self.config.max_amount
            )

        return RewardPreview(
            pool_id=pool.pool_id,
            choice=choice,
            amount=amount,
            creator_correct=creator_correct,
            reward=reward,
            protocol_fee=fee,
            creator_reward=creator_reward,
            staker_pool=staker_pool,
            winning_total=winning_total,
        )


# ============================================================================
# VERIFICATION UTILITIES
# ============================================================================

def verify_payout(
    pool: AnalysisPool,
    stakes: Sequence[ParticipantStake],
    participant: str,
    claimed_amount: int,
    calculator: Optional[RewardCalculator] = None,
) -> bool:
    """
    Check an amount the ledger paid a staker against a recomputation.

    Args:
        pool: Resolved pool snapshot
        stakes: All stakes on the pool
        participant: Staker whose payout is audited
        claimed_amount: Amount the ledger reports as paid
        calculator: Optional calculator with custom config

    Returns:
        True if the amounts match exactly
    """
    calculator = calculator or RewardCalculator()
    settlement = calculator.settle(pool, stakes)
    expected = settlement.reward_for(participant)
    if participant == pool.creator:
        expected += settlement.creator_payout
    return expected == claimed_amount
