"""
forter/protocol/

Settlement protocol: position encoding, reward distribution, reputation.
"""

from .positions import (
    PositionCodec,
    DEFAULT_CODEC,
    resolve_effective_stance,
    choice_for_stance,
    stance_to_ledger,
    stance_from_ledger,
)
from .rewards import (
    RewardCalculator,
    PoolSettlement,
    StakerReward,
    RewardPreview,
    calculate_protocol_fee,
    split_distributable,
    proportional_share,
    verify_payout,
)
from .reputation import (
    ReputationAccumulator,
    stake_multiplier,
    points_for_pool,
    calculate_tier,
    calculate_accuracy,
    sort_analysts,
    global_stats,
)
from .settlement import (
    SettlementView,
    LedgerIndex,
    StakePreview,
    StakeOutcome,
    StakingStats,
)

__all__ = [
    "PositionCodec",
    "DEFAULT_CODEC",
    "resolve_effective_stance",
    "choice_for_stance",
    "stance_to_ledger",
    "stance_from_ledger",
    "RewardCalculator",
    "PoolSettlement",
    "StakerReward",
    "RewardPreview",
    "calculate_protocol_fee",
    "split_distributable",
    "proportional_share",
    "verify_payout",
    "ReputationAccumulator",
    "stake_multiplier",
    "points_for_pool",
    "calculate_tier",
    "calculate_accuracy",
    "sort_analysts",
    "global_stats",
    "SettlementView",
    "LedgerIndex",
    "StakePreview",
    "StakeOutcome",
    "StakingStats",
]
