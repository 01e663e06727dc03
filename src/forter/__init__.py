"""
forter - Settlement and reputation engine for Forter prediction pools

Reproduces the ledger's settlement arithmetic exactly:
- Position codec between pool stance, staker choice and the ledger flag
- Reward distribution for resolved analysis pools (2% fee, 20% creator share)
- Stake-weighted reputation points and tiers for pool creators
- Merkle proofs so single payouts can be audited against a settlement root

Usage:
    from forter import RewardCalculator, SettlementView, LedgerIndex

    settlement = RewardCalculator().settle(pool, stakes)
    assert settlement.conserved()

    view = SettlementView(LedgerIndex.build(pools=pools, stakes=stakes))
    record = view.summarize("0xabc")

CLI Usage:
    forter settle snapshot.json --csv payouts.csv
    forter preview snapshot.json --choice agree --amount 50
    forter reputation history.json 0xabc
"""

from .config import SettlementConfig, DEFAULT_CONFIG
from .exceptions import (
    SettlementError,
    InvariantViolation,
    AmountOverflow,
    LedgerDecodeError,
)
from .models import (
    Stance,
    Choice,
    PoolState,
    ClaimState,
    Outcome,
    Tier,
    Claim,
    AnalysisPool,
    ParticipantStake,
    ReputationRecord,
    CategoryStats,
)
from .protocol import (
    PositionCodec,
    RewardCalculator,
    PoolSettlement,
    RewardPreview,
    ReputationAccumulator,
    SettlementView,
    LedgerIndex,
    StakePreview,
)

__version__ = "0.1.0"

__all__ = [
    "SettlementConfig",
    "DEFAULT_CONFIG",
    "SettlementError",
    "InvariantViolation",
    "AmountOverflow",
    "LedgerDecodeError",
    "Stance",
    "Choice",
    "PoolState",
    "ClaimState",
    "Outcome",
    "Tier",
    "Claim",
    "AnalysisPool",
    "ParticipantStake",
    "ReputationRecord",
    "CategoryStats",
    "PositionCodec",
    "RewardCalculator",
    "PoolSettlement",
    "RewardPreview",
    "ReputationAccumulator",
    "SettlementView",
    "LedgerIndex",
    "StakePreview",
]
