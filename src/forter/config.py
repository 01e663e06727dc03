"""
forter/config.py

Settlement and reputation constants.

Every value here mirrors a constant hard-coded in the Forter ledger
contracts. Changing one without the matching contract upgrade makes previews
and audits disagree with settled amounts.
"""

from dataclasses import dataclass, field
from typing import Tuple


# ============================================================================
# CURRENCY
# ============================================================================

# Stakes are settled in USDC, 6 decimal places
USDC_DECIMALS = 6
USDC_UNIT = 10 ** USDC_DECIMALS

# Ledger amounts are uint256
MAX_UINT256 = 2 ** 256 - 1

# Minimum stake accepted by the ledger (whole tokens)
MIN_STAKE = 10


# ============================================================================
# FEES AND SPLITS
# ============================================================================

BPS_DENOMINATOR = 10_000
PROTOCOL_FEE_BPS = 200          # 2% of the whole pool

PERCENT_DENOMINATOR = 100
CREATOR_SHARE_PERCENT = 20      # of the post-fee pool, only if creator correct

# When no staker sits on the winning side the staker pool goes to the creator.
# The ledger has no other sink for it.
UNCLAIMED_POOL_ACCRUES_TO_CREATOR = True


# ============================================================================
# LEDGER ENCODING
# ============================================================================

# The ledger's stake(newsId, poolId, amount, position) entry point expects the
# NEGATION of "participant agrees with the pool creator".
LEDGER_AGREE_FLAG_INVERTED = True


# ============================================================================
# REPUTATION POINTS
# ============================================================================

POINTS_CORRECT = 100
POINTS_WRONG = -30

# (minimum creator stake, multiplier in tenths), evaluated highest first.
# Thresholds compare against the raw creator_stake amount.
STAKE_MULTIPLIERS: Tuple[Tuple[int, int], ...] = (
    (5000, 30),     # 3.0x
    (1000, 25),     # 2.5x
    (500, 20),      # 2.0x
    (100, 15),      # 1.5x
    (0, 10),        # 1.0x
)
MULTIPLIER_SCALE = 10


# ============================================================================
# TIERS
# ============================================================================

# (tier name, min points, min resolved pools), highest first
TIER_THRESHOLDS: Tuple[Tuple[str, int, int], ...] = (
    ("Legend", 5000, 20),
    ("Master", 1000, 10),
    ("Expert", 500, 5),
    ("Analyst", 200, 0),
    ("Novice", 0, 0),
)


@dataclass(frozen=True)
class SettlementConfig:
    """Bundle of ledger constants handed to the calculators."""
    protocol_fee_bps: int = PROTOCOL_FEE_BPS
    creator_share_percent: int = CREATOR_SHARE_PERCENT
    unclaimed_pool_accrues_to_creator: bool = UNCLAIMED_POOL_ACCRUES_TO_CREATOR
    token_decimals: int = USDC_DECIMALS
    # Scale applied to the multiplier thresholds; 1 compares raw amounts
    stake_multiplier_unit: int = 1
    min_stake: int = MIN_STAKE
    max_amount: int = MAX_UINT256
    points_correct: int = POINTS_CORRECT
    points_wrong: int = POINTS_WRONG
    stake_multipliers: Tuple[Tuple[int, int], ...] = field(default=STAKE_MULTIPLIERS)
    tier_thresholds: Tuple[Tuple[str, int, int], ...] = field(default=TIER_THRESHOLDS)

    @property
    def token_unit(self) -> int:
        """Smallest units per whole token."""
        return 10 ** self.token_decimals

    @property
    def min_stake_units(self) -> int:
        return self.min_stake * self.token_unit


DEFAULT_CONFIG = SettlementConfig()
