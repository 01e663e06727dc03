"""
forter/tests/test_report.py

Tests for the pandas reports and batch settlement.
"""

import pytest

from forter.models import AnalysisPool, Choice, ParticipantStake, PoolState, ReputationRecord, Stance, Tier
from forter.protocol.rewards import RewardCalculator
from forter.report import (
    LEADERBOARD_COLUMNS,
    PAYOUT_COLUMNS,
    leaderboard_frame,
    settle_many,
    settlement_frame,
    summary_frame,
)


def create_pool(pool_id, agree=500, disagree=3200, total_staked=None):
    return AnalysisPool(
        pool_id=pool_id, claim_id="1", creator="0xcreator", stance=Stance.AFFIRMATIVE,
        creator_stake=500, agree_total=agree, disagree_total=disagree,
        total_staked=total_staked, state=PoolState.RESOLVED, creator_was_correct=True,
    )


def create_stakes(pool_id, agree=500, disagree=3200):
    return [
        ParticipantStake(pool_id=pool_id, participant="0xalice", amount=agree, choice=Choice.AGREE),
        ParticipantStake(pool_id=pool_id, participant="0xcarol", amount=disagree, choice=Choice.DISAGREE),
    ]


@pytest.fixture
def calculator():
    return RewardCalculator()


# ============================================================================
# Batch Settlement
# ============================================================================

class TestSettleMany:
    """Tests for settle_many."""

    def test_failure_does_not_stop_batch(self, calculator):
        """A broken pool is reported; the rest still settle."""
        batch = settle_many(calculator, [
            (create_pool("1"), create_stakes("1")),
            (create_pool("2", total_staked=1), create_stakes("2")),
            (create_pool("3"), create_stakes("3")),
        ])

        assert [s.pool_id for s in batch.settlements] == ["1", "3"]
        assert list(batch.failures) == ["2"]
        assert "total_staked" in batch.failures["2"]
        assert not batch.ok

    def test_all_ok(self, calculator):
        batch = settle_many(calculator, [(create_pool("1"), create_stakes("1"))])
        assert batch.ok


# ============================================================================
# Frames
# ============================================================================

class TestFrames:
    """Tests for the DataFrame builders."""

    def test_settlement_frame_sums_to_pool(self, calculator):
        """Every unit of the pool appears on exactly one line."""
        settlement = calculator.settle(create_pool("1"), create_stakes("1"))
        df = settlement_frame(settlement)

        assert list(df.columns) == PAYOUT_COLUMNS
        assert sum(df["payout"]) == settlement.total_pool
        assert set(df["role"]) == {"creator", "staker", "protocol_fee"}

    def test_settlement_frame_undistributed_line(self, calculator):
        """Floor dust gets its own line."""
        pool = create_pool("1", agree=3, disagree=6)
        stakes = [
            ParticipantStake(pool_id="1", participant="0xa", amount=1, choice=Choice.AGREE),
            ParticipantStake(pool_id="1", participant="0xb", amount=2, choice=Choice.AGREE),
            ParticipantStake(pool_id="1", participant="0xc", amount=6, choice=Choice.DISAGREE),
        ]
        settlement = calculator.settle(pool, stakes)
        df = settlement_frame(settlement)

        assert settlement.undistributed > 0
        assert "undistributed" in set(df["role"])
        assert sum(df["payout"]) == settlement.total_pool

    def test_summary_frame(self, calculator):
        settlements = [calculator.settle(create_pool(p), create_stakes(p)) for p in ("1", "2")]
        df = summary_frame(settlements)
        assert len(df) == 2
        assert df["conserved"].all()
        assert list(df["winners"]) == [1, 1]

    def test_leaderboard_frame(self):
        """Ranks follow the chosen ordering."""
        records = [
            ReputationRecord(participant="0xa", points=300, tier=Tier.ANALYST, accuracy=70),
            ReputationRecord(participant="0xb", points=1500, total_pools=10, tier=Tier.MASTER, accuracy=50),
        ]
        df = leaderboard_frame(records, by="points")

        assert list(df.columns) == LEADERBOARD_COLUMNS
        assert list(df["participant"]) == ["0xb", "0xa"]
        assert list(df["rank"]) == [1, 2]
        assert list(df["tier"]) == ["Master", "Analyst"]

    def test_empty_leaderboard(self):
        assert leaderboard_frame([]).empty
