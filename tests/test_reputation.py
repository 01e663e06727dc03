"""
forter/tests/test_reputation.py

Tests for analyst reputation:
- stake multipliers and points per pool
- tiers (both gates, monotonicity)
- ReputationAccumulator (apply, accumulate, streaks, categories)
- leaderboard ordering and global stats
"""

import random

import pytest

from forter.config import SettlementConfig
from forter.exceptions import InvariantViolation
from forter.models import AnalysisPool, PoolState, ReputationRecord, Stance, Tier
from forter.protocol.reputation import (
    ReputationAccumulator,
    calculate_accuracy,
    calculate_tier,
    global_stats,
    points_for_pool,
    sort_analysts,
    stake_multiplier,
)


ANALYST = "0xanalyst"


def create_resolved_pool(
    pool_id,
    creator_stake,
    correct,
    creator=ANALYST,
    resolved_at=None,
    category="crypto",
):
    """Create a resolved pool with no third-party stakes."""
    return AnalysisPool(
        pool_id=str(pool_id),
        claim_id="1",
        creator=creator,
        stance=Stance.AFFIRMATIVE,
        creator_stake=creator_stake,
        state=PoolState.RESOLVED,
        creator_was_correct=correct,
        category=category,
        resolved_at=resolved_at if resolved_at is not None else 1_700_000_000 + int(pool_id),
    )


@pytest.fixture
def accumulator():
    return ReputationAccumulator()


# ============================================================================
# Multipliers and Points
# ============================================================================

class TestPoints:
    """Tests for stake multipliers and per-pool points."""

    @pytest.mark.parametrize("stake,multiplier", [
        (0, 10),
        (99, 10),
        (100, 15),
        (499, 15),
        (500, 20),
        (999, 20),
        (1000, 25),
        (4999, 25),
        (5000, 30),
        (1_000_000, 30),
    ])
    def test_multiplier_boundaries(self, stake, multiplier):
        """Thresholds compare against the stake as stored."""
        assert stake_multiplier(stake) == multiplier

    def test_correct_pool_points(self):
        """A correct pool at stake 150 scores 150."""
        assert points_for_pool(150, True) == 150

    def test_wrong_pool_points(self):
        """Wrong pools lose 30 times the multiplier."""
        assert points_for_pool(50, False) == -30
        assert points_for_pool(1000, False) == -75

    def test_rounding_half_away_from_zero(self):
        """Fractional points round away from zero."""
        config = SettlementConfig(points_correct=5, points_wrong=-5)
        assert points_for_pool(100, True, config) == 8
        assert points_for_pool(100, False, config) == -8

    def test_token_decimals_do_not_scale_thresholds(self):
        """USDC decimals leave the table on raw amounts."""
        assert stake_multiplier(150) == 15
        assert stake_multiplier(150 * 10 ** 6) == 30

    def test_scaled_thresholds(self):
        """A deployment can opt in to scaled thresholds."""
        config = SettlementConfig(stake_multiplier_unit=10 ** 6)
        assert stake_multiplier(5000, config) == 10
        assert stake_multiplier(150 * 10 ** 6, config) == 15
        assert points_for_pool(150 * 10 ** 6, True, config) == 150


# ============================================================================
# Tiers
# ============================================================================

class TestTiers:
    """Tests for calculate_tier."""

    @pytest.mark.parametrize("points,pools,tier", [
        (0, 0, Tier.NOVICE),
        (150, 1, Tier.NOVICE),
        (200, 0, Tier.ANALYST),
        (499, 50, Tier.ANALYST),
        (500, 4, Tier.ANALYST),
        (500, 5, Tier.EXPERT),
        (999, 100, Tier.EXPERT),
        (1000, 10, Tier.MASTER),
        (5000, 19, Tier.MASTER),
        (5000, 20, Tier.LEGEND),
        (-10, 50, Tier.NOVICE),
    ])
    def test_both_gates(self, points, pools, tier):
        """A tier needs its points and its pool count."""
        assert calculate_tier(points, pools) is tier

    def test_monotonic_in_points(self):
        """More points never lower the tier."""
        for pools in (0, 5, 10, 20, 40):
            ordinals = [calculate_tier(p, pools).ordinal for p in range(-100, 6000, 50)]
            assert ordinals == sorted(ordinals)

    def test_monotonic_in_pools(self):
        """More resolved pools never lower the tier."""
        for points in (0, 200, 500, 1000, 5000):
            ordinals = [calculate_tier(points, n).ordinal for n in range(0, 30)]
            assert ordinals == sorted(ordinals)

    def test_ledger_ordinal(self):
        """Tier numbers follow the ledger and fall back to Novice."""
        assert Tier.from_ledger(3) is Tier.MASTER
        assert Tier.from_ledger(9) is Tier.NOVICE
        assert Tier.LEGEND.ordinal == 4


# ============================================================================
# Accuracy
# ============================================================================

class TestAccuracy:
    """Tests for calculate_accuracy."""

    @pytest.mark.parametrize("correct,wrong,expected", [
        (0, 0, 0),
        (1, 1, 50),
        (2, 1, 67),
        (1, 2, 33),
        (1, 7, 13),
        (5, 0, 100),
    ])
    def test_rounds_half_up(self, correct, wrong, expected):
        """Accuracy is a whole percentage."""
        assert calculate_accuracy(correct, wrong) == expected


# ============================================================================
# Accumulator
# ============================================================================

class TestAccumulator:
    """Tests for ReputationAccumulator."""

    def test_single_pool_scenario(self, accumulator):
        """One correct pool at stake 150: 150 points, still Novice."""
        record = accumulator.accumulate(ANALYST, [create_resolved_pool(1, 150, True)])

        assert record.points == 150
        assert record.tier is Tier.NOVICE
        assert record.total_pools == 1
        assert record.accuracy == 100

    def test_master_scenario(self, accumulator):
        """Ten big correct pools and two small wrong ones reach Master."""
        pools = [create_resolved_pool(i, 1000, True) for i in range(10)]
        pools += [create_resolved_pool(10 + i, 50, False) for i in range(2)]

        record = accumulator.accumulate(ANALYST, pools)

        assert record.points == 10 * 250 - 2 * 30
        assert record.points == 2440
        assert record.total_pools == 12
        assert record.correct_pools == 10
        assert record.wrong_pools == 2
        assert record.tier is Tier.MASTER
        assert record.accuracy == 83

    def test_only_created_pools_count(self, accumulator):
        """Pools created by others leave the record untouched."""
        pools = [
            create_resolved_pool(1, 150, True),
            create_resolved_pool(2, 5000, True, creator="0xother"),
        ]
        record = accumulator.accumulate(ANALYST, pools)
        assert record.points == 150
        assert record.total_pools == 1

    def test_active_pools_skipped(self, accumulator):
        """Unresolved pools contribute nothing."""
        active = AnalysisPool(
            pool_id="9", claim_id="1", creator=ANALYST,
            stance=Stance.NEGATIVE, creator_stake=1000,
        )
        record = accumulator.accumulate(ANALYST, [active])
        assert record == ReputationRecord(participant=ANALYST)

    def test_apply_rejects_foreign_pool(self, accumulator):
        """apply only takes the participant's own pools."""
        pool = create_resolved_pool(1, 150, True, creator="0xother")
        with pytest.raises(InvariantViolation):
            accumulator.apply(ReputationRecord(participant=ANALYST), pool)

    def test_apply_rejects_unresolved_pool(self, accumulator):
        """apply needs an outcome."""
        pool = create_resolved_pool(1, 150, True)
        pool.state = PoolState.ACTIVE
        with pytest.raises(InvariantViolation):
            accumulator.apply(ReputationRecord(participant=ANALYST), pool)

    def test_apply_returns_new_record(self, accumulator):
        """The input record is never modified."""
        start = ReputationRecord(participant=ANALYST)
        updated = accumulator.apply(start, create_resolved_pool(1, 150, True))
        assert start.points == 0
        assert updated.points == 150

    def test_negative_points_stay_novice(self, accumulator):
        """A losing record keeps Novice and negative points."""
        pools = [create_resolved_pool(i, 10, False) for i in range(3)]
        record = accumulator.accumulate(ANALYST, pools)
        assert record.points == -90
        assert record.tier is Tier.NOVICE
        assert record.accuracy == 0

    def test_streaks_follow_resolution_order(self, accumulator):
        """Streaks count consecutive correct pools by resolution time."""
        pools = [
            create_resolved_pool(1, 10, True, resolved_at=100),
            create_resolved_pool(2, 10, True, resolved_at=200),
            create_resolved_pool(3, 10, True, resolved_at=300),
            create_resolved_pool(4, 10, False, resolved_at=400),
            create_resolved_pool(5, 10, True, resolved_at=500),
        ]
        random.Random(7).shuffle(pools)

        record = accumulator.accumulate(ANALYST, pools)

        assert record.best_streak == 3
        assert record.current_streak == 1
        assert record.member_since == 100
        assert record.last_active == 500

    def test_category_stats(self, accumulator):
        """Results are broken down per claim category."""
        pools = [
            create_resolved_pool(1, 10, True, category="crypto"),
            create_resolved_pool(2, 10, False, category="crypto"),
            create_resolved_pool(3, 10, True, category="sports"),
        ]
        record = accumulator.accumulate(ANALYST, pools)

        assert record.category_stats["crypto"].total == 2
        assert record.category_stats["crypto"].accuracy == 50
        assert record.category_stats["sports"].accuracy == 100

    def test_summary_is_order_independent(self, accumulator):
        """Points and tier depend only on which pools resolved."""
        pools = [create_resolved_pool(i, 100 * i, i % 3 != 0) for i in range(1, 15)]
        shuffled = list(pools)
        random.Random(1).shuffle(shuffled)

        a = accumulator.accumulate(ANALYST, pools)
        b = accumulator.accumulate(ANALYST, shuffled)
        assert (a.points, a.tier, a.accuracy) == (b.points, b.tier, b.accuracy)

    def test_idempotent(self, accumulator):
        """Summarising the same history twice gives identical records."""
        pools = [create_resolved_pool(i, 600, i % 2 == 0) for i in range(8)]
        assert accumulator.accumulate(ANALYST, pools) == accumulator.accumulate(ANALYST, pools)

    def test_record_round_trip(self, accumulator):
        """Records survive to_dict / from_dict."""
        pools = [create_resolved_pool(i, 600, True) for i in range(3)]
        record = accumulator.accumulate(ANALYST, pools)
        assert ReputationRecord.from_dict(record.to_dict()) == record

    def test_record_is_immutable(self, accumulator):
        """Records hash and their category stats cannot be edited."""
        record = accumulator.accumulate(ANALYST, [create_resolved_pool(1, 150, True)])
        assert hash(record) == hash(ReputationRecord.from_dict(record.to_dict()))
        assert len({record, record}) == 1
        with pytest.raises(TypeError):
            record.category_stats["crypto"] = None


# ============================================================================
# Tier Progress
# ============================================================================

class TestProgress:
    """Tests for progress_to_next_tier."""

    def test_novice_to_analyst(self, accumulator):
        """Progress reports the missing points."""
        record = accumulator.accumulate(ANALYST, [create_resolved_pool(1, 150, True)])
        assert accumulator.progress_to_next_tier(record) == {
            'next_tier': 'Analyst', 'points_needed': 50, 'pools_needed': 0,
        }

    def test_points_without_pools(self, accumulator):
        """Enough points but too few pools still blocks promotion."""
        pools = [create_resolved_pool(i, 5000, True) for i in range(2)]
        record = accumulator.accumulate(ANALYST, pools)
        assert record.tier is Tier.ANALYST
        progress = accumulator.progress_to_next_tier(record)
        assert progress['next_tier'] == 'Expert'
        assert progress['points_needed'] == 0
        assert progress['pools_needed'] == 3

    def test_legend_has_no_next_tier(self, accumulator):
        """Legend is the top."""
        record = ReputationRecord(participant=ANALYST, points=6000, total_pools=25, tier=Tier.LEGEND)
        assert accumulator.progress_to_next_tier(record)['next_tier'] is None


# ============================================================================
# Leaderboard
# ============================================================================

class TestLeaderboard:
    """Tests for sort_analysts and global_stats."""

    @pytest.fixture
    def records(self):
        return [
            ReputationRecord(participant="0xa", points=300, total_pools=4, tier=Tier.ANALYST,
                             accuracy=90, member_since=10),
            ReputationRecord(participant="0xb", points=1200, total_pools=12, tier=Tier.MASTER,
                             accuracy=60, member_since=30),
            ReputationRecord(participant="0xc", points=250, total_pools=9, tier=Tier.ANALYST,
                             accuracy=95, member_since=20),
        ]

    def test_sort_by_accuracy_ranks_tier_first(self, records):
        """Tier outranks accuracy."""
        assert [r.participant for r in sort_analysts(records)] == ["0xb", "0xc", "0xa"]

    def test_sort_by_points(self, records):
        assert [r.participant for r in sort_analysts(records, by='points')] == ["0xb", "0xa", "0xc"]

    def test_sort_by_pools(self, records):
        assert [r.participant for r in sort_analysts(records, by='total_pools')] == ["0xb", "0xc", "0xa"]

    def test_sort_by_recent(self, records):
        assert [r.participant for r in sort_analysts(records, by='recent')] == ["0xb", "0xc", "0xa"]

    def test_unknown_sort_key(self, records):
        with pytest.raises(ValueError):
            sort_analysts(records, by='karma')

    def test_global_stats(self, records):
        """Aggregates cover every analyst."""
        stats = global_stats(records)
        assert stats['total_analysts'] == 3
        assert stats['avg_accuracy'] == round((90 + 60 + 95) / 3, 2)
        assert stats['total_pools_created'] == 25
        assert stats['tier_distribution']['Analyst'] == 2
        assert stats['tier_distribution']['Legend'] == 0

    def test_global_stats_empty(self):
        assert global_stats([])['total_analysts'] == 0
