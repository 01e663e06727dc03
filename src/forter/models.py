"""
forter/models.py

Domain entities shared by the settlement engine.

Amounts are integers in the token's smallest unit (USDC has 6 decimals).
Timestamps are Unix seconds. Nothing here talks to the ledger; snapshots are
built by forter.ledger.decoder or by the caller.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


# ============================================================================
# ENUMS
# ============================================================================

class Stance(Enum):
    """Absolute direction on a claim."""
    AFFIRMATIVE = "affirmative"  # the claim will happen (YES)
    NEGATIVE = "negative"        # the claim will not happen (NO)

    def opposite(self) -> "Stance":
        return Stance.NEGATIVE if self is Stance.AFFIRMATIVE else Stance.AFFIRMATIVE


class Choice(Enum):
    """A staker's position relative to the pool creator's stance."""
    AGREE = "agree"
    DISAGREE = "disagree"

    def opposite(self) -> "Choice":
        return Choice.DISAGREE if self is Choice.AGREE else Choice.AGREE


class PoolState(Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


class ClaimState(Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


class Outcome(Enum):
    YES = "YES"
    NO = "NO"


class Tier(Enum):
    """Reputation tier. Declaration order is the ledger's ordinal."""
    NOVICE = "Novice"
    ANALYST = "Analyst"
    EXPERT = "Expert"
    MASTER = "Master"
    LEGEND = "Legend"

    @property
    def ordinal(self) -> int:
        return list(Tier).index(self)

    @classmethod
    def from_ledger(cls, ordinal: int) -> "Tier":
        """Map the ledger's tier number; unknown numbers fall back to Novice."""
        tiers = list(cls)
        if 0 <= ordinal < len(tiers):
            return tiers[ordinal]
        return cls.NOVICE


# ============================================================================
# LEDGER SNAPSHOTS
# ============================================================================

@dataclass
class Claim:
    """A published claim ("NEWS"). Owned by the ledger."""
    claim_id: str
    state: ClaimState = ClaimState.ACTIVE
    outcome: Optional[Outcome] = None
    resolved_at: Optional[int] = None
    creator: str = ""
    title: str = ""
    category: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.state is ClaimState.RESOLVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'claim_id': self.claim_id,
            'state': self.state.value,
            'outcome': self.outcome.value if self.outcome else None,
            'resolved_at': self.resolved_at,
            'creator': self.creator,
            'title': self.title,
            'category': self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Claim":
        outcome = data.get('outcome')
        return cls(
            claim_id=str(data['claim_id']),
            state=ClaimState(data.get('state', 'active')),
            outcome=Outcome(outcome) if outcome else None,
            resolved_at=data.get('resolved_at'),
            creator=data.get('creator', ''),
            title=data.get('title', ''),
            category=data.get('category', ''),
        )


@dataclass
class AnalysisPool:
    """
    An analysis attached to one claim, with its own stake pool.

    total_staked is the ledger's separately recorded total and must equal
    creator_stake + agree_total + disagree_total.
    """
    pool_id: str
    claim_id: str
    creator: str
    stance: Stance
    creator_stake: int
    agree_total: int = 0
    disagree_total: int = 0
    total_staked: Optional[int] = None
    state: PoolState = PoolState.ACTIVE
    creator_was_correct: Optional[bool] = None
    category: str = ""
    created_at: int = 0
    resolved_at: Optional[int] = None

    def __post_init__(self):
        if self.total_staked is None:
            self.total_staked = self.creator_stake + self.agree_total + self.disagree_total

    @property
    def is_resolved(self) -> bool:
        return self.state is PoolState.RESOLVED

    def side_total(self, choice: Choice) -> int:
        """Aggregate staked by participants with this choice."""
        return self.agree_total if choice is Choice.AGREE else self.disagree_total

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pool_id': self.pool_id,
            'claim_id': self.claim_id,
            'creator': self.creator,
            'stance': self.stance.value,
            'creator_stake': self.creator_stake,
            'agree_total': self.agree_total,
            'disagree_total': self.disagree_total,
            'total_staked': self.total_staked,
            'state': self.state.value,
            'creator_was_correct': self.creator_was_correct,
            'category': self.category,
            'created_at': self.created_at,
            'resolved_at': self.resolved_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisPool":
        return cls(
            pool_id=str(data['pool_id']),
            claim_id=str(data.get('claim_id', '')),
            creator=data['creator'],
            stance=Stance(data['stance']),
            creator_stake=int(data['creator_stake']),
            agree_total=int(data.get('agree_total', 0)),
            disagree_total=int(data.get('disagree_total', 0)),
            total_staked=(
                int(data['total_staked']) if data.get('total_staked') is not None else None
            ),
            state=PoolState(data.get('state', 'active')),
            creator_was_correct=data.get('creator_was_correct'),
            category=data.get('category', ''),
            created_at=int(data.get('created_at', 0)),
            resolved_at=data.get('resolved_at'),
        )


@dataclass
class ParticipantStake:
    """One participant's stake on one pool."""
    pool_id: str
    participant: str
    amount: int
    choice: Choice
    created_at: int = 0
    withdrawn: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['choice'] = self.choice.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParticipantStake":
        return cls(
            pool_id=str(data['pool_id']),
            participant=data['participant'],
            amount=int(data['amount']),
            choice=Choice(data['choice']),
            created_at=int(data.get('created_at', 0)),
            withdrawn=bool(data.get('withdrawn', False)),
        )


# ============================================================================
# REPUTATION
# ============================================================================

@dataclass(frozen=True)
class CategoryStats:
    """Creator performance inside one claim category."""
    total: int = 0
    correct: int = 0
    accuracy: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ReputationRecord:
    """
    A participant's reputation, derived only from pools they created.

    points can go negative; tier never drops below Novice. category_stats
    is a read-only mapping and is left out of the hash.
    """
    participant: str
    points: int = 0
    total_pools: int = 0
    correct_pools: int = 0
    wrong_pools: int = 0
    tier: Tier = Tier.NOVICE
    accuracy: int = 0
    current_streak: int = 0
    best_streak: int = 0
    category_stats: Mapping[str, CategoryStats] = field(default_factory=dict, hash=False)
    member_since: Optional[int] = None
    last_active: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'category_stats', MappingProxyType(dict(self.category_stats)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'participant': self.participant,
            'points': self.points,
            'total_pools': self.total_pools,
            'correct_pools': self.correct_pools,
            'wrong_pools': self.wrong_pools,
            'tier': self.tier.value,
            'accuracy': self.accuracy,
            'current_streak': self.current_streak,
            'best_streak': self.best_streak,
            'category_stats': {k: v.to_dict() for k, v in sorted(self.category_stats.items())},
            'member_since': self.member_since,
            'last_active': self.last_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReputationRecord":
        return cls(
            participant=data['participant'],
            points=int(data.get('points', 0)),
            total_pools=int(data.get('total_pools', 0)),
            correct_pools=int(data.get('correct_pools', 0)),
            wrong_pools=int(data.get('wrong_pools', 0)),
            tier=Tier(data.get('tier', 'Novice')),
            accuracy=int(data.get('accuracy', 0)),
            current_streak=int(data.get('current_streak', 0)),
            best_streak=int(data.get('best_streak', 0)),
            category_stats={
                k: CategoryStats(**v) for k, v in data.get('category_stats', {}).items()
            },
            member_since=data.get('member_since'),
            last_active=data.get('last_active'),
        )
