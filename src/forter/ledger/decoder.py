"""
forter/ledger/decoder.py

Typed decoding of ledger read results.

The ledger's getters return either positional tuples in ABI order or named
records, depending on the client that fetched them. Everything that enters
the engine passes through here once and leaves as a forter.models entity;
nothing downstream ever indexes into a raw tuple.

ABI order:
    pool:       (creator, reasoning, evidence_links, image_url, image_caption,
                 position, creator_stake, total_staked, agree_stakes,
                 disagree_stakes, created_at, is_resolved, is_correct)
    claim:      (creator, title, description, category, resolution_criteria,
                 created_at, resolve_time, status, outcome, total_pools,
                 total_staked)
    stake:      (amount, position, timestamp, is_withdrawn)
    reputation: (points, last_updated, total_predictions,
                 correct_predictions, tier, tier_name, accuracy)

Named records may use either the ABI's camelCase names or snake_case.

Usage:
    from forter.ledger.decoder import decode_pool, decode_snapshot

    pool = decode_pool(raw_tuple, pool_id="3", claim_id="1")
    index = decode_snapshot(json.load(fh))
"""

import logging
import re
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..exceptions import LedgerDecodeError
from ..models import (
    AnalysisPool,
    Choice,
    Claim,
    ClaimState,
    Outcome,
    ParticipantStake,
    PoolState,
    ReputationRecord,
    Stance,
    Tier,
)
from ..protocol.positions import DEFAULT_CODEC, PositionCodec, stance_from_ledger
from ..protocol.settlement import LedgerIndex

logger = logging.getLogger("forter.ledger.decoder")


POOL_FIELDS = (
    "creator", "reasoning", "evidence_links", "image_url", "image_caption",
    "position", "creator_stake", "total_staked", "agree_stakes",
    "disagree_stakes", "created_at", "is_resolved", "is_correct",
)
CLAIM_FIELDS = (
    "creator", "title", "description", "category", "resolution_criteria",
    "created_at", "resolve_time", "status", "outcome", "total_pools",
    "total_staked",
)
STAKE_FIELDS = ("amount", "position", "timestamp", "is_withdrawn")
REPUTATION_FIELDS = (
    "points", "last_updated", "total_predictions", "correct_predictions",
    "tier", "tier_name", "accuracy",
)

# Ledger enums
CLAIM_STATUS_ACTIVE = 0
OUTCOME_CODES = {0: None, 1: Outcome.YES, 2: Outcome.NO}

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")
_INTEGER = re.compile(r"-?[0-9]+")


# ============================================================================
# FIELD HELPERS
# ============================================================================

def _snake(key: str) -> str:
    return _CAMEL.sub("_", key).lower()


def _fields(data: Any, names: Tuple[str, ...], kind: str) -> Dict[str, Any]:
    """Normalise a tuple or mapping payload to a snake_case dict."""
    if isinstance(data, Mapping):
        return {_snake(str(k)): v for k, v in data.items()}
    if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
        if len(data) != len(names):
            raise LedgerDecodeError(
                f"{kind} tuple has {len(data)} fields, expected {len(names)}"
            )
        return dict(zip(names, data))
    raise LedgerDecodeError(f"cannot decode {kind} from {type(data).__name__}")


def _int(fields: Dict[str, Any], name: str, default: Optional[int] = None) -> int:
    """Integer field; decimal strings are accepted since JSON loses big ints."""
    value = fields.get(name, default)
    if value is None:
        raise LedgerDecodeError(f"missing integer field '{name}'")
    if isinstance(value, bool):
        raise LedgerDecodeError(f"field '{name}' is a boolean, expected an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    raise LedgerDecodeError(f"field '{name}' is not an integer: {value!r}")


def _bool(fields: Dict[str, Any], name: str, default: Optional[bool] = None) -> bool:
    value = fields.get(name, default)
    if value is None:
        raise LedgerDecodeError(f"missing boolean field '{name}'")
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    raise LedgerDecodeError(f"field '{name}' is not a boolean: {value!r}")


def _str(fields: Dict[str, Any], name: str) -> str:
    value = fields.get(name)
    return "" if value is None else str(value)


# ============================================================================
# ENTITY DECODERS
# ============================================================================

def decode_pool(
    data: Any,
    pool_id: str,
    claim_id: str = "",
    category: str = "",
    resolved_at: Optional[int] = None,
) -> AnalysisPool:
    """
    Decode a getPoolInfo result.

    A named record may carry 'stance' ("affirmative"/"negative") in place of
    the ledger's position boolean.
    """
    fields = _fields(data, POOL_FIELDS, "pool")
    if fields.get("stance") is not None:
        try:
            stance = Stance(fields["stance"])
        except ValueError:
            raise LedgerDecodeError(f"unknown stance {fields['stance']!r}") from None
    else:
        stance = stance_from_ledger(_bool(fields, "position"))

    is_resolved = _bool(fields, "is_resolved", False)
    return AnalysisPool(
        pool_id=str(pool_id),
        claim_id=str(claim_id),
        creator=_str(fields, "creator"),
        stance=stance,
        creator_stake=_int(fields, "creator_stake"),
        agree_total=_int(fields, "agree_stakes", fields.get("agree_total", 0)),
        disagree_total=_int(fields, "disagree_stakes", fields.get("disagree_total", 0)),
        total_staked=_int(fields, "total_staked"),
        state=PoolState.RESOLVED if is_resolved else PoolState.ACTIVE,
        creator_was_correct=_bool(fields, "is_correct") if is_resolved else None,
        category=category,
        created_at=_int(fields, "created_at", 0),
        resolved_at=resolved_at if is_resolved else None,
    )


def decode_claim(data: Any, claim_id: str) -> Claim:
    """Decode a getNewsInfo result (status 0=Active, 1=Resolved)."""
    fields = _fields(data, CLAIM_FIELDS, "claim")
    status = _int(fields, "status", CLAIM_STATUS_ACTIVE)
    resolved = status != CLAIM_STATUS_ACTIVE

    outcome = None
    if resolved:
        code = _int(fields, "outcome", 0)
        if code not in OUTCOME_CODES:
            raise LedgerDecodeError(f"claim {claim_id}: unknown outcome code {code}")
        outcome = OUTCOME_CODES[code]

    return Claim(
        claim_id=str(claim_id),
        state=ClaimState.RESOLVED if resolved else ClaimState.ACTIVE,
        outcome=outcome,
        resolved_at=_int(fields, "resolve_time", 0) if resolved else None,
        creator=_str(fields, "creator"),
        title=_str(fields, "title"),
        category=_str(fields, "category"),
    )


def decode_stake(
    data: Any,
    pool_id: str,
    participant: str,
    pool_stance: Stance,
    codec: PositionCodec = DEFAULT_CODEC,
) -> ParticipantStake:
    """
    Decode a getUserStake result.

    The stored position flag is read back through the codec, which owns the
    ledger's inverted agree flag. A named record may carry 'choice'
    ("agree"/"disagree") instead.
    """
    fields = _fields(data, STAKE_FIELDS, "stake")
    amount = _int(fields, "amount")
    if amount <= 0:
        raise LedgerDecodeError(f"stake by {participant} on pool {pool_id} has amount {amount}")

    if fields.get("choice") is not None:
        try:
            choice = Choice(fields["choice"])
        except ValueError:
            raise LedgerDecodeError(f"unknown choice {fields['choice']!r}") from None
    else:
        choice = codec.from_ledger_encoding(_bool(fields, "position"), pool_stance)

    return ParticipantStake(
        pool_id=str(pool_id),
        participant=participant,
        amount=amount,
        choice=choice,
        created_at=_int(fields, "timestamp", 0),
        withdrawn=_bool(fields, "is_withdrawn", False),
    )


def decode_reputation(data: Any, participant: str) -> ReputationRecord:
    """
    Decode a getUserReputation result.

    Accuracy above 100 is reported in basis points and is scaled to a
    whole percentage, rounded half up.
    """
    fields = _fields(data, REPUTATION_FIELDS, "reputation")
    total = _int(fields, "total_predictions", 0)
    correct = _int(fields, "correct_predictions", 0)
    if correct > total:
        raise LedgerDecodeError(
            f"{participant}: {correct} correct out of {total} predictions"
        )

    accuracy = _int(fields, "accuracy", 0)
    if accuracy > 100:
        accuracy = (accuracy + 50) // 100

    last_updated = _int(fields, "last_updated", 0)
    return ReputationRecord(
        participant=participant,
        points=_int(fields, "points", fields.get("score", 0)),
        total_pools=total,
        correct_pools=correct,
        wrong_pools=total - correct,
        tier=Tier.from_ledger(_int(fields, "tier", 0)),
        accuracy=accuracy,
        last_active=last_updated or None,
    )


# ============================================================================
# SNAPSHOTS
# ============================================================================

def _payload(entry: Mapping[str, Any]) -> Any:
    """A snapshot entry either wraps the raw result under 'data' or is the record."""
    return entry["data"] if "data" in entry else entry


def decode_snapshot(
    snapshot: Mapping[str, Any],
    codec: PositionCodec = DEFAULT_CODEC,
) -> LedgerIndex:
    """
    Decode a JSON snapshot into a LedgerIndex.

    Snapshot layout:
        {
          "claims": [{"claim_id": "1", "data": [...]}],
          "pools":  [{"pool_id": "1", "claim_id": "1", "data": [...]}],
          "stakes": [{"pool_id": "1", "participant": "0x..", "data": [...]}]
        }

    Resolved pools take their category and resolution time from their claim.
    """
    if not isinstance(snapshot, Mapping):
        raise LedgerDecodeError("snapshot must be a JSON object")

    claims = {}
    for entry in snapshot.get("claims", []):
        claim = decode_claim(_payload(entry), entry["claim_id"])
        claims[claim.claim_id] = claim

    pools = {}
    for entry in snapshot.get("pools", []):
        try:
            pool_id = str(entry["pool_id"])
        except (KeyError, TypeError):
            raise LedgerDecodeError(f"pool entry without pool_id: {entry!r}") from None
        claim_id = str(entry.get("claim_id", ""))
        claim = claims.get(claim_id)
        pool = decode_pool(
            _payload(entry),
            pool_id=pool_id,
            claim_id=claim_id,
            category=entry.get("category") or (claim.category if claim else ""),
            resolved_at=entry.get("resolved_at") or (claim.resolved_at if claim else None),
        )
        pools[pool.pool_id] = pool

    stakes = []
    for entry in snapshot.get("stakes", []):
        pool_id = str(entry["pool_id"])
        if pool_id not in pools:
            raise LedgerDecodeError(f"stake references unknown pool {pool_id}")
        stakes.append(decode_stake(
            _payload(entry),
            pool_id=pool_id,
            participant=entry["participant"],
            pool_stance=pools[pool_id].stance,
            codec=codec,
        ))

    logger.debug(
        f"Decoded snapshot: {len(claims)} claims, {len(pools)} pools, {len(stakes)} stakes"
    )
    return LedgerIndex.build(pools=pools.values(), claims=claims.values(), stakes=stakes)
