"""
forter/ledger/audit.py

Merkle commitments over settlement payouts.

A settlement's payouts are hashed into leaves and folded into a single root.
Publishing the root lets anyone holding one payout and its proof check that
the payout belongs to the settlement without seeing the others.

Leaf format:
    sha256("{pool_id}:{participant}:{amount}")   amount in smallest units

Usage:
    from forter.ledger.audit import build_payout_tree, hash_payout, MerkleTree

    tree, entries = build_payout_tree(settlement)
    proof = tree.get_proof(0)
    leaf = hash_payout(settlement.pool_id, *entries[0])
    MerkleTree.verify_proof(leaf, tree.root, proof)  # True
"""

import hashlib
import logging
from typing import Dict, List, Optional, Tuple

from ..protocol.rewards import PoolSettlement

logger = logging.getLogger("forter.ledger.audit")


Proof = List[Tuple[str, str]]


def _sha256(data: str) -> str:
    return hashlib.sha256(data.encode()).hexdigest()


def hash_payout(pool_id: str, participant: str, amount: int) -> str:
    """Deterministic leaf hash for one payout."""
    return _sha256(f"{pool_id}:{participant.lower()}:{int(amount)}")


# ============================================================================
# MERKLE TREE
# ============================================================================

class MerkleTree:
    """
    Binary sha256 tree over hex leaf hashes.

    An odd node at any level is paired with itself.
    """

    def __init__(self, leaves: Optional[List[str]] = None):
        self.leaves: List[str] = list(leaves or [])
        self.levels: List[List[str]] = []
        self.root: str = ""
        self._build()

    @staticmethod
    def _parent_level(level: List[str]) -> List[str]:
        parents = []
        for i in range(0, len(level), 2):
            left = level[i]
            right = level[i + 1] if i + 1 < len(level) else left
            parents.append(_sha256(left + right))
        return parents

    def _build(self) -> None:
        if not self.leaves:
            self.levels = []
            self.root = ""
            return

        self.levels = [list(self.leaves)]
        while len(self.levels[-1]) > 1:
            self.levels.append(self._parent_level(self.levels[-1]))
        self.root = self.levels[-1][0]

    def add_leaf(self, leaf_hash: str) -> None:
        self.leaves.append(leaf_hash)
        self._build()

    def get_proof(self, leaf_index: int) -> Proof:
        """
        Sibling path from a leaf to the root.

        Args:
            leaf_index: Position of the leaf

        Returns:
            List of (side, sibling_hash); side is where the sibling sits
        """
        if not 0 <= leaf_index < len(self.leaves):
            raise IndexError(f"leaf {leaf_index} out of range ({len(self.leaves)} leaves)")

        proof: Proof = []
        idx = leaf_index
        for level in self.levels[:-1]:
            if idx % 2 == 0:
                sibling = level[idx + 1] if idx + 1 < len(level) else level[idx]
                proof.append(("right", sibling))
            else:
                proof.append(("left", level[idx - 1]))
            idx //= 2
        return proof

    @staticmethod
    def verify_proof(leaf_hash: str, root: str, proof: Proof) -> bool:
        current = leaf_hash
        for side, sibling in proof:
            current = _sha256(sibling + current) if side == "left" else _sha256(current + sibling)
        return current == root


# ============================================================================
# SETTLEMENT COMMITMENTS
# ============================================================================

def payout_entries(settlement: PoolSettlement) -> List[Tuple[str, int]]:
    """
    Non-zero payouts of a settlement, one per participant.

    The creator comes first, then stakers sorted by address. A creator who
    also staked gets a single combined entry.
    """
    totals: Dict[str, int] = {}
    for reward in settlement.staker_rewards:
        if reward.reward > 0:
            totals[reward.participant] = totals.get(reward.participant, 0) + reward.reward

    entries: List[Tuple[str, int]] = []
    creator_total = settlement.creator_payout + totals.pop(settlement.creator, 0)
    if creator_total > 0:
        entries.append((settlement.creator, creator_total))
    entries.extend(sorted(totals.items()))
    return entries


def build_payout_tree(settlement: PoolSettlement) -> Tuple[MerkleTree, List[Tuple[str, int]]]:
    """Tree over payout_entries(settlement), with the entries in leaf order."""
    entries = payout_entries(settlement)
    tree = MerkleTree([hash_payout(settlement.pool_id, p, a) for p, a in entries])
    logger.debug(
        f"Pool {settlement.pool_id}: {len(entries)} payout leaves, root {tree.root[:16]}"
    )
    return tree, entries


def settlement_root(settlement: PoolSettlement) -> str:
    """Merkle root committing to every payout of a settlement."""
    tree, _ = build_payout_tree(settlement)
    return tree.root


def payout_proof(settlement: PoolSettlement, participant: str) -> Tuple[int, Proof]:
    """
    Amount and proof for one participant's payout.

    Raises:
        KeyError: participant received nothing from this settlement
    """
    tree, entries = build_payout_tree(settlement)
    for index, (address, amount) in enumerate(entries):
        if address == participant:
            return amount, tree.get_proof(index)
    raise KeyError(f"{participant} has no payout in pool {settlement.pool_id}")


def verify_payout_proof(
    pool_id: str,
    participant: str,
    amount: int,
    proof: Proof,
    root: str,
) -> bool:
    """Check one payout against a published settlement root."""
    return MerkleTree.verify_proof(hash_payout(pool_id, participant, amount), root, proof)
