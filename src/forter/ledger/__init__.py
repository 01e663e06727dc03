"""
forter/ledger/

Boundary with the ledger: payload decoding, token units, payout audits.
"""

from .decoder import (
    decode_pool,
    decode_claim,
    decode_stake,
    decode_reputation,
    decode_snapshot,
)
from .units import parse_units, format_units, parse_usdc, format_usdc
from .audit import (
    MerkleTree,
    hash_payout,
    payout_entries,
    build_payout_tree,
    settlement_root,
    payout_proof,
    verify_payout_proof,
)

__all__ = [
    "decode_pool",
    "decode_claim",
    "decode_stake",
    "decode_reputation",
    "decode_snapshot",
    "parse_units",
    "format_units",
    "parse_usdc",
    "format_usdc",
    "MerkleTree",
    "hash_payout",
    "payout_entries",
    "build_payout_tree",
    "settlement_root",
    "payout_proof",
    "verify_payout_proof",
]
