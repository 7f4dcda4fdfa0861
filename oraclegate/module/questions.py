"""
Question Building & Identity

Derives the oracle question text from a proposal id and its ordered
transaction hashes, and the question ids the oracle is expected to return.
All functions here are pure.
"""

from typing import Sequence

from eth_abi.packed import encode_packed
from eth_utils import to_canonical_address

from ..constants import QUESTION_SEPARATOR
from ..crypto.hashing import keccak256, keccak256_text, to_word


def transactions_digest(tx_hashes: Sequence[bytes]) -> bytes:
    """keccak256 over the tightly packed ``bytes32[]`` of transaction hashes."""
    return keccak256(b''.join(to_word(h) for h in tx_hashes))


def build_question(proposal_id: str, tx_hashes: Sequence[bytes]) -> str:
    """
    ``proposal_id ␟ hex(keccak256(tx_hashes))``

    Any change to a single hash, or to their order, changes the question.
    """
    return proposal_id + QUESTION_SEPARATOR + transactions_digest(tx_hashes).hex()


def question_hash(question: str) -> bytes:
    return keccak256_text(question)


def content_hash(template_id: int, opening_ts: int, question: str) -> bytes:
    """keccak256(abi.encodePacked(uint256 template, uint32 opening_ts, string question))"""
    return keccak256(
        encode_packed(["uint256", "uint32", "string"], [template_id, opening_ts, question])
    )


def compute_question_id(
    template_id: int,
    question: str,
    arbitrator: str,
    timeout: int,
    opening_ts: int,
    nonce: int,
    sender: str,
) -> bytes:
    """
    Question id as assigned by ``ask_question`` for a question asked by *sender*.
    """
    return keccak256(
        encode_packed(
            ["bytes32", "address", "uint32", "address", "uint256"],
            [
                content_hash(template_id, opening_ts, question),
                to_canonical_address(arbitrator),
                timeout,
                to_canonical_address(sender),
                nonce,
            ],
        )
    )


def compute_question_id_with_min_bond(
    template_id: int,
    question: str,
    arbitrator: str,
    timeout: int,
    opening_ts: int,
    nonce: int,
    min_bond: int,
    oracle: str,
    sender: str,
) -> bytes:
    """
    Question id as assigned by ``ask_question_with_min_bond``: the minimum bond
    and the oracle's own address are part of the id.
    """
    return keccak256(
        encode_packed(
            ["bytes32", "address", "uint32", "uint256", "address", "address", "uint256"],
            [
                content_hash(template_id, opening_ts, question),
                to_canonical_address(arbitrator),
                timeout,
                min_bond,
                to_canonical_address(oracle),
                to_canonical_address(sender),
                nonce,
            ],
        )
    )
