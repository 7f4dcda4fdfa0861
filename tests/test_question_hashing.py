"""
Question Building & Transaction Hashing Test Suite

Coverage:
  - build_question: format, purity, order and byte sensitivity
  - EIP-712 transaction hashes: domain binding, nonce distinctness
  - Question ids: ask_question / ask_question_with_min_bond derivations
  - CREATE2 proxy address prediction and calldata helpers
"""

import os
import sys

import pytest
from eth_abi import encode
from eth_abi.packed import encode_packed
from eth_utils import keccak, to_canonical_address, to_checksum_address

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from oraclegate.constants import (
    ANSWER_TRUE,
    DOMAIN_SEPARATOR_TYPE,
    QUESTION_SEPARATOR,
    TRANSACTION_TYPE,
    ZERO_ADDRESS,
)
from oraclegate.crypto import (
    compute_function_selector,
    decode_function_call,
    encode_function_call,
    keccak256,
    predict_module_address,
    to_word,
    word_to_int,
)
from oraclegate.crypto.contract import proxy_creation_code
from oraclegate.crypto.typed_data import domain_separator, hash_transaction
from oraclegate.exceptions import IntegrityError
from oraclegate.module.questions import (
    build_question,
    compute_question_id,
    compute_question_id_with_min_bond,
    content_hash,
    question_hash,
    transactions_digest,
)
from oraclegate.module.types import ModuleTransaction, Operation, Proposal


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

MODULE = to_checksum_address("0x" + "1a" * 20)
OTHER_MODULE = to_checksum_address("0x" + "2b" * 20)
TARGET = to_checksum_address("0x" + "3c" * 20)
ORACLE = to_checksum_address("0x" + "4d" * 20)
ARBITRATOR = to_checksum_address("0x" + "5e" * 20)

H1 = keccak(text="tx-1")
H2 = keccak(text="tx-2")
H3 = keccak(text="tx-3")


def tx_hash(nonce=0, to=TARGET, value=0, data=b"", operation=Operation.CALL,
            chain_id=1, module=MODULE) -> bytes:
    return hash_transaction(chain_id, module, to, value, data, int(operation), nonce)


# ══════════════════════════════════════════════════════════════════════
#  QUESTION TEXT
# ══════════════════════════════════════════════════════════════════════


class TestBuildQuestion:
    """Question text derivation."""

    def test_format(self):
        question = build_question("p1", [H1, H2])
        digest = keccak(H1 + H2).hex()
        assert question == "p1" + QUESTION_SEPARATOR + digest

    def test_separator_is_unit_separator_symbol(self):
        assert QUESTION_SEPARATOR.encode("utf-8") == b"\xe2\x90\x9f"

    def test_digest_is_lowercase_without_prefix(self):
        digest = build_question("p1", [H1]).split(QUESTION_SEPARATOR)[1]
        assert len(digest) == 64
        assert digest == digest.lower()
        assert not digest.startswith("0x")

    def test_pure(self):
        assert build_question("p1", [H1, H2]) == build_question("p1", [H1, H2])

    def test_order_sensitive(self):
        assert build_question("p1", [H1, H2]) != build_question("p1", [H2, H1])

    def test_single_byte_change(self):
        tampered = bytearray(H2)
        tampered[31] ^= 0x01
        assert build_question("p1", [H1, H2]) != build_question("p1", [H1, bytes(tampered)])

    def test_id_change(self):
        assert build_question("p1", [H1]) != build_question("p2", [H1])

    def test_empty_transaction_list(self):
        question = build_question("empty", [])
        assert question == "empty" + QUESTION_SEPARATOR + keccak(b"").hex()

    def test_hex_string_hashes_accepted(self):
        assert build_question("p1", ["0x" + H1.hex()]) == build_question("p1", [H1])

    def test_transactions_digest_packs_words(self):
        assert transactions_digest([H1, H2, H3]) == keccak(H1 + H2 + H3)

    def test_question_hash_is_keccak_of_utf8(self):
        question = build_question("propüsal", [H1])
        assert question_hash(question) == keccak(question.encode("utf-8"))


# ══════════════════════════════════════════════════════════════════════
#  TRANSACTION HASH
# ══════════════════════════════════════════════════════════════════════


class TestTransactionHash:
    """EIP-712 hashing of module transactions."""

    def test_nonce_distinguishes_identical_calls(self):
        assert tx_hash(nonce=0) != tx_hash(nonce=1)

    def test_domain_binds_module(self):
        assert tx_hash(module=MODULE) != tx_hash(module=OTHER_MODULE)

    def test_domain_binds_chain(self):
        assert tx_hash(chain_id=1) != tx_hash(chain_id=100)

    def test_operation_and_value_and_data_bound(self):
        base = tx_hash()
        assert tx_hash(operation=Operation.DELEGATE_CALL) != base
        assert tx_hash(value=1) != base
        assert tx_hash(data=b"\x01") != base

    def test_domain_separator_layout(self):
        expected = keccak(encode(
            ["bytes32", "uint256", "address"],
            [keccak(text=DOMAIN_SEPARATOR_TYPE), 4, MODULE],
        ))
        assert domain_separator(4, MODULE) == expected

    def test_typed_data_layout(self):
        data = bytes.fromhex("a9059cbb")
        struct_hash = keccak(encode(
            ["bytes32", "address", "uint256", "bytes32", "uint8", "uint256"],
            [keccak(text=TRANSACTION_TYPE), TARGET, 5, keccak(data), 0, 2],
        ))
        expected = keccak(b"\x19\x01" + domain_separator(1, MODULE) + struct_hash)
        assert tx_hash(nonce=2, value=5, data=data) == expected

    def test_type_strings(self):
        assert DOMAIN_SEPARATOR_TYPE == "EIP712Domain(uint256 chainId,address verifyingContract)"
        assert TRANSACTION_TYPE == (
            "Transaction(address to,uint256 value,bytes data,uint8 operation,uint256 nonce)"
        )


# ══════════════════════════════════════════════════════════════════════
#  QUESTION IDS
# ══════════════════════════════════════════════════════════════════════


class TestQuestionIds:
    """Ids the oracle assigns to questions asked by a module."""

    def test_content_hash_layout(self):
        expected = keccak(encode_packed(["uint256", "uint32", "string"], [0, 0, "q"]))
        assert content_hash(0, 0, "q") == expected

    def test_v2_layout(self):
        expected = keccak(encode_packed(
            ["bytes32", "address", "uint32", "address", "uint256"],
            [content_hash(0, 0, "q"), to_canonical_address(ARBITRATOR), 42,
             to_canonical_address(MODULE), 3],
        ))
        assert compute_question_id(0, "q", ARBITRATOR, 42, 0, 3, MODULE) == expected

    def test_v3_binds_min_bond_and_oracle(self):
        base = compute_question_id_with_min_bond(0, "q", ARBITRATOR, 42, 0, 0, 10, ORACLE, MODULE)
        assert base != compute_question_id_with_min_bond(0, "q", ARBITRATOR, 42, 0, 0, 11, ORACLE, MODULE)
        assert base != compute_question_id_with_min_bond(0, "q", ARBITRATOR, 42, 0, 0, 10, TARGET, MODULE)

    def test_nonce_changes_id(self):
        assert (
            compute_question_id(0, "q", ZERO_ADDRESS, 42, 0, 0, MODULE)
            != compute_question_id(0, "q", ZERO_ADDRESS, 42, 0, 1, MODULE)
        )

    def test_sender_changes_id(self):
        assert (
            compute_question_id(0, "q", ZERO_ADDRESS, 42, 0, 0, MODULE)
            != compute_question_id(0, "q", ZERO_ADDRESS, 42, 0, 0, OTHER_MODULE)
        )


# ══════════════════════════════════════════════════════════════════════
#  WORDS, PROXIES & CALLDATA
# ══════════════════════════════════════════════════════════════════════


class TestWordsAndCalldata:

    def test_to_word(self):
        assert to_word(True) == ANSWER_TRUE
        assert to_word(1) == ANSWER_TRUE
        assert to_word("0x01") == ANSWER_TRUE
        assert word_to_int(b"\xff" * 32) == 2 ** 256 - 1

    def test_to_word_rejects_oversize(self):
        with pytest.raises(ValueError):
            to_word(b"\x00" * 33)

    def test_keccak256_accepts_hex(self):
        assert keccak256("0x" + "00" * 4) == keccak(b"\x00" * 4)

    def test_function_selector(self):
        assert compute_function_selector("transfer(address,uint256)").hex() == "a9059cbb"

    def test_encode_decode_call(self):
        data = encode_function_call("setQuestionTimeout(uint32)", 42)
        selector, payload = decode_function_call(data)
        assert selector == compute_function_selector("setQuestionTimeout(uint32)")
        assert int.from_bytes(payload, "big") == 42

    def test_proxy_creation_code_embeds_mastercopy(self):
        code = proxy_creation_code(TARGET)
        assert to_canonical_address(TARGET) in code

    def test_predict_module_address(self):
        initializer = b"\x12\x34"
        code = proxy_creation_code(TARGET)
        salt = keccak(encode_packed(["bytes32", "uint256"], [keccak(initializer), 7]))
        expected = to_checksum_address(
            keccak(b"\xff" + to_canonical_address(MODULE) + salt + keccak(code))[-20:]
        )
        assert predict_module_address(MODULE, TARGET, initializer, 7) == expected
        assert predict_module_address(MODULE, TARGET, initializer, 8) != expected


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL FILE FORMAT
# ══════════════════════════════════════════════════════════════════════


class TestProposalFormat:

    def test_from_dict_defaults_nonce_to_position(self):
        proposal = Proposal.from_dict({
            "id": "p1",
            "txs": [
                {"to": TARGET, "value": "0", "data": "0x", "operation": 0},
                {"to": TARGET, "value": "5", "data": "0xa9059cbb", "operation": 1},
            ],
        })
        assert [tx.nonce for tx in proposal.transactions] == [0, 1]
        assert proposal.transactions[1].value == 5
        assert proposal.transactions[1].data == bytes.fromhex("a9059cbb")
        assert proposal.transactions[1].operation == Operation.DELEGATE_CALL

    def test_explicit_nonce_kept(self):
        proposal = Proposal.from_dict({"id": "p1", "txs": [{"to": TARGET, "nonce": 9}]})
        assert proposal.transactions[0].nonce == 9

    def test_to_dict_round_trip(self):
        proposal = Proposal("p1", [ModuleTransaction(TARGET.lower(), 1, b"\x01")])
        data = proposal.to_dict()
        assert data["txs"][0]["to"] == TARGET
        assert Proposal.from_dict(data).transactions == proposal.transactions

    def test_invalid_target_rejected(self):
        with pytest.raises(IntegrityError, match="Invalid transaction target"):
            ModuleTransaction("0x1234")
