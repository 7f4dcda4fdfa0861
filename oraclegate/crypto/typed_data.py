"""
EIP-712 Typed Data Hashing

Domain-separated hashing of module transactions. The domain binds the chain
id and the module's own address, so a transaction hash approved for one
module instance cannot be replayed against another.
"""

from eth_abi import encode
from eth_utils import to_canonical_address

from ..constants import DOMAIN_SEPARATOR_TYPE, TRANSACTION_TYPE
from .hashing import keccak256, keccak256_text

DOMAIN_SEPARATOR_TYPEHASH = keccak256_text(DOMAIN_SEPARATOR_TYPE)
TRANSACTION_TYPEHASH = keccak256_text(TRANSACTION_TYPE)


def domain_separator(chain_id: int, verifying_contract: str) -> bytes:
    """
    keccak256(abi.encode(DOMAIN_SEPARATOR_TYPEHASH, chainId, verifyingContract))
    """
    return keccak256(
        encode(
            ["bytes32", "uint256", "address"],
            [DOMAIN_SEPARATOR_TYPEHASH, chain_id, to_canonical_address(verifying_contract)],
        )
    )


def transaction_struct_hash(
    to: str,
    value: int,
    data: bytes,
    operation: int,
    nonce: int,
) -> bytes:
    """Struct hash of a Transaction; dynamic ``data`` is hashed first."""
    return keccak256(
        encode(
            ["bytes32", "address", "uint256", "bytes32", "uint8", "uint256"],
            [
                TRANSACTION_TYPEHASH,
                to_canonical_address(to),
                value,
                keccak256(data),
                int(operation),
                nonce,
            ],
        )
    )


def encode_transaction_data(
    chain_id: int,
    verifying_contract: str,
    to: str,
    value: int,
    data: bytes,
    operation: int,
    nonce: int,
) -> bytes:
    """
    Pre-image of the transaction hash: ``0x19 0x01 ‖ domainSeparator ‖ structHash``.
    """
    return (
        b'\x19\x01'
        + domain_separator(chain_id, verifying_contract)
        + transaction_struct_hash(to, value, data, operation, nonce)
    )


def hash_transaction(
    chain_id: int,
    verifying_contract: str,
    to: str,
    value: int,
    data: bytes,
    operation: int,
    nonce: int,
) -> bytes:
    return keccak256(
        encode_transaction_data(chain_id, verifying_contract, to, value, data, operation, nonce)
    )
