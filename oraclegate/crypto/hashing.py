"""
OracleGate Crypto Hashing Module

Provides the hash and word helpers used throughout the module:
- keccak256: Web3 standard for question, transaction and typed data hashes
- to_word / word_to_int: 32-byte word conversions for oracle answers and states
"""

from typing import Union

from eth_utils import decode_hex, encode_hex, keccak

from ..constants import WORD_SIZE


def _to_bytes(data: Union[bytes, str]) -> bytes:
    if isinstance(data, str):
        return decode_hex(data)
    return bytes(data)


def keccak256(data: Union[bytes, str]) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum standard).

    Args:
        data: Input bytes or hex string

    Returns:
        32-byte hash
    """
    return keccak(_to_bytes(data))


def keccak256_hex(data: Union[bytes, str]) -> str:
    """
    Compute Keccak-256 hash and return as hex string.

    Args:
        data: Input bytes or hex string

    Returns:
        Hex string with 0x prefix
    """
    return encode_hex(keccak256(data))


def keccak256_text(text: str) -> bytes:
    """Keccak-256 of the UTF-8 encoding of *text*."""
    return keccak(text.encode('utf-8'))


def to_word(value: Union[bytes, str, int, bool]) -> bytes:
    """
    Normalize an answer, hash or state value to a 32-byte big-endian word.

    Booleans and ints are encoded as uint256, hex strings are decoded and
    short byte strings are left-padded.
    """
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        if value < 0 or value >= 2 ** (8 * WORD_SIZE):
            raise ValueError(f"Value {value} does not fit in a 32-byte word")
        return value.to_bytes(WORD_SIZE, 'big')
    raw = _to_bytes(value)
    if len(raw) > WORD_SIZE:
        raise ValueError(f"Expected at most {WORD_SIZE} bytes, got {len(raw)}")
    return raw.rjust(WORD_SIZE, b'\x00')


def word_to_int(word: Union[bytes, str, int, bool]) -> int:
    """Interpret a 32-byte word as uint256."""
    return int.from_bytes(to_word(word), 'big')
