"""
OracleGate Crypto Module

This module provides the hashing primitives for the module engine:
- Hash functions (keccak256) and 32-byte word helpers
- EIP-712 typed data hashing of module transactions
- CREATE2 proxy address prediction and ABI call encoding
"""

from .hashing import keccak256, keccak256_hex, keccak256_text, to_word, word_to_int
from .typed_data import (
    DOMAIN_SEPARATOR_TYPEHASH,
    TRANSACTION_TYPEHASH,
    domain_separator,
    encode_transaction_data,
    hash_transaction,
)
from .contract import (
    compute_function_selector,
    decode_function_call,
    encode_function_call,
    predict_module_address,
)

__all__ = [
    'keccak256',
    'keccak256_hex',
    'keccak256_text',
    'to_word',
    'word_to_int',
    'DOMAIN_SEPARATOR_TYPEHASH',
    'TRANSACTION_TYPEHASH',
    'domain_separator',
    'encode_transaction_data',
    'hash_transaction',
    'compute_function_selector',
    'decode_function_call',
    'encode_function_call',
    'predict_module_address',
]
