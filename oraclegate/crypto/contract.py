"""
Contract Address & Calldata Helpers

CREATE2 address prediction for minimal module proxies, and ABI call
encoding used when the module is driven through its avatar.
"""

from typing import Any, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.packed import encode_packed
from eth_utils import keccak, to_canonical_address, to_checksum_address

from ..constants import PROXY_CREATION_PREFIX, PROXY_CREATION_SUFFIX


def generate_contract_address_create2(
    sender: str,
    salt: bytes,
    bytecode: bytes
) -> str:
    """
    Generate contract address using CREATE2 opcode logic.

    Address = keccak256(0xff + sender + salt + keccak256(bytecode))[-20:]

    Args:
        sender: Deployer address
        salt: 32-byte salt
        bytecode: Contract initialization bytecode

    Returns:
        Contract address (Ethereum checksum format)
    """
    sender_bytes = to_canonical_address(sender)

    if len(salt) != 32:
        raise ValueError(f"Salt must be 32 bytes, got {len(salt)}")

    data = b'\xff' + sender_bytes + salt + keccak(bytecode)
    return to_checksum_address(keccak(data)[-20:])


def proxy_creation_code(mastercopy: str) -> bytes:
    """EIP-1167 minimal proxy creation code delegating to *mastercopy*."""
    return PROXY_CREATION_PREFIX + to_canonical_address(mastercopy) + PROXY_CREATION_SUFFIX


def proxy_salt(initializer: bytes, salt_nonce: int) -> bytes:
    """
    keccak256(abi.encodePacked(keccak256(initializer), saltNonce))

    Binding the initializer into the salt means the predicted address also
    commits to the module's configuration.
    """
    return keccak(encode_packed(["bytes32", "uint256"], [keccak(initializer), salt_nonce]))


def predict_module_address(
    factory: str,
    mastercopy: str,
    initializer: bytes,
    salt_nonce: int,
) -> str:
    """Address at which *factory* deploys a proxy of *mastercopy*."""
    return generate_contract_address_create2(
        factory,
        proxy_salt(initializer, salt_nonce),
        proxy_creation_code(mastercopy),
    )


def compute_function_selector(function_signature: str) -> bytes:
    """
    Compute Ethereum function selector (first 4 bytes of keccak256(sig)).

    Args:
        function_signature: Function signature like "setMinimumBond(uint256)"

    Returns:
        4-byte function selector
    """
    return keccak(function_signature.encode('utf-8'))[:4]


def parse_argument_types(function_signature: str) -> Tuple[str, ...]:
    """"f(address,uint256)" -> ("address", "uint256")"""
    args_start = function_signature.index('(') + 1
    args_end = function_signature.rindex(')')
    arg_types_str = function_signature[args_start:args_end]
    if not arg_types_str:
        return ()
    return tuple(t.strip() for t in arg_types_str.split(','))


def encode_function_call(function_signature: str, *args: Any) -> bytes:
    """
    Encode function call data (selector + ABI-encoded arguments).

    Args:
        function_signature: Function signature
        *args: Function arguments

    Returns:
        Encoded call data
    """
    selector = compute_function_selector(function_signature)
    arg_types = parse_argument_types(function_signature)
    if not arg_types:
        return selector
    return selector + encode(list(arg_types), list(args))


def decode_function_call(data: bytes) -> Tuple[bytes, bytes]:
    """
    Split call data into selector and ABI-encoded arguments.

    Args:
        data: Encoded function call data

    Returns:
        Tuple of (selector, arguments)
    """
    if len(data) < 4:
        return b'', b''
    return data[:4], data[4:]


def decode_arguments(arg_types: Sequence[str], payload: bytes) -> Tuple[Any, ...]:
    if not arg_types:
        return ()
    return decode(list(arg_types), payload)
