"""
Module Call Router

Lets a module be driven with ABI calldata, the way an avatar (or any other
account) calls it on chain. Register the router as the module's call target
on the avatar:

    avatar.register_target(module.address, ModuleCallRouter(module))
    avatar.exec(module.address, 0, encode_module_call("setQuestionTimeout(uint32)", 42))
"""

from dataclasses import dataclass
from typing import Any, Dict

from eth_utils import encode_hex

from ..crypto.contract import (
    compute_function_selector,
    decode_arguments,
    decode_function_call,
    encode_function_call,
    parse_argument_types,
)
from ..exceptions import ModuleError
from ..logger import get_logger
from .types import Operation

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModuleCall:
    """External function exposed by the module."""
    signature: str
    method: str
    with_caller: bool = True


MODULE_CALLS = (
    ModuleCall("setQuestionTimeout(uint32)", "set_question_timeout"),
    ModuleCall("setQuestionCooldown(uint32)", "set_question_cooldown"),
    ModuleCall("setAnswerExpiration(uint32)", "set_answer_expiration"),
    ModuleCall("setArbitrator(address)", "set_arbitrator"),
    ModuleCall("setMinimumBond(uint256)", "set_minimum_bond"),
    ModuleCall("setTemplate(uint256)", "set_template"),
    ModuleCall("setAvatar(address)", "set_avatar"),
    ModuleCall("setTarget(address)", "set_target"),
    ModuleCall("transferOwnership(address)", "transfer_ownership"),
    ModuleCall("markProposalAsInvalid(string,bytes32[])", "mark_proposal_as_invalid"),
    ModuleCall("markProposalAsInvalidByHash(bytes32)", "mark_proposal_as_invalid_by_hash"),
    ModuleCall(
        "markProposalWithExpiredAnswerAsInvalid(bytes32)",
        "mark_proposal_with_expired_answer_as_invalid",
        with_caller=False,
    ),
    ModuleCall("markProposalReadyForExecution(string,bytes32[])", "mark_proposal_ready_for_execution"),
    ModuleCall("addProposal(string,bytes32[])", "add_proposal", with_caller=False),
)


def encode_module_call(signature: str, *args: Any) -> bytes:
    """Calldata for one of the module's external functions."""
    return encode_function_call(signature, *args)


def _normalize(value: Any) -> Any:
    # bytes32[] decodes as a tuple
    if isinstance(value, tuple):
        return [_normalize(v) for v in value]
    return value


class ModuleCallRouter:
    """Avatar call handler that dispatches calldata to module methods."""

    def __init__(self, module):
        self.module = module
        self._routes: Dict[bytes, ModuleCall] = {
            compute_function_selector(call.signature): call for call in MODULE_CALLS
        }

    def __call__(self, sender: str, value: int, data: bytes, operation: Operation) -> bool:
        if operation != Operation.CALL:
            raise ModuleError("Module can only be called, not delegate-called")
        if value:
            raise ModuleError("Module does not accept value")

        selector, payload = decode_function_call(data)
        route = self._routes.get(selector)
        if route is None:
            raise ModuleError(f"Unknown function selector {encode_hex(selector)}")

        args = [
            _normalize(arg)
            for arg in decode_arguments(parse_argument_types(route.signature), payload)
        ]
        logger.debug(f"Routing {route.signature} from {sender}")
        method = getattr(self.module, route.method)
        if route.with_caller:
            method(sender, *args)
        else:
            method(*args)
        return True
