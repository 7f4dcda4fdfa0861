"""
Controlled Account (Avatar)

The account whose assets and permissions a module controls. A module never
acts directly; it asks the avatar to perform each approved transaction via
``exec_transaction_from_module``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from eth_utils import encode_hex, is_same_address, to_checksum_address

from .exceptions import OracleGateException
from .logger import get_logger
from .module.types import Operation

logger = get_logger(__name__)

# (sender, value, data, operation) -> success
CallHandler = Callable[[str, int, bytes, Operation], bool]


class Avatar(ABC):
    """Generic call-execution primitive of the controlled account."""

    @property
    @abstractmethod
    def address(self) -> str:
        ...

    @abstractmethod
    def exec_transaction_from_module(
        self,
        to: str,
        value: int,
        data: bytes,
        operation: Operation,
        sender: str,
    ) -> bool:
        """
        Perform a call on behalf of the module *sender*.

        Returns:
            True if the call succeeded, False if it failed or was refused
        """
        ...


@dataclass(frozen=True)
class AvatarCall:
    """One call the avatar performed (or refused)."""
    sender: str
    to: str
    value: int
    data: bytes
    operation: Operation
    success: bool

    def to_dict(self):
        return {
            "sender": self.sender,
            "to": self.to,
            "value": str(self.value),
            "data": encode_hex(self.data),
            "operation": int(self.operation),
            "success": self.success,
        }


class InMemoryAvatar(Avatar):
    """
    Avatar held in memory.

    Only enabled modules may execute. Calls addressed to a registered target
    are dispatched to its handler with the avatar as caller, which lets a
    module be configured "through" its avatar; every other call succeeds
    unless ``fail_calls`` is set or the native balance is too low.
    """

    def __init__(self, address: str, balance: int = 0):
        self._address = to_checksum_address(address)
        self.balance = balance
        self.balances: Dict[str, int] = {}
        self.fail_calls = False
        self._modules: Set[str] = set()
        self._targets: Dict[str, CallHandler] = {}
        self.calls: List[AvatarCall] = []

    @property
    def address(self) -> str:
        return self._address

    # ── Modules ─────────────────────────────────────────────────────

    def enable_module(self, module: str):
        self._modules.add(to_checksum_address(module))
        logger.info(f"Avatar {self._address}: module {module} enabled")

    def disable_module(self, module: str):
        self._modules.discard(to_checksum_address(module))

    def is_module_enabled(self, module: str) -> bool:
        return to_checksum_address(module) in self._modules

    def register_target(self, address: str, handler: CallHandler):
        """Route calls to *address* into *handler*."""
        self._targets[to_checksum_address(address)] = handler

    # ── Execution ───────────────────────────────────────────────────

    def exec_transaction_from_module(
        self,
        to: str,
        value: int,
        data: bytes,
        operation: Operation,
        sender: str,
    ) -> bool:
        success = self._execute(sender, to, value, data, Operation(operation))
        self.calls.append(AvatarCall(
            sender=to_checksum_address(sender),
            to=to_checksum_address(to),
            value=value,
            data=bytes(data),
            operation=Operation(operation),
            success=success,
        ))
        return success

    def _execute(self, sender: str, to: str, value: int, data: bytes, operation: Operation) -> bool:
        if not self.is_module_enabled(sender):
            logger.warning(f"Avatar {self._address}: refused call from disabled module {sender}")
            return False
        if self.fail_calls:
            return False
        if value > self.balance:
            logger.warning(f"Avatar {self._address}: insufficient balance for {value}")
            return False
        try:
            return self.exec(to, value, data, operation)
        except OracleGateException as exc:
            logger.warning(f"Avatar {self._address}: call to {to} reverted: {exc}")
            return False

    def exec(self, to: str, value: int, data: bytes, operation: Operation = Operation.CALL) -> bool:
        """Perform a call as the avatar itself (owner actions on a module)."""
        to = to_checksum_address(to)
        handler = self._targets.get(to)
        if handler is not None:
            success = handler(self._address, value, bytes(data), Operation(operation))
        else:
            success = True
        if success and value:
            self.balance -= value
            self.balances[to] = self.balances.get(to, 0) + value
        return success

    # ── Queries ─────────────────────────────────────────────────────

    def calls_to(self, to: str, data: Optional[bytes] = None) -> List[AvatarCall]:
        return [
            c for c in self.calls
            if is_same_address(c.to, to) and (data is None or c.data == data)
        ]

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def __repr__(self) -> str:
        return f"<InMemoryAvatar {self._address} modules={len(self._modules)} calls={len(self.calls)}>"
