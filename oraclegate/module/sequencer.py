"""
Transaction Sequencer

Executes approved transactions one at a time through the avatar. The
(question, tx) pair is marked executed before the avatar is called so that a
re-entrant call for the same pair is rejected; a failed call rolls the mark
back and leaves the transaction retryable.
"""

from typing import Any, Callable, Sequence

from eth_utils import encode_hex

from ..exceptions import ModuleTransactionError
from ..logger import get_logger
from .events import ModuleEvent, TransactionExecuted
from .registry import ProposalRegistry
from .types import Operation

logger = get_logger(__name__)


class TransactionSequencer:
    """Strict in-order consumption of a proposal's transaction array."""

    def __init__(
        self,
        registry: ProposalRegistry,
        executor: Callable[[], Any],
        module_address: str,
        emit: Callable[[ModuleEvent], None],
        clock: Callable[[], int],
    ):
        self.registry = registry
        self._executor = executor
        self.module_address = module_address
        self._emit = emit
        self._clock = clock

    def next_index(self, question_hash: bytes, tx_hashes: Sequence[bytes]) -> int:
        """First position not yet executed (0 when every position is)."""
        for index, tx_hash in enumerate(tx_hashes):
            if not self.registry.is_executed(question_hash, tx_hash):
                return index
        return 0

    def is_complete(self, question_hash: bytes, tx_hashes: Sequence[bytes]) -> bool:
        return bool(tx_hashes) and all(
            self.registry.is_executed(question_hash, h) for h in tx_hashes
        )

    def execute(
        self,
        question_hash: bytes,
        tx_hash: bytes,
        index: int,
        to: str,
        value: int,
        data: bytes,
        operation: Operation,
    ):
        self.registry.mark_executed(question_hash, tx_hash)
        try:
            success = self._executor().exec_transaction_from_module(
                to, value, data, operation, sender=self.module_address,
            )
        except Exception:
            self.registry.unmark_executed(question_hash, tx_hash)
            raise

        if not success:
            self.registry.unmark_executed(question_hash, tx_hash)
            logger.warning(
                f"Module transaction #{index} ({encode_hex(tx_hash)}) failed; "
                f"left unexecuted"
            )
            raise ModuleTransactionError("Module transaction failed")

        logger.info(
            f"Executed module transaction #{index} {encode_hex(tx_hash)} → {to}"
        )
        self._emit(TransactionExecuted(
            timestamp=self._clock(),
            question_hash=question_hash,
            tx_hash=tx_hash,
            index=index,
        ))
