"""
Execution Gate

Decides whether a transaction at a given position of a resolved proposal is
currently eligible for execution. Checks run in a fixed order and each one
raises with its reason string:

  1. question binding set and not invalidated
  2. oracle answer is exactly ANSWER_TRUE
  3. bond on the answer >= minimum bond        (bond-aware profiles)
  4. cooldown elapsed since the anchor timestamp
  5. answer not expired                        (when expiration is nonzero)
  6. supplied transaction hashes to tx_hashes[i]
  7. (question, tx) not executed yet
  8. tx_hashes[i-1] already executed

Announcement profiles replace 2–5 with the readiness record, whose timestamp
anchors the cooldown.
"""

from typing import Callable, Optional, Sequence

from eth_utils import encode_hex

from ..constants import ANSWER_TRUE, INVALIDATED, ZERO_STATE
from ..exceptions import (
    IntegrityError,
    OracleAnswerError,
    ProposalStateError,
    SequencingError,
    TimingError,
)
from ..logger import get_logger
from .registry import ProposalRegistry
from .settings import ModuleSettings
from .types import ModuleProfile, RegistryIndex

logger = get_logger(__name__)

NO_QUESTION_ID = "No question id set for provided proposal"


class ExecutionGate:
    """Eligibility checks shared by execution and readiness marking."""

    def __init__(
        self,
        registry: ProposalRegistry,
        settings: ModuleSettings,
        oracle,
        profile: ModuleProfile,
        clock: Callable[[], int],
    ):
        self.registry = registry
        self.settings = settings
        self.oracle = oracle
        self.profile = profile
        self._clock = clock

    # ── 1. Binding ──────────────────────────────────────────────────

    def resolve_question_id(
        self,
        question_hash: bytes,
        question_id: Optional[bytes] = None,
    ) -> bytes:
        """
        Return the live question id bound to *question_hash*.

        For id-indexed registries the caller names the question id and it
        must be bound to exactly this question hash.
        """
        if self.profile.registry_index == RegistryIndex.BY_QUESTION_HASH:
            state = self.registry.state(question_hash)
            if state == INVALIDATED:
                raise ProposalStateError("Proposal has been invalidated")
            if state == ZERO_STATE:
                raise ProposalStateError(NO_QUESTION_ID)
            if question_id is not None and question_id != state:
                raise IntegrityError("Unexpected question id")
            return state

        if question_id is None:
            raise ProposalStateError(NO_QUESTION_ID)
        state = self.registry.state(question_id)
        if state == INVALIDATED:
            raise ProposalStateError("Proposal has been invalidated")
        if state != question_hash:
            raise ProposalStateError(NO_QUESTION_ID)
        return question_id

    # ── 2–5. Oracle answer ──────────────────────────────────────────

    def check_answer(self, question_id: bytes):
        if self.oracle.result_for(question_id) != ANSWER_TRUE:
            raise OracleAnswerError("Transaction was not approved")

    def check_bond(self, question_id: bytes):
        minimum = self.settings.minimum_bond
        if not self.profile.bond_check or minimum == 0:
            return
        bond = self.oracle.get_bond(question_id)
        if bond < minimum:
            raise OracleAnswerError("Bond on question not high enough")

    def check_timing(self, anchor_ts: int):
        """Cooldown and expiration, both measured from *anchor_ts*."""
        elapsed = self._clock() - anchor_ts
        if elapsed < self.settings.cooldown:
            raise TimingError("Wait for additional cooldown")
        expiration = self.settings.answer_expiration
        if self.profile.expiration_check and expiration != 0 and elapsed > expiration:
            raise TimingError("Answer has expired")

    def check_oracle(self, question_id: bytes):
        """Steps 2–5 against the oracle's own finalize timestamp."""
        self.check_answer(question_id)
        self.check_bond(question_id)
        self.check_timing(self.oracle.get_finalize_ts(question_id))

    def check_announcement(self, question_id: bytes, question: str):
        """Readiness record replaces steps 2–5 for announcement profiles."""
        announced_at = self.registry.announcement(question_id, question)
        if announced_at is None:
            raise ProposalStateError("Proposal execution has not been marked as ready")
        self.check_timing(announced_at)

    # ── 6–8. Transaction ────────────────────────────────────────────

    @staticmethod
    def check_index(tx_hashes: Sequence[bytes], index: int):
        if index < 0 or index >= len(tx_hashes):
            raise SequencingError(
                f"Transaction index {index} out of range for {len(tx_hashes)} transactions"
            )

    @staticmethod
    def check_transaction_hash(expected: bytes, actual: bytes):
        if expected != actual:
            logger.warning(
                f"Transaction hash mismatch: expected {encode_hex(expected)}, "
                f"got {encode_hex(actual)}"
            )
            raise IntegrityError("Unexpected transaction hash")

    def check_sequence(self, question_hash: bytes, tx_hashes: Sequence[bytes], index: int):
        if self.registry.is_executed(question_hash, tx_hashes[index]):
            raise SequencingError("Cannot execute transaction again")
        if index > 0 and not self.registry.is_executed(question_hash, tx_hashes[index - 1]):
            raise SequencingError("Previous transaction not executed yet")
