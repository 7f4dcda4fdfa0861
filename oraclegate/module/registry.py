"""
Proposal Registry

Content-addressed stores owned by one module engine:

  - bindings:      proposal key -> ZERO_STATE | bound value | INVALIDATED
  - executed:      (question_hash, tx_hash) -> True
  - announcements: (question_id, question) -> timestamp

With ``RegistryIndex.BY_QUESTION_HASH`` the key is the question hash and the
bound value the question id; ``BY_QUESTION_ID`` stores the reverse.
INVALIDATED is terminal for the question it replaced: a hash-indexed key is
only rebound by a retry under a fresh nonce.
"""

from typing import Any, Dict, Optional, Set, Tuple

from eth_utils import encode_hex

from ..constants import INVALIDATED, ZERO_STATE
from ..exceptions import ProposalStateError, SequencingError
from ..logger import get_logger
from .types import RegistryIndex

logger = get_logger(__name__)


class ProposalRegistry:
    """Keyed stores for question bindings, executions and announcements."""

    def __init__(self, index: RegistryIndex = RegistryIndex.BY_QUESTION_HASH):
        self.index = index
        self._bindings: Dict[bytes, bytes] = {}
        self._executed: Set[Tuple[bytes, bytes]] = set()
        self._announcements: Dict[Tuple[bytes, str], int] = {}
        self._questions: Dict[bytes, Tuple[int, bytes]] = {}

    # ── Bindings ──────────────────────────────────────────────────────

    def state(self, key: bytes) -> bytes:
        """Current 32-byte state for *key* (ZERO_STATE when unknown)."""
        return self._bindings.get(key, ZERO_STATE)

    def is_unset(self, key: bytes) -> bool:
        return self.state(key) == ZERO_STATE

    def is_invalidated(self, key: bytes) -> bool:
        return self.state(key) == INVALIDATED

    def bind(self, key: bytes, value: bytes, replace: bool = False):
        """
        Bind *key* to *value*.

        Without *replace* the key must be unset. With *replace* the existing
        binding is swapped; the caller must already have checked that the
        previous question was resolved as invalid (retry under a fresh nonce).
        """
        if value in (ZERO_STATE, INVALIDATED):
            raise ProposalStateError("Cannot bind a reserved state value")
        if not replace:
            current = self.state(key)
            if current == INVALIDATED:
                raise ProposalStateError("This proposal has been marked as invalid")
            if current != ZERO_STATE:
                raise ProposalStateError("Proposal has already been submitted")
        self._bindings[key] = value
        logger.debug(f"Bound {encode_hex(key)} → {encode_hex(value)}")

    def invalidate(self, key: bytes) -> bytes:
        """Force *key* to INVALIDATED and return the previous state."""
        previous = self.state(key)
        self._bindings[key] = INVALIDATED
        return previous

    @property
    def binding_count(self) -> int:
        return len(self._bindings)

    # ── Executed transactions ────────────────────────────────────────

    def is_executed(self, question_hash: bytes, tx_hash: bytes) -> bool:
        return (question_hash, tx_hash) in self._executed

    def mark_executed(self, question_hash: bytes, tx_hash: bytes):
        if (question_hash, tx_hash) in self._executed:
            raise SequencingError("Cannot execute transaction again")
        self._executed.add((question_hash, tx_hash))

    def unmark_executed(self, question_hash: bytes, tx_hash: bytes):
        """Roll back a mark whose avatar call did not go through."""
        self._executed.discard((question_hash, tx_hash))

    def executed_count(self, question_hash: bytes) -> int:
        return sum(1 for q, _ in self._executed if q == question_hash)

    # ── Question history ─────────────────────────────────────────────

    def record_question(self, question_hash: bytes, nonce: int, question_id: bytes):
        self._questions[question_hash] = (nonce, question_id)

    def latest_question(self, question_hash: bytes) -> Optional[Tuple[int, bytes]]:
        """(nonce, question_id) of the most recent question asked for *question_hash*."""
        return self._questions.get(question_hash)

    # ── Announcements ────────────────────────────────────────────────

    def announcement(self, question_id: bytes, question: str) -> Optional[int]:
        return self._announcements.get((question_id, question))

    def record_announcement(self, question_id: bytes, question: str, timestamp: int):
        if (question_id, question) in self._announcements:
            raise ProposalStateError("Transaction was already marked as ready")
        self._announcements[(question_id, question)] = timestamp

    # ── Serialization ────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index.value,
            "bindings": {
                encode_hex(k): encode_hex(v) for k, v in self._bindings.items()
            },
            "executed": sorted(
                [encode_hex(q), encode_hex(t)] for q, t in self._executed
            ),
            "announcements": [
                {"questionId": encode_hex(qid), "question": q, "timestamp": ts}
                for (qid, q), ts in self._announcements.items()
            ],
        }

    def __repr__(self) -> str:
        return (
            f"<ProposalRegistry index={self.index.value} "
            f"bindings={len(self._bindings)} executed={len(self._executed)}>"
        )
