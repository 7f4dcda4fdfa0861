"""
In-Memory Reality Oracle

A deterministic, single-process implementation of the oracle interface.
Question ids are derived exactly like the on-chain oracle derives them, so a
module running against it exercises its real id validation.

Besides the interface it exposes the answering side of the oracle
(``submit_answer``) and a few hooks (``set_result``, ``set_bond``,
``set_finalize_ts``) for driving scenarios in tests and tooling.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from eth_utils import encode_hex, to_checksum_address

from ..constants import ANSWER_TRUE, DEFAULT_TEMPLATE, INVALIDATED
from ..crypto.hashing import to_word
from ..exceptions import OracleError
from ..logger import get_logger
from ..module.questions import (
    compute_question_id,
    compute_question_id_with_min_bond,
    content_hash,
)
from .interface import RealityOracle

logger = get_logger(__name__)

# Template 0 is always the plain bool template
BOOL_TEMPLATE = '{"title": "%s", "type": "bool", "category": "%s", "lang": "%s"}'


@dataclass
class OracleQuestion:
    """State of one question tracked by the oracle."""
    question_id: bytes
    content_hash: bytes
    question: str
    arbitrator: str
    timeout: int
    opening_ts: int
    min_bond: int = 0
    best_answer: bytes = b''
    bond: int = 0
    finalize_ts: int = 0
    history: List[Tuple[bytes, int, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": encode_hex(self.question_id),
            "contentHash": encode_hex(self.content_hash),
            "question": self.question,
            "arbitrator": self.arbitrator,
            "timeout": self.timeout,
            "openingTs": self.opening_ts,
            "minBond": str(self.min_bond),
            "bestAnswer": encode_hex(self.best_answer) if self.best_answer else None,
            "bond": str(self.bond),
            "finalizeTs": self.finalize_ts,
            "answers": len(self.history),
        }


class InMemoryOracle(RealityOracle):
    """
    Reality-style oracle held in memory.

    Answers follow the escalation rule: each new answer must post at least
    the question's minimum bond and at least double the previous bond. An
    answer finalizes ``timeout`` seconds after it was given unless it is
    outbid.
    """

    def __init__(
        self,
        address: str,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._address = to_checksum_address(address)
        self._clock = clock or (lambda: int(time.time()))
        self._questions: Dict[bytes, OracleQuestion] = {}
        self._templates: List[str] = [BOOL_TEMPLATE]
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    @property
    def address(self) -> str:
        return self._address

    # ── Templates ───────────────────────────────────────────────────

    def create_template(self, content: str) -> int:
        if not content:
            raise OracleError("Template content cannot be empty")
        self._templates.append(content)
        template_id = len(self._templates) - 1
        self.calls.append(("create_template", (content,)))
        logger.info(f"Oracle template #{template_id} created")
        return template_id

    def create_default_template(self) -> int:
        """Register the module's bool proposal template."""
        return self.create_template(DEFAULT_TEMPLATE)

    def template(self, template_id: int) -> str:
        if template_id < 0 or template_id >= len(self._templates):
            raise OracleError("template must exist")
        return self._templates[template_id]

    # ── Asking ──────────────────────────────────────────────────────

    def _register(
        self,
        question_id: bytes,
        template_id: int,
        question: str,
        arbitrator: str,
        timeout: int,
        opening_ts: int,
        min_bond: int,
    ) -> bytes:
        self.template(template_id)
        if timeout <= 0:
            raise OracleError("timeout must be positive")
        if question_id in self._questions:
            raise OracleError("question must not exist")
        self._questions[question_id] = OracleQuestion(
            question_id=question_id,
            content_hash=content_hash(template_id, opening_ts, question),
            question=question,
            arbitrator=to_checksum_address(arbitrator),
            timeout=timeout,
            opening_ts=opening_ts,
            min_bond=min_bond,
        )
        logger.info(f"Oracle question asked: {encode_hex(question_id)}")
        return question_id

    def ask_question(
        self,
        template_id: int,
        question: str,
        arbitrator: str,
        timeout: int,
        opening_ts: int,
        nonce: int,
        sender: str,
    ) -> bytes:
        self.calls.append((
            "ask_question",
            (template_id, question, arbitrator, timeout, opening_ts, nonce),
        ))
        question_id = compute_question_id(
            template_id, question, arbitrator, timeout, opening_ts, nonce, sender,
        )
        return self._register(
            question_id, template_id, question, arbitrator, timeout, opening_ts, 0,
        )

    def ask_question_with_min_bond(
        self,
        template_id: int,
        question: str,
        arbitrator: str,
        timeout: int,
        opening_ts: int,
        nonce: int,
        min_bond: int,
        sender: str,
    ) -> bytes:
        self.calls.append((
            "ask_question_with_min_bond",
            (template_id, question, arbitrator, timeout, opening_ts, nonce, min_bond),
        ))
        question_id = compute_question_id_with_min_bond(
            template_id, question, arbitrator, timeout, opening_ts, nonce,
            min_bond, self._address, sender,
        )
        return self._register(
            question_id, template_id, question, arbitrator, timeout, opening_ts, min_bond,
        )

    # ── Answering ───────────────────────────────────────────────────

    def question(self, question_id: bytes) -> OracleQuestion:
        entry = self._questions.get(question_id)
        if entry is None:
            raise OracleError("question must exist")
        return entry

    def has_question(self, question_id: bytes) -> bool:
        return question_id in self._questions

    def is_finalized(self, question_id: bytes) -> bool:
        entry = self._questions.get(question_id)
        return (
            entry is not None
            and entry.finalize_ts > 0
            and entry.finalize_ts <= self._clock()
        )

    def submit_answer(
        self,
        question_id: bytes,
        answer: Union[bytes, int, bool],
        bond: int,
        answerer: str = "",
    ) -> OracleQuestion:
        """
        Post *answer* backed by *bond*; restarts the finalization timer.
        """
        entry = self.question(question_id)
        now = self._clock()
        if entry.opening_ts and now < entry.opening_ts:
            raise OracleError("question must be open")
        if self.is_finalized(question_id):
            raise OracleError("question must not be finalized")
        if bond <= 0 or bond < entry.min_bond:
            raise OracleError("bond must exceed the minimum")
        if entry.bond and bond < entry.bond * 2:
            raise OracleError("bond must be double at least previous bond")

        entry.best_answer = to_word(answer)
        entry.bond = bond
        entry.finalize_ts = now + entry.timeout
        entry.history.append((entry.best_answer, bond, answerer))
        logger.info(
            f"Oracle answer for {encode_hex(question_id)}: "
            f"{encode_hex(entry.best_answer)} (bond={bond})"
        )
        return entry

    # ── Test hooks ──────────────────────────────────────────────────

    def set_result(
        self,
        question_id: bytes,
        answer: Union[bytes, int, bool],
        finalize_ts: Optional[int] = None,
        bond: Optional[int] = None,
    ) -> OracleQuestion:
        """Force a finalized answer (as an arbitrator ruling would)."""
        entry = self.question(question_id)
        entry.best_answer = to_word(answer)
        entry.finalize_ts = self._clock() if finalize_ts is None else finalize_ts
        if bond is not None:
            entry.bond = bond
        return entry

    def set_bond(self, question_id: bytes, bond: int):
        self.question(question_id).bond = bond

    def set_finalize_ts(self, question_id: bytes, finalize_ts: int):
        self.question(question_id).finalize_ts = finalize_ts

    # ── Queries ─────────────────────────────────────────────────────

    def result_for(self, question_id: bytes) -> bytes:
        self.calls.append(("result_for", (question_id,)))
        if not self.is_finalized(question_id):
            raise OracleError("question must be finalized")
        return self._questions[question_id].best_answer

    def get_bond(self, question_id: bytes) -> int:
        entry = self._questions.get(question_id)
        return entry.bond if entry else 0

    def get_finalize_ts(self, question_id: bytes) -> int:
        entry = self._questions.get(question_id)
        return entry.finalize_ts if entry else 0

    def is_accepted(self, question_id: bytes) -> bool:
        return self.is_finalized(question_id) and self.result_for(question_id) == ANSWER_TRUE

    def is_invalidated(self, question_id: bytes) -> bool:
        return self.is_finalized(question_id) and self.result_for(question_id) == INVALIDATED

    def call_count(self, method: Optional[str] = None) -> int:
        if method is None:
            return len(self.calls)
        return sum(1 for name, _ in self.calls if name == method)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self._address,
            "templates": len(self._templates),
            "questions": [q.to_dict() for q in self._questions.values()],
        }

    def __repr__(self) -> str:
        return f"<InMemoryOracle {self._address} questions={len(self._questions)}>"
