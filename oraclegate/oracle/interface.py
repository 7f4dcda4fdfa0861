"""
Oracle Adapter Interface

The module consumes a crowd-adjudicated binary question oracle only through
this interface. Implementations raise on failure; the module never catches
those errors, so a failing oracle call aborts the whole operation.

Answer space (32-byte words):
    ANSWER_TRUE   accepted
    ANSWER_FALSE  rejected
    INVALIDATED   all ones, "this outcome must not be trusted"
"""

from abc import ABC, abstractmethod


class RealityOracle(ABC):
    """Query / command primitives of the question oracle."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Address of the oracle contract (bound into bond-aware question ids)."""
        ...

    @abstractmethod
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
        """
        Open a question on behalf of *sender*.

        Returns:
            32-byte question id
        """
        ...

    @abstractmethod
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
        """Open a question that only accepts answers backed by *min_bond*."""
        ...

    @abstractmethod
    def result_for(self, question_id: bytes) -> bytes:
        """Final answer; raises while the question is not finalized."""
        ...

    @abstractmethod
    def get_bond(self, question_id: bytes) -> int:
        """Bond posted on the current best answer."""
        ...

    @abstractmethod
    def get_finalize_ts(self, question_id: bytes) -> int:
        """Timestamp at which the current answer finalizes (0 if unanswered)."""
        ...

    @abstractmethod
    def create_template(self, content: str) -> int:
        """Register a question template; returns its id."""
        ...
