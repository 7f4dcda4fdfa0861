"""
Reality Module Engine

Optimistic execution authorization: a proposal (an id plus an ordered list
of transaction hashes) is turned into a yes/no oracle question; once the
oracle accepts it and the cooldown has passed, the transactions can be
executed through the avatar, strictly in order and each at most once.

One engine serves every module variant; its ModuleProfile selects the
registry direction, question id scheme, bond enforcement, cooldown anchor
and expiration handling. Every operation performs all of its checks and
external reads before writing any state.
"""

import time
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

from eth_utils import encode_hex, is_same_address, to_checksum_address

from ..constants import ANSWER_TRUE, INVALIDATED, ZERO_STATE
from ..crypto.contract import encode_function_call
from ..crypto.typed_data import encode_transaction_data, hash_transaction
from ..exceptions import (
    AuthorizationError,
    ConfigurationError,
    InitializationError,
    IntegrityError,
    ModuleTransactionError,
    OracleAnswerError,
    ProposalStateError,
    TimingError,
)
from ..logger import get_logger
from . import questions
from .calls import ModuleCallRouter
from .events import (
    ExecutionAnnouncement,
    ModuleEvent,
    ProposalInvalidated,
    ProposalQuestionCreated,
    RealityModuleSetup,
)
from .gate import NO_QUESTION_ID, ExecutionGate
from .registry import ProposalRegistry
from .sequencer import TransactionSequencer
from .settings import ModuleSettings, SettingsController
from .types import (
    STANDARD_PROFILE,
    ModuleProfile,
    Operation,
    ProposalStatus,
    QuestionIdScheme,
    RegistryIndex,
    _coerce_data,
)

if TYPE_CHECKING:
    from ..avatar import Avatar
    from ..oracle.interface import RealityOracle

logger = get_logger(__name__)

MARK_READY_SIGNATURE = "markProposalReadyForExecution(string,bytes32[])"


class RealityModule:
    """
    Oracle-gated execution module bound to one avatar.

    The module is created uninitialized; ``set_up`` (or ``deploy``) binds
    its settings exactly once. Callers of owner-gated operations are passed
    explicitly as addresses.
    """

    def __init__(
        self,
        address: str,
        oracle: "RealityOracle",
        executor: "Avatar",
        profile: ModuleProfile = STANDARD_PROFILE,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.address = to_checksum_address(address)
        self.oracle = oracle
        self.profile = profile
        self._clock = clock or (lambda: int(time.time()))
        self._executors: Dict[str, "Avatar"] = {}
        self.register_executor(executor)

        self.registry = ProposalRegistry(profile.registry_index)
        self.events: List[ModuleEvent] = []
        self.call_router = ModuleCallRouter(self)

        self.settings: Optional[ModuleSettings] = None
        self._controller: Optional[SettingsController] = None
        self._gate: Optional[ExecutionGate] = None
        self._sequencer: Optional[TransactionSequencer] = None

    @classmethod
    def deploy(
        cls,
        address: str,
        oracle: "RealityOracle",
        executor: "Avatar",
        owner: str,
        avatar: Optional[str] = None,
        target: Optional[str] = None,
        profile: ModuleProfile = STANDARD_PROFILE,
        clock: Optional[Callable[[], int]] = None,
        initiator: Optional[str] = None,
        **config: Any,
    ) -> "RealityModule":
        """Create and initialize a module in one step."""
        module = cls(address, oracle, executor, profile=profile, clock=clock)
        settings = ModuleSettings(
            owner=owner,
            avatar=avatar or executor.address,
            target=target or executor.address,
            oracle=oracle.address,
            **config,
        )
        module.set_up(settings, initiator=initiator or owner)
        return module

    # ══════════════════════════════════════════════════════════════════
    #  SET UP
    # ══════════════════════════════════════════════════════════════════

    @property
    def initialized(self) -> bool:
        return self.settings is not None

    def set_up(self, settings: ModuleSettings, initiator: Optional[str] = None):
        """
        Bind the module's configuration. Can only run once.

        Raises:
            InitializationError: Already initialized, or a zero address
            ConfigurationError: Timeout or expiration window invalid
        """
        if self.initialized:
            raise InitializationError("Initializable: contract is already initialized")
        if not settings.oracle:
            settings.oracle = self.oracle.address
        settings.validate()
        if not is_same_address(settings.oracle, self.oracle.address):
            raise ConfigurationError(
                f"Oracle {settings.oracle} does not match adapter {self.oracle.address}"
            )

        self.settings = settings
        self._controller = SettingsController(settings, self._emit, self._clock)
        self._gate = ExecutionGate(
            self.registry, settings, self.oracle, self.profile, self._clock,
        )
        self._sequencer = TransactionSequencer(
            self.registry, self._current_executor, self.address, self._emit, self._clock,
        )

        self._emit(RealityModuleSetup(
            timestamp=self._clock(),
            initiator=to_checksum_address(initiator) if initiator else settings.owner,
            owner=settings.owner,
            avatar=settings.avatar,
            target=settings.target,
        ))
        logger.info(
            f"Module {self.address} set up ({self.profile.name}): "
            f"owner={settings.owner} avatar={settings.avatar} target={settings.target}"
        )

    def _require_initialized(self):
        if not self.initialized:
            raise InitializationError("Module is not initialized")

    def register_executor(self, executor: "Avatar"):
        """Make *executor* available as a target for module transactions."""
        self._executors[to_checksum_address(executor.address)] = executor

    def _current_executor(self) -> "Avatar":
        executor = self._executors.get(self.settings.target)
        if executor is None:
            raise ModuleTransactionError(
                f"No executor registered for target {self.settings.target}"
            )
        return executor

    def _emit(self, event: ModuleEvent):
        self.events.append(event)

    def events_named(self, name: str) -> List[ModuleEvent]:
        return [e for e in self.events if e.name == name]

    # ══════════════════════════════════════════════════════════════════
    #  HASHING & QUESTION IDENTITY
    # ══════════════════════════════════════════════════════════════════

    @property
    def chain_id(self) -> int:
        self._require_initialized()
        return self.settings.chain_id

    def get_transaction_hash_data(
        self, to: str, value: int, data: bytes, operation: Operation, nonce: int,
    ) -> bytes:
        return encode_transaction_data(
            self.chain_id, self.address, to, value, data, int(operation), nonce,
        )

    def get_transaction_hash(
        self, to: str, value: int, data: bytes, operation: Operation, nonce: int,
    ) -> bytes:
        """EIP-712 hash of a module transaction, bound to this module and chain."""
        return hash_transaction(
            self.chain_id, self.address, to, value, data, int(operation), nonce,
        )

    @staticmethod
    def build_question(proposal_id: str, tx_hashes: Sequence[bytes]) -> str:
        return questions.build_question(proposal_id, tx_hashes)

    @staticmethod
    def question_hash(question: str) -> bytes:
        return questions.question_hash(question)

    def get_question_id(self, question: str, nonce: int) -> bytes:
        """Id the oracle must assign when this module asks *question* with *nonce*."""
        self._require_initialized()
        s = self.settings
        if self.profile.question_id == QuestionIdScheme.REALITIO_V3:
            return questions.compute_question_id_with_min_bond(
                s.template, question, s.arbitrator, s.timeout, 0, nonce,
                s.minimum_bond, self.oracle.address, self.address,
            )
        return questions.compute_question_id(
            s.template, question, s.arbitrator, s.timeout, 0, nonce, self.address,
        )

    def compute_question_id(
        self,
        template_id: int,
        question: str,
        arbitrator: str,
        timeout: int,
        opening_ts: int,
        nonce: int,
    ) -> bytes:
        """Question id for an arbitrary parameter set asked by this module."""
        return questions.compute_question_id(
            template_id, question, arbitrator, timeout, opening_ts, nonce, self.address,
        )

    # ══════════════════════════════════════════════════════════════════
    #  REGISTRY VIEWS
    # ══════════════════════════════════════════════════════════════════

    @property
    def _by_hash(self) -> bool:
        return self.profile.registry_index == RegistryIndex.BY_QUESTION_HASH

    def question_ids(self, key: bytes) -> bytes:
        """Raw registry state for *key* (question hash or question id, per profile)."""
        return self.registry.state(key)

    def executed_proposal_transactions(self, question_hash: bytes, tx_hash: bytes) -> bool:
        return self.registry.is_executed(question_hash, tx_hash)

    def execution_announcements(self, question_id: bytes, question: str) -> int:
        """Timestamp the proposal was marked ready (0 if never)."""
        return self.registry.announcement(question_id, question) or 0

    def _proposal_key(self, question: str, question_hash: bytes) -> bytes:
        """Registry key under which the proposal's current question lives."""
        if self._by_hash:
            return question_hash
        latest = self.registry.latest_question(question_hash)
        if latest is not None:
            return latest[1]
        return self.get_question_id(question, 0)

    def _effective_expiration(self) -> int:
        return self.settings.answer_expiration if self.profile.expiration_check else 0

    def proposal_status(self, proposal_id: str, tx_hashes: Sequence[bytes]) -> ProposalStatus:
        self._require_initialized()
        question = self.build_question(proposal_id, tx_hashes)
        qhash = self.question_hash(question)
        state = self.registry.state(self._proposal_key(question, qhash))
        if state == ZERO_STATE:
            return ProposalStatus.UNSET
        if state == INVALIDATED:
            return ProposalStatus.INVALIDATED
        if self._sequencer.is_complete(qhash, tx_hashes):
            return ProposalStatus.EXECUTED
        return ProposalStatus.ASKED

    # ══════════════════════════════════════════════════════════════════
    #  PROPOSAL SUBMISSION
    # ══════════════════════════════════════════════════════════════════

    def add_proposal(self, proposal_id: str, tx_hashes: Sequence[bytes]) -> bytes:
        """Submit a proposal under nonce 0."""
        return self.add_proposal_with_nonce(proposal_id, tx_hashes, 0)

    def add_proposal_with_nonce(
        self,
        proposal_id: str,
        tx_hashes: Sequence[bytes],
        nonce: int,
    ) -> bytes:
        """
        Ask the oracle about a proposal and bind the returned question.

        A nonzero nonce re-asks a proposal whose previous question the
        oracle resolved as invalid. Nonces need not be consecutive.

        Returns:
            The question id assigned by the oracle
        """
        self._require_initialized()
        if nonce < 0:
            raise ProposalStateError("Nonce cannot be negative")
        tx_hashes = list(tx_hashes)
        question = self.build_question(proposal_id, tx_hashes)
        qhash = self.question_hash(question)
        expected_id = self.get_question_id(question, nonce)

        if self._by_hash:
            key, value = qhash, expected_id
        else:
            key, value = expected_id, qhash

        if nonce > 0:
            self._check_resubmission(question, qhash, expected_id)
            if not self._by_hash and not self.registry.is_unset(key):
                raise ProposalStateError("Proposal has already been submitted")
        elif not self.registry.is_unset(key):
            raise ProposalStateError("Proposal has already been submitted")

        question_id = self._ask(question, nonce)
        if question_id != expected_id:
            logger.error(
                f"Oracle returned {encode_hex(question_id)}, "
                f"expected {encode_hex(expected_id)}"
            )
            raise IntegrityError("Unexpected question id")

        self.registry.bind(key, value, replace=nonce > 0)
        self.registry.record_question(qhash, nonce, question_id)
        self._emit(ProposalQuestionCreated(
            timestamp=self._clock(),
            question_id=question_id,
            proposal_id=proposal_id,
            nonce=nonce,
        ))
        logger.info(
            f"Proposal '{proposal_id}' asked as {encode_hex(question_id)} "
            f"(nonce={nonce}, txs={len(tx_hashes)})"
        )
        return question_id

    def _check_resubmission(self, question: str, question_hash: bytes, expected_id: bytes):
        """
        A retry needs a previously asked question that the oracle resolved
        as invalid. An owner veto on that question does not block the retry;
        a pre-emptive veto on a never-asked proposal does.
        """
        latest = self.registry.latest_question(question_hash)
        if latest is None:
            if self.registry.is_invalidated(self._proposal_key(question, question_hash)):
                raise ProposalStateError("This proposal has been marked as invalid")
            raise OracleAnswerError("Previous proposal was not invalidated")
        previous = latest[1]
        if previous == expected_id:
            raise ProposalStateError("Proposal has already been submitted")
        if self.oracle.result_for(previous) != INVALIDATED:
            raise OracleAnswerError("Previous proposal was not invalidated")

    def _ask(self, question: str, nonce: int) -> bytes:
        s = self.settings
        if self.profile.question_id == QuestionIdScheme.REALITIO_V3:
            return self.oracle.ask_question_with_min_bond(
                s.template, question, s.arbitrator, s.timeout, 0, nonce,
                s.minimum_bond, sender=self.address,
            )
        return self.oracle.ask_question(
            s.template, question, s.arbitrator, s.timeout, 0, nonce, sender=self.address,
        )

    # ══════════════════════════════════════════════════════════════════
    #  INVALIDATION
    # ══════════════════════════════════════════════════════════════════

    def _invalidate(self, key: bytes, reason: str):
        previous = self.registry.invalidate(key)
        self._emit(ProposalInvalidated(
            timestamp=self._clock(), key=key, previous_state=previous, reason=reason,
        ))
        logger.info(f"Proposal key {encode_hex(key)} invalidated ({reason})")

    def mark_proposal_as_invalid(
        self, caller: str, proposal_id: str, tx_hashes: Sequence[bytes],
    ):
        """Owner vetoes a proposal; it can never be asked or executed again."""
        self._require_initialized()
        self._controller.require_owner(caller)
        question = self.build_question(proposal_id, tx_hashes)
        self._invalidate(self._proposal_key(question, self.question_hash(question)), "owner")

    def mark_proposal_as_invalid_by_hash(self, caller: str, key: bytes):
        self._require_initialized()
        self._controller.require_owner(caller)
        self._invalidate(key, "owner")

    def mark_proposal_with_expired_answer_as_invalid(self, key: bytes):
        """
        Anyone may invalidate a proposal whose accepted answer outlived the
        answer expiration window.
        """
        self._require_initialized()
        expiration = self._effective_expiration()
        if expiration == 0:
            raise ConfigurationError("Answers are valid forever")

        state = self.registry.state(key)
        if state == INVALIDATED:
            raise ProposalStateError("Proposal is already invalidated")
        if state == ZERO_STATE:
            raise ProposalStateError(NO_QUESTION_ID)
        question_id = state if self._by_hash else key

        if self.oracle.result_for(question_id) != ANSWER_TRUE:
            raise OracleAnswerError("Only positive answers can expire")
        finalize_ts = self.oracle.get_finalize_ts(question_id)
        if finalize_ts + expiration >= self._clock():
            raise TimingError("Answer has not expired yet")

        self._invalidate(key, "expired")

    # ══════════════════════════════════════════════════════════════════
    #  EXECUTION ANNOUNCEMENT
    # ══════════════════════════════════════════════════════════════════

    def mark_proposal_ready_for_execution(
        self,
        caller: str,
        proposal_id: str,
        tx_hashes: Sequence[bytes],
        question_id: Optional[bytes] = None,
    ):
        """
        Record that an accepted proposal is ready; starts its cooldown.
        Only the module's target may announce.
        """
        self._require_initialized()
        if not self.profile.requires_announcement:
            raise ConfigurationError(
                f"Profile '{self.profile.name}' does not use execution announcements"
            )
        if not caller or not is_same_address(caller, self.settings.target):
            raise AuthorizationError("Not authorized to mark proposal as ready")

        question = self.build_question(proposal_id, tx_hashes)
        qhash = self.question_hash(question)
        if question_id is None:
            question_id = self._proposal_key(question, qhash)
        question_id = self._gate.resolve_question_id(qhash, question_id)
        self._gate.check_answer(question_id)
        self._gate.check_bond(question_id)

        self.registry.record_announcement(question_id, question, self._clock())
        self._emit(ExecutionAnnouncement(
            timestamp=self._clock(),
            question_id=question_id,
            proposal_id=proposal_id,
            question=question,
        ))
        logger.info(f"Proposal '{proposal_id}' marked ready for execution")

    def request_proposal_ready_for_execution(
        self, proposal_id: str, tx_hashes: Sequence[bytes],
    ):
        """Ask the target to announce the proposal through a module transaction."""
        self._require_initialized()
        data = encode_function_call(MARK_READY_SIGNATURE, proposal_id, list(tx_hashes))
        success = self._current_executor().exec_transaction_from_module(
            self.address, 0, data, Operation.CALL, sender=self.address,
        )
        if not success:
            raise ModuleTransactionError("Could not mark proposal ready for execution")

    # ══════════════════════════════════════════════════════════════════
    #  EXECUTION
    # ══════════════════════════════════════════════════════════════════

    def execute_proposal(
        self,
        proposal_id: str,
        tx_hashes: Sequence[bytes],
        to: str,
        value: int,
        data: bytes,
        operation: Operation = Operation.CALL,
        question_id: Optional[bytes] = None,
    ):
        """Execute the next unexecuted transaction of the proposal."""
        self._require_initialized()
        question = self.build_question(proposal_id, tx_hashes)
        index = self._sequencer.next_index(self.question_hash(question), tx_hashes)
        self.execute_proposal_with_index(
            proposal_id, tx_hashes, to, value, data, operation, index,
            question_id=question_id,
        )

    def execute_proposal_with_index(
        self,
        proposal_id: str,
        tx_hashes: Sequence[bytes],
        to: str,
        value: int,
        data: bytes,
        operation: Operation,
        tx_index: int,
        nonce: Optional[int] = None,
        question_id: Optional[bytes] = None,
    ):
        """
        Execute the transaction at *tx_index* if the gate allows it.

        The supplied transaction must hash, with nonce *nonce* (default: the
        index), to ``tx_hashes[tx_index]``.

        Raises:
            ProposalStateError:     Question unset or proposal invalidated
            OracleAnswerError:      Answer not accepted or bond too low
            TimingError:            Cooldown not over or answer expired
            IntegrityError:         Transaction does not match its hash
            SequencingError:        Replay or out-of-order execution
            ModuleTransactionError: Avatar call failed (retryable)
        """
        self._require_initialized()
        tx_hashes = list(tx_hashes)
        self._gate.check_index(tx_hashes, tx_index)
        data = _coerce_data(data)

        question = self.build_question(proposal_id, tx_hashes)
        qhash = self.question_hash(question)
        if question_id is None and not self._by_hash:
            question_id = self._proposal_key(question, qhash)
        question_id = self._gate.resolve_question_id(qhash, question_id)

        tx_hash = self.get_transaction_hash(
            to, value, data, operation, tx_index if nonce is None else nonce,
        )
        if self.profile.requires_announcement:
            self._gate.check_transaction_hash(tx_hashes[tx_index], tx_hash)
            self._gate.check_announcement(question_id, question)
        else:
            self._gate.check_answer(question_id)
            self._gate.check_bond(question_id)
            self._gate.check_timing(self.oracle.get_finalize_ts(question_id))
            self._gate.check_transaction_hash(tx_hashes[tx_index], tx_hash)
        self._gate.check_sequence(qhash, tx_hashes, tx_index)

        self._sequencer.execute(
            qhash, tx_hash, tx_index, to_checksum_address(to), value, data, Operation(operation),
        )

    # ══════════════════════════════════════════════════════════════════
    #  OWNER SETTINGS
    # ══════════════════════════════════════════════════════════════════

    def _controlled(self) -> SettingsController:
        self._require_initialized()
        return self._controller

    def set_question_timeout(self, caller: str, timeout: int):
        self._controlled().set_question_timeout(caller, timeout)

    def set_question_cooldown(self, caller: str, cooldown: int):
        self._controlled().set_question_cooldown(caller, cooldown)

    def set_answer_expiration(self, caller: str, expiration: int):
        self._controlled().set_answer_expiration(caller, expiration)

    def set_minimum_bond(self, caller: str, bond: int):
        self._controlled().set_minimum_bond(caller, bond)

    def set_template(self, caller: str, template: int):
        self._controlled().set_template(caller, template)

    def set_arbitrator(self, caller: str, arbitrator: str):
        self._controlled().set_arbitrator(caller, arbitrator)

    def set_avatar(self, caller: str, avatar: str):
        self._controlled().set_avatar(caller, avatar)

    def set_target(self, caller: str, target: str):
        self._controlled().set_target(caller, target)

    def transfer_ownership(self, caller: str, new_owner: str):
        self._controlled().transfer_ownership(caller, new_owner)

    @property
    def owner(self) -> Optional[str]:
        return self.settings.owner if self.settings else None

    # ══════════════════════════════════════════════════════════════════
    #  SERIALIZATION
    # ══════════════════════════════════════════════════════════════════

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "profile": self.profile.to_dict(),
            "settings": self.settings.to_dict() if self.settings else None,
            "registry": self.registry.to_dict(),
            "events": [e.to_dict() for e in self.events],
        }

    def __repr__(self) -> str:
        return (
            f"<RealityModule {self.address} profile={self.profile.name} "
            f"initialized={self.initialized}>"
        )
