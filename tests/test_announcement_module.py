"""
Announcement Module Test Suite

Coverage:
  - Question-id indexed registry
  - Readiness marking: authorization, answer and duplicate checks
  - Cooldown anchored on the announcement instead of finalization
  - Readiness requested through the target as a module transaction
"""

import os
import sys

import pytest
from eth_utils import to_checksum_address

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from oraclegate.avatar import InMemoryAvatar
from oraclegate.constants import INVALIDATED
from oraclegate.exceptions import (
    AuthorizationError,
    ConfigurationError,
    IntegrityError,
    ModuleTransactionError,
    OracleAnswerError,
    ProposalStateError,
    TimingError,
)
from oraclegate.module import (
    ANNOUNCEMENT_PROFILE,
    STANDARD_PROFILE,
    Operation,
    ProposalStatus,
    RealityModule,
)
from oraclegate.oracle import InMemoryOracle


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

AVATAR = to_checksum_address("0x" + "a1" * 20)
MODULE = to_checksum_address("0x" + "b2" * 20)
ORACLE = to_checksum_address("0x" + "c3" * 20)
MOCK_TARGET = to_checksum_address("0x" + "d4" * 20)
STRANGER = to_checksum_address("0x" + "e5" * 20)


class FakeClock:

    def __init__(self, now=1_700_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_setup(profile=ANNOUNCEMENT_PROFILE, **config):
    clock = FakeClock()
    oracle = InMemoryOracle(ORACLE, clock=clock)
    avatar = InMemoryAvatar(AVATAR)
    config.setdefault("timeout", 42)
    config.setdefault("cooldown", 23)
    module = RealityModule.deploy(
        MODULE, oracle, avatar, owner=AVATAR, profile=profile, clock=clock, **config,
    )
    avatar.enable_module(module.address)
    avatar.register_target(module.address, module.call_router)
    return module, oracle, avatar, clock


def asked_proposal(module, oracle, clock, answer=True):
    """Ask a one-transaction proposal and finalize *answer* now."""
    tx = dict(to=MOCK_TARGET, value=0, data=b"\x0a", operation=Operation.CALL)
    h = module.get_transaction_hash(nonce=0, **tx)
    question_id = module.add_proposal("p1", [h])
    oracle.set_result(question_id, answer)
    return tx, h, question_id


# ══════════════════════════════════════════════════════════════════════
#  REGISTRY DIRECTION
# ══════════════════════════════════════════════════════════════════════


class TestQuestionIdIndex:

    def test_binding_keyed_by_question_id(self):
        module, oracle, _, clock = make_setup()
        tx, h, question_id = asked_proposal(module, oracle, clock)
        question = module.build_question("p1", [h])
        assert module.question_ids(question_id) == module.question_hash(question)

    def test_asks_without_min_bond(self):
        module, oracle, _, clock = make_setup()
        asked_proposal(module, oracle, clock)
        assert oracle.call_count("ask_question") == 1
        assert oracle.call_count("ask_question_with_min_bond") == 0

    def test_retry_binds_new_question_id(self):
        module, oracle, _, clock = make_setup()
        tx, h, first = asked_proposal(module, oracle, clock, answer=INVALIDATED)
        second = module.add_proposal_with_nonce("p1", [h], 1)
        qhash = module.question_hash(module.build_question("p1", [h]))
        assert module.question_ids(first) == qhash
        assert module.question_ids(second) == qhash

    def test_owner_invalidates_question_id(self):
        module, oracle, _, clock = make_setup()
        tx, h, question_id = asked_proposal(module, oracle, clock)
        module.mark_proposal_as_invalid(AVATAR, "p1", [h])
        assert module.question_ids(question_id) == INVALIDATED
        assert module.proposal_status("p1", [h]) == ProposalStatus.INVALIDATED

    def test_answer_expiration_ignored(self):
        module, oracle, _, clock = make_setup(cooldown=0, answer_expiration=60)
        tx, h, question_id = asked_proposal(module, oracle, clock)
        with pytest.raises(ConfigurationError, match="Answers are valid forever"):
            module.mark_proposal_with_expired_answer_as_invalid(question_id)


# ══════════════════════════════════════════════════════════════════════
#  READINESS
# ══════════════════════════════════════════════════════════════════════


class TestMarkReady:

    def test_records_announcement(self):
        module, oracle, _, clock = make_setup()
        tx, h, question_id = asked_proposal(module, oracle, clock)
        clock.advance(5)
        module.mark_proposal_ready_for_execution(AVATAR, "p1", [h])
        question = module.build_question("p1", [h])
        assert module.execution_announcements(question_id, question) == clock.now
        event = module.events_named("ExecutionAnnouncement")[-1]
        assert event.question_id == question_id
        assert event.proposal_id == "p1"

    def test_only_target_may_announce(self):
        module, oracle, _, clock = make_setup()
        tx, h, _ = asked_proposal(module, oracle, clock)
        with pytest.raises(AuthorizationError, match="Not authorized to mark proposal as ready"):
            module.mark_proposal_ready_for_execution(STRANGER, "p1", [h])

    def test_requires_accepted_answer(self):
        module, oracle, _, clock = make_setup()
        tx, h, _ = asked_proposal(module, oracle, clock, answer=False)
        with pytest.raises(OracleAnswerError, match="Transaction was not approved"):
            module.mark_proposal_ready_for_execution(AVATAR, "p1", [h])

    def test_duplicate_announcement_rejected(self):
        module, oracle, _, clock = make_setup()
        tx, h, _ = asked_proposal(module, oracle, clock)
        module.mark_proposal_ready_for_execution(AVATAR, "p1", [h])
        with pytest.raises(ProposalStateError, match="already marked as ready"):
            module.mark_proposal_ready_for_execution(AVATAR, "p1", [h])

    def test_unknown_proposal(self):
        module, *_ = make_setup()
        with pytest.raises(ProposalStateError, match="No question id set for provided proposal"):
            module.mark_proposal_ready_for_execution(AVATAR, "nope", [])

    def test_not_available_on_standard_profile(self):
        module, oracle, _, clock = make_setup(profile=STANDARD_PROFILE)
        tx, h, _ = asked_proposal(module, oracle, clock)
        with pytest.raises(ConfigurationError, match="does not use execution announcements"):
            module.mark_proposal_ready_for_execution(AVATAR, "p1", [h])


class TestRequestReady:

    def test_request_through_target(self):
        module, oracle, avatar, clock = make_setup()
        tx, h, question_id = asked_proposal(module, oracle, clock)
        module.request_proposal_ready_for_execution("p1", [h])
        question = module.build_question("p1", [h])
        assert module.execution_announcements(question_id, question) == clock.now
        assert avatar.calls_to(module.address)[-1].success is True

    def test_request_fails_when_not_approved(self):
        module, oracle, avatar, clock = make_setup()
        tx, h, question_id = asked_proposal(module, oracle, clock, answer=False)
        with pytest.raises(ModuleTransactionError, match="Could not mark proposal ready"):
            module.request_proposal_ready_for_execution("p1", [h])
        question = module.build_question("p1", [h])
        assert module.execution_announcements(question_id, question) == 0


# ══════════════════════════════════════════════════════════════════════
#  EXECUTION
# ══════════════════════════════════════════════════════════════════════


class TestAnnouncedExecution:

    def test_requires_announcement(self):
        module, oracle, _, clock = make_setup()
        tx, h, _ = asked_proposal(module, oracle, clock)
        clock.advance(100)
        with pytest.raises(ProposalStateError, match="has not been marked as ready"):
            module.execute_proposal("p1", [h], **tx)

    def test_foreign_transaction_rejected_before_announcement(self):
        module, oracle, _, clock = make_setup()
        tx, h, _ = asked_proposal(module, oracle, clock)
        foreign = dict(tx, value=42)
        with pytest.raises(IntegrityError, match="Unexpected transaction hash"):
            module.execute_proposal_with_index("p1", [h], tx_index=0, **foreign)

    def test_cooldown_anchored_on_announcement(self):
        module, oracle, avatar, clock = make_setup()
        tx, h, _ = asked_proposal(module, oracle, clock)
        clock.advance(1000)
        module.mark_proposal_ready_for_execution(AVATAR, "p1", [h])

        clock.advance(22)
        with pytest.raises(TimingError, match="Wait for additional cooldown"):
            module.execute_proposal("p1", [h], **tx)

        clock.advance(1)
        module.execute_proposal("p1", [h], **tx)
        assert module.proposal_status("p1", [h]) == ProposalStatus.EXECUTED
        assert len(avatar.calls_to(MOCK_TARGET)) == 1

    def test_explicit_question_id_must_match(self):
        module, oracle, _, clock = make_setup()
        tx, h, _ = asked_proposal(module, oracle, clock)
        module.mark_proposal_ready_for_execution(AVATAR, "p1", [h])
        clock.advance(23)
        with pytest.raises(ProposalStateError, match="No question id set"):
            module.execute_proposal("p1", [h], question_id=b"\x05" * 32, **tx)

    def test_invalidated_after_announcement(self):
        module, oracle, _, clock = make_setup()
        tx, h, _ = asked_proposal(module, oracle, clock)
        module.mark_proposal_ready_for_execution(AVATAR, "p1", [h])
        module.mark_proposal_as_invalid(AVATAR, "p1", [h])
        clock.advance(23)
        with pytest.raises(ProposalStateError, match="Proposal has been invalidated"):
            module.execute_proposal("p1", [h], **tx)
