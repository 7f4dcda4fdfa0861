"""
Module Settings & Authorization Test Suite

Coverage:
  - Owner gating of every setter
  - Timeout and expiration window invariants
  - Ownership transfer
  - Settings driven through avatar calldata
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
from oraclegate.constants import ZERO_ADDRESS
from oraclegate.exceptions import (
    AuthorizationError,
    ConfigurationError,
    InitializationError,
    ModuleError,
)
from oraclegate.module import ModuleSettings, RealityModule, encode_module_call
from oraclegate.oracle import InMemoryOracle


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

AVATAR = to_checksum_address("0x" + "a1" * 20)
MODULE = to_checksum_address("0x" + "b2" * 20)
ORACLE = to_checksum_address("0x" + "c3" * 20)
OTHER = to_checksum_address("0x" + "d4" * 20)
STRANGER = to_checksum_address("0x" + "e5" * 20)


def make_module(**config):
    avatar = InMemoryAvatar(AVATAR)
    config.setdefault("timeout", 42)
    config.setdefault("cooldown", 23)
    config.setdefault("answer_expiration", 0)
    module = RealityModule.deploy(MODULE, InMemoryOracle(ORACLE), avatar, owner=AVATAR, **config)
    avatar.register_target(module.address, module.call_router)
    return module, avatar


# ══════════════════════════════════════════════════════════════════════
#  SETTINGS VALIDATION
# ══════════════════════════════════════════════════════════════════════


class TestModuleSettings:

    def test_validate_checksums_addresses(self):
        settings = ModuleSettings(
            owner=AVATAR.lower(), avatar=AVATAR.lower(), target=AVATAR.lower(),
            oracle=ORACLE.lower(),
        )
        settings.validate()
        assert settings.owner == AVATAR
        assert settings.oracle == ORACLE

    def test_zero_owner_rejected(self):
        settings = ModuleSettings(owner=ZERO_ADDRESS, avatar=AVATAR, target=AVATAR, oracle=ORACLE)
        with pytest.raises(InitializationError, match="Owner can not be zero address"):
            settings.validate()

    def test_zero_target_rejected(self):
        settings = ModuleSettings(owner=AVATAR, avatar=AVATAR, target=ZERO_ADDRESS, oracle=ORACLE)
        with pytest.raises(InitializationError, match="Target can not be zero address"):
            settings.validate()

    def test_window_exactly_sixty_seconds(self):
        settings = ModuleSettings(
            owner=AVATAR, avatar=AVATAR, target=AVATAR, oracle=ORACLE,
            cooldown=100, answer_expiration=160,
        )
        settings.validate()

    def test_oracle_must_match_adapter(self):
        module = RealityModule(MODULE, InMemoryOracle(ORACLE), InMemoryAvatar(AVATAR))
        settings = ModuleSettings(owner=AVATAR, avatar=AVATAR, target=AVATAR, oracle=OTHER)
        with pytest.raises(ConfigurationError, match="does not match adapter"):
            module.set_up(settings)
        assert not module.initialized


# ══════════════════════════════════════════════════════════════════════
#  OWNER SETTERS
# ══════════════════════════════════════════════════════════════════════


class TestOwnerSetters:

    @pytest.mark.parametrize("setter, value", [
        ("set_question_timeout", 10),
        ("set_question_cooldown", 10),
        ("set_answer_expiration", 0),
        ("set_minimum_bond", 10),
        ("set_template", 1),
        ("set_arbitrator", OTHER),
        ("set_avatar", OTHER),
        ("set_target", OTHER),
        ("transfer_ownership", OTHER),
    ])
    def test_non_owner_rejected(self, setter, value):
        module, _ = make_module()
        with pytest.raises(AuthorizationError, match="Ownable: caller is not the owner"):
            getattr(module, setter)(STRANGER, value)

    def test_timeout_zero_rejected(self):
        module, _ = make_module()
        with pytest.raises(ConfigurationError, match="Timeout has to be greater 0"):
            module.set_question_timeout(AVATAR, 0)
        assert module.settings.timeout == 42

    def test_cooldown_breaking_window_rejected(self):
        module, _ = make_module(answer_expiration=100)
        with pytest.raises(ConfigurationError, match="at least 60s"):
            module.set_question_cooldown(AVATAR, 41)
        module.set_question_cooldown(AVATAR, 40)
        assert module.settings.cooldown == 40

    def test_expiration_breaking_window_rejected(self):
        module, _ = make_module()
        with pytest.raises(ConfigurationError, match="at least 60s"):
            module.set_answer_expiration(AVATAR, 82)
        module.set_answer_expiration(AVATAR, 83)
        assert module.settings.answer_expiration == 83

    def test_expiration_zero_always_allowed(self):
        module, _ = make_module(answer_expiration=100)
        module.set_answer_expiration(AVATAR, 0)
        module.set_question_cooldown(AVATAR, 10 ** 6)
        assert module.settings.cooldown == 10 ** 6

    def test_config_changed_event(self):
        module, _ = make_module()
        module.set_minimum_bond(AVATAR, 500)
        event = module.events_named("ConfigChanged")[-1]
        assert event.setting == "minimum_bond"
        assert event.old_value == 0
        assert event.new_value == 500
        assert event.to_dict()["event"] == "ConfigChanged"

    def test_zero_avatar_rejected(self):
        module, _ = make_module()
        with pytest.raises(InitializationError, match="Avatar can not be zero address"):
            module.set_avatar(AVATAR, ZERO_ADDRESS)

    def test_transfer_ownership(self):
        module, _ = make_module()
        module.transfer_ownership(AVATAR, OTHER)
        assert module.owner == OTHER
        with pytest.raises(AuthorizationError):
            module.set_minimum_bond(AVATAR, 1)
        module.set_minimum_bond(OTHER, 1)
        event = module.events_named("OwnershipTransferred")[-1]
        assert event.previous_owner == AVATAR
        assert event.new_owner == OTHER

    def test_transfer_to_zero_rejected(self):
        module, _ = make_module()
        with pytest.raises(AuthorizationError, match="new owner is the zero address"):
            module.transfer_ownership(AVATAR, ZERO_ADDRESS)


# ══════════════════════════════════════════════════════════════════════
#  CALLDATA ROUTING
# ══════════════════════════════════════════════════════════════════════


class TestCallRouter:

    def test_setter_through_avatar(self):
        module, avatar = make_module()
        data = encode_module_call("setQuestionTimeout(uint32)", 77)
        assert avatar.exec(module.address, 0, data) is True
        assert module.settings.timeout == 77

    def test_address_argument(self):
        module, avatar = make_module()
        avatar.exec(module.address, 0, encode_module_call("setArbitrator(address)", OTHER))
        assert module.settings.arbitrator == OTHER

    def test_stranger_call_rejected(self):
        module, _ = make_module()
        data = encode_module_call("setMinimumBond(uint256)", 5)
        with pytest.raises(AuthorizationError):
            module.call_router(STRANGER, 0, data, 0)

    def test_unknown_selector(self):
        module, _ = make_module()
        with pytest.raises(ModuleError, match="Unknown function selector"):
            module.call_router(AVATAR, 0, b"\xde\xad\xbe\xef", 0)

    def test_value_rejected(self):
        module, _ = make_module()
        data = encode_module_call("setMinimumBond(uint256)", 5)
        with pytest.raises(ModuleError, match="does not accept value"):
            module.call_router(AVATAR, 1, data, 0)

    def test_delegate_call_rejected(self):
        module, _ = make_module()
        data = encode_module_call("setMinimumBond(uint256)", 5)
        with pytest.raises(ModuleError, match="delegate-called"):
            module.call_router(AVATAR, 0, data, 1)
