"""
Module Settings & Authorization

Owner-gated configuration of a module instance. Every setter re-validates
the cross-field invariants before anything is written:

  - question timeout must be nonzero
  - if answer expiration is nonzero, expiration - cooldown >= 60 seconds
"""

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from eth_utils import is_address, is_same_address, to_checksum_address

from ..constants import (
    MIN_EXPIRATION_WINDOW,
    MODULE_DEFAULT_CHAIN_ID,
    MODULE_DEFAULT_COOLDOWN,
    MODULE_DEFAULT_EXPIRATION,
    MODULE_DEFAULT_MINIMUM_BOND,
    MODULE_DEFAULT_TEMPLATE_ID,
    MODULE_DEFAULT_TIMEOUT,
    UINT32_MAX,
    ZERO_ADDRESS,
)
from ..exceptions import AuthorizationError, ConfigurationError, InitializationError
from ..logger import get_logger
from .events import ConfigChanged, ModuleEvent, OwnershipTransferred

logger = get_logger(__name__)

NOT_OWNER = "Ownable: caller is not the owner"


def validate_timeout(timeout: int):
    if timeout <= 0:
        raise ConfigurationError("Timeout has to be greater 0")
    if timeout > UINT32_MAX:
        raise ConfigurationError(f"Timeout {timeout} exceeds uint32")


def validate_expiration_window(cooldown: int, expiration: int):
    """Expiration 0 means answers never expire."""
    if cooldown < 0 or expiration < 0:
        raise ConfigurationError("Cooldown and expiration cannot be negative")
    if cooldown > UINT32_MAX or expiration > UINT32_MAX:
        raise ConfigurationError("Cooldown and expiration must fit in uint32")
    if expiration != 0 and expiration - cooldown < MIN_EXPIRATION_WINDOW:
        raise ConfigurationError(
            "There need to be at least 60s between end of cooldown and expiration"
        )


def require_address(address: str, label: str) -> str:
    if not address or not is_address(address) or is_same_address(address, ZERO_ADDRESS):
        raise InitializationError(f"{label} can not be zero address")
    return to_checksum_address(address)


@dataclass
class ModuleSettings:
    """
    Configuration surface of one module.

    Fields:
        owner:              Account allowed to call setters and invalidations
        avatar:             Account whose assets the module controls
        target:             Account that executes module transactions
        oracle:             Oracle contract address (bound into question ids)
        timeout:            Seconds the oracle keeps a question open per answer
        cooldown:           Seconds after finalization before execution
        answer_expiration:  Seconds an accepted answer stays usable (0 = forever)
        minimum_bond:       Minimum bond required on the accepted answer
        template:           Oracle template id
        arbitrator:         Arbitrator address passed to the oracle
        chain_id:           Chain id bound into the transaction hash domain
    """
    owner: str
    avatar: str
    target: str
    oracle: str
    timeout: int = MODULE_DEFAULT_TIMEOUT
    cooldown: int = MODULE_DEFAULT_COOLDOWN
    answer_expiration: int = MODULE_DEFAULT_EXPIRATION
    minimum_bond: int = MODULE_DEFAULT_MINIMUM_BOND
    template: int = MODULE_DEFAULT_TEMPLATE_ID
    arbitrator: str = ZERO_ADDRESS
    chain_id: int = MODULE_DEFAULT_CHAIN_ID

    def validate(self):
        """Check every invariant; raises on the first violation."""
        self.owner = require_address(self.owner, "Owner")
        self.avatar = require_address(self.avatar, "Avatar")
        self.target = require_address(self.target, "Target")
        self.oracle = require_address(self.oracle, "Oracle")
        if not is_address(self.arbitrator):
            raise ConfigurationError(f"Invalid arbitrator address: {self.arbitrator!r}")
        self.arbitrator = to_checksum_address(self.arbitrator)
        validate_timeout(self.timeout)
        validate_expiration_window(self.cooldown, self.answer_expiration)
        if self.minimum_bond < 0:
            raise ConfigurationError("Minimum bond cannot be negative")
        if self.template < 0:
            raise ConfigurationError("Template id cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["minimum_bond"] = str(self.minimum_bond)
        return data


class SettingsController:
    """
    Applies owner-gated changes to a ModuleSettings instance.

    ``emit`` receives a ModuleEvent for every accepted change; ``clock``
    supplies the event timestamp.
    """

    def __init__(
        self,
        settings: ModuleSettings,
        emit: Callable[[ModuleEvent], None],
        clock: Callable[[], int],
    ):
        self.settings = settings
        self._emit = emit
        self._clock = clock

    # ── Authorization ─────────────────────────────────────────────────

    def is_owner(self, caller: Optional[str]) -> bool:
        return bool(caller) and is_address(caller) and is_same_address(caller, self.settings.owner)

    def is_avatar(self, caller: Optional[str]) -> bool:
        return bool(caller) and is_address(caller) and is_same_address(caller, self.settings.avatar)

    def require_owner(self, caller: Optional[str]):
        if not self.is_owner(caller):
            raise AuthorizationError(NOT_OWNER)

    # ── Setters ───────────────────────────────────────────────────────

    def _changed(self, setting: str, old: Any, new: Any):
        logger.info(f"Module setting '{setting}' changed: {old} → {new}")
        self._emit(ConfigChanged(
            timestamp=self._clock(), setting=setting, old_value=old, new_value=new,
        ))

    def set_question_timeout(self, caller: str, timeout: int):
        self.require_owner(caller)
        validate_timeout(timeout)
        old, self.settings.timeout = self.settings.timeout, timeout
        self._changed("timeout", old, timeout)

    def set_question_cooldown(self, caller: str, cooldown: int):
        self.require_owner(caller)
        validate_expiration_window(cooldown, self.settings.answer_expiration)
        old, self.settings.cooldown = self.settings.cooldown, cooldown
        self._changed("cooldown", old, cooldown)

    def set_answer_expiration(self, caller: str, expiration: int):
        self.require_owner(caller)
        validate_expiration_window(self.settings.cooldown, expiration)
        old, self.settings.answer_expiration = self.settings.answer_expiration, expiration
        self._changed("answer_expiration", old, expiration)

    def set_minimum_bond(self, caller: str, bond: int):
        self.require_owner(caller)
        if bond < 0:
            raise ConfigurationError("Minimum bond cannot be negative")
        old, self.settings.minimum_bond = self.settings.minimum_bond, bond
        self._changed("minimum_bond", old, bond)

    def set_template(self, caller: str, template: int):
        self.require_owner(caller)
        if template < 0:
            raise ConfigurationError("Template id cannot be negative")
        old, self.settings.template = self.settings.template, template
        self._changed("template", old, template)

    def set_arbitrator(self, caller: str, arbitrator: str):
        self.require_owner(caller)
        if not is_address(arbitrator):
            raise ConfigurationError(f"Invalid arbitrator address: {arbitrator!r}")
        arbitrator = to_checksum_address(arbitrator)
        old, self.settings.arbitrator = self.settings.arbitrator, arbitrator
        self._changed("arbitrator", old, arbitrator)

    def set_avatar(self, caller: str, avatar: str):
        self.require_owner(caller)
        avatar = require_address(avatar, "Avatar")
        old, self.settings.avatar = self.settings.avatar, avatar
        self._changed("avatar", old, avatar)

    def set_target(self, caller: str, target: str):
        self.require_owner(caller)
        target = require_address(target, "Target")
        old, self.settings.target = self.settings.target, target
        self._changed("target", old, target)

    def transfer_ownership(self, caller: str, new_owner: str):
        self.require_owner(caller)
        if not new_owner or not is_address(new_owner) or is_same_address(new_owner, ZERO_ADDRESS):
            raise AuthorizationError("Ownable: new owner is the zero address")
        new_owner = to_checksum_address(new_owner)
        old, self.settings.owner = self.settings.owner, new_owner
        logger.info(f"Ownership transferred: {old} → {new_owner}")
        self._emit(OwnershipTransferred(
            timestamp=self._clock(), previous_owner=old, new_owner=new_owner,
        ))
