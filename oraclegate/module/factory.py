"""
Module Proxy Factory

Deploys module instances at deterministic (CREATE2) addresses derived from
the factory, a mastercopy and the ABI-encoded ``setUp`` initializer.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from eth_abi import encode
from eth_utils import to_checksum_address

from ..crypto.contract import encode_function_call, predict_module_address
from ..exceptions import InitializationError
from ..logger import get_logger
from .engine import RealityModule
from .settings import ModuleSettings
from .types import STANDARD_PROFILE, ModuleProfile

logger = get_logger(__name__)

SETUP_SIGNATURE = "setUp(bytes)"
SETUP_PARAM_TYPES = [
    "address",   # owner
    "address",   # avatar
    "address",   # target
    "address",   # oracle
    "uint32",    # timeout
    "uint32",    # cooldown
    "uint32",    # expiration
    "uint256",   # minimum bond
    "uint256",   # template id
    "address",   # arbitrator
]


def encode_setup_params(settings: ModuleSettings) -> bytes:
    return encode(SETUP_PARAM_TYPES, [
        settings.owner,
        settings.avatar,
        settings.target,
        settings.oracle,
        settings.timeout,
        settings.cooldown,
        settings.answer_expiration,
        settings.minimum_bond,
        settings.template,
        settings.arbitrator,
    ])


def encode_initializer(settings: ModuleSettings) -> bytes:
    """Calldata of the ``setUp`` call a proxy is initialized with."""
    return encode_function_call(SETUP_SIGNATURE, encode_setup_params(settings))


@dataclass(frozen=True)
class ModuleProxyCreation:
    proxy: str
    mastercopy: str
    salt_nonce: int


class ModuleProxyFactory:
    """Creates and initializes module proxies."""

    def __init__(self, address: str, clock: Optional[Callable[[], int]] = None):
        self.address = to_checksum_address(address)
        self._clock = clock
        self.modules: Dict[str, RealityModule] = {}
        self.creations: List[ModuleProxyCreation] = []

    def predict(self, mastercopy: str, settings: ModuleSettings, salt_nonce: int) -> str:
        settings.validate()
        return predict_module_address(
            self.address, mastercopy, encode_initializer(settings), salt_nonce,
        )

    def deploy_module(
        self,
        mastercopy: str,
        oracle,
        executor,
        settings: ModuleSettings,
        salt_nonce: int,
        profile: ModuleProfile = STANDARD_PROFILE,
        initiator: Optional[str] = None,
    ) -> RealityModule:
        """
        Deploy a proxy of *mastercopy* and initialize it with *settings*.

        Raises:
            InitializationError: A module already lives at the predicted address
        """
        if not settings.oracle:
            settings.oracle = oracle.address
        proxy = self.predict(mastercopy, settings, salt_nonce)
        if proxy in self.modules:
            raise InitializationError(f"Module already deployed at {proxy}")

        module = RealityModule(proxy, oracle, executor, profile=profile, clock=self._clock)
        module.set_up(settings, initiator=initiator or self.address)

        self.modules[proxy] = module
        self.creations.append(ModuleProxyCreation(
            proxy=proxy,
            mastercopy=to_checksum_address(mastercopy),
            salt_nonce=salt_nonce,
        ))
        logger.info(f"Module proxy {proxy} deployed from {mastercopy} (salt={salt_nonce})")
        return module
