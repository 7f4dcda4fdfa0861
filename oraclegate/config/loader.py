"""
OracleGate TOML Configuration Loader

Loads the sections of an oraclegate.toml with environment variable overrides
(dataclass + from_dict + apply_env + from_file).

Environment variable mapping:
    [module] oracle     → ORACLEGATE_ORACLE
    [module] timeout    → ORACLEGATE_TIMEOUT
    [logging] level     → ORACLEGATE_LOG_LEVEL
    ...
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..constants import (
    MODULE_DEFAULT_CHAIN_ID,
    MODULE_DEFAULT_COOLDOWN,
    MODULE_DEFAULT_EXPIRATION,
    MODULE_DEFAULT_MINIMUM_BOND,
    MODULE_DEFAULT_TEMPLATE_ID,
    MODULE_DEFAULT_TIMEOUT,
    ZERO_ADDRESS,
)
from ..exceptions import ConfigurationError
from ..logger import LogManager, get_logger
from ..module.settings import ModuleSettings
from ..module.types import PROFILES, ModuleProfile

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ModuleConfig:
    """[module] section."""
    profile: str = "standard"
    owner: str = ""
    avatar: str = ""
    target: str = ""
    oracle: str = ""
    arbitrator: str = ZERO_ADDRESS
    timeout: int = MODULE_DEFAULT_TIMEOUT
    cooldown: int = MODULE_DEFAULT_COOLDOWN
    answer_expiration: int = MODULE_DEFAULT_EXPIRATION
    minimum_bond: int = MODULE_DEFAULT_MINIMUM_BOND
    template: int = MODULE_DEFAULT_TEMPLATE_ID
    chain_id: int = MODULE_DEFAULT_CHAIN_ID

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleConfig":
        return cls(
            profile=data.get("profile", "standard"),
            owner=data.get("owner", ""),
            avatar=data.get("avatar", ""),
            target=data.get("target", ""),
            oracle=data.get("oracle", ""),
            arbitrator=data.get("arbitrator", ZERO_ADDRESS),
            timeout=int(data.get("timeout", MODULE_DEFAULT_TIMEOUT)),
            cooldown=int(data.get("cooldown", MODULE_DEFAULT_COOLDOWN)),
            answer_expiration=int(data.get("answer_expiration", MODULE_DEFAULT_EXPIRATION)),
            # TOML integers cap at 64 bits; large bonds are written as strings
            minimum_bond=int(data.get("minimum_bond", MODULE_DEFAULT_MINIMUM_BOND)),
            template=int(data.get("template", MODULE_DEFAULT_TEMPLATE_ID)),
            chain_id=int(data.get("chain_id", MODULE_DEFAULT_CHAIN_ID)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("ORACLEGATE_PROFILE"):
            self.profile = v
        if v := os.environ.get("ORACLEGATE_OWNER"):
            self.owner = v
        if v := os.environ.get("ORACLEGATE_AVATAR"):
            self.avatar = v
        if v := os.environ.get("ORACLEGATE_TARGET"):
            self.target = v
        if v := os.environ.get("ORACLEGATE_ORACLE"):
            self.oracle = v
        if v := os.environ.get("ORACLEGATE_ARBITRATOR"):
            self.arbitrator = v
        if v := os.environ.get("ORACLEGATE_TIMEOUT"):
            self.timeout = int(v)
        if v := os.environ.get("ORACLEGATE_COOLDOWN"):
            self.cooldown = int(v)
        if v := os.environ.get("ORACLEGATE_ANSWER_EXPIRATION"):
            self.answer_expiration = int(v)
        if v := os.environ.get("ORACLEGATE_MINIMUM_BOND"):
            self.minimum_bond = int(v)
        if v := os.environ.get("ORACLEGATE_TEMPLATE"):
            self.template = int(v)
        if v := os.environ.get("ORACLEGATE_CHAIN_ID"):
            self.chain_id = int(v)

    def resolve_profile(self) -> ModuleProfile:
        try:
            return PROFILES[self.profile]
        except KeyError:
            raise ConfigurationError(
                f"Unknown module profile '{self.profile}' "
                f"(expected one of {', '.join(sorted(PROFILES))})"
            ) from None

    def to_settings(self, **overrides: Any) -> ModuleSettings:
        """Build validated ModuleSettings; *overrides* replace config values."""
        values = {
            "owner": self.owner,
            "avatar": self.avatar,
            "target": self.target or self.avatar,
            "oracle": self.oracle,
            "timeout": self.timeout,
            "cooldown": self.cooldown,
            "answer_expiration": self.answer_expiration,
            "minimum_bond": self.minimum_bond,
            "template": self.template,
            "arbitrator": self.arbitrator,
            "chain_id": self.chain_id,
        }
        values.update(overrides)
        settings = ModuleSettings(**values)
        settings.validate()
        return settings


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False
    file: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=data.get("level", "INFO"),
            file_output=data.get("file_output", False),
            file=data.get("file", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("ORACLEGATE_LOG_LEVEL"):
            self.level = v
        if v := os.environ.get("ORACLEGATE_LOG_FILE"):
            self.file = v
            self.file_output = True

    def apply(self) -> None:
        """Push the level and file output onto the package logger."""
        manager = LogManager()
        manager.set_level(self.level)
        if self.file_output:
            manager.add_file_output(Path(self.file) if self.file else None)


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


@dataclass
class OracleGateConfig:
    """Top-level configuration loaded from oraclegate.toml."""
    module: ModuleConfig = field(default_factory=ModuleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OracleGateConfig":
        return cls(
            module=ModuleConfig.from_dict(data.get("module", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    def apply_env(self) -> None:
        self.module.apply_env()
        self.logging.apply_env()

    @classmethod
    def from_file(cls, config_path: str) -> "OracleGateConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to oraclegate.toml

        Returns:
            OracleGateConfig instance
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning(f"Config file not found: {config_path}, using defaults")
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        logger.info(f"Loaded configuration from {config_path}")
        return cfg


def load_config(path: Optional[str] = None) -> OracleGateConfig:
    """
    Load module configuration.

    Resolution order:
        1. Explicit *path* argument
        2. ORACLEGATE_CONFIG env var
        3. ./oraclegate.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("ORACLEGATE_CONFIG", "oraclegate.toml")

    return OracleGateConfig.from_file(path)
