"""
OracleGate Configuration

Loads oraclegate.toml; environment variables override TOML values.
"""

from .loader import (
    LoggingConfig,
    ModuleConfig,
    OracleGateConfig,
    load_config,
)

__all__ = [
    "LoggingConfig",
    "ModuleConfig",
    "OracleGateConfig",
    "load_config",
]
