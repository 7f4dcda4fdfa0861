"""
Oracle adapters consumed by the module.

Provides:
  - RealityOracle                     (interface.py)
  - InMemoryOracle / OracleQuestion   (memory.py)
"""

from .interface import RealityOracle
from .memory import BOOL_TEMPLATE, InMemoryOracle, OracleQuestion

__all__ = [
    "RealityOracle",
    "InMemoryOracle",
    "OracleQuestion",
    "BOOL_TEMPLATE",
]
