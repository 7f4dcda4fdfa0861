"""
OracleGate CLI Tools
"""

from .proposals import cli

__all__ = ["cli"]
