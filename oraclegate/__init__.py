"""
OracleGate Package

Core imports are lazily loaded so the CLI and crypto helpers stay cheap to import.
For direct module access, import from submodules:

    from oraclegate.module import RealityModule, Proposal
    from oraclegate.oracle import InMemoryOracle
    from oraclegate.avatar import InMemoryAvatar
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'RealityModule':
        from .module import RealityModule
        return RealityModule
    elif name == 'Proposal':
        from .module import Proposal
        return Proposal
    elif name == 'OracleGateException':
        from .exceptions import OracleGateException
        return OracleGateException
    raise AttributeError(f"module 'oraclegate' has no attribute {name!r}")

__all__ = ['RealityModule', 'Proposal', 'OracleGateException']
