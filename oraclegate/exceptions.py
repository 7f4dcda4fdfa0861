"""
OracleGate Exceptions

Custom exception classes for the oracle-gated module engine.
Every failed operation surfaces as one of these with the reason string
as its message.
"""


class OracleGateException(Exception):
    """Base exception for OracleGate."""
    pass


class ModuleError(OracleGateException):
    """Base exception for module operations."""
    pass


class AuthorizationError(ModuleError):
    """Caller lacks the owner / avatar role required by the operation."""
    pass


class InitializationError(ModuleError):
    """Module set up twice or with invalid addresses."""
    pass


class ConfigurationError(ModuleError):
    """Configuration change violates a cross-field invariant."""
    pass


class ProposalStateError(ModuleError):
    """Proposal is unset, already bound, or invalidated."""
    pass


class OracleAnswerError(ModuleError):
    """Answer not accepted, bond too low, or previous question still valid."""
    pass


class TimingError(ModuleError):
    """Cooldown not elapsed or answer expired."""
    pass


class IntegrityError(ModuleError):
    """Recomputed hash or question id does not match."""
    pass


class SequencingError(ModuleError):
    """Out-of-order or duplicate execution attempt."""
    pass


class ModuleTransactionError(ModuleError):
    """The avatar refused or failed to execute the module transaction."""
    pass


class OracleError(OracleGateException):
    """Oracle adapter failure (unknown or unfinalized question)."""
    pass


class AvatarError(OracleGateException):
    """Avatar refused a call from a module that is not enabled."""
    pass
