"""
Oracle-Gated Execution Module

Provides:
  - Operation / ModuleTransaction / Proposal / ModuleProfile   (types.py)
  - build_question / question ids                              (questions.py)
  - ProposalRegistry                                           (registry.py)
  - ModuleSettings / SettingsController                        (settings.py)
  - ExecutionGate / TransactionSequencer                       (gate.py, sequencer.py)
  - RealityModule                                              (engine.py)
  - ModuleCallRouter / ModuleProxyFactory                      (calls.py, factory.py)
"""

from .types import (
    ANNOUNCEMENT_PROFILE,
    PLAIN_PROFILE,
    PROFILES,
    STANDARD_PROFILE,
    CooldownAnchor,
    ModuleProfile,
    ModuleTransaction,
    Operation,
    Proposal,
    ProposalStatus,
    QuestionIdScheme,
    RegistryIndex,
)
from .questions import (
    build_question,
    compute_question_id,
    compute_question_id_with_min_bond,
    question_hash,
)
from .registry import ProposalRegistry
from .settings import ModuleSettings, SettingsController
from .gate import ExecutionGate
from .sequencer import TransactionSequencer
from .engine import RealityModule
from .calls import ModuleCallRouter, encode_module_call
from .factory import ModuleProxyFactory, encode_initializer

__all__ = [
    # Types
    "Operation",
    "ModuleTransaction",
    "Proposal",
    "ProposalStatus",
    "ModuleProfile",
    "RegistryIndex",
    "QuestionIdScheme",
    "CooldownAnchor",
    "STANDARD_PROFILE",
    "PLAIN_PROFILE",
    "ANNOUNCEMENT_PROFILE",
    "PROFILES",
    # Questions
    "build_question",
    "question_hash",
    "compute_question_id",
    "compute_question_id_with_min_bond",
    # Engine
    "ProposalRegistry",
    "ModuleSettings",
    "SettingsController",
    "ExecutionGate",
    "TransactionSequencer",
    "RealityModule",
    # Deployment
    "ModuleCallRouter",
    "encode_module_call",
    "ModuleProxyFactory",
    "encode_initializer",
]
