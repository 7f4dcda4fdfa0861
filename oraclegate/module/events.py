"""
Module Events

Frozen records appended to the module's event log on every state change.
"""

from dataclasses import dataclass
from typing import Any, Dict

from eth_utils import encode_hex


@dataclass(frozen=True)
class ModuleEvent:
    """Base class; ``name`` is the emitted event name."""
    timestamp: int

    name = "ModuleEvent"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "timestamp": self.timestamp}


@dataclass(frozen=True)
class RealityModuleSetup(ModuleEvent):
    """Emitted once when the module is initialized."""
    initiator: str
    owner: str
    avatar: str
    target: str

    name = "RealityModuleSetup"

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "initiator": self.initiator,
            "owner": self.owner,
            "avatar": self.avatar,
            "target": self.target,
        }


@dataclass(frozen=True)
class ProposalQuestionCreated(ModuleEvent):
    """Emitted when a proposal is bound to a freshly asked question."""
    question_id: bytes
    proposal_id: str
    nonce: int

    name = "ProposalQuestionCreated"

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "questionId": encode_hex(self.question_id),
            "proposalId": self.proposal_id,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class ProposalInvalidated(ModuleEvent):
    key: bytes
    previous_state: bytes
    reason: str

    name = "ProposalInvalidated"

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "key": encode_hex(self.key),
            "previousState": encode_hex(self.previous_state),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ExecutionAnnouncement(ModuleEvent):
    """Emitted when a proposal is marked ready for execution."""
    question_id: bytes
    proposal_id: str
    question: str

    name = "ExecutionAnnouncement"

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "questionId": encode_hex(self.question_id),
            "proposalId": self.proposal_id,
            "question": self.question,
        }


@dataclass(frozen=True)
class TransactionExecuted(ModuleEvent):
    question_hash: bytes
    tx_hash: bytes
    index: int

    name = "TransactionExecuted"

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "questionHash": encode_hex(self.question_hash),
            "txHash": encode_hex(self.tx_hash),
            "index": self.index,
        }


@dataclass(frozen=True)
class ConfigChanged(ModuleEvent):
    """Emitted by every owner setter."""
    setting: str
    old_value: Any
    new_value: Any

    name = "ConfigChanged"

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "setting": self.setting,
            "old": self.old_value,
            "new": self.new_value,
        }


@dataclass(frozen=True)
class OwnershipTransferred(ModuleEvent):
    previous_owner: str
    new_owner: str

    name = "OwnershipTransferred"

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "previousOwner": self.previous_owner,
            "newOwner": self.new_owner,
        }
