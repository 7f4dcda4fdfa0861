"""
Module Types

Transactions, proposals and the variant profile that selects which gate
checks a module instance runs.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Union

from eth_utils import decode_hex, encode_hex, is_address, to_checksum_address

from ..exceptions import IntegrityError


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class Operation(IntEnum):
    """How the avatar performs a module transaction."""
    CALL = 0
    DELEGATE_CALL = 1


class RegistryIndex(Enum):
    """Direction of the proposal registry mapping."""
    BY_QUESTION_HASH = "question_hash"   # question_hash -> question_id
    BY_QUESTION_ID = "question_id"       # question_id -> question_hash


class QuestionIdScheme(Enum):
    """How the module derives the id the oracle must return."""
    REALITIO_V2 = "v2"   # (template, question, arbitrator, timeout, opening_ts, nonce)
    REALITIO_V3 = "v3"   # (question, nonce) with module config bound in


class CooldownAnchor(Enum):
    """Timestamp the cooldown and expiration windows are measured from."""
    FINALIZE_TS = "finalize_ts"
    ANNOUNCEMENT = "announcement"


class ProposalStatus(IntEnum):
    """Derived lifecycle stage of a proposal."""
    UNSET = 0
    ASKED = 1
    INVALIDATED = 2
    EXECUTED = 3


# ══════════════════════════════════════════════════════════════════════
#  PROFILE
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ModuleProfile:
    """
    Variant selection for one module engine.

    Fields:
        name:             Label used in logs and serialization
        registry_index:   Which side of the question binding is the key
        question_id:      Question id derivation scheme
        bond_check:       Ask with a minimum bond and enforce it on execution
        cooldown_anchor:  Oracle finalize time, or readiness announcement time
        expiration_check: Honour answer_expiration at execution time
    """
    name: str
    registry_index: RegistryIndex = RegistryIndex.BY_QUESTION_HASH
    question_id: QuestionIdScheme = QuestionIdScheme.REALITIO_V3
    bond_check: bool = True
    cooldown_anchor: CooldownAnchor = CooldownAnchor.FINALIZE_TS
    expiration_check: bool = True

    @property
    def requires_announcement(self) -> bool:
        return self.cooldown_anchor == CooldownAnchor.ANNOUNCEMENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "registryIndex": self.registry_index.value,
            "questionId": self.question_id.value,
            "bondCheck": self.bond_check,
            "cooldownAnchor": self.cooldown_anchor.value,
            "expirationCheck": self.expiration_check,
        }


STANDARD_PROFILE = ModuleProfile(name="standard")

PLAIN_PROFILE = ModuleProfile(
    name="plain",
    question_id=QuestionIdScheme.REALITIO_V2,
    bond_check=False,
)

ANNOUNCEMENT_PROFILE = ModuleProfile(
    name="announcement",
    registry_index=RegistryIndex.BY_QUESTION_ID,
    question_id=QuestionIdScheme.REALITIO_V2,
    bond_check=False,
    cooldown_anchor=CooldownAnchor.ANNOUNCEMENT,
    expiration_check=False,
)

PROFILES: Dict[str, ModuleProfile] = {
    p.name: p for p in (STANDARD_PROFILE, PLAIN_PROFILE, ANNOUNCEMENT_PROFILE)
}


# ══════════════════════════════════════════════════════════════════════
#  TRANSACTIONS & PROPOSALS
# ══════════════════════════════════════════════════════════════════════

def _coerce_data(data: Union[bytes, str, None]) -> bytes:
    if data is None:
        return b''
    if isinstance(data, str):
        return decode_hex(data)
    return bytes(data)


@dataclass(frozen=True)
class ModuleTransaction:
    """
    A single call the avatar performs once the proposal is approved.

    The nonce disambiguates otherwise identical transactions inside one
    proposal; by convention it is the transaction's position.
    """
    to: str
    value: int = 0
    data: bytes = b''
    operation: Operation = Operation.CALL
    nonce: int = 0

    def __post_init__(self):
        if not is_address(self.to):
            raise IntegrityError(f"Invalid transaction target: {self.to!r}")
        if self.value < 0:
            raise IntegrityError("Transaction value cannot be negative")
        if self.nonce < 0:
            raise IntegrityError("Transaction nonce cannot be negative")
        object.__setattr__(self, "to", to_checksum_address(self.to))
        object.__setattr__(self, "data", _coerce_data(self.data))
        object.__setattr__(self, "operation", Operation(self.operation))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "to": self.to,
            "value": str(self.value),
            "data": encode_hex(self.data),
            "operation": int(self.operation),
            "nonce": self.nonce,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_nonce: int = 0) -> "ModuleTransaction":
        return cls(
            to=data["to"],
            value=int(data.get("value", 0)),
            data=_coerce_data(data.get("data")),
            operation=Operation(int(data.get("operation", 0))),
            nonce=int(data.get("nonce", default_nonce)),
        )


@dataclass
class Proposal:
    """
    A named, ordered batch of module transactions.

    Only the derived hashes are ever stored by the module.
    """
    id: str
    transactions: List[ModuleTransaction] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.id, str):
            raise IntegrityError("Proposal id must be a string")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "txs": [tx.to_dict() for tx in self.transactions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        """Read the proposal file format ``{"id": ..., "txs": [...]}``."""
        txs = [
            ModuleTransaction.from_dict(tx, default_nonce=index)
            for index, tx in enumerate(data.get("txs", []))
        ]
        return cls(id=data["id"], transactions=txs)

    def __repr__(self) -> str:
        return f"<Proposal '{self.id}' txs={len(self.transactions)}>"
