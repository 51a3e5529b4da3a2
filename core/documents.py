"""
core/documents.py — Document ownership
=======================================
A supporting document belongs to exactly one of two owner kinds. The table
stores the pair as (related_type, related_id); code passes a DocumentOwner
so the two kinds are handled explicitly instead of as loose strings.
"""

from dataclasses import dataclass
from enum import Enum

from core.errors import ValidationError


class OwnerKind(str, Enum):
    BENEFICIARY = "pwd"
    ASSISTANCE_REQUEST = "assistance"


@dataclass(frozen=True)
class DocumentOwner:
    kind: OwnerKind
    id: int

    @classmethod
    def beneficiary(cls, pwd_id: int) -> "DocumentOwner":
        return cls(OwnerKind.BENEFICIARY, pwd_id)

    @classmethod
    def assistance_request(cls, request_id: int) -> "DocumentOwner":
        return cls(OwnerKind.ASSISTANCE_REQUEST, request_id)

    @classmethod
    def parse(cls, related_type: str, related_id: int) -> "DocumentOwner":
        """Build an owner from the stored discriminator, rejecting unknown kinds."""
        try:
            kind = OwnerKind(related_type)
        except ValueError:
            allowed = ", ".join(k.value for k in OwnerKind)
            raise ValidationError(f"Invalid related_type '{related_type}'. Must be one of: {allowed}")
        return cls(kind, related_id)

    @property
    def label(self) -> str:
        if self.kind is OwnerKind.BENEFICIARY:
            return f"PWD record #{self.id}"
        return f"assistance request #{self.id}"
