"""
The authenticated actor of a request.

A request either carries a ``Subject`` or ``None`` (anonymous). Access
predicates take it explicitly; there is no ambient "current user".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Subject:
    id: str
    is_admin: bool = False
    email: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_user_document(cls, document: Mapping[str, Any]) -> Subject:
        """Build a subject from a stored User record."""
        raw_id = document.get("_id", document.get("id"))
        if raw_id is None:
            raise ValueError("User document has no identifier")
        return cls(
            id=str(raw_id),
            is_admin=bool(document.get("isAdmin", False)),
            email=document.get("email"),
            name=document.get("name"),
        )
