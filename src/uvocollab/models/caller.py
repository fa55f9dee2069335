"""Caller claims asserted by the identity provider."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class Role(StrEnum):
    NEW_ARTIST = "new_artist"
    LEGEND = "legend"
    ADMIN = "admin"
    SYSTEM = "system"


class Caller(BaseModel, frozen=True):
    """The authenticated principal for a single lifecycle call."""

    uid: str
    role: Role = Role.NEW_ARTIST
    name: str | None = None

    @property
    def is_override(self) -> bool:
        """Admins and the signature webhook may act on any collaboration."""
        return self.role in (Role.ADMIN, Role.SYSTEM)

    @classmethod
    def system(cls) -> Caller:
        return cls(uid="system", role=Role.SYSTEM)
