"""
GRC Access Actor Primitive - Who Performed a Mutation
======================================================
Every mutating call in the access core is attributed to an Actor.
Audit entries and role assignments persist the actor as an
(actor_id, actor_type) pair, so automated changes are never confused
with human ones.

Actor types:
    HUMAN   : An authenticated user acting through the admin surface
    SYSTEM  : An automated component (SAML sync, lockout policy, bootstrap)

RULES:
- Human actors MUST carry the acting user's id
- System actors MUST name the component that acted
- There is no numeric sentinel for the system; use Actor.system()

This file contains NO persistence logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

SYSTEM_ACTOR_PREFIX = "system:"


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class ActorType(Enum):
    """The type of entity that performed an action."""
    HUMAN = "HUMAN"
    SYSTEM = "SYSTEM"


# ══════════════════════════════════════════════════════════════
# ACTOR DEFINITION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Actor:
    """
    Identifies who performed a mutation.

    Fields:
        actor_type:     HUMAN | SYSTEM
        actor_id:       User id (as string) or "system:<component>"
        user_id:        Numeric user id for HUMAN actors, None for SYSTEM
        component:      Component name for SYSTEM actors, None for HUMAN
    """
    actor_type: ActorType
    actor_id: str
    user_id: Optional[int] = None
    component: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.actor_type, ActorType):
            raise ValueError("actor_type must be ActorType enum.")
        if not self.actor_id or not isinstance(self.actor_id, str):
            raise ValueError("actor_id must be a non-empty string.")
        if self.actor_type == ActorType.HUMAN:
            if not isinstance(self.user_id, int) or isinstance(self.user_id, bool):
                raise ValueError("HUMAN actors require an integer user_id.")
            if self.user_id <= 0:
                raise ValueError("HUMAN actors require a positive user_id.")
        else:
            if not self.component:
                raise ValueError("SYSTEM actors require a component name.")

    @property
    def is_human(self) -> bool:
        return self.actor_type == ActorType.HUMAN

    @property
    def is_system(self) -> bool:
        return self.actor_type == ActorType.SYSTEM

    def to_dict(self) -> dict:
        return {
            "actor_type": self.actor_type.value,
            "actor_id": self.actor_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Actor:
        return cls.from_reference(data["actor_id"], data["actor_type"])

    @classmethod
    def from_reference(cls, actor_id: str, actor_type: str) -> Actor:
        """Rebuild an Actor from its persisted (actor_id, actor_type) pair."""
        kind = ActorType(actor_type)
        if kind == ActorType.HUMAN:
            return cls.human(int(actor_id))
        if not actor_id.startswith(SYSTEM_ACTOR_PREFIX):
            raise ValueError(f"system actor_id '{actor_id}' lacks the system prefix.")
        return cls.system(actor_id[len(SYSTEM_ACTOR_PREFIX):])

    @classmethod
    def human(cls, user_id: int) -> Actor:
        """Factory for human actors."""
        return cls(
            actor_type=ActorType.HUMAN,
            actor_id=str(user_id),
            user_id=user_id,
        )

    @classmethod
    def system(cls, component: str) -> Actor:
        """Factory for system actors (SAML sync, lockout policy, bootstrap)."""
        return cls(
            actor_type=ActorType.SYSTEM,
            actor_id=f"{SYSTEM_ACTOR_PREFIX}{component}",
            component=component,
        )
