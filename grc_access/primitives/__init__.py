"""
GRC Access Primitives
=====================
Pure-Python building blocks shared by every access-control service.
No Django dependency.
"""

from grc_access.primitives.actor import Actor, ActorType

__all__ = [
    "Actor",
    "ActorType",
]
