# medshare/core/actor.py
"""
Who performed an audited action.

Some actions are taken by a person (a reviewer approving a share), others by the
platform itself (the expiry sweep). Audit rows store the variant explicitly
instead of a placeholder user id.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum as PyEnum
from typing import Union
from uuid import UUID


class ActorType(str, PyEnum):
    USER = "user"
    SYSTEM = "system"


@dataclass(frozen=True)
class UserActor:
    user_id: UUID

    @property
    def actor_type(self) -> ActorType:
        return ActorType.USER


@dataclass(frozen=True)
class SystemActor:
    subsystem: str

    @property
    def actor_type(self) -> ActorType:
        return ActorType.SYSTEM


Actor = Union[UserActor, SystemActor]
