"""Action variants executed during a mook turn.

Every action is an immutable record whose payload shape is fixed by its
:class:`ActionType`.  Handlers dispatch on ``kind`` and only ever see the
fields of the matching variant.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import TYPE_CHECKING, ClassVar, Optional, Union

from core.grid import Point
from core.pathfinding import Path

if TYPE_CHECKING:
    from interface.models import Weapon


class ActionType(IntEnum):
    """Kinds of action understood by the turn executor."""

    HALT = 0
    SENSE = 1
    PLAN = 2
    ROTATE = 3
    FACE = 4
    MOVE = 5
    STEP = 6
    TRAVERSE = 7
    EXPLORE = 8
    TARGET = 9
    ZOOM = 10
    ATTACK = 11
    CAST = 12


class AttackType:
    MELEE = "mwak"
    RANGED = "rwak"


@dataclass(frozen=True, slots=True)
class HaltAction:
    kind: ClassVar[ActionType] = ActionType.HALT
    cost: float = 0


@dataclass(frozen=True, slots=True)
class SenseAction:
    kind: ClassVar[ActionType] = ActionType.SENSE
    cost: float = 0


@dataclass(frozen=True, slots=True)
class PlanAction:
    kind: ClassVar[ActionType] = ActionType.PLAN
    cost: float = 0


@dataclass(frozen=True, slots=True)
class RotateAction:
    """Turn by ``angle`` degrees relative to the current rotation."""

    angle: float
    cost: float = 0
    kind: ClassVar[ActionType] = ActionType.ROTATE


@dataclass(frozen=True, slots=True)
class FaceAction:
    target_id: str
    cost: float = 0
    kind: ClassVar[ActionType] = ActionType.FACE


@dataclass(frozen=True, slots=True)
class MoveAction:
    destination: Point
    cost: float = 0
    kind: ClassVar[ActionType] = ActionType.MOVE


@dataclass(frozen=True, slots=True)
class StepAction:
    """Move onto the free neighbouring tile closest to the current facing."""

    cost: float = 1
    kind: ClassVar[ActionType] = ActionType.STEP


@dataclass(frozen=True, slots=True)
class TraverseAction:
    """Walk ``path`` until within ``dist`` tiles of its destination.

    ``path`` is ``None`` when the target could not be routed to; the
    traversal then only offers to stay in place.
    """

    path: Optional[Path]
    dist: float
    cost: float = 0
    kind: ClassVar[ActionType] = ActionType.TRAVERSE


@dataclass(frozen=True, slots=True)
class ExploreAction:
    kind: ClassVar[ActionType] = ActionType.EXPLORE
    cost: float = 0


@dataclass(frozen=True, slots=True)
class TargetAction:
    target_id: str
    cost: float = 0
    kind: ClassVar[ActionType] = ActionType.TARGET


@dataclass(frozen=True, slots=True)
class ZoomAction:
    kind: ClassVar[ActionType] = ActionType.ZOOM
    cost: float = 0


@dataclass(frozen=True, slots=True)
class AttackAction:
    """Attack with ``weapon`` ``attack_count`` times."""

    weapon: "Weapon"
    attack_type: str
    attack_count: int = 1
    cost: float = 0
    kind: ClassVar[ActionType] = ActionType.ATTACK

    def with_weapon(self, weapon: "Weapon", attack_count: int) -> "AttackAction":
        return replace(self, weapon=weapon, attack_type=weapon.attack_type, attack_count=attack_count)

    def with_count(self, attack_count: int) -> "AttackAction":
        return replace(self, attack_count=attack_count)


@dataclass(frozen=True, slots=True)
class CastAction:
    """Reserved; no rules model casts spells yet."""

    spell: str
    cost: float = 0
    kind: ClassVar[ActionType] = ActionType.CAST


Action = Union[
    HaltAction,
    SenseAction,
    PlanAction,
    RotateAction,
    FaceAction,
    MoveAction,
    StepAction,
    TraverseAction,
    ExploreAction,
    TargetAction,
    ZoomAction,
    AttackAction,
    CastAction,
]


__all__ = [
    "Action",
    "ActionType",
    "AttackAction",
    "AttackType",
    "CastAction",
    "ExploreAction",
    "FaceAction",
    "HaltAction",
    "MoveAction",
    "PlanAction",
    "RotateAction",
    "SenseAction",
    "StepAction",
    "TargetAction",
    "TraverseAction",
    "ZoomAction",
]
