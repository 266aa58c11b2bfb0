"""Snapshots of host state handed to the mook controllers.

Hosts build these records from their own documents; the controllers never
hold on to host objects directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Optional, Tuple

from core.grid import Point


class Disposition(IntEnum):
    SECRET = -2
    HOSTILE = -1
    NEUTRAL = 0
    FRIENDLY = 1


@dataclass(frozen=True, slots=True)
class Weapon:
    """An item the actor can attack with."""

    id: str
    name: str
    attack_type: str
    range: Optional[float] = None
    has_attack: bool = True
    description: str = ""


@dataclass(frozen=True, slots=True)
class Feature:
    name: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class ActorSheet:
    """Rules data of the actor behind a token."""

    walk_speed: Optional[float] = None
    hp: int = 0
    hp_max: int = 0
    weapons: Tuple[Weapon, ...] = ()
    features: Tuple[Feature, ...] = ()

    def weapon(self, item_id: str) -> Optional[Weapon]:
        for weapon in self.weapons:
            if weapon.id == item_id:
                return weapon
        return None


@dataclass(frozen=True, slots=True)
class CombatantInfo:
    """Token state relevant to sensing and movement."""

    token_id: str
    name: str
    disposition: Disposition
    position: Point
    in_combat: bool = True
    rotation: float = 0.0
    has_player_owner: bool = False
    lock_rotation: bool = False
    has_sight: bool = True

    def moved_to(self, position: Point) -> "CombatantInfo":
        return replace(self, position=position)


@dataclass(frozen=True, slots=True)
class CombatInfo:
    id: str
    scene_id: str
    current_token_id: Optional[str] = None
    combatant_ids: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DialogOption:
    key: str
    label: str


@dataclass(frozen=True, slots=True)
class DialogRequest:
    """A question put to the controlling user.

    ``fields`` carries structured form content (movement choice, weapon
    cards) that a host may render however it likes.
    """

    title: str
    content: str
    options: Tuple[DialogOption, ...]
    default: str
    fields: dict = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DialogResponse:
    """The option picked by the user plus any submitted form values."""

    option: str
    values: dict = field(default_factory=dict)


__all__ = [
    "ActorSheet",
    "CombatInfo",
    "CombatantInfo",
    "DialogOption",
    "DialogRequest",
    "DialogResponse",
    "Disposition",
    "Feature",
    "Weapon",
]
