"""Game-system abstraction consulted by the planner and the executor.

A :class:`MookModel` hides every system-specific rule (weapon ranges, action
economy, hit points, movement) behind a small capability interface.  The
controller code above it is system agnostic; supporting another game system
means subclassing :class:`MookModel` and registering the subclass in
:mod:`rules.factory`.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from config.settings import Dnd5eSettings, MookInitiative, MookSettings
from core.actions.action import (
    Action,
    ActionType,
    AttackAction,
    AttackType,
    FaceAction,
    HaltAction,
    PlanAction,
    RotateAction,
    SenseAction,
    StepAction,
)
from interface.models import ActorSheet, Weapon
from interface.ports import HostServices
from rules.multiattack import MultiattackRules, parse_multiattack
from utils.logger import get_logger

logger = get_logger(__name__)


class UnsupportedSystemError(NotImplementedError):
    """The active game system cannot perform the requested operation."""


class AttackError(RuntimeError):
    """A single attack repeat failed in the host."""


@dataclass(frozen=True, slots=True)
class MookModelSettings:
    """Rules-facing view of :class:`config.settings.MookSettings`."""

    mook_initiative: MookInitiative = MookInitiative.WANDER
    rotation_cost: float = 0.2
    use_melee: bool = True
    use_ranged: bool = True
    use_vision: bool = True
    standard_melee_tile_range: float = 1
    standard_ranged_tile_range: float = 12
    dnd5e: Dnd5eSettings = field(default_factory=Dnd5eSettings)

    @classmethod
    def from_settings(cls, settings: MookSettings) -> "MookModelSettings":
        initiative = settings.mook_initiative
        cost = settings.rotation_cost
        if initiative != MookInitiative.ROTATE:
            cost = min(max(cost, 0.0), 1.0)
        elif cost == 0:
            initiative = MookInitiative.DO_NOTHING

        return cls(
            mook_initiative=initiative,
            rotation_cost=cost,
            use_melee=settings.use_melee,
            use_ranged=settings.use_ranged,
            use_vision=settings.use_vision,
            standard_melee_tile_range=settings.standard_melee_tile_range,
            standard_ranged_tile_range=settings.standard_ranged_tile_range,
            dnd5e=settings.dnd5e,
        )


class Ability:
    """A once-per-turn resource such as a dash or an attack slot."""

    def __init__(self, kind: str, duration: str, act: Optional[Callable[[], float]] = None) -> None:
        self.kind = kind
        self.duration = duration
        self._act = act
        self.used = False

    def __repr__(self) -> str:
        return f"Ability({self.kind!r}, {self.duration!r}, used={self.used})"

    def can(self) -> bool:
        return not self.used

    def act(self) -> float:
        if not self.can():
            return 0
        self.used = True
        return self._act() if self._act is not None else 0

    def recharge(self) -> None:
        self.used = False


class MookModel(ABC):
    """Capabilities and action factories for one token."""

    def __init__(
        self,
        token_id: str,
        host: HostServices,
        settings: MookModelSettings,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.token_id = token_id
        self.host = host
        self.settings = settings
        self.random = rng or random.Random()
        self.abilities: List[Ability] = []
        self.target_history: List[str] = []
        self.attacks_executed = 0
        self.multiattack_rules: Optional[MultiattackRules] = parse_multiattack(self.sheet.features)

    # ------------------------------------------------------------------
    # Turn lifecycle
    # ------------------------------------------------------------------
    def start_turn(self) -> None:
        self.reset_resources()
        self._start_turn()

    def reset_resources(self) -> None:
        self.abilities = []
        self.attacks_executed = 0
        self._reset_resources()

    def _reset_resources(self) -> None:
        pass

    def _start_turn(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Action factories
    # ------------------------------------------------------------------
    def halt_action(self) -> HaltAction:
        return HaltAction()

    def sense_action(self) -> SenseAction:
        return SenseAction()

    def plan_action(self) -> PlanAction:
        return PlanAction()

    def rotate_action(self, angle: float) -> RotateAction:
        return RotateAction(angle=angle, cost=self.settings.rotation_cost)

    def random_rotate_action(self) -> RotateAction:
        return self.rotate_action(45 if self.random.random() > 0.5 else -45)

    def step_action(self) -> StepAction:
        return StepAction()

    def face_action(self, target_id: str) -> FaceAction:
        return FaceAction(target_id=target_id)

    def melee_attack_action(self) -> Optional[AttackAction]:
        weapon = self.melee_weapon
        return AttackAction(weapon=weapon, attack_type=AttackType.MELEE) if weapon else None

    def ranged_attack_action(self) -> Optional[AttackAction]:
        weapon = self.ranged_weapon
        return AttackAction(weapon=weapon, attack_type=AttackType.RANGED) if weapon else None

    def explore_actions(self) -> List[Action]:
        """Fallback actions queued when the mook explores."""

        initiative = self.settings.mook_initiative
        if initiative == MookInitiative.DO_NOTHING:
            return [self.halt_action()]
        if initiative == MookInitiative.ROTATE:
            return [self.random_rotate_action()]
        if initiative == MookInitiative.CREEP:
            return [self.step_action()]
        return [self.random_rotate_action(), self.step_action()]

    # ------------------------------------------------------------------
    # Attacks
    # ------------------------------------------------------------------
    @property
    def multiattack_active(self) -> bool:
        return bool(self.multiattack_rules)

    async def attack(self, action: Action, *, repeat: int = 0) -> None:
        """Perform one repeat of ``action``.

        The action economy is spent on the first repeat of an action unless a
        multiattack already paid for it this turn.
        """

        if action.kind != ActionType.ATTACK:
            raise UnsupportedSystemError(f"cannot attack with a {action.kind.name} action")

        if repeat == 0 and (self.attacks_executed == 0 or not self.multiattack_active):
            self.spend_attack()

        try:
            await self._attack(action)
        except UnsupportedSystemError:
            raise
        except Exception as exc:
            raise AttackError(f"{action.weapon.name} attack failed: {exc}") from exc

        self.attacks_executed += 1

    def spend_attack(self) -> None:
        """Consume the action economy for one attack."""

    async def _attack(self, action: AttackAction) -> None:
        raise UnsupportedSystemError(f"game system {self.host.rules.system_id!r} cannot attack")

    @property
    def can_attack(self) -> bool:
        return False

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------
    @property
    def can_zoom(self) -> bool:
        return False

    def zoom(self) -> float:
        """Spend a movement boost and return the extra time it grants."""

        return 0

    @property
    @abstractmethod
    def time(self) -> float:
        """Time units available this turn; moving one tile costs one unit."""

    @property
    def base_time(self) -> float:
        return self.time

    # ------------------------------------------------------------------
    # Weapons
    # ------------------------------------------------------------------
    @property
    def sheet(self) -> ActorSheet:
        return self.host.rules.actor(self.token_id)

    @property
    def melee_weapons(self) -> List[Weapon]:
        return [w for w in self.sheet.weapons if w.has_attack and w.attack_type == AttackType.MELEE]

    @property
    def ranged_weapons(self) -> List[Weapon]:
        return [w for w in self.sheet.weapons if w.has_attack and w.attack_type == AttackType.RANGED]

    @property
    def has_melee(self) -> bool:
        return self.settings.use_melee and bool(self.melee_weapons)

    @property
    def has_ranged(self) -> bool:
        return self.settings.use_ranged and bool(self.ranged_weapons)

    @property
    def melee_weapon(self) -> Optional[Weapon]:
        return self.melee_weapons[0] if self.has_melee else None

    @property
    def ranged_weapon(self) -> Optional[Weapon]:
        return self.ranged_weapons[0] if self.has_ranged else None

    @property
    @abstractmethod
    def melee_range(self) -> float:
        """Melee reach in tiles."""

    @property
    @abstractmethod
    def ranged_range(self) -> float:
        """Ranged reach in tiles."""

    # ------------------------------------------------------------------
    # Vision and health
    # ------------------------------------------------------------------
    @property
    def has_sight(self) -> bool:
        token = self.host.perception.token(self.token_id)
        return bool(token and token.has_sight)

    @property
    def has_vision(self) -> bool:
        return self.settings.use_vision and self.has_sight

    def current_health(self, token_id: Optional[str] = None) -> float:
        return self.host.rules.actor(token_id or self.token_id).hp

    def max_health(self, token_id: Optional[str] = None) -> float:
        return self.host.rules.actor(token_id or self.token_id).hp_max

    def health_percent(self, token_id: Optional[str] = None) -> float:
        maximum = self.max_health(token_id)
        return self.current_health(token_id) / maximum if maximum else 0.0

    # ------------------------------------------------------------------
    # Target history
    # ------------------------------------------------------------------
    def add_target(self, token_id: str) -> None:
        self.target_history.append(token_id)

    @property
    def first_target(self) -> Optional[str]:
        return self.target_history[0] if self.target_history else None

    @property
    def last_target(self) -> Optional[str]:
        return self.target_history[-1] if self.target_history else None


__all__ = [
    "Ability",
    "AttackError",
    "MookModel",
    "MookModelSettings",
    "UnsupportedSystemError",
]
