"""In-memory host implementing every port on a square grid.

The sandbox backs the command line skirmish runner and the tests.  It keeps
tokens, actors and combats in plain dictionaries, resolves movement against a
:class:`core.grid.GridMap` and answers dialogs from a script (falling back to
each dialog's default answer).
"""

from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union

from config.settings import DistanceMetric
from core.event_bus import EventBus
from core.events.topics import HookTopic
from core.grid import GridMap, Point
from core.pathfinding import GridPathService, MovementError
from interface.models import (
    ActorSheet,
    CombatantInfo,
    CombatInfo,
    DialogRequest,
    DialogResponse,
    Disposition,
    Feature,
    Weapon,
)
from interface.ports import HostServices
from utils.logger import get_logger

logger = get_logger(__name__)

DialogAnswer = Union[None, DialogResponse, Callable[[DialogRequest], Optional[DialogResponse]]]


@dataclass
class SandboxCombat:
    id: str
    scene_id: str
    order: List[str] = field(default_factory=list)
    turn: int = 0

    def info(self) -> CombatInfo:
        current = self.order[self.turn] if self.order else None
        return CombatInfo(self.id, self.scene_id, current, tuple(self.order))


class SandboxHost:
    """A single-user, single-scene host."""

    system_id = "dnd5e"

    def __init__(
        self,
        grid: GridMap,
        *,
        scene_id: str = "sandbox",
        grid_distance: float = 5.0,
        bus: Optional[EventBus] = None,
        is_gm: bool = True,
        rng: Optional[random.Random] = None,
        roll_completion: bool = True,
    ) -> None:
        self.grid = grid
        self.scene_id = scene_id
        self.bus = bus or EventBus()
        self.random = rng or random.Random()
        self.roll_completion = roll_completion
        self.gm = is_gm
        self._grid_distance = grid_distance

        self.tokens: Dict[str, CombatantInfo] = {}
        self.actors: Dict[str, ActorSheet] = {}
        self.combats_by_id: Dict[str, SandboxCombat] = {}
        self.current_combat_id: Optional[str] = None
        self.hidden: Set[Tuple[str, str]] = set()

        self.controlled: Set[str] = set()
        self.selected: List[str] = []
        self.targets: Set[str] = set()
        self.highlighted: List[Point] = []
        self.camera: Optional[Point] = None
        self.notifications: List[Tuple[str, str]] = []

        self.dialog_answers: Deque[DialogAnswer] = deque()
        self.dialogs_shown: List[DialogRequest] = []
        self.failing_items: Set[str] = set()
        self.attacks: List[Tuple[str, str, Optional[str]]] = []
        self.pending_combat: Optional[Mapping[str, Any]] = None

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------
    def add_token(self, token: CombatantInfo, sheet: Optional[ActorSheet] = None) -> None:
        self.tokens[token.token_id] = token
        self.actors[token.token_id] = sheet or ActorSheet()

    def create_combat(self, combat_id: str, order: Sequence[str], scene_id: Optional[str] = None) -> CombatInfo:
        combat = SandboxCombat(combat_id, scene_id or self.scene_id, list(order))
        self.combats_by_id[combat_id] = combat
        if self.current_combat_id is None:
            self.current_combat_id = combat_id
        info = combat.info()
        self.bus.publish(HookTopic.COMBAT_CREATED, combat=info)
        return info

    def delete_combat(self, combat_id: str) -> None:
        self.combats_by_id.pop(combat_id, None)
        if self.current_combat_id == combat_id:
            self.current_combat_id = next(iter(self.combats_by_id), None)
        self.bus.publish(HookTopic.COMBAT_DELETED, combat_id=combat_id)

    def add_combatant(self, combat_id: str, token_id: str) -> None:
        self.combats_by_id[combat_id].order.append(token_id)
        self.bus.publish(HookTopic.COMBATANT_CREATED, combat_id=combat_id, token_id=token_id)

    def remove_combatant(self, combat_id: str, token_id: str) -> None:
        combat = self.combats_by_id[combat_id]
        if token_id in combat.order:
            index = combat.order.index(token_id)
            combat.order.remove(token_id)
            if index < combat.turn:
                combat.turn -= 1
            if combat.order:
                combat.turn %= len(combat.order)
        self.bus.publish(HookTopic.COMBATANT_DELETED, combat_id=combat_id, token_id=token_id)

    def answer_dialogs(self, *answers: DialogAnswer) -> None:
        """Queue answers for the next dialogs; ``None`` closes a dialog."""

        self.dialog_answers.extend(answers)

    def services(self) -> HostServices:
        return HostServices(
            perception=self,
            tokens=self,
            canvas=self,
            dialogs=self,
            tracker=self,
            rules=self,
            bus=self.bus,
            path_service_factory=self.path_service,
        )

    def path_service(self, metric: DistanceMetric) -> GridPathService:
        return GridPathService(self.grid, metric, self.positions)

    def positions(self) -> Dict[str, Point]:
        return {token_id: token.position for token_id, token in self.tokens.items()}

    def _occupant(self, point: Point) -> Optional[str]:
        for token_id, token in self.tokens.items():
            if token.position == point and self.actors[token_id].hp > 0:
                return token_id
        return None

    def _update_token(self, token_id: str, **changes: Any) -> None:
        self.tokens[token_id] = replace(self.tokens[token_id], **changes)
        self.bus.publish(HookTopic.TOKEN_UPDATED, changes={"id": token_id, **changes})

    # ------------------------------------------------------------------
    # PerceptionPort
    # ------------------------------------------------------------------
    def combatants(self) -> Sequence[CombatantInfo]:
        combat = self.combats_by_id.get(self.current_combat_id or "")
        if combat is None:
            return []
        return [self.tokens[token_id] for token_id in combat.order if token_id in self.tokens]

    def token(self, token_id: str) -> Optional[CombatantInfo]:
        return self.tokens.get(token_id)

    def can_see(self, viewer_id: str, target_id: str) -> bool:
        if (viewer_id, target_id) in self.hidden:
            return False
        viewer = self.tokens.get(viewer_id)
        target = self.tokens.get(target_id)
        if viewer is None or target is None:
            return False
        return self.grid.has_los(viewer.position, target.position)

    # ------------------------------------------------------------------
    # TokenPort
    # ------------------------------------------------------------------
    async def move_token(self, token_id: str, destination: Point) -> None:
        if not self.grid.is_walkable(destination):
            raise MovementError(f"{destination} is blocked")
        occupant = self._occupant(destination)
        if occupant is not None and occupant != token_id:
            raise MovementError(f"{destination} is occupied by {occupant}")
        self._update_token(token_id, position=destination)

    async def rotate_token(self, token_id: str, rotation: float) -> None:
        if self.tokens[token_id].lock_rotation:
            return
        self._update_token(token_id, rotation=rotation)

    async def set_lock_rotation(self, token_id: str, locked: bool) -> None:
        self._update_token(token_id, lock_rotation=locked)

    def control(self, token_id: str) -> None:
        self.controlled.add(token_id)

    def release(self, token_id: str) -> None:
        self.controlled.discard(token_id)

    def is_traversable(self, token_id: str, origin: Point, destination: Point) -> bool:
        if max(abs(destination.x - origin.x), abs(destination.y - origin.y)) != 1:
            return False
        if not self.grid.is_walkable(destination):
            return False
        occupant = self._occupant(destination)
        return occupant is None or occupant == token_id

    # ------------------------------------------------------------------
    # CanvasPort
    # ------------------------------------------------------------------
    async def center_camera(self, point: Point) -> None:
        self.camera = point

    def highlight(self, points: Sequence[Point]) -> None:
        self.highlighted = list(points)

    def clear_highlights(self) -> None:
        self.highlighted = []

    def set_target(self, token_id: str) -> None:
        self.targets = {token_id}

    def clear_targets(self) -> None:
        self.targets = set()

    def notify(self, message: str, level: str = "info", permanent: bool = False) -> None:
        self.notifications.append((level, message))
        logger.info("[%s] %s", level, message)

    # ------------------------------------------------------------------
    # ConfirmationPort
    # ------------------------------------------------------------------
    async def choose(self, request: DialogRequest) -> Optional[DialogResponse]:
        self.dialogs_shown.append(request)
        if self.dialog_answers:
            answer = self.dialog_answers.popleft()
            return answer(request) if callable(answer) else answer
        return DialogResponse(request.default, dict(request.fields.get("defaults", {})))

    # ------------------------------------------------------------------
    # CombatTrackerPort
    # ------------------------------------------------------------------
    def is_gm(self) -> bool:
        return self.gm

    def active_scene_id(self) -> str:
        return self.scene_id

    def current_combat(self) -> Optional[CombatInfo]:
        combat = self.combats_by_id.get(self.current_combat_id or "")
        return combat.info() if combat is not None else None

    def combats(self) -> Sequence[CombatInfo]:
        return [combat.info() for combat in self.combats_by_id.values()]

    def controlled_tokens(self) -> Sequence[str]:
        return list(self.selected)

    async def activate(self, combat_id: str) -> None:
        if combat_id not in self.combats_by_id:
            raise KeyError(f"unknown combat {combat_id!r}")
        self.current_combat_id = combat_id

    async def next_turn(self) -> None:
        self._advance(1)

    async def previous_turn(self) -> None:
        self._advance(-1)

    def _advance(self, delta: int) -> None:
        combat = self.combats_by_id.get(self.current_combat_id or "")
        if combat is None or not combat.order:
            raise RuntimeError("no active combat")
        combat.turn = (combat.turn + delta) % len(combat.order)

    # ------------------------------------------------------------------
    # RulesHost
    # ------------------------------------------------------------------
    def actor(self, token_id: str) -> ActorSheet:
        return self.actors.get(token_id, ActorSheet())

    def grid_distance(self) -> float:
        return self._grid_distance

    async def use_item(self, token_id: str, item_id: str) -> None:
        if item_id in self.failing_items:
            raise RuntimeError(f"{item_id} could not be used")
        target_id = next(iter(self.targets), None)
        self.attacks.append((token_id, item_id, target_id))
        if target_id is not None and target_id in self.actors:
            sheet = self.actors[target_id]
            damage = self.random.randint(1, 6)
            self.actors[target_id] = replace(sheet, hp=max(sheet.hp - damage, 0))
            logger.info("%s hits %s with %s for %d", token_id, target_id, item_id, damage)
        if self.roll_completion:
            self.bus.publish(HookTopic.ROLL_COMPLETED, token_id=token_id, item_id=item_id)

    # ------------------------------------------------------------------
    # Scenario loading
    # ------------------------------------------------------------------
    @classmethod
    def from_scenario(cls, scenario: Mapping[str, Any], rng: Optional[random.Random] = None) -> "SandboxHost":
        """Build a host from a scenario mapping (see ``skirmish.yaml``)."""

        scene = scenario.get("scene", {})
        grid = GridMap(
            int(scene.get("width", 10)),
            int(scene.get("height", 10)),
            walls=[tuple(w) for w in scene.get("walls", [])],
        )
        host = cls(
            grid,
            scene_id=str(scene.get("id", "sandbox")),
            grid_distance=float(scene.get("grid_distance", 5)),
            rng=rng,
        )

        for entry in scenario.get("tokens", []):
            actor = entry.get("actor", {})
            hp = int(actor.get("hp", 10))
            sheet = ActorSheet(
                walk_speed=actor.get("walk_speed"),
                hp=hp,
                hp_max=int(actor.get("hp_max", hp)),
                weapons=tuple(Weapon(**w) for w in actor.get("weapons", [])),
                features=tuple(Feature(**f) for f in actor.get("features", [])),
            )
            token = CombatantInfo(
                token_id=str(entry["id"]),
                name=str(entry.get("name", entry["id"])),
                disposition=Disposition[str(entry.get("disposition", "hostile")).upper()],
                position=Point.of(entry.get("position", (0, 0))),
                rotation=float(entry.get("rotation", 0)),
                has_player_owner=bool(entry.get("player_owner", False)),
                has_sight=bool(entry.get("has_sight", True)),
            )
            host.add_token(token, sheet)

        host.pending_combat = scenario.get("combat")
        return host

    def start_scenario_combat(self) -> Optional[CombatInfo]:
        combat = self.pending_combat
        if not combat:
            return None
        order = combat.get("order") or list(self.tokens)
        return self.create_combat(str(combat.get("id", "combat")), order)


__all__ = ["SandboxCombat", "SandboxHost"]
