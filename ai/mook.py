"""Per-combatant controller driving one mook through its turn."""

from __future__ import annotations

import asyncio
import math
import random
from typing import Any, List, Mapping, Optional

from ai.errors import Abort
from ai.executor import TurnExecutor
from ai.planner import plan_turn
from config.settings import DistanceMetric, MookSettings
from core.actions.plan import ActionPlan
from core.grid import SQUARE_NEIGHBOR_ANGLES, Point, radial_distance
from core.pathfinding import MovementError, PathOptions
from interface.models import CombatantInfo, Disposition
from interface.ports import HostServices
from rules.factory import get_mook_model
from rules.model import MookModelSettings
from utils.logger import get_logger

logger = get_logger(__name__)


class Mook:
    """Wraps a host token and owns its per-turn state.

    ``time`` is the turn's movement/action budget; moving one tile costs one
    unit.  ``plan`` is consumed by :class:`ai.executor.TurnExecutor`.
    """

    def __init__(
        self,
        token_id: str,
        host: HostServices,
        settings: MookSettings,
        metric: DistanceMetric,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.host = host
        self.token_id = token_id
        self.settings = settings
        self.metric = metric

        token = host.perception.token(token_id)
        if token is None:
            raise Abort(f"Token with id {token_id} was not found")

        self.name = token.name
        self.path_service = host.path_service(metric)
        self.model = get_mook_model(token_id, host, settings, rng)
        self.start = token.position
        self.position = token.position
        self.visible_targets: List[str] = []
        self.targeted: List[str] = []
        self.time: float = self.model.time
        self.plan = ActionPlan()
        self.explore_approved = settings.explore_automatically
        self._disabled_rotation = False
        self._cleaned_up = False

    def __repr__(self) -> str:
        return f"Mook({self.token_id!r}, time={self.time}, plan={self.plan!r})"

    def apply_settings(self, settings: MookSettings) -> None:
        self.settings = settings
        self.model.settings = MookModelSettings.from_settings(settings)

    # ------------------------------------------------------------------
    # Turn lifecycle
    # ------------------------------------------------------------------
    async def start_turn(self) -> None:
        logger.info("Starting turn for %s", self.name or "unnamed mook")
        self._cleaned_up = False
        self.take_control()
        self.model.start_turn()

        token = self.token
        self.start = token.position
        self.position = token.position
        self.explore_approved = self.settings.explore_automatically
        self.time = self.model.time
        self.visible_targets = []
        self.plan.clear()

        if self.settings.disable_rotation:
            await self.lock_rotation()

    async def sense(self) -> None:
        """Refresh visible enemies and the path cache towards them."""

        self.path_service.clear(self.token_id)
        me = self.token
        self.visible_targets = [c.token_id for c in self.host.perception.combatants() if self._is_enemy(me, c)]
        logger.debug("%s sees targets %s", self.name, self.visible_targets)

        options = PathOptions(
            constrain_vision=not self.settings.mook_omniscience,
            whitelist=frozenset({self.token_id}),
        )
        self.path_service.compute_paths(self.token_id, self.visible_targets, self.time, options)

    def _is_enemy(self, me: CombatantInfo, other: CombatantInfo) -> bool:
        if other.token_id == self.token_id:
            return False
        if other.disposition in (Disposition.SECRET, Disposition.NEUTRAL):
            return False
        if int(me.disposition) * int(other.disposition) != -1:
            return False
        if not other.in_combat:
            return False
        if self.model.current_health(other.token_id) <= 0:
            return False
        if self.model.has_vision and not self.host.perception.can_see(self.token_id, other.token_id):
            return False
        return True

    def plan_turn(self) -> None:
        plan_turn(self)

    async def act(self) -> bool:
        return await TurnExecutor(self).run()

    async def end_turn(self) -> None:
        if self.settings.disable_rotation:
            await self.unlock_rotation()
        self.release_control()

    async def cleanup(self) -> None:
        """Release everything the turn grabbed; runs once per turn."""

        if self._cleaned_up:
            return
        self._cleaned_up = True
        logger.debug("Cleaning up mook %s", self.name or "unnamed")
        self.host.canvas.clear_highlights()
        self.clear_targets()
        await self.end_turn()

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------
    async def center_camera(self) -> None:
        await self.host.canvas.center_camera(self.position)

    async def rotate(self, d_theta: Optional[float]) -> None:
        """Turn by ``d_theta`` degrees."""

        if d_theta is None or math.isnan(d_theta):
            logger.error("Attempted invalid rotation for %s", self.name)
            return

        await self.host.tokens.rotate_token(self.token_id, (self.rotation + d_theta) % 360)
        await asyncio.sleep(self.settings.rotation_delay_seconds)

    async def move(self, destination: Point) -> bool:
        """Move onto ``destination``; ``False`` if blocked or rejected by the host."""

        if not self.host.tokens.is_traversable(self.token_id, self.position, destination):
            return False

        await self.rotate(radial_distance(self.position, destination, self.rotation))
        try:
            await self.host.tokens.move_token(self.token_id, destination)
        except MovementError as exc:
            logger.warning("Move of %s to %s rejected: %s", self.name, destination, exc)
            self.host.canvas.notify(str(exc), "warning")
            return False

        self.position = destination
        await self.center_camera()
        await asyncio.sleep(self.settings.move_delay_seconds)
        return True

    async def step(self) -> bool:
        """Step onto the free neighbour requiring the smallest turn."""

        angles = sorted(SQUARE_NEIGHBOR_ANGLES, key=lambda a: min(a, 360 - a))
        for angle in angles:
            if await self.move(self.position.neighbor(angle, self.rotation)):
                return True
        return False

    def degrees_to_target(self, target_id: str) -> Optional[float]:
        target = self.host.perception.token(target_id)
        if target is None:
            return None
        return radial_distance(self.position, target.position, self.rotation)

    def target(self, token_id: str) -> None:
        if not token_id:
            return
        self.host.canvas.set_target(token_id)
        self.targeted = [token_id]

    def clear_targets(self) -> None:
        self.host.canvas.clear_targets()
        self.targeted = []

    async def lock_rotation(self) -> None:
        if self.token.lock_rotation:
            return
        await self.host.tokens.set_lock_rotation(self.token_id, True)
        self._disabled_rotation = True

    async def unlock_rotation(self) -> None:
        if not self._disabled_rotation:
            return
        await self.host.tokens.set_lock_rotation(self.token_id, False)
        self._disabled_rotation = False

    def take_control(self) -> None:
        self.host.tokens.control(self.token_id)

    def release_control(self) -> None:
        self.host.tokens.release(self.token_id)

    def handle_token_update(self, changes: Mapping[str, Any]) -> None:
        if changes.get("id") != self.token_id:
            return
        if "position" in changes:
            self.position = Point.of(changes["position"])
        elif "x" in changes or "y" in changes:
            self.position = Point(int(changes.get("x", self.position.x)), int(changes.get("y", self.position.y)))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def token(self) -> CombatantInfo:
        token = self.host.perception.token(self.token_id)
        if token is None:
            raise Abort(f"Token with id {self.token_id} was not found")
        return token

    @property
    def rotation(self) -> float:
        return self.token.rotation

    def is_target_reachable(self, target_id: str, attack_range: float) -> bool:
        return self.path_service.reachable_distance(self.token_id, target_id) <= attack_range


__all__ = ["Mook"]
