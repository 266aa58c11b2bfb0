"""Capability ports the mook engine consumes from its host.

A host (a virtual tabletop bridge, the in-memory sandbox, a test double)
implements these protocols; the controllers, rules models and registry only
ever talk to them through :class:`HostServices`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence, runtime_checkable

from config.settings import DistanceMetric
from core.event_bus import EventBus
from core.grid import Point
from core.pathfinding import Path, PathOptions
from interface.models import ActorSheet, CombatantInfo, CombatInfo, DialogRequest, DialogResponse


@runtime_checkable
class PerceptionPort(Protocol):
    """Read access to the tokens of the active encounter."""

    def combatants(self) -> Sequence[CombatantInfo]:
        """Return every combatant of the current combat."""

    def token(self, token_id: str) -> Optional[CombatantInfo]:
        """Return the token ``token_id`` on the active scene, if any."""

    def can_see(self, viewer_id: str, target_id: str) -> bool:
        """Return whether ``viewer_id`` currently sees ``target_id``."""


@runtime_checkable
class TokenPort(Protocol):
    """Token mutations; each coroutine settles once the host has applied it."""

    async def move_token(self, token_id: str, destination: Point) -> None:
        """Move the token, raising :class:`core.pathfinding.MovementError` when rejected."""

    async def rotate_token(self, token_id: str, rotation: float) -> None:
        """Set the absolute rotation of the token in degrees."""

    async def set_lock_rotation(self, token_id: str, locked: bool) -> None:
        """Toggle the token's rotation lock."""

    def control(self, token_id: str) -> None:
        """Select the token on behalf of the user."""

    def release(self, token_id: str) -> None:
        """Release a token selected with :meth:`control`."""

    def is_traversable(self, token_id: str, origin: Point, destination: Point) -> bool:
        """Return whether the token may step from ``origin`` to ``destination``."""


@runtime_checkable
class CanvasPort(Protocol):
    """Camera, highlight, targeting and notification surface."""

    async def center_camera(self, point: Point) -> None:
        """Pan the camera onto ``point``."""

    def highlight(self, points: Sequence[Point]) -> None:
        """Highlight the given tiles."""

    def clear_highlights(self) -> None:
        """Remove every highlight drawn by :meth:`highlight`."""

    def set_target(self, token_id: str) -> None:
        """Target ``token_id``, releasing any other target of the user."""

    def clear_targets(self) -> None:
        """Release every target of the user."""

    def notify(self, message: str, level: str = "info", permanent: bool = False) -> None:
        """Show a notification to the user."""


@runtime_checkable
class ConfirmationPort(Protocol):
    """Asks the controlling user to pick one option of a dialog."""

    async def choose(self, request: DialogRequest) -> Optional[DialogResponse]:
        """Return the user's response, or ``None`` when the dialog was closed."""


@runtime_checkable
class CombatTrackerPort(Protocol):
    """Turn order and scene bookkeeping."""

    def is_gm(self) -> bool:
        """Return whether the current user may automate mooks."""

    def active_scene_id(self) -> str:
        """Return the id of the scene being displayed."""

    def current_combat(self) -> Optional[CombatInfo]:
        """Return the combat shown in the tracker, if any."""

    def combats(self) -> Sequence[CombatInfo]:
        """Return every combat known to the host."""

    def controlled_tokens(self) -> Sequence[str]:
        """Return ids of the tokens currently selected by the user."""

    async def activate(self, combat_id: str) -> None:
        """Make ``combat_id`` the tracker's current combat."""

    async def next_turn(self) -> None:
        """Advance the current combat to the next combatant."""

    async def previous_turn(self) -> None:
        """Step the current combat back to the previous combatant."""


@runtime_checkable
class RulesHost(Protocol):
    """Game-system data used by the rules models."""

    system_id: str

    def actor(self, token_id: str) -> ActorSheet:
        """Return the rules data of the actor behind ``token_id``."""

    def grid_distance(self) -> float:
        """Return the length of one tile in game units (feet for 5e)."""

    async def use_item(self, token_id: str, item_id: str) -> None:
        """Roll ``item_id`` for the actor; raises when the host rejects it."""


@runtime_checkable
class PathService(Protocol):
    """Per-mover path cache, rebuilt on every sense."""

    def compute_paths(
        self,
        mover_id: str,
        target_ids: Sequence[str],
        budget: float,
        options: PathOptions = ...,
    ) -> None:
        """Compute and cache paths from ``mover_id`` to each target."""

    def path_to(self, mover_id: str, target_id: str) -> Path:
        """Return the cached path, invalid when none was computed."""

    def reachable_distance(self, mover_id: str, target_id: str) -> float:
        """Distance left between the end of the cached path and the target."""

    def clear(self, mover_id: Optional[str] = None) -> None:
        """Drop cached paths for ``mover_id`` or for every mover."""


PathServiceFactory = Callable[[DistanceMetric], PathService]


@dataclass
class HostServices:
    """Bundle of every port a controller needs."""

    perception: PerceptionPort
    tokens: TokenPort
    canvas: CanvasPort
    dialogs: ConfirmationPort
    tracker: CombatTrackerPort
    rules: RulesHost
    bus: EventBus
    path_service_factory: Optional[PathServiceFactory] = None

    def path_service(self, metric: DistanceMetric) -> PathService:
        if self.path_service_factory is None:
            raise LookupError("host does not provide a path service")
        return self.path_service_factory(metric)


__all__ = [
    "CanvasPort",
    "CombatTrackerPort",
    "ConfirmationPort",
    "HostServices",
    "PathService",
    "PathServiceFactory",
    "PerceptionPort",
    "RulesHost",
    "TokenPort",
]
