"""Combat session registry: one controller per (combat, combatant)."""

from __future__ import annotations

import random
from typing import Any, Callable, Dict, List, Mapping, Optional

from ai.errors import Abort, PlanningFailure
from ai.mook import Mook
from config.settings import DistanceMetric, MookSettings
from core.events.topics import HookTopic
from interface.models import CombatInfo
from interface.ports import HostServices
from rules.model import UnsupportedSystemError
from utils.logger import get_logger

logger = get_logger(__name__)

SettingsProvider = Callable[[], MookSettings]


class MookAI:
    """Tracks the mooks of every combat on the active scene and runs their turns.

    ``busy`` is set while a turn is in flight and until :meth:`ready`
    succeeds; hotkeys and turn requests are ignored while it is set.
    """

    def __init__(
        self,
        host: HostServices,
        settings_provider: SettingsProvider = MookSettings,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.host = host
        self._settings_provider = settings_provider
        self.settings = settings_provider()
        self.metric: DistanceMetric = self.settings.distance_metric
        self.random = rng or random.Random()
        self.busy = True
        self._combats: Dict[str, Dict[str, Mook]] = {}
        self._subscribed = False

    @property
    def combats(self) -> Dict[str, Dict[str, Mook]]:
        return self._combats

    # ------------------------------------------------------------------
    # Startup and settings
    # ------------------------------------------------------------------
    def ready(self) -> bool:
        if not self.host.tracker.is_gm():
            logger.info("Heroes don't have mooks; they have friends!")
            return False

        if self.host.path_service_factory is None:
            message = "mookAI | Missing path planning service. mookAI cannot automate without it."
            self.host.canvas.notify(message, "error", permanent=True)
            logger.error(message)
            return False

        self.subscribe()
        self.apply_settings()
        self.busy = False
        return True

    def subscribe(self) -> None:
        if self._subscribed:
            return
        bus = self.host.bus
        bus.subscribe(HookTopic.COMBAT_CREATED, self._on_combat_created)
        bus.subscribe(HookTopic.COMBAT_DELETED, self._on_combat_deleted)
        bus.subscribe(HookTopic.COMBATANT_CREATED, self._on_combatant_created)
        bus.subscribe(HookTopic.COMBATANT_DELETED, self._on_combatant_deleted)
        bus.subscribe(HookTopic.SCENE_UPDATED, self._on_scene_updated)
        bus.subscribe(HookTopic.TOKEN_UPDATED, self._on_token_updated)
        self._subscribed = True

    def apply_settings(self) -> None:
        """Reload settings; a new distance metric rebuilds every mook."""

        settings = self._settings_provider()
        self.settings = settings
        if settings.distance_metric != self.metric:
            self.change_metric(settings.distance_metric)
        for mooks in self._combats.values():
            for mook in mooks.values():
                mook.apply_settings(settings)

    def change_metric(self, metric: DistanceMetric) -> None:
        logger.info("Distance metric changed from %s to %s; rebuilding mooks", self.metric.value, metric.value)
        self.metric = metric
        for combat_id, mooks in self._combats.items():
            rebuilt: Dict[str, Mook] = {}
            for token_id in mooks:
                mook = self._build_mook(token_id)
                if mook is not None:
                    rebuilt[token_id] = mook
            self._combats[combat_id] = rebuilt

    def _build_mook(self, token_id: str) -> Optional[Mook]:
        try:
            return Mook(token_id, self.host, self.settings, self.metric, self.random)
        except Abort as exc:
            logger.warning("Failed to find token for combatant %s: %s", token_id, exc)
            return None
        except UnsupportedSystemError as exc:
            logger.error("Cannot build mook %s: %s", token_id, exc)
            self.host.canvas.notify(f"mookAI | {exc}", "error")
            return None

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    def _on_combat_created(self, combat: CombatInfo, **_: Any) -> None:
        self.combat_start(combat)

    def _on_combat_deleted(self, combat_id: str, **_: Any) -> None:
        self.combat_end(combat_id)

    def _on_combatant_created(self, combat_id: str, token_id: str, **_: Any) -> None:
        self.add_combatant(combat_id, token_id)

    def _on_combatant_deleted(self, combat_id: str, token_id: str, **_: Any) -> None:
        self.delete_combatant(combat_id, token_id)

    def _on_scene_updated(self, **_: Any) -> None:
        self.handle_scene_change()

    def _on_token_updated(self, changes: Mapping[str, Any], **_: Any) -> None:
        self.update_tokens(changes)

    def handle_scene_change(self) -> None:
        self._combats = {}
        self.busy = False

    def update_tokens(self, changes: Mapping[str, Any]) -> None:
        for mooks in self._combats.values():
            for mook in mooks.values():
                mook.handle_token_update(changes)

    # ------------------------------------------------------------------
    # Combat lifecycle
    # ------------------------------------------------------------------
    def combat_start(self, combat: CombatInfo) -> None:
        logger.info("Starting combat: %s", combat.id)
        if combat.scene_id != self.host.tracker.active_scene_id():
            logger.debug("Combat %s not in active scene, skipping", combat.id)
            return
        if combat.id in self._combats:
            logger.warning("Combat %s already active, skipping", combat.id)
            return

        mooks: Dict[str, Mook] = {}
        for token_id in combat.combatant_ids:
            mook = self._build_mook(token_id)
            if mook is not None:
                mooks[token_id] = mook
        self._combats[combat.id] = mooks
        logger.info("Combat %s started with %d mooks", combat.id, len(mooks))

    def combat_end(self, combat_id: str) -> None:
        if combat_id not in self._combats:
            logger.warning("Attempted to delete combat %s that does not exist", combat_id)
            return
        del self._combats[combat_id]

    def add_combatant(self, combat_id: str, token_id: str) -> Optional[Mook]:
        mooks = self._combats.get(combat_id)
        if mooks is None:
            logger.debug("Combatant %s joined untracked combat %s", token_id, combat_id)
            return None
        mook = self._build_mook(token_id)
        if mook is not None:
            mooks[token_id] = mook
            logger.debug("Added mook %s to combat %s", token_id, combat_id)
        return mook

    def delete_combatant(self, combat_id: str, token_id: str) -> None:
        mooks = self._combats.get(combat_id)
        if mooks is not None:
            mooks.pop(token_id, None)

    async def start_combats(self) -> None:
        """Track every combat of the active scene; raises :class:`Abort` if there is none."""

        for combat in self.host.tracker.combats():
            self.combat_start(combat)

        if not self._combats:
            self.host.canvas.notify("No combats in active scene.", "warning")
            raise Abort("No combats in active scene")

        current = self.host.tracker.current_combat()
        combat_id = current.id if current is not None else next(iter(self._combats))
        await self.host.tracker.activate(combat_id)

    def get_combat(self) -> Optional[Dict[str, Mook]]:
        current = self.host.tracker.current_combat()
        return self._combats.get(current.id) if current is not None else None

    def get_mook(self, token_id: str) -> Optional[Mook]:
        mooks = self.get_combat()
        if mooks is None:
            raise Abort("Invalid combat")
        if token_id not in mooks:
            return self.add_combatant(self.host.tracker.current_combat().id, token_id)
        return mooks[token_id]

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------
    async def end_turn(self) -> None:
        if not self.settings.auto_end_turn:
            return
        try:
            await self.host.tracker.next_turn()
        except Exception as exc:
            logger.warning("Failed to advance the combat tracker: %s", exc)
            self.host.canvas.notify(str(exc), "warning")

    async def _prepare(self) -> bool:
        self.apply_settings()
        if self._combats:
            return True
        try:
            await self.start_combats()
        except Abort as exc:
            logger.info("%s", exc)
            return False
        return True

    async def take_next_turn(self) -> bool:
        """Run the turn of the tracker's current combatant."""

        if self.busy:
            logger.info("A turn is already in progress")
            return False
        if not await self._prepare():
            return False

        current = self.host.tracker.current_combat()
        if current is None or current.current_token_id is None:
            logger.info("No combatant is taking a turn")
            return False

        try:
            mook = self.get_mook(current.current_token_id)
        except Abort as exc:
            logger.info("%s", exc)
            return False

        success = await self.take_mook_turn(mook, current.current_token_id)
        logger.info("Turn completed with success: %s", success)
        if success:
            await self.end_turn()
        return success

    async def take_controlled_turns(self) -> List[bool]:
        """Run a turn for every selected token regardless of initiative."""

        if self.busy:
            logger.info("A turn is already in progress")
            return []
        if not await self._prepare():
            return []

        results = []
        for token_id in self.host.tracker.controlled_tokens():
            try:
                mook = self.get_mook(token_id)
            except Abort as exc:
                logger.info("%s", exc)
                mook = None
            results.append(await self.take_mook_turn(mook, token_id))
        return results

    async def take_mook_turn(self, mook: Optional[Mook], token_id: Optional[str] = None) -> bool:
        """Run the full lifecycle of one turn; never raises."""

        if mook is None:
            logger.error(
                "Failed to find mook (id: %s) in scene (id: %s)",
                token_id,
                self.host.tracker.active_scene_id(),
            )
            self.host.canvas.notify(
                "mookAI | Mook not found in scene. Please verify that the current scene is active.", "warning"
            )
            return False

        self.busy = True
        success = False
        try:
            await mook.start_turn()
            await mook.sense()
            mook.plan_turn()
            await mook.act()
            await mook.end_turn()
            success = True
        except Abort as exc:
            logger.info("%s", exc)
        except PlanningFailure as exc:
            logger.warning("Planning failure for %s: %s", mook.name, exc)
            self.host.canvas.notify(f"mookAI | Planning failure: {exc}", "warning")
        except Exception as exc:
            logger.exception("Encountered unrecoverable error while %s took its turn", mook.name)
            self.host.canvas.notify(f"mookAI | {exc}", "error")
        finally:
            if not success:
                await mook.cleanup()
            self.busy = False

        self.host.bus.publish(HookTopic.TURN_FINISHED, token_id=mook.token_id, success=success)
        return success

    async def handle_hotkey(self, key: str, shift: bool = False) -> Any:
        """``g`` takes a turn (``shift`` for selected tokens), ``n``/``b`` move the tracker."""

        if self.busy:
            return None
        key = key.lower()
        if key == "g":
            if shift:
                return await self.take_controlled_turns()
            return await self.take_next_turn()
        if key == "n":
            return await self.host.tracker.next_turn()
        if key == "b":
            return await self.host.tracker.previous_turn()
        return None


__all__ = ["MookAI", "SettingsProvider"]
