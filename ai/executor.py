"""Turn executor: drains a mook's plan one action at a time.

Each handler performs the side effects of one :class:`ActionType` and returns
the time it actually spent; the loop subtracts it from the mook's budget.
Handlers may push new actions into the plan (exploration) or rewrite queued
ones (traversal confirmation).
"""

from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING, Awaitable, Callable, Dict

from pydantic import ValidationError

from ai.errors import Abort, PlanningFailure
from core.actions.action import (
    Action,
    ActionType,
    AttackAction,
    AttackType,
    CastAction,
    ExploreAction,
    FaceAction,
    HaltAction,
    MoveAction,
    PlanAction,
    RotateAction,
    SenseAction,
    StepAction,
    TargetAction,
    TraverseAction,
    ZoomAction,
)
from core.events.topics import HookTopic
from interface.dialogs import CANCEL, EXPLORE, TraverseChoice, explore_dialog, traverse_dialog
from rules.model import AttackError, UnsupportedSystemError
from utils.logger import get_logger

if TYPE_CHECKING:
    from ai.mook import Mook

logger = get_logger(__name__)

Handler = Callable[[Action], Awaitable[float]]

# Invalid traversal answers tolerated before the turn is handed back.
MAX_DIALOG_ATTEMPTS = 3


class TurnExecutor:
    """Interpreter for one mook's action plan."""

    def __init__(self, mook: "Mook") -> None:
        self.mook = mook
        self.halted = False
        self.executed = 0
        self._handlers: Dict[ActionType, Handler] = {
            ActionType.HALT: self._halt,
            ActionType.SENSE: self._sense,
            ActionType.PLAN: self._plan,
            ActionType.ROTATE: self._rotate,
            ActionType.FACE: self._face,
            ActionType.MOVE: self._move,
            ActionType.STEP: self._step,
            ActionType.TRAVERSE: self._traverse,
            ActionType.EXPLORE: self._explore,
            ActionType.TARGET: self._target,
            ActionType.ZOOM: self._zoom,
            ActionType.ATTACK: self._attack,
            ActionType.CAST: self._cast,
        }
        missing = set(ActionType) - set(self._handlers)
        assert not missing, f"unhandled action types: {sorted(m.name for m in missing)}"

    async def run(self) -> bool:
        """Execute the plan until it halts or drains; raises on failure."""

        mook = self.mook
        model = mook.model
        await mook.center_camera()

        for attempt in range(mook.settings.max_tries):
            if mook.time < 0:
                raise PlanningFailure("mook took too many actions")

            if not mook.plan:
                if self.executed == 0:
                    raise PlanningFailure("empty plan")
                await mook.cleanup()
                return True

            upcoming = mook.plan.peek()
            if upcoming.cost > mook.time:
                if model.can_zoom:
                    bonus = model.zoom()
                    mook.time += bonus
                    logger.debug("%s zoomed for %.2f to afford %s", mook.name, bonus, upcoming.kind.name)
                    continue
                raise PlanningFailure("too ambitious")

            action = mook.plan.pop_front()
            self.executed += 1
            logger.debug("%s try #%d: %s", mook.name, attempt + 1, action)

            spent = await self._handlers[action.kind](action)
            if self.halted:
                return True
            mook.time -= spent

        raise PlanningFailure("forced exit after too many loops")

    # ------------------------------------------------------------------
    # Bookkeeping actions
    # ------------------------------------------------------------------
    async def _halt(self, action: HaltAction) -> float:
        await self.mook.cleanup()
        self.halted = True
        return 0

    async def _sense(self, action: SenseAction) -> float:
        await self.mook.sense()
        return 0

    async def _plan(self, action: PlanAction) -> float:
        self.mook.plan_turn()
        return 0

    async def _target(self, action: TargetAction) -> float:
        self.mook.target(action.target_id)
        return 0

    async def _zoom(self, action: ZoomAction) -> float:
        self.mook.time += self.mook.model.zoom()
        return action.cost

    async def _cast(self, action: CastAction) -> float:
        raise UnsupportedSystemError(f"casting {action.spell!r} is not supported")

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------
    async def _rotate(self, action: RotateAction) -> float:
        await self.mook.rotate(action.angle)
        return action.cost

    async def _face(self, action: FaceAction) -> float:
        await self.mook.rotate(self.mook.degrees_to_target(action.target_id))
        return action.cost

    async def _move(self, action: MoveAction) -> float:
        if await self.mook.move(action.destination):
            return action.cost
        self.mook.host.canvas.notify(f"{self.mook.name} failed to move to {action.destination}", "warning")
        return 0

    async def _step(self, action: StepAction) -> float:
        if await self.mook.step():
            return action.cost
        self.mook.host.canvas.notify(f"{self.mook.name} failed to take step", "warning")
        return 0

    async def _explore(self, action: ExploreAction) -> float:
        mook = self.mook
        if mook.settings.disable_exploration:
            raise Abort("Not taking turn. Mook found no targets and exploration is disabled.")

        if not mook.explore_approved:
            response = await mook.host.dialogs.choose(explore_dialog(mook.token))
            if response is None or response.option != EXPLORE:
                raise Abort("Mook not exploring; out of actions.")
            mook.explore_approved = True

        mook.plan.extend_front(mook.model.explore_actions())
        return 0

    async def _ask_traverse(self, request, requires_dash: bool) -> TraverseChoice:
        mook = self.mook
        for _ in range(MAX_DIALOG_ATTEMPTS):
            response = await mook.host.dialogs.choose(request)
            if response is None or response.option == CANCEL:
                raise Abort("Action cancelled by user")
            try:
                choice = TraverseChoice.from_response(response, requires_dash)
            except ValidationError as exc:
                logger.warning("Invalid traversal answer from user: %s", exc)
                mook.host.canvas.notify("Please select an action or stay in place", "warning")
                continue
            if choice.incomplete:
                mook.host.canvas.notify("Please select an action or stay in place", "warning")
                continue
            return choice
        raise Abort("No valid movement choice made")

    async def _traverse(self, action: TraverseAction) -> float:
        mook = self.mook
        model = mook.model
        planned = mook.plan.find(ActionType.ATTACK)

        if action.cost <= 0 or action.path is None:
            return 0

        segments = action.path.within(action.dist)
        movable = segments[: math.floor(mook.time) + 1]
        if len(movable) > 1:
            mook.host.canvas.highlight(movable)

        weapon = planned.weapon if planned is not None else None
        requires_dash = weapon is not None and weapon.attack_type == AttackType.MELEE and action.cost > model.base_time
        logger.debug(
            "%s traversal: cost %.1f, base time %.1f, movable %d, requires dash %s",
            mook.name,
            action.cost,
            model.base_time,
            len(movable) - 1,
            requires_dash,
        )

        request = traverse_dialog(
            steps=max(len(movable) - 1, 0),
            has_path=True,
            requires_dash=requires_dash,
            weapons=model.sheet.weapons,
            planned_weapon=weapon,
            rules=model.multiattack_rules,
        )
        choice = await self._ask_traverse(request, requires_dash)

        spent = 0
        if choice.moves:
            for point in movable[1:]:
                if not await mook.move(point):
                    logger.warning("%s failed to move to %s; traversal interrupted", mook.name, point)
                    mook.host.canvas.notify("Failed to move to segment", "warning")
                    break
                spent += 1

        if planned is not None:
            if choice.moves and requires_dash:
                logger.info("Removing attack of %s due to dash", mook.name)
                mook.plan.remove(planned)
            elif choice.selections:
                sheet = model.sheet
                replacements = []
                for selection in choice.selections:
                    selected = sheet.weapon(selection.item_id)
                    if selected is None or selection.attack_count <= 0:
                        continue
                    replacements.append(planned.with_weapon(selected, selection.attack_count))
                if replacements:
                    mook.plan.replace(planned, replacements)

        return spent

    # ------------------------------------------------------------------
    # Attacks
    # ------------------------------------------------------------------
    async def _attack(self, action: AttackAction) -> float:
        mook = self.mook
        model = mook.model
        settings = mook.settings

        if not model.can_attack:
            raise PlanningFailure("mook took too many actions")

        count = action.attack_count or 1
        successes = 0

        def mine(**payload) -> bool:
            return payload.get("token_id") in (None, mook.token_id)

        with mook.host.bus.counter(HookTopic.ROLL_COMPLETED, mine) as rolls:
            for repeat in range(count):
                logger.info("%s attack %d of %d with %s", mook.name, repeat + 1, count, action.weapon.name)
                try:
                    await model.attack(action, repeat=repeat)
                    successes += 1
                except AttackError as exc:
                    logger.warning("%s", exc)
                    mook.host.canvas.notify(str(exc), "warning")
                if repeat < count - 1:
                    await asyncio.sleep(settings.attack_delay_seconds)

            if settings.wait_for_roll_completion and successes:
                if not await rolls.wait_for(successes, settings.roll_completion_timeout):
                    logger.warning(
                        "Timed out waiting for %d roll completions of %s (saw %d)",
                        successes,
                        mook.name,
                        rolls.count,
                    )

        return 0 if model.multiattack_active else action.cost


__all__ = ["MAX_DIALOG_ATTEMPTS", "TurnExecutor"]
