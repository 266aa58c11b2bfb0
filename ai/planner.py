"""Turn planner: turns sensed state into an action plan.

The planner never touches the world.  It reads what :meth:`ai.mook.Mook.sense`
cached (visible targets, path cache) plus a few rules-model queries, and
replaces the mook's plan wholesale.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from ai.behaviors import Target, ViableTargets, choose_target
from core.actions.action import Action, ExploreAction, TargetAction, TraverseAction
from core.grid import distance
from rules.multiattack import attack_count_for
from utils.logger import get_logger

if TYPE_CHECKING:
    from ai.mook import Mook

logger = get_logger(__name__)


def viable_targets(mook: "Mook") -> ViableTargets:
    """Split visible targets into melee- and ranged-reachable ones."""

    model = mook.model
    result = ViableTargets()
    for target_id in mook.visible_targets:
        token = mook.host.perception.token(target_id)
        if token is None:
            continue
        dist = distance(mook.position, token.position, mook.metric)

        if model.has_melee and mook.is_target_reachable(target_id, model.melee_range):
            result.melee.append(Target(target_id, model.melee_range, model.melee_attack_action(), dist))
        if model.has_ranged and mook.is_target_reachable(target_id, model.ranged_range):
            result.ranged.append(Target(target_id, model.ranged_range, model.ranged_attack_action(), dist))
    return result


def _search(mook: "Mook") -> List[Action]:
    model = mook.model
    return [ExploreAction(), model.sense_action(), model.plan_action()]


def plan_turn(mook: "Mook") -> None:
    """Replace ``mook.plan`` with the next course of action."""

    model = mook.model
    logger.debug("Planning turn for %s with %.2f time and targets %s", mook.name, mook.time, mook.visible_targets)

    if not mook.visible_targets:
        if mook.time < 1:
            mook.plan.reset([model.halt_action()])
        else:
            mook.plan.reset(_search(mook))
        return

    targets = viable_targets(mook)
    if not targets:
        if model.can_zoom:
            bonus = model.zoom()
            mook.time += bonus
            logger.debug("%s zoomed for %.2f extra time", mook.name, bonus)
            mook.plan.reset([model.sense_action(), model.plan_action()])
        else:
            mook.plan.reset(_search(mook))
        return

    target = choose_target(
        mook.settings.mook_type,
        targets,
        last_target=model.last_target,
        first_target=model.first_target,
        rng=model.random,
    )
    model.add_target(target.token_id)

    path = mook.path_service.path_to(mook.token_id, target.token_id)
    if path.valid:
        traverse = TraverseAction(path=path, dist=target.range, cost=len(path.within(target.range)) - 1)
    else:
        traverse = TraverseAction(path=None, dist=target.range, cost=0)

    attack = target.attack_action
    attack = attack.with_count(attack_count_for(model.multiattack_rules, attack.weapon))

    logger.debug(
        "%s plans to attack %s with %s x%d after %d steps",
        mook.name,
        target.token_id,
        attack.weapon.name,
        attack.attack_count,
        traverse.cost,
    )

    mook.plan.reset(
        [
            TargetAction(target_id=target.token_id),
            traverse,
            model.face_action(target.token_id),
            attack,
            model.halt_action(),
        ]
    )


__all__ = ["plan_turn", "viable_targets"]
