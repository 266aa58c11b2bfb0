"""Queue semantics of ActionPlan and the attack action helpers."""

import pytest

from core.actions.action import (
    ActionType,
    AttackAction,
    AttackType,
    HaltAction,
    PlanAction,
    RotateAction,
    SenseAction,
    StepAction,
    TargetAction,
)
from core.actions.plan import ActionPlan
from tests.helpers.sandbox import DAGGER, SCIMITAR, SHORTBOW


def test_extend_front_keeps_relative_order():
    plan = ActionPlan([SenseAction(), PlanAction()])
    plan.extend_front([RotateAction(45, 0.2), StepAction()])
    assert plan.kinds() == [ActionType.ROTATE, ActionType.STEP, ActionType.SENSE, ActionType.PLAN]


def test_push_front_jumps_the_queue():
    plan = ActionPlan([SenseAction()])
    plan.push(HaltAction())
    plan.push_front(PlanAction())
    assert plan.kinds() == [ActionType.PLAN, ActionType.SENSE, ActionType.HALT]


def test_pop_front_and_peek():
    plan = ActionPlan([TargetAction("a"), HaltAction()])
    assert plan.peek().kind == ActionType.TARGET
    assert plan.pop_front().target_id == "a"
    assert len(plan) == 1
    plan.pop_front()
    assert not plan
    assert plan.peek() is None
    with pytest.raises(IndexError):
        plan.pop_front()


def test_remove_matches_identity_not_equality():
    first, second = HaltAction(), HaltAction()
    plan = ActionPlan([first, SenseAction(), second])
    assert plan.remove(second)
    assert list(plan)[0] is first
    assert plan.kinds() == [ActionType.HALT, ActionType.SENSE]
    assert not plan.remove(second)


def test_replace_splices_in_place():
    attack = AttackAction(SCIMITAR, AttackType.MELEE, cost=1)
    plan = ActionPlan([TargetAction("a"), attack, HaltAction()])
    replacements = [attack.with_weapon(SCIMITAR, 2), attack.with_weapon(DAGGER, 1)]
    assert plan.replace(attack, replacements)
    assert plan.kinds() == [ActionType.TARGET, ActionType.ATTACK, ActionType.ATTACK, ActionType.HALT]
    queued = [a for a in plan if a.kind == ActionType.ATTACK]
    assert [(a.weapon.id, a.attack_count, a.cost) for a in queued] == [("scimitar", 2, 1), ("dagger", 1, 1)]
    assert not plan.replace(attack, [])


def test_find_and_reset():
    plan = ActionPlan([SenseAction()])
    assert plan.find(ActionType.ATTACK) is None
    plan.reset([TargetAction("x"), AttackAction(SCIMITAR, AttackType.MELEE)])
    assert plan.find(ActionType.ATTACK).weapon is SCIMITAR
    plan.clear()
    assert plan.kinds() == []


def test_with_weapon_switches_attack_type():
    attack = AttackAction(SCIMITAR, AttackType.MELEE)
    ranged = attack.with_weapon(SHORTBOW, 3)
    assert ranged.attack_type == AttackType.RANGED
    assert ranged.attack_count == 3
    assert attack.attack_count == 1
    assert attack.with_count(2).weapon is SCIMITAR


def test_step_costs_one_tile_by_default():
    assert StepAction().cost == 1
    assert HaltAction().cost == 0
