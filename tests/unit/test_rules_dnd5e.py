"""D&D 5e action economy, ranges and the rules model factory."""

import random

import pytest

from config.settings import MookInitiative
from core.actions.action import ActionType, AttackAction, AttackType, HaltAction
from interface.models import Feature, Weapon
from rules.dnd5e import MookModel5e
from rules.factory import get_mook_model
from rules.model import AttackError, UnsupportedSystemError
from tests.helpers.sandbox import (
    MORNINGSTAR,
    SCIMITAR,
    SHORTBOW,
    TWO_MELEE_ATTACKS,
    add_token,
    fast_settings,
    make_host,
)


def _model(host=None, token_id="orc", settings=None, **token_kwargs):
    if host is None:
        host = make_host()
        add_token(host, token_id, (0, 0), **token_kwargs)
    model = get_mook_model(token_id, host.services(), settings or fast_settings(), random.Random(1))
    model.start_turn()
    return model


def test_factory_builds_5e_model_and_rejects_unknown_systems():
    host = make_host()
    add_token(host, "orc", (0, 0))
    assert isinstance(get_mook_model("orc", host.services(), fast_settings()), MookModel5e)
    host.system_id = "pf2e"
    with pytest.raises(UnsupportedSystemError):
        get_mook_model("orc", host.services(), fast_settings())


class TestMovement:
    def test_time_is_speed_over_grid_distance(self):
        assert _model(walk_speed=30).time == 6
        assert _model(walk_speed=40).base_time == 8

    def test_missing_speed_falls_back_to_thirty_feet(self):
        assert _model(walk_speed=None).time == 6

    def test_grid_distance_scales_time(self):
        host = make_host(grid_distance=10)
        add_token(host, "orc", (0, 0))
        assert _model(host).time == 3

    def test_dash_uses_the_action(self):
        model = _model()
        assert model.can_zoom
        assert model.zoom() == 6
        assert model.actions_used == 1
        assert not model.can_zoom
        assert model.zoom() == 0

    def test_bonus_dash_is_used_before_the_action(self):
        model = _model(settings=fast_settings(dnd5e={"has_dash_bonus_action": True}))
        assert model.zoom() == 6
        assert model.bonus_action_used and model.actions_used == 0
        assert model.can_zoom
        assert model.zoom() == 6
        assert model.actions_used == 1
        assert not model.can_zoom

    def test_free_dash_first(self):
        model = _model(settings=fast_settings(dnd5e={"has_dash_free_action": True, "dash_actions_per_turn": 0}))
        assert model.can_zoom
        assert model.zoom() == 6
        assert not model.bonus_action_used and model.actions_used == 0
        assert not model.can_zoom

    def test_dash_disabled(self):
        model = _model(settings=fast_settings(dnd5e={"use_dash_action": False}))
        assert not model.can_zoom
        assert model.zoom() == 0

    def test_full_dash_unavailable_after_attacking(self):
        model = _model(weapons=(SCIMITAR,))
        model.spend_attack()
        assert not model.can_zoom

    def test_start_turn_recharges(self):
        model = _model()
        model.zoom()
        model.start_turn()
        assert model.can_zoom
        assert model.actions_used == 0


class TestAttacks:
    def test_single_action_allows_one_attack(self):
        model = _model(weapons=(SCIMITAR,))
        assert model.can_attack
        model.spend_attack()
        assert not model.can_attack

    def test_bonus_attack_after_action(self):
        model = _model(weapons=(SCIMITAR,), settings=fast_settings(dnd5e={"has_bonus_attack": True}))
        model.spend_attack()
        assert model.can_attack
        model.spend_attack()
        assert model.bonus_action_used
        assert not model.can_attack

    def test_no_actions_means_no_attack(self):
        model = _model(weapons=(SCIMITAR,), settings=fast_settings(dnd5e={"actions_per_turn": 0}))
        assert not model.can_attack

    @pytest.mark.asyncio
    async def test_multiattack_continues_without_spending(self):
        host = make_host()
        add_token(host, "bugbear", (0, 0), weapons=(MORNINGSTAR,), features=(TWO_MELEE_ATTACKS,))
        model = _model(host, "bugbear")
        action = AttackAction(MORNINGSTAR, AttackType.MELEE, attack_count=2)

        assert model.multiattack_active
        await model.attack(action, repeat=0)
        assert model.actions_used == 1
        assert model.can_attack
        await model.attack(action, repeat=1)
        assert model.actions_used == 1
        assert model.attacks_executed == 2
        assert not model.can_attack
        assert [item for _, item, _ in host.attacks] == ["morningstar", "morningstar"]

    @pytest.mark.asyncio
    async def test_multiattack_alternatives_do_not_add_up(self):
        scout = Feature("Multiattack", "The scout makes two melee attacks or two ranged attacks.")
        host = make_host()
        add_token(host, "scout", (0, 0), weapons=(SCIMITAR, SHORTBOW), features=(scout,))
        model = _model(host, "scout")
        action = AttackAction(SCIMITAR, AttackType.MELEE, attack_count=2)

        await model.attack(action, repeat=0)
        await model.attack(action, repeat=1)
        assert model.attacks_executed == 2
        assert not model.can_attack

    @pytest.mark.asyncio
    async def test_host_failure_becomes_attack_error(self):
        host = make_host()
        add_token(host, "orc", (0, 0), weapons=(SCIMITAR,))
        host.failing_items.add("scimitar")
        model = _model(host)
        with pytest.raises(AttackError):
            await model.attack(AttackAction(SCIMITAR, AttackType.MELEE))
        assert model.attacks_executed == 0

    @pytest.mark.asyncio
    async def test_only_attack_actions_attack(self):
        with pytest.raises(UnsupportedSystemError):
            await _model(weapons=(SCIMITAR,)).attack(HaltAction())


class TestWeaponsAndRanges:
    def test_ranges_in_tiles(self):
        model = _model(weapons=(SCIMITAR, SHORTBOW))
        assert model.melee_range == 1
        assert model.ranged_range == 16

    def test_short_reach_rounds_up_to_one_tile(self):
        whip = Weapon("whip", "Whip", AttackType.MELEE, range=2)
        assert _model(weapons=(whip,)).melee_range == 1

    def test_missing_range_uses_standard_tile_range(self):
        sling = Weapon("sling", "Sling", AttackType.RANGED)
        settings = fast_settings(standard_ranged_tile_range=7)
        assert _model(weapons=(sling,), settings=settings).ranged_range == 7

    def test_use_melee_and_use_ranged_switches(self):
        settings = fast_settings(use_melee=False)
        model = _model(weapons=(SCIMITAR, SHORTBOW), settings=settings)
        assert not model.has_melee
        assert model.melee_weapon is None
        assert model.melee_attack_action() is None
        assert model.ranged_attack_action().weapon == SHORTBOW

    def test_weapons_without_attacks_are_ignored(self):
        torch = Weapon("torch", "Torch", AttackType.MELEE, has_attack=False)
        assert not _model(weapons=(torch,)).has_melee


class TestModelQueries:
    def test_health(self):
        host = make_host()
        add_token(host, "orc", (0, 0), hp=8)
        model = _model(host)
        assert model.current_health() == 8
        assert model.max_health() == 8
        assert model.health_percent() == 1.0
        assert model.current_health("nobody") == 0
        assert model.health_percent("nobody") == 0.0

    def test_vision_needs_setting_and_sight(self):
        assert _model().has_vision
        assert not _model(settings=fast_settings(use_vision=False)).has_vision
        assert not _model(has_sight=False).has_vision

    def test_target_history(self):
        model = _model()
        assert model.first_target is None and model.last_target is None
        model.add_target("a")
        model.add_target("b")
        assert (model.first_target, model.last_target) == ("a", "b")

    @pytest.mark.parametrize(
        "initiative, kinds",
        [
            ("DO_NOTHING", [ActionType.HALT]),
            ("ROTATE", [ActionType.ROTATE]),
            ("CREEP", [ActionType.STEP]),
            ("WANDER", [ActionType.ROTATE, ActionType.STEP]),
        ],
    )
    def test_explore_actions_by_initiative(self, initiative, kinds):
        model = _model(settings=fast_settings(mook_initiative=initiative, rotation_cost=0.5))
        assert [a.kind for a in model.explore_actions()] == kinds

    def test_random_rotation_is_an_eighth_turn(self):
        model = _model(settings=fast_settings(rotation_cost=0.3))
        action = model.random_rotate_action()
        assert abs(action.angle) == 45
        assert action.cost == pytest.approx(0.3)
        assert model.settings.mook_initiative == MookInitiative.WANDER
