"""Mook controller: sensing, movement side effects and cleanup."""

import math

import pytest

from ai.errors import Abort
from core.grid import Point
from core.pathfinding import MovementError
from interface.models import Disposition
from tests.helpers.sandbox import SCIMITAR, add_token, duel, fast_settings, make_mook, started_mook


def test_missing_token_aborts(host):
    with pytest.raises(Abort):
        make_mook(host, "nobody")


@pytest.mark.asyncio
async def test_start_turn_resets_state_and_takes_control(host):
    mook = make_mook(host, "goblin")
    mook.time = 0
    mook.plan.push(mook.model.halt_action())
    await mook.start_turn()
    assert mook.time == 6
    assert not mook.plan
    assert mook.start == Point(1, 1)
    assert "goblin" in host.controlled


class TestSense:
    @pytest.mark.asyncio
    async def test_sees_opposing_dispositions_only(self):
        host = duel()
        add_token(host, "ally", (5, 5))
        add_token(host, "bystander", (6, 6), Disposition.NEUTRAL)
        add_token(host, "spy", (7, 7), Disposition.SECRET)
        add_token(host, "corpse", (8, 8), Disposition.FRIENDLY, hp=0)
        add_token(host, "tourist", (9, 9), Disposition.FRIENDLY, in_combat=False)
        for token_id in ("ally", "bystander", "spy", "corpse", "tourist"):
            host.add_combatant("combat", token_id)

        mook = await started_mook(host, "goblin")
        assert mook.visible_targets == ["fighter"]

    @pytest.mark.asyncio
    async def test_hidden_targets_ignored_only_with_vision(self, host):
        host.hidden.add(("goblin", "fighter"))
        assert (await started_mook(host, "goblin")).visible_targets == []
        blind = await started_mook(host, "goblin", fast_settings(use_vision=False))
        assert blind.visible_targets == ["fighter"]

    @pytest.mark.asyncio
    async def test_sense_caches_paths(self):
        host = duel(goblin_at=(0, 0), fighter_at=(4, 0))
        mook = await started_mook(host, "goblin")
        assert mook.is_target_reachable("fighter", 0)
        assert len(mook.path_service.path_to("goblin", "fighter")) == 5


class TestMovement:
    @pytest.mark.asyncio
    async def test_move_rotates_towards_destination(self, host):
        mook = make_mook(host, "goblin")
        assert await mook.move(Point(2, 1))
        token = host.token("goblin")
        assert token.position == Point(2, 1)
        assert token.rotation == pytest.approx(270)
        assert mook.position == Point(2, 1)
        assert host.camera == Point(2, 1)

    @pytest.mark.asyncio
    async def test_move_onto_occupied_or_far_tile_fails(self, host):
        mook = make_mook(host, "goblin")
        assert not await mook.move(Point(1, 2))
        assert not await mook.move(Point(5, 5))
        assert host.token("goblin").position == Point(1, 1)

    @pytest.mark.asyncio
    async def test_rejected_move_notifies(self, host, monkeypatch):
        async def reject(token_id, destination):
            raise MovementError("wall of force")

        monkeypatch.setattr(host, "move_token", reject)
        mook = make_mook(host, "goblin")
        assert not await mook.move(Point(0, 1))
        assert ("warning", "wall of force") in host.notifications
        assert mook.position == Point(1, 1)

    @pytest.mark.asyncio
    async def test_step_prefers_facing_direction(self, host):
        mook = make_mook(host, "goblin")
        await host.rotate_token("goblin", 180)
        assert await mook.step()
        assert mook.position == Point(1, 0)

    @pytest.mark.asyncio
    async def test_step_when_boxed_in(self):
        walls = [(0, 1), (1, 0), (1, 1)]
        host = duel(goblin_at=(0, 0), fighter_at=(5, 5), walls=walls)
        assert not await make_mook(host, "goblin").step()

    @pytest.mark.asyncio
    async def test_invalid_rotation_is_ignored(self, host):
        mook = make_mook(host, "goblin")
        await mook.rotate(None)
        await mook.rotate(math.nan)
        assert host.token("goblin").rotation == 0

    def test_degrees_to_target(self, host):
        mook = make_mook(host, "goblin")
        assert mook.degrees_to_target("fighter") == 0
        assert mook.degrees_to_target("nobody") is None


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_disable_rotation_locks_for_the_turn(self, host):
        mook = make_mook(host, "goblin", fast_settings(disable_rotation=True))
        await mook.start_turn()
        assert host.token("goblin").lock_rotation
        await mook.rotate(90)
        assert host.token("goblin").rotation == 0
        await mook.end_turn()
        assert not host.token("goblin").lock_rotation

    @pytest.mark.asyncio
    async def test_token_locked_by_user_stays_locked(self, host):
        await host.set_lock_rotation("goblin", True)
        mook = make_mook(host, "goblin", fast_settings(disable_rotation=True))
        await mook.start_turn()
        await mook.end_turn()
        assert host.token("goblin").lock_rotation

    @pytest.mark.asyncio
    async def test_cleanup_runs_once_per_turn(self, host):
        mook = make_mook(host, "goblin")
        await mook.start_turn()
        mook.target("fighter")
        host.highlight([Point(1, 1)])

        await mook.cleanup()
        assert host.targets == set()
        assert host.highlighted == []
        assert "goblin" not in host.controlled
        assert mook.targeted == []

        host.control("goblin")
        await mook.cleanup()
        assert "goblin" in host.controlled

        await mook.start_turn()
        await mook.cleanup()
        assert "goblin" not in host.controlled

    def test_token_updates_track_position(self, host):
        mook = make_mook(host, "goblin")
        mook.handle_token_update({"id": "goblin", "x": 4})
        assert mook.position == Point(4, 1)
        mook.handle_token_update({"id": "goblin", "position": (3, 3)})
        assert mook.position == Point(3, 3)
        mook.handle_token_update({"id": "fighter", "position": (0, 0)})
        assert mook.position == Point(3, 3)

    def test_target_ignores_empty_id(self, host):
        mook = make_mook(host, "goblin")
        mook.target("")
        assert host.targets == set()
        mook.target("fighter")
        assert host.targets == {"fighter"}


def test_scimitar_goblin_is_melee_capable(host):
    assert make_mook(host, "goblin").model.melee_weapon == SCIMITAR
