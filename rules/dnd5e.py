"""D&D 5th edition rules model."""

from __future__ import annotations

import math

from core.actions.action import AttackAction
from rules.model import Ability, MookModel
from rules.multiattack import total_attacks
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_WALK_SPEED = 30

FULL = "full"
BONUS = "bonus"
FREE = "free"


class MookModel5e(MookModel):
    """5e action economy: actions, bonus actions, dash and multiattack."""

    actions_used = 0
    bonus_action_used = False

    def _reset_resources(self) -> None:
        self.actions_used = 0
        self.bonus_action_used = False

    def _start_turn(self) -> None:
        economy = self.settings.dnd5e

        if self.use_dash_action:
            for _ in range(economy.dash_actions_per_turn):
                self.abilities.append(Ability("dash", FULL, self._dash))
            if economy.has_dash_bonus_action:
                self.abilities.append(Ability("dash", BONUS, self._dash))
            if economy.has_dash_free_action:
                self.abilities.append(Ability("dash", FREE, self._dash))

        for _ in range(economy.actions_per_turn):
            self.abilities.append(Ability("attack", FULL))
        if economy.has_bonus_attack:
            self.abilities.append(Ability("attack", BONUS))
        if economy.has_free_attack:
            self.abilities.append(Ability("attack", FREE))

    def _dash(self) -> float:
        return self.base_time

    def _available(self, kind: str, duration: str):
        for ability in self.abilities:
            if ability.kind == kind and ability.duration == duration and ability.can():
                return ability
        return None

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------
    @property
    def use_dash_action(self) -> bool:
        economy = self.settings.dnd5e
        return economy.use_dash_action and (
            economy.dash_actions_per_turn > 0 or economy.has_dash_bonus_action or economy.has_dash_free_action
        )

    @property
    def base_time(self) -> float:
        speed = self.sheet.walk_speed
        try:
            speed = int(speed)
        except (TypeError, ValueError):
            speed = 0
        if not speed:
            speed = DEFAULT_WALK_SPEED
        return speed / self.host.rules.grid_distance()

    @property
    def time(self) -> float:
        return self.base_time

    @property
    def can_zoom(self) -> bool:
        if not self.use_dash_action:
            return False
        return any(self._available("dash", d) for d in (FREE, BONUS)) or (
            self.actions_used < self.settings.dnd5e.actions_per_turn and self._available("dash", FULL) is not None
        )

    def zoom(self) -> float:
        """Dash with the cheapest duration still available."""

        if not self.can_zoom:
            return 0

        free = self._available("dash", FREE)
        if free is not None:
            return free.act()

        bonus = self._available("dash", BONUS)
        if bonus is not None and not self.bonus_action_used:
            self.bonus_action_used = True
            return bonus.act()

        full = self._available("dash", FULL)
        if full is not None:
            self.actions_used += 1
            return full.act()

        logger.warning("No dash ability left for %s despite can_zoom", self.token_id)
        return 0

    # ------------------------------------------------------------------
    # Attacks
    # ------------------------------------------------------------------
    @property
    def can_attack(self) -> bool:
        if self.multiattack_active and self.attacks_executed > 0 and self.actions_used >= 1:
            if self.attacks_executed < total_attacks(self.multiattack_rules):
                return True

        economy = self.settings.dnd5e
        if self.actions_used < economy.actions_per_turn and self._available("attack", FULL):
            return True
        if not self.bonus_action_used and self._available("attack", BONUS):
            return True
        return self._available("attack", FREE) is not None

    def spend_attack(self) -> None:
        economy = self.settings.dnd5e
        full = self._available("attack", FULL)
        if full is not None and self.actions_used < economy.actions_per_turn:
            full.act()
            self.actions_used += 1
            logger.debug("%s used an action to attack (%d used)", self.token_id, self.actions_used)
            return

        bonus = self._available("attack", BONUS)
        if bonus is not None and not self.bonus_action_used:
            bonus.act()
            self.bonus_action_used = True
            return

        free = self._available("attack", FREE)
        if free is not None:
            free.act()

    async def _attack(self, action: AttackAction) -> None:
        await self.host.rules.use_item(self.token_id, action.weapon.id)

    # ------------------------------------------------------------------
    # Ranges
    # ------------------------------------------------------------------
    def _tile_range(self, weapon, fallback: float) -> float:
        dist = weapon.range if weapon is not None else None
        if not dist:
            return fallback
        return max(math.floor(dist / self.host.rules.grid_distance()), 1)

    @property
    def melee_range(self) -> float:
        return self._tile_range(self.melee_weapon, self.settings.standard_melee_tile_range)

    @property
    def ranged_range(self) -> float:
        return self._tile_range(self.ranged_weapon, self.settings.standard_ranged_tile_range)


__all__ = ["MookModel5e"]
