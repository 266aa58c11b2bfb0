"""User-facing settings for the mook automation.

Settings are stored under the ``mookAI`` section of a YAML file and validated
with pydantic.  Cosmetic delays are clamped rather than rejected so that a bad
value in the settings file never prevents a turn from being taken.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.config_loader import ConfigLoader

SETTINGS_SECTION = "mookAI"


class DistanceMetric(str, Enum):
    """How distance is measured on the square grid."""

    CHEBYSHEV = "Chebyshev"
    EUCLIDEAN = "Euclidean"
    MANHATTAN = "Manhattan"


class MookType(str, Enum):
    """Target selection behaviour."""

    EAGER_BEAVER = "EAGER_BEAVER"
    SHIA = "SHIA"


class MookInitiative(str, Enum):
    """What a mook does when it cannot find a target."""

    DO_NOTHING = "DO_NOTHING"
    ROTATE = "ROTATE"
    CREEP = "CREEP"
    WANDER = "WANDER"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class Dnd5eSettings(BaseModel):
    """Action economy knobs used by the D&D 5e rules model."""

    model_config = ConfigDict(extra="ignore")

    actions_per_turn: int = Field(default=1, ge=0)
    use_dash_action: bool = True
    dash_actions_per_turn: int = Field(default=1, ge=0)
    has_dash_bonus_action: bool = False
    has_dash_free_action: bool = False
    has_bonus_attack: bool = False
    has_free_attack: bool = False


class MookSettings(BaseModel):
    """Every setting consulted by the planner, executor and registry."""

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    distance_metric: DistanceMetric = DistanceMetric.MANHATTAN
    move_animation_delay: float = 400
    rotation_animation_delay: float = 400
    attack_delay: float = 500
    mook_type: MookType = MookType.EAGER_BEAVER
    auto_end_turn: bool = True
    use_vision: bool = True
    mook_omniscience: bool = True
    mook_initiative: MookInitiative = MookInitiative.WANDER
    disable_exploration: bool = False
    disable_rotation: bool = False
    explore_automatically: bool = True
    rotation_cost: float = 0.2
    use_melee: bool = True
    use_ranged: bool = True
    standard_melee_tile_range: float = Field(default=1, ge=0)
    standard_ranged_tile_range: float = Field(default=12, ge=0)
    wait_for_roll_completion: bool = True
    roll_completion_timeout: float = Field(default=30.0, gt=0)
    max_tries: int = Field(default=100, ge=1)
    dnd5e: Dnd5eSettings = Field(default_factory=Dnd5eSettings)

    @field_validator("move_animation_delay", "rotation_animation_delay")
    @classmethod
    def _clamp_animation_delay(cls, value: float) -> float:
        return _clamp(float(value), 0, 1000)

    @field_validator("attack_delay")
    @classmethod
    def _clamp_attack_delay(cls, value: float) -> float:
        return _clamp(float(value), 0, 5000)

    @field_validator("rotation_cost")
    @classmethod
    def _non_negative_rotation_cost(cls, value: float) -> float:
        return max(0.0, float(value))

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "MookSettings":
        return cls.model_validate(dict(mapping or {}))

    @classmethod
    def from_loader(cls, loader: ConfigLoader) -> "MookSettings":
        return cls.from_mapping(loader.section(SETTINGS_SECTION))

    @classmethod
    def load(cls, path: str = "settings.yaml") -> "MookSettings":
        """Read ``path`` and return validated settings (defaults when absent)."""

        return cls.from_loader(ConfigLoader(path))

    @property
    def move_delay_seconds(self) -> float:
        return self.move_animation_delay / 1000.0

    @property
    def rotation_delay_seconds(self) -> float:
        return self.rotation_animation_delay / 1000.0

    @property
    def attack_delay_seconds(self) -> float:
        return self.attack_delay / 1000.0


__all__ = [
    "DistanceMetric",
    "Dnd5eSettings",
    "MookInitiative",
    "MookSettings",
    "MookType",
    "SETTINGS_SECTION",
]
