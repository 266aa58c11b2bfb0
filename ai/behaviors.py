"""Target selection policies.

A policy receives the targets the mook can reach this turn, split by range
class, and returns exactly one of them.  Policies are looked up by
:class:`config.settings.MookType`.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from config.settings import MookType
from core.actions.action import AttackAction
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Target:
    """A reachable enemy bound to the attack used against it."""

    token_id: str
    range: float
    attack_action: AttackAction
    distance: float


@dataclass(slots=True)
class ViableTargets:
    melee: List[Target] = field(default_factory=list)
    ranged: List[Target] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.melee or self.ranged)

    def all(self) -> List[Target]:
        return self.melee + self.ranged


Policy = Callable[[ViableTargets, Optional[str], Optional[str], random.Random], Target]


def _tie_rank(target: Target, last: Optional[str], first: Optional[str]):
    return (
        target.distance,
        target.token_id != last,
        target.token_id != first,
        target.token_id,
    )


def eager_beaver(
    targets: ViableTargets,
    last: Optional[str],
    first: Optional[str],
    rng: random.Random,
) -> Target:
    """Closest melee target, else closest ranged target."""

    pool = targets.melee or targets.ranged
    return min(pool, key=lambda t: _tie_rank(t, last, first))


def shia(
    targets: ViableTargets,
    last: Optional[str],
    first: Optional[str],
    rng: random.Random,
) -> Target:
    """Any target in range, picked uniformly."""

    return rng.choice(targets.all())


BEHAVIORS: Dict[MookType, Policy] = {
    MookType.EAGER_BEAVER: eager_beaver,
    MookType.SHIA: shia,
}


def choose_target(
    mook_type: MookType,
    targets: ViableTargets,
    *,
    last_target: Optional[str] = None,
    first_target: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> Target:
    if not targets:
        raise ValueError("no viable targets to choose from")
    policy = BEHAVIORS[mook_type]
    target = policy(targets, last_target, first_target, rng or random.Random())
    logger.debug("%s chose %s at distance %.1f", mook_type.value, target.token_id, target.distance)
    return target


__all__ = ["BEHAVIORS", "Target", "ViableTargets", "choose_target", "eager_beaver", "shia"]
