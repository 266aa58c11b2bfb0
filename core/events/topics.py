"""Canonical registry of host hooks relayed on the event bus.

Each entry is declared as a :class:`~enum.Enum` member and documents the
producer, the intended consumers and the payload guarantees for the associated
event.  Host adapters publish these topics; the registry and the executor
subscribe to them.
"""

from __future__ import annotations

from enum import Enum

__all__ = ["HookTopic"]


class HookTopic(str, Enum):
    """Enumeration of every topic published on the event bus."""

    COMBAT_CREATED = "createCombat"
    """Published by the host when an encounter is created.

    Subscribers: :class:`ai.registry.MookAI`.
    Guarantees: provides ``combat`` as an :class:`interface.models.CombatInfo`.
    """

    COMBAT_DELETED = "deleteCombat"
    """Published by the host when an encounter ends.

    Subscribers: :class:`ai.registry.MookAI`.
    Guarantees: provides ``combat_id``.
    """

    COMBATANT_CREATED = "createCombatant"
    """Published when a token joins an encounter.

    Subscribers: :class:`ai.registry.MookAI`.
    Guarantees: provides ``combat_id`` and ``token_id``.
    """

    COMBATANT_DELETED = "deleteCombatant"
    """Published when a token leaves an encounter.

    Subscribers: :class:`ai.registry.MookAI`.
    Guarantees: provides ``combat_id`` and ``token_id``.
    """

    SCENE_UPDATED = "updateScene"
    """Published when the active scene changes.

    Subscribers: :class:`ai.registry.MookAI`, which drops every session.
    Guarantees: no payload is required.
    """

    TOKEN_UPDATED = "updateToken"
    """Published after a token document changed.

    Subscribers: controllers tracking their own position.
    Guarantees: provides ``changes`` mapping with at least ``id``.
    """

    ROLL_COMPLETED = "rollComplete"
    """Published by the host once an attack roll workflow has finished.

    Subscribers: the turn executor while waiting on attack repeats.
    Guarantees: may carry ``token_id`` and ``item_id`` of the attacker.
    """

    TURN_FINISHED = "mookTurnFinished"
    """Published by the registry after a mook turn attempt.

    Subscribers: logging sinks and user interfaces.
    Guarantees: provides ``token_id`` and ``success``.
    """
