"""Rules model lookup keyed by the host's game system id."""

from __future__ import annotations

import random
from typing import Dict, Optional, Type

from config.settings import MookSettings
from interface.ports import HostServices
from rules.dnd5e import MookModel5e
from rules.model import MookModel, MookModelSettings, UnsupportedSystemError

SYSTEMS: Dict[str, Type[MookModel]] = {
    "dnd5e": MookModel5e,
}


def get_mook_model(
    token_id: str,
    host: HostServices,
    settings: MookSettings,
    rng: Optional[random.Random] = None,
) -> MookModel:
    """Build the rules model of ``token_id`` for the host's game system."""

    system_id = host.rules.system_id
    model_cls = SYSTEMS.get(system_id)
    if model_cls is None:
        raise UnsupportedSystemError(f"game system {system_id!r} is not supported")
    return model_cls(token_id, host, MookModelSettings.from_settings(settings), rng)


__all__ = ["SYSTEMS", "get_mook_model"]
