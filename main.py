#!/usr/bin/env python3
"""Run a mook skirmish on the in-memory sandbox host.

    python main.py --scenario skirmish.yaml --turns 6
"""

from __future__ import annotations

import argparse
import asyncio
import random
from typing import List, Optional

from ai.registry import MookAI
from config.config_loader import ConfigLoader
from config.settings import MookSettings
from interface.sandbox import SandboxHost
from utils.logger import configure_logging, get_logger, log_calls

logger = get_logger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Let mooks fight it out on a sandbox battle map.")
    parser.add_argument("--scenario", default="skirmish.yaml", help="YAML scenario describing map, tokens and combat.")
    parser.add_argument("--settings", default="settings.yaml", help="YAML file holding the mookAI settings section.")
    parser.add_argument("--turns", type=int, default=6, help="Number of turns to take (default: 6).")
    parser.add_argument("--seed", type=int, default=None, help="Seed for rolls and random behaviours.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    parser.add_argument("--log-dir", default=None, help="Also write a session log file to this directory.")
    return parser.parse_args(argv)


@log_calls
def build_host(scenario_path: str, rng: random.Random) -> SandboxHost:
    scenario = ConfigLoader(scenario_path).config
    if not scenario:
        raise SystemExit(f"Scenario {scenario_path!r} is missing or empty")
    return SandboxHost.from_scenario(scenario, rng)


async def run(args: argparse.Namespace, host: SandboxHost, rng: random.Random) -> int:
    settings = MookSettings.load(args.settings)

    mook_ai = MookAI(host.services(), lambda: settings, rng)
    if not mook_ai.ready():
        return 1

    if host.start_scenario_combat() is None:
        logger.warning("Scenario defines no combat; turns will start every combat on demand")

    completed = 0
    for turn in range(args.turns):
        combat = host.current_combat()
        if combat is None:
            logger.warning("No combat to take turns in")
            break
        logger.info("Turn %d: %s acts", turn + 1, combat.current_token_id)
        if await mook_ai.take_next_turn():
            completed += 1
            if not settings.auto_end_turn:
                await host.next_turn()
        else:
            await host.next_turn()
        await host.bus.drain()

    for token_id, token in host.tokens.items():
        sheet = host.actor(token_id)
        logger.info("%s at (%d, %d) with %d/%d hp", token.name, token.position.x, token.position.y, sheet.hp, sheet.hp_max)
    logger.info("%d of %d turns completed", completed, args.turns)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level.upper(), args.log_dir)
    rng = random.Random(args.seed)
    host = build_host(args.scenario, rng)
    return asyncio.run(run(args, host, rng))


if __name__ == "__main__":
    raise SystemExit(main())
