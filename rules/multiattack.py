"""Extract attack counts from a creature's "Multiattack" feature text.

Stat blocks phrase multiattack in a handful of ways::

    The knight makes two melee attacks.
    The chimera makes three attacks: one with its bite, one with its horns...
    The scout makes two melee attacks or two ranged attacks.

The parser returns a mapping from an attack key (``"melee"``, ``"ranged"`` or
a weapon name) to a count.  It is deliberately lenient; unknown phrasing
simply yields fewer keys.
"""

from __future__ import annotations

import re
from html.parser import HTMLParser
from typing import Dict, Iterable, Optional

from interface.models import Feature, Weapon
from utils.logger import get_logger

logger = get_logger(__name__)


class MultiattackRules(dict):
    """Attack counts keyed by ``"melee"``, ``"ranged"`` or a weapon name.

    ``total`` is the most repeats any single alternative allows; options
    joined by "or" are not added together.
    """

    def __init__(self, *args, total: int = 0, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.total = total


NUMBER_WORDS = ("one", "two", "three", "four", "five", "six")

_SPECIFIC_ATTACKS = re.compile(r"makes\s+(?:(\w+)|(\d+))\s+attacks?:\s+(.*)", re.IGNORECASE)
_WEAPON_MENTION = re.compile(r"(\w+)\s+with\s+(?:its|his|her|their)\s+([\w\s]+?)(?:\s+and\s+|$|\.)")
_OPTION_SPLIT = re.compile(r"\s+or\s+")
_NUMERIC_ATTACK = re.compile(r"(\d+)\s+([\w\s]+)(?:attack|attacks)")


class _TextExtractor(HTMLParser):
    def __init__(self) -> None:
        super().__init__()
        self.chunks = []

    def handle_data(self, data: str) -> None:
        self.chunks.append(data)


def strip_html(markup: str) -> str:
    extractor = _TextExtractor()
    extractor.feed(markup)
    extractor.close()
    return "".join(extractor.chunks)


def _count_from_word(word: str) -> int:
    if word in NUMBER_WORDS:
        return NUMBER_WORDS.index(word) + 1
    if word.isdigit():
        return int(word)
    return 1


def _category_count(option: str, category: str, attacks: Dict[str, int]) -> None:
    if category not in option:
        return
    for index, word in enumerate(NUMBER_WORDS):
        if word in option:
            attacks[category] = index + 1
    numeric = re.search(rf"(\d+)\s+{category}", option)
    if numeric:
        attacks[category] = int(numeric.group(1))


def parse_description(description: str) -> MultiattackRules:
    """Parse one multiattack description (HTML allowed)."""

    text = strip_html(description).lower()
    attacks = MultiattackRules()
    totals = []

    specific = _SPECIFIC_ATTACKS.search(text)
    if specific:
        mentioned: Dict[str, int] = {}
        for count_word, weapon_name in _WEAPON_MENTION.findall(specific.group(3)):
            mentioned[weapon_name.strip()] = _count_from_word(count_word.strip())
        attacks.update(mentioned)
        totals.append(sum(mentioned.values()))

    for option in _OPTION_SPLIT.split(text):
        found: Dict[str, int] = {}
        _category_count(option, "melee", found)
        _category_count(option, "ranged", found)

        for index, word in enumerate(NUMBER_WORDS):
            named = re.search(rf"{word}\s+([\w\s]+)(?:attack|attacks)", option)
            if named and "melee" not in named.group(1) and "ranged" not in named.group(1):
                found[named.group(1).strip()] = index + 1

        for num, kind in _NUMERIC_ATTACK.findall(option):
            if "melee" not in kind and "ranged" not in kind:
                found[kind.strip()] = int(num)

        attacks.update(found)
        totals.append(sum(found.values()))

    attacks.total = max(totals, default=0)
    return attacks


def parse_multiattack(features: Iterable[Feature]) -> Optional[MultiattackRules]:
    """Rules from the first feature named like "Multiattack", or ``None``."""

    candidates = [f for f in features if "multiattack" in f.name.lower()]
    if not candidates:
        return None
    description = candidates[0].description
    if not description:
        logger.debug("Multiattack feature %r has no description", candidates[0].name)
        return None
    rules = parse_description(description)
    logger.debug("Multiattack rules parsed from %r: %s", candidates[0].name, rules)
    return rules


def attack_count_for(rules: Optional[MultiattackRules], weapon: Weapon) -> int:
    """Repeat count granted to ``weapon`` by ``rules``; ``1`` when none applies."""

    if not rules:
        return 1
    name = weapon.name.lower()
    for key, count in rules.items():
        if key in ("melee", "ranged"):
            continue
        if key.replace(" ", "") in name.replace(" ", ""):
            return count
    if weapon.attack_type == "mwak" and "melee" in rules:
        return rules["melee"]
    if weapon.attack_type == "rwak" and "ranged" in rules:
        return rules["ranged"]
    return 1


def total_attacks(rules: Optional[MultiattackRules]) -> int:
    """Repeats allowed per turn by the largest alternative of ``rules``."""

    return max(rules.total, 1) if rules else 1


__all__ = [
    "MultiattackRules",
    "NUMBER_WORDS",
    "attack_count_for",
    "parse_description",
    "parse_multiattack",
    "strip_html",
    "total_attacks",
]
