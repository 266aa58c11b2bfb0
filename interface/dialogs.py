"""Dialog requests put to the user and validation of their answers."""

from __future__ import annotations

from html import escape
from typing import Iterable, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from interface.models import CombatantInfo, DialogOption, DialogRequest, DialogResponse, Weapon
from rules.multiattack import MultiattackRules, attack_count_for

EXPLORE = "explore"
ASSUME_CONTROL = "control"
CONFIRM = "confirm"
CANCEL = "cancel"

MOVE = "move"
STAY = "stay"

PC_WARNING = '<p style="color:red">Warning: Token is owned by a player!</p>'

EXPLORE_CONTENT = (
    "<p>The mook could not find a target. This could be because they don't have vision on a PC "
    "or because they are outside of weapon range.</p>"
    "<p>The mook can explore their environment and try to find a target. Otherwise, mookAI will "
    "return control to the user.</p>"
)


def explore_dialog(token: CombatantInfo) -> DialogRequest:
    content = EXPLORE_CONTENT
    if token.has_player_owner:
        content = PC_WARNING + content
    return DialogRequest(
        title="Mook wants to explore!",
        content=content,
        options=(DialogOption(EXPLORE, "Explore"), DialogOption(ASSUME_CONTROL, "Assume Direct Control")),
        default=EXPLORE,
    )


class WeaponSelection(BaseModel):
    item_id: str
    attack_count: int = Field(default=1, ge=0)


class TraverseChoice(BaseModel):
    """Validated answer to :func:`traverse_dialog`."""

    movement: Literal["move", "stay"]
    selections: List[WeaponSelection] = Field(default_factory=list)
    requires_dash: bool = False

    @model_validator(mode="after")
    def _dash_disables_selection(self) -> "TraverseChoice":
        if self.requires_dash and self.movement == MOVE:
            self.selections = []
        return self

    @property
    def moves(self) -> bool:
        return self.movement == MOVE

    @property
    def incomplete(self) -> bool:
        """Moving without any attack selected is only valid when dashing."""

        return self.moves and not self.selections and not self.requires_dash

    @classmethod
    def from_response(cls, response: DialogResponse, requires_dash: bool) -> "TraverseChoice":
        return cls.model_validate({**response.values, "requires_dash": requires_dash})


def _weapon_card(weapon: Weapon, max_attacks: int, selected: bool, requires_dash: bool) -> str:
    counts = "".join(
        f'<option value="{n}"{" selected" if n == max_attacks else ""}>{n}×</option>'
        for n in range(1, max_attacks + 1)
    )
    dash = '<span class="dash-warning">(Requires action for Dash)</span>' if requires_dash else ""
    return (
        f'<div class="action-card{" selected" if selected else ""}" data-item-id="{escape(weapon.id)}">'
        f'<select name="attack-count-{escape(weapon.id)}"{" disabled" if requires_dash else ""}>{counts}</select>'
        f"<h4>{escape(weapon.name)}</h4><p>{weapon.description}</p>"
        f'<div class="action-cost">1 action {dash}</div></div>'
    )


def traverse_dialog(
    *,
    steps: int,
    has_path: bool,
    requires_dash: bool,
    weapons: Iterable[Weapon],
    planned_weapon: Optional[Weapon],
    rules: Optional[MultiattackRules],
) -> DialogRequest:
    """Movement and attack confirmation shown before a traversal."""

    weapons = list(weapons)
    cards = []
    defaults_selection = []
    for weapon in weapons:
        max_attacks = attack_count_for(rules, weapon)
        selected = planned_weapon is not None and weapon.id == planned_weapon.id and not requires_dash
        cards.append(
            {"id": weapon.id, "name": weapon.name, "max_attacks": max_attacks, "selected": selected}
        )
        if selected:
            defaults_selection.append({"item_id": weapon.id, "attack_count": max_attacks})

    move_label = f"Move {steps} spaces{' (Requires Dash)' if requires_dash else ''}"
    content = [
        '<div class="mook-action-dialog"><h3>Movement Options</h3><div class="movement-options">',
        f'<label><input type="radio" name="movement" value="move"{" checked" if has_path else ""}> {move_label}</label>',
        f'<label><input type="radio" name="movement" value="stay"{"" if has_path else " checked"}> Stay in current position</label>',
        "</div><h3>Available Actions</h3><div class=\"action-list\">",
    ]
    content.extend(
        _weapon_card(w, card["max_attacks"], card["selected"], requires_dash) for w, card in zip(weapons, cards)
    )
    content.append("</div>")
    if rules:
        content.append("<h3>Multiattack Details</h3><div class=\"multiattack-info\">")
        content.extend(f"<p>{count}× {escape(kind)}</p>" for kind, count in rules.items())
        content.append("</div>")
    content.append("</div>")

    return DialogRequest(
        title="Confirm Mook Actions",
        content="".join(content),
        options=(DialogOption(CONFIRM, "Confirm"), DialogOption(CANCEL, "Cancel")),
        default=CONFIRM,
        fields={
            "movement_options": [(MOVE, move_label), (STAY, "Stay in current position")],
            "weapons": cards,
            "multiattack": dict(rules or {}),
            "defaults": {
                "movement": MOVE if has_path else STAY,
                "selections": defaults_selection,
            },
        },
    )


__all__ = [
    "ASSUME_CONTROL",
    "CANCEL",
    "CONFIRM",
    "EXPLORE",
    "MOVE",
    "STAY",
    "TraverseChoice",
    "WeaponSelection",
    "explore_dialog",
    "traverse_dialog",
]
