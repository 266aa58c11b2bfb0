"""Settings validation and loading from YAML."""

import pytest
from pydantic import ValidationError

from config.config_loader import ConfigLoader
from config.settings import DistanceMetric, MookInitiative, MookSettings, MookType
from rules.model import MookModelSettings


def test_defaults():
    settings = MookSettings()
    assert settings.distance_metric == DistanceMetric.MANHATTAN
    assert settings.mook_type == MookType.EAGER_BEAVER
    assert settings.mook_initiative == MookInitiative.WANDER
    assert settings.rotation_cost == pytest.approx(0.2)
    assert settings.dnd5e.actions_per_turn == 1
    assert settings.max_tries == 100


def test_delays_are_clamped_and_converted():
    settings = MookSettings.from_mapping(
        {"move_animation_delay": 5000, "rotation_animation_delay": -1, "attack_delay": 9000}
    )
    assert settings.move_animation_delay == 1000
    assert settings.rotation_animation_delay == 0
    assert settings.attack_delay == 5000
    assert settings.move_delay_seconds == pytest.approx(1.0)
    assert settings.attack_delay_seconds == pytest.approx(5.0)


def test_negative_rotation_cost_becomes_zero():
    assert MookSettings.from_mapping({"rotation_cost": -3}).rotation_cost == 0


def test_unknown_keys_ignored_and_enums_parsed():
    settings = MookSettings.from_mapping(
        {"distance_metric": "Euclidean", "mook_type": "SHIA", "something_else": 1}
    )
    assert settings.distance_metric == DistanceMetric.EUCLIDEAN
    assert settings.mook_type == MookType.SHIA


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        MookSettings.from_mapping({"max_tries": 0})
    with pytest.raises(ValidationError):
        MookSettings.from_mapping({"mook_initiative": "PANIC"})


def test_load_reads_mookai_section(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "mookAI:\n"
        "  distance_metric: Chebyshev\n"
        "  auto_end_turn: false\n"
        "  dnd5e:\n"
        "    has_bonus_attack: true\n",
        encoding="utf-8",
    )
    settings = MookSettings.load(str(path))
    assert settings.distance_metric == DistanceMetric.CHEBYSHEV
    assert settings.auto_end_turn is False
    assert settings.dnd5e.has_bonus_attack is True


def test_missing_file_gives_defaults(tmp_path):
    assert MookSettings.load(str(tmp_path / "absent.yaml")) == MookSettings()


def test_config_loader_nested_get():
    loader = ConfigLoader.from_mapping({"a": {"b": 3}})
    assert loader.get("a", "b") == 3
    assert loader.get("a", "c", default=9) == 9
    assert loader.section("missing") == {}
    with pytest.raises(KeyError):
        loader.get("a", "c")


class TestModelSettings:
    def test_rotation_cost_clamped_outside_rotate(self):
        model = MookModelSettings.from_settings(MookSettings.from_mapping({"rotation_cost": 4}))
        assert model.rotation_cost == 1.0
        assert model.mook_initiative == MookInitiative.WANDER

    def test_rotate_with_free_rotation_does_nothing(self):
        settings = MookSettings.from_mapping({"mook_initiative": "ROTATE", "rotation_cost": 0})
        assert MookModelSettings.from_settings(settings).mook_initiative == MookInitiative.DO_NOTHING

    def test_rotate_keeps_large_cost(self):
        settings = MookSettings.from_mapping({"mook_initiative": "ROTATE", "rotation_cost": 2})
        model = MookModelSettings.from_settings(settings)
        assert model.mook_initiative == MookInitiative.ROTATE
        assert model.rotation_cost == 2
