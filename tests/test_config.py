"""Tests for engine configuration loading."""
import pytest

from ironload.config import DEFAULT_CONFIG_PATH, EngineConfig
from ironload.domain import ExerciseType, MuscleGroup
from ironload.errors import ValidationError


class TestDefaults:

    def test_half_lives_by_size(self):
        config = EngineConfig()
        assert config.half_life_for(MuscleGroup.QUADS) == 48
        assert config.half_life_for(MuscleGroup.BICEPS) == 24

    def test_rest_by_equipment(self):
        config = EngineConfig()
        assert config.rest_for(ExerciseType.BARBELL) == 180
        assert config.rest_for(ExerciseType.DUMBBELLS) == 120
        assert config.rest_for(ExerciseType.BODYWEIGHT) == 60


class TestFromYaml:

    def test_missing_file_gives_defaults(self, tmp_path):
        assert EngineConfig.from_yaml(tmp_path / "absent.yaml") == EngineConfig()

    def test_shipped_config(self):
        assert DEFAULT_CONFIG_PATH.exists()
        config = EngineConfig.from_yaml()

        assert config.half_life_for(MuscleGroup.TRAPEZES) == 36
        assert config.half_life_for(MuscleGroup.PECS) == 48
        assert config.min_similarity_score == 0.70
        assert config.default_volume_targets[MuscleGroup.LATS] == 14

    def test_partial_overrides(self, tmp_path):
        path = tmp_path / "ironload.yaml"
        path.write_text(
            "recovery:\n"
            "  small_half_life_hours: 30\n"
            "  half_life_hours:\n"
            "    quads: 60\n"
            "generation:\n"
            "  working_sets: 4\n"
            "  rest_seconds:\n"
            "    barbell: 150\n"
        )
        config = EngineConfig.from_yaml(path)

        assert config.half_life_for(MuscleGroup.BICEPS) == 30
        assert config.half_life_for(MuscleGroup.QUADS) == 60
        assert config.half_life_for(MuscleGroup.LATS) == 48
        assert config.working_sets == 4
        assert config.rest_for(ExerciseType.BARBELL) == 150
        assert config.rest_for(ExerciseType.CABLE) == 90

    def test_unknown_muscle_group(self, tmp_path):
        path = tmp_path / "ironload.yaml"
        path.write_text("recovery:\n  half_life_hours:\n    chest: 40\n")
        with pytest.raises(ValidationError):
            EngineConfig.from_yaml(path)
