"""
Engine Configuration

Tunables for recovery decay, volume tracking, substitution thresholds and
workout generation. Loads from config/ironload.yaml if available, else uses
defaults.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .domain import ExerciseType, MuscleGroup

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / 'config' / 'ironload.yaml'


def load_config_yaml(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from YAML file, return empty dict if not found."""
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


def _default_half_lives() -> Dict[MuscleGroup, float]:
    return {g: (48.0 if g.is_large else 24.0) for g in MuscleGroup}


def _default_volume_targets() -> Dict[MuscleGroup, float]:
    return {
        MuscleGroup.PECS: 12,
        MuscleGroup.LATS: 14,
        MuscleGroup.TRAPEZES: 14,
        MuscleGroup.DELTS: 12,
        MuscleGroup.BICEPS: 8,
        MuscleGroup.TRICEPS: 8,
        MuscleGroup.QUADS: 12,
        MuscleGroup.HAMSTRINGS: 12,
        MuscleGroup.GLUTES: 12,
        MuscleGroup.CALVES: 8,
        MuscleGroup.ABS: 6,
    }


def _default_rest_seconds() -> Dict[ExerciseType, int]:
    return {
        ExerciseType.BARBELL: 180,
        ExerciseType.DUMBBELLS: 120,
        ExerciseType.CABLE: 90,
        ExerciseType.MACHINE: 90,
        ExerciseType.BODYWEIGHT: 60,
    }


@dataclass
class EngineConfig:
    """Configuration for the training load engine."""

    # Fatigue aggregation
    fatigue_window_days: int = 7

    # Recovery model
    half_life_hours: Dict[MuscleGroup, float] = field(default_factory=_default_half_lives)
    recovery_window_hours: float = 168.0  # Events older than this are ignored
    baseline_weeks: int = 4  # Rolling window preceding the fatigue window
    default_baseline_load: float = 1000.0  # "Normal" session load with no history
    min_baseline_load: float = 100.0
    full_recovery_threshold: float = 0.95

    # Volume tracking
    default_volume_targets: Dict[MuscleGroup, float] = field(default_factory=_default_volume_targets)
    on_track_floor: float = 0.70

    # Substitution
    min_similarity_score: float = 0.70
    min_muscle_overlap: float = 80.0

    # Generation
    min_exercises: int = 3
    working_sets: int = 3
    per_set_overhead_seconds: int = 45  # Setup plus time under tension
    warmup_rest_seconds: int = 60
    warmup_weight_fraction: float = 0.5
    weight_increment: float = 2.5
    default_reps: int = 10
    default_weight: float = 0.0
    coverage_split: float = 50.0  # Split at which a group counts as trained
    max_alternatives: int = 3
    rest_seconds: Dict[ExerciseType, int] = field(default_factory=_default_rest_seconds)

    def half_life_for(self, muscle_group: MuscleGroup) -> float:
        return self.half_life_hours.get(muscle_group, 48.0 if muscle_group.is_large else 24.0)

    def rest_for(self, exercise_type: ExerciseType) -> int:
        return self.rest_seconds.get(exercise_type, 90)

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> 'EngineConfig':
        """Load config from YAML file."""
        yaml_config = load_config_yaml(config_path)

        kwargs: Dict[str, Any] = {}

        if 'fatigue' in yaml_config:
            fc = yaml_config['fatigue']
            kwargs['fatigue_window_days'] = fc.get('window_days', 7)

        if 'recovery' in yaml_config:
            rc = yaml_config['recovery']
            half_lives = _default_half_lives()
            half_lives.update({
                g: (rc.get('large_half_life_hours', 48.0) if g.is_large
                    else rc.get('small_half_life_hours', 24.0))
                for g in MuscleGroup
            })
            for name, hours in (rc.get('half_life_hours') or {}).items():
                half_lives[MuscleGroup.parse(name)] = float(hours)
            kwargs['half_life_hours'] = half_lives
            kwargs['recovery_window_hours'] = rc.get('window_hours', 168.0)
            kwargs['baseline_weeks'] = rc.get('baseline_weeks', 4)
            kwargs['default_baseline_load'] = rc.get('default_baseline_load', 1000.0)
            kwargs['min_baseline_load'] = rc.get('min_baseline_load', 100.0)
            kwargs['full_recovery_threshold'] = rc.get('full_recovery_threshold', 0.95)

        if 'volume' in yaml_config:
            vc = yaml_config['volume']
            kwargs['on_track_floor'] = vc.get('on_track_floor', 0.70)
            if vc.get('default_targets'):
                kwargs['default_volume_targets'] = {
                    MuscleGroup.parse(name): float(sets)
                    for name, sets in vc['default_targets'].items()
                }

        if 'substitution' in yaml_config:
            sc = yaml_config['substitution']
            kwargs['min_similarity_score'] = sc.get('min_similarity_score', 0.70)
            kwargs['min_muscle_overlap'] = sc.get('min_muscle_overlap', 80.0)

        if 'generation' in yaml_config:
            gc = yaml_config['generation']
            kwargs['min_exercises'] = gc.get('min_exercises', 3)
            kwargs['working_sets'] = gc.get('working_sets', 3)
            kwargs['per_set_overhead_seconds'] = gc.get('per_set_overhead_seconds', 45)
            kwargs['warmup_rest_seconds'] = gc.get('warmup_rest_seconds', 60)
            kwargs['warmup_weight_fraction'] = gc.get('warmup_weight_fraction', 0.5)
            kwargs['weight_increment'] = gc.get('weight_increment', 2.5)
            kwargs['default_reps'] = gc.get('default_reps', 10)
            kwargs['default_weight'] = gc.get('default_weight', 0.0)
            kwargs['coverage_split'] = gc.get('coverage_split', 50.0)
            kwargs['max_alternatives'] = gc.get('max_alternatives', 3)
            if gc.get('rest_seconds'):
                rest = _default_rest_seconds()
                rest.update({
                    ExerciseType.parse(name): int(seconds)
                    for name, seconds in gc['rest_seconds'].items()
                })
                kwargs['rest_seconds'] = rest

        return cls(**kwargs)
