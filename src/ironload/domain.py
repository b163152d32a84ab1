"""
Domain Types

Dataclasses and closed enumerations shared by every engine component.
Everything here is a plain value: the engine reads snapshots of these from a
persistence collaborator and hands new ones back, it never mutates them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import ValidationError


# =============================================================================
# Enumerations
# =============================================================================

class MuscleGroup(Enum):
    """Anatomical regions tracked for load and volume."""
    ABS = "abs"
    BICEPS = "biceps"
    CALVES = "calves"
    DELTS = "delts"
    FOREARMS = "forearms"
    GLUTES = "glutes"
    HAMSTRINGS = "hamstrings"
    LATS = "lats"
    LOWER_BACK = "lower_back"
    PECS = "pecs"
    QUADS = "quads"
    TRAPEZES = "trapezes"
    TRICEPS = "triceps"

    @classmethod
    def parse(cls, value: Any) -> 'MuscleGroup':
        return _parse_enum(cls, value, "muscle group")

    @property
    def category(self) -> 'MuscleGroupCategory':
        return MUSCLE_GROUP_CATEGORIES[self]

    @property
    def is_large(self) -> bool:
        return self in LARGE_MUSCLE_GROUPS


class MuscleGroupCategory(Enum):
    CORE = "core"
    LEGS = "legs"
    ARMS = "arms"
    BACK = "back"


class ExerciseType(Enum):
    """Equipment category an exercise is performed with."""
    BARBELL = "barbell"
    BODYWEIGHT = "bodyweight"
    CABLE = "cable"
    DUMBBELLS = "dumbbells"
    MACHINE = "machine"

    @classmethod
    def parse(cls, value: Any) -> 'ExerciseType':
        return _parse_enum(cls, value, "exercise type")

    @property
    def needs_warmup(self) -> bool:
        """Free-weight and machine work gets a reduced warm-up set."""
        return self is not ExerciseType.BODYWEIGHT


class MovementPattern(Enum):
    PUSH = "push"
    PULL = "pull"
    SQUAT = "squat"
    HINGE = "hinge"
    CORE = "core"
    ISOLATION = "isolation"
    ROTATION = "rotation"
    GAIT = "gait"

    @classmethod
    def parse(cls, value: Any) -> 'MovementPattern':
        return _parse_enum(cls, value, "movement pattern")


class RecoveryStatus(Enum):
    FATIGUED = "fatigued"
    RECOVERING = "recovering"
    FRESH = "fresh"

    @classmethod
    def from_fraction(cls, fraction: float) -> 'RecoveryStatus':
        if fraction >= 0.8:
            return cls.FRESH
        if fraction >= 0.5:
            return cls.RECOVERING
        return cls.FATIGUED


MUSCLE_GROUP_CATEGORIES: Dict[MuscleGroup, MuscleGroupCategory] = {
    MuscleGroup.ABS: MuscleGroupCategory.CORE,
    MuscleGroup.BICEPS: MuscleGroupCategory.ARMS,
    MuscleGroup.CALVES: MuscleGroupCategory.LEGS,
    MuscleGroup.DELTS: MuscleGroupCategory.ARMS,
    MuscleGroup.FOREARMS: MuscleGroupCategory.ARMS,
    MuscleGroup.GLUTES: MuscleGroupCategory.LEGS,
    MuscleGroup.HAMSTRINGS: MuscleGroupCategory.LEGS,
    MuscleGroup.LATS: MuscleGroupCategory.BACK,
    MuscleGroup.LOWER_BACK: MuscleGroupCategory.BACK,
    MuscleGroup.PECS: MuscleGroupCategory.CORE,
    MuscleGroup.QUADS: MuscleGroupCategory.LEGS,
    MuscleGroup.TRAPEZES: MuscleGroupCategory.BACK,
    MuscleGroup.TRICEPS: MuscleGroupCategory.ARMS,
}

LARGE_MUSCLE_GROUPS = frozenset({
    MuscleGroup.PECS,
    MuscleGroup.LATS,
    MuscleGroup.TRAPEZES,
    MuscleGroup.LOWER_BACK,
    MuscleGroup.QUADS,
    MuscleGroup.HAMSTRINGS,
    MuscleGroup.GLUTES,
})


def _parse_enum(enum_cls, value: Any, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown {label}: {value!r}") from None


def parse_bool(value: Any, label: str) -> bool:
    """Strict boolean: real bools, 0/1, or true/false/yes/no strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ('true', 't', 'yes', '1'):
            return True
        if text in ('false', 'f', 'no', '0'):
            return False
    raise ValidationError(f"Invalid {label}: {value!r}")


# =============================================================================
# Catalog and equipment
# =============================================================================

@dataclass(frozen=True)
class Exercise:
    id: str
    name: str
    type: ExerciseType
    movement_pattern: MovementPattern
    description: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Exercise':
        """Build from a raw row, validating the enum columns."""
        return cls(
            id=str(record['id']),
            name=record['name'],
            type=ExerciseType.parse(record['type']),
            movement_pattern=MovementPattern.parse(
                record.get('movement_pattern', record.get('movementPattern'))
            ),
            description=record.get('description'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'name': self.name,
            'type': self.type.value,
            'movementPattern': self.movement_pattern.value,
        }
        if self.description:
            data['description'] = self.description
        return data


@dataclass(frozen=True)
class MuscleGroupSplit:
    """Share of an exercise's stimulus attributed to one muscle group."""
    exercise_id: str
    muscle_group: MuscleGroup
    split_percent: float

    def __post_init__(self):
        if not 0 <= self.split_percent <= 100:
            raise ValidationError(
                f"Split for {self.exercise_id}/{self.muscle_group.value} "
                f"out of range: {self.split_percent}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {'muscleGroup': self.muscle_group.value, 'split': self.split_percent}


@dataclass(frozen=True)
class ExerciseCatalogEntry:
    """An exercise joined with its muscle-group splits."""
    exercise: Exercise
    splits: Tuple[MuscleGroupSplit, ...] = ()

    def split_for(self, muscle_group: MuscleGroup) -> float:
        return sum(s.split_percent for s in self.splits if s.muscle_group is muscle_group)


@dataclass(frozen=True)
class EquipmentInstance:
    id: str
    exercise_type: ExerciseType
    floor_id: str
    capacity: int = 1
    is_available: bool = True
    name: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'EquipmentInstance':
        return cls(
            id=str(record['id']),
            exercise_type=ExerciseType.parse(record['exercise_type']),
            floor_id=str(record['floor_id']),
            capacity=int(record.get('capacity', 1)),
            is_available=parse_bool(record.get('is_available', True), "is_available flag"),
            name=record.get('name'),
        )


@dataclass(frozen=True)
class PrecomputedSubstitution:
    primary_exercise_id: str
    substitute_exercise_id: str
    similarity_score: float
    muscle_overlap_percentage: float


@dataclass(frozen=True)
class VolumeTarget:
    muscle_group: MuscleGroup
    weekly_target_sets: float


# =============================================================================
# Training history
# =============================================================================

@dataclass(frozen=True)
class CompletedSet:
    """One logged set as read from workout history.

    ``reps`` and ``weight`` are optional: a missing weight counts as 1
    (bodyweight), missing reps count as 0 load.
    """
    workout_id: str
    exercise_id: str
    set_number: int
    workout_start_date: datetime
    reps: Optional[int] = None
    weight: Optional[float] = None
    is_warmup: bool = False
    is_completed: bool = True

    @property
    def counts_as_work(self) -> bool:
        return self.is_completed and not self.is_warmup

    @property
    def effective_reps(self) -> int:
        return self.reps if self.reps is not None else 0

    @property
    def effective_weight(self) -> float:
        if self.weight is None:
            return 1.0
        return max(float(self.weight), 1.0)


@dataclass(frozen=True)
class LastPerformance:
    """Most recent completed working set for an exercise."""
    exercise_id: str
    reps: Optional[int]
    weight: Optional[float]
    performed_at: datetime


# =============================================================================
# Derived views
# =============================================================================

@dataclass(frozen=True)
class FatigueEvent:
    muscle_group: MuscleGroup
    volume_load: float
    workout_date: datetime


@dataclass(frozen=True)
class MuscleRecovery:
    muscle_group: MuscleGroup
    recovery_fraction: float
    estimated_days_to_full: float
    last_workout_date: Optional[datetime] = None

    @property
    def category(self) -> MuscleGroupCategory:
        return self.muscle_group.category

    @property
    def status(self) -> RecoveryStatus:
        return RecoveryStatus.from_fraction(self.recovery_fraction)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'recoveryFraction': round(self.recovery_fraction, 4),
            'estimatedDaysToFull': self.estimated_days_to_full,
            'category': self.category.value,
            'status': self.status.value,
        }
        if self.last_workout_date:
            data['lastWorkoutDate'] = self.last_workout_date.isoformat()
        return data


RecoveryMap = Dict[MuscleGroup, MuscleRecovery]


@dataclass(frozen=True)
class MuscleGroupProgress:
    target_sets: float
    completed_weighted_sets: float
    progress_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'targetSets': self.target_sets,
            'completedWeightedSets': round(self.completed_weighted_sets, 2),
            'progressPercentage': round(self.progress_percentage, 1),
        }


@dataclass(frozen=True)
class WeeklyProgress:
    week_start: datetime
    elapsed_fraction: float
    per_group: Dict[MuscleGroup, MuscleGroupProgress]
    is_on_track: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'weekStart': self.week_start.isoformat(),
            'elapsedFraction': round(self.elapsed_fraction, 3),
            'perGroup': {g.value: p.to_dict() for g, p in self.per_group.items()},
            'isOnTrack': self.is_on_track,
        }


@dataclass(frozen=True)
class SubstitutionCandidate:
    exercise: Exercise
    muscle_group_splits: Tuple[MuscleGroupSplit, ...]
    similarity_score: float
    muscle_overlap_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exercise': self.exercise.to_dict(),
            'muscleGroupSplits': [s.to_dict() for s in self.muscle_group_splits],
            'similarityScore': self.similarity_score,
            'muscleOverlapPercentage': self.muscle_overlap_percentage,
        }


# =============================================================================
# Generation
# =============================================================================

@dataclass
class WorkoutRequest:
    available_equipment: List[EquipmentInstance]
    target_duration_minutes: float
    preferred_floor: Optional[str] = None
    volume_needs: Dict[MuscleGroup, float] = field(default_factory=dict)


@dataclass(frozen=True)
class GeneratedSet:
    set_number: int
    target_reps: int
    target_weight: float
    is_warmup: bool
    rest_seconds: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'setNumber': self.set_number,
            'targetReps': self.target_reps,
            'targetWeight': self.target_weight,
            'isWarmup': self.is_warmup,
            'restSeconds': self.rest_seconds,
        }


@dataclass(frozen=True)
class GeneratedExerciseGroup:
    exercise: Exercise
    order_index: int
    sets: Tuple[GeneratedSet, ...]
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'exercise': self.exercise.to_dict(),
            'orderIndex': self.order_index,
            'sets': [s.to_dict() for s in self.sets],
        }
        if self.notes:
            data['notes'] = self.notes
        return data


@dataclass(frozen=True)
class GeneratedWorkout:
    name: str
    rationale: str
    estimated_duration_minutes: float
    exercise_groups: Tuple[GeneratedExerciseGroup, ...]
    session_notes: Optional[str] = None
    prioritized_muscle_groups: Tuple[MuscleGroup, ...] = ()
    alternatives: Dict[str, Tuple[Exercise, ...]] = field(default_factory=dict)
    floor_switches: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'rationale': self.rationale,
            'estimatedDurationMinutes': self.estimated_duration_minutes,
            'exerciseGroups': [g.to_dict() for g in self.exercise_groups],
            'prioritizedMuscleGroups': [g.value for g in self.prioritized_muscle_groups],
            'alternatives': {
                ex_id: [a.to_dict() for a in alts]
                for ex_id, alts in self.alternatives.items()
            },
            'floorSwitches': self.floor_switches,
        }
        if self.session_notes:
            data['sessionNotes'] = self.session_notes
        return data


def as_datetime(value) -> datetime:
    """Coerce a date or ISO string into a naive datetime."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))
