"""
In-memory training data snapshot.

Implements the repository API (see repository.py) over plain Python data,
loadable from YAML. Used for offline CLI runs and tests.

YAML layout:

    exercises:
      - {id: bench, name: Bench Press, type: barbell, movement_pattern: push,
         splits: {pecs: 60, triceps: 25, delts: 15}}
    equipment:
      - {id: rack-1, exercise_type: barbell, floor_id: "1"}
    volume_targets: {pecs: 12, lats: 14}
    substitutions:
      - {primary: bench, substitute: db-bench, similarity: 0.9, overlap: 95}
    workouts:
      - id: w1
        start: 2026-10-12T18:00:00
        sets:
          - {exercise: bench, set: 1, reps: 10, weight: 60}

Soft-deleted rows carry ``deleted: true``.
"""
from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .cache import ReferenceDataCache
from .domain import (
    CompletedSet,
    EquipmentInstance,
    Exercise,
    ExerciseCatalogEntry,
    GeneratedWorkout,
    LastPerformance,
    MuscleGroup,
    MuscleGroupSplit,
    PrecomputedSubstitution,
    VolumeTarget,
    parse_bool,
    as_datetime,
)
from .errors import RepositoryError
from .repository import workout_from_rows

logger = logging.getLogger(__name__)


class SnapshotRepository:
    """Repository over an in-memory snapshot."""

    def __init__(
        self,
        exercises: Optional[List[Exercise]] = None,
        splits: Optional[List[MuscleGroupSplit]] = None,
        equipment: Optional[List[EquipmentInstance]] = None,
        sets: Optional[List[CompletedSet]] = None,
        volume_targets: Optional[List[VolumeTarget]] = None,
        substitutions: Optional[List[PrecomputedSubstitution]] = None,
        cache: Optional[ReferenceDataCache] = None,
    ):
        self.exercises: Dict[str, Exercise] = {e.id: e for e in exercises or []}
        self.splits: List[MuscleGroupSplit] = list(splits or [])
        self.equipment = list(equipment or [])
        self.sets = list(sets or [])
        self.volume_targets = list(volume_targets or [])
        self.substitutions = list(substitutions or [])
        self.cache = cache or ReferenceDataCache()
        self._workouts: Dict[str, Dict[str, Any]] = {}

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def from_yaml(cls, path, cache: Optional[ReferenceDataCache] = None) -> 'SnapshotRepository':
        """Load a snapshot file."""
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Could not read snapshot {path}: {e}")
            raise RepositoryError("load_snapshot", str(e)) from e
        return cls.from_dict(data, cache=cache)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], cache: Optional[ReferenceDataCache] = None) -> 'SnapshotRepository':
        """Build from the YAML layout described in the module docstring."""
        exercises = []
        splits = []
        for row in data.get('exercises') or []:
            if row.get('deleted'):
                continue
            exercise = Exercise.from_record(row)
            exercises.append(exercise)
            for group, percent in (row.get('splits') or {}).items():
                splits.append(MuscleGroupSplit(exercise.id, MuscleGroup.parse(group), float(percent)))

        equipment = [EquipmentInstance.from_record(r) for r in data.get('equipment') or [] if not r.get('deleted')]

        sets = []
        for workout in data.get('workouts') or []:
            if workout.get('deleted'):
                continue
            start = as_datetime(workout['start'])
            for i, s in enumerate(workout.get('sets') or [], start=1):
                sets.append(CompletedSet(
                    workout_id=str(workout['id']),
                    exercise_id=str(s['exercise']),
                    set_number=int(s.get('set', i)),
                    workout_start_date=start,
                    reps=s.get('reps'),
                    weight=s.get('weight'),
                    is_warmup=parse_bool(s.get('warmup', False), "warmup flag"),
                    is_completed=parse_bool(s.get('completed', True), "completed flag"),
                ))

        targets = [
            VolumeTarget(MuscleGroup.parse(group), float(target))
            for group, target in (data.get('volume_targets') or {}).items()
        ]

        substitutions = [
            PrecomputedSubstitution(
                primary_exercise_id=str(r['primary']),
                substitute_exercise_id=str(r['substitute']),
                similarity_score=float(r['similarity']),
                muscle_overlap_percentage=float(r['overlap']),
            )
            for r in data.get('substitutions') or []
        ]

        return cls(exercises, splits, equipment, sets, targets, substitutions, cache=cache)

    # =========================================================================
    # Reference data
    # =========================================================================

    def get_catalog(self) -> Dict[str, ExerciseCatalogEntry]:
        return self.cache.get_catalog(self._build_catalog)

    def _build_catalog(self) -> Dict[str, ExerciseCatalogEntry]:
        by_exercise: Dict[str, List[MuscleGroupSplit]] = {}
        for split in self.splits:
            by_exercise.setdefault(split.exercise_id, []).append(split)
        return {
            ex_id: ExerciseCatalogEntry(exercise=ex, splits=tuple(by_exercise.get(ex_id, [])))
            for ex_id, ex in sorted(self.exercises.items())
        }

    def set_muscle_split(self, exercise_id: str, muscle_group: MuscleGroup, split_percent: float):
        split = MuscleGroupSplit(exercise_id, muscle_group, split_percent)
        self.splits = [
            s for s in self.splits
            if not (s.exercise_id == exercise_id and s.muscle_group is muscle_group)
        ]
        self.splits.append(split)
        self.cache.invalidate()

    def soft_delete_exercise(self, exercise_id: str):
        self.exercises.pop(exercise_id, None)
        self.cache.invalidate()

    def get_substitution_rows(self, primary_exercise_id: str) -> List[PrecomputedSubstitution]:
        return [s for s in self.substitutions if s.primary_exercise_id == primary_exercise_id]

    # =========================================================================
    # History
    # =========================================================================

    def get_completed_sets(self, start: datetime, end: datetime) -> List[CompletedSet]:
        return [
            s for s in self.sets
            if s.is_completed and start <= s.workout_start_date <= end
        ]

    def list_equipment(self) -> List[EquipmentInstance]:
        return list(self.equipment)

    def get_volume_targets(self) -> List[VolumeTarget]:
        return list(self.volume_targets)

    def get_last_performances(self, exercise_ids: Sequence[str]) -> Dict[str, LastPerformance]:
        wanted = set(exercise_ids)
        latest: Dict[str, CompletedSet] = {}
        for s in self.sets:
            if s.exercise_id not in wanted or not s.counts_as_work:
                continue
            current = latest.get(s.exercise_id)
            if current is None or (s.workout_start_date, s.set_number) > (current.workout_start_date, current.set_number):
                latest[s.exercise_id] = s

        return {
            ex_id: LastPerformance(ex_id, s.reps, s.weight, s.workout_start_date)
            for ex_id, s in latest.items()
        }

    # =========================================================================
    # Workout persistence
    # =========================================================================

    def commit_workout(self, workout: GeneratedWorkout, start_time: Optional[datetime] = None) -> str:
        """Store a workout; rows are built in full before anything is visible."""
        catalog = self.get_catalog()
        missing = [g.exercise.id for g in workout.exercise_groups if g.exercise.id not in catalog]
        if missing:
            raise RepositoryError("commit_workout", f"Unknown exercises: {missing}")

        workout_id = str(uuid.uuid4())
        rows = {
            'workout': {
                'workout_id': workout_id,
                'name': workout.name,
                'rationale': workout.rationale,
                'estimated_duration_minutes': workout.estimated_duration_minutes,
                'session_notes': workout.session_notes,
                'start_time': start_time or datetime.now(),
            },
            'exercises': [
                {'exercise_id': g.exercise.id, 'order_index': g.order_index, 'notes': g.notes}
                for g in workout.exercise_groups
            ],
            'sets': [
                {
                    'exercise_id': g.exercise.id,
                    'set_number': s.set_number,
                    'target_reps': s.target_reps,
                    'target_weight': s.target_weight,
                    'is_warmup': s.is_warmup,
                    'rest_seconds': s.rest_seconds,
                }
                for g in workout.exercise_groups
                for s in g.sets
            ],
        }

        self._workouts[workout_id] = rows
        logger.info(f"Committed workout {workout_id}: {len(rows['exercises'])} exercises, {len(rows['sets'])} sets")
        return workout_id

    def get_workout(self, workout_id: str) -> GeneratedWorkout:
        rows = self._workouts.get(workout_id)
        if rows is None:
            raise RepositoryError("get_workout", f"Workout not found: {workout_id}")
        return workout_from_rows(copy.deepcopy(rows), self.get_catalog())

    def splice_exercise(self, workout_id: str, old_exercise_id: str, new_exercise_id: str):
        rows = self._workouts.get(workout_id)
        if rows is None:
            raise RepositoryError("splice_exercise", f"Workout not found: {workout_id}")
        if new_exercise_id not in self.get_catalog():
            raise RepositoryError("splice_exercise", f"Unknown exercise: {new_exercise_id}")
        if not any(r['exercise_id'] == old_exercise_id for r in rows['exercises']):
            raise RepositoryError("splice_exercise", f"{old_exercise_id} not in workout {workout_id}")
        if any(r['exercise_id'] == new_exercise_id for r in rows['exercises']):
            raise RepositoryError("splice_exercise", f"{new_exercise_id} already in workout {workout_id}")

        for row in rows['exercises'] + rows['sets']:
            if row['exercise_id'] == old_exercise_id:
                row['exercise_id'] = new_exercise_id
        logger.info(f"Workout {workout_id}: spliced {old_exercise_id} -> {new_exercise_id}")
