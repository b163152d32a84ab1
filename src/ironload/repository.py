"""
Training data repository.

The engine depends on a duck-typed data source with these methods:

    get_catalog() -> Dict[str, ExerciseCatalogEntry]
    get_completed_sets(start, end) -> List[CompletedSet]
    list_equipment() -> List[EquipmentInstance]
    get_volume_targets() -> List[VolumeTarget]
    get_substitution_rows(primary_exercise_id) -> List[PrecomputedSubstitution]
    get_last_performances(exercise_ids) -> Dict[str, LastPerformance]

and, for the persistence side of generation and substitution,

    commit_workout(workout, start_time=None) -> str
    get_workout(workout_id) -> GeneratedWorkout
    splice_exercise(workout_id, old_exercise_id, new_exercise_id)

TrainingRepository implements it over Postgres (history) and Neo4j
(catalog); SnapshotRepository (snapshot.py) implements it in memory.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .cache import ReferenceDataCache
from .domain import (
    CompletedSet,
    EquipmentInstance,
    ExerciseCatalogEntry,
    GeneratedExerciseGroup,
    GeneratedSet,
    GeneratedWorkout,
    LastPerformance,
    MuscleGroup,
    PrecomputedSubstitution,
    VolumeTarget,
)
from .errors import RepositoryError
from .graph import CatalogGraph
from .postgres_client import PostgresTrainingClient

logger = logging.getLogger(__name__)


class TrainingRepository:
    """Postgres history plus Neo4j catalog behind one data-source API."""

    def __init__(
        self,
        postgres: PostgresTrainingClient,
        graph: CatalogGraph,
        cache: Optional[ReferenceDataCache] = None,
    ):
        self.postgres = postgres
        self.graph = graph
        self.cache = cache or ReferenceDataCache()

    @classmethod
    def from_env(cls, cache: Optional[ReferenceDataCache] = None) -> 'TrainingRepository':
        """Build clients from POSTGRES_DSN / NEO4J_* settings."""
        return cls(PostgresTrainingClient(), CatalogGraph(), cache)

    def close(self):
        self.postgres.close()
        self.graph.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # Reference data (cached)

    def get_catalog(self) -> Dict[str, ExerciseCatalogEntry]:
        return self.cache.get_catalog(self.graph.list_catalog)

    def get_substitution_rows(self, primary_exercise_id: str) -> List[PrecomputedSubstitution]:
        return self.graph.get_substitution_rows(primary_exercise_id)

    def set_muscle_split(self, exercise_id: str, muscle_group: MuscleGroup, split_percent: float):
        try:
            self.graph.set_muscle_split(exercise_id, muscle_group, split_percent)
        finally:
            self.cache.invalidate()

    def soft_delete_exercise(self, exercise_id: str):
        try:
            self.graph.soft_delete_exercise(exercise_id)
        finally:
            self.cache.invalidate()

    # History

    def get_completed_sets(self, start: datetime, end: datetime) -> List[CompletedSet]:
        return self.postgres.get_completed_sets(start, end)

    def list_equipment(self) -> List[EquipmentInstance]:
        return self.postgres.list_equipment()

    def get_volume_targets(self) -> List[VolumeTarget]:
        return self.postgres.get_volume_targets()

    def get_last_performances(self, exercise_ids: Sequence[str]) -> Dict[str, LastPerformance]:
        return self.postgres.get_last_performances(exercise_ids)

    # Workout persistence

    def commit_workout(self, workout: GeneratedWorkout, start_time: Optional[datetime] = None) -> str:
        return self.postgres.commit_workout(workout, start_time)

    def get_workout(self, workout_id: str) -> GeneratedWorkout:
        rows = self.postgres.get_workout_rows(workout_id)
        return workout_from_rows(rows, self.get_catalog())

    def splice_exercise(self, workout_id: str, old_exercise_id: str, new_exercise_id: str):
        if new_exercise_id not in self.get_catalog():
            raise RepositoryError("splice_exercise", f"Unknown exercise: {new_exercise_id}")
        self.postgres.splice_exercise(workout_id, old_exercise_id, new_exercise_id)


def workout_from_rows(rows: Dict[str, Any], catalog: Dict[str, ExerciseCatalogEntry]) -> GeneratedWorkout:
    """Rebuild a GeneratedWorkout from workout/exercise/set rows."""
    sets_by_exercise: Dict[str, List[GeneratedSet]] = defaultdict(list)
    for r in rows['sets']:
        sets_by_exercise[r['exercise_id']].append(GeneratedSet(
            set_number=r['set_number'],
            target_reps=r['target_reps'],
            target_weight=float(r['target_weight']),
            is_warmup=r['is_warmup'],
            rest_seconds=r['rest_seconds'],
        ))

    groups = []
    for r in sorted(rows['exercises'], key=lambda r: r['order_index']):
        entry = catalog.get(r['exercise_id'])
        if entry is None:
            raise RepositoryError("get_workout", f"Exercise missing from catalog: {r['exercise_id']}")
        groups.append(GeneratedExerciseGroup(
            exercise=entry.exercise,
            order_index=r['order_index'],
            sets=tuple(sorted(sets_by_exercise[r['exercise_id']], key=lambda s: s.set_number)),
            notes=r.get('notes'),
        ))

    w = rows['workout']
    return GeneratedWorkout(
        name=w['name'],
        rationale=w['rationale'],
        estimated_duration_minutes=float(w['estimated_duration_minutes']),
        exercise_groups=tuple(groups),
        session_notes=w.get('session_notes'),
    )
