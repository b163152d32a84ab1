"""
Exercise Substitution Matching

Ranks precomputed similarity rows for an exercise and picks a replacement
the athlete can actually perform with the equipment at hand.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Sequence

from ..domain import (
    EquipmentInstance,
    Exercise,
    ExerciseCatalogEntry,
    PrecomputedSubstitution,
    SubstitutionCandidate,
)
from ..errors import DomainError, Err, Ok, Result

logger = logging.getLogger(__name__)


def rank_candidates(
    rows: Iterable[PrecomputedSubstitution],
    catalog: Mapping[str, ExerciseCatalogEntry],
    min_similarity: float = 0.70,
    min_overlap: float = 80.0,
) -> List[SubstitutionCandidate]:
    """
    Filter and order substitution rows.

    Args:
        rows: Precomputed rows for one primary exercise
        catalog: Live (not soft-deleted) exercises with splits
        min_similarity: Minimum similarity score
        min_overlap: Minimum muscle overlap percentage

    Returns:
        One candidate per substitute exercise, best match first
        (ties broken by lowest exercise id)
    """
    best: Dict[str, SubstitutionCandidate] = {}

    for row in rows:
        if row.similarity_score < min_similarity or row.muscle_overlap_percentage < min_overlap:
            continue
        if row.substitute_exercise_id == row.primary_exercise_id:
            continue
        entry = catalog.get(row.substitute_exercise_id)
        if entry is None:
            continue

        existing = best.get(entry.exercise.id)
        if existing is not None and existing.similarity_score >= row.similarity_score:
            continue

        best[entry.exercise.id] = SubstitutionCandidate(
            exercise=entry.exercise,
            muscle_group_splits=tuple(entry.splits),
            similarity_score=row.similarity_score,
            muscle_overlap_percentage=row.muscle_overlap_percentage,
        )

    return sorted(best.values(), key=lambda c: (-c.similarity_score, c.exercise.id))


def filter_by_equipment(
    candidates: Sequence[SubstitutionCandidate],
    equipment: Iterable[EquipmentInstance],
) -> List[SubstitutionCandidate]:
    """Keep candidates whose exercise type is among available equipment."""
    available_types = {e.exercise_type for e in equipment if e.is_available}
    return [c for c in candidates if c.exercise.type in available_types]


class SubstitutionMatcher:
    """
    Suggests replacement exercises.

    Selection criteria:
    - Precomputed similarity and muscle overlap above thresholds
    - Exercise not soft-deleted
    - Equipment type among the athlete's selection
    """

    def __init__(self, source, config):
        """
        Args:
            source: Persistence collaborator
            config: EngineConfig
        """
        self.source = source
        self.config = config

    def find_substitutes(self, primary_exercise_id: str) -> List[SubstitutionCandidate]:
        """
        Ranked substitutes for an exercise.

        Args:
            primary_exercise_id: Exercise to replace

        Returns:
            List of SubstitutionCandidate, best match first
        """
        rows = self.source.get_substitution_rows(primary_exercise_id)
        candidates = rank_candidates(
            rows,
            self.source.get_catalog(),
            min_similarity=self.config.min_similarity_score,
            min_overlap=self.config.min_muscle_overlap,
        )
        logger.debug(f"{len(candidates)}/{len(rows)} substitution rows for {primary_exercise_id} pass thresholds")
        return candidates

    def substitute_exercise(
        self,
        workout_id: str,
        exercise_id: str,
        selected_equipment_ids: Sequence[str],
        exclude_exercise_ids: Sequence[str] = (),
    ) -> Result[Exercise]:
        """
        Pick the replacement for one exercise in a workout.

        The caller splices the returned exercise into the workout, keeping
        set numbering and order.

        Args:
            workout_id: Workout containing the exercise
            exercise_id: Exercise to replace
            selected_equipment_ids: Equipment instances the athlete selected
            exclude_exercise_ids: Exercises already in the workout

        Returns:
            Ok(Exercise) or Err(no_suitable_substitutes | equipment_unavailable)
        """
        excluded = set(exclude_exercise_ids)
        candidates = [c for c in self.find_substitutes(exercise_id) if c.exercise.id not in excluded]
        if not candidates:
            logger.info(f"No substitutes for {exercise_id} in workout {workout_id}")
            return Err(DomainError.NO_SUITABLE_SUBSTITUTES)

        selected = set(selected_equipment_ids)
        equipment = [e for e in self.source.list_equipment() if e.id in selected]
        usable = filter_by_equipment(candidates, equipment)

        if not usable:
            logger.info(
                f"{len(candidates)} substitutes for {exercise_id} but none match equipment {sorted(selected)}"
            )
            return Err(DomainError.EQUIPMENT_UNAVAILABLE)

        choice = usable[0]
        logger.info(
            f"Workout {workout_id}: replacing {exercise_id} with {choice.exercise.id} "
            f"(similarity {choice.similarity_score:.2f})"
        )
        return Ok(choice.exercise)
