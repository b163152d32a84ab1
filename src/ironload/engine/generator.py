"""
Adaptive Workout Generator

Builds a workout from outstanding muscle-group need, the equipment on hand
and a time budget.

Selection is greedy: the neediest uncovered muscle group gets the
compatible exercise that loads it hardest, until no remaining exercise block
fits the budget. The result is a proposal only; committing it is the
persistence collaborator's job.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..domain import (
    EquipmentInstance,
    Exercise,
    ExerciseCatalogEntry,
    GeneratedExerciseGroup,
    GeneratedSet,
    GeneratedWorkout,
    LastPerformance,
    MovementPattern,
    MuscleGroup,
    WorkoutRequest,
)
from ..errors import DomainError, Err, Ok, Result, ValidationError

logger = logging.getLogger(__name__)

# Compound patterns lead the session
PATTERN_ORDER = [
    MovementPattern.SQUAT,
    MovementPattern.HINGE,
    MovementPattern.PUSH,
    MovementPattern.PULL,
    MovementPattern.GAIT,
    MovementPattern.ROTATION,
    MovementPattern.CORE,
    MovementPattern.ISOLATION,
]


def rank_muscle_groups(volume_needs: Mapping[MuscleGroup, float]) -> List[MuscleGroup]:
    """Groups with positive need, neediest first (ties in enum order)."""
    order = {g: i for i, g in enumerate(MuscleGroup)}
    needy = [g for g, need in volume_needs.items() if need > 0]
    return sorted(needy, key=lambda g: (-volume_needs[g], order[g]))


def usable_equipment(
    equipment: Sequence[EquipmentInstance],
    preferred_floor: Optional[str] = None,
) -> List[EquipmentInstance]:
    """Available instances, optionally restricted to one floor."""
    usable = [e for e in equipment if e.is_available]
    if preferred_floor is not None:
        usable = [e for e in usable if str(e.floor_id) == str(preferred_floor)]
    return usable


def validate_duration(minutes: float):
    if minutes is None or not math.isfinite(minutes) or minutes <= 0:
        raise ValidationError(f"Target duration must be positive, got {minutes!r}")


def round_to_increment(weight: float, increment: float) -> float:
    if increment <= 0:
        return weight
    return round(round(weight / increment) * increment, 2)


class AdaptiveWorkoutGenerator:
    """
    Generates complete workouts from need scores.

    Integrates:
    - Volume needs (which muscle groups to prioritize)
    - Equipment availability (which exercises are possible)
    - Time budget (how many exercise blocks fit)
    - Recent performance (starting reps and weights)
    """

    def __init__(self, source, config):
        """
        Args:
            source: Persistence collaborator
            config: EngineConfig
        """
        self.source = source
        self.config = config

    # =========================================================================
    # Public API
    # =========================================================================

    def generate_workout(
        self,
        request: WorkoutRequest,
        now: Optional[datetime] = None,
    ) -> Result[GeneratedWorkout]:
        """
        Generate a workout for the request.

        Args:
            request: Equipment, time budget, floor preference and needs
            now: Timestamp used for the workout name (default: now)

        Returns:
            Ok(GeneratedWorkout) or Err(no_available_equipment |
            insufficient_exercises)

        Raises:
            ValidationError: Non-positive duration or negative need score
        """
        self._validate(request)
        now = now or datetime.now()

        equipment = usable_equipment(request.available_equipment, request.preferred_floor)
        if not equipment:
            logger.info("Generation rejected: no usable equipment")
            return Err(DomainError.NO_AVAILABLE_EQUIPMENT)

        available_types = {e.exercise_type for e in equipment}
        compatible = sorted(
            (entry for entry in self.source.get_catalog().values() if entry.exercise.type in available_types),
            key=lambda entry: entry.exercise.id,
        )
        if not compatible:
            logger.info(f"Generation rejected: no exercises for equipment types {sorted(t.value for t in available_types)}")
            return Err(DomainError.NO_AVAILABLE_EQUIPMENT)

        budget_seconds = request.target_duration_minutes * 60
        selected, prioritized = self._select_exercises(compatible, request.volume_needs, budget_seconds)

        if len(selected) < self.config.min_exercises:
            logger.info(
                f"Generation rejected: {len(selected)} exercise(s) fit "
                f"{request.target_duration_minutes} min, need {self.config.min_exercises}"
            )
            return Err(DomainError.INSUFFICIENT_EXERCISES)

        ordered = self._order_exercises(selected)
        performances = self.source.get_last_performances([e.exercise.id for e in ordered])

        groups = []
        for index, entry in enumerate(ordered):
            performance = performances.get(entry.exercise.id)
            groups.append(GeneratedExerciseGroup(
                exercise=entry.exercise,
                order_index=index,
                sets=self.build_sets(entry.exercise, performance),
                notes=self._generate_exercise_notes(entry, index, performance),
            ))

        total_seconds = sum(self.block_seconds(entry.exercise) for entry in ordered)
        floor_switches, floor_path = self._plan_floors(ordered, equipment, request.preferred_floor)

        workout = GeneratedWorkout(
            name=f"Adaptive Workout - {now:%Y-%m-%d}",
            rationale=self._generate_rationale(prioritized, request.volume_needs),
            estimated_duration_minutes=round(total_seconds / 60, 1),
            exercise_groups=tuple(groups),
            session_notes=self._generate_session_notes(floor_path, floor_switches),
            prioritized_muscle_groups=tuple(prioritized),
            alternatives=self._get_alternatives(ordered, compatible),
            floor_switches=floor_switches,
        )

        logger.info(
            f"Generated {len(groups)} exercises, {workout.estimated_duration_minutes} of "
            f"{request.target_duration_minutes} min, priorities {[g.value for g in prioritized]}"
        )
        return Ok(workout)

    def block_seconds(self, exercise: Exercise) -> int:
        """Estimated time for one exercise: per-set overhead plus rest."""
        overhead = self.config.per_set_overhead_seconds
        seconds = self.config.working_sets * (overhead + self.config.rest_for(exercise.type))
        if exercise.type.needs_warmup:
            seconds += overhead + self.config.warmup_rest_seconds
        return seconds

    def build_sets(
        self,
        exercise: Exercise,
        performance: Optional[LastPerformance] = None,
    ) -> Tuple[GeneratedSet, ...]:
        """
        Set scheme for one exercise.

        One reduced warm-up set for free-weight and machine work, then the
        working sets seeded from the last completed working set.
        """
        reps = self.config.default_reps
        weight = self.config.default_weight
        if performance is not None:
            if performance.reps:
                reps = performance.reps
            if performance.weight is not None:
                weight = float(performance.weight)

        sets = []
        if exercise.type.needs_warmup:
            sets.append(GeneratedSet(
                set_number=1,
                target_reps=reps,
                target_weight=round_to_increment(
                    weight * self.config.warmup_weight_fraction, self.config.weight_increment
                ),
                is_warmup=True,
                rest_seconds=self.config.warmup_rest_seconds,
            ))

        rest = self.config.rest_for(exercise.type)
        for _ in range(self.config.working_sets):
            sets.append(GeneratedSet(
                set_number=len(sets) + 1,
                target_reps=reps,
                target_weight=weight,
                is_warmup=False,
                rest_seconds=rest,
            ))

        return tuple(sets)

    # =========================================================================
    # Selection
    # =========================================================================

    def _validate(self, request: WorkoutRequest):
        validate_duration(request.target_duration_minutes)
        for group, need in request.volume_needs.items():
            if not isinstance(group, MuscleGroup):
                raise ValidationError(f"Volume need keyed by non muscle group: {group!r}")
            if need is None or not math.isfinite(need) or need < 0:
                raise ValidationError(f"Need score for {group.value} must be non-negative, got {need!r}")

    def _select_exercises(
        self,
        compatible: Sequence[ExerciseCatalogEntry],
        volume_needs: Mapping[MuscleGroup, float],
        budget_seconds: float,
    ) -> Tuple[List[ExerciseCatalogEntry], List[MuscleGroup]]:
        """
        Greedy selection under the time budget.

        Args:
            compatible: Exercises doable with the available equipment
            volume_needs: Need score per muscle group
            budget_seconds: Time budget

        Returns:
            (selected exercises in selection order, groups prioritized)
        """
        selected: List[ExerciseCatalogEntry] = []
        selected_ids: Set[str] = set()
        covered: Set[MuscleGroup] = set()
        prioritized: List[MuscleGroup] = []
        remaining = budget_seconds

        def fits(entry: ExerciseCatalogEntry) -> bool:
            return entry.exercise.id not in selected_ids and self.block_seconds(entry.exercise) <= remaining

        def take(entry: ExerciseCatalogEntry):
            nonlocal remaining
            selected.append(entry)
            selected_ids.add(entry.exercise.id)
            remaining -= self.block_seconds(entry.exercise)
            covered.update(
                s.muscle_group for s in entry.splits if s.split_percent >= self.config.coverage_split
            )

        # Pass 1: one exercise per needy muscle group
        for group in rank_muscle_groups(volume_needs):
            if group in covered:
                continue
            candidates = [e for e in compatible if fits(e) and e.split_for(group) > 0]
            if not candidates:
                if not any(fits(e) for e in compatible):
                    break
                continue
            choice = min(candidates, key=lambda e: (-e.split_for(group), e.exercise.id))
            take(choice)
            covered.add(group)
            prioritized.append(group)

        # Pass 2: fill the rest of the budget, favouring uncovered need
        while True:
            candidates = [e for e in compatible if fits(e)]
            if not candidates:
                break
            choice = min(candidates, key=lambda e: self._fill_key(e, volume_needs, covered))
            take(choice)

        return selected, prioritized

    def _fill_key(
        self,
        entry: ExerciseCatalogEntry,
        volume_needs: Mapping[MuscleGroup, float],
        covered: Set[MuscleGroup],
    ):
        uncovered = [s for s in entry.splits if s.muscle_group not in covered]
        weighted = sum(s.split_percent * volume_needs.get(s.muscle_group, 0.0) for s in uncovered)
        fresh_split = sum(s.split_percent for s in uncovered)
        return (-weighted, -fresh_split, entry.exercise.id)

    def _order_exercises(self, selected: Sequence[ExerciseCatalogEntry]) -> List[ExerciseCatalogEntry]:
        """Compound patterns first; selection order within a pattern."""
        rank = {p: i for i, p in enumerate(PATTERN_ORDER)}
        return sorted(selected, key=lambda e: rank.get(e.exercise.movement_pattern, len(rank)))

    # =========================================================================
    # Annotations
    # =========================================================================

    def _get_alternatives(
        self,
        ordered: Sequence[ExerciseCatalogEntry],
        compatible: Sequence[ExerciseCatalogEntry],
    ) -> Dict[str, Tuple[Exercise, ...]]:
        """Same-pattern compatible exercises not already in the workout."""
        chosen = {e.exercise.id for e in ordered}
        alternatives = {}
        for entry in ordered:
            same_pattern = [
                c.exercise for c in compatible
                if c.exercise.movement_pattern is entry.exercise.movement_pattern
                and c.exercise.id not in chosen
            ]
            alternatives[entry.exercise.id] = tuple(same_pattern[:self.config.max_alternatives])
        return alternatives

    def _plan_floors(
        self,
        ordered: Sequence[ExerciseCatalogEntry],
        equipment: Sequence[EquipmentInstance],
        preferred_floor: Optional[str],
    ) -> Tuple[int, List[str]]:
        """
        Walk the workout floor by floor, staying put whenever the current
        floor has the equipment type.

        Returns:
            (number of floor switches, floors visited in order)
        """
        floors_by_type: Dict = {}
        for e in sorted(equipment, key=lambda e: (str(e.floor_id), e.id)):
            floors_by_type.setdefault(e.exercise_type, []).append(str(e.floor_id))

        path: List[str] = []
        current = str(preferred_floor) if preferred_floor is not None else None
        switches = 0
        for entry in ordered:
            floors = floors_by_type.get(entry.exercise.type, [])
            if not floors:
                continue
            floor = current if current in floors else floors[0]
            if current is not None and floor != current:
                switches += 1
            if not path or path[-1] != floor:
                path.append(floor)
            current = floor
        return switches, path

    def _generate_exercise_notes(
        self,
        entry: ExerciseCatalogEntry,
        position: int,
        performance: Optional[LastPerformance],
    ) -> str:
        notes = []

        if position == 0:
            notes.append("Main lift - prioritize form and progression")

        targets = sorted(entry.splits, key=lambda s: (-s.split_percent, s.muscle_group.value))
        if targets:
            notes.append("Targets " + ", ".join(f"{s.muscle_group.value} ({s.split_percent:g}%)" for s in targets[:3]))

        if performance is None:
            notes.append("No recent history - start light and log your working weight")
        elif performance.weight is not None:
            notes.append(f"Last session: {performance.reps or self.config.default_reps} x {performance.weight:g}")

        return "; ".join(notes)

    def _generate_rationale(
        self,
        prioritized: Sequence[MuscleGroup],
        volume_needs: Mapping[MuscleGroup, float],
    ) -> str:
        if not prioritized:
            return "No outstanding weekly volume deficits; balanced session across available equipment."
        focus = ", ".join(f"{g.value} (need {volume_needs[g]:.1f})" for g in prioritized)
        return f"Prioritized {focus} based on weekly volume deficit and recovery."

    def _generate_session_notes(self, floor_path: Sequence[str], switches: int) -> Optional[str]:
        if not floor_path:
            return None
        if switches == 0:
            return f"All exercises on floor {floor_path[0]}"
        return f"{switches} floor switch(es): " + " -> ".join(f"floor {f}" for f in floor_path)


def format_plan_text(workout: GeneratedWorkout) -> str:
    """
    Format a generated workout as readable text.

    Args:
        workout: GeneratedWorkout

    Returns:
        Formatted text string
    """
    lines = []

    lines.append("=" * 60)
    lines.append(workout.name)
    lines.append("=" * 60)
    lines.append(f"\n{workout.rationale}")
    lines.append(f"Estimated duration: {workout.estimated_duration_minutes:g} min")
    if workout.session_notes:
        lines.append(f"Floors: {workout.session_notes}")

    lines.append(f"\n{'─' * 60}")
    lines.append("MAIN WORKOUT")
    lines.append('─' * 60)
    for group in workout.exercise_groups:
        ex = group.exercise
        lines.append(f"\n{group.order_index + 1}. {ex.name} [{ex.type.value}, {ex.movement_pattern.value}]")
        for s in group.sets:
            label = "warm-up" if s.is_warmup else "working"
            lines.append(
                f"   Set {s.set_number}: {s.target_reps} x {s.target_weight:g} ({label}, rest {s.rest_seconds}s)"
            )
        if group.notes:
            lines.append(f"   Notes: {group.notes}")
        alts = workout.alternatives.get(ex.id)
        if alts:
            lines.append(f"   Alternatives: {', '.join(a.name for a in alts)}")

    lines.append(f"\n{'=' * 60}")
    return '\n'.join(lines)
