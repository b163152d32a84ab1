"""Tests for adaptive workout generation."""
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from ironload.config import EngineConfig
from ironload.domain import (
    EquipmentInstance,
    Exercise,
    ExerciseType,
    LastPerformance,
    MovementPattern,
    MuscleGroup,
    WorkoutRequest,
)
from ironload.engine import AdaptiveWorkoutGenerator, TrainingLoadEngine
from ironload.engine.generator import PATTERN_ORDER, format_plan_text, round_to_increment, usable_equipment
from ironload.errors import DomainError, Err, ValidationError
from ironload.snapshot import SnapshotRepository

from conftest import NOW


def _request(repo, minutes, needs=None, equipment_ids=None, floor=None):
    equipment = repo.list_equipment()
    if equipment_ids is not None:
        equipment = [e for e in equipment if e.id in equipment_ids]
    return WorkoutRequest(
        available_equipment=equipment,
        target_duration_minutes=minutes,
        preferred_floor=floor,
        volume_needs=needs or {},
    )


@pytest.fixture
def generator(repo, config):
    return AdaptiveWorkoutGenerator(repo, config)


class TestValidation:

    @pytest.mark.parametrize('minutes', [0, -10])
    def test_duration_must_be_positive(self, generator, repo, minutes):
        with pytest.raises(ValidationError):
            generator.generate_workout(_request(repo, minutes))

    @pytest.mark.parametrize('minutes', [0, -5, float('nan')])
    def test_plan_rejects_duration_before_reading_history(self, minutes):
        source = MagicMock()
        engine = TrainingLoadEngine(source, EngineConfig())

        with pytest.raises(ValidationError):
            engine.plan_workout(minutes, as_of=NOW)
        source.get_completed_sets.assert_not_called()
        source.list_equipment.assert_not_called()

    def test_need_scores_must_be_non_negative(self, generator, repo):
        with pytest.raises(ValidationError):
            generator.generate_workout(_request(repo, 45, needs={MuscleGroup.PECS: -1.0}))


class TestDomainErrors:

    def test_no_equipment(self, generator):
        result = generator.generate_workout(WorkoutRequest([], 45))
        assert result == Err(DomainError.NO_AVAILABLE_EQUIPMENT)
        assert result.error.message == "No exercises available with selected equipment"

    def test_only_busy_equipment(self, generator, repo):
        result = generator.generate_workout(_request(repo, 45, equipment_ids={'rack-2'}))
        assert result == Err(DomainError.NO_AVAILABLE_EQUIPMENT)

    def test_preferred_floor_without_equipment(self, generator, repo):
        result = generator.generate_workout(_request(repo, 45, floor='9'))
        assert result == Err(DomainError.NO_AVAILABLE_EQUIPMENT)

    def test_single_compatible_exercise(self):
        repo = SnapshotRepository.from_dict({
            'exercises': [{'id': 'bench', 'name': 'Bench Press', 'type': 'barbell',
                           'movement_pattern': 'push', 'splits': {'pecs': 100}}],
            'equipment': [{'id': 'rack-1', 'exercise_type': 'barbell', 'floor_id': '1'}],
        })
        generator = AdaptiveWorkoutGenerator(repo, EngineConfig())

        result = generator.generate_workout(_request(repo, 45, needs={MuscleGroup.PECS: 5.0}))
        assert result == Err(DomainError.INSUFFICIENT_EXERCISES)
        assert result.error.message == "Not enough exercises found to create a complete workout"

    def test_budget_too_small_for_three_blocks(self, generator, repo):
        needs = {MuscleGroup.PECS: 6.0, MuscleGroup.BICEPS: 6.0}
        result = generator.generate_workout(_request(repo, 20, needs=needs, equipment_ids={'db-1', 'mat-1'}))
        assert result == Err(DomainError.INSUFFICIENT_EXERCISES)


class TestGeneratedWorkout:

    def test_respects_selected_equipment(self, engine):
        _, result = engine.plan_workout(60, ['db-1', 'mat-1'], as_of=NOW)

        assert result.is_ok()
        types = {g.exercise.type for g in result.value.exercise_groups}
        assert types <= {ExerciseType.DUMBBELLS, ExerciseType.BODYWEIGHT}
        assert len(result.value.exercise_groups) == 3

    @pytest.mark.parametrize('minutes', [30, 45, 60, 90])
    def test_stays_within_duration(self, engine, minutes):
        _, result = engine.plan_workout(minutes, as_of=NOW)

        workout = result.value
        assert workout.estimated_duration_minutes <= minutes
        seconds = sum(engine.generator.block_seconds(g.exercise) for g in workout.exercise_groups)
        assert seconds <= minutes * 60
        assert len(workout.exercise_groups) >= 3

    @pytest.mark.parametrize('minutes', [35, 50, 70, 100, 150, 200])
    def test_fills_budget_to_within_one_block(self, engine, minutes):
        _, result = engine.plan_workout(minutes, as_of=NOW)
        workout = result.value

        available_types = {e.exercise_type for e in usable_equipment(engine.source.list_equipment())}
        chosen = {g.exercise.id for g in workout.exercise_groups}
        left_out = [
            entry.exercise for entry in engine.source.get_catalog().values()
            if entry.exercise.type in available_types and entry.exercise.id not in chosen
        ]
        used = sum(engine.generator.block_seconds(g.exercise) for g in workout.exercise_groups)

        if left_out:
            assert minutes * 60 - used < min(engine.generator.block_seconds(e) for e in left_out)

    def test_compound_patterns_first(self, engine):
        _, result = engine.plan_workout(90, as_of=NOW)

        ranks = [PATTERN_ORDER.index(g.exercise.movement_pattern) for g in result.value.exercise_groups]
        assert ranks == sorted(ranks)
        assert [g.order_index for g in result.value.exercise_groups] == list(range(len(ranks)))

    def test_neediest_groups_are_prioritized(self, generator, repo):
        needs = {MuscleGroup.PECS: 8.0, MuscleGroup.LATS: 6.0}
        workout = generator.generate_workout(_request(repo, 60, needs=needs), now=NOW).value

        assert workout.prioritized_muscle_groups == (MuscleGroup.PECS, MuscleGroup.LATS)
        assert workout.rationale.startswith("Prioritized pecs (need 8.0), lats (need 6.0)")
        ids = {g.exercise.id for g in workout.exercise_groups}
        # Highest pecs split among compatible exercises, highest lats split
        assert {'db-bench', 'pulldown'} <= ids

    def test_no_needs_gives_balanced_rationale(self, generator, repo):
        workout = generator.generate_workout(_request(repo, 60), now=NOW).value
        assert workout.prioritized_muscle_groups == ()
        assert workout.rationale.startswith("No outstanding weekly volume deficits")

    def test_name_uses_date(self, generator, repo):
        workout = generator.generate_workout(_request(repo, 60), now=NOW).value
        assert workout.name == "Adaptive Workout - 2026-10-14"

    def test_single_floor_session(self, generator, repo):
        workout = generator.generate_workout(_request(repo, 60, floor='1'), now=NOW).value

        assert workout.floor_switches == 0
        assert workout.session_notes == "All exercises on floor 1"
        assert all(g.exercise.type in (ExerciseType.BARBELL, ExerciseType.DUMBBELLS)
                   for g in workout.exercise_groups)

    def test_floor_switches_are_counted(self, generator, repo):
        needs = {MuscleGroup.PECS: 8.0, MuscleGroup.LATS: 6.0}
        workout = generator.generate_workout(_request(repo, 60, needs=needs), now=NOW).value

        assert workout.floor_switches >= 1
        assert "floor switch(es)" in workout.session_notes

    def test_alternatives_share_movement_pattern(self, generator, repo):
        workout = generator.generate_workout(_request(repo, 60), now=NOW).value
        chosen = {g.exercise.id for g in workout.exercise_groups}

        for group in workout.exercise_groups:
            alts = workout.alternatives[group.exercise.id]
            assert len(alts) <= 3
            for alt in alts:
                assert alt.movement_pattern is group.exercise.movement_pattern
                assert alt.id not in chosen

    def test_generation_is_deterministic(self, engine):
        _, first = engine.plan_workout(60, as_of=NOW)
        _, second = engine.plan_workout(60, as_of=NOW)
        assert first.value.to_dict() == second.value.to_dict()

    def test_plan_text(self, engine):
        _, result = engine.plan_workout(60, as_of=NOW)
        text = format_plan_text(result.value)

        assert "Adaptive Workout - 2026-10-14" in text
        assert "MAIN WORKOUT" in text
        for group in result.value.exercise_groups:
            assert group.exercise.name in text


class TestBuildSets:

    def test_barbell_gets_warmup_and_last_performance(self, generator):
        bench = Exercise('bench', 'Bench', ExerciseType.BARBELL, MovementPattern.PUSH)
        sets = generator.build_sets(bench, LastPerformance('bench', 6, 85.0, NOW))

        assert [s.set_number for s in sets] == [1, 2, 3, 4]
        warmup, *working = sets
        assert warmup.is_warmup
        assert warmup.target_weight == 42.5
        assert warmup.rest_seconds == 60
        assert all(not s.is_warmup for s in working)
        assert {(s.target_reps, s.target_weight, s.rest_seconds) for s in working} == {(6, 85.0, 180)}

    def test_bodyweight_skips_warmup(self, generator):
        push_up = Exercise('push-up', 'Push-Up', ExerciseType.BODYWEIGHT, MovementPattern.PUSH)
        sets = generator.build_sets(push_up)

        assert len(sets) == 3
        assert not any(s.is_warmup for s in sets)
        assert {(s.target_reps, s.target_weight, s.rest_seconds) for s in sets} == {(10, 0.0, 60)}

    def test_block_seconds(self, generator):
        barbell = Exercise('bench', 'Bench', ExerciseType.BARBELL, MovementPattern.PUSH)
        cable = Exercise('row', 'Row', ExerciseType.CABLE, MovementPattern.PULL)
        bodyweight = Exercise('dip', 'Dip', ExerciseType.BODYWEIGHT, MovementPattern.PUSH)

        assert generator.block_seconds(barbell) == 3 * (45 + 180) + 45 + 60
        assert generator.block_seconds(cable) == 3 * (45 + 90) + 45 + 60
        assert generator.block_seconds(bodyweight) == 3 * (45 + 60)

    def test_seeded_from_repository_history(self, engine):
        _, result = engine.plan_workout(90, ['rack-1'], as_of=NOW)
        # Only two barbell exercises exist, not enough for a workout
        assert result == Err(DomainError.INSUFFICIENT_EXERCISES)

        workout = engine.generate_workout(
            WorkoutRequest(engine.source.list_equipment(), 120, volume_needs={MuscleGroup.PECS: 5.0}),
            now=NOW,
        ).value
        bench = next((g for g in workout.exercise_groups if g.exercise.id == 'bench'), None)
        assert bench is not None
        working = [s for s in bench.sets if not s.is_warmup]
        assert {(s.target_reps, s.target_weight) for s in working} == {(6, 85.0)}


def test_round_to_increment():
    assert round_to_increment(41.0, 2.5) == 40.0
    assert round_to_increment(42.0, 2.5) == 42.5
    assert round_to_increment(17.3, 0) == 17.3
