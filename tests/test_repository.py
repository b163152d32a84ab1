"""Tests for the Postgres + Neo4j composite repository."""
from unittest.mock import MagicMock

import pytest

from ironload.domain import Exercise, ExerciseCatalogEntry, ExerciseType, MovementPattern, MuscleGroup
from ironload.errors import RepositoryError
from ironload.repository import TrainingRepository, workout_from_rows


def _catalog():
    bench = Exercise('bench', 'Bench', ExerciseType.BARBELL, MovementPattern.PUSH)
    return {'bench': ExerciseCatalogEntry(bench)}


@pytest.fixture
def postgres():
    return MagicMock()


@pytest.fixture
def graph():
    g = MagicMock()
    g.list_catalog.return_value = _catalog()
    return g


@pytest.fixture
def repository(postgres, graph):
    return TrainingRepository(postgres, graph)


def test_catalog_read_through_cache(repository, graph):
    repository.get_catalog()
    repository.get_catalog()
    assert graph.list_catalog.call_count == 1


def test_catalog_write_invalidates_even_on_failure(repository, graph):
    repository.get_catalog()
    graph.set_muscle_split.side_effect = RepositoryError("set_muscle_split", "down")

    with pytest.raises(RepositoryError):
        repository.set_muscle_split('bench', MuscleGroup.PECS, 70)

    repository.get_catalog()
    assert graph.list_catalog.call_count == 2


def test_history_reads_go_to_postgres(repository, postgres):
    repository.list_equipment()
    repository.get_volume_targets()
    postgres.list_equipment.assert_called_once()
    postgres.get_volume_targets.assert_called_once()


def test_splice_checks_replacement_exists(repository, postgres):
    with pytest.raises(RepositoryError, match="Unknown exercise"):
        repository.splice_exercise('w1', 'bench', 'ghost')
    postgres.splice_exercise.assert_not_called()


def test_get_workout_rebuilds_plan(repository, postgres):
    postgres.get_workout_rows.return_value = {
        'workout': {'name': 'Adaptive Workout - 2026-10-14', 'rationale': 'r',
                    'estimated_duration_minutes': 13, 'session_notes': None},
        'exercises': [{'exercise_id': 'bench', 'order_index': 0, 'notes': None}],
        'sets': [
            {'exercise_id': 'bench', 'set_number': 2, 'target_reps': 8, 'target_weight': 80,
             'is_warmup': False, 'rest_seconds': 180},
            {'exercise_id': 'bench', 'set_number': 1, 'target_reps': 8, 'target_weight': 40,
             'is_warmup': True, 'rest_seconds': 60},
        ],
    }
    workout = repository.get_workout('w1')

    assert workout.estimated_duration_minutes == 13.0
    assert [s.set_number for s in workout.exercise_groups[0].sets] == [1, 2]


def test_rows_with_deleted_exercise():
    rows = {
        'workout': {'name': 'w', 'rationale': 'r', 'estimated_duration_minutes': 10},
        'exercises': [{'exercise_id': 'gone', 'order_index': 0}],
        'sets': [],
    }
    with pytest.raises(RepositoryError):
        workout_from_rows(rows, _catalog())


def test_context_manager_closes_clients(postgres, graph):
    with TrainingRepository(postgres, graph):
        pass
    postgres.close.assert_called_once()
    graph.close.assert_called_once()
