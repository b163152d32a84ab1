"""Shared fixtures: a small gym, a couple of logged workouts, a fixed clock."""
import copy
from datetime import datetime

import pytest

from ironload.config import EngineConfig
from ironload.engine import TrainingLoadEngine
from ironload.snapshot import SnapshotRepository

# Wednesday noon; the current week starts Monday 2026-10-12
NOW = datetime(2026, 10, 14, 12, 0)

SNAPSHOT = {
    'exercises': [
        {'id': 'bench', 'name': 'Barbell Bench Press', 'type': 'barbell', 'movement_pattern': 'push',
         'splits': {'pecs': 60, 'triceps': 25, 'delts': 15}},
        {'id': 'db-bench', 'name': 'Dumbbell Bench Press', 'type': 'dumbbells', 'movement_pattern': 'push',
         'splits': {'pecs': 65, 'triceps': 20, 'delts': 15}},
        {'id': 'push-up', 'name': 'Push-Up', 'type': 'bodyweight', 'movement_pattern': 'push',
         'splits': {'pecs': 55, 'triceps': 30, 'delts': 15}},
        {'id': 'squat', 'name': 'Back Squat', 'type': 'barbell', 'movement_pattern': 'squat',
         'splits': {'quads': 60, 'glutes': 30, 'lower_back': 10}},
        {'id': 'pulldown', 'name': 'Lat Pulldown', 'type': 'cable', 'movement_pattern': 'pull',
         'splits': {'lats': 70, 'biceps': 30}},
        {'id': 'row', 'name': 'Seated Cable Row', 'type': 'cable', 'movement_pattern': 'pull',
         'splits': {'lats': 50, 'trapezes': 30, 'biceps': 20}},
        {'id': 'curl', 'name': 'Dumbbell Curl', 'type': 'dumbbells', 'movement_pattern': 'isolation',
         'splits': {'biceps': 100}},
        {'id': 'leg-curl', 'name': 'Lying Leg Curl', 'type': 'machine', 'movement_pattern': 'isolation',
         'splits': {'hamstrings': 100}},
        {'id': 'smith-bench', 'name': 'Smith Machine Bench', 'type': 'machine', 'movement_pattern': 'push',
         'splits': {'pecs': 60, 'triceps': 25, 'delts': 15}, 'deleted': True},
    ],
    'equipment': [
        {'id': 'rack-1', 'exercise_type': 'barbell', 'floor_id': '1'},
        {'id': 'db-1', 'exercise_type': 'dumbbells', 'floor_id': '1'},
        {'id': 'cable-1', 'exercise_type': 'cable', 'floor_id': '2'},
        {'id': 'machine-1', 'exercise_type': 'machine', 'floor_id': '2'},
        {'id': 'mat-1', 'exercise_type': 'bodyweight', 'floor_id': '2'},
        {'id': 'rack-2', 'exercise_type': 'barbell', 'floor_id': '2', 'is_available': False},
    ],
    'volume_targets': {'pecs': 10, 'lats': 10, 'quads': 8, 'biceps': 6},
    'substitutions': [
        {'primary': 'bench', 'substitute': 'db-bench', 'similarity': 0.85, 'overlap': 90},
        {'primary': 'bench', 'substitute': 'db-bench', 'similarity': 0.92, 'overlap': 95},
        {'primary': 'bench', 'substitute': 'push-up', 'similarity': 0.78, 'overlap': 88},
        {'primary': 'bench', 'substitute': 'row', 'similarity': 0.50, 'overlap': 40},
        {'primary': 'bench', 'substitute': 'smith-bench', 'similarity': 0.97, 'overlap': 99},
        {'primary': 'bench', 'substitute': 'bench', 'similarity': 1.0, 'overlap': 100},
        {'primary': 'pulldown', 'substitute': 'row', 'similarity': 0.75, 'overlap': 70},
    ],
    'workouts': [
        {
            'id': 'baseline-week',
            'start': datetime(2026, 9, 21, 18, 0),
            'sets': [
                {'exercise': 'bench', 'set': 1, 'reps': 8, 'weight': 80},
                {'exercise': 'bench', 'set': 2, 'reps': 8, 'weight': 80},
                {'exercise': 'bench', 'set': 3, 'reps': 8, 'weight': 80},
            ],
        },
        {
            'id': 'monday',
            'start': datetime(2026, 10, 12, 18, 0),
            'sets': [
                {'exercise': 'bench', 'set': 1, 'reps': 5, 'weight': 40, 'warmup': True},
                {'exercise': 'bench', 'set': 2, 'reps': 8, 'weight': 80},
                {'exercise': 'bench', 'set': 3, 'reps': 8, 'weight': 80},
                {'exercise': 'bench', 'set': 4, 'reps': 6, 'weight': 85},
                {'exercise': 'squat', 'set': 1, 'reps': 5, 'weight': 100},
                {'exercise': 'squat', 'set': 2, 'reps': 5, 'weight': 100},
                {'exercise': 'pulldown', 'set': 1, 'reps': 10, 'weight': 60, 'completed': False},
            ],
        },
        {
            'id': 'discarded',
            'start': datetime(2026, 10, 13, 18, 0),
            'deleted': True,
            'sets': [
                {'exercise': 'curl', 'set': 1, 'reps': 12, 'weight': 14},
            ],
        },
    ],
}


@pytest.fixture
def snapshot_data():
    return copy.deepcopy(SNAPSHOT)


@pytest.fixture
def repo(snapshot_data):
    return SnapshotRepository.from_dict(snapshot_data)


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def engine(repo, config):
    return TrainingLoadEngine(repo, config)
