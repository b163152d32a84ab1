"""Tests for the ironload CLI against the sample snapshot."""
import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from ironload.cli import cli

SAMPLE = str(Path(__file__).parent.parent / "data" / "sample_snapshot.yaml")


@pytest.fixture
def run():
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli, ['--snapshot', SAMPLE, *args])

    return invoke


class TestReports:

    def test_recovery_json(self, run):
        result = run('recovery', '--as-of', '2026-10-14', '--json')

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data) == 13
        assert data['hamstrings']['recoveryFraction'] < 1
        assert data['calves']['recoveryFraction'] == 1

    def test_recovery_table(self, run):
        result = run('recovery', '--as-of', '2026-10-14')
        assert result.exit_code == 0, result.output
        assert "MUSCLE RECOVERY" in result.output
        assert "hamstrings" in result.output

    def test_volume_json(self, run):
        result = run('volume', '--week', '2026-10-14', '--json')

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['weekStart'] == '2026-10-12T00:00:00'
        assert data['volume']['pecs'] == 0.55
        assert data['targets']['lats'] == 14

    def test_progress(self, run):
        result = run('progress', '--as-of', '2026-10-14T12:00:00')
        assert result.exit_code == 0, result.output
        assert "WEEKLY PROGRESS: week of 2026-10-12" in result.output

    def test_history_json(self, run):
        result = run('history', '--muscle', 'pecs', '--as-of', '2026-10-14', '--json')

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == [
            {'date': '2026-10-08', 'weightedSets': 1.8},
            {'date': '2026-10-13', 'weightedSets': 0.55},
        ]

    def test_history_unknown_muscle(self, run):
        result = run('history', '--muscle', 'chest')
        assert result.exit_code == 1
        assert "Unknown muscle group" in result.output


class TestPlan:

    def test_plan_text(self, run):
        result = run('plan', '--duration', '60', '--as-of', '2026-10-14')

        assert result.exit_code == 0, result.output
        assert "Adaptive Workout - 2026-10-14" in result.output
        assert "MAIN WORKOUT" in result.output

    def test_plan_json_and_commit(self, run):
        result = run('plan', '--duration', '60', '--as-of', '2026-10-14', '--json', '--commit')

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data['exerciseGroups']) >= 3
        assert data['estimatedDurationMinutes'] <= 60
        assert data['workoutId']

    def test_plan_with_unknown_equipment(self, run):
        result = run('plan', '--duration', '45', '--equipment', 'nope')
        assert result.exit_code == 1
        assert "❌ No exercises available with selected equipment" in result.output

    def test_plan_rejects_non_positive_duration(self, run):
        result = run('plan', '--duration', '0')
        assert result.exit_code == 1
        assert "duration must be positive" in result.output


class TestSubstitution:

    def test_alternatives(self, run):
        result = run('alternatives', 'bench-press')

        assert result.exit_code == 0, result.output
        assert result.output.index("Dumbbell Bench Press") < result.output.index("Push-Up")
        assert "Overhead Press" not in result.output

    def test_substitute_with_equipment(self, run):
        result = run('substitute', 'w1', 'bench-press', '--equipment', 'mat-1')
        assert result.exit_code == 0, result.output
        assert "bench-press -> Push-Up (push-up)" in result.output

    def test_substitute_equipment_unavailable(self, run):
        result = run('substitute', 'w1', 'lat-pulldown', '--equipment', 'rack-1')
        assert result.exit_code == 1
        assert "❌ No substitutes available with selected equipment" in result.output

    def test_apply_to_unknown_workout_reports_repository_error(self, run):
        result = run('substitute', 'w1', 'bench-press', '--apply')
        assert result.exit_code == 1
        assert "Workout not found" in result.output
