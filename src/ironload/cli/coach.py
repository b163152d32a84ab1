#!/usr/bin/env python3
"""
Ironload CLI

Command-line coaching interface for the training load engine.

Usage:
    ironload recovery [--as-of DATE] [--json]
    ironload volume [--week DATE] [--json]
    ironload progress [--as-of DATE] [--json]
    ironload history --muscle GROUP [--weeks WEEKS] [--as-of DATE]
    ironload plan --duration MINUTES [--floor FLOOR] [--equipment ID ...] [--commit]
    ironload alternatives EXERCISE_ID
    ironload substitute WORKOUT_ID EXERCISE_ID [--equipment ID ...] [--apply]

Reads Postgres/Neo4j by default; ``--snapshot FILE`` runs against a YAML
snapshot instead.
"""

import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Optional, Tuple

import click

from ironload.config import EngineConfig
from ironload.domain import MuscleGroup
from ironload.engine import TrainingLoadEngine
from ironload.engine.generator import format_plan_text
from ironload.engine.volume import week_start_for
from ironload.errors import IronloadError
from ironload.repository import TrainingRepository
from ironload.snapshot import SnapshotRepository

logger = logging.getLogger(__name__)

DATE = click.DateTime(formats=['%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M'])


def _fail(message: str):
    click.echo(f"❌ {message}")
    sys.exit(1)


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, default=str))


@contextmanager
def open_engine(ctx: click.Context):
    """Yield (engine, repository) for the configured data source."""
    settings = ctx.obj
    try:
        if settings['snapshot']:
            repo = SnapshotRepository.from_yaml(settings['snapshot'])
        else:
            repo = TrainingRepository.from_env()
    except (IronloadError, ValueError) as e:
        _fail(f"Could not open data source: {e}")

    try:
        yield TrainingLoadEngine(repo, settings['config']), repo
    except IronloadError as e:
        _fail(f"Error: {e}")
    finally:
        if hasattr(repo, 'close'):
            repo.close()


@click.group()
@click.option('--snapshot', type=click.Path(exists=True, dir_okay=False), envvar='IRONLOAD_SNAPSHOT',
              help='YAML snapshot to use instead of the databases')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='Engine config (default: config/ironload.yaml)')
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
@click.pass_context
def cli(ctx, snapshot: Optional[str], config_path: Optional[str], verbose: bool):
    """
    Ironload - adaptive training load engine.

    Recovery, weekly volume and workouts, decided from your history.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    try:
        config = EngineConfig.from_yaml(config_path)
    except (IronloadError, ValueError) as e:
        _fail(f"Invalid config: {e}")
    ctx.obj = {'snapshot': snapshot, 'config': config}


@cli.command()
@click.option('--as-of', type=DATE, help='Evaluation time (default: now)')
@click.option('--json', 'as_json', is_flag=True, help='JSON output')
@click.pass_context
def recovery(ctx, as_of: Optional[datetime], as_json: bool):
    """Show recovery per muscle group."""
    with open_engine(ctx) as (engine, _):
        recovery_map = engine.get_recovery_map(as_of)

    if as_json:
        _echo_json({g.value: r.to_dict() for g, r in recovery_map.items()})
        return

    click.echo("=" * 60)
    click.echo("MUSCLE RECOVERY")
    click.echo("=" * 60)
    click.echo(f"{'Muscle':<12} | {'Category':<8} | {'Recovered':>9} | {'Days to full':>12}")
    click.echo("─" * 60)

    for group, r in sorted(recovery_map.items(), key=lambda kv: kv[1].recovery_fraction):
        color = {'fresh': 'green', 'recovering': 'yellow', 'fatigued': 'red'}[r.status.value]
        click.echo(f"{group.value:<12} | {r.category.value:<8} | ", nl=False)
        click.secho(f"{r.recovery_fraction * 100:>8.0f}%", fg=color, nl=False)
        click.echo(f" | {r.estimated_days_to_full:>12.1f}")

    click.echo("\n" + "=" * 60)


@cli.command()
@click.option('--week', type=DATE, help='Any day in the week (default: this week)')
@click.option('--json', 'as_json', is_flag=True, help='JSON output')
@click.pass_context
def volume(ctx, week: Optional[datetime], as_json: bool):
    """Show weighted sets per muscle group for one week."""
    week_start = week_start_for(week or datetime.now())

    with open_engine(ctx) as (engine, _):
        weekly = engine.get_weekly_volume(week_start)
        targets = engine.volume.get_targets()

    if as_json:
        _echo_json({
            'weekStart': week_start.isoformat(),
            'volume': {g.value: round(v, 2) for g, v in weekly.items()},
            'targets': {g.value: t for g, t in targets.items()},
        })
        return

    click.echo("=" * 60)
    click.echo(f"WEEKLY VOLUME: week of {week_start:%Y-%m-%d}")
    click.echo("=" * 60)
    click.echo(f"{'Muscle':<12} | {'Sets':>6} | {'Target':>6}")
    click.echo("─" * 60)

    for group in sorted(set(weekly) | set(targets), key=lambda g: g.value):
        target = targets.get(group)
        target_str = f"{target:>6.0f}" if target is not None else f"{'-':>6}"
        click.echo(f"{group.value:<12} | {weekly.get(group, 0.0):>6.1f} | {target_str}")

    click.echo("\n" + "=" * 60)


@cli.command()
@click.option('--as-of', type=DATE, help='Evaluation time (default: now)')
@click.option('--json', 'as_json', is_flag=True, help='JSON output')
@click.pass_context
def progress(ctx, as_of: Optional[datetime], as_json: bool):
    """Show progress against weekly targets."""
    with open_engine(ctx) as (engine, _):
        weekly = engine.get_weekly_progress(as_of)
        needs = engine.get_volume_needs(as_of)

    if as_json:
        data = weekly.to_dict()
        data['needs'] = {g.value: round(n, 2) for g, n in needs.items()}
        _echo_json(data)
        return

    click.echo("=" * 60)
    click.echo(f"WEEKLY PROGRESS: week of {weekly.week_start:%Y-%m-%d}")
    click.echo("=" * 60)
    click.echo(f"Week elapsed: {weekly.elapsed_fraction * 100:.0f}%")
    click.echo("Status: ", nl=False)
    if weekly.is_on_track:
        click.secho("✓ ON TRACK", fg='green')
    else:
        click.secho("⚠  BEHIND", fg='yellow')

    click.echo(f"\n{'Muscle':<12} | {'Done':>6} | {'Target':>6} | {'Progress':>8} | {'Need':>5}")
    click.echo("─" * 60)
    for group, p in sorted(weekly.per_group.items(), key=lambda kv: kv[1].progress_percentage):
        click.echo(
            f"{group.value:<12} | {p.completed_weighted_sets:>6.1f} | {p.target_sets:>6.0f} | "
            f"{p.progress_percentage:>7.0f}% | {needs.get(group, 0.0):>5.1f}"
        )

    click.echo("\n" + "=" * 60)


@cli.command()
@click.option('--muscle', required=True, help='Muscle group (e.g. pecs)')
@click.option('--weeks', default=4, help='Number of weeks to show')
@click.option('--as-of', type=DATE, help='Last day shown (default: now)')
@click.option('--json', 'as_json', is_flag=True, help='JSON output')
@click.pass_context
def history(ctx, muscle: str, weeks: int, as_of: Optional[datetime], as_json: bool):
    """Show daily weighted sets for one muscle group."""
    try:
        group = MuscleGroup.parse(muscle)
    except IronloadError as e:
        _fail(str(e))

    end = as_of or datetime.now()
    start = week_start_for(end) - timedelta(weeks=weeks - 1)

    with open_engine(ctx) as (engine, _):
        days = engine.get_historical_volume(group, start, end)

    if as_json:
        _echo_json([{'date': d.isoformat(), 'weightedSets': round(v, 2)} for d, v in days])
        return

    if not days:
        click.echo(f"No {group.value} volume since {start:%Y-%m-%d}")
        return

    click.echo("=" * 60)
    click.echo(f"VOLUME HISTORY: {group.value}")
    click.echo("=" * 60)
    for day, sets in days:
        click.echo(f"{day} | {sets:>5.1f} | {'█' * round(sets)}")
    click.echo(f"\nTotal: {sum(v for _, v in days):.1f} weighted sets")


@cli.command()
@click.option('--duration', required=True, type=float, help='Time budget in minutes')
@click.option('--floor', help='Preferred floor')
@click.option('--equipment', 'equipment_ids', multiple=True, help='Equipment instance id (repeatable, default: all)')
@click.option('--as-of', type=DATE, help='Plan time (default: now)')
@click.option('--json', 'as_json', is_flag=True, help='JSON output')
@click.option('--commit', is_flag=True, help='Save the workout')
@click.pass_context
def plan(ctx, duration: float, floor: Optional[str], equipment_ids: Tuple[str, ...],
         as_of: Optional[datetime], as_json: bool, commit: bool):
    """Generate a workout plan."""
    with open_engine(ctx) as (engine, repo):
        try:
            _, result = engine.plan_workout(duration, equipment_ids or None, floor, as_of)
        except ValueError as e:
            _fail(str(e))

        if result.is_err():
            _fail(result.error.message)

        workout = result.value
        workout_id = repo.commit_workout(workout, as_of) if commit else None

    if as_json:
        data = workout.to_dict()
        if workout_id:
            data['workoutId'] = workout_id
        _echo_json(data)
        return

    click.echo(format_plan_text(workout))
    if workout_id:
        click.echo(f"✓ Saved as workout {workout_id}")


@cli.command()
@click.argument('exercise_id')
@click.option('--json', 'as_json', is_flag=True, help='JSON output')
@click.pass_context
def alternatives(ctx, exercise_id: str, as_json: bool):
    """List ranked substitutes for an exercise."""
    with open_engine(ctx) as (engine, _):
        candidates = engine.find_substitutes(exercise_id)

    if as_json:
        _echo_json([c.to_dict() for c in candidates])
        return

    if not candidates:
        _fail(f"No alternatives found for '{exercise_id}'")

    click.echo("=" * 60)
    click.echo(f"ALTERNATIVES FOR: {exercise_id}")
    click.echo("=" * 60)

    for i, c in enumerate(candidates, 1):
        muscles = ', '.join(f"{s.muscle_group.value} {s.split_percent:.0f}%" for s in c.muscle_group_splits)
        click.echo(f"\n{i}. {c.exercise.name}")
        click.echo(f"   Equipment: {c.exercise.type.value}")
        click.echo(f"   Muscles: {muscles or 'N/A'}")
        click.echo(f"   Similarity: {c.similarity_score:.2f}  Overlap: {c.muscle_overlap_percentage:.0f}%")

    click.echo("\n" + "=" * 60)


@cli.command()
@click.argument('workout_id')
@click.argument('exercise_id')
@click.option('--equipment', 'equipment_ids', multiple=True, help='Equipment instance id (repeatable, default: all)')
@click.option('--apply', is_flag=True, help='Splice the substitute into the workout')
@click.pass_context
def substitute(ctx, workout_id: str, exercise_id: str, equipment_ids: Tuple[str, ...], apply: bool):
    """Replace an exercise in a workout."""
    with open_engine(ctx) as (engine, repo):
        if not equipment_ids:
            equipment_ids = tuple(e.id for e in repo.list_equipment())

        in_workout = ()
        if apply:
            in_workout = [g.exercise.id for g in repo.get_workout(workout_id).exercise_groups]

        result = engine.substitute_exercise(workout_id, exercise_id, equipment_ids, in_workout)
        if result.is_err():
            _fail(result.error.message)

        replacement = result.value
        if apply:
            repo.splice_exercise(workout_id, exercise_id, replacement.id)

    click.echo(f"{exercise_id} -> {replacement.name} ({replacement.id})")
    if apply:
        click.echo(f"✓ Workout {workout_id} updated")


if __name__ == '__main__':
    cli()
