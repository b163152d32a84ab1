"""Postgres client for workout history and generated-workout commits.

Executed workouts, equipment and volume targets live in Postgres; the
exercise catalog lives in Neo4j (see graph.py).

Schema: workouts -> workout_exercises -> workout_sets
(see migrations/001_training_load_schema.py).
"""

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extras import RealDictCursor, execute_values
from dotenv import load_dotenv

from .domain import (
    CompletedSet,
    EquipmentInstance,
    GeneratedWorkout,
    LastPerformance,
    MuscleGroup,
    VolumeTarget,
)
from .errors import RepositoryError

load_dotenv()

logger = logging.getLogger(__name__)


class PostgresTrainingClient:
    """Postgres client for workout history operations."""

    def __init__(self, dsn: Optional[str] = None, connection=None):
        """
        Initialize Postgres connection settings.

        Args:
            dsn: Connection string (default: POSTGRES_DSN)
            connection: Existing DB-API connection to reuse
        """
        self.dsn = dsn or os.environ.get(
            "POSTGRES_DSN",
            "postgresql://postgres@localhost:5432/ironload"
        )
        self._conn = connection

    @property
    def conn(self):
        """Lazy connection."""
        if self._conn is None or self._conn.closed:
            try:
                self._conn = psycopg2.connect(self.dsn)
            except psycopg2.Error as e:
                logger.error(f"Could not connect to Postgres: {e}")
                raise RepositoryError("connect", str(e)) from e
        return self._conn

    def close(self):
        """Close connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def _fetch_all(self, operation: str, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params or {})
                rows = cursor.fetchall()
            # Read-only statements still open a transaction
            self.conn.rollback()
            return rows
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error(f"Error in {operation}: {e}")
            raise RepositoryError(operation, str(e)) from e

    # =========================================================================
    # HISTORY READS
    # =========================================================================

    def get_completed_sets(self, start: datetime, end: datetime) -> List[CompletedSet]:
        """
        Completed sets of finished, live workouts started in [start, end].

        Args:
            start: Earliest workout start
            end: Latest workout start

        Returns:
            List of CompletedSet, oldest workout first
        """
        rows = self._fetch_all("get_completed_sets", """
            SELECT
                ws.workout_id, ws.exercise_id, ws.set_number,
                ws.reps, ws.weight, ws.is_warmup, ws.is_completed,
                w.start_time
            FROM workout_sets ws
            JOIN workouts w ON w.workout_id = ws.workout_id
            JOIN workout_exercises we
              ON we.workout_id = ws.workout_id AND we.exercise_id = ws.exercise_id
            WHERE w.start_time >= %(start)s
              AND w.start_time <= %(end)s
              AND w.stop_time IS NOT NULL
              AND w.deleted_at IS NULL
              AND we.deleted_at IS NULL
              AND ws.is_completed
            ORDER BY w.start_time, we.order_index, ws.set_number
        """, {'start': start, 'end': end})

        return [
            CompletedSet(
                workout_id=str(r['workout_id']),
                exercise_id=r['exercise_id'],
                set_number=r['set_number'],
                workout_start_date=r['start_time'],
                reps=r['reps'],
                weight=float(r['weight']) if r['weight'] is not None else None,
                is_warmup=r['is_warmup'],
                is_completed=r['is_completed'],
            )
            for r in rows
        ]

    def get_last_performances(self, exercise_ids: Sequence[str]) -> Dict[str, LastPerformance]:
        """Most recent completed working set per exercise."""
        if not exercise_ids:
            return {}

        rows = self._fetch_all("get_last_performances", """
            SELECT DISTINCT ON (ws.exercise_id)
                ws.exercise_id, ws.reps, ws.weight, w.start_time
            FROM workout_sets ws
            JOIN workouts w ON w.workout_id = ws.workout_id
            WHERE ws.exercise_id = ANY(%(exercise_ids)s)
              AND ws.is_completed
              AND NOT ws.is_warmup
              AND w.deleted_at IS NULL
            ORDER BY ws.exercise_id, w.start_time DESC, ws.set_number DESC
        """, {'exercise_ids': list(exercise_ids)})

        return {
            r['exercise_id']: LastPerformance(
                exercise_id=r['exercise_id'],
                reps=r['reps'],
                weight=float(r['weight']) if r['weight'] is not None else None,
                performed_at=r['start_time'],
            )
            for r in rows
        }

    def list_equipment(self) -> List[EquipmentInstance]:
        rows = self._fetch_all("list_equipment", """
            SELECT id, exercise_type, floor_id, name, capacity, is_available
            FROM equipment_instances
            WHERE deleted_at IS NULL
            ORDER BY floor_id, id
        """)
        return [EquipmentInstance.from_record(r) for r in rows]

    def get_volume_targets(self) -> List[VolumeTarget]:
        rows = self._fetch_all("get_volume_targets", """
            SELECT muscle_group, weekly_target_sets
            FROM volume_targets
            ORDER BY muscle_group
        """)
        return [
            VolumeTarget(MuscleGroup.parse(r['muscle_group']), float(r['weekly_target_sets']))
            for r in rows
        ]

    def get_workout_rows(self, workout_id: str) -> Dict[str, Any]:
        """
        Raw rows of one workout for re-reading a committed plan.

        Returns:
            Dict with 'workout', 'exercises' and 'sets' rows
        """
        params = {'workout_id': workout_id}
        workouts = self._fetch_all("get_workout", """
            SELECT workout_id, name, rationale, estimated_duration_minutes, session_notes, start_time
            FROM workouts
            WHERE workout_id = %(workout_id)s AND deleted_at IS NULL
        """, params)
        if not workouts:
            raise RepositoryError("get_workout", f"Workout not found: {workout_id}")

        exercises = self._fetch_all("get_workout", """
            SELECT exercise_id, order_index, notes
            FROM workout_exercises
            WHERE workout_id = %(workout_id)s AND deleted_at IS NULL
            ORDER BY order_index
        """, params)
        sets = self._fetch_all("get_workout", """
            SELECT exercise_id, set_number, target_reps, target_weight, is_warmup, rest_seconds
            FROM workout_sets
            WHERE workout_id = %(workout_id)s
            ORDER BY exercise_id, set_number
        """, params)

        return {'workout': workouts[0], 'exercises': exercises, 'sets': sets}

    # =========================================================================
    # WRITES
    # =========================================================================

    def commit_workout(self, workout: GeneratedWorkout, start_time: Optional[datetime] = None) -> str:
        """
        Persist a generated workout in one transaction.

        Creates: workouts -> workout_exercises -> workout_sets. Nothing is
        visible unless every row is written.

        Args:
            workout: Generated workout
            start_time: Planned start (default: now)

        Returns:
            New workout id
        """
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)

        try:
            cursor.execute("""
                INSERT INTO workouts (
                    name, start_time, rationale, estimated_duration_minutes, session_notes
                ) VALUES (
                    %(name)s, %(start_time)s, %(rationale)s, %(duration)s, %(session_notes)s
                )
                RETURNING workout_id
            """, {
                'name': workout.name,
                'start_time': start_time or datetime.now(),
                'rationale': workout.rationale,
                'duration': workout.estimated_duration_minutes,
                'session_notes': workout.session_notes,
            })
            workout_id = cursor.fetchone()['workout_id']

            execute_values(cursor, """
                INSERT INTO workout_exercises (workout_id, exercise_id, order_index, notes)
                VALUES %s
            """, [
                (workout_id, g.exercise.id, g.order_index, g.notes)
                for g in workout.exercise_groups
            ])

            set_values = [
                (
                    workout_id, g.exercise.id, s.set_number,
                    s.target_reps, s.target_weight, s.is_warmup, s.rest_seconds,
                    False,  # is_completed
                )
                for g in workout.exercise_groups
                for s in g.sets
            ]
            execute_values(cursor, """
                INSERT INTO workout_sets (
                    workout_id, exercise_id, set_number,
                    target_reps, target_weight, is_warmup, rest_seconds,
                    is_completed
                ) VALUES %s
            """, set_values)

            self.conn.commit()
            logger.info(f"Committed workout {workout_id}: {len(workout.exercise_groups)} exercises, {len(set_values)} sets")
            return str(workout_id)

        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error(f"Error committing workout: {e}")
            raise RepositoryError("commit_workout", str(e)) from e
        finally:
            cursor.close()

    def splice_exercise(self, workout_id: str, old_exercise_id: str, new_exercise_id: str):
        """
        Swap one exercise for another, keeping order and set numbering.

        Set rows follow through the ON UPDATE CASCADE foreign key.

        Args:
            workout_id: Workout to edit
            old_exercise_id: Exercise being replaced
            new_exercise_id: Replacement exercise
        """
        cursor = self.conn.cursor()
        params = {'workout_id': workout_id, 'old': old_exercise_id, 'new': new_exercise_id}

        try:
            cursor.execute("""
                UPDATE workout_exercises SET exercise_id = %(new)s
                WHERE workout_id = %(workout_id)s AND exercise_id = %(old)s AND deleted_at IS NULL
            """, params)
            if cursor.rowcount == 0:
                raise RepositoryError("splice_exercise", f"{old_exercise_id} not in workout {workout_id}")

            self.conn.commit()
            logger.info(f"Workout {workout_id}: spliced {old_exercise_id} -> {new_exercise_id}")

        except RepositoryError:
            self.conn.rollback()
            raise
        except pg_errors.UniqueViolation as e:
            self.conn.rollback()
            raise RepositoryError("splice_exercise", f"{new_exercise_id} already in workout {workout_id}") from e
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error(f"Error splicing exercise: {e}")
            raise RepositoryError("splice_exercise", str(e)) from e
        finally:
            cursor.close()
