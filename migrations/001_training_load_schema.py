#!/usr/bin/env python3
"""
Migration: Training load schema

Run with: python migrations/001_training_load_schema.py [--dsn DSN]

This script:
1. Creates workouts, workout_exercises and workout_sets
2. Creates equipment_instances and volume_targets
3. Creates the history lookup indexes
4. Validates every table is queryable
5. Rolls back on any failure
"""

import argparse
import os
import sys

import psycopg2
from dotenv import load_dotenv

load_dotenv()

TABLES = ['workouts', 'workout_exercises', 'workout_sets', 'equipment_instances', 'volume_targets']

SCHEMA = """
CREATE TABLE IF NOT EXISTS workouts (
    workout_id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    start_time TIMESTAMP NOT NULL,
    stop_time TIMESTAMP,
    rationale TEXT,
    estimated_duration_minutes NUMERIC(6, 1),
    session_notes TEXT,
    created_at TIMESTAMP NOT NULL DEFAULT now(),
    deleted_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS workout_exercises (
    workout_id UUID NOT NULL REFERENCES workouts(workout_id),
    exercise_id TEXT NOT NULL,
    order_index INTEGER NOT NULL,
    notes TEXT,
    deleted_at TIMESTAMP,
    PRIMARY KEY (workout_id, exercise_id)
);

CREATE TABLE IF NOT EXISTS workout_sets (
    workout_id UUID NOT NULL,
    exercise_id TEXT NOT NULL,
    set_number INTEGER NOT NULL CHECK (set_number >= 1),
    reps INTEGER,
    weight NUMERIC(7, 2),
    target_reps INTEGER,
    target_weight NUMERIC(7, 2),
    rest_seconds INTEGER,
    is_warmup BOOLEAN NOT NULL DEFAULT false,
    is_completed BOOLEAN NOT NULL DEFAULT false,
    PRIMARY KEY (workout_id, exercise_id, set_number),
    FOREIGN KEY (workout_id, exercise_id)
        REFERENCES workout_exercises(workout_id, exercise_id)
        ON UPDATE CASCADE
);

CREATE TABLE IF NOT EXISTS equipment_instances (
    id TEXT PRIMARY KEY,
    exercise_type TEXT NOT NULL
        CHECK (exercise_type IN ('barbell', 'bodyweight', 'cable', 'dumbbells', 'machine')),
    floor_id TEXT NOT NULL,
    name TEXT,
    capacity INTEGER NOT NULL DEFAULT 1,
    is_available BOOLEAN NOT NULL DEFAULT true,
    deleted_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS volume_targets (
    muscle_group TEXT PRIMARY KEY,
    weekly_target_sets NUMERIC(5, 1) NOT NULL CHECK (weekly_target_sets >= 0)
);

CREATE INDEX IF NOT EXISTS idx_workouts_start_time
    ON workouts (start_time) WHERE deleted_at IS NULL;
CREATE INDEX IF NOT EXISTS idx_workout_sets_exercise
    ON workout_sets (exercise_id);
"""


def main():
    parser = argparse.ArgumentParser(description="Create the training load schema")
    parser.add_argument('--dsn', default=os.environ.get(
        'POSTGRES_DSN', 'postgresql://postgres@localhost:5432/ironload'))
    args = parser.parse_args()

    print("=" * 60)
    print("Migration: training load schema")
    print("=" * 60)

    conn = psycopg2.connect(args.dsn)
    conn.autocommit = False
    cur = conn.cursor()

    try:
        print("\n[1/2] Creating tables and indexes...")
        cur.execute(SCHEMA)

        print("\n[2/2] Validating tables...")
        for table in TABLES:
            cur.execute(f"SELECT count(*) FROM {table}")
            print(f"  ✓ {table}: {cur.fetchone()[0]} rows")

        conn.commit()
        print("\n✅ Migration complete")

    except psycopg2.Error as e:
        conn.rollback()
        print(f"\n❌ Migration failed, rolled back: {e}")
        sys.exit(1)
    finally:
        cur.close()
        conn.close()


if __name__ == '__main__':
    main()
