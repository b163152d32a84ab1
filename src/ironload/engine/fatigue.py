"""
Fatigue Event Aggregation

Turns completed working sets into per-(muscle group, workout date) load
events. Volume load for one set is reps x max(weight, 1) x split / 100.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..domain import CompletedSet, ExerciseCatalogEntry, FatigueEvent, MuscleGroup

logger = logging.getLogger(__name__)


def set_volume_load(completed_set: CompletedSet, split_percent: float) -> float:
    """Load one set puts on one muscle group."""
    return completed_set.effective_reps * completed_set.effective_weight * split_percent / 100


def aggregate_fatigue_events(
    sets: Iterable[CompletedSet],
    catalog: Mapping[str, ExerciseCatalogEntry],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[FatigueEvent]:
    """
    Group qualifying sets into fatigue events.

    Args:
        sets: Logged sets; warm-ups and incomplete sets are skipped
        catalog: Exercise id -> catalog entry with splits
        start: Inclusive lower bound on workout start (None = unbounded)
        end: Inclusive upper bound on workout start (None = unbounded)

    Returns:
        One FatigueEvent per (muscle group, workout date), oldest first
    """
    loads: Dict[Tuple[MuscleGroup, datetime], float] = defaultdict(float)

    for s in sets:
        if not s.counts_as_work:
            continue
        if start is not None and s.workout_start_date < start:
            continue
        if end is not None and s.workout_start_date > end:
            continue

        entry = catalog.get(s.exercise_id)
        if entry is None:
            # Soft-deleted or unknown exercise
            continue

        for split in entry.splits:
            loads[(split.muscle_group, s.workout_start_date)] += set_volume_load(s, split.split_percent)

    events = [
        FatigueEvent(muscle_group=group, volume_load=load, workout_date=when)
        for (group, when), load in loads.items()
    ]
    events.sort(key=lambda e: (e.workout_date, e.muscle_group.value))
    return events


class FatigueEventAggregator:
    """Reads recent history from the data source and aggregates load events."""

    def __init__(self, source, config):
        """
        Args:
            source: Persistence collaborator (see ironload.repository)
            config: EngineConfig
        """
        self.source = source
        self.config = config

    def get_recent_events(self, as_of: datetime, window_days: Optional[int] = None) -> List[FatigueEvent]:
        """Fatigue events in the trailing window ending at ``as_of``."""
        window_days = window_days if window_days is not None else self.config.fatigue_window_days
        start = as_of - timedelta(days=window_days)
        return self.get_events_between(start, as_of)

    def get_events_between(self, start: datetime, end: datetime) -> List[FatigueEvent]:
        sets = self.source.get_completed_sets(start, end)
        catalog = self.source.get_catalog()
        events = aggregate_fatigue_events(sets, catalog, start=start, end=end)
        logger.debug(f"Aggregated {len(events)} fatigue events from {len(sets)} sets ({start} - {end})")
        return events
