"""
Weekly Volume Tracking

Weighted weekly set counts per muscle group, compared against prescribed
targets, and combined with recovery into a need score.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..domain import (
    CompletedSet,
    ExerciseCatalogEntry,
    MuscleGroup,
    MuscleGroupProgress,
    WeeklyProgress,
)

logger = logging.getLogger(__name__)


def week_start_for(moment: datetime) -> datetime:
    """Monday 00:00 of the week containing ``moment``."""
    day = moment.date() - timedelta(days=moment.weekday())
    return datetime(day.year, day.month, day.day)


def weighted_set_counts(
    sets: Iterable[CompletedSet],
    catalog: Mapping[str, ExerciseCatalogEntry],
    start: datetime,
    end: datetime,
) -> Dict[MuscleGroup, float]:
    """
    Sum split-weighted working sets per muscle group in ``[start, end)``.

    A set of an exercise splitting 60/40 between two groups counts as 0.6
    and 0.4 sets respectively.
    """
    volume: Dict[MuscleGroup, float] = defaultdict(float)
    for s in sets:
        if not s.counts_as_work:
            continue
        if not (start <= s.workout_start_date < end):
            continue
        entry = catalog.get(s.exercise_id)
        if entry is None:
            continue
        for split in entry.splits:
            volume[split.muscle_group] += split.split_percent / 100
    return dict(volume)


def need_score(deficit: float, recovery_fraction: float) -> float:
    """Deficit weighted towards fresher groups, never zeroed by fatigue."""
    return deficit * (0.5 + 0.5 * recovery_fraction)


class VolumeTracker:
    """
    Tracks weekly training volume against targets.

    Tracks:
    - Weighted sets per muscle group for a week
    - Deficit and need score per muscle group
    - Progress percentage and on-track status
    - Daily history for one muscle group
    """

    def __init__(self, source, config, recovery_estimator):
        """
        Args:
            source: Persistence collaborator
            config: EngineConfig
            recovery_estimator: RecoveryEstimator used for need scores
        """
        self.source = source
        self.config = config
        self.recovery = recovery_estimator

    def get_targets(self) -> Dict[MuscleGroup, float]:
        """Weekly set targets, falling back to configured defaults."""
        targets = self.source.get_volume_targets()
        if not targets:
            return dict(self.config.default_volume_targets)
        return {t.muscle_group: float(t.weekly_target_sets) for t in targets}

    def get_weekly_volume(self, week_start: datetime) -> Dict[MuscleGroup, float]:
        """
        Weighted set count per muscle group for one week.

        Args:
            week_start: First instant of the week

        Returns:
            Dictionary of {muscle_group: weighted_sets}
        """
        week_end = week_start + timedelta(days=7)
        sets = self.source.get_completed_sets(week_start, week_end)
        return weighted_set_counts(sets, self.source.get_catalog(), week_start, week_end)

    def get_volume_needs(self, as_of: Optional[datetime] = None) -> Dict[MuscleGroup, float]:
        """
        Need score per targeted muscle group for the current week.

        Args:
            as_of: Evaluation instant (default: now)

        Returns:
            Dictionary of {muscle_group: need_score}
        """
        as_of = as_of or datetime.now()
        completed = self.get_weekly_volume(week_start_for(as_of))
        recovery = self.recovery.get_recovery_map(as_of)

        needs = {}
        for group, target in self.get_targets().items():
            deficit = max(0.0, target - completed.get(group, 0.0))
            needs[group] = need_score(deficit, recovery[group].recovery_fraction)

        top = sorted(needs.items(), key=lambda kv: kv[1], reverse=True)[:3]
        logger.info(f"Volume needs as of {as_of:%Y-%m-%d}: top {[(g.value, round(n, 2)) for g, n in top]}")
        return needs

    def get_weekly_progress(self, as_of: Optional[datetime] = None) -> WeeklyProgress:
        """
        Progress against weekly targets.

        The athlete is on track when no group's progress falls below the
        configured floor scaled by how much of the week has elapsed.

        Args:
            as_of: Evaluation instant (default: now)

        Returns:
            WeeklyProgress
        """
        as_of = as_of or datetime.now()
        week_start = week_start_for(as_of)
        elapsed_fraction = min(1.0, (as_of - week_start).total_seconds() / timedelta(days=7).total_seconds())
        completed = self.get_weekly_volume(week_start)

        per_group = {}
        for group, target in self.get_targets().items():
            done = completed.get(group, 0.0)
            percentage = done / target * 100 if target > 0 else 100.0
            per_group[group] = MuscleGroupProgress(
                target_sets=target,
                completed_weighted_sets=done,
                progress_percentage=percentage,
            )

        expected = self.config.on_track_floor * elapsed_fraction * 100
        behind = [g for g, p in per_group.items() if p.progress_percentage < expected]
        if behind:
            logger.debug(f"Behind expected {expected:.0f}%: {[g.value for g in behind]}")

        return WeeklyProgress(
            week_start=week_start,
            elapsed_fraction=elapsed_fraction,
            per_group=per_group,
            is_on_track=not behind,
        )

    def get_historical_volume(
        self,
        muscle_group: MuscleGroup,
        start: datetime,
        end: datetime,
    ) -> List[Tuple[date, float]]:
        """
        Daily weighted set counts for one muscle group.

        Args:
            muscle_group: Group to report
            start: First day (inclusive)
            end: Last day (inclusive)

        Returns:
            List of (date, weighted_sets), oldest first; days without
            volume are omitted
        """
        sets = self.source.get_completed_sets(start, end)
        catalog = self.source.get_catalog()

        by_day: Dict[date, float] = defaultdict(float)
        for s in sets:
            if not s.counts_as_work or not (start <= s.workout_start_date <= end):
                continue
            entry = catalog.get(s.exercise_id)
            if entry is None:
                continue
            split = entry.split_for(muscle_group)
            if split:
                by_day[s.workout_start_date.date()] += split / 100

        return sorted(by_day.items())
