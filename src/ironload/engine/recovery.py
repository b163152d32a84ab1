"""
Recovery Estimation

Maps fatigue events to a per-muscle-group recovery fraction.

Each event leaves residual fatigue that decays exponentially with the
group's half-life:

    residual = 2 ** (-elapsed_hours / half_life) * volume_load / baseline

Residuals stack additively; recovery_fraction = clamp(1 - sum, 0, 1).
The baseline is the athlete's mean session load for that group over a
rolling multi-week window that ends where the fatigue window begins, so the
metric is dimensionless and comparable across groups.
"""
from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from ..domain import FatigueEvent, MuscleGroup, MuscleRecovery, RecoveryMap

logger = logging.getLogger(__name__)


def decay_factor(elapsed_hours: float, half_life_hours: float) -> float:
    """Fraction of an event's fatigue still present after ``elapsed_hours``."""
    return math.exp(-math.log(2) * elapsed_hours / half_life_hours)


def compute_baselines(
    baseline_events: Iterable[FatigueEvent],
    default_load: float = 1000.0,
    min_load: float = 100.0,
) -> Dict[MuscleGroup, float]:
    """
    Mean per-session load for each muscle group.

    Args:
        baseline_events: Events from the rolling baseline window
        default_load: Baseline for groups with no history
        min_load: Floor so a light history cannot inflate normalized load

    Returns:
        Baseline load for every muscle group
    """
    totals: Dict[MuscleGroup, float] = defaultdict(float)
    counts: Dict[MuscleGroup, int] = defaultdict(int)
    for event in baseline_events:
        totals[event.muscle_group] += event.volume_load
        counts[event.muscle_group] += 1

    baselines = {}
    for group in MuscleGroup:
        if counts[group]:
            baselines[group] = max(totals[group] / counts[group], min_load)
        else:
            baselines[group] = default_load
    return baselines


def hours_until_recovered(residual_fatigue: float, half_life_hours: float, threshold: float) -> float:
    """Hours until stacked residual fatigue decays to ``1 - threshold``."""
    target = 1 - threshold
    if residual_fatigue <= target:
        return 0.0
    # All residuals for one group share the half-life, so the sum decays as one term
    return half_life_hours * math.log2(residual_fatigue / target)


def estimate_recovery(
    events: Iterable[FatigueEvent],
    as_of: datetime,
    config,
    baselines: Optional[Mapping[MuscleGroup, float]] = None,
) -> RecoveryMap:
    """
    Compute recovery for every muscle group.

    Args:
        events: Fatigue events (any order)
        as_of: Evaluation instant
        config: EngineConfig (half-lives, window, thresholds)
        baselines: Per-group baseline loads (defaults to config default)

    Returns:
        RecoveryMap covering all muscle groups
    """
    by_group: Dict[MuscleGroup, List[FatigueEvent]] = defaultdict(list)
    for event in events:
        by_group[event.muscle_group].append(event)

    recovery: RecoveryMap = {}
    for group in MuscleGroup:
        half_life = config.half_life_for(group)
        baseline = (baselines or {}).get(group, config.default_baseline_load)

        residual = 0.0
        last_date = None
        for event in by_group.get(group, []):
            elapsed = (as_of - event.workout_date).total_seconds() / 3600
            if elapsed < 0 or elapsed > config.recovery_window_hours:
                continue
            residual += decay_factor(elapsed, half_life) * event.volume_load / baseline
            if last_date is None or event.workout_date > last_date:
                last_date = event.workout_date

        fraction = min(1.0, max(0.0, 1.0 - residual))
        hours = hours_until_recovered(residual, half_life, config.full_recovery_threshold)

        recovery[group] = MuscleRecovery(
            muscle_group=group,
            recovery_fraction=fraction,
            estimated_days_to_full=round(hours / 24, 1),
            last_workout_date=last_date,
        )

    return recovery


class RecoveryEstimator:
    """
    Estimates muscle-group readiness from recent training.

    Combines the fatigue aggregator (recent and baseline windows) with the
    decay model above.
    """

    def __init__(self, source, config, aggregator):
        """
        Args:
            source: Persistence collaborator
            config: EngineConfig
            aggregator: FatigueEventAggregator
        """
        self.source = source
        self.config = config
        self.aggregator = aggregator

    def get_baselines(self, as_of: datetime) -> Dict[MuscleGroup, float]:
        """Baselines from the weeks preceding the fatigue window."""
        fatigue_start = as_of - timedelta(days=self.config.fatigue_window_days)
        baseline_start = fatigue_start - timedelta(weeks=self.config.baseline_weeks)

        events = [
            e for e in self.aggregator.get_events_between(baseline_start, fatigue_start)
            if e.workout_date < fatigue_start
        ]
        return compute_baselines(
            events,
            default_load=self.config.default_baseline_load,
            min_load=self.config.min_baseline_load,
        )

    def get_recovery_map(self, as_of: Optional[datetime] = None) -> RecoveryMap:
        """
        Recovery state of every muscle group.

        Args:
            as_of: Evaluation instant (default: now)

        Returns:
            RecoveryMap
        """
        as_of = as_of or datetime.now()
        events = self.aggregator.get_recent_events(as_of)
        baselines = self.get_baselines(as_of)

        recovery = estimate_recovery(events, as_of, self.config, baselines)

        fatigued = [g.value for g, r in recovery.items() if r.recovery_fraction < 1.0]
        logger.info(f"Recovery as of {as_of:%Y-%m-%d %H:%M}: {len(events)} events, fatigued groups: {fatigued}")

        return recovery
