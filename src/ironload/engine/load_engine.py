"""
Training Load Engine

Facade over the fatigue, recovery, volume, substitution and generation
components. Every call reads a fresh snapshot from the data source; nothing
here holds per-request state, so one engine can serve concurrent callers.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import EngineConfig
from ..domain import (
    Exercise,
    GeneratedWorkout,
    MuscleGroup,
    RecoveryMap,
    SubstitutionCandidate,
    WeeklyProgress,
    WorkoutRequest,
)
from ..errors import Result
from .fatigue import FatigueEventAggregator
from .generator import AdaptiveWorkoutGenerator, validate_duration
from .recovery import RecoveryEstimator
from .substitution import SubstitutionMatcher
from .volume import VolumeTracker

logger = logging.getLogger(__name__)


class TrainingLoadEngine:
    """
    Turns exercise history into recovery, volume and workout proposals.

    Integrates:
    - Fatigue aggregation and recovery estimation
    - Weekly volume tracking and need scores
    - Substitution matching
    - Adaptive workout generation
    """

    def __init__(self, source, config: Optional[EngineConfig] = None):
        """
        Initialize the engine.

        Args:
            source: Persistence collaborator (TrainingRepository or
                SnapshotRepository)
            config: EngineConfig (default: built-in defaults)
        """
        self.source = source
        self.config = config or EngineConfig()
        self.fatigue = FatigueEventAggregator(source, self.config)
        self.recovery = RecoveryEstimator(source, self.config, self.fatigue)
        self.volume = VolumeTracker(source, self.config, self.recovery)
        self.substitution = SubstitutionMatcher(source, self.config)
        self.generator = AdaptiveWorkoutGenerator(source, self.config)

    def get_recovery_map(self, as_of: Optional[datetime] = None) -> RecoveryMap:
        return self.recovery.get_recovery_map(as_of)

    def get_weekly_volume(self, week_start: datetime) -> Dict[MuscleGroup, float]:
        return self.volume.get_weekly_volume(week_start)

    def get_volume_needs(self, as_of: Optional[datetime] = None) -> Dict[MuscleGroup, float]:
        return self.volume.get_volume_needs(as_of)

    def get_weekly_progress(self, as_of: Optional[datetime] = None) -> WeeklyProgress:
        return self.volume.get_weekly_progress(as_of)

    def get_historical_volume(self, muscle_group: MuscleGroup, start: datetime, end: datetime):
        return self.volume.get_historical_volume(muscle_group, start, end)

    def find_substitutes(self, exercise_id: str) -> List[SubstitutionCandidate]:
        return self.substitution.find_substitutes(exercise_id)

    def substitute_exercise(
        self,
        workout_id: str,
        exercise_id: str,
        equipment_ids: Sequence[str],
        exclude_exercise_ids: Sequence[str] = (),
    ) -> Result[Exercise]:
        return self.substitution.substitute_exercise(workout_id, exercise_id, equipment_ids, exclude_exercise_ids)

    def generate_workout(self, request: WorkoutRequest, now: Optional[datetime] = None) -> Result[GeneratedWorkout]:
        return self.generator.generate_workout(request, now=now)

    def build_request(
        self,
        target_duration_minutes: float,
        selected_equipment_ids: Optional[Sequence[str]] = None,
        preferred_floor: Optional[str] = None,
        as_of: Optional[datetime] = None,
    ) -> WorkoutRequest:
        """
        Assemble a generation request from the data source.

        Args:
            target_duration_minutes: Time budget
            selected_equipment_ids: Restrict to these instances (None = all)
            preferred_floor: Optional floor filter
            as_of: Instant for need scores (default: now)

        Returns:
            WorkoutRequest with current volume needs

        Raises:
            ValidationError: Non-positive duration, before any history is read
        """
        validate_duration(target_duration_minutes)

        equipment = self.source.list_equipment()
        if selected_equipment_ids is not None:
            wanted = set(selected_equipment_ids)
            equipment = [e for e in equipment if e.id in wanted]

        return WorkoutRequest(
            available_equipment=equipment,
            target_duration_minutes=target_duration_minutes,
            preferred_floor=preferred_floor,
            volume_needs=self.get_volume_needs(as_of),
        )

    def plan_workout(
        self,
        target_duration_minutes: float,
        selected_equipment_ids: Optional[Sequence[str]] = None,
        preferred_floor: Optional[str] = None,
        as_of: Optional[datetime] = None,
    ) -> Tuple[WorkoutRequest, Result[GeneratedWorkout]]:
        """Build a request from current state and generate against it."""
        request = self.build_request(target_duration_minutes, selected_equipment_ids, preferred_floor, as_of)
        return request, self.generate_workout(request, now=as_of)
