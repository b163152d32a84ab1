"""
Training load engine components.

- FatigueEventAggregator: completed sets -> per-muscle load events
- RecoveryEstimator: load events -> recovery fraction per muscle group
- VolumeTracker: weekly weighted sets, need scores, progress
- SubstitutionMatcher: ranked replacements under equipment constraints
- AdaptiveWorkoutGenerator: time- and equipment-bounded workout proposals
- TrainingLoadEngine: facade over all of the above
"""

from .fatigue import FatigueEventAggregator
from .recovery import RecoveryEstimator
from .volume import VolumeTracker
from .substitution import SubstitutionMatcher
from .generator import AdaptiveWorkoutGenerator
from .load_engine import TrainingLoadEngine

__all__ = [
    'FatigueEventAggregator',
    'RecoveryEstimator',
    'VolumeTracker',
    'SubstitutionMatcher',
    'AdaptiveWorkoutGenerator',
    'TrainingLoadEngine',
]
