"""
Ironload - adaptive training load engine.

Estimates muscle-group recovery, tracks weekly volume against targets,
ranks exercise substitutes and generates time-boxed workouts from the
athlete's history.
"""

from .config import EngineConfig
from .engine import TrainingLoadEngine
from .errors import DomainError, Err, Ok, RepositoryError, ValidationError

__version__ = "0.3.0"

__all__ = [
    'EngineConfig',
    'TrainingLoadEngine',
    'DomainError',
    'Ok',
    'Err',
    'RepositoryError',
    'ValidationError',
]
