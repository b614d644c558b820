"""Shot Guide - photography shooting-plan generator with line-sketch previews."""

__version__ = "0.1.0"

from shotguide.core.config import ShotguideConfig, config
from shotguide.core.models import PlanBatch, PlanRecord, UserInput

__all__ = [
    "PlanBatch",
    "PlanRecord",
    "ShotguideConfig",
    "UserInput",
    "config",
]
