# Application Stats Package
from .metrics_calculator import compute_retention, compute_stats
from .service import StudyStatsService

__all__ = ["compute_stats", "compute_retention", "StudyStatsService"]
