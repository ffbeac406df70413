"""Pure scoring and ranking computation."""

from .aggregation import Submission, aggregate_submissions
from .composite import composite_score
from .job_ranking import JobRanking, calculate_job_ranking
from .ranking import assign_rank
from .scoring_config import Criterion, Rank, ScoringConfiguration, default_configuration
from .session import ScoringSession
from .validation_report import BulkTestJob, ValidationReport, generate_validation_report
from .weights import WeightSet, validate_factor_scores, validate_weights

__all__ = [
    "BulkTestJob",
    "Criterion",
    "JobRanking",
    "Rank",
    "ScoringConfiguration",
    "ScoringSession",
    "Submission",
    "ValidationReport",
    "WeightSet",
    "aggregate_submissions",
    "assign_rank",
    "calculate_job_ranking",
    "composite_score",
    "default_configuration",
    "generate_validation_report",
    "validate_factor_scores",
    "validate_weights",
]
