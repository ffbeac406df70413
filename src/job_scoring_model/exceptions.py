"""Custom exceptions for the job scoring model.

Every failure carries enough structure (offending field, expected constraint)
for callers to present a precise message. Nothing in the package substitutes a
default score or rank for invalid input.
"""

from __future__ import annotations


class ScoringModelError(Exception):
    """Base exception for all scoring model errors."""

    pass


# =============================================================================
# Core computation errors
# =============================================================================


class InvalidFactorScoreError(ScoringModelError):
    """Raised when a factor score is missing, non-integer or outside 1-5."""

    def __init__(self, field: str, value: object, constraint: str) -> None:
        self.field = field
        self.value = value
        self.constraint = constraint
        super().__init__(f"Invalid factor score for {field!r}: {value!r} ({constraint}).")


class InvalidWeightSetError(ScoringModelError):
    """Raised when a weight set does not cover the criteria or sum to the total."""

    def __init__(self, field: str, constraint: str) -> None:
        self.field = field
        self.constraint = constraint
        super().__init__(f"Invalid weight set ({field}): {constraint}.")


class EmptyCompositeSetError(ScoringModelError):
    """Raised when aggregating over zero retained submissions."""

    def __init__(self, job_id: str | None = None) -> None:
        self.job_id = job_id
        target = f" for job {job_id!r}" if job_id else ""
        super().__init__(f"Cannot calculate a final score{target}: no composite scores provided.")


class ScoreOutOfDomainError(ScoringModelError):
    """Raised when a score lies outside the 1.0-5.0 domain."""

    def __init__(
        self, field: str, value: float, minimum: float = 1.0, maximum: float = 5.0
    ) -> None:
        self.field = field
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(f"{field} {value} is outside the scoring domain [{minimum}, {maximum}].")


class DuplicateSubmissionError(ScoringModelError):
    """Raised when a rater resubmits for an existing (job, rater, date) key."""

    def __init__(self, job_id: str, rater_id: str, submitted_on: str) -> None:
        self.job_id = job_id
        self.rater_id = rater_id
        self.submitted_on = submitted_on
        super().__init__(
            f"Rater {rater_id!r} already submitted scores for job {job_id!r} on {submitted_on}."
        )


class RankNotFoundError(ScoringModelError):
    """Raised when no configured rank threshold matches a valid score.

    This signals a configuration defect (a gap in rank coverage).
    """

    def __init__(self, score: float, configured: tuple[str, ...]) -> None:
        self.score = score
        self.configured = configured
        names = ", ".join(configured) if configured else "none"
        super().__init__(
            f"No configured rank matches score {score:.2f} (configured ranks: {names}). "
            "Fix the rank thresholds so they cover 1.0-5.0."
        )


# =============================================================================
# Scoring configuration errors
# =============================================================================


class ConfigurationValidationError(ScoringModelError):
    """Raised when a scoring configuration edit violates an invariant."""

    def __init__(self, field: str, constraint: str) -> None:
        self.field = field
        self.constraint = constraint
        super().__init__(f"Invalid scoring configuration ({field}): {constraint}.")


class CriterionNotFoundError(ScoringModelError):
    """Raised when a criterion identity is not configured."""

    def __init__(self, criterion_id: str) -> None:
        self.criterion_id = criterion_id
        super().__init__(f"Criterion {criterion_id!r} is not configured.")


class CriterionNotRemovableError(ScoringModelError):
    """Raised when deleting a built-in criterion."""

    def __init__(self, criterion_id: str) -> None:
        self.criterion_id = criterion_id
        super().__init__(
            f"Criterion {criterion_id!r} is a default criterion and cannot be removed."
        )


class RankNotDefinedError(ScoringModelError):
    """Raised when a rank identity is not configured."""

    def __init__(self, rank_id: str) -> None:
        self.rank_id = rank_id
        super().__init__(f"Rank {rank_id!r} is not configured.")


class ScoringConfigFileNotFoundError(ScoringModelError):
    """Raised when an explicitly requested scoring configuration file is missing."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Scoring configuration file not found: {path}")


class ScoringConfigValidationError(ScoringModelError):
    """Raised when a scoring configuration file fails schema validation."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Scoring configuration file {path} is invalid: {detail}")


class WeightsFileValidationError(ScoringModelError):
    """Raised when a stored weights file fails schema validation."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Weights file {path} is invalid: {detail}")


class BulkSessionValidationError(ScoringModelError):
    """Raised when a stored bulk-test session fails schema validation."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Bulk-test session file {path} is invalid: {detail}")


class BulkTestJobNotFoundError(ScoringModelError):
    """Raised when a bulk-test job identity is not in the session."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Bulk-test job {job_id!r} is not in the current session.")


# =============================================================================
# Batch import errors
# =============================================================================


class BatchImportError(ScoringModelError):
    """Raised when a batch of test jobs cannot be imported."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot import test jobs from {source}: {reason}")


# =============================================================================
# Application configuration errors
# =============================================================================


class ConfigFileNotFoundError(ScoringModelError):
    """Raised when an application config file path does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(ScoringModelError):
    """Raised when an application config file is not valid TOML."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        super().__init__(f"Config file {path} is not valid TOML: {detail}")


class ConfigFileValidationError(ScoringModelError):
    """Raised when an application config file fails schema validation."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        super().__init__(f"Config file {path} is invalid: {detail}")


class PrivilegedRolesError(ScoringModelError):
    """Raised when the privileged role list is empty, duplicated or too long."""

    def __init__(self, roles: tuple[str, ...], maximum: int) -> None:
        self.roles = roles
        super().__init__(
            f"Privileged roles must be 1-{maximum} unique, non-empty names; got {list(roles)}."
        )


class DependencyMissingError(ScoringModelError):
    """Raised when a required dependency was not injected."""

    def __init__(self, dependency: str, *, reason: str = "") -> None:
        suffix = f" {reason}" if reason else ""
        super().__init__(f"{dependency} is required.{suffix}")
