"""Loading and saving the tuned weight set.

Weights are stored as JSON together with the convention they are written in:

    {"schema_version": 1, "scheme": "percentage",
     "weights": {"client_engagement": 40, "search_difficulty": 20, ...}}

Percentage files are converted to the fractional ``WeightSet`` exactly once,
here; nothing downstream ever sees percentages.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..domain.scoring_config import SCHEMA_VERSION, ScoringConfiguration
from ..domain.weights import (
    WeightScheme,
    WeightSet,
    default_weights,
    reconcile_weights,
    require_weights,
)
from ..exceptions import WeightsFileValidationError
from ..infrastructure.io.validation import format_validation_error
from ..observability import get_logger
from ..protocols import FileSystem


class _WeightsFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    scheme: WeightScheme = "fraction"
    weights: dict[str, float]

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != SCHEMA_VERSION:
            raise ValueError
        return value

    @field_validator("weights")
    @classmethod
    def _validate_keys(cls, value: dict[str, float]) -> dict[str, float]:
        cleaned: dict[str, float] = {}
        for key, weight in value.items():
            key_text = key.strip()
            if not key_text:
                raise ValueError
            cleaned[key_text] = weight
        return cleaned


def load_weights(
    *,
    path: Path,
    fs: FileSystem,
    configuration: ScoringConfiguration,
    validate: bool = True,
) -> WeightSet:
    """Load the stored weights, aligned with the configured criteria.

    Without a weights file the equal default split is returned. Stored weights
    for removed criteria are dropped and new criteria take their default
    weight. With ``validate=False`` the aligned set is returned as is, so a
    caller can repair it by overriding some weights before validating.

    Raises:
        WeightsFileValidationError: If the file does not match the schema.
        InvalidWeightSetError: If validating and the aligned weights do not sum to 1.0.
    """
    logger = get_logger("job_scoring_model.weights")
    if not fs.exists(path):
        logger.info("No stored weights at %s; using the default split", path)
        return default_weights(configuration.criteria)

    try:
        model = _WeightsFileModel.model_validate_json(fs.read_text(path))
    except ValidationError as exc:
        raise WeightsFileValidationError(str(path), format_validation_error(exc)) from exc

    stored = (
        WeightSet.from_percentages(model.weights)
        if model.scheme == "percentage"
        else WeightSet.from_mapping(model.weights)
    )
    aligned = reconcile_weights(stored, configuration.ordered_criteria)
    if not validate:
        return aligned
    return require_weights(aligned, configuration.criteria)


def save_weights(
    weights: WeightSet,
    *,
    path: Path,
    fs: FileSystem,
    configuration: ScoringConfiguration,
    scheme: WeightScheme = "fraction",
) -> None:
    """Validate and store a weight set in the requested convention."""
    require_weights(weights, configuration.criteria)
    values = weights.to_percentages() if scheme == "percentage" else dict(weights.weights)
    ordered = {
        criterion_id: values[criterion_id] for criterion_id in configuration.criterion_ids
    }
    fs.write_json(
        {"schema_version": SCHEMA_VERSION, "scheme": scheme, "weights": ordered},
        path,
    )
    get_logger("job_scoring_model.weights").info("Saved weights to %s", path)
