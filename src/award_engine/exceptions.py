"""Error taxonomy for the award calculation engine.

Every error is fatal to the calculation that raised it. Callers catch by
type and read ``code`` and ``context`` for the audit trail:

    AwardEngineError
    +-- ConfigurationError
    |   +-- RateNotFoundError (calculators.rate_resolver)
    |   +-- ClassificationNotFoundError
    +-- BelowAwardFloorError
    +-- ValidationError
"""

from __future__ import annotations

from typing import Any


class AwardEngineError(Exception):
    """Base class for all engine errors."""

    code: str = "AWARD_ENGINE_ERROR"

    def __init__(self, message: str, **context: Any):
        self.context: dict[str, Any] = context
        super().__init__(message)

    def __reduce__(self):
        # Rebuilt from state; subclass constructors take their own arguments
        return _restore_error, (type(self), self.args, self.__dict__)


def _restore_error(cls: type[AwardEngineError], args: tuple, state: dict[str, Any]) -> AwardEngineError:
    error = cls.__new__(cls)
    error.args = args
    error.__dict__.update(state)
    return error


class ConfigurationError(AwardEngineError):
    """Missing, malformed or ambiguous award configuration."""

    code = "CONFIGURATION_ERROR"


class ClassificationNotFoundError(ConfigurationError):
    """Raised when a staff member references an unknown classification."""

    code = "CLASSIFICATION_NOT_FOUND"

    def __init__(self, classification_id: str, award_id: str | None = None):
        self.classification_id = classification_id
        super().__init__(
            f"Classification {classification_id} not found in award {award_id}",
            classification_id=classification_id,
            award_id=award_id,
        )


class BelowAwardFloorError(AwardEngineError):
    """An override would pay less than the award minimum."""

    code = "BELOW_AWARD_FLOOR"

    def __init__(self, override_id: str, value: Any, floor: Any, **context: Any):
        self.override_id = override_id
        self.value = value
        self.floor = floor
        super().__init__(
            f"Override {override_id} value {value} is below award floor {floor}",
            override_id=override_id,
            value=str(value),
            floor=str(floor),
            **context,
        )


class ValidationError(AwardEngineError):
    """Malformed calculation input, rejected at entry."""

    code = "VALIDATION_ERROR"
