"""Error types raised or collected while checking workflow conditions."""

from enum import Enum
from typing import List


class GeneGateError(Exception):
    """Base class for all genegate errors."""


class ConditionErrorKind(str, Enum):
    """Disjoint categories of condition validation failures."""
    MISSING_DEPENDENCY = "missing_dependency"
    DEPENDENCY_SHAPE = "dependency_shape"
    VARIANT_USAGE = "variant_usage"
    OPERATOR = "operator"


class ConditionError(GeneGateError):
    """A single validation failure, addressed by its dotted field path."""

    def __init__(self, path: str, kind: ConditionErrorKind, message: str):
        self.path = path
        self.kind = kind
        self.message = message
        super().__init__(f"{path}: {message}")

    def __repr__(self) -> str:
        return f"ConditionError(path={self.path!r}, kind={self.kind.value!r}, message={self.message!r})"


class RequirementError(GeneGateError, ValueError):
    """Raised when a key/operator/values triple cannot form a requirement."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class ConditionInstantiationError(GeneGateError):
    """Raised when a condition cannot be turned into concrete requirements."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")
