"""Workflow data model and condition handling."""

from .model import (
    CommandsIter,
    ConditionInfo,
    Depend,
    DependType,
    Input,
    InputType,
    Job,
    ResultMatchRequirement,
    Workflow,
)
from .variants import LiteralValue, Placeholder, Variant, is_variant, parse_variant, replace_variants
from .requirements import Operator, Requirement, new_requirement
from .errors import (
    ConditionError,
    ConditionErrorKind,
    ConditionInstantiationError,
    GeneGateError,
    RequirementError,
)
from .condition import (
    CompiledCondition,
    instantiate_condition,
    validate_condition,
    validate_condition_dependency,
    validate_workflow_conditions,
)

__all__ = [
    "CommandsIter",
    "ConditionInfo",
    "Depend",
    "DependType",
    "Input",
    "InputType",
    "Job",
    "ResultMatchRequirement",
    "Workflow",
    "LiteralValue",
    "Placeholder",
    "Variant",
    "is_variant",
    "parse_variant",
    "replace_variants",
    "Operator",
    "Requirement",
    "new_requirement",
    "ConditionError",
    "ConditionErrorKind",
    "ConditionInstantiationError",
    "GeneGateError",
    "RequirementError",
    "CompiledCondition",
    "instantiate_condition",
    "validate_condition",
    "validate_condition_dependency",
    "validate_workflow_conditions",
]
