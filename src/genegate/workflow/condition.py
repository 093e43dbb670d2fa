"""Validation and instantiation of job conditions.

A condition gates a job on the result labels of exactly one upstream job.
At compile time ``validate_condition`` checks the condition against the
workflow graph; at dispatch time ``instantiate_condition`` resolves deferred
variables and builds the concrete requirements the scheduler evaluates.
"""

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from .errors import (
    ConditionError,
    ConditionErrorKind,
    ConditionInstantiationError,
    RequirementError,
)
from .model import ConditionInfo, DependType, Input, InputType, Workflow
from .requirements import Operator, Requirement, new_requirement
from .variants import Placeholder, resolve_variant, validate_variant

logger = logging.getLogger(__name__)

ALLOWED_OPERATORS = frozenset(Operator.names())
_ALLOWED_OPERATORS_TEXT = "In,NotIn,Exists,DoesNotExist,Gt,Lt"


@dataclass(frozen=True)
class CompiledCondition:
    """Concrete requirements ready to be checked against a job's result."""
    depend_job_name: str
    requirements: Tuple[Requirement, ...]

    def matches(self, result_labels: Mapping[str, str]) -> bool:
        """True when every requirement holds for the dependency's result labels."""
        return all(r.matches(result_labels) for r in self.requirements)

    def __str__(self) -> str:
        return ",".join(str(r) for r in self.requirements)


def validate_condition_dependency(
    prefix: str,
    job_name: str,
    depend_job_name: str,
    workflow: Workflow,
) -> Optional[ConditionError]:
    """Check the graph shape around a condition; returns the first problem found.

    The dependency job must reduce to a single command, and the conditional job
    must have exactly one ``whole`` dependency on it.
    """
    depend_job = workflow.get_job(depend_job_name)
    if depend_job is None:
        return ConditionError(
            prefix,
            ConditionErrorKind.MISSING_DEPENDENCY,
            f"job '{job_name}' depends on missing job '{depend_job_name}'",
        )

    # Any single slot over one command means the dependency fans out
    if any(count > 1 for count in depend_job.command_slots()):
        return ConditionError(
            prefix,
            ConditionErrorKind.DEPENDENCY_SHAPE,
            f"dependency job '{depend_job_name}' has more than one command",
        )

    current_job = workflow.get_job(job_name)
    if current_job is None:
        return ConditionError(
            prefix,
            ConditionErrorKind.MISSING_DEPENDENCY,
            f"job '{job_name}' is missing from the workflow",
        )

    if len(current_job.depends) != 1:
        depends = [(d.target, getattr(d.type, "value", d.type)) for d in current_job.depends]
        return ConditionError(
            prefix,
            ConditionErrorKind.DEPENDENCY_SHAPE,
            f"job '{job_name}' must have exactly one dependency, got {depends}",
        )

    for depend in current_job.depends:
        if depend.target == depend_job_name and depend.type == DependType.WHOLE:
            return None

    return ConditionError(
        prefix,
        ConditionErrorKind.DEPENDENCY_SHAPE,
        f"dependency of job '{job_name}' on '{depend_job_name}' has the wrong type, expected '{DependType.WHOLE.value}'",
    )


def validate_condition(
    job_name: str,
    condition: Optional[ConditionInfo],
    inputs: Mapping[str, Input],
    workflow: Workflow,
) -> List[ConditionError]:
    """Collect every problem with a job's condition.

    Never raises for invalid content; an empty list means the condition is
    accepted.
    """
    errors: List[ConditionError] = []
    if condition is None:
        return errors

    prefix = f"workflow.{job_name}.condition"

    for i, clause in enumerate(condition.result_match):
        clause_prefix = f"{prefix}.resultmatch[{i}]"

        if isinstance(clause.key, Placeholder):
            error = validate_variant(f"{clause_prefix}.key", clause.key, [InputType.STRING], inputs)
            if error is not None:
                errors.append(error)

        if isinstance(clause.operator, Placeholder):
            errors.append(ConditionError(
                f"{clause_prefix}.operator",
                ConditionErrorKind.VARIANT_USAGE,
                "should not be variant",
            ))
        elif clause.operator.value not in ALLOWED_OPERATORS:
            errors.append(ConditionError(
                f"{clause_prefix}.operator",
                ConditionErrorKind.OPERATOR,
                f"should only be {_ALLOWED_OPERATORS_TEXT}, got '{clause.operator.value}'",
            ))

        for j, value in enumerate(clause.values):
            if isinstance(value, Placeholder):
                errors.append(ConditionError(
                    f"{clause_prefix}.value[{j}]",
                    ConditionErrorKind.VARIANT_USAGE,
                    "should not be variant",
                ))

    error = validate_condition_dependency(prefix, job_name, condition.depend_job_name, workflow)
    if error is not None:
        errors.append(error)

    logger.debug(f"Validated condition of job '{job_name}': {len(errors)} error(s)")
    return errors


def validate_workflow_conditions(workflow: Workflow) -> List[ConditionError]:
    """Validate the condition of every conditional job in the workflow."""
    errors: List[ConditionError] = []
    jobs = workflow.conditional_jobs()
    for job in jobs:
        errors.extend(validate_condition(job.name, job.condition, workflow.inputs, workflow))

    if errors:
        logger.warning(f"Found {len(errors)} condition error(s) across {len(jobs)} conditional job(s)")
    else:
        logger.info(f"All {len(jobs)} conditional job(s) passed validation")
    return errors


def instantiate_condition(
    prefix: str,
    condition: Optional[ConditionInfo],
    data: Mapping[str, str],
) -> Optional[CompiledCondition]:
    """Resolve deferred variables and build concrete requirements.

    The condition itself is left untouched, so it can be instantiated again
    with different data. Fails on the first clause that cannot be built; no
    partial result is returned.

    Raises:
        ConditionInstantiationError: If a variable is unbound or a clause is invalid
    """
    if condition is None:
        return None

    requirements: List[Requirement] = []
    for i, clause in enumerate(condition.result_match):
        clause_prefix = f"{prefix}.resultmatch[{i}]"

        try:
            key = resolve_variant(clause.key, data)
        except KeyError as e:
            logger.warning(f"{clause_prefix}.key: no value bound for variant {clause.key}")
            raise ConditionInstantiationError(
                f"{clause_prefix}.key", f"no value bound for variant {clause.key}"
            ) from e

        if isinstance(clause.operator, Placeholder):
            raise ConditionInstantiationError(f"{clause_prefix}.operator", "should not be variant")
        for j, value in enumerate(clause.values):
            if isinstance(value, Placeholder):
                raise ConditionInstantiationError(f"{clause_prefix}.value[{j}]", "should not be variant")

        try:
            requirement = new_requirement(
                key.value, clause.operator.value, [v.value for v in clause.values]
            )
        except RequirementError as e:
            logger.warning(f"{clause_prefix}: cannot build requirement: {e}")
            raise ConditionInstantiationError(clause_prefix, str(e)) from e
        requirements.append(requirement)

    compiled = CompiledCondition(condition.depend_job_name, tuple(requirements))
    logger.debug(f"Instantiated {prefix}: {compiled}")
    return compiled
