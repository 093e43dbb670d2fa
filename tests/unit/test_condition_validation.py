"""Tests for compile-time validation of job conditions."""

import pytest

from genegate.workflow.condition import (
    validate_condition,
    validate_condition_dependency,
    validate_workflow_conditions,
)
from genegate.workflow.errors import ConditionErrorKind
from genegate.workflow.model import (
    CommandsIter,
    ConditionInfo,
    Depend,
    DependType,
    Job,
    ResultMatchRequirement,
    Workflow,
)
from tests.unit.workflow_fixtures import make_workflow


def _condition(*clauses, depend_job_name="align"):
    return ConditionInfo(depend_job_name=depend_job_name, result_match=list(clauses))


def _validate(workflow, inputs=None):
    job = workflow.jobs["report"]
    return validate_condition("report", job.condition, inputs or {}, workflow)


class TestValidConditions:
    def test_single_whole_dependency_is_accepted(self, workflow):
        """One command upstream, one whole dependency, In clause: no errors."""
        assert _validate(workflow) == []

    def test_none_condition_has_no_errors(self, workflow):
        assert validate_condition("report", None, {}, workflow) == []

    def test_all_operators_are_accepted(self):
        """Every allowed operator passes the static check."""
        condition = _condition(
            ResultMatchRequirement(key="a", operator="In", values=["x"]),
            ResultMatchRequirement(key="b", operator="NotIn", values=["x"]),
            ResultMatchRequirement(key="c", operator="Exists"),
            ResultMatchRequirement(key="d", operator="DoesNotExist"),
            ResultMatchRequirement(key="e", operator="Gt", values=["1"]),
            ResultMatchRequirement(key="f", operator="Lt", values=["9"]),
        )
        assert _validate(make_workflow(condition=condition)) == []

    def test_string_input_variant_key_is_accepted(self, string_inputs):
        condition = _condition(ResultMatchRequirement(key="${result-key}", operator="In", values=["done"]))
        workflow = make_workflow(condition=condition)

        assert _validate(workflow, string_inputs) == []

    def test_single_iterated_command_counts_as_one(self):
        """A dependency with one iteration tuple still reduces to one command."""
        workflow = make_workflow(align_commands=[])
        workflow.jobs["align"].commands_iter = CommandsIter(command="echo ${1}", vars=[["a"]])

        assert _validate(workflow) == []


class TestClauseChecks:
    def test_unknown_operator_reports_allowed_set(self):
        """`Equals` yields exactly one error naming the allowed operators."""
        condition = _condition(ResultMatchRequirement(key="status", operator="Equals", values=["done"]))
        errors = _validate(make_workflow(condition=condition))

        assert len(errors) == 1
        assert errors[0].kind == ConditionErrorKind.OPERATOR
        assert errors[0].path == "workflow.report.condition.resultmatch[0].operator"
        assert "In,NotIn,Exists,DoesNotExist,Gt,Lt" in str(errors[0])

    def test_unset_operator_is_rejected(self):
        condition = _condition(ResultMatchRequirement(key="status", operator=None))
        errors = _validate(make_workflow(condition=condition))

        assert [e.kind for e in errors] == [ConditionErrorKind.OPERATOR]

    def test_one_operator_error_per_offending_clause(self):
        condition = _condition(
            ResultMatchRequirement(key="a", operator="in", values=["x"]),
            ResultMatchRequirement(key="b", operator="In", values=["x"]),
            ResultMatchRequirement(key="c", operator="Matches", values=["x"]),
        )
        errors = _validate(make_workflow(condition=condition))

        assert [e.path for e in errors] == [
            "workflow.report.condition.resultmatch[0].operator",
            "workflow.report.condition.resultmatch[2].operator",
        ]

    def test_variant_operator_is_rejected(self):
        condition = _condition(ResultMatchRequirement(key="status", operator="${op}", values=["done"]))
        errors = _validate(make_workflow(condition=condition))

        assert len(errors) == 1
        assert errors[0].kind == ConditionErrorKind.VARIANT_USAGE
        assert errors[0].path == "workflow.report.condition.resultmatch[0].operator"
        assert "should not be variant" in errors[0].message

    def test_each_variant_value_is_reported(self):
        condition = _condition(
            ResultMatchRequirement(key="status", operator="In", values=["${a}", "done", "$(b)"])
        )
        errors = _validate(make_workflow(condition=condition))

        assert [e.path for e in errors] == [
            "workflow.report.condition.resultmatch[0].value[0]",
            "workflow.report.condition.resultmatch[0].value[2]",
        ]
        assert all(e.kind == ConditionErrorKind.VARIANT_USAGE for e in errors)

    def test_variant_key_must_be_declared(self):
        condition = _condition(ResultMatchRequirement(key="${missing}", operator="Exists"))
        errors = _validate(make_workflow(condition=condition))

        assert len(errors) == 1
        assert errors[0].path == "workflow.report.condition.resultmatch[0].key"
        assert "not defined in inputs" in errors[0].message

    def test_variant_key_must_be_string_typed(self, string_inputs):
        condition = _condition(ResultMatchRequirement(key="${threshold}", operator="Exists"))
        errors = _validate(make_workflow(condition=condition), string_inputs)

        assert len(errors) == 1
        assert errors[0].kind == ConditionErrorKind.VARIANT_USAGE
        assert "'number'" in errors[0].message

    def test_errors_accumulate_across_clauses_and_dependency(self):
        """Clause errors and the dependency error are all reported together."""
        condition = _condition(
            ResultMatchRequirement(key="status", operator="Equals", values=["${v}"]),
            depend_job_name="ghost",
        )
        errors = _validate(make_workflow(condition=condition))

        assert [e.kind for e in errors] == [
            ConditionErrorKind.OPERATOR,
            ConditionErrorKind.VARIANT_USAGE,
            ConditionErrorKind.MISSING_DEPENDENCY,
        ]


class TestDependencyShape:
    def test_missing_dependency_job(self):
        condition = _condition(
            ResultMatchRequirement(key="status", operator="In", values=["done"]),
            depend_job_name="ghost",
        )
        errors = _validate(make_workflow(condition=condition))

        assert len(errors) == 1
        assert errors[0].kind == ConditionErrorKind.MISSING_DEPENDENCY
        assert errors[0].path == "workflow.report.condition"
        assert "report" in errors[0].message and "ghost" in errors[0].message

    def test_dependency_with_two_commands(self):
        """Two plain commands upstream: exactly one 'more than one command' error."""
        errors = _validate(make_workflow(align_commands=["step one", "step two"]))

        assert len(errors) == 1
        assert errors[0].kind == ConditionErrorKind.DEPENDENCY_SHAPE
        assert "more than one command" in errors[0].message

    @pytest.mark.parametrize("slot", ["vars", "vars_iter"])
    def test_dependency_with_iterated_commands(self, slot):
        workflow = make_workflow(align_commands=[])
        commands_iter = CommandsIter(command="echo ${1}")
        setattr(commands_iter, slot, [["a"], ["b"]])
        workflow.jobs["align"].commands_iter = commands_iter

        errors = _validate(workflow)

        assert len(errors) == 1
        assert "more than one command" in errors[0].message

    def test_multi_command_reported_regardless_of_clauses(self):
        condition = _condition(ResultMatchRequirement(key="status", operator="Equals"))
        errors = _validate(make_workflow(align_commands=["a", "b"], condition=condition))

        assert any("more than one command" in e.message for e in errors)

    def test_no_depends(self):
        errors = _validate(make_workflow(report_depends=[]))

        assert len(errors) == 1
        assert errors[0].kind == ConditionErrorKind.DEPENDENCY_SHAPE
        assert "exactly one dependency" in errors[0].message

    def test_too_many_depends_lists_them(self):
        depends = [Depend(target="align"), Depend(target="index")]
        errors = _validate(make_workflow(report_depends=depends))

        assert len(errors) == 1
        assert "index" in errors[0].message

    def test_iterate_dependency_has_wrong_type(self):
        errors = _validate(make_workflow(report_depends=[Depend(target="align", type=DependType.ITERATE)]))

        assert len(errors) == 1
        assert errors[0].kind == ConditionErrorKind.DEPENDENCY_SHAPE
        assert "wrong type" in errors[0].message

    def test_depend_on_other_job_has_wrong_type(self):
        workflow = make_workflow(report_depends=[Depend(target="index")])
        workflow.jobs["index"] = Job(name="index", commands=["samtools index"])

        errors = _validate(workflow)

        assert len(errors) == 1
        assert "wrong type" in errors[0].message

    def test_current_job_missing(self, workflow):
        error = validate_condition_dependency("workflow.ghost.condition", "ghost", "align", workflow)

        assert error is not None
        assert error.kind == ConditionErrorKind.MISSING_DEPENDENCY

    def test_dependency_check_returns_none_when_valid(self, workflow):
        assert validate_condition_dependency("workflow.report.condition", "report", "align", workflow) is None


class TestValidateWorkflowConditions:
    def test_only_conditional_jobs_are_checked(self):
        workflow = make_workflow(align_commands=["a", "b"])
        workflow.jobs["plain"] = Job(name="plain", commands=["x", "y"])

        errors = validate_workflow_conditions(workflow)

        assert len(errors) == 1
        assert errors[0].path == "workflow.report.condition"

    def test_uses_workflow_inputs(self, string_inputs):
        condition = _condition(ResultMatchRequirement(key="${result-key}", operator="Exists"))
        workflow = make_workflow(condition=condition, inputs=string_inputs)

        assert validate_workflow_conditions(workflow) == []

    def test_empty_workflow(self):
        assert validate_workflow_conditions(Workflow()) == []
