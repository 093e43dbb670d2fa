"""Label-matching requirements evaluated against a job's result labels.

A requirement is one ``key``/``operator``/``values`` clause. Construction
checks label syntax and operator arity so that a built requirement can always
be evaluated.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Mapping, Tuple

from .errors import RequirementError

_NAME_MAX_LENGTH = 63
_PREFIX_MAX_LENGTH = 253

# Label names and values: alphanumeric at both ends, -_. inside
_LABEL_NAME = re.compile(r'[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?')
# DNS-1123 subdomain used as an optional key prefix
_DNS_SUBDOMAIN = re.compile(r'[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*')
# Strict base-10 integers for Gt / Lt
_INTEGER = re.compile(r'-?[0-9]+')


class Operator(str, Enum):
    """Operators accepted in a result match clause."""
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"
    GT = "Gt"
    LT = "Lt"

    @classmethod
    def names(cls) -> List[str]:
        return [op.value for op in cls]


def validate_label_key(key: str) -> List[str]:
    """Return the problems with ``key`` as a qualified label name."""
    problems = []
    name = key
    if "/" in key:
        prefix, _, name = key.partition("/")
        if not prefix:
            problems.append(f"key '{key}': prefix part must be non-empty")
        elif len(prefix) > _PREFIX_MAX_LENGTH:
            problems.append(f"key '{key}': prefix part must be no more than {_PREFIX_MAX_LENGTH} characters")
        elif not _DNS_SUBDOMAIN.fullmatch(prefix):
            problems.append(f"key '{key}': prefix part must be a lowercase DNS-1123 subdomain")
    if not name:
        problems.append(f"key '{key}': name part must be non-empty")
    elif len(name) > _NAME_MAX_LENGTH:
        problems.append(f"key '{key}': name part must be no more than {_NAME_MAX_LENGTH} characters")
    elif not _LABEL_NAME.fullmatch(name):
        problems.append(
            f"key '{key}': name part must consist of alphanumeric characters, '-', '_' or '.', "
            "and must start and end with an alphanumeric character"
        )
    return problems


def validate_label_value(value: str) -> List[str]:
    """Return the problems with ``value`` as a label value (empty is allowed)."""
    if value == "":
        return []
    if len(value) > _NAME_MAX_LENGTH:
        return [f"value '{value}': must be no more than {_NAME_MAX_LENGTH} characters"]
    if not _LABEL_NAME.fullmatch(value):
        return [
            f"value '{value}': must consist of alphanumeric characters, '-', '_' or '.', "
            "and must start and end with an alphanumeric character"
        ]
    return []


def _parse_int(value: str):
    if not _INTEGER.fullmatch(value):
        return None
    return int(value)


@dataclass(frozen=True)
class Requirement:
    """A validated, evaluatable match clause. Build with ``new_requirement``."""
    key: str
    operator: Operator
    values: Tuple[str, ...] = ()

    def matches(self, labels: Mapping[str, str]) -> bool:
        """Evaluate the clause against a set of result labels."""
        has_key = self.key in labels
        if self.operator == Operator.IN:
            return has_key and labels[self.key] in self.values
        if self.operator == Operator.NOT_IN:
            return not has_key or labels[self.key] not in self.values
        if self.operator == Operator.EXISTS:
            return has_key
        if self.operator == Operator.DOES_NOT_EXIST:
            return not has_key

        # Gt / Lt: compare integer label value against the single bound
        if not has_key:
            return False
        actual = _parse_int(str(labels[self.key]))
        if actual is None:
            return False
        bound = int(self.values[0])
        if self.operator == Operator.GT:
            return actual > bound
        return actual < bound

    def __str__(self) -> str:
        if self.operator == Operator.EXISTS:
            return self.key
        if self.operator == Operator.DOES_NOT_EXIST:
            return f"!{self.key}"
        if self.operator == Operator.GT:
            return f"{self.key}>{self.values[0]}"
        if self.operator == Operator.LT:
            return f"{self.key}<{self.values[0]}"
        word = "in" if self.operator == Operator.IN else "notin"
        return f"{self.key} {word} ({','.join(self.values)})"


def new_requirement(key: str, operator: str, values: Iterable[str] = ()) -> Requirement:
    """Build a requirement, checking key syntax, operator arity and values.

    Raises:
        RequirementError: Listing every problem found
    """
    values = [str(v) for v in values]
    problems = validate_label_key(key)

    try:
        op = Operator(operator)
    except ValueError:
        problems.append(f"operator '{operator}' is not recognized, expected one of {Operator.names()}")
        raise RequirementError(problems)

    if op in (Operator.IN, Operator.NOT_IN):
        if not values:
            problems.append(f"for '{op.value}' operator, values set can't be empty")
    elif op in (Operator.EXISTS, Operator.DOES_NOT_EXIST):
        if values:
            problems.append(f"values set must be empty for '{op.value}' operator")
    else:
        if len(values) != 1:
            problems.append(f"for '{op.value}' operator, exactly one value is required")
        for value in values:
            if _parse_int(value) is None:
                problems.append(f"for '{op.value}' operator, the value must be an integer, got '{value}'")

    for value in values:
        problems.extend(validate_label_value(value))

    if problems:
        raise RequirementError(problems)

    return Requirement(key=key, operator=op, values=tuple(sorted(values)))
