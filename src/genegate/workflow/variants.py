"""Deferred variable placeholders used inside workflow fields.

A workflow author may write ``${name}`` (or ``$(name)``) where a value is only
known when the job is dispatched. Such strings are parsed once into a
``Placeholder``; every other string becomes a ``LiteralValue``. Resolution
against runtime data always produces a new ``LiteralValue``.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Union

from .errors import ConditionError, ConditionErrorKind

if TYPE_CHECKING:
    from .model import Input

# Whole-string placeholder forms: ${name} and $(name)
_PLACEHOLDER_PATTERNS = [
    re.compile(r'\$\{([^{}\s]+)\}'),
    re.compile(r'\$\(([^(){}\s]+)\)'),
]

# Embedded tokens for free-text substitution
_TOKEN_PATTERN = re.compile(r'\$\{([^{}\s]+)\}|\$\(([^(){}\s]+)\)')


@dataclass(frozen=True)
class LiteralValue:
    """A concrete string value."""
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Placeholder:
    """A deferred variable, resolved from runtime data at dispatch time."""
    name: str

    def __str__(self) -> str:
        return f"${{{self.name}}}"


Variant = Union[LiteralValue, Placeholder]


def variant_name(value: str) -> Optional[str]:
    """Return the variable name if ``value`` is a whole-string placeholder."""
    for pattern in _PLACEHOLDER_PATTERNS:
        match = pattern.fullmatch(value)
        if match:
            return match.group(1)
    return None


def is_variant(value: Union[str, Variant, None]) -> bool:
    """Check whether a raw string or parsed value is a deferred placeholder."""
    if isinstance(value, Placeholder):
        return True
    if isinstance(value, LiteralValue) or value is None:
        return False
    return variant_name(value) is not None


def parse_variant(value: Union[str, Variant, None]) -> Variant:
    """Parse an authored string into a ``LiteralValue`` or ``Placeholder``.

    Already-parsed values pass through unchanged; ``None`` becomes an empty
    literal so that unset fields are reported by the validators instead of
    crashing the parser.
    """
    if isinstance(value, (LiteralValue, Placeholder)):
        return value
    if value is None:
        return LiteralValue("")
    text = str(value)
    name = variant_name(text)
    if name is not None:
        return Placeholder(name)
    return LiteralValue(text)


def replace_variants(text: str, data: Mapping[str, str]) -> str:
    """Substitute every ``${name}``/``$(name)`` token found in ``data``.

    Tokens without a binding are left in place.
    """
    def _sub(match: "re.Match[str]") -> str:
        name = match.group(1) or match.group(2)
        if name in data:
            return str(data[name])
        return match.group(0)

    return _TOKEN_PATTERN.sub(_sub, text)


def resolve_variant(value: Variant, data: Mapping[str, str]) -> LiteralValue:
    """Resolve a value against runtime data.

    Raises:
        KeyError: If a placeholder has no binding in ``data``
    """
    if isinstance(value, LiteralValue):
        return value
    if value.name not in data:
        raise KeyError(value.name)
    return LiteralValue(str(data[value.name]))


def _type_name(value) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def validate_variant(
    prefix: str,
    value: Placeholder,
    allowed_types: Iterable[str],
    inputs: Mapping[str, "Input"],
) -> Optional[ConditionError]:
    """Check that a placeholder refers to a declared input of an allowed type."""
    allowed = [_type_name(t) for t in allowed_types]
    declared = inputs.get(value.name)
    if declared is None:
        return ConditionError(
            prefix,
            ConditionErrorKind.VARIANT_USAGE,
            f"the variant {value} is not defined in inputs",
        )
    if _type_name(declared.type) not in allowed:
        return ConditionError(
            prefix,
            ConditionErrorKind.VARIANT_USAGE,
            f"the type of variant {value} should be one of {allowed}, got '{_type_name(declared.type)}'",
        )
    return None
