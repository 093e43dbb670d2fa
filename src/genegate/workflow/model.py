"""In-memory workflow graph consumed by the condition validator and instantiator.

Jobs are kept in a name-keyed mapping and reference each other by name only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .variants import Variant, parse_variant


class InputType(str, Enum):
    """Declared types of workflow inputs."""
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    ARRAY = "array"


class DependType(str, Enum):
    """How a job waits for its prerequisite."""
    WHOLE = "whole"  # Wait for every command of the target to finish
    ITERATE = "iterate"  # Wait for the matching iteration slice only


@dataclass
class Input:
    """A declared workflow parameter."""
    name: str
    type: InputType = InputType.STRING
    default: Any = None
    description: str = ""


@dataclass
class Depend:
    """Directed edge from a job to one of its prerequisites."""
    target: str
    type: DependType = DependType.WHOLE


@dataclass
class CommandsIter:
    """A command template expanded once per variable tuple."""
    command: str = ""
    vars: List[List[Any]] = field(default_factory=list)
    vars_iter: List[List[Any]] = field(default_factory=list)


@dataclass(frozen=True)
class ResultMatchRequirement:
    """One clause of a conjunctive match against a job's result labels.

    Raw strings are parsed into variants on construction, so callers can pass
    either authored text or already-parsed values.
    """
    key: Variant
    operator: Variant
    values: Tuple[Variant, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "key", parse_variant(self.key))
        object.__setattr__(self, "operator", parse_variant(self.operator))
        object.__setattr__(self, "values", tuple(parse_variant(v) for v in self.values))


@dataclass(frozen=True)
class ConditionInfo:
    """Gate on a job's execution, evaluated against one dependency's result."""
    depend_job_name: str
    result_match: Tuple[ResultMatchRequirement, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "result_match", tuple(self.result_match))


@dataclass
class Job:
    """A node in the workflow graph."""
    name: str
    commands: List[str] = field(default_factory=list)
    commands_iter: Optional[CommandsIter] = None
    depends: List[Depend] = field(default_factory=list)
    condition: Optional[ConditionInfo] = None
    image: Optional[str] = None

    def command_slots(self) -> Tuple[int, int, int]:
        """Lengths of the plain, iterated and iterated-of-iterated command lists."""
        commands_iter = self.commands_iter or CommandsIter()
        return len(self.commands), len(commands_iter.vars), len(commands_iter.vars_iter)


@dataclass
class Workflow:
    """A parsed workflow: declared inputs plus jobs keyed by name."""
    jobs: Dict[str, Job] = field(default_factory=dict)
    inputs: Dict[str, Input] = field(default_factory=dict)
    version: str = ""

    def get_job(self, name: str) -> Optional[Job]:
        return self.jobs.get(name)

    def conditional_jobs(self) -> List[Job]:
        """Jobs carrying a condition, sorted by name."""
        return [self.jobs[name] for name in sorted(self.jobs) if self.jobs[name].condition is not None]
