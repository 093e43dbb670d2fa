"""Settings and workflow file loading."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..workflow.errors import GeneGateError
from ..workflow.model import (
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

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class WorkflowLoadError(GeneGateError):
    """Raised when a workflow file cannot be read or parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load workflow {path}: {reason}")


class InputDefinition(BaseModel):
    """Declared workflow input."""
    type: InputType = InputType.STRING
    default: Any = None
    description: str = ""


class ResultMatchDefinition(BaseModel):
    """One key/operator/values clause as authored."""
    key: str
    operator: Optional[str] = None  # Unset operators are reported by condition validation
    values: List[str] = Field(default_factory=list)

    @field_validator('values', mode='before')
    @classmethod
    def coerce_values(cls, v: Any) -> List[str]:
        """YAML turns `values: [3]` into ints; labels are always strings."""
        if v is None:
            return []
        if not isinstance(v, list):
            v = [v]
        return [str(item) for item in v]


class ConditionDefinition(BaseModel):
    """Condition block of a job."""
    depend_job: str
    result_match: List[ResultMatchDefinition] = Field(default_factory=list)


class CommandsIterDefinition(BaseModel):
    command: str = ""
    vars: List[List[Any]] = Field(default_factory=list)
    vars_iter: List[List[Any]] = Field(default_factory=list)


class DependDefinition(BaseModel):
    target: str
    type: DependType = DependType.WHOLE


class JobDefinition(BaseModel):
    """Job as written in the workflow file.

    ``depends`` entries may be a bare job name (a ``whole`` dependency) or a
    mapping with ``target`` and ``type``.
    """
    image: Optional[str] = None
    commands: List[str] = Field(default_factory=list)
    commands_iter: Optional[CommandsIterDefinition] = None
    depends: List[Union[str, DependDefinition]] = Field(default_factory=list)
    condition: Optional[ConditionDefinition] = None

    def to_job(self, name: str) -> Job:
        depends = []
        for dep in self.depends:
            if isinstance(dep, str):
                depends.append(Depend(target=dep, type=DependType.WHOLE))
            else:
                depends.append(Depend(target=dep.target, type=dep.type))

        commands_iter = None
        if self.commands_iter is not None:
            commands_iter = CommandsIter(
                command=self.commands_iter.command,
                vars=self.commands_iter.vars,
                vars_iter=self.commands_iter.vars_iter,
            )

        condition = None
        if self.condition is not None:
            condition = ConditionInfo(
                depend_job_name=self.condition.depend_job,
                result_match=[
                    ResultMatchRequirement(key=m.key, operator=m.operator, values=m.values)
                    for m in self.condition.result_match
                ],
            )

        return Job(
            name=name,
            commands=list(self.commands),
            commands_iter=commands_iter,
            depends=depends,
            condition=condition,
            image=self.image,
        )


class WorkflowDefinition(BaseModel):
    """Top-level workflow file."""
    version: str = ""
    inputs: Dict[str, InputDefinition] = Field(default_factory=dict)
    jobs: Dict[str, JobDefinition] = Field(default_factory=dict)

    @model_validator(mode='after')
    def validate_jobs(self) -> 'WorkflowDefinition':
        if not self.jobs:
            raise ValueError("Workflow must define at least one job")
        return self

    def to_workflow(self) -> Workflow:
        """Convert to the in-memory graph used by condition handling."""
        inputs = {
            name: Input(name=name, type=d.type, default=d.default, description=d.description)
            for name, d in self.inputs.items()
        }
        jobs = {name: d.to_job(name) for name, d in self.jobs.items()}
        return Workflow(jobs=jobs, inputs=inputs, version=self.version)


class GeneGateSettings(BaseSettings):
    """Runtime settings, read from GENEGATE_* environment variables or .env."""
    model_config = SettingsConfigDict(env_prefix="GENEGATE_", env_file=".env", extra="ignore")

    log_level: str = "INFO"
    workflow_file: Path = Field(default=Path("workflow.yaml"))

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}, got '{v}'")
        return level


def load_settings() -> GeneGateSettings:
    return GeneGateSettings()


# Module-level mtime-based cache: path -> (parsed_workflow, file_mtime)
_workflow_cache: Dict[str, tuple] = {}


def _get_cached_or_load(resolved_path: Path, loader):
    """Return cached result if file mtime unchanged, else reload."""
    key = str(resolved_path)
    try:
        current_mtime = resolved_path.stat().st_mtime
    except FileNotFoundError:
        _workflow_cache.pop(key, None)
        return None

    cached = _workflow_cache.get(key)
    if cached is not None:
        cached_result, cached_mtime = cached
        if cached_mtime == current_mtime:
            return cached_result

    result = loader(resolved_path)
    _workflow_cache[key] = (result, current_mtime)
    return result


def _load_workflow_from_file(workflow_path: Path) -> Workflow:
    """Internal loader for workflow files (no caching)."""
    try:
        with open(workflow_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise WorkflowLoadError(workflow_path, f"invalid YAML: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise WorkflowLoadError(workflow_path, f"cannot read file: {e}") from e

    if not isinstance(data, dict):
        raise WorkflowLoadError(workflow_path, "top level must be a mapping")

    try:
        definition = WorkflowDefinition(**data)
    except ValidationError as e:
        raise WorkflowLoadError(workflow_path, str(e)) from e

    workflow = definition.to_workflow()
    logger.debug(f"Loaded workflow {workflow_path} with {len(workflow.jobs)} job(s)")
    return workflow


def load_workflow(workflow_path: Path) -> Workflow:
    """Load a workflow from a YAML file.

    Uses mtime-based caching. Callers receive a shared object and must not
    modify it.
    """
    workflow_path = Path(workflow_path)
    if not workflow_path.exists():
        raise WorkflowLoadError(workflow_path, "file not found")

    result = _get_cached_or_load(workflow_path.resolve(), _load_workflow_from_file)
    if result is None:
        raise WorkflowLoadError(workflow_path, "file not found")
    return result


def clear_workflow_cache() -> None:
    """Clear the module-level workflow cache. Useful for tests."""
    _workflow_cache.clear()
