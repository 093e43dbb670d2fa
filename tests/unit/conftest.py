"""Shared fixtures for condition tests."""

import pytest

from genegate.core.config import clear_workflow_cache
from genegate.workflow.model import Input, InputType
from tests.unit.workflow_fixtures import make_workflow


@pytest.fixture
def string_inputs():
    return {
        "result-key": Input(name="result-key", type=InputType.STRING, default="status"),
        "threshold": Input(name="threshold", type=InputType.NUMBER, default=3),
    }


@pytest.fixture
def workflow():
    return make_workflow()


WORKFLOW_YAML = """\
version: genegate/v1alpha1
inputs:
  result-key:
    type: string
    default: label.io/kind
jobs:
  align:
    image: bwa:0.7
    commands:
      - bwa mem ref.fa reads.fq
  report:
    commands:
      - make report
    depends:
      - target: align
        type: whole
    condition:
      depend_job: align
      result_match:
        - key: "${result-key}"
          operator: In
          values: [done, skipped]
        - key: retries
          operator: Lt
          values: [3]
"""


@pytest.fixture
def workflow_file(tmp_path):
    path = tmp_path / "workflow.yaml"
    path.write_text(WORKFLOW_YAML)
    return path


@pytest.fixture(autouse=True)
def _fresh_workflow_cache():
    clear_workflow_cache()
    yield
    clear_workflow_cache()
