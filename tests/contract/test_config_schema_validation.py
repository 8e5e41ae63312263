from __future__ import annotations

import json

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

from sprint_import.config.loader import SCHEMA_PATH

"""Config schema contract test: the packaged schema accepts the documented example."""

EXAMPLE = """
default_project_id: "1f0c2b1e"
default_sprint_id: "9a7d3c20"
default_priority: 3
null_sentinels: ["-", "n/a"]
column_aliases:
  title: ["summary"]
roster:
  - {id: 1, name: "Ana Silva", nickname: null}
database:
  host: localhost
  port: 5432
"""


def test_config_schema_valid_example():
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    jsonschema.validate(yaml.safe_load(EXAMPLE), schema)


def test_config_schema_rejects_bad_priority():
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    data = yaml.safe_load(EXAMPLE)
    data["default_priority"] = "alta"
    with pytest.raises(ValidationError):
        jsonschema.validate(data, schema)
