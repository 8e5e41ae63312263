from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.reference import Member

"""Config loader for the sprint spreadsheet importer.

Responsibilities:
- Load YAML config (config/import.yml by default)
- Validate it against the packaged JSON schema (import_schema.json)
- Apply defaults (default_priority=3, null_sentinels=["-"])
"""

SCHEMA_PATH = Path(__file__).with_name("import_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")

DEFAULT_PRIORITY = 3
DEFAULT_NULL_SENTINELS = frozenset({"-"})


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    default_project_id: str  # commit fallback when no project name matches
    default_sprint_id: str  # commit fallback when no sprint name matches
    default_priority: int = DEFAULT_PRIORITY  # commit value for rows without priority
    null_sentinels: frozenset[str] = DEFAULT_NULL_SENTINELS  # cell texts meaning "absent"
    column_aliases: dict[str, tuple[str, ...]] = field(default_factory=dict)  # extra header substrings
    roster: tuple[Member, ...] = ()  # offline roster (mock mode)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the packaged JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or if the
            config data fails schema validation.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def build_config(data: dict[str, Any]) -> ImportConfig:
    """Validate a raw mapping and build an ImportConfig from it."""
    _validate_config_schema(data)

    sentinels = data.get("null_sentinels")
    if sentinels is None:
        null_sentinels = DEFAULT_NULL_SENTINELS
    else:
        # "-" is part of the absent-cell contract and cannot be switched off
        null_sentinels = DEFAULT_NULL_SENTINELS | {s.strip().lower() for s in sentinels if s.strip()}

    aliases = {
        field_name: tuple(s.strip().lower() for s in subs)
        for field_name, subs in (data.get("column_aliases") or {}).items()
    }
    roster = tuple(
        Member(id=str(m["id"]), name=m["name"], nickname=m.get("nickname"))
        for m in data.get("roster") or []
    )
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        default_project_id=data["default_project_id"],
        default_sprint_id=data["default_sprint_id"],
        default_priority=data.get("default_priority", DEFAULT_PRIORITY),
        null_sentinels=null_sentinels,
        column_aliases=aliases,
        roster=roster,
        database=db,
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    return build_config(data)
