# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from sprint_import.config.loader import ImportConfig
from sprint_import.models.reference import Member, Project, Sprint
from sprint_import.db.store import InMemoryTaskStore
from sprint_import.services.row_parser import COLUMN_LABELS

HEADERS = list(COLUMN_LABELS.values())


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """default_project_id: proj-default
default_sprint_id: sprint-default
default_priority: 3
null_sentinels: ["n/a"]
roster:
  - id: m1
    name: Illian Souza
  - id: m2
    name: Natan Lima
    nickname: Nat
  - id: m3
    name: Ana Silva
  - id: m4
    name: Ana Costa
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def roster() -> list[Member]:
    return [
        Member(id="m1", name="Illian Souza"),
        Member(id="m2", name="Natan Lima", nickname="Nat"),
        Member(id="m3", name="Ana Silva"),
        Member(id="m4", name="Ana Costa"),
        Member(id="m5", name="João Pereira", nickname="Jota"),
    ]


@pytest.fixture()
def import_config() -> ImportConfig:
    return ImportConfig(default_project_id="proj-default", default_sprint_id="sprint-default")


@pytest.fixture()
def store(roster: list[Member]) -> InMemoryTaskStore:
    return InMemoryTaskStore(
        projects=[Project(id="p-portal", name="Portal")],
        sprints=[Sprint(id="s-1", name="Sprint 1", project_id="p-portal")],
        members=roster,
    )


@pytest.fixture()
def sample_sheets() -> dict[str, list[list[Any]]]:
    """Two sprints; row 2 has no title, row 3 a bad priority and an unknown member."""
    return {
        "Sprint 1": [
            HEADERS,
            ["Portal", "D-1", "p1", "Login", "Backend", "Bug", "Illian + Natan", "2,5h", "Não", "Sim"],
            ["Portal", "D-2", "p2", None, "Frontend", "Feature", "Illian", "4", "-", "Não"],
            ["App", "D-3", "p9", "Cadastro", "Full Stack", "Refinamento", "Zeca", "1", "Sim", "-"],
        ],
        "Sprint 2": [
            HEADERS,
            [None, None, None, None, None, None, None, None, None, None],
            ["Portal", "D-4", "-", "Relatório", "-", "-", "João", "-", "-", "-"],
        ],
    }


@pytest.fixture()
def make_workbook():
    """Return a helper writing a real Excel file, one sheet per entry (first row = headers)."""
    def _make(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet_name, rows in sheets.items():
                df = pd.DataFrame(rows)
                df.to_excel(writer, sheet_name=sheet_name, header=False, index=False)
        return path
    return _make
