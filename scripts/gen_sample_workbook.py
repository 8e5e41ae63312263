#!/usr/bin/env python3
"""Sample workbook generator for manual and performance testing.

Generates a sprint spreadsheet in the layout the importer expects:
- one sheet per sprint ("Sprint 1", "Sprint 2", ...)
- row 1: headers (Projeto, Demanda, Prioridade, Título, ...)
- row 2+: task rows, with a configurable share of deliberately broken cells
  (missing title, bad priority, unknown responsible) to exercise validation
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

HEADERS = [
    "Projeto",
    "Demanda",
    "Prioridade",
    "Título",
    "Tipo",
    "Categoria",
    "Responsável",
    "Estimativa",
    "Intercorrência",
    "Entregue",
]

PROJECTS = ["Portal", "App Mobile", "Backoffice", "Integrações"]
TYPES = ["Frontend", "Backend", "Full Stack", "-"]
CATEGORIES = ["Feature", "Bug", "Refinamento", ""]
PEOPLE = ["Illian", "Natan", "Bruno", "Ana", "Carla Souza", "João"]
UNKNOWN_PEOPLE = ["Zeca", "Xuxa"]


def generate_sprint_rows(rows: int, broken_ratio: float, rng: np.random.Generator, sprint_no: int) -> list[list[Any]]:
    """Generate the data rows of one sprint sheet."""
    data: list[list[Any]] = []
    for i in range(rows):
        broken = rng.random() < broken_ratio
        n_people = int(rng.integers(1, 3))
        people = list(rng.choice(PEOPLE, size=n_people, replace=False))
        if broken and rng.random() < 0.5:
            people.append(str(rng.choice(UNKNOWN_PEOPLE)))
        priority: Any = f"p{int(rng.integers(0, 6))}"
        if broken and rng.random() < 0.3:
            priority = "p9"
        title = f"Tarefa {sprint_no}.{i + 1}"
        if broken and rng.random() < 0.2:
            title = ""
        hours = round(float(rng.uniform(0.5, 24)), 1)
        data.append([
            str(rng.choice(PROJECTS)),
            f"D-{sprint_no:02d}{i + 1:04d}",
            priority,
            title,
            str(rng.choice(TYPES)),
            str(rng.choice(CATEGORIES)),
            " + ".join(people),
            f"{hours}".replace(".", ",") + "h",
            "Sim" if rng.random() < 0.1 else "Não",
            "Sim" if rng.random() < 0.4 else "Não",
        ])
    return data


def create_workbook(output_path: Path, sprints: int, rows: int, broken_ratio: float, seed: int) -> None:
    rng = np.random.default_rng(seed)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for n in range(1, sprints + 1):
            df = pd.DataFrame(generate_sprint_rows(rows, broken_ratio, rng, n), columns=HEADERS)
            df.to_excel(writer, sheet_name=f"Sprint {n}", index=False)


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a sample sprint workbook")
    parser.add_argument("--output", type=Path, default=Path("data/sample_sprints.xlsx"), help="Output .xlsx path")
    parser.add_argument("--sprints", type=int, default=3, help="Number of sprint sheets")
    parser.add_argument("--rows", type=int, default=25, help="Task rows per sprint")
    parser.add_argument("--broken-ratio", type=float, default=0.15, help="Share of rows with validation problems")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducible data")
    args = parser.parse_args()

    if args.sprints < 1 or args.rows < 1:
        print("ERROR: --sprints and --rows must be >= 1", file=sys.stderr)
        return 1
    if not 0.0 <= args.broken_ratio <= 1.0:
        print("ERROR: --broken-ratio must be between 0 and 1", file=sys.stderr)
        return 1

    create_workbook(args.output, args.sprints, args.rows, args.broken_ratio, args.seed)
    print(f"wrote {args.output} sprints={args.sprints} rows_per_sprint={args.rows}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
