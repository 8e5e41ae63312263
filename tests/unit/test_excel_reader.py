from __future__ import annotations

from pathlib import Path

import pytest

from sprint_import.excel.reader import WorkbookReadError, read_workbook


def test_read_workbook_all_sheets(tmp_path: Path, make_workbook):
    path = make_workbook(tmp_path / "sprints.xlsx", {
        "Sprint 1": [["Projeto", "Demanda", "Prioridade"], ["Portal", "D-1", "p1"], ["App", None, "-"]],
        "Sprint 2": [["Projeto", "Demanda"], ["Portal", "NA"]],
    })
    sheets = read_workbook(path)
    assert list(sheets) == ["Sprint 1", "Sprint 2"]
    assert sheets["Sprint 1"][0] == ["Projeto", "Demanda", "Prioridade"]
    assert sheets["Sprint 1"][2] == ["App", None, "-"]
    # "NA" stays literal text
    assert sheets["Sprint 2"][1] == ["Portal", "NA"]


def test_read_workbook_target_sheets(tmp_path: Path, make_workbook):
    path = make_workbook(tmp_path / "s.xlsx", {"A": [["x"], [1]], "B": [["y"], [2]]})
    assert list(read_workbook(path, target_sheets=["B"])) == ["B"]


def test_read_csv_single_sheet(tmp_path: Path):
    path = tmp_path / "sprint 7.csv"
    path.write_text("Projeto,Demanda,Título\nPortal,D-1,Login\nApp,,Cadastro\n", encoding="utf-8")
    sheets = read_workbook(path)
    assert list(sheets) == ["sprint 7"]
    assert sheets["sprint 7"][0] == ["Projeto", "Demanda", "Título"]
    assert sheets["sprint 7"][2] == ["App", "", "Cadastro"]


def test_missing_file(tmp_path: Path):
    with pytest.raises(WorkbookReadError, match="not found"):
        read_workbook(tmp_path / "nope.xlsx")


def test_unsupported_suffix(tmp_path: Path):
    p = tmp_path / "notes.txt"
    p.write_text("x", encoding="utf-8")
    with pytest.raises(WorkbookReadError, match="unsupported"):
        read_workbook(p)


def test_corrupt_workbook(tmp_path: Path):
    p = tmp_path / "broken.xlsx"
    p.write_bytes(b"not a zip file")
    with pytest.raises(WorkbookReadError, match="failed to read"):
        read_workbook(p)
