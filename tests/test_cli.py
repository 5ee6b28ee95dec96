from pathlib import Path

import yaml
from docx import Document
from typer.testing import CliRunner

from pmdash import storage
from pmdash.cli import app

runner = CliRunner()


def _invoke(path: Path, *args, **kwargs):
    return runner.invoke(app, ["--file", str(path), *args], **kwargs)


def _setup(tmp_path: Path) -> Path:
    path = tmp_path / "pmdash.yaml"
    assert _invoke(path, "init").exit_code == 0
    result = _invoke(
        path, "add-project", "p1", "--name", "Warehouse", "--status", "Execution",
        "--start", "2024-03-01", "--end", "2024-03-20",
    )
    assert result.exit_code == 0, result.output
    for args in (
        ["a", "--name", "Structure", "--weight", "100", "--plan-end", "2024-03-12"],
        ["a1", "--name", "Columns", "--parent", "a", "--weight", "50", "--planned", "4", "--actual", "2"],
        ["a2", "--name", "Roof", "--parent", "a", "--weight", "50", "--planned", "4", "--sort", "-1"],
    ):
        result = _invoke(path, "add-item", "p1", *args)
        assert result.exit_code == 0, result.output
    return path


def test_validate_nonexistent_file():
    result = runner.invoke(app, ["validate", "nope.yaml"])
    assert result.exit_code != 0
    assert "File not found" in result.output


def test_validate_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("projects: [")
    result = runner.invoke(app, ["validate", str(path)])
    assert result.exit_code != 0
    assert "Invalid portfolio" in result.output


def test_validate_reports_weight_warnings(tmp_path):
    data = {"projects": [{"id": "p", "items": [{"id": "a", "weight": 30}]}]}
    path = tmp_path / "good.yaml"
    path.write_text(yaml.dump(data))
    result = runner.invoke(app, ["validate", str(path)])
    assert result.exit_code == 0
    assert "sum to 30" in result.output
    assert "is valid (1 projects)" in result.output


def test_commands_require_init(tmp_path):
    result = _invoke(tmp_path / "missing.yaml", "progress")
    assert result.exit_code != 0
    assert "not initialised" in result.output


def test_init_twice_fails(tmp_path):
    path = _setup(tmp_path)
    assert _invoke(path, "init").exit_code != 0


def test_status_and_progress(tmp_path):
    path = _setup(tmp_path)
    result = _invoke(path, "status")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].startswith("Warehouse (Execution)")
    assert lines[2].strip().startswith("Roof")
    assert lines[3].strip().startswith("Columns")

    result = _invoke(path, "progress")
    assert "Execution: 1" in result.output
    assert "Warehouse: 25%" in result.output


def test_update_and_delete_item(tmp_path):
    path = _setup(tmp_path)
    result = _invoke(path, "update-item", "p1", "a2", "--actual", "4", "--status", "Complete",
                     "--finished", "2024-03-05")
    assert result.exit_code == 0
    assert "Warehouse: 75%" in _invoke(path, "progress").output

    assert _invoke(path, "update-item", "p1", "zz", "--actual", "1").exit_code != 0
    assert _invoke(path, "update-item", "p1", "a2", "--status", "Done").exit_code != 0

    result = _invoke(path, "delete-item", "p1", "a", input="y\n")
    assert result.exit_code == 0
    assert "Deleted a, a1, a2" in result.output
    assert storage.load(path).get_project("p1").items == []


def test_issues_and_alerts(tmp_path):
    path = _setup(tmp_path)
    assert _invoke(path, "add-issue", "p1", "i1", "--title", "Crane", "--priority", "Critical").exit_code == 0
    result = _invoke(path, "alerts", "--today", "2024-03-15")
    assert "[issue] Warehouse: [Critical] Issue: Crane" in result.output
    assert "[overdue]" in result.output
    assert "[deadline]" in result.output

    assert "i1: Resolved" in _invoke(path, "resolve", "p1", "i1").output
    assert "[issue]" not in _invoke(path, "alerts", "--today", "2024-03-15").output
    assert "i1: InProgress" in _invoke(path, "resolve", "p1", "i1").output


def test_burndown(tmp_path):
    path = _setup(tmp_path)
    result = _invoke(path, "burndown", "p1", "--today", "2024-03-02")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "03/01  ideal=200  actual=200"
    assert lines[-1].endswith("actual=-")


def test_report(tmp_path):
    path = _setup(tmp_path)
    out = tmp_path / "reports"
    result = _invoke(path, "report", "weekly", "--today", "2024-03-13", "--output", str(out))
    assert result.exit_code == 0, result.output
    document = Document(out / "weekly-report-20240313.docx")
    assert [c.text for c in document.tables[0].rows[1].cells] == ["Warehouse", "Execution", "25%"]
    assert _invoke(path, "report", "yearly").exit_code != 0


def test_export_and_import(tmp_path):
    path = _setup(tmp_path)
    backup = tmp_path / "backup.json"
    assert _invoke(path, "export", str(backup)).exit_code == 0

    other = tmp_path / "other.yaml"
    result = _invoke(other, "import", str(backup), input="y\n")
    assert result.exit_code == 0
    assert storage.load(other).to_dict() == storage.load(path).to_dict()

    backup.write_text('{"projects": "nope"}')
    result = _invoke(other, "import", str(backup))
    assert result.exit_code != 0
    assert "Invalid backup" in result.output


def test_progress_by_period(tmp_path):
    path = _setup(tmp_path)
    _invoke(path, "update-item", "p1", "a2", "--status", "Complete", "--finished", "2024-03-05")
    result = _invoke(path, "progress", "--period", "month", "--today", "2024-03-13")
    assert result.exit_code == 0, result.output
    assert "Warehouse: 25%" in result.output
    assert result.output.splitlines()[-1] == "2024-03: planned 1, completed 1 (100%)"

    result = _invoke(path, "progress", "--period", "week", "--today", "2024-03-13")
    assert result.output.splitlines()[-1] == "03/11~03/17: planned 1, completed 0 (0%)"
    assert _invoke(path, "progress", "--period", "year").exit_code != 0


def test_series(tmp_path):
    path = _setup(tmp_path)
    result = _invoke(path, "series", "p1", "--period", "month", "--today", "2024-03-13")
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert len(lines) == 6
    assert lines[-1] == "2024-03: planned 1, completed 0 (0%)"


def test_issue_board(tmp_path):
    path = _setup(tmp_path)
    _invoke(path, "add-issue", "p1", "i1", "--title", "Crane", "--priority", "High")
    _invoke(path, "add-issue", "p1", "i2", "--title", "Paint", "--priority", "Low")
    _invoke(path, "resolve", "p1", "i2")
    result = _invoke(path, "issues", "p1")
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "Open (1)",
        "  [High] i1 Crane",
        "InProgress (0)",
        "Resolved (1)",
        "  [Low] i2 Paint",
    ]


def test_gantt(tmp_path):
    path = _setup(tmp_path)
    result = _invoke(path, "gantt", "p1")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == f"{'Structure':<30}|{' ' * 11}#"
    assert lines[1].startswith("  Roof")
    assert lines[2].startswith("  Columns")


def test_schedule_and_calendar(tmp_path):
    path = _setup(tmp_path)
    _invoke(path, "add-item", "p1", "b", "--name", "Survey", "--start", "2024-03-04", "--plan-end", "2024-03-06")
    result = _invoke(path, "schedule", "--day", "2024-03-05")
    assert result.exit_code == 0
    assert "[item] Warehouse: Survey (2024-03-04 ~ 2024-03-06)" in result.output
    assert "Nothing scheduled on 2024-04-01." in _invoke(path, "schedule", "--day", "2024-04-01").output

    result = _invoke(path, "calendar", "--month", "2024-03")
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert len(lines) == 31
    assert lines[0] == "03/01 0"
    assert lines[4] == "03/05 1"


def test_export_hand_edited_dates(tmp_path):
    path = tmp_path / "pmdash.yaml"
    path.write_text("projects:\n  - id: p1\n    status: Execution\n    startDate: 2024-03-01\n")
    backup = tmp_path / "backup.json"
    result = _invoke(path, "export", str(backup))
    assert result.exit_code == 0, result.output
    assert '"startDate": "2024-03-01"' in backup.read_text()


def test_malformed_portfolio_exits_cleanly(tmp_path):
    path = tmp_path / "pmdash.yaml"
    path.write_text("projects: [")
    result = _invoke(path, "progress")
    assert result.exit_code == 1
    assert "Invalid portfolio" in result.output

    path.write_text("- a\n- b\n")
    result = _invoke(path, "status")
    assert result.exit_code == 1
    assert "Invalid portfolio" in result.output
