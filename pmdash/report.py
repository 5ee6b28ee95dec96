from __future__ import annotations

"""Weekly and monthly progress reports exported as Word documents."""

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH

from .domain import Project
from .progress import project_progress
from .schedule import items_in_period, month_range, week_range
from .tree import build_forest, flatten_with_depth

logger = logging.getLogger(__name__)

SUMMARY_HEADERS = ("Project", "Stage", "Progress (%)")
DETAIL_HEADERS = ("Task", "Status", "Planned end", "Actual end", "Weight")
EMPTY_PORTFOLIO = "No projects registered."
EMPTY_PERIOD = "- No work planned or completed in this period."


@dataclass
class SummaryRow:
    name: str
    status: str
    progress: int


@dataclass
class DetailRow:
    name: str
    depth: int
    status: str
    plan_end: str
    actual_end: str
    weight: str

    @property
    def label(self) -> str:
        if self.depth == 0:
            return self.name
        return "  " * self.depth + "- " + self.name


@dataclass
class ProjectSection:
    name: str
    rows: List[DetailRow] = field(default_factory=list)


@dataclass
class Report:
    """Everything a period report shows, independent of the output format."""

    title: str
    start: date
    end: date
    filename: str
    summary: List[SummaryRow] = field(default_factory=list)
    sections: List[ProjectSection] = field(default_factory=list)


def _detail_rows(project: Project, start: date, end: date) -> List[DetailRow]:
    nodes = flatten_with_depth(build_forest(project.items))
    relevant = {id(item) for item in items_in_period([n for _, n in nodes], start, end)}
    rows = []
    for depth, item in nodes:
        if id(item) not in relevant:
            continue
        rows.append(
            DetailRow(
                name=item.name,
                depth=depth,
                status=item.status,
                plan_end=str(item.plan_end_date or "-"),
                actual_end=str(item.actual_end_date or "-"),
                weight="-" if item.weight is None else f"{item.weight:g}",
            )
        )
    return rows


def build_report(
    title: str,
    projects: Iterable[Project],
    start: date,
    end: date,
    filename: str = "report.docx",
) -> Report:
    """Collect the summary and per-project detail rows for ``start``..``end``."""
    projects = list(projects)
    report = Report(title=title, start=start, end=end, filename=filename)
    for project in projects:
        report.summary.append(SummaryRow(project.name, project.status, project_progress(project)))
        report.sections.append(ProjectSection(project.name, _detail_rows(project, start, end)))
    return report


def _week_of_month(day: date) -> int:
    return (day.day + day.replace(day=1).weekday() - 1) // 7 + 1


def weekly_report(projects: Iterable[Project], today: Optional[date] = None) -> Report:
    today = today or date.today()
    start, end = week_range(today)
    title = f"Weekly Report ({today:%B %Y}, week {_week_of_month(today)})"
    return build_report(title, projects, start, end, f"weekly-report-{today:%Y%m%d}.docx")


def monthly_report(projects: Iterable[Project], today: Optional[date] = None) -> Report:
    today = today or date.today()
    start, end = month_range(today)
    title = f"Monthly Report ({today:%B %Y})"
    return build_report(title, projects, start, end, f"monthly-report-{today:%Y%m}.docx")


def _add_table(document, headers, rows) -> None:
    table = document.add_table(rows=1, cols=len(headers))
    table.style = "Table Grid"
    for cell, text in zip(table.rows[0].cells, headers):
        cell.text = ""
        paragraph = cell.paragraphs[0]
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        paragraph.add_run(text).bold = True
    for values in rows:
        cells = table.add_row().cells
        for cell, text in zip(cells, values):
            cell.text = text


def write_docx(report: Report, path: Path) -> Path:
    """Write ``report`` to ``path`` as a .docx file and return the path."""
    document = Document()
    document.add_heading(report.title, level=1)
    period = document.add_paragraph(f"Period: {report.start:%Y-%m-%d} ~ {report.end:%Y-%m-%d}")
    period.alignment = WD_ALIGN_PARAGRAPH.RIGHT

    document.add_heading("1. Progress by project", level=2)
    _add_table(
        document,
        SUMMARY_HEADERS,
        [(row.name, row.status, f"{row.progress}%") for row in report.summary],
    )

    document.add_heading("2. Work by project", level=2)
    if not report.sections:
        document.add_paragraph(EMPTY_PORTFOLIO)
    for section in report.sections:
        document.add_heading(f"[{section.name}] Work performed", level=3)
        if not section.rows:
            document.add_paragraph(EMPTY_PERIOD)
            continue
        _add_table(
            document,
            DETAIL_HEADERS,
            [(r.label, r.status, r.plan_end, r.actual_end, r.weight) for r in section.rows],
        )

    path = Path(path)
    document.save(path)
    logger.info("Wrote %s to %s", report.title, path)
    return path


__all__ = [
    "SummaryRow",
    "DetailRow",
    "ProjectSection",
    "Report",
    "build_report",
    "weekly_report",
    "monthly_report",
    "write_docx",
]
