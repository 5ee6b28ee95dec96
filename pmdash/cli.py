import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
import yaml

from . import storage
from .alerts import notifications, status_counts
from .domain import ISSUE_PRIORITIES, ITEM_STATUSES, PROJECT_STATUSES, Issue, Portfolio, Project, WorkItem
from .issues import group_by_status, toggle_resolved
from .progress import project_progress, render_tree, rollup
from .report import monthly_report, weekly_report, write_docx
from .schedule import burndown as burndown_series
from .schedule import completion_series, day_counts, gantt_rows, progress_series, scheduled_on
from .schema import SchemaError, validate_portfolio, weight_warnings
from .tree import build_forest

app = typer.Typer(help="Project dashboard CLI")

DATA_FILE = "pmdash.yaml"
DATE_FORMATS = ["%Y-%m-%d"]
PERIODS = ("week", "month")


def load_portfolio(path: Path) -> Portfolio:
    if not path.exists():
        raise typer.BadParameter(f"Portfolio not initialised: {path} not found")
    try:
        return storage.load(path)
    except (yaml.YAMLError, ValueError) as e:
        typer.echo(f"Invalid portfolio: {e}", err=True)
        raise typer.Exit(code=1)


def find_project(portfolio: Portfolio, project_id: str) -> Project:
    try:
        return portfolio.get_project(project_id)
    except KeyError:
        raise typer.BadParameter(f"Project not found: {project_id}")


def _check_choice(value: Optional[str], choices, name: str) -> None:
    if value is not None and value not in choices:
        raise typer.BadParameter(f"{name} must be one of: {', '.join(choices)}")


def _day(value: Optional[datetime]) -> Optional[str]:
    return value.date().isoformat() if value else None


@app.callback()
def main(
    ctx: typer.Context,
    file: Path = typer.Option(Path(DATA_FILE), "--file", "-f", envvar="PMDASH_FILE", help="Portfolio YAML file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
):
    """Track projects, work items and issues from the command line."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = file


@app.command()
def init(ctx: typer.Context):
    """Create an empty portfolio file."""
    path: Path = ctx.obj
    if path.exists():
        raise typer.BadParameter(f"Portfolio already initialised at {path.resolve()}")
    storage.save(Portfolio(), path)
    typer.echo(f"Initialised portfolio at {path.resolve()}")


@app.command("add-project")
def add_project(
    ctx: typer.Context,
    project_id: str,
    name: str = typer.Option(..., "--name"),
    status: str = typer.Option("Proposal", "--status"),
    start: Optional[datetime] = typer.Option(None, "--start", formats=DATE_FORMATS),
    end: Optional[datetime] = typer.Option(None, "--end", formats=DATE_FORMATS),
):
    """Register a new project."""
    _check_choice(status, PROJECT_STATUSES, "status")
    portfolio = load_portfolio(ctx.obj)
    try:
        portfolio.add_project(
            Project(id=project_id, name=name, status=status, start_date=_day(start), end_date=_day(end))
        )
    except ValueError as e:
        raise typer.BadParameter(str(e))
    storage.save(portfolio, ctx.obj)
    typer.echo(f"Added project {project_id}")


@app.command("add-item")
def add_item(
    ctx: typer.Context,
    project_id: str,
    item_id: str,
    name: str = typer.Option(..., "--name"),
    parent: Optional[str] = typer.Option(None, "--parent"),
    sort_order: Optional[int] = typer.Option(None, "--sort"),
    weight: Optional[float] = typer.Option(None, "--weight", min=0),
    planned: Optional[float] = typer.Option(None, "--planned", min=0),
    actual: Optional[float] = typer.Option(None, "--actual", min=0),
    start: Optional[datetime] = typer.Option(None, "--start", formats=DATE_FORMATS),
    plan_end: Optional[datetime] = typer.Option(None, "--plan-end", formats=DATE_FORMATS),
):
    """Add a work item to a project."""
    portfolio = load_portfolio(ctx.obj)
    project = find_project(portfolio, project_id)
    item = WorkItem(
        id=item_id,
        name=name,
        parent_id=parent,
        sort_order=sort_order,
        weight=weight,
        planned_quantity=planned,
        actual_quantity=actual,
        start_date=_day(start),
        plan_end_date=_day(plan_end),
    )
    try:
        project.add_item(item)
    except ValueError as e:
        raise typer.BadParameter(str(e))
    storage.save(portfolio, ctx.obj)
    typer.echo(f"Added item {item_id} to {project_id}")


@app.command("update-item")
def update_item(
    ctx: typer.Context,
    project_id: str,
    item_id: str,
    name: Optional[str] = typer.Option(None, "--name"),
    status: Optional[str] = typer.Option(None, "--status"),
    weight: Optional[float] = typer.Option(None, "--weight", min=0),
    planned: Optional[float] = typer.Option(None, "--planned", min=0),
    actual: Optional[float] = typer.Option(None, "--actual", min=0),
    finished: Optional[datetime] = typer.Option(None, "--finished", formats=DATE_FORMATS),
):
    """Update quantities, weight or status of a work item."""
    _check_choice(status, ITEM_STATUSES, "status")
    portfolio = load_portfolio(ctx.obj)
    project = find_project(portfolio, project_id)
    changes = {
        "name": name,
        "status": status,
        "weight": weight,
        "planned_quantity": planned,
        "actual_quantity": actual,
        "actual_end_date": _day(finished),
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    try:
        project.update_item(item_id, **changes)
    except KeyError:
        raise typer.BadParameter(f"Item not found: {item_id}")
    storage.save(portfolio, ctx.obj)
    typer.echo(f"Updated {item_id}")


@app.command("delete-item")
def delete_item(ctx: typer.Context, project_id: str, item_id: str):
    """Delete a work item and everything below it."""
    portfolio = load_portfolio(ctx.obj)
    project = find_project(portfolio, project_id)
    if typer.confirm(f"Are you sure you want to delete '{item_id}' and its sub-items?"):
        try:
            removed = project.remove_item(item_id)
        except KeyError:
            raise typer.BadParameter(f"Item not found: {item_id}")
        storage.save(portfolio, ctx.obj)
        typer.echo(f"Deleted {', '.join(removed)}")


@app.command("add-issue")
def add_issue(
    ctx: typer.Context,
    project_id: str,
    issue_id: str,
    title: str = typer.Option(..., "--title"),
    priority: str = typer.Option("Medium", "--priority"),
    assignee: Optional[str] = typer.Option(None, "--assignee"),
):
    """Open an issue against a project."""
    _check_choice(priority, ISSUE_PRIORITIES, "priority")
    portfolio = load_portfolio(ctx.obj)
    project = find_project(portfolio, project_id)
    issue = Issue(
        id=issue_id,
        title=title,
        priority=priority,
        assignee=assignee,
        created_at=datetime.now().strftime("%Y-%m-%d"),
    )
    try:
        project.add_issue(issue)
    except ValueError as e:
        raise typer.BadParameter(str(e))
    storage.save(portfolio, ctx.obj)
    typer.echo(f"Opened issue {issue_id}")


@app.command()
def resolve(ctx: typer.Context, project_id: str, issue_id: str):
    """Mark an issue resolved, or reopen it if already resolved."""
    portfolio = load_portfolio(ctx.obj)
    project = find_project(portfolio, project_id)
    try:
        issue = toggle_resolved(project.get_issue(issue_id))
    except KeyError:
        raise typer.BadParameter(f"Issue not found: {issue_id}")
    project.update_issue(issue_id, status=issue.status, resolved_at=issue.resolved_at)
    storage.save(portfolio, ctx.obj)
    typer.echo(f"{issue_id}: {issue.status}")


@app.command()
def status(ctx: typer.Context, project_id: Optional[str] = typer.Argument(None)):
    """Show the work breakdown of each project with rolled-up progress."""
    portfolio = load_portfolio(ctx.obj)
    projects = [find_project(portfolio, project_id)] if project_id else portfolio.projects
    for project in projects:
        root = {
            "name": f"{project.name} ({project.status})",
            "percent": project_progress(project),
            "children": rollup(build_forest(project.items)),
        }
        typer.echo(render_tree(root))


def _echo_stats(stats) -> None:
    for stat in stats:
        typer.echo(f"{stat.label}: planned {stat.planned}, completed {stat.completed} ({stat.rate}%)")


@app.command()
def progress(
    ctx: typer.Context,
    period: Optional[str] = typer.Option(None, "--period", help="Add a week or month series."),
    today: Optional[datetime] = typer.Option(None, "--today", formats=DATE_FORMATS),
):
    """Show the completion percentage of every project."""
    _check_choice(period, PERIODS, "period")
    portfolio = load_portfolio(ctx.obj)
    for stage, count in status_counts(portfolio.projects).items():
        typer.echo(f"{stage}: {count}")
    for project in portfolio.projects:
        typer.echo(f"{project.name}: {project_progress(project)}%")
    if period:
        _echo_stats(completion_series(portfolio.projects, today.date() if today else None, period))


@app.command()
def series(
    ctx: typer.Context,
    project_id: str,
    period: str = typer.Option("week", "--period"),
    today: Optional[datetime] = typer.Option(None, "--today", formats=DATE_FORMATS),
):
    """Show planned, completed and weighted progress per week or month."""
    _check_choice(period, PERIODS, "period")
    portfolio = load_portfolio(ctx.obj)
    project = find_project(portfolio, project_id)
    _echo_stats(progress_series(project.items, today.date() if today else None, period))


@app.command()
def issues(ctx: typer.Context, project_id: str):
    """Show a project's issues as board columns."""
    portfolio = load_portfolio(ctx.obj)
    project = find_project(portfolio, project_id)
    for column, members in group_by_status(project.issues).items():
        typer.echo(f"{column} ({len(members)})")
        for issue in members:
            typer.echo(f"  [{issue.priority}] {issue.id} {issue.title}")


@app.command()
def gantt(ctx: typer.Context, project_id: str):
    """Draw a text Gantt chart of a project's work breakdown."""
    portfolio = load_portfolio(ctx.obj)
    project = find_project(portfolio, project_id)
    for row in gantt_rows(build_forest(project.items), project.start_date):
        label = "  " * row.depth + (row.item.name or row.item.id)
        typer.echo(f"{label:<30}|{' ' * max(0, row.offset)}{'#' * row.span}")


@app.command()
def schedule(
    ctx: typer.Context,
    day: Optional[datetime] = typer.Option(None, "--day", formats=DATE_FORMATS),
):
    """List the work running and the issues raised on a day."""
    portfolio = load_portfolio(ctx.obj)
    agenda = scheduled_on(portfolio.projects, day.date() if day else datetime.now().date())
    if not agenda.items and not agenda.issues:
        typer.echo(f"Nothing scheduled on {agenda.day}.")
    for project, item in agenda.items:
        typer.echo(f"[item] {project.name}: {item.name or item.id} ({item.start_date} ~ {item.plan_end_date})")
    for project, issue in agenda.issues:
        typer.echo(f"[issue] {project.name}: [{issue.priority}] {issue.title}")


@app.command()
def calendar(
    ctx: typer.Context,
    month: Optional[datetime] = typer.Option(None, "--month", formats=["%Y-%m"]),
):
    """Show the number of running items per day of a month."""
    portfolio = load_portfolio(ctx.obj)
    for status_ in day_counts(portfolio.projects, month.date() if month else datetime.now().date()):
        flag = " !" if status_.has_issue else ""
        typer.echo(f"{status_.day:%m/%d} {status_.count}{flag}")


@app.command()
def validate(path: Path):
    """Validate a portfolio YAML or JSON file."""
    if not path.exists():
        typer.echo(f"File not found: {path}", err=True)
        raise typer.Exit(code=1)
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
        validate_portfolio(data)
    except (yaml.YAMLError, json.JSONDecodeError, SchemaError) as e:
        typer.echo(f"Invalid portfolio: {e}", err=True)
        raise typer.Exit(code=1)
    portfolio = Portfolio.from_dict(data)
    for project in portfolio.projects:
        for warning in weight_warnings(project.items):
            typer.echo(f"{project.id}: {warning}", err=True)
    typer.echo(f"{path} is valid ({len(portfolio.projects)} projects)")


@app.command()
def burndown(
    ctx: typer.Context,
    project_id: str,
    today: Optional[datetime] = typer.Option(None, "--today", formats=DATE_FORMATS),
):
    """Print the ideal and actual remaining weight per day."""
    portfolio = load_portfolio(ctx.obj)
    project = find_project(portfolio, project_id)
    points = burndown_series(
        project.items, project.start_date, project.end_date, today.date() if today else None
    )
    if not points:
        typer.echo("No data.")
        return
    for point in points:
        actual = "-" if point.actual is None else f"{point.actual:g}"
        typer.echo(f"{point.label}  ideal={point.ideal:g}  actual={actual}")


@app.command()
def alerts(
    ctx: typer.Context,
    today: Optional[datetime] = typer.Option(None, "--today", formats=DATE_FORMATS),
):
    """List urgent issues, overdue items and approaching deadlines."""
    portfolio = load_portfolio(ctx.obj)
    found = notifications(portfolio.projects, today.date() if today else None)
    if not found:
        typer.echo("No alerts.")
    for note in found:
        typer.echo(f"[{note.kind}] {note.project_name}: {note.message}")


@app.command()
def report(
    ctx: typer.Context,
    period: str = typer.Argument("weekly", help="weekly or monthly"),
    today: Optional[datetime] = typer.Option(None, "--today", formats=DATE_FORMATS),
    output: Path = typer.Option(Path("."), "--output", "-o", help="Directory for the .docx file."),
):
    """Generate a weekly or monthly report as a Word document."""
    builders = {"weekly": weekly_report, "monthly": monthly_report}
    if period not in builders:
        raise typer.BadParameter("period must be 'weekly' or 'monthly'")
    portfolio = load_portfolio(ctx.obj)
    result = builders[period](portfolio.projects, today.date() if today else None)
    output.mkdir(parents=True, exist_ok=True)
    path = write_docx(result, output / result.filename)
    typer.echo(f"Wrote {path}")


@app.command("export")
def export_(ctx: typer.Context, path: Path):
    """Write a JSON backup of the portfolio."""
    portfolio = load_portfolio(ctx.obj)
    storage.export_backup(portfolio, path)
    typer.echo(f"Exported {len(portfolio.projects)} projects to {path}")


@app.command("import")
def import_(ctx: typer.Context, path: Path):
    """Replace the portfolio with the contents of a JSON backup."""
    if not path.exists():
        raise typer.BadParameter(f"Backup not found: {path}")
    try:
        portfolio = storage.import_backup(path)
    except SchemaError as e:
        typer.echo(f"Invalid backup: {e}", err=True)
        raise typer.Exit(code=1)
    if typer.confirm(f"Overwrite current data with {len(portfolio.projects)} projects?"):
        storage.save(portfolio, ctx.obj)
        typer.echo(f"Imported {len(portfolio.projects)} projects")


if __name__ == "__main__":
    app()
