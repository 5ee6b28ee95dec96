"""Calendar helpers behind the schedule, burndown and Gantt views."""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from .domain import Issue, Project, WorkItem
from .progress import weighted_progress
from .tree import flatten_with_depth

DateLike = Union[str, date, None]

BURNDOWN_BUFFER_DAYS = 5
DEFAULT_PERIOD_COUNTS = {"week": 4, "month": 6}


@dataclass
class BurndownPoint:
    day: date
    ideal: float
    actual: Optional[float]

    @property
    def label(self) -> str:
        return self.day.strftime("%m/%d")


@dataclass
class PeriodStat:
    """Planned/completed counts and a progress rate for one week or month."""

    label: str
    start: date
    end: date
    planned: int
    completed: int
    rate: int


@dataclass
class DayAgenda:
    """Work items running on a day and issues raised that day, with their projects."""

    day: date
    items: List[Tuple[Project, WorkItem]] = field(default_factory=list)
    issues: List[Tuple[Project, Issue]] = field(default_factory=list)


@dataclass
class DayStatus:
    day: date
    count: int
    has_issue: bool


@dataclass
class GanttRow:
    item: WorkItem
    depth: int
    offset: int
    span: int


def parse_date(value: DateLike) -> Optional[date]:
    """Return ``value`` as a date, or ``None`` when it is empty or invalid.

    Accepts ``date``/``datetime`` objects and ISO strings, with or without a
    time part.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def week_range(day: date) -> Tuple[date, date]:
    """Return the Monday and Sunday of the week containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def month_range(day: date) -> Tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def within(value: DateLike, start: date, end: date) -> bool:
    """Return True if ``value`` is a valid date between ``start`` and ``end`` inclusive."""
    parsed = parse_date(value)
    if parsed is None:
        return False
    return start <= parsed <= end


def items_in_period(
    items: Iterable[WorkItem], start: date, end: date, by: Optional[str] = None
) -> List[WorkItem]:
    """Return items planned to finish or actually finished within the period.

    ``by`` restricts the check to one date field, ``plan_end_date`` or
    ``actual_end_date``.
    """
    fields = (by,) if by else ("plan_end_date", "actual_end_date")
    return [
        item
        for item in items
        if any(within(getattr(item, name), start, end) for name in fields)
    ]


def burndown(
    items: Iterable[WorkItem],
    start_date: DateLike,
    end_date: DateLike,
    today: Optional[date] = None,
    buffer_days: int = BURNDOWN_BUFFER_DAYS,
) -> List[BurndownPoint]:
    """Return the ideal and actual remaining weight for each day of the project.

    The ideal line falls linearly from the total weight to zero over the
    project's duration. The actual line subtracts the weight of items marked
    ``Complete`` on or before each day and stops at ``today``.
    """
    items = list(items)
    start = parse_date(start_date)
    end = parse_date(end_date)
    if not items or start is None or end is None:
        return []
    today = today or date.today()

    duration = (end - start).days
    total = sum(item.weight or 0 for item in items)
    daily_rate = total / max(1, duration)
    completions = []
    for item in items:
        finished = parse_date(item.actual_end_date)
        if item.status == "Complete" and finished is not None:
            completions.append((finished, item.weight or 0))

    points = []
    for offset in range(duration + buffer_days + 1):
        day = start + timedelta(days=offset)
        ideal = max(0.0, total - daily_rate * offset)
        done = sum(weight for finished, weight in completions if finished <= day)
        actual = None if day > today else round(total - done, 1)
        points.append(BurndownPoint(day=day, ideal=round(ideal, 1), actual=actual))
    return points


def _shift_month(day: date, months: int) -> date:
    index = day.year * 12 + day.month - 1 + months
    return date(index // 12, index % 12 + 1, 1)


def _periods(today: date, period: str, count: Optional[int]) -> List[Tuple[str, date, date]]:
    if period not in DEFAULT_PERIOD_COUNTS:
        raise ValueError(f"Unknown period: {period}")
    count = DEFAULT_PERIOD_COUNTS[period] if count is None else count
    periods = []
    for back in range(count - 1, -1, -1):
        if period == "week":
            start, end = week_range(today - timedelta(weeks=back))
            periods.append((f"{start:%m/%d}~{end:%m/%d}", start, end))
        else:
            start, end = month_range(_shift_month(today, -back))
            periods.append((f"{start:%Y-%m}", start, end))
    return periods


def progress_series(
    items: Iterable[WorkItem],
    today: Optional[date] = None,
    period: str = "week",
    count: Optional[int] = None,
) -> List[PeriodStat]:
    """Return per-period statistics for the last ``count`` weeks or months.

    Items belong to the period containing their ``plan_end_date``. The
    oldest period comes first.
    """
    items = list(items)
    stats = []
    for label, start, end in _periods(today or date.today(), period, count):
        subset = [item for item in items if within(item.plan_end_date, start, end)]
        stats.append(
            PeriodStat(
                label=label,
                start=start,
                end=end,
                planned=len(subset),
                completed=sum(1 for item in subset if item.status == "Complete"),
                rate=weighted_progress(subset),
            )
        )
    return stats


def completion_series(
    projects: Iterable[Project],
    today: Optional[date] = None,
    period: str = "week",
    count: Optional[int] = None,
) -> List[PeriodStat]:
    """Return planned and completed counts across every project per period.

    ``planned`` counts items whose ``plan_end_date`` falls in the period and
    ``completed`` those whose ``actual_end_date`` does. ``rate`` is
    completed over planned as a whole percentage, 0 when nothing was planned.
    """
    items = [item for project in projects for item in project.items]
    stats = []
    for label, start, end in _periods(today or date.today(), period, count):
        planned = len(items_in_period(items, start, end, by="plan_end_date"))
        completed = len(items_in_period(items, start, end, by="actual_end_date"))
        rate = int(math.floor(completed / planned * 100 + 0.5)) if planned else 0
        stats.append(PeriodStat(label, start, end, planned, completed, rate))
    return stats


def scheduled_on(projects: Iterable[Project], day: date) -> DayAgenda:
    """Return the items running on ``day`` and the issues raised that day.

    An item runs on every day from its ``start_date`` to its
    ``plan_end_date`` inclusive; items missing either date are skipped.
    """
    agenda = DayAgenda(day=day)
    for project in projects:
        for item in project.items:
            start = parse_date(item.start_date)
            end = parse_date(item.plan_end_date)
            if start is not None and end is not None and start <= day <= end:
                agenda.items.append((project, item))
        for issue in project.issues:
            if parse_date(issue.created_at) == day:
                agenda.issues.append((project, issue))
    return agenda


def day_counts(projects: Iterable[Project], month: date) -> List[DayStatus]:
    """Return the running-item count and issue flag for each day of ``month``."""
    projects = list(projects)
    first, last = month_range(month)
    days = []
    for offset in range((last - first).days + 1):
        agenda = scheduled_on(projects, first + timedelta(days=offset))
        days.append(DayStatus(agenda.day, len(agenda.items), bool(agenda.issues)))
    return days


def _day_offset(origin: date, value: DateLike) -> int:
    parsed = parse_date(value)
    if parsed is None:
        return 0
    return (parsed - origin).days


def gantt_rows(forest: Iterable[WorkItem], start_date: DateLike) -> List[GanttRow]:
    """Return one bar per node of ``forest`` in pre-order.

    ``offset`` counts days from the chart start to the item's start (its
    ``start_date``, else its ``plan_end_date``); ``span`` covers the days up
    to and including ``plan_end_date`` and is at least 1.
    """
    origin = parse_date(start_date) or date.today()
    rows = []
    for depth, item in flatten_with_depth(forest):
        offset = _day_offset(origin, item.start_date or item.plan_end_date)
        finish = _day_offset(origin, item.plan_end_date)
        rows.append(GanttRow(item=item, depth=depth, offset=offset, span=max(1, finish - offset + 1)))
    return rows


__all__ = [
    "BurndownPoint",
    "PeriodStat",
    "DayAgenda",
    "DayStatus",
    "GanttRow",
    "parse_date",
    "week_range",
    "month_range",
    "within",
    "items_in_period",
    "burndown",
    "progress_series",
    "completion_series",
    "scheduled_on",
    "day_counts",
    "gantt_rows",
]
