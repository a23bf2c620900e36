"""Date-aligned calendar grids and event partitioning.

Events are attributed to the day of their start only; multi-day events are
not replicated across the days they span. Range filtering uses the overlap
test ``start <= to and end >= from`` with ``to`` inclusive through its last
instant.
"""

import calendar
import datetime
import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Optional, Union

from .exceptions import GridRangeError
from .models import CalendarEvent, DayCell, DayGroup, Grid, GridKind, ViewMode
from .time_utils import as_instant, day_of

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

DEFAULT_WEEK_START = 0
DEFAULT_LIST_DAYS = 7

WeekStart = Union[int, str]


def parse_week_start(value: Optional[WeekStart]) -> int:
    """Resolve a week start given as 0..6 (Monday=0) or a weekday name.

    Accepts full names and three-letter abbreviations, case-insensitive.

    Raises:
        GridRangeError: If the value names no weekday
    """
    if value is None or value == "":
        return DEFAULT_WEEK_START
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value <= 6:
            return value
        raise GridRangeError(f"Invalid week start: {value}")

    text = str(value).strip().lower()
    if text.isdigit() and 0 <= int(text) <= 6:
        return int(text)
    for name, number in WEEKDAY_NAMES.items():
        if text == name or text == name[:3]:
            return number
    raise GridRangeError(f"Invalid week start: {value}")


def start_of_week(day: datetime.date, week_start: int) -> datetime.date:
    return day - datetime.timedelta(days=(day.weekday() - week_start) % 7)


def _cells(days: Iterable[datetime.date], month: Optional[int] = None) -> tuple[DayCell, ...]:
    return tuple(DayCell(day=d, muted=month is not None and d.month != month) for d in days)


def build_month(reference: datetime.date, week_start: WeekStart = DEFAULT_WEEK_START) -> Grid:
    """Complete weeks covering the month of ``reference``.

    Cells outside the month are muted. The grid has 4 to 6 rows.
    """
    first_weekday = parse_week_start(week_start)
    weeks = calendar.Calendar(firstweekday=first_weekday).monthdatescalendar(
        reference.year, reference.month
    )
    days = [day for week in weeks for day in week]
    return Grid(
        kind=GridKind.MONTH,
        reference=reference,
        week_start=first_weekday,
        cells=_cells(days, month=reference.month),
    )


def build_week(reference: datetime.date, week_start: WeekStart = DEFAULT_WEEK_START) -> Grid:
    """Seven cells starting at the week start on or before ``reference``."""
    first_weekday = parse_week_start(week_start)
    first = start_of_week(reference, first_weekday)
    days = [first + datetime.timedelta(days=offset) for offset in range(7)]
    return Grid(kind=GridKind.WEEK, reference=reference, week_start=first_weekday, cells=_cells(days))


def build_day(reference: datetime.date, week_start: WeekStart = DEFAULT_WEEK_START) -> Grid:
    return Grid(
        kind=GridKind.DAY,
        reference=reference,
        week_start=parse_week_start(week_start),
        cells=(DayCell(day=reference),),
    )


def _start_key(event: CalendarEvent) -> datetime.datetime:
    assert event.start is not None
    return as_instant(event.start)


def assign(grid: Grid, events: Iterable[CalendarEvent]) -> Grid:
    """Attach events to the cell matching the day of their start.

    Events without a start, or starting outside the grid, are left out.
    Within a cell events are ordered by start; equal starts keep source order.
    """
    by_day: dict[datetime.date, list[CalendarEvent]] = {cell.day: [] for cell in grid.cells}
    for event in events:
        if event.start is None:
            continue
        bucket = by_day.get(day_of(event.start))
        if bucket is not None:
            bucket.append(event)

    cells = tuple(
        replace(cell, events=tuple(sorted(by_day[cell.day], key=_start_key))) for cell in grid.cells
    )
    return replace(grid, cells=cells)


def range_bounds(
    start_day: datetime.date, end_day: datetime.date
) -> tuple[datetime.datetime, datetime.datetime]:
    """Aware instants for ``[start_day, end_day]`` with the end day fully included."""
    if start_day > end_day:
        raise GridRangeError(f"Invalid range: {start_day.isoformat()} is after {end_day.isoformat()}")
    lower = as_instant(start_day)
    upper = datetime.datetime.combine(end_day, datetime.time.max, tzinfo=datetime.timezone.utc)
    return lower, upper


def overlaps(event: CalendarEvent, lower: datetime.datetime, upper: datetime.datetime) -> bool:
    """True when the event is not over before ``lower`` and starts by ``upper``.

    An event without an end is treated as ending at its start. An end before
    the start is not corrected.
    """
    if event.start is None:
        return False
    start = as_instant(event.start)
    end = as_instant(event.end) if event.end is not None else start
    return start <= upper and end >= lower


def filter_range(
    events: Iterable[CalendarEvent], start_day: datetime.date, end_day: datetime.date
) -> list[CalendarEvent]:
    """Events overlapping the inclusive day range, sorted stably by start."""
    lower, upper = range_bounds(start_day, end_day)
    return sorted((e for e in events if overlaps(e, lower, upper)), key=_start_key)


def build_list(
    start_day: datetime.date, end_day: datetime.date, events: Iterable[CalendarEvent]
) -> list[DayGroup]:
    """Group events overlapping ``[start_day, end_day]`` by the day of their start.

    Groups are in ascending day order. A group's day may precede
    ``start_day`` when an event started earlier and is still running.

    Raises:
        GridRangeError: If ``start_day`` is after ``end_day``
    """
    groups: dict[datetime.date, list[CalendarEvent]] = {}
    for event in filter_range(events, start_day, end_day):
        assert event.start is not None
        groups.setdefault(day_of(event.start), []).append(event)
    return [DayGroup(day=day, events=tuple(groups[day])) for day in sorted(groups)]


def build_grid(kind: GridKind, reference: datetime.date, week_start: WeekStart = DEFAULT_WEEK_START) -> Grid:
    """Build an empty cell grid of ``kind``.

    Raises:
        GridRangeError: For ``GridKind.LIST``, which is not cell based
    """
    if kind is GridKind.MONTH:
        return build_month(reference, week_start)
    if kind is GridKind.WEEK:
        return build_week(reference, week_start)
    if kind is GridKind.DAY:
        return build_day(reference, week_start)
    raise GridRangeError("List views are built with build_list")


def parse_view(value: Optional[str]) -> ViewMode:
    """Resolve a view name; defaults to the month view.

    Raises:
        GridRangeError: If the name is not a known view
    """
    if not value:
        return ViewMode.MONTH
    try:
        return ViewMode(value.strip().lower())
    except ValueError:
        raise GridRangeError(f"Unknown view: {value}") from None


def default_list_range(reference: datetime.date) -> tuple[datetime.date, datetime.date]:
    """Default agenda range: a week starting at ``reference``."""
    return reference, reference + datetime.timedelta(days=DEFAULT_LIST_DAYS)


def build_for_view(
    view: ViewMode,
    reference: datetime.date,
    events: Sequence[CalendarEvent],
    week_start: WeekStart = DEFAULT_WEEK_START,
    date_range: Optional[tuple[datetime.date, datetime.date]] = None,
) -> Union[Grid, list[DayGroup]]:
    """Build the populated grid (or agenda day groups) for a view."""
    kind = view.grid_kind
    if kind is GridKind.LIST:
        start_day, end_day = date_range or default_list_range(reference)
        groups = build_list(start_day, end_day, events)
        logger.debug(
            "Built %s list %s..%s with %d day groups", view.value, start_day, end_day, len(groups)
        )
        return groups

    grid = assign(build_grid(kind, reference, week_start), events)
    logger.debug(
        "Built %s grid %s..%s with %d events", view.value, grid.first_day, grid.last_day, grid.event_count
    )
    return grid
