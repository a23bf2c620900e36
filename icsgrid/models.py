"""Data models for calendar events, fetch results and grids."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .time_utils import serialize_iso

PLACEHOLDER_TITLE = "(no title)"


class CalendarEvent(BaseModel):
    """Canonical calendar event projected from a VEVENT record.

    ``start``/``end`` keep the value type of the source: a bare date for
    all-day events, a datetime otherwise. Either may be ``None`` when the
    source omits it. ``end >= start`` is not enforced.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Event ID (UID, SEQUENCE or generated token)")
    title: str = Field(default=PLACEHOLDER_TITLE, description="Event summary")
    start: Optional[Union[datetime.datetime, datetime.date]] = Field(
        default=None, description="Event start"
    )
    end: Optional[Union[datetime.datetime, datetime.date]] = Field(
        default=None, description="Event end"
    )
    all_day: bool = Field(default=False, alias="allDay", description="Date-only event flag")
    description: str = Field(default="", description="Event description")
    location: str = Field(default="", description="Event location")

    @field_serializer("start", "end")
    def serialize_instant(
        self, value: Optional[Union[datetime.datetime, datetime.date]]
    ) -> Optional[str]:
        """Serialize instants to ISO-8601 strings."""
        return serialize_iso(value)

    def to_api_dict(self) -> dict[str, Any]:
        """JSON shape used by the HTTP API."""
        return self.model_dump(mode="json", by_alias=True)


class FetchResult(BaseModel):
    """Events produced by one retrieval, in source order."""

    events: list[CalendarEvent] = Field(default_factory=list)
    skipped: int = Field(default=0, description="Malformed records dropped by the parser")

    def to_api_dict(self) -> dict[str, Any]:
        return {"events": [event.to_api_dict() for event in self.events]}


class GridKind(str, Enum):
    """Kinds of grids the grid builder produces."""

    MONTH = "month"
    WEEK = "week"
    DAY = "day"
    LIST = "list"


class ViewMode(str, Enum):
    """User-selectable calendar views."""

    MONTH = "month"
    WEEK = "week"
    WORK_WEEK = "work_week"
    DAY = "day"
    AGENDA = "agenda"

    @property
    def grid_kind(self) -> GridKind:
        return _VIEW_TO_KIND[self]

    @property
    def visible_weekdays(self) -> tuple[int, ...]:
        """Weekday numbers (0=Monday) a display layer should show."""
        if self is ViewMode.WORK_WEEK:
            return (0, 1, 2, 3, 4)
        return (0, 1, 2, 3, 4, 5, 6)


_VIEW_TO_KIND = {
    ViewMode.MONTH: GridKind.MONTH,
    ViewMode.WEEK: GridKind.WEEK,
    ViewMode.WORK_WEEK: GridKind.WEEK,
    ViewMode.DAY: GridKind.DAY,
    ViewMode.AGENDA: GridKind.LIST,
}


@dataclass(frozen=True)
class DayCell:
    """One day slot in a month/week/day grid."""

    day: datetime.date
    muted: bool = False
    events: tuple[CalendarEvent, ...] = ()

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "day": self.day.isoformat(),
            "muted": self.muted,
            "events": [event.to_api_dict() for event in self.events],
        }


@dataclass(frozen=True)
class Grid:
    """Contiguous, chronologically ordered day cells for a reference period."""

    kind: GridKind
    reference: datetime.date
    week_start: int
    cells: tuple[DayCell, ...] = field(default_factory=tuple)

    @property
    def rows(self) -> list[tuple[DayCell, ...]]:
        if self.kind is GridKind.DAY:
            return [self.cells]
        return [self.cells[i : i + 7] for i in range(0, len(self.cells), 7)]

    @property
    def first_day(self) -> datetime.date:
        return self.cells[0].day

    @property
    def last_day(self) -> datetime.date:
        return self.cells[-1].day

    @property
    def event_count(self) -> int:
        return sum(len(cell.events) for cell in self.cells)


@dataclass(frozen=True)
class DayGroup:
    """Events whose start falls on ``day``, ordered by start."""

    day: datetime.date
    events: tuple[CalendarEvent, ...]

    def to_api_dict(self) -> dict[str, Any]:
        return {"day": self.day.isoformat(), "events": [e.to_api_dict() for e in self.events]}
