"""Forgiving ICS parsing into canonical CalendarEvent objects.

The text is split into raw component records by tracking ``BEGIN:``/``END:``
lines. Every ``VEVENT`` record is handed to icalendar on its own, wrapped in a
minimal ``VCALENDAR`` together with the document's ``VTIMEZONE`` definitions
so ``TZID`` references resolve to real offsets. A record that fails to parse
becomes a ``SkippedRecord``; it never aborts the batch.
"""

import datetime
import logging
import re
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Optional, Union

from icalendar import Calendar
from icalendar import Event as ICalEvent

from .models import PLACEHOLDER_TITLE, CalendarEvent, FetchResult

logger = logging.getLogger(__name__)

TIME_PROPERTIES = ("DTSTART", "DTEND", "DURATION")

# Content lines end in CRLF; bare LF and CR are accepted. Other Unicode line
# breaks are legal inside TEXT values.
LINE_BREAK = re.compile(r"\r\n|\n|\r")


@dataclass(frozen=True)
class RawRecord:
    """Lines of one component record, with its position in the source."""

    index: int
    name: str
    lines: tuple[str, ...]
    terminated: bool

    @property
    def text(self) -> str:
        return "\r\n".join(self.lines) + "\r\n"


@dataclass(frozen=True)
class ParsedRecord:
    index: int
    event: CalendarEvent


@dataclass(frozen=True)
class SkippedRecord:
    index: int
    reason: str


RecordResult = Union[ParsedRecord, SkippedRecord]


def iter_records(text: str, component: str = "VEVENT") -> Iterator[RawRecord]:
    """Yield raw records of ``component`` type in source order.

    Records are found at any nesting depth, so events from several
    ``VCALENDAR`` blocks in one document are all returned. Sub-components
    such as ``VALARM`` stay inside their parent record. A record that is not
    closed before the next record of the same type, or before the end of the
    text, is yielded with ``terminated=False``.
    """
    target = component.upper()
    current: list[str] = []
    depth = 0
    index = 0

    for line in LINE_BREAK.split(text):
        # Folded continuation lines belong to the property above them
        if line[:1] in (" ", "\t"):
            if current:
                current.append(line)
            continue
        upper = line.strip().upper()
        if not upper:
            continue

        if upper == f"BEGIN:{target}":
            if current:
                yield RawRecord(index, target, tuple(current), terminated=False)
                index += 1
            current = [line.strip()]
            depth = 1
            continue

        if not current:
            continue

        current.append(line)
        if upper.startswith("BEGIN:"):
            depth += 1
        elif upper.startswith("END:"):
            depth -= 1
            if depth == 0:
                terminated = upper == f"END:{target}"
                yield RawRecord(index, target, tuple(current), terminated=terminated)
                index += 1
                current = []

    if current:
        yield RawRecord(index, target, tuple(current), terminated=False)


def _text_value(component: ICalEvent, name: str) -> str:
    value = component.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def _decoded_time(component: ICalEvent, name: str) -> Optional[Any]:
    """Return the decoded value of a time property, or None when absent.

    Raises:
        ValueError: If the property is present but has no usable value
    """
    if name not in component:
        return None
    prop = component[name]
    if isinstance(prop, list):
        prop = prop[0]
    value = getattr(prop, "dt", None)
    if name == "DURATION":
        if not isinstance(value, datetime.timedelta):
            raise ValueError(f"{name} is not a duration")
        return value
    if not isinstance(value, (datetime.date, datetime.datetime)):
        raise ValueError(f"{name} is not a date or date-time")
    return value


def _event_id(component: ICalEvent) -> str:
    uid = component.get("UID")
    if uid is not None and str(uid).strip():
        return str(uid)
    sequence = component.get("SEQUENCE")
    if sequence is not None and str(sequence).strip():
        return str(sequence)
    return uuid.uuid4().hex


def project_event(component: ICalEvent) -> CalendarEvent:
    """Project a parsed VEVENT component into a CalendarEvent.

    Raises:
        ValueError: If a time property is present but broken
    """
    broken = [name for name, _ in getattr(component, "errors", []) if str(name).upper() in TIME_PROPERTIES]
    if broken:
        raise ValueError(f"invalid {', '.join(broken)}")

    start = _decoded_time(component, "DTSTART")
    end = _decoded_time(component, "DTEND")
    if end is None and start is not None:
        duration = _decoded_time(component, "DURATION")
        end = start + duration if duration is not None else start

    summary = component.get("SUMMARY")
    title = str(summary) if summary is not None and str(summary) else PLACEHOLDER_TITLE

    return CalendarEvent(
        id=_event_id(component),
        title=title,
        start=start,
        end=end,
        all_day=start is not None and not isinstance(start, datetime.datetime),
        description=_text_value(component, "DESCRIPTION"),
        location=_text_value(component, "LOCATION"),
    )


def collect_timezones(text: str) -> tuple[str, ...]:
    """Return the ``VTIMEZONE`` records of a document that icalendar accepts.

    A broken definition is dropped on its own so it cannot take the events
    that do not reference it down with it.
    """
    timezones: list[str] = []
    for record in iter_records(text, "VTIMEZONE"):
        if not record.terminated:
            logger.warning("Ignoring unterminated VTIMEZONE #%d", record.index)
            continue
        try:
            Calendar.from_ical(_wrap(record.text))
        except Exception as e:
            logger.warning("Ignoring malformed VTIMEZONE #%d: %s", record.index, e)
            continue
        timezones.append(record.text)
    return tuple(timezones)


def _wrap(*records: str) -> str:
    return "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//icsgrid//EN\r\n" + "".join(records) + "END:VCALENDAR\r\n"


def parse_record(record: RawRecord, timezones: tuple[str, ...] = ()) -> RecordResult:
    """Parse one raw record; every failure becomes a SkippedRecord.

    Args:
        record: VEVENT record from ``iter_records``
        timezones: ``VTIMEZONE`` record texts that ``TZID`` parameters may name
    """
    if not record.terminated:
        return SkippedRecord(record.index, "unterminated record")
    try:
        calendar = Calendar.from_ical(_wrap(*timezones, record.text))
        components = calendar.walk("VEVENT")
        if len(components) != 1 or not isinstance(components[0], ICalEvent):
            return SkippedRecord(record.index, f"expected one VEVENT, found {len(components)}")
        return ParsedRecord(record.index, project_event(components[0]))
    except Exception as e:
        return SkippedRecord(record.index, str(e) or type(e).__name__)


def normalize_with_report(text: Optional[str]) -> FetchResult:
    """Parse ICS text into a FetchResult, counting skipped records.

    Args:
        text: Raw ICS document

    Returns:
        FetchResult with events in source order
    """
    if not text or not text.strip():
        return FetchResult(events=[])

    timezones = collect_timezones(text)
    events: list[CalendarEvent] = []
    skipped = 0
    for record in iter_records(text):
        result = parse_record(record, timezones)
        if isinstance(result, ParsedRecord):
            events.append(result.event)
        else:
            skipped += 1
            logger.warning("Skipping malformed VEVENT #%d: %s", result.index, result.reason)

    logger.debug("Normalized %d events (%d skipped, %d timezones)", len(events), skipped, len(timezones))
    return FetchResult(events=events, skipped=skipped)


def normalize(text: Optional[str]) -> list[CalendarEvent]:
    """Parse ICS text into events; malformed records are dropped.

    Never raises for malformed input. Output keeps source record order.
    """
    return normalize_with_report(text).events
