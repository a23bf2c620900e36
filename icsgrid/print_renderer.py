"""Static, paginated print documents built from grids and agenda day groups.

Rendering is pure: the same grid, events and options always produce the same
tree. All user-supplied text enters the tree through ``escape_html``; the
serializer writes text verbatim, so there is no other path from calendar
text to markup.
"""

import datetime
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional, Union

from .models import CalendarEvent, DayGroup, Grid, GridKind
from .time_utils import day_of

logger = logging.getLogger(__name__)

MIN_FONT_SCALE = 0.5
MAX_FONT_SCALE = 2.0
BASE_FONT_SIZE_PX = 14
DEFAULT_MAX_EVENTS_PER_PAGE = 40

_HTML_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#39;",
    }
)

_VOID_TAGS = frozenset({"meta", "br", "hr"})


def escape_html(text: Optional[str]) -> str:
    """Escape HTML special characters.

    Args:
        text: Text to escape

    Returns:
        HTML-escaped text
    """
    if not text:
        return ""
    return str(text).translate(_HTML_ESCAPES)


@dataclass(frozen=True)
class DocumentNode:
    """Element of a rendered document.

    ``text`` is already escaped markup-safe text; build nodes with ``element``
    rather than setting it directly.
    """

    tag: str
    attrs: tuple[tuple[str, str], ...] = ()
    children: tuple["DocumentNode", ...] = ()
    text: str = ""

    def find_all(self, tag: str) -> list["DocumentNode"]:
        found = [self] if self.tag == tag else []
        for child in self.children:
            found.extend(child.find_all(tag))
        return found

    def attr(self, name: str) -> Optional[str]:
        for key, value in self.attrs:
            if key == name:
                return value
        return None

    def text_content(self) -> str:
        return self.text + "".join(child.text_content() for child in self.children)


def element(
    tag: str,
    text: Optional[str] = None,
    children: Sequence[DocumentNode] = (),
    **attrs: str,
) -> DocumentNode:
    """Create a node, escaping its text and attribute values.

    Attribute names use ``class_`` for ``class``.
    """
    safe_attrs = tuple((key.rstrip("_").replace("_", "-"), escape_html(value)) for key, value in attrs.items())
    return DocumentNode(tag=tag, attrs=safe_attrs, children=tuple(children), text=escape_html(text))


@dataclass(frozen=True)
class PrintOptions:
    """Options controlling the print document."""

    kind: GridKind = GridKind.LIST
    font_scale: float = 1.0
    title: Optional[str] = None
    date_range: Optional[tuple[datetime.date, datetime.date]] = None
    max_events_per_page: int = DEFAULT_MAX_EVENTS_PER_PAGE
    weekday_names: tuple[str, ...] = field(
        default=("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
    )
    # 0=Monday; cells on other weekdays are left out of grid pages
    visible_weekdays: tuple[int, ...] = (0, 1, 2, 3, 4, 5, 6)

    @property
    def effective_font_scale(self) -> float:
        return min(max(self.font_scale, MIN_FONT_SCALE), MAX_FONT_SCALE)


def _stylesheet(options: PrintOptions) -> str:
    font_px = round(BASE_FONT_SIZE_PX * options.effective_font_scale, 2)
    return (
        "@page { size: A4 portrait; margin: 20mm; }\n"
        f"body {{ font-family: Arial, Helvetica, sans-serif; color: #111; font-size: {font_px:g}px; }}\n"
        "h1 { font-size: 1.3em; margin-bottom: 8px; }\n"
        ".page { page-break-after: always; break-after: page; }\n"
        ".page:last-child { page-break-after: auto; break-after: auto; }\n"
        ".day { margin-top: 12px; margin-bottom: 6px; font-weight: bold; font-size: 1.05em; }\n"
        ".event { margin-bottom: 8px; border-bottom: 1px solid #ddd; padding-bottom: 6px; }\n"
        ".title { font-weight: bold; font-size: 1.05em; }\n"
        ".meta { color: #555; font-size: 0.95em; }\n"
        "table.grid { width: 100%; border-collapse: collapse; table-layout: fixed; }\n"
        "table.grid td, table.grid th { border: 1px solid #999; vertical-align: top; padding: 2px 4px; }\n"
        "td.muted { color: #999; background: #f4f4f4; }\n"
        ".cell-event { font-size: 0.85em; overflow: hidden; }\n"
        "@media print { body { -webkit-print-color-adjust: exact; } }\n"
    )


def format_instant(value: Optional[Union[datetime.date, datetime.datetime]], all_day: bool = False) -> str:
    if value is None:
        return ""
    if all_day or not isinstance(value, datetime.datetime):
        return day_of(value).isoformat()
    return value.strftime("%Y-%m-%d %H:%M")


def _event_block(event: CalendarEvent) -> DocumentNode:
    meta = f"{format_instant(event.start, event.all_day)} - {format_instant(event.end, event.all_day)}"
    if event.location:
        meta += f" | {event.location}"
    children = [
        element("div", event.title, class_="title"),
        element("div", meta, class_="meta"),
    ]
    if event.description:
        children.append(element("div", event.description, class_="desc"))
    return element("div", children=children, class_="event")


def _paginate_groups(groups: Sequence[DayGroup], per_page: int) -> list[list[tuple[DayGroup, bool]]]:
    """Split day groups into pages of at most ``per_page`` events.

    Each page entry is ``(group_slice, continued)``; a day split across
    pages is marked continued on every page after the first.
    """
    per_page = max(1, per_page)
    pages: list[list[tuple[DayGroup, bool]]] = []
    current: list[tuple[DayGroup, bool]] = []
    room = per_page
    for group in groups:
        events = list(group.events)
        continued = False
        while events:
            if room == 0:
                pages.append(current)
                current, room = [], per_page
            chunk, events = events[:room], events[room:]
            current.append((DayGroup(day=group.day, events=tuple(chunk)), continued))
            room -= len(chunk)
            continued = True
    if current:
        pages.append(current)
    return pages


def render_list(groups: Sequence[DayGroup], options: PrintOptions) -> list[DocumentNode]:
    """Page sections for agenda day groups."""
    total = sum(len(group.events) for group in groups)
    heading = options.title or "Calendar"
    heading = f"{heading}: {total} events"
    if options.date_range:
        start_day, end_day = options.date_range
        heading += f" ({start_day.isoformat()} - {end_day.isoformat()})"

    if total == 0:
        return [
            element(
                "section",
                children=[
                    element("h1", heading),
                    element("p", "No events in the selected range.", class_="empty"),
                ],
                class_="page",
            )
        ]

    sections = []
    for page_number, page in enumerate(_paginate_groups(groups, options.max_events_per_page)):
        children = [element("h1", heading)] if page_number == 0 else []
        for group, continued in page:
            label = group.day.isoformat() + (" (continued)" if continued else "")
            children.append(element("div", label, class_="day"))
            children.extend(_event_block(event) for event in group.events)
        sections.append(element("section", children=children, class_="page"))
    return sections


def render_grid(grid: Grid, options: PrintOptions) -> list[DocumentNode]:
    """A single page holding the grid as a table, one row per grid row.

    Only cells whose weekday is in ``options.visible_weekdays`` become columns.
    """
    visible_rows = [
        [cell for cell in row if cell.day.weekday() in options.visible_weekdays] for row in grid.rows
    ]
    # A grid with no visible weekday (a Saturday day view) is printed whole
    visible_rows = [row for row in visible_rows if row] or [list(row) for row in grid.rows]
    first_day = visible_rows[0][0].day
    last_day = visible_rows[-1][-1].day

    heading = options.title or f"{grid.kind.value.capitalize()} of {grid.reference.isoformat()}"
    heading = f"{heading}: {first_day.isoformat()} - {last_day.isoformat()}"

    header_cells = [element("th", options.weekday_names[cell.day.weekday()]) for cell in visible_rows[0]]

    rows = []
    for row in visible_rows:
        cells = []
        for cell in row:
            entries = [element("div", str(cell.day.day), class_="day-number")]
            for event in cell.events:
                prefix = ""
                if not event.all_day and isinstance(event.start, datetime.datetime):
                    prefix = event.start.strftime("%H:%M ")
                entries.append(element("div", prefix + event.title, class_="cell-event"))
            cells.append(
                element(
                    "td",
                    children=entries,
                    class_="muted" if cell.muted else "day-cell",
                    data_day=cell.day.isoformat(),
                )
            )
        rows.append(element("tr", children=cells))

    table = element(
        "table",
        children=[element("thead", children=[element("tr", children=header_cells)]), element("tbody", children=rows)],
        class_=f"grid grid-{grid.kind.value}",
    )
    return [element("section", children=[element("h1", heading), table], class_="page")]


def render(source: Union[Grid, Sequence[DayGroup]], options: Optional[PrintOptions] = None) -> DocumentNode:
    """Build the print document tree for a grid or agenda day groups.

    Args:
        source: Populated Grid, or the day groups of a list view
        options: Print options; the kind is taken from a Grid source

    Returns:
        Root ``html`` DocumentNode
    """
    options = options or PrintOptions()
    if isinstance(source, Grid):
        pages = render_grid(source, options)
        kind = source.kind
    else:
        pages = render_list(source, options)
        kind = GridKind.LIST

    head = element(
        "head",
        children=[
            element("meta", charset="utf-8"),
            element("title", options.title or "Calendar"),
            element("style", _stylesheet(options)),
        ],
    )
    body = element("body", children=pages, class_=f"print print-{kind.value}")
    logger.debug("Rendered %s print document with %d pages", kind.value, len(pages))
    return element("html", children=[head, body], lang="en")


def to_html(node: DocumentNode) -> str:
    """Serialize a document tree to an HTML5 string."""
    return "<!doctype html>" + _serialize(node)


def _serialize(node: DocumentNode) -> str:
    attrs = "".join(f' {key}="{value}"' for key, value in node.attrs)
    if node.tag in _VOID_TAGS:
        return f"<{node.tag}{attrs}>"
    inner = node.text + "".join(_serialize(child) for child in node.children)
    return f"<{node.tag}{attrs}>{inner}</{node.tag}>"
