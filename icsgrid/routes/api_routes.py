"""Main API routes for icsgrid."""

from __future__ import annotations

import datetime
import logging
from typing import Any, Optional

from aiohttp import web

from .. import __version__
from ..exceptions import GridRangeError, IcsGridError
from ..grid_builder import build_for_view, default_list_range, parse_view, parse_week_start
from ..models import FetchResult, Grid, ViewMode
from ..pipeline import retrieve_calendar
from ..print_renderer import PrintOptions, render, to_html
from ..time_utils import parse_day, today_utc

logger = logging.getLogger(__name__)


def error_response(error: IcsGridError) -> web.Response:
    """Translate a pipeline error into its JSON response."""
    return web.json_response(error.to_payload(), status=error.http_status)


def _query_day(request: web.Request, name: str, default: Optional[datetime.date]) -> Optional[datetime.date]:
    raw = request.query.get(name)
    if not raw:
        return default
    try:
        return parse_day(raw)
    except (ValueError, OverflowError):
        raise GridRangeError(f"Invalid {name} date: {raw}") from None


def _query_float(request: web.Request, name: str, default: float) -> float:
    raw = request.query.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise GridRangeError(f"Invalid {name}: {raw}") from None


class GridRequest:
    """Grid inputs read from query parameters."""

    def __init__(self, request: web.Request, config: Any) -> None:
        self.view: ViewMode = parse_view(request.query.get("view"))
        self.reference = _query_day(request, "date", today_utc()) or today_utc()
        self.week_start = parse_week_start(
            request.query.get("week_start") or getattr(config, "week_start", None)
        )
        default_from, default_to = default_list_range(self.reference)
        self.range_start = _query_day(request, "from", default_from) or default_from
        self.range_end = _query_day(request, "to", default_to) or default_to

    def build(self, result: FetchResult) -> Any:
        return build_for_view(
            self.view,
            self.reference,
            result.events,
            week_start=self.week_start,
            date_range=(self.range_start, self.range_end),
        )


def register_api_routes(app: web.Application, config: Any, client_provider: Any) -> None:
    """Register main API routes.

    Args:
        app: aiohttp web application
        config: Application configuration
        client_provider: Coroutine function returning the shared httpx client
            (or None to let each fetch create its own)
    """

    async def _retrieve(request: web.Request) -> FetchResult:
        client = await client_provider() if client_provider else None
        return await retrieve_calendar(request.query.get("url", ""), config, client)

    async def get_ics(request: web.Request) -> web.Response:
        """Fetch and normalize a remote calendar."""
        try:
            result = await _retrieve(request)
        except IcsGridError as e:
            return error_response(e)
        except Exception as e:
            logger.exception("Error fetching/parsing ics")
            return web.json_response(
                {"error": "Failed to fetch or parse ICS", "details": str(e)}, status=500
            )
        return web.json_response(result.to_api_dict())

    async def get_grid(request: web.Request) -> web.Response:
        """Fetch a calendar and return the grid for the requested view."""
        try:
            grid_request = GridRequest(request, config)
            result = await _retrieve(request)
            built = grid_request.build(result)
        except IcsGridError as e:
            return error_response(e)
        except Exception as e:
            logger.exception("Error building calendar grid")
            return web.json_response(
                {"error": "Failed to fetch or parse ICS", "details": str(e)}, status=500
            )

        view = grid_request.view
        if isinstance(built, Grid):
            return web.json_response(
                {
                    "view": view.value,
                    "kind": built.kind.value,
                    "reference": built.reference.isoformat(),
                    "weekStart": built.week_start,
                    "visibleWeekdays": list(view.visible_weekdays),
                    "rows": [[cell.to_api_dict() for cell in row] for row in built.rows],
                }
            )
        return web.json_response(
            {
                "view": view.value,
                "kind": view.grid_kind.value,
                "from": grid_request.range_start.isoformat(),
                "to": grid_request.range_end.isoformat(),
                "groups": [group.to_api_dict() for group in built],
            }
        )

    async def get_print(request: web.Request) -> web.Response:
        """Fetch a calendar and return its printable HTML document."""
        try:
            grid_request = GridRequest(request, config)
            font_scale = _query_float(request, "font_scale", 1.0)
            result = await _retrieve(request)
            built = grid_request.build(result)
        except IcsGridError as e:
            return error_response(e)
        except Exception as e:
            logger.exception("Error rendering print document")
            return web.json_response(
                {"error": "Failed to fetch or parse ICS", "details": str(e)}, status=500
            )

        options = PrintOptions(
            kind=grid_request.view.grid_kind,
            font_scale=font_scale,
            date_range=(grid_request.range_start, grid_request.range_end),
            visible_weekdays=grid_request.view.visible_weekdays,
        )
        return web.Response(text=to_html(render(built, options)), content_type="text/html")

    async def health_check(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "version": __version__})

    app.router.add_get("/api/ics", get_ics)
    app.router.add_get("/api/grid", get_grid)
    app.router.add_get("/api/print", get_print)
    app.router.add_get("/api/health", health_check)

    logger.debug("API routes registered")
