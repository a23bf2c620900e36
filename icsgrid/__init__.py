"""icsgrid - ICS calendar proxy and calendar grid backend.

This module keeps imports light so the package version can be read without
pulling in the server stack; runtime modules are imported inside the entry
points.
"""

__version__ = "0.1.0"

from typing import Any, Optional


def _load_config(args: Optional[Any]) -> Any:
    """Load configuration and apply command line overrides."""
    import logging

    from .config_loader import load_config

    logger = logging.getLogger(__name__)
    cfg = load_config(getattr(args, "config", None))

    port = getattr(args, "port", None)
    if port is not None:
        cfg.server_port = int(port)
        logger.debug("Applied command line port override: %d", cfg.server_port)
    bind = getattr(args, "bind", None)
    if bind:
        cfg.server_bind = bind
        logger.debug("Applied command line bind override: %s", bind)
    if getattr(args, "debug", False):
        cfg.debug_logging = True
    return cfg


def run_server(args: Optional[Any] = None) -> None:
    """Start the icsgrid HTTP server.

    Args:
        args: Optional command line namespace with ``port``, ``bind``,
            ``config`` and ``debug``
    """
    from .logging_setup import configure_logging

    # Early logging so config loading messages are visible
    configure_logging(debug_mode=bool(getattr(args, "debug", False)))

    from .server import start_server

    start_server(_load_config(args))


def run_print(args: Any) -> int:
    """Fetch one calendar and write its print document.

    Args:
        args: Command line namespace of the ``print`` command

    Returns:
        Process exit code (0 on success, 1 on retrieval or range errors)
    """
    import asyncio
    import logging
    import sys

    from .exceptions import IcsGridError
    from .grid_builder import build_for_view, default_list_range, parse_view, parse_week_start
    from .logging_setup import configure_logging
    from .pipeline import CalendarLoader
    from .print_renderer import PrintOptions, render, to_html
    from .time_utils import today_utc

    configure_logging(debug_mode=bool(getattr(args, "debug", False)))
    logger = logging.getLogger(__name__)
    cfg = _load_config(args)

    async def _load() -> Any:
        loader = CalendarLoader(cfg)
        try:
            return await loader.load(args.url)
        finally:
            loader.close()

    try:
        view = parse_view(args.view)
        reference = args.date or today_utc()
        week_start = parse_week_start(
            args.week_start if args.week_start is not None else cfg.week_start
        )
        default_from, default_to = default_list_range(reference)
        date_range = (args.date_from or default_from, args.date_to or default_to)

        result = asyncio.run(_load())
        built = build_for_view(
            view, reference, result.events, week_start=week_start, date_range=date_range
        )
    except IcsGridError as e:
        logger.error("Could not build print document: %s", e.message)
        return 1

    document = to_html(
        render(
            built,
            PrintOptions(
                kind=view.grid_kind,
                font_scale=args.font_scale,
                title=args.title,
                date_range=date_range,
                visible_weekdays=view.visible_weekdays,
            ),
        )
    )
    if args.output and args.output != "-":
        with open(args.output, "w", encoding="utf-8") as handle:
            handle.write(document)
        logger.info("Wrote print document to %s", args.output)
    else:
        sys.stdout.write(document)
    return 0
