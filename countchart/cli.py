from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Sequence

from countchart.adapters import normalize_observations
from countchart.errors import InvalidInput, RenderFailure
from countchart.periods import DEFAULT_LOCALE, DateScale
from countchart.request import CountByDateChartRequest
from countchart.series import aggregate
from countchart.service import ChartService
from countchart.style import DEFAULT_STYLE, load_style


LOGGER = logging.getLogger(__name__)

EXIT_INVALID_INPUT = 2
EXIT_RENDER_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="countchart")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    scales = [s.value for s in DateScale]

    render = sub.add_parser("render", help="Render a JSON list of {date, count} objects as a PNG chart.")
    render.add_argument("input", type=Path)
    render.add_argument("--out", type=Path, required=True)
    render.add_argument("--scale", choices=scales, default=DateScale.DAY.value)
    render.add_argument("--timezone", default="UTC")
    render.add_argument("--display-timezone", default=None, help="Timezone used to print tick dates (defaults to --timezone).")
    render.add_argument("--locale", default=DEFAULT_LOCALE)
    render.add_argument("--width", type=int, default=800)
    render.add_argument("--height", type=int, default=500)
    render.add_argument("--title", default="Count by date")
    render.add_argument("--trend-title", default="Trend")
    render.add_argument("--x-label", default="Date")
    render.add_argument("--y-label", default="Count")
    render.add_argument("--style", type=Path, default=None, help="TOML file with style overrides.")

    agg = sub.add_parser("aggregate", help="Print the per-period totals of a JSON input as JSON.")
    agg.add_argument("input", type=Path)
    agg.add_argument("--scale", choices=scales, default=DateScale.DAY.value)
    agg.add_argument("--timezone", default="UTC")
    agg.add_argument("--locale", default=DEFAULT_LOCALE)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "render":
            return _render(args)
        if args.command == "aggregate":
            return _aggregate(args)
    except InvalidInput as exc:
        print(f"invalid input: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    except RenderFailure as exc:
        print(f"render failed: {exc}", file=sys.stderr)
        return EXIT_RENDER_FAILURE

    raise RuntimeError(f"unsupported command: {args.command}")


def _render(args: argparse.Namespace) -> int:
    style = DEFAULT_STYLE
    if args.style is not None:
        try:
            style = load_style(args.style)
        except FileNotFoundError as exc:
            raise InvalidInput(str(exc)) from exc
        LOGGER.debug("loaded style overrides from %s", args.style)
    request = CountByDateChartRequest.create(
        _read_json(args.input),
        scale=args.scale,
        timezone=args.timezone,
        width=args.width,
        height=args.height,
        chart_title=args.title,
        trend_title=args.trend_title,
        x_axis_label=args.x_label,
        y_axis_label=args.y_label,
        date_locale=args.locale,
        presentation_timezone=args.display_timezone,
    )
    service = ChartService(style=style)
    try:
        with args.out.open("wb") as f:
            service.generate_count_by_date_png(request, f)
    except OSError as exc:
        raise RenderFailure(f"cannot write {args.out}: {exc}") from exc
    print(f"wrote {args.out} ({request.width}x{request.height}, {len(request.data)} observations)")
    return 0


def _aggregate(args: argparse.Namespace) -> int:
    observations = normalize_observations(_read_json(args.input))
    series = aggregate(observations, args.scale, args.timezone, args.locale)
    rows = [{"period_start": p.period.start_date.isoformat(), "value": p.value} for p in series]
    print(json.dumps(rows, indent=2))
    return 0


def _read_json(path: Path) -> object:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as exc:
        raise InvalidInput(f"input file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise InvalidInput(f"input is not valid JSON: {exc}") from exc
