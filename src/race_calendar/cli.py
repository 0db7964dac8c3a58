"""Command-line interface for race date recommendations."""

import argparse
import asyncio
import datetime
import json
import logging
import sys

from pydantic import TypeAdapter, ValidationError

from race_calendar.config import Settings, get_settings
from race_calendar.models.calendar import ConflictingEvent
from race_calendar.models.constraints import EventConstraints, Persona
from race_calendar.models.location import Coordinates, Location
from race_calendar.models.score import DayScore, DayStatus
from race_calendar.planner.session import AnalysisResult, AnalysisSession
from race_calendar.providers.openholidays import OpenHolidaysProvider
from race_calendar.providers.openmeteo import OpenMeteoArchiveProvider
from race_calendar.providers.ratelimit import RateLimiter
from race_calendar.scoring.assembler import rank_days

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2

STATUS_MARKERS = {
    DayStatus.GREEN: "+",
    DayStatus.YELLOW: "~",
    DayStatus.RED: "-",
}

EVENT_LIST = TypeAdapter(list[ConflictingEvent])


def _parse_month(value: str) -> datetime.date:
    try:
        return datetime.datetime.strptime(value, "%Y-%m").date()
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid month: '{value}'. Expected YYYY-MM (e.g., '2026-05')"
        )


def _parse_date(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date: '{value}'. Expected YYYY-MM-DD"
        )


def _parse_coordinates(value: str) -> Coordinates:
    try:
        return Coordinates.from_string(value)
    except (ValueError, ValidationError) as e:
        raise argparse.ArgumentTypeError(str(e))


def _load_events(path: str) -> list[ConflictingEvent]:
    try:
        with open(path, encoding="utf-8") as f:
            return EVENT_LIST.validate_json(f.read())
    except OSError as e:
        raise argparse.ArgumentTypeError(
            f"Cannot read events file '{path}': {e.strerror}"
        )
    except ValidationError as e:
        raise argparse.ArgumentTypeError(
            f"Invalid events file '{path}': {e.error_count()} invalid value(s)"
        )


def _add_constraint_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "location",
        type=_parse_coordinates,
        help="Event location as lat,lon coordinates",
    )
    parser.add_argument(
        "--month",
        type=_parse_month,
        required=True,
        help="Target month (YYYY-MM)",
    )
    parser.add_argument("--name", help="Display name for the location")
    parser.add_argument("--timezone", help="IANA timezone of the start time")
    parser.add_argument(
        "--point",
        dest="route",
        type=_parse_coordinates,
        action="append",
        help="Route sample point (lat,lon); repeat for each point",
    )
    parser.add_argument("--state", default="BY", help="Region code for holidays")
    parser.add_argument(
        "--persona",
        choices=[p.value for p in Persona],
        default=Persona.COMPETITION.value,
        help="Scoring persona",
    )
    parser.add_argument("--start", default="07:00", help="Race start time (HH:MM)")
    parser.add_argument(
        "--duration", type=float, default=10.0, help="Race duration in hours"
    )
    parser.add_argument(
        "--distance", type=float, default=70.0, help="Race distance in km"
    )
    parser.add_argument(
        "--min-training-weeks",
        type=int,
        default=12,
        help="Weeks of preparation required",
    )
    parser.add_argument(
        "--block",
        type=_parse_date,
        action="append",
        default=[],
        help="Blocked date (YYYY-MM-DD); repeatable",
    )
    parser.add_argument(
        "--no-training",
        action="store_true",
        help="Ignore training lead time",
    )
    parser.add_argument(
        "--allow-weekdays", action="store_true", help="Allow Monday to Friday"
    )
    parser.add_argument(
        "--no-weekends", action="store_true", help="Disallow Saturday and Sunday"
    )
    parser.add_argument(
        "--no-holidays", action="store_true", help="Ignore holidays"
    )
    parser.add_argument(
        "--penalize-holidays",
        action="store_true",
        help="Treat holidays as crowded instead of free time",
    )
    parser.add_argument(
        "--events",
        type=_load_events,
        help="JSON file with a list of other events; enables the conflict check",
    )
    parser.add_argument(
        "--conflict-radius",
        type=float,
        default=50.0,
        help="Radius in km within which another event conflicts",
    )
    parser.add_argument(
        "--year",
        dest="full_year",
        action="store_true",
        help="Score the whole year instead of the target month",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON output")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="race-calendar",
        description=f"{settings.app_name} - Find the best date for an endurance event",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {settings.app_version}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    score_parser = subparsers.add_parser(
        "score", help="Score every day of the target month"
    )
    _add_constraint_arguments(score_parser)

    top_parser = subparsers.add_parser("top", help="List the best days")
    _add_constraint_arguments(top_parser)
    top_parser.add_argument(
        "--limit", type=int, default=10, help="Number of days to list"
    )

    return parser


def constraints_from_args(args: argparse.Namespace) -> EventConstraints:
    """Build validated constraints from parsed arguments.

    Raises:
        ValidationError: If the constraints are invalid
    """
    return EventConstraints(
        target_month=args.month,
        location=Location(
            coordinates=args.location, name=args.name, timezone=args.timezone
        ),
        state_code=args.state,
        min_training_weeks=args.min_training_weeks,
        race_start_time=args.start,
        race_duration_hours=args.duration,
        distance_km=args.distance,
        blocked_dates=frozenset(args.block),
        negative_holiday_impact=args.penalize_holidays,
        incorporate_training_time=not args.no_training,
        allow_weekends=not args.no_weekends,
        allow_weekdays=args.allow_weekdays,
        consider_holidays=not args.no_holidays,
        check_conflicting_events=bool(args.events),
        conflict_radius_km=args.conflict_radius,
        persona=Persona(args.persona),
    )


def format_day(score: DayScore) -> str:
    """One line per day: marker, date, score and reasons."""
    marker = STATUS_MARKERS[score.status]
    reasons = "; ".join(score.reasons) if score.reasons else "-"
    return f"{marker} {score.date:%a %Y-%m-%d} {score.score:3d}  {reasons}"


async def run_analysis(
    constraints: EventConstraints,
    args: argparse.Namespace,
    settings: Settings,
) -> AnalysisResult | None:
    """Fetch weather history and holidays, then score."""
    common = {"user_agent": settings.http_user_agent, "timeout": settings.request_timeout_seconds}
    async with OpenMeteoArchiveProvider(
        base_url=settings.weather_archive_url, **common
    ) as weather, OpenHolidaysProvider(
        country_code=settings.holiday_country_code,
        language_code=settings.holiday_language_code,
        base_url=settings.holidays_api_url,
        **common,
    ) as holidays:
        session = AnalysisSession(
            weather,
            holidays,
            limiter=RateLimiter(interval=settings.request_interval_seconds),
            settings=settings,
        )
        return await session.analyze(
            constraints,
            route=args.route,
            conflicting_events=args.events,
            full_year=args.full_year,
        )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose or settings.debug else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        constraints = constraints_from_args(args)
    except ValidationError as e:
        print(f"Invalid constraints:\n{e}", file=sys.stderr)
        return EXIT_INVALID

    result = asyncio.run(run_analysis(constraints, args, settings))
    if result is None:
        print("Analysis was superseded", file=sys.stderr)
        return EXIT_ERROR

    if result.rate_limited:
        print(
            "Warning: weather archive rate limit hit for "
            f"{', '.join(map(str, result.weather.rate_limited_years))}; "
            "statistics use fewer years",
            file=sys.stderr,
        )

    scores = result.scores
    if args.command == "top":
        scores = rank_days(scores, limit=args.limit)

    if args.json:
        print(json.dumps([s.model_dump(mode="json") for s in scores], indent=2))
    else:
        print(f"{constraints.location.display_name()} ({constraints.persona.value})")
        for score in scores:
            print(format_day(score))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
