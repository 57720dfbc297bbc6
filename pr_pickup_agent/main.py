"""Main entry point for the PR pickup agent."""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .collaborators import BrowserResourceOpener
from .config import AppConfig, load_config
from .db import init_db
from .ding import DingAlertSink
from .notifier import AlertSink
from .replay import JsonLinesEventSource, LoggingResourceOpener
from .scheduler import Scheduler, build_context
from .settings import ConfigStore
from .stats import StatsDisplay, StatsTracker, format_ratio
from .twilio_notifier import SmsAlertSink

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


def _open_settings(config: AppConfig, conn) -> ConfigStore:
    settings = ConfigStore(conn, config.default_ding_url, config.default_pickup_interval)
    settings.apply_defaults()
    return settings


def _create_sinks(config: AppConfig, settings: ConfigStore) -> List[AlertSink]:
    """Create alert sinks based on configuration."""
    sinks: List[AlertSink] = [DingAlertSink(settings)]
    if config.twilio:
        sinks.append(SmsAlertSink(config.twilio))
    return sinks


def cmd_run(args, config: AppConfig, conn) -> int:
    settings = _open_settings(config, conn)
    try:
        stream = open(args.events, "rb") if args.events else sys.stdin
    except OSError as e:
        logger.error(f"Could not open events file {args.events}: {e}")
        return 2
    source = JsonLinesEventSource(stream)
    opener = LoggingResourceOpener() if args.no_browser else BrowserResourceOpener()

    context = build_context(
        conn,
        config,
        indicator=source.indicator,
        opener=opener,
        sinks=_create_sinks(config, settings),
    )
    display = StatsDisplay(context.stats, refresh_interval=config.timing.display_refresh)
    Scheduler(context, display).run(source)
    return 0


def cmd_set_ding_url(args, config: AppConfig, conn) -> int:
    settings = _open_settings(config, conn)
    settings.ding_url = args.url or ""
    print(f"Ding sound: {settings.ding_url}")
    return 0


def cmd_set_interval(args, config: AppConfig, conn) -> int:
    settings = _open_settings(config, conn)
    try:
        settings.pickup_interval = int(args.seconds)
    except ValueError as e:
        print(f"Invalid pickup interval: {e}", file=sys.stderr)
        return 2
    print(f"Pickup interval: {settings.pickup_interval}s")
    return 0


def cmd_auto_pickup(args, config: AppConfig, conn) -> int:
    settings = _open_settings(config, conn)
    if args.state == "toggle":
        settings.auto_pickup_enabled = not settings.auto_pickup_enabled
    else:
        settings.auto_pickup_enabled = args.state == "on"
    print(f"Auto-pickup: {'on' if settings.auto_pickup_enabled else 'off'}")
    return 0


def cmd_reset_throttle(args, config: AppConfig, conn) -> int:
    settings = _open_settings(config, conn)
    settings.last_claim_timestamp = 0.0
    print("Throttle reset; the next PR can be picked up immediately.")
    return 0


def cmd_stats(args, config: AppConfig, conn) -> int:
    settings = _open_settings(config, conn)
    tracker = StatsTracker(conn, settings)
    print(tracker.summary())
    history = tracker.history(args.days)
    if not history:
        print("No stats recorded yet.")
        return 0
    print(f"{'Day':<12}{'Seen':>8}{'Claimed':>10}{'Ratio':>8}")
    for day in history:
        print(
            f"{day.day:<12}{day.items_seen:>8}{day.items_claimed:>10}"
            f"{format_ratio(tracker.ratio(day)):>8}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Watch the review queue and pick up new PRs automatically"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Process notification batches")
    run_parser.add_argument(
        "--events",
        type=str,
        default=None,
        help="JSON Lines file with recorded batches (default: read from stdin)"
    )
    run_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Log claimed PR URLs instead of opening them in a browser tab"
    )
    run_parser.set_defaults(func=cmd_run)

    ding_parser = subparsers.add_parser("set-ding-url", help="Set the ding sound URL")
    ding_parser.add_argument(
        "url",
        nargs="?",
        default="",
        help="URL of the ding sound (leave empty for default)"
    )
    ding_parser.set_defaults(func=cmd_set_ding_url)

    interval_parser = subparsers.add_parser("set-interval", help="Set the pickup interval")
    interval_parser.add_argument(
        "seconds",
        type=str,
        help="How often a PR should be picked up (in seconds)"
    )
    interval_parser.set_defaults(func=cmd_set_interval)

    auto_parser = subparsers.add_parser("auto-pickup", help="Enable or disable auto-pickup")
    auto_parser.add_argument("state", choices=["on", "off", "toggle"])
    auto_parser.set_defaults(func=cmd_auto_pickup)

    stats_parser = subparsers.add_parser("stats", help="Show pickup statistics")
    stats_parser.add_argument("--days", type=int, default=7, help="Number of days to show")
    stats_parser.set_defaults(func=cmd_stats)

    reset_parser = subparsers.add_parser("reset-throttle", help="Allow a pickup right away")
    reset_parser.set_defaults(func=cmd_reset_throttle)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command-line argument parsing."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    conn = init_db(config.db_path)
    try:
        return args.func(args, config, conn)
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
