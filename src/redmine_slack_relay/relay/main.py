"""CLI entrypoint for the relay."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from pydantic import ValidationError
from sqlalchemy.exc import ArgumentError

from redmine_slack_relay import __version__
from redmine_slack_relay.relay.config import ConfigurationError, RelaySettings
from redmine_slack_relay.relay.filtering import IssueFilter
from redmine_slack_relay.relay.formatting import IssueFormatter
from redmine_slack_relay.relay.issue_relay import Failed, IssueRelay, NoNewIssues, Posted
from redmine_slack_relay.relay.logging import configure_logging
from redmine_slack_relay.relay.redmine.client import RedmineClient
from redmine_slack_relay.relay.redmine.models import format_timestamp, parse_timestamp
from redmine_slack_relay.relay.scheduler import RelayLoop
from redmine_slack_relay.relay.slack.client import SlackClient
from redmine_slack_relay.relay.storage import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Components:
    redmine: RedmineClient
    slack: SlackClient
    store: KeyValueStore
    relay: IssueRelay


@contextmanager
def build_components(settings: RelaySettings) -> Iterator[Components]:
    """Wire clients, store and relay from settings; closes them on exit."""

    redmine = RedmineClient(
        base_url=settings.redmine_base_url,
        api_key=settings.redmine_api_key,
        timeout_seconds=settings.http_timeout_seconds,
    )
    slack = SlackClient(
        webhook_url=settings.slack_webhook_url,
        enabled=not settings.slack_off,
        channel_override=settings.slack_channel_override,
        verbose=settings.verbose,
        post_delay_seconds=settings.slack_post_delay_seconds,
        timeout_seconds=settings.http_timeout_seconds,
    )
    store: KeyValueStore | None = None
    try:
        try:
            store = KeyValueStore(settings.database_url)
        except ArgumentError as e:
            raise ConfigurationError(f"DATABASE_URL: {e}") from e

        issue_filter = IssueFilter(
            project_whitelist=settings.parsed_project_whitelist(),
            user_blacklist=settings.parsed_user_blacklist(),
        )
        if not issue_filter.project_whitelist:
            logger.warning("PROJECT_WHITELIST is empty; no issue will be posted")

        relay = IssueRelay(
            redmine=redmine,
            slack=slack,
            store=store,
            issue_filter=issue_filter,
            formatter=IssueFormatter(
                base_url=settings.redmine_base_url,
                category_emoji=settings.category_emoji,
                handle_overrides=settings.slack_handle_overrides,
                icon_url=settings.redmine_icon_url,
            ),
            page_size=settings.page_size,
            initial_watermark=settings.initial_watermark,
            project_id=settings.redmine_project_id,
            status=settings.redmine_status,
        )
        yield Components(redmine=redmine, slack=slack, store=store, relay=relay)
    finally:
        redmine.close()
        slack.close()
        if store is not None:
            store.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="redmine-slack-relay",
        description="Post newly created Redmine issues to Slack",
    )
    parser.add_argument(
        "--version", action="version", version=f"redmine-slack-relay {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Poll Redmine until SIGTERM/SIGINT")
    subparsers.add_parser("once", help="Run a single polling cycle and exit")

    test_post = subparsers.add_parser("test-post", help="Send a test message to Slack")
    test_post.add_argument("--channel", required=True, help="Target channel, e.g. '#general'")
    test_post.add_argument("--text", default="this is a test!", help="Message text")

    watermark = subparsers.add_parser("watermark", help="Inspect or reset the stored watermark")
    watermark_cmds = watermark.add_subparsers(dest="watermark_command", required=True)
    watermark_cmds.add_parser("show", help="Print the stored watermark")
    watermark_set = watermark_cmds.add_parser(
        "set", help="Overwrite the stored watermark (ISO-8601)"
    )
    watermark_set.add_argument("value", help="e.g. 2015-05-11T16:37:21Z")

    return parser


def _dispatch(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    settings: RelaySettings,
    components: Components,
) -> int:
    if args.command == "run":
        loop = RelayLoop(
            relay=components.relay,
            interval_seconds=settings.poll_interval_seconds,
            check_seconds=settings.poll_check_seconds,
            slack=components.slack,
            announce_channel=settings.slack_announce_channel,
        )
        loop.install_signal_handlers()
        loop.run()
        return 0

    if args.command == "once":
        result = components.relay.run_cycle()
        if isinstance(result, Failed):
            print(f"Cycle failed: {result.error}", file=sys.stderr)
            return 1
        if isinstance(result, NoNewIssues):
            print(f"No new issues since {result.watermark or 'the beginning'}")
        elif isinstance(result, Posted):
            print(f"Posted {result.count} issues; watermark {result.watermark}")
        return 0

    if args.command == "test-post":
        posted = components.slack.post_text(channel=args.channel, text=args.text)
        if posted.error is not None:
            print(f"Test post failed: {posted.error}", file=sys.stderr)
            return 1
        print(f"Posted test message to {args.channel}")
        return 0

    if args.command == "watermark":
        if args.watermark_command == "show":
            print(components.relay.current_watermark() or "(not set)")
            return 0
        try:
            value = format_timestamp(parse_timestamp(args.value))
        except ValueError as e:
            print(f"Invalid timestamp {args.value!r}: {e}", file=sys.stderr)
            return 2
        components.relay.set_watermark(value)
        logger.info("Watermark overwritten", extra={"watermark": value})
        print(value)
        return 0

    parser.error(f"Unknown command: {args.command}")
    return 2


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = RelaySettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error:", file=sys.stderr)
        for err in e.errors():
            loc = ".".join(str(part) for part in err["loc"])
            print(f"  {loc}: {err['msg']}" if loc else f"  {err['msg']}", file=sys.stderr)
        return 2

    configure_logging(settings.effective_log_level)

    try:
        with build_components(settings) as components:
            return _dispatch(parser, args, settings, components)
    except ConfigurationError as e:
        print("Configuration error:", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        return 2
