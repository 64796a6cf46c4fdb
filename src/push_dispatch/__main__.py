"""Command-line entry point for push-dispatch.

Loads the configuration, builds a notification from the command-line
options and delivers it to the given device tokens through GCM.

Exit codes:
    0: Every recipient accepted the message (invalidated tokens included)
    1: Configuration or usage error
    2: Dispatch error (transport failure or per-recipient errors)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

from push_dispatch.core.config import (
    ConfigurationError,
    EnvironmentVariableError,
    MainConfig,
    load_main_config,
)
from push_dispatch.notifications import Notification
from push_dispatch.providers.gcm import create_provider
from push_dispatch.types import DispatchOutcome, HTTPClient
from push_dispatch.utils.http_client import AIOHTTPClient, DryRunHTTPClient
from push_dispatch.utils.logging import configure_logging

__all__ = ["main"]

DEFAULT_CONFIG_PATH: Path = Path("config/push-dispatch.yaml")

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_DISPATCH_ERROR = 2


def _key_value(text: str) -> tuple[str, str]:
    key, separator, value = text.partition("=")
    if not separator or not key:
        msg = f"expected KEY=VALUE, got {text!r}"
        raise argparse.ArgumentTypeError(msg)
    return key, value


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to ``sys.argv[1:]``)
    """
    parser = argparse.ArgumentParser(
        prog="push-dispatch",
        description="Send a push notification to one or more devices through GCM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  push-dispatch -t TOKEN --alert "Build finished"
  push-dispatch -c config.yaml -t TOKEN1 -t TOKEN2 --title CI --alert done --badge 3
  push-dispatch -t TOKEN --data-only --data job=42 --data status=ok --dry-run
        """,
    )

    _ = parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
        metavar="PATH",
    )
    _ = parser.add_argument(
        "--token",
        "-t",
        dest="tokens",
        action="append",
        required=True,
        help="Device registration token (repeat for a batch)",
        metavar="TOKEN",
    )
    _ = parser.add_argument("--alert", help="Text displayed to the user")
    _ = parser.add_argument("--title", help="Notification title")
    _ = parser.add_argument("--badge", type=int, help="Badge counter")
    _ = parser.add_argument("--sound", help="Sound played on delivery")
    _ = parser.add_argument(
        "--data",
        type=_key_value,
        action="append",
        default=[],
        help="Custom data field (repeatable)",
        metavar="KEY=VALUE",
    )
    _ = parser.add_argument(
        "--data-only",
        action="store_true",
        help="Deliver presentation fields in the data payload only",
    )
    _ = parser.add_argument("--collapse-key", help="Collapse key")
    _ = parser.add_argument(
        "--ttl",
        type=int,
        help="Seconds the gateway keeps the message for offline devices",
        metavar="SECONDS",
    )
    _ = parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the gateway request instead of sending it (overrides config)",
    )
    _ = parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration",
        metavar="LEVEL",
    )
    _ = parser.add_argument(
        "--no-syslog",
        action="store_true",
        help="Disable syslog integration",
    )

    return parser.parse_args(argv)


def build_notification(args: argparse.Namespace) -> Notification:
    """Build the notification described by the parsed arguments.

    Out-of-range values such as a negative ``--ttl`` are left unset.
    """
    fields: dict[str, object] = {}
    data: list[tuple[str, str]] = args.data  # pyright: ignore[reportAny]  # argparse boundary
    fields.update(data)

    options: dict[str, object] = {
        "alert": args.alert,  # pyright: ignore[reportAny]
        "title": args.title,  # pyright: ignore[reportAny]
        "badge": args.badge,  # pyright: ignore[reportAny]
        "sound": args.sound,  # pyright: ignore[reportAny]
        "collapse_key": args.collapse_key,  # pyright: ignore[reportAny]
        "expiration_interval": args.ttl,  # pyright: ignore[reportAny]
    }
    fields.update({name: value for name, value in options.items() if value is not None})
    if args.data_only:  # pyright: ignore[reportAny]
        fields["data_only"] = True

    return Notification.model_validate(fields)


async def dispatch(
    config: MainConfig,
    notification: Notification,
    tokens: Sequence[str],
    *,
    http_client: HTTPClient,
) -> DispatchOutcome:
    """Deliver one notification and wait for its outcome."""
    provider = create_provider(config=config.gcm, http_client=http_client)
    return await provider.push_notification(notification, tokens)


async def async_main(
    *,
    config_path: Path,
    notification: Notification,
    tokens: Sequence[str],
    dry_run: bool = False,
    log_level: str | None = None,
    enable_syslog: bool = True,
) -> DispatchOutcome:
    """Load configuration, set up logging and run one dispatch.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = load_main_config(config_path)

    if dry_run:
        config.application.dry_run = True
    if log_level is not None:
        config.application.log_level = log_level

    configure_logging(
        log_level=config.application.log_level,
        enable_syslog=enable_syslog and config.application.syslog_enabled,
        enable_console=True,
    )
    logger = logging.getLogger(__name__)
    logger.info("Dispatching %s to %d device(s)", notification, len(tokens))

    if config.application.dry_run:
        logger.info("Dry-run mode: gateway requests are logged, not sent")
        return await dispatch(config, notification, tokens, http_client=DryRunHTTPClient())

    async with AIOHTTPClient(default_timeout_seconds=config.gcm.request_timeout) as http_client:
        return await dispatch(config, notification, tokens, http_client=http_client)


def report(outcome: DispatchOutcome) -> int:
    """Print the outcome and return the matching exit code."""
    for token in outcome.invalidated:
        print(f"Device no longer registered: {token}")
    if outcome.error is not None:
        print(f"Dispatch error:\n{outcome.error}", file=sys.stderr)
        return EXIT_DISPATCH_ERROR
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> NoReturn:
    """Main entry point for the push-dispatch command."""
    args = parse_arguments(argv)

    notification = build_notification(args)

    config_path_arg: Path = args.config  # pyright: ignore[reportAny]  # argparse boundary
    tokens_arg: list[str] = args.tokens  # pyright: ignore[reportAny]  # argparse boundary
    dry_run_arg: bool = args.dry_run  # pyright: ignore[reportAny]  # argparse boundary
    log_level_arg: str | None = args.log_level  # pyright: ignore[reportAny]  # argparse boundary
    no_syslog_arg: bool = args.no_syslog  # pyright: ignore[reportAny]  # argparse boundary

    try:
        outcome = asyncio.run(
            async_main(
                config_path=config_path_arg,
                notification=notification,
                tokens=tokens_arg,
                dry_run=dry_run_arg,
                log_level=log_level_arg,
                enable_syslog=not no_syslog_arg,
            )
        )
    except (ConfigurationError, EnvironmentVariableError) as exc:
        print(f"Configuration error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(EXIT_DISPATCH_ERROR)

    sys.exit(report(outcome))


if __name__ == "__main__":
    main()
