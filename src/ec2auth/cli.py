"""CLI entry point for EC2 authentication and load generation.

Usage:
    ec2auth --auth-url https://keystone.example.com:5000/v3 --access AK --secret SK
    ec2auth --threads 50 --show-error
    OS_AUTH_URL=... AWS_ACCESS_KEY_ID=... AWS_SECRET_ACCESS_KEY=... ec2auth --debug
"""

import argparse
import sys

import httpx
from pydantic import ValidationError

from ec2auth.client import AuthClient
from ec2auth.config import EC2AuthSettings
from ec2auth.exceptions import ConfigurationError
from ec2auth.harness import LoadHarness
from ec2auth.logging import HttpTrafficLogger, configure_logging, get_logger
from ec2auth.transport import build_transport

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Every option defaults to None so unset flags fall back to the environment.
    """
    parser = argparse.ArgumentParser(
        prog="ec2auth",
        description="Obtain a Keystone token with EC2 credentials, optionally under load",
    )
    parser.add_argument("--auth-url", type=str, default=None, help="Keystone auth URL")
    parser.add_argument("--host", type=str, default=None, help="override keystone HOST")
    parser.add_argument("--access", type=str, default=None, help="EC2 access")
    parser.add_argument("--secret", type=str, default=None, help="EC2 secret")
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Whether to run an infinite loop with an amount of threads",
    )
    parser.add_argument(
        "--insecure-tls",
        action="store_true",
        default=None,
        help="Whether to ignore server TLS certificate verification",
    )
    parser.add_argument("--debug", action="store_true", default=None, help="show debug logs")
    parser.add_argument(
        "--show-error",
        action="store_true",
        default=None,
        help="show error type on auth failure",
    )
    parser.add_argument(
        "--max-retries", type=int, default=None, help="Connection retries before giving up"
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=None,
        help="Log renderer",
    )
    return parser


def load_settings(args: argparse.Namespace) -> EC2AuthSettings:
    """Merge CLI values over the environment.

    Raises:
        ConfigurationError: Required values are missing or invalid
    """
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    try:
        settings = EC2AuthSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        ) from e
    settings.ensure_complete()
    return settings


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit code.

    Returns 0 on success, 1 on configuration, startup or single-shot failure,
    and 130 when interrupted.
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except ConfigurationError as e:
        configure_logging()
        for problem in e.problems:
            logger.error(problem)
        return 1

    configure_logging(debug=settings.debug, log_format=settings.log_format)

    traffic_logger = HttpTrafficLogger() if settings.debug else None
    try:
        transport = build_transport(settings, traffic_logger)
        client = AuthClient(
            settings.auth_url,
            transport=transport,
            timeout=httpx.Timeout(settings.read_timeout, connect=settings.connect_timeout),
        )
    except (OSError, ValueError) as e:
        logger.error("client_setup_failed", error=str(e))
        return 1

    with client:
        harness = LoadHarness(
            client,
            settings.credentials(),
            threads=settings.threads,
            show_errors=settings.show_error,
            debug=settings.debug,
            report_interval=settings.report_interval,
        )

        if settings.threads == 0:
            return harness.run_single_shot()

        try:
            harness.run()
        except KeyboardInterrupt:
            logger.info("load_interrupted")
            return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
