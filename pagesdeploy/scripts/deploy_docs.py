"""Publish generated crate documentation to the repository's static-hosting branch.

Run without arguments to update an existing publishing branch, or with
``--setup`` once to create it. Settings come from the environment:

- PAGES_SOURCE_DIR: crate directory (default: current directory).
- PAGES_TARGET_DIR: cargo build output directory (default: ``cargo metadata``).
- PAGES_CRATE_NAME: crate to publish (default: ``[package].name`` in Cargo.toml).
- PAGES_BRANCH: publishing branch (default: ``gh-pages``).
- PAGES_CONFIG: YAML settings file (default: ``.pages.yml`` in the crate directory).
- PAGES_KEEP_WORKDIR: keep the staging directory when a run fails.
- PAGES_LOG_LEVEL: console log level (default: ``INFO``).
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import NoReturn, Sequence

from pagesdeploy.models.deploy import DeployConfig, DeployError, DeployMode
from pagesdeploy.services.builder import CargoDocBuilder
from pagesdeploy.services.environment import resolve_config
from pagesdeploy.services.publisher import PagesPublisher, SupportsDocBuild
from pagesdeploy.utils.console import configure_logging

LOGGER = logging.getLogger("pagesdeploy.deploy")

SETUP_FLAG = "--setup"
USAGE_EXIT_STATUS = 1


class _UsageParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(USAGE_EXIT_STATUS, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = _UsageParser(
        prog="deploy-docs",
        description="Publish crate documentation to the static-hosting branch.",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument(
        SETUP_FLAG,
        dest="setup",
        action="store_true",
        help="Create the publishing branch instead of updating it",
    )
    return parser


def resolve_mode(argv: Sequence[str]) -> DeployMode:
    """Return the operating mode, exiting with status 1 on unrecognised arguments."""

    parser = _build_parser()
    if len(argv) > 1:
        parser.error(f"expected at most one argument, got {len(argv)}")
    args = parser.parse_args(list(argv))
    return DeployMode.SETUP if args.setup else DeployMode.DEPLOY


def main(
    argv: Sequence[str] | None = None,
    *,
    config: DeployConfig | None = None,
    builder: SupportsDocBuild | None = None,
) -> int:
    args = sys.argv[1:] if argv is None else argv
    try:
        mode = resolve_mode(args)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else USAGE_EXIT_STATUS

    configure_logging()
    LOGGER.debug("DEPLOY_START mode=%s", mode.value)

    try:
        config = config or resolve_config()
        publisher = PagesPublisher(config=config, builder=builder or CargoDocBuilder())
        result = publisher.run(mode)
    except DeployError as exc:
        LOGGER.error("%s", exc, extra={"event": exc.kind.value})
        return 1

    LOGGER.info(
        "Published %s to %s (%s)",
        result.branch,
        result.remote_url,
        result.commit_hash[:12] if result.commit_hash else "no commit",
        extra={"event": "success"},
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
