#!/usr/bin/env python3
"""
distbuild command line

Resolves the build order of every checked-out unit and optionally clones
and builds them.

Usage:
    # Print the build order of the units in ./src
    python -m distbuild

    # Clone the organization's repositories at a reference
    python -m distbuild --clone --ref 2105

    # Build everything, logs in ./log and packages in ./pkg
    python -m distbuild --build --version debian10-bootstrap
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from distbuild.config import BuildConfig, get_config, load_config
from distbuild.errors import AggregateBuildError, DistbuildError
from distbuild.metadata.index import enumerate_buildable_units
from distbuild.pipeline.builder import PackageBuilder
from distbuild.pipeline.executor import BuildExecutor, ExecutorState
from distbuild.pipeline.resolver import determine_build_order
from distbuild.sources.github import clone_repositories

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
# Conventional status of a process stopped by SIGINT
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="distbuild",
        description="Build a distribution's packages in dependency order",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--clone", action="store_true", help="Clone all repositories of the organization")
    parser.add_argument("--build", action="store_true", help="Build all cloned repositories")
    parser.add_argument("--src", type=Path, help="Source directory")
    parser.add_argument("--pkg", type=Path, help="Package directory")
    parser.add_argument("--log", type=Path, help="Log directory")
    parser.add_argument("--image-name", help="Name of the build image")
    parser.add_argument("--version", help="Version of the distribution to build for")
    parser.add_argument(
        "--local",
        action="store_true",
        default=None,
        help="The build image only exists on the local system",
    )
    parser.add_argument("--ref", help="Git reference to check out")
    parser.add_argument("--org", help="GitHub organization to clone from")
    parser.add_argument("--config", type=Path, help="Config file path (default: build.config.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    return parser


def resolve_config(args: argparse.Namespace) -> BuildConfig:
    """Apply command line options on top of the config file."""
    config = load_config(args.config) if args.config else get_config()

    overrides = {
        "source_dir": args.src,
        "package_dir": args.pkg,
        "log_dir": args.log,
        "image_name": args.image_name,
        "version": args.version,
        "local_image": args.local,
        "git_ref": args.ref,
        "github_org": args.org,
    }
    return dataclasses.replace(
        config, **{key: value for key, value in overrides.items() if value is not None}
    )


def run(args: argparse.Namespace) -> int:
    config = resolve_config(args)

    if args.clone:
        clone_repositories(
            config.source_dir,
            ref=config.git_ref,
            org=config.github_org,
            token=config.github_token,
        )

    metadata = enumerate_buildable_units(config.source_dir)
    order = determine_build_order(metadata, config.implicit_base)

    print(f"Build order ({len(order)} repos): {order}")

    if not args.build:
        return EXIT_SUCCESS

    executor = BuildExecutor(PackageBuilder.from_config(config), config.log_dir)
    status = EXIT_SUCCESS
    try:
        executor.run(order)
    except AggregateBuildError as e:
        print(e, file=sys.stderr)
        status = EXIT_FAILURE

    if executor.state is ExecutorState.INTERRUPTED:
        print(f"Build interrupted after {len(executor.results)} of {len(order)} units",
              file=sys.stderr)
        return EXIT_INTERRUPTED
    return status


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    try:
        return run(args)
    except (DistbuildError, OSError, ValueError) as e:
        print(e, file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
