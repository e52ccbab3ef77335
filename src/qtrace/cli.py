"""
Command-line interface for qtrace.

This module provides the `qtrace` CLI tool, which configures and builds the
user-mode emulator and stages the binary for the fuzzing harness.
"""

import argparse
import os
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from qtrace import __version__
from qtrace.build import FlagVectorBuilder, Orchestrator
from qtrace.cli_utils import ErrorFormatter, SourceRootValidator, setup_logging
from qtrace.config import DEFAULT_PROFILE_NAME, PROFILES, Settings, get_profile
from qtrace.errors import ConfigurationError


@dataclass
class BuildArgs:
    """Arguments for a qtrace run."""

    source_root: Optional[Path] = None
    dest: Optional[Path] = None
    target: Optional[str] = None
    job_count: Optional[int] = None
    profile: str = DEFAULT_PROFILE_NAME
    timeout: Optional[float] = None
    cflags: Optional[str] = None
    dry_run: bool = False
    print_flags: bool = False
    verbose: bool = False


def print_flags_command(args: BuildArgs) -> None:
    """Print the configure flag vector, one token per line."""
    try:
        profile = get_profile(args.profile)
        if args.target is not None:
            profile = profile.with_target(args.target)
        for flag in FlagVectorBuilder().build(profile):
            print(flag)
    except ConfigurationError as e:
        ErrorFormatter.print_error("Configuration error", str(e))
        sys.exit(1)
    sys.exit(0)


def build_command(args: BuildArgs) -> None:
    """Configure, build and stage the emulator binary.

    Examples:
        qtrace                                # Build from the current directory
        qtrace --source-root qemu/qemu        # Build a specific source tree
        qtrace --job-count 4 --timeout 3600   # Limit parallelism and duration
        qtrace --dest /tmp/afl-qemu-trace     # Stage somewhere else
        qtrace --dry-run                      # Show the commands only
    """
    print(f"qtrace v{__version__}")
    print()

    try:
        settings = Settings.from_environ(os.environ).override(
            source_root=args.source_root,
            dest_path=args.dest,
            job_count=args.job_count,
            timeout=args.timeout,
            cflags=args.cflags,
        )
        profile = get_profile(args.profile)
        if args.target is not None:
            profile = profile.with_target(args.target)

        SourceRootValidator.validate_source_root(settings.source_root)

        if args.verbose:
            print(f"Source root: {settings.source_root}")
            print(f"Profile: {profile.name}")
            print(f"Target: {profile.target()}")
            print(f"Jobs: {settings.job_count}")
            print(f"Destination: {settings.resolved_dest()}")
            print()
        else:
            print(f"Building target: {profile.target()}...")

        start_time = time.time()
        orchestrator = Orchestrator(profile, settings, dry_run=args.dry_run)
        outcome = orchestrator.run()
        build_time = time.time() - start_time

        if outcome.success:
            if args.dry_run:
                ErrorFormatter.print_success("Dry run complete")
            else:
                ErrorFormatter.print_success("Build successful!")
                print()
                print(f"Staged: {outcome.result.produced_artifact_path}")
            print(f"Build time: {build_time:.2f}s")
        else:
            ErrorFormatter.report_pipeline_error(outcome.error)
        sys.exit(outcome.exit_code)

    except ConfigurationError as e:
        ErrorFormatter.print_error("Configuration error", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qtrace",
        description="Build the user-mode emulator and stage it as the fuzzing trace binary",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"qtrace {__version__}",
    )
    parser.add_argument(
        "--source-root",
        type=Path,
        default=None,
        help="Emulator source tree (default: $QTRACE_SOURCE_ROOT or current directory)",
    )
    parser.add_argument(
        "--dest",
        type=Path,
        default=None,
        help="Staging destination (default: $QTRACE_DEST or "
        "<source-root>/../../AFLplusplus/afl-qemu-trace)",
    )
    parser.add_argument(
        "--target",
        default=None,
        help="Target identifier (default: the profile's target, x86_64-linux-user)",
    )
    parser.add_argument(
        "-j",
        "--job-count",
        type=int,
        default=None,
        help="Parallel make jobs (default: $QTRACE_JOBS or host CPU count)",
    )
    parser.add_argument(
        "--profile",
        default=DEFAULT_PROFILE_NAME,
        choices=sorted(PROFILES),
        help=f"Build profile (default: {DEFAULT_PROFILE_NAME})",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=None,
        help="Per-step timeout in seconds (default: $QTRACE_TIMEOUT or no timeout)",
    )
    parser.add_argument(
        "--cflags",
        default=None,
        help="Replace the profile's CFLAGS make variable (default: $QTRACE_CFLAGS)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the commands that would run without running them",
    )
    parser.add_argument(
        "--print-flags",
        action="store_true",
        help="Print the configure flags one per line and exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging and tracebacks",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """qtrace - build and stage the emulator trace binary."""
    parser = build_parser()
    parsed_args = parser.parse_args(argv)

    args = BuildArgs(
        source_root=parsed_args.source_root,
        dest=parsed_args.dest,
        target=parsed_args.target,
        job_count=parsed_args.job_count,
        profile=parsed_args.profile,
        timeout=parsed_args.timeout,
        cflags=parsed_args.cflags,
        dry_run=parsed_args.dry_run,
        print_flags=parsed_args.print_flags,
        verbose=parsed_args.verbose,
    )

    if args.print_flags:
        print_flags_command(args)

    setup_logging(args.verbose)
    build_command(args)


if __name__ == "__main__":
    main()
