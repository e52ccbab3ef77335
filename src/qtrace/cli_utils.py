"""CLI utility functions for qtrace.

This module provides common utilities used by the CLI including:
- Logging setup
- Error handling and formatting
- Source tree validation
"""

import logging
import sys
from pathlib import Path

from qtrace.errors import ArtifactNotFoundError, BuildError, BuildTimeoutError, QtraceError

EXIT_INTERRUPTED = 130  # Standard exit code for SIGINT
EXIT_UNEXPECTED = 4

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger for CLI use."""
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Replace a handler left by an earlier call in the same process
    for handler in list(logger.handlers):
        if getattr(handler, "qtrace_console", False):
            logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.qtrace_console = True  # type: ignore[attr-defined]
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Configure failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def title_for(error: QtraceError) -> str:
        """Return a short title describing a pipeline error."""
        if isinstance(error, BuildTimeoutError):
            return f"{error.step.capitalize()} timed out"
        if isinstance(error, BuildError):
            return f"{error.step.capitalize()} failed"
        if isinstance(error, ArtifactNotFoundError):
            return "Staging failed: artifact missing"
        return "Configuration error"

    @staticmethod
    def report_pipeline_error(error: Exception) -> None:
        """Print a pipeline failure with its originating step."""
        if isinstance(error, QtraceError):
            ErrorFormatter.print_error(ErrorFormatter.title_for(error), str(error))
        else:
            ErrorFormatter.print_error("Build failed", f"{type(error).__name__}: {error}")

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(EXIT_INTERRUPTED)

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(EXIT_UNEXPECTED)


class SourceRootValidator:
    """Validates the emulator source tree."""

    @staticmethod
    def validate_source_root(source_root: Path) -> None:
        """Validate that the source root is a directory with a configure script.

        Args:
            source_root: Path to validate

        Raises:
            SystemExit: If the path is not a usable source tree
        """
        if not source_root.is_dir():
            ErrorFormatter.print_error(
                "Configuration error", f"Source root is not a directory: {source_root}"
            )
            sys.exit(1)
        if not (source_root / "configure").is_file():
            ErrorFormatter.print_error(
                "Configuration error", f"No configure script found in {source_root}"
            )
            sys.exit(1)
