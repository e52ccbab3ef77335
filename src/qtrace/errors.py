"""Exception hierarchy shared by the qtrace pipeline.

Every failure the pipeline can report derives from QtraceError so the CLI
can map it to a step-specific exit code.
"""

from pathlib import Path
from typing import Optional


class QtraceError(Exception):
    """Base exception for qtrace errors."""

    pass


class ConfigurationError(QtraceError):
    """Raised when a profile or setting is malformed.

    Always raised before any child process is spawned.
    """

    pass


class BuildError(QtraceError):
    """Raised when an external build step exits non-zero.

    Attributes:
        step: Pipeline step that failed ("configure" or "compile")
        exit_code: Child process exit code (None when it was killed)
        stderr_tail: Last lines of the child's standard error
    """

    def __init__(self, step: str, exit_code: Optional[int], stderr_tail: str = ""):
        self.step = step
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail
        message = f"{step} step failed with exit code {exit_code}"
        if stderr_tail:
            message += f"\n{stderr_tail}"
        super().__init__(message)


class BuildTimeoutError(BuildError):
    """Raised when an external build step exceeds its deadline."""

    def __init__(self, step: str, timeout: float, stderr_tail: str = ""):
        self.timeout = timeout
        super().__init__(step, None, stderr_tail)
        message = f"{step} step failed: TIMEOUT after {timeout:g}s"
        if stderr_tail:
            message += f"\n{stderr_tail}"
        self.args = (message,)


class ArtifactNotFoundError(QtraceError):
    """Raised when the build succeeded but the expected binary is missing."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Expected build artifact not found: {path}")
