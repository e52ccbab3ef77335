"""Runtime settings for qtrace.

Settings are read from the environment exactly once, at startup, and then
passed explicitly to every pipeline component. Command-line options
override the environment values.

Environment variables:
    QTRACE_SOURCE_ROOT: Emulator source tree (default: current directory)
    QTRACE_DEST: Destination of the staged binary
    QTRACE_JOBS: Parallel make jobs (default: host CPU count)
    QTRACE_TIMEOUT: Per-step timeout in seconds (default: none)
    QTRACE_CFLAGS: Replacement for the profile's CFLAGS make variable
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import psutil

from ..errors import ConfigurationError

# Where the fuzzing harness looks for its trace binary, relative to the
# emulator source root.
DEFAULT_DEST_RELATIVE = Path("..") / ".." / "AFLplusplus" / "afl-qemu-trace"


def default_job_count() -> int:
    """Return the number of available processing units (at least 1)."""
    return psutil.cpu_count(logical=True) or 1


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from None


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from None


@dataclass(frozen=True)
class Settings:
    """Explicit configuration for one qtrace run.

    Attributes:
        source_root: Emulator source tree containing ./configure
        dest_path: Staging destination (None means the default relative path)
        job_count: Parallelism level passed to make
        timeout: Per-step timeout in seconds (None disables it)
        cflags: CFLAGS override for the compile step (None keeps the profile's)
        environ: Environment snapshot forwarded to child processes
    """

    source_root: Path
    dest_path: Optional[Path] = None
    job_count: int = field(default_factory=default_job_count)
    timeout: Optional[float] = None
    cflags: Optional[str] = None
    environ: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "Settings":
        """Build settings from an environment mapping.

        Args:
            environ: Environment variables (typically os.environ)

        Returns:
            Settings populated from QTRACE_* variables

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        source_root = Path(environ.get("QTRACE_SOURCE_ROOT") or Path.cwd())

        dest_env = environ.get("QTRACE_DEST")
        dest_path = Path(dest_env) if dest_env else None

        jobs_env = environ.get("QTRACE_JOBS")
        job_count = _parse_int("QTRACE_JOBS", jobs_env) if jobs_env else default_job_count()

        timeout_env = environ.get("QTRACE_TIMEOUT")
        timeout = _parse_float("QTRACE_TIMEOUT", timeout_env) if timeout_env else None

        return cls(
            source_root=source_root,
            dest_path=dest_path,
            job_count=job_count,
            timeout=timeout,
            cflags=environ.get("QTRACE_CFLAGS") or None,
            environ=dict(environ),
        )

    def override(self, **changes: Any) -> "Settings":
        """Return a copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def resolved_dest(self) -> Path:
        """Return the staging destination, defaulting relative to source_root."""
        if self.dest_path is not None:
            return self.dest_path
        return self.source_root / DEFAULT_DEST_RELATIVE

    def extra_compile_flags(self) -> Dict[str, str]:
        """Return make variable overrides derived from settings."""
        if self.cflags is None:
            return {}
        return {"CFLAGS": self.cflags}

    def validate(self) -> None:
        """Check settings before any process is spawned.

        Raises:
            ConfigurationError: If a setting is out of range
        """
        if self.job_count < 1:
            raise ConfigurationError(f"Job count must be at least 1, got {self.job_count}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout:g}")
