"""Build Invoker.

This module runs the emulator's own build machinery: the configure script
with a flag vector, then make with a parallelism level and make variable
overrides.

Design:
    - Commands are launched through an injected ProcessRunner
    - Both steps run with the emulator source root as working directory
    - Non-zero exits raise BuildError carrying the step and stderr tail
    - Expired deadlines raise BuildTimeoutError
    - Nothing is retried
"""

import logging
import os
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from ..errors import BuildError, BuildTimeoutError, ConfigurationError
from .process_runner import ProcessResult, ProcessRunner, SubprocessRunner

logger = logging.getLogger(__name__)

CONFIGURE_STEP = "configure"
COMPILE_STEP = "compile"

# Shell convention for "command not found"
EXIT_COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class BuildResult:
    """Result of one build step, or of a whole pipeline run."""

    step: str
    exit_code: int
    duration_ms: int
    produced_artifact_path: Optional[Path] = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class BuildInvoker:
    """Invokes the external configure and compile steps.

    Example usage:
        invoker = BuildInvoker(source_root=Path("qemu"))
        invoker.configure(flags)
        invoker.compile(job_count=8, extra_compile_flags={"CFLAGS": "-luuid"})
    """

    def __init__(
        self,
        source_root: Path,
        runner: Optional[ProcessRunner] = None,
        environ: Optional[Mapping[str, str]] = None,
        make_command: str = "make",
    ):
        """Initialize build invoker.

        Args:
            source_root: Emulator source tree containing ./configure
            runner: Process runner (defaults to SubprocessRunner)
            environ: Environment forwarded to child processes (None inherits)
            make_command: Build tool executable
        """
        self.source_root = Path(source_root)
        self.runner = runner if runner is not None else SubprocessRunner()
        self.environ = dict(environ) if environ is not None else None
        self.make_command = make_command

    @property
    def configure_script(self) -> Path:
        return self.source_root / "configure"

    def configure(
        self, flags: Sequence[str], timeout: Optional[float] = None
    ) -> BuildResult:
        """Run the configure step.

        Args:
            flags: Configure flag vector
            timeout: Seconds before the step is aborted

        Returns:
            BuildResult for the configure step

        Raises:
            BuildError: If configure exits non-zero or cannot be launched
            BuildTimeoutError: If the deadline expires
        """
        logger.info(f"Configuring {self.source_root} with {len(flags)} flags")
        return self._run_step(
            CONFIGURE_STEP, str(self.configure_script), list(flags), timeout
        )

    def compile(
        self,
        job_count: int,
        extra_compile_flags: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        expected_artifact: Optional[Path] = None,
    ) -> BuildResult:
        """Run the compile step.

        Args:
            job_count: Parallel jobs passed to make as -j<N>
            extra_compile_flags: Make variables passed as NAME=value and exported
            timeout: Seconds before the step is aborted
            expected_artifact: Binary the build is expected to produce, reported
                as produced_artifact_path on success (existence is not checked)

        Returns:
            BuildResult for the compile step

        Raises:
            ConfigurationError: If job_count is below 1
            BuildError: If make exits non-zero or cannot be launched
            BuildTimeoutError: If the deadline expires
        """
        if job_count < 1:
            raise ConfigurationError(f"Job count must be at least 1, got {job_count}")

        variables = dict(extra_compile_flags or {})
        args = [f"-j{job_count}"]
        args.extend(self.make_assignments(variables))

        # Exported as well so recursive sub-makes and helper scripts see them
        env = dict(self.environ if self.environ is not None else os.environ)
        env.update(variables)

        logger.info(f"Compiling with {job_count} jobs")
        result = self._run_step(COMPILE_STEP, self.make_command, args, timeout, env)
        if expected_artifact is None:
            return result
        return replace(result, produced_artifact_path=Path(expected_artifact))

    @staticmethod
    def make_assignments(variables: Mapping[str, str]) -> List[str]:
        """Render make variable overrides.

        Example:
            >>> BuildInvoker.make_assignments({"CFLAGS": "-lprotobuf-c -luuid"})
            ['CFLAGS=-lprotobuf-c -luuid']
        """
        return [f"{name}={value}" for name, value in variables.items()]

    def _run_step(
        self,
        step: str,
        command: str,
        args: Sequence[str],
        timeout: Optional[float],
        env: Optional[Mapping[str, str]] = None,
    ) -> BuildResult:
        start_time = time.monotonic()

        try:
            result: ProcessResult = self.runner.run(
                command,
                args,
                env=env if env is not None else self.environ,
                cwd=self.source_root,
                timeout=timeout,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise BuildError(step, EXIT_COMMAND_NOT_FOUND, str(e)) from e

        duration_ms = int((time.monotonic() - start_time) * 1000)

        if result.timed_out:
            raise BuildTimeoutError(step, timeout or 0.0, result.stderr_tail)
        if result.exit_code != 0:
            raise BuildError(step, result.exit_code, result.stderr_tail)

        logger.info(f"{step} step finished in {duration_ms / 1000:.2f}s")
        return BuildResult(step=step, exit_code=0, duration_ms=duration_ms)


def merge_compile_variables(
    profile_variables: Mapping[str, str], overrides: Mapping[str, str]
) -> Dict[str, str]:
    """Merge profile make variables with overrides, later wins."""
    merged = dict(profile_variables)
    merged.update(overrides)
    return merged
