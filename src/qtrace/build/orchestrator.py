"""
Build orchestration for qtrace.

This module sequences the whole pipeline for one run:
1. Derive the configure flag vector from the build profile
2. Run the emulator's configure script
3. Run make
4. Stage the produced binary for the fuzzing harness

The run is strictly linear and single-shot. Any failure is terminal and is
mapped to a step-specific process exit code.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from ..config.profile import BuildProfile
from ..config.settings import Settings
from ..errors import ArtifactNotFoundError, BuildError, ConfigurationError
from ..stage.stager import ArtifactStager
from .build_invoker import BuildInvoker, BuildResult, merge_compile_variables
from .flag_builder import FlagVector, FlagVectorBuilder

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """States of a pipeline run."""

    INIT = "init"
    CONFIGURING = "configuring"
    COMPILING = "compiling"
    STAGING = "staging"
    DONE = "done"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


EXIT_SUCCESS = 0
EXIT_CONFIGURE_FAILED = 1
EXIT_COMPILE_FAILED = 2
EXIT_STAGING_FAILED = 3

# Exit code reported when a run fails while in the given state
FAILURE_EXIT_CODES = {
    PipelineState.INIT: EXIT_CONFIGURE_FAILED,
    PipelineState.CONFIGURING: EXIT_CONFIGURE_FAILED,
    PipelineState.COMPILING: EXIT_COMPILE_FAILED,
    PipelineState.STAGING: EXIT_STAGING_FAILED,
}


@dataclass(frozen=True)
class RunOutcome:
    """Terminal outcome of a pipeline run.

    Attributes:
        state: DONE or FAILED
        exit_code: Process exit code for this outcome
        result: Pipeline BuildResult (None on failure)
        error: Exception that failed the run (None on success)
        failed_state: State the run was in when it failed
        flags: Configure flag vector (empty if it could not be built)
    """

    state: PipelineState
    exit_code: int
    result: Optional[BuildResult] = None
    error: Optional[Exception] = None
    failed_state: Optional[PipelineState] = None
    flags: FlagVector = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return self.state is PipelineState.DONE


class Orchestrator:
    """
    Runs the configure, compile and staging pipeline once.

    Example usage:
        orchestrator = Orchestrator(AFL_USER_MODE_PROFILE, Settings.from_environ(os.environ))
        outcome = orchestrator.run()
        sys.exit(outcome.exit_code)
    """

    def __init__(
        self,
        profile: BuildProfile,
        settings: Settings,
        invoker: Optional[BuildInvoker] = None,
        stager: Optional[ArtifactStager] = None,
        flag_builder: Optional[FlagVectorBuilder] = None,
        dry_run: bool = False,
    ):
        """
        Initialize orchestrator.

        Args:
            profile: Build profile to configure with
            settings: Explicit run configuration
            invoker: Build invoker (defaults to one rooted at settings.source_root)
            stager: Artifact stager (defaults to local filesystem staging)
            flag_builder: Flag vector builder
            dry_run: Log the planned commands without running anything
        """
        self.profile = profile
        self.settings = settings
        self.invoker = invoker if invoker is not None else BuildInvoker(
            settings.source_root, environ=settings.environ or None
        )
        self.stager = stager if stager is not None else ArtifactStager()
        self.flag_builder = flag_builder if flag_builder is not None else FlagVectorBuilder()
        self.dry_run = dry_run
        self._state = PipelineState.INIT
        self._history: List[PipelineState] = [PipelineState.INIT]

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def history(self) -> List[PipelineState]:
        """States visited so far, in order."""
        return list(self._history)

    def _transition(self, new_state: PipelineState) -> None:
        logger.info(f"Pipeline state: {self._state} -> {new_state}")
        self._state = new_state
        self._history.append(new_state)

    def run(self) -> RunOutcome:
        """
        Execute the pipeline.

        Returns:
            RunOutcome in state DONE or FAILED

        Raises:
            RuntimeError: If this orchestrator has already run
        """
        if self._state is not PipelineState.INIT:
            raise RuntimeError("Orchestrator runs are single-shot; create a new instance")

        start_time = time.monotonic()
        flags: FlagVector = ()

        try:
            self.settings.validate()
            flags = self.flag_builder.build(self.profile)
            target = self.profile.target()
            artifact = self.stager.expected_artifact_path(target, self.settings.source_root)
            destination = self.settings.resolved_dest()
            variables = merge_compile_variables(
                self.profile.make_variables(), self.settings.extra_compile_flags()
            )

            if self.dry_run:
                return self._dry_run(flags, variables, artifact, destination)

            self._transition(PipelineState.CONFIGURING)
            self.invoker.configure(flags, timeout=self.settings.timeout)

            self._transition(PipelineState.COMPILING)
            self.invoker.compile(
                self.settings.job_count,
                variables,
                timeout=self.settings.timeout,
                expected_artifact=artifact,
            )

            self._transition(PipelineState.STAGING)
            staged = self.stager.stage(target, self.settings.source_root, destination)

        except (ConfigurationError, BuildError, ArtifactNotFoundError, OSError) as e:
            return self._fail(e, flags)

        self._transition(PipelineState.DONE)
        duration_ms = int((time.monotonic() - start_time) * 1000)
        return RunOutcome(
            state=PipelineState.DONE,
            exit_code=EXIT_SUCCESS,
            result=BuildResult(
                step="pipeline",
                exit_code=EXIT_SUCCESS,
                duration_ms=duration_ms,
                produced_artifact_path=staged,
            ),
            flags=flags,
        )

    def _fail(self, error: Exception, flags: FlagVector) -> RunOutcome:
        failed_state = self._state
        if isinstance(error, ConfigurationError):
            exit_code = EXIT_CONFIGURE_FAILED
        else:
            exit_code = FAILURE_EXIT_CODES[failed_state]

        logger.error(f"Pipeline failed during {failed_state}: {error}")
        self._transition(PipelineState.FAILED)
        return RunOutcome(
            state=PipelineState.FAILED,
            exit_code=exit_code,
            error=error,
            failed_state=failed_state,
            flags=flags,
        )

    def _dry_run(
        self, flags: FlagVector, variables: Dict[str, str], artifact: Path, destination: Path
    ) -> RunOutcome:
        logger.info(f"[dry-run] {self.invoker.configure_script} {' '.join(flags)}")
        make_args = [f"-j{self.settings.job_count}"]
        make_args.extend(self.invoker.make_assignments(variables))
        logger.info(f"[dry-run] {self.invoker.make_command} {' '.join(make_args)}")
        logger.info(f"[dry-run] copy {artifact} -> {destination}")

        self._transition(PipelineState.DONE)
        return RunOutcome(
            state=PipelineState.DONE,
            exit_code=EXIT_SUCCESS,
            result=BuildResult(step="dry-run", exit_code=EXIT_SUCCESS, duration_ms=0),
            flags=flags,
        )
