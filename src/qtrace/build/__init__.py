"""
Build pipeline components for qtrace.

This module provides:
- Configure flag vector generation
- Child process execution with timeouts
- Configure and compile step invocation
- Pipeline orchestration
"""

from .build_invoker import BuildInvoker, BuildResult
from .flag_builder import FlagVector, FlagVectorBuilder
from .orchestrator import Orchestrator, PipelineState, RunOutcome
from .process_runner import ProcessResult, ProcessRunner, SubprocessRunner

__all__ = [
    "BuildInvoker",
    "BuildResult",
    "FlagVector",
    "FlagVectorBuilder",
    "Orchestrator",
    "PipelineState",
    "RunOutcome",
    "ProcessResult",
    "ProcessRunner",
    "SubprocessRunner",
]
