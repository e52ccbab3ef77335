"""
Child process execution for external build steps.

The external configure and make steps are black boxes reached only through
the narrow ProcessRunner interface, so the pipeline can be exercised with a
scripted runner in tests.

SubprocessRunner streams the child's output into logging line by line,
keeps a bounded tail of each stream for error reports, and enforces an
optional deadline by terminating the child's entire process tree.
"""

import logging
import os
import subprocess
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Deque, Mapping, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)

TAIL_LINES = 20


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of a child process run.

    Attributes:
        exit_code: Process exit code (None if it was killed on timeout)
        stdout_tail: Last lines of standard output
        stderr_tail: Last lines of standard error
        timed_out: Whether the deadline expired before the child exited
    """

    exit_code: Optional[int]
    stdout_tail: str = ""
    stderr_tail: str = ""
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class ProcessRunner(ABC):
    """Interface for launching external build commands."""

    @abstractmethod
    def run(
        self,
        command: str,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """Run a command to completion.

        Args:
            command: Executable to launch
            args: Arguments passed after the executable
            env: Full environment for the child (None inherits ours)
            cwd: Working directory for the child
            timeout: Seconds before the child's process tree is terminated

        Returns:
            ProcessResult describing how the child finished

        Raises:
            FileNotFoundError: If the executable does not exist
        """
        pass


def kill_process_tree(pid: int, grace_period: float = 3.0) -> int:
    """Terminate a process and all of its descendants.

    Children are signalled before their parents. Processes still alive
    after the grace period are killed.

    Args:
        pid: Root process id
        grace_period: Seconds to wait for graceful termination

    Returns:
        Number of processes signalled
    """
    try:
        root = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return 0

    try:
        processes = root.children(recursive=True)
    except psutil.NoSuchProcess:
        processes = []
    processes.reverse()
    processes.append(root)

    signalled = []
    for proc in processes:
        try:
            proc.terminate()
            signalled.append(proc)
            logger.debug(f"Terminated process {proc.pid}")
        except psutil.NoSuchProcess:
            pass  # Already dead

    _gone, alive = psutil.wait_procs(signalled, timeout=grace_period)
    for proc in alive:
        try:
            proc.kill()
            logger.warning(f"Force killed stubborn process {proc.pid}")
        except psutil.NoSuchProcess:
            pass

    return len(signalled)


class SubprocessRunner(ProcessRunner):
    """Runs commands with subprocess, streaming output to logging."""

    def __init__(self, tail_lines: int = TAIL_LINES):
        """Initialize runner.

        Args:
            tail_lines: Number of trailing output lines kept per stream
        """
        self.tail_lines = tail_lines

    def run(
        self,
        command: str,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        cmd = [str(command)] + [str(arg) for arg in args]
        logger.info("Run: %s", " ".join(cmd))

        process = subprocess.Popen(
            cmd,
            env=dict(env) if env is not None else None,
            cwd=str(cwd) if cwd is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            universal_newlines=True,
            errors="replace",
            bufsize=1,
            start_new_session=(os.name == "posix"),
        )

        timed_out = threading.Event()

        def on_deadline() -> None:
            # Finished just before the deadline; nothing to kill
            if process.poll() is not None:
                return
            timed_out.set()
            logger.error(f"Deadline of {timeout:g}s exceeded, terminating {cmd[0]}")
            kill_process_tree(process.pid)

        timer: Optional[threading.Timer] = None
        if timeout is not None:
            timer = threading.Timer(timeout, on_deadline)
            timer.daemon = True
            timer.start()

        stdout_tail: Deque[str] = deque(maxlen=self.tail_lines)
        stderr_tail: Deque[str] = deque(maxlen=self.tail_lines)
        stderr_reader = threading.Thread(
            target=self._pump,
            args=(process.stderr, stderr_tail, logging.WARNING),
            daemon=True,
        )
        stderr_reader.start()

        try:
            self._pump(process.stdout, stdout_tail, logging.INFO)
            exit_code = process.wait()
        except KeyboardInterrupt:
            kill_process_tree(process.pid)
            raise
        finally:
            if timer is not None:
                timer.cancel()
                timer.join()
            stderr_reader.join()

        logger.info(f"Command completed with exit code: {exit_code}")

        return ProcessResult(
            exit_code=None if timed_out.is_set() else exit_code,
            stdout_tail="\n".join(stdout_tail),
            stderr_tail="\n".join(stderr_tail),
            timed_out=timed_out.is_set(),
        )

    @staticmethod
    def _pump(stream: Optional[IO[str]], tail: Deque[str], level: int) -> None:
        if stream is None:
            return
        with stream:
            for line in stream:
                line = line.rstrip("\n")
                tail.append(line)
                logger.log(level, line)
