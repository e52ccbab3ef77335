"""Shared fixtures: scripted process runner and in-memory filesystem."""

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import pytest

from qtrace.build.process_runner import ProcessResult, ProcessRunner
from qtrace.config import AFL_USER_MODE_PROFILE, Settings
from qtrace.stage.stager import Filesystem


class FakeProcessRunner(ProcessRunner):
    """Returns scripted results in order and records every call."""

    def __init__(self, results: Optional[List[ProcessResult]] = None):
        self.results = list(results or [])
        self.calls: List[Dict] = []

    def run(
        self,
        command: str,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        self.calls.append(
            {
                "command": command,
                "args": list(args),
                "env": dict(env) if env is not None else None,
                "cwd": cwd,
                "timeout": timeout,
            }
        )
        if self.results:
            return self.results.pop(0)
        return ProcessResult(exit_code=0)


class InMemoryFilesystem(Filesystem):
    """Filesystem fake keyed by path."""

    def __init__(self, files: Optional[Dict[Path, bytes]] = None):
        self.files: Dict[Path, bytes] = dict(files or {})
        self.copies: List[tuple] = []

    def is_file(self, path: Path) -> bool:
        return Path(path) in self.files

    def copy_file(self, source: Path, destination: Path) -> None:
        self.copies.append((Path(source), Path(destination)))
        self.files[Path(destination)] = self.files[Path(source)]


@pytest.fixture
def fake_runner():
    """Runner whose steps all succeed unless results are scripted."""
    return FakeProcessRunner()


@pytest.fixture
def make_runner():
    """Factory for runners with scripted results."""
    return FakeProcessRunner


@pytest.fixture
def memory_fs():
    """Empty in-memory filesystem."""
    return InMemoryFilesystem()


@pytest.fixture
def source_root():
    return Path("/src/qemu")


@pytest.fixture
def settings(source_root):
    """Settings that need no real filesystem."""
    return Settings(
        source_root=source_root,
        dest_path=Path("/out/afl-qemu-trace"),
        job_count=4,
        environ={"PATH": "/usr/bin"},
    )


@pytest.fixture
def profile():
    return AFL_USER_MODE_PROFILE
