"""
Artifact staging for the fuzzing harness.

After a successful build the emulator binary lives inside the emulator's
source tree at a location fixed by its build layout. The harness expects it
at a different, fixed path. This module locates the binary and copies it
there.
"""

import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..errors import ArtifactNotFoundError

logger = logging.getLogger(__name__)

USER_MODE_SUFFIXES = ("-linux-user", "-bsd-user")
SYSTEM_MODE_SUFFIX = "-softmmu"


class Filesystem(ABC):
    """Interface for the filesystem operations staging needs."""

    @abstractmethod
    def is_file(self, path: Path) -> bool:
        """Return True if path exists and is a regular file."""
        pass

    @abstractmethod
    def copy_file(self, source: Path, destination: Path) -> None:
        """Copy source to destination, creating parents and overwriting."""
        pass


class LocalFilesystem(Filesystem):
    """Filesystem backed by the local disk."""

    def is_file(self, path: Path) -> bool:
        return path.is_file()

    def copy_file(self, source: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        # Write a sibling first so a failed copy never leaves a truncated binary
        fd, tmp_name = tempfile.mkstemp(dir=destination.parent, prefix=f".{destination.name}.")
        os.close(fd)
        try:
            # copy2 keeps the executable bits the harness relies on
            shutil.copy2(source, tmp_name)
            os.replace(tmp_name, destination)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def binary_name_for_target(target: str) -> str:
    """
    Get the emulator binary name produced for a target.

    Unrecognized target naming falls back to the user-mode convention
    ('qemu-<first dash-separated component>'); a wrong target then surfaces
    as a missing artifact at staging time.

    Args:
        target: Target identifier (e.g. 'x86_64-linux-user')

    Returns:
        Binary file name (e.g. 'qemu-x86_64')
    """
    for suffix in USER_MODE_SUFFIXES:
        if target.endswith(suffix) and len(target) > len(suffix):
            return f"qemu-{target[: -len(suffix)]}"
    if target.endswith(SYSTEM_MODE_SUFFIX) and len(target) > len(SYSTEM_MODE_SUFFIX):
        return f"qemu-system-{target[: -len(SYSTEM_MODE_SUFFIX)]}"
    return f"qemu-{target.split('-', 1)[0]}"


class ArtifactStager:
    """Copies the built emulator binary to the harness location.

    Example usage:
        stager = ArtifactStager()
        stager.stage("x86_64-linux-user", Path("qemu"), Path("afl-qemu-trace"))
    """

    def __init__(self, filesystem: Optional[Filesystem] = None):
        """Initialize stager.

        Args:
            filesystem: Filesystem capability (defaults to LocalFilesystem)
        """
        self.filesystem = filesystem if filesystem is not None else LocalFilesystem()

    @staticmethod
    def expected_artifact_path(target: str, source_root: Path) -> Path:
        """Return where the build layout places the binary for a target."""
        return Path(source_root) / target / binary_name_for_target(target)

    def stage(self, target: str, source_root: Path, destination_path: Path) -> Path:
        """Copy the built binary to its staging destination.

        Args:
            target: Target identifier that was built
            source_root: Emulator source tree
            destination_path: Where the harness expects the binary

        Returns:
            The destination path

        Raises:
            ArtifactNotFoundError: If the expected binary does not exist
        """
        artifact = self.expected_artifact_path(target, source_root)

        if not self.filesystem.is_file(artifact):
            raise ArtifactNotFoundError(artifact)

        logger.info(f"Staging {artifact} -> {destination_path}")
        self.filesystem.copy_file(artifact, Path(destination_path))
        return Path(destination_path)
