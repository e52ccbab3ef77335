"""Artifact staging for qtrace."""

from .stager import (
    ArtifactStager,
    Filesystem,
    LocalFilesystem,
    binary_name_for_target,
)

__all__ = [
    "ArtifactStager",
    "Filesystem",
    "LocalFilesystem",
    "binary_name_for_target",
]
