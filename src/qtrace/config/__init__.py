"""Configuration modules for qtrace."""

from .profile import (
    AFL_USER_MODE_PROFILE,
    DEFAULT_PROFILE_NAME,
    DEFAULT_TARGET,
    PROFILES,
    BuildProfile,
    CapabilityToggle,
    get_profile,
)
from .settings import Settings, default_job_count

__all__ = [
    "AFL_USER_MODE_PROFILE",
    "DEFAULT_PROFILE_NAME",
    "DEFAULT_TARGET",
    "PROFILES",
    "BuildProfile",
    "CapabilityToggle",
    "get_profile",
    "Settings",
    "default_job_count",
]
