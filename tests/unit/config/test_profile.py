"""Unit tests for build profiles."""

import pytest

from qtrace.config import (
    AFL_USER_MODE_PROFILE,
    DEFAULT_TARGET,
    BuildProfile,
    CapabilityToggle,
    get_profile,
)
from qtrace.errors import ConfigurationError


class TestBuildProfile:
    """Test cases for BuildProfile."""

    def test_default_profile_target(self):
        assert AFL_USER_MODE_PROFILE.target() == "x86_64-linux-user"
        assert DEFAULT_TARGET == "x86_64-linux-user"

    def test_default_profile_has_all_capability_flags(self):
        """The default table carries every capability switch of the trace build."""
        assert len(AFL_USER_MODE_PROFILE.toggles()) == 57

    def test_default_profile_keeps_repeated_toggles(self):
        names = [t.name for t in AFL_USER_MODE_PROFILE.toggles()]
        assert names.count("gtk") == 2
        assert names.count("sdl") == 2
        assert names.count("vnc") == 2
        assert names.count("system") == 2

    def test_default_profile_enables_user_mode(self):
        enabled = [t for t in AFL_USER_MODE_PROFILE.toggles() if t.enabled]
        assert enabled == [
            CapabilityToggle("linux-user", True),
            CapabilityToggle("capstone", True, "internal"),
            CapabilityToggle("attr", True),
        ]

    def test_default_profile_compile_variables(self):
        assert AFL_USER_MODE_PROFILE.make_variables() == {"CFLAGS": "-lprotobuf-c -luuid"}

    def test_with_target_returns_copy(self):
        other = AFL_USER_MODE_PROFILE.with_target("aarch64-linux-user")

        assert other.target() == "aarch64-linux-user"
        assert other.toggles() == AFL_USER_MODE_PROFILE.toggles()
        assert AFL_USER_MODE_PROFILE.target() == DEFAULT_TARGET

    def test_profile_is_immutable(self):
        profile = BuildProfile("p", "x86_64-linux-user", ())
        with pytest.raises(AttributeError):
            profile.target_id = "other"  # type: ignore[misc]


class TestGetProfile:
    """Test cases for profile lookup."""

    def test_known_profile(self):
        assert get_profile("afl-user-mode") is AFL_USER_MODE_PROFILE

    def test_unknown_profile_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown build profile 'nope'"):
            get_profile("nope")
