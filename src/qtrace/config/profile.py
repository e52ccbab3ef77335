"""
Build profiles for the emulator's configure script.

A profile is a fixed, ordered table of capability toggles plus the single
target to build. The order of the table is the order of the generated
configure flags, so it must stay deterministic: the emulator's build cache
keys on the exact configure command line.

The default profile reproduces the user-mode, fuzzing-oriented configuration
used to produce the trace binary. Some subsystems appear more than once
(gtk, sdl, vnc, system). Keep the repetitions: configure parses flags
left to right and the last occurrence wins.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from ..errors import ConfigurationError

DEFAULT_TARGET = "x86_64-linux-user"
DEFAULT_PROFILE_NAME = "afl-user-mode"


@dataclass(frozen=True)
class CapabilityToggle:
    """A single configure capability switch.

    Attributes:
        name: Capability name as configure spells it (e.g. "gtk")
        enabled: Emit --enable-<name> when True, --disable-<name> otherwise
        value: Optional argument appended as --enable-<name>=<value>
    """

    name: str
    enabled: bool
    value: Optional[str] = None


def enable(name: str, value: Optional[str] = None) -> CapabilityToggle:
    return CapabilityToggle(name, True, value)


def disable(name: str) -> CapabilityToggle:
    return CapabilityToggle(name, False)


@dataclass(frozen=True)
class BuildProfile:
    """A named set of capability toggles and the target they apply to.

    Attributes:
        name: Profile identifier
        target_id: Target identifier passed to --target-list
        capability_toggles: Ordered toggles, repetitions allowed
        compile_variables: Make variable assignments for the compile step
        description: Human-readable description
    """

    name: str
    target_id: str
    capability_toggles: Tuple[CapabilityToggle, ...]
    compile_variables: Tuple[Tuple[str, str], ...] = ()
    description: str = ""

    def toggles(self) -> Tuple[CapabilityToggle, ...]:
        """Return the toggles in declaration order."""
        return self.capability_toggles

    def target(self) -> str:
        """Return the target identifier."""
        return self.target_id

    def make_variables(self) -> Dict[str, str]:
        """Return compile variables as an ordered dictionary."""
        return dict(self.compile_variables)

    def with_target(self, target_id: str) -> "BuildProfile":
        """Return a copy of this profile building another target."""
        return replace(self, target_id=target_id)


AFL_USER_MODE_TOGGLES: Tuple[CapabilityToggle, ...] = (
    disable("system"),
    enable("linux-user"),
    disable("gtk"),
    disable("sdl"),
    disable("vnc"),
    enable("capstone", "internal"),
    disable("bsd-user"),
    disable("guest-agent"),
    disable("strip"),
    disable("werror"),
    disable("gcrypt"),
    disable("debug-info"),
    disable("debug-tcg"),
    disable("tcg-interpreter"),
    enable("attr"),
    disable("brlapi"),
    disable("linux-aio"),
    disable("bzip2"),
    disable("bluez"),
    disable("cap-ng"),
    disable("curl"),
    disable("fdt"),
    disable("glusterfs"),
    disable("gnutls"),
    disable("nettle"),
    disable("gtk"),
    disable("rdma"),
    disable("libiscsi"),
    disable("vnc-jpeg"),
    disable("lzo"),
    disable("curses"),
    disable("libnfs"),
    disable("numa"),
    disable("opengl"),
    disable("vnc-png"),
    disable("rbd"),
    disable("vnc-sasl"),
    disable("sdl"),
    disable("seccomp"),
    disable("smartcard"),
    disable("snappy"),
    disable("spice"),
    disable("libssh2"),
    disable("libusb"),
    disable("usb-redir"),
    disable("vde"),
    disable("vhost-net"),
    disable("virglrenderer"),
    disable("virtfs"),
    disable("vnc"),
    disable("vte"),
    disable("xen"),
    disable("xen-pci-passthrough"),
    disable("xfsctl"),
    disable("system"),
    disable("blobs"),
    disable("tools"),
)

AFL_USER_MODE_PROFILE = BuildProfile(
    name=DEFAULT_PROFILE_NAME,
    target_id=DEFAULT_TARGET,
    capability_toggles=AFL_USER_MODE_TOGGLES,
    # Link libraries required by the fuzzing instrumentation
    compile_variables=(("CFLAGS", "-lprotobuf-c -luuid"),),
    description="Stripped-down user-mode emulator for the fuzzing trace binary",
)

PROFILES: Dict[str, BuildProfile] = {
    AFL_USER_MODE_PROFILE.name: AFL_USER_MODE_PROFILE,
}


def get_profile(name: str) -> BuildProfile:
    """
    Look up a build profile by name.

    Args:
        name: Profile name (e.g. 'afl-user-mode')

    Returns:
        The matching BuildProfile

    Raises:
        ConfigurationError: If no profile has that name
    """
    try:
        return PROFILES[name]
    except KeyError:
        available = ", ".join(sorted(PROFILES))
        raise ConfigurationError(
            f"Unknown build profile '{name}'. Available profiles: {available}"
        ) from None
